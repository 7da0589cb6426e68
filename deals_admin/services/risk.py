"""Risk flag heuristics for the review queues.

Risk flags are reviewer hints, derived on every read and never persisted:
- Retailer applications: free email domain, missing website, young entity
- Deals: deep discount, high quantity, missing image

All functions are pure and total: missing or degenerate numbers produce a
discount of 0 instead of raising.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
import math
from typing import Any


class Severity(str, Enum):
    """Severity of a single risk flag."""

    DEFAULT = "default"
    HIGH = "high"


class RiskLevel(str, Enum):
    """Overall risk level of a submitted deal."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


@dataclass(frozen=True)
class RiskFlag:
    text: str
    severity: Severity = Severity.DEFAULT


@dataclass(frozen=True)
class DealRiskAssessment:
    """Result of `assess_deal_risk`."""

    discount: int
    risk_level: RiskLevel
    flags: list[RiskFlag] = field(default_factory=list)


FREE_EMAIL_DOMAINS = frozenset({"gmail.com", "yahoo.com", "hotmail.com", "outlook.com"})

# Stored by the application form when the applicant leaves the website blank.
NO_WEBSITE_SENTINEL = "None provided"

RECENT_ENTITY_YEARS = 3
DEEP_DISCOUNT_THRESHOLD = 50
HIGH_QUANTITY_THRESHOLD = 100

FLAG_FREE_EMAIL = "Free email domain"
FLAG_NO_WEBSITE = "No website — cannot verify legitimacy"
FLAG_RECENT_ENTITY = "Entity established recently"
FLAG_DEEP_DISCOUNT = "Discount >50%"
FLAG_HIGH_QUANTITY = "High quantity"
FLAG_NO_IMAGE = "No image"

STANDARD_REVIEW = "Standard review"


def as_fraction(value: Any) -> Fraction | None:
    """Exact numeric value, or None for missing / non-finite / non-numeric input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return Fraction(value)
    except (TypeError, ValueError, OverflowError, ZeroDivisionError):
        return None


def round_half_up(value: Fraction) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return math.floor(value + Fraction(1, 2))


def percent_off(original: Any, current: Any) -> int:
    """Whole-percent discount of `current` against `original`.

    Returns 0 when either price is missing or `original` is not positive.
    Negative when `current` exceeds `original`.
    """
    orig = as_fraction(original)
    cur = as_fraction(current)
    if orig is None or cur is None or orig <= 0:
        return 0
    return round_half_up(100 * (1 - cur / orig))


def _email_domain(email: str | None) -> str | None:
    if not email or "@" not in email:
        return None
    domain = email.rsplit("@", 1)[1].strip().lower()
    return domain or None


def assess_retailer_risk(
    app: Any,
    *,
    email: str | None = None,
    current_year: int | None = None,
) -> list[RiskFlag]:
    """Compute risk flags for a retailer application.

    Rules are evaluated independently; every matching flag is returned.

    Args:
        app: Object with `email`, `website_url` and `year_established` attributes
            (a `Retailer` row, or any look-alike).
        email: Contact email override (e.g. resolved from the linked profile).
        current_year: Year to measure entity age against. Defaults to now (UTC).

    Returns:
        Risk flags in rule order.
    """
    flags: list[RiskFlag] = []
    if current_year is None:
        current_year = datetime.now(timezone.utc).year

    contact = email if email is not None else getattr(app, "email", None)
    if _email_domain(contact) in FREE_EMAIL_DOMAINS:
        flags.append(RiskFlag(FLAG_FREE_EMAIL, Severity.DEFAULT))

    website = (getattr(app, "website_url", None) or "").strip()
    if not website or website == NO_WEBSITE_SENTINEL:
        flags.append(RiskFlag(FLAG_NO_WEBSITE, Severity.HIGH))

    year = getattr(app, "year_established", None)
    if isinstance(year, int) and not isinstance(year, bool) and year:
        if current_year - year < RECENT_ENTITY_YEARS:
            flags.append(RiskFlag(FLAG_RECENT_ENTITY, Severity.DEFAULT))

    return flags


def assess_deal_risk(deal: Any) -> DealRiskAssessment:
    """Compute discount, risk flags and risk level for a submitted deal.

    Args:
        deal: Object with `original_price`, `price`, `quantity` and `image_url`
            attributes (a `Deal` row, or any look-alike).

    Returns:
        DealRiskAssessment. Risk level is HIGH when the discount exceeds 50%
        or any flag is high severity, MEDIUM otherwise.
    """
    discount = percent_off(getattr(deal, "original_price", None), getattr(deal, "price", None))
    flags: list[RiskFlag] = []

    if discount > DEEP_DISCOUNT_THRESHOLD:
        flags.append(RiskFlag(FLAG_DEEP_DISCOUNT, Severity.HIGH))

    quantity = as_fraction(getattr(deal, "quantity", None))
    if quantity is not None and quantity > HIGH_QUANTITY_THRESHOLD:
        flags.append(RiskFlag(FLAG_HIGH_QUANTITY, Severity.DEFAULT))

    if not getattr(deal, "image_url", None):
        flags.append(RiskFlag(FLAG_NO_IMAGE, Severity.DEFAULT))

    high = discount > DEEP_DISCOUNT_THRESHOLD or any(f.severity is Severity.HIGH for f in flags)
    return DealRiskAssessment(
        discount=discount,
        risk_level=RiskLevel.HIGH if high else RiskLevel.MEDIUM,
        flags=flags,
    )


def summarize_flags(flags: list[RiskFlag]) -> str:
    """Comma-joined flag texts, or "Standard review" when there are none."""
    return ", ".join(f.text for f in flags) or STANDARD_REVIEW


def summarize_original_flags(deal: Any) -> str:
    """Re-derive the flags a cleared deal was reviewed under."""
    return summarize_flags(assess_deal_risk(deal).flags)
