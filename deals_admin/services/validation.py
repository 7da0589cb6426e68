"""Validation helpers for admin-created catalog entities.

Validators return a dict of field -> message keyed by the API (camelCase)
field name; an empty dict means the payload is valid.
"""

from datetime import datetime, timezone
import re
from urllib.parse import urlparse

from deals_admin.schemas.catalog import CategoryCreate, DealCreate, RetailerCreate
from deals_admin.services.risk import as_fraction, round_half_up

_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def calculate_savings_percentage(original_price: int | float | None, price: int | float | None) -> int:
    """Whole-percent savings of `price` against `original_price`.

    Returns 0 for degenerate input: original <= 0, price < 0, price >= original,
    or either value missing.
    """
    orig = as_fraction(original_price)
    cur = as_fraction(price)
    if orig is None or cur is None:
        return 0
    if orig <= 0 or cur < 0 or cur >= orig:
        return 0
    return round_half_up(100 * (orig - cur) / orig)


def generate_slug(text: str) -> str:
    """Convert text to a URL-friendly slug ("Big TV Sale!" -> "big-tv-sale")."""
    slug = (text or "").lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def validate_slug(slug: str | None) -> bool:
    return bool(slug) and _SLUG_PATTERN.match(slug) is not None


def validate_url(url: str | None) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_future_date(value: datetime | None, *, now: datetime | None = None) -> bool:
    if value is None:
        return False
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value > (now or datetime.now(timezone.utc))


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


def validate_deal(data: DealCreate, *, now: datetime | None = None) -> dict[str, str]:
    """Validate a deal payload. The slug must already be filled in."""
    errors: dict[str, str] = {}

    if _blank(data.product_name):
        errors["productName"] = "Product name is required"
    elif len(data.product_name) > 200:
        errors["productName"] = "Product name must be 200 characters or less"

    if _blank(data.description):
        errors["description"] = "Description is required"
    elif len(data.description) > 1000:
        errors["description"] = "Description must be 1000 characters or less"

    if _blank(data.image_url):
        errors["imageUrl"] = "Image URL is required"
    elif not validate_url(data.image_url):
        errors["imageUrl"] = "Image URL must be a valid URL (http:// or https://)"

    if _blank(data.deal_url):
        errors["dealUrl"] = "Deal URL is required"
    elif not validate_url(data.deal_url):
        errors["dealUrl"] = "Deal URL must be a valid URL (http:// or https://)"

    if _blank(data.category):
        errors["category"] = "Category is required"
    if _blank(data.retailer):
        errors["retailer"] = "Retailer is required"

    if data.price is None:
        errors["price"] = "Price is required"
    elif data.price < 0:
        errors["price"] = "Price must be a positive number"

    if data.original_price is None:
        errors["originalPrice"] = "Original price is required"
    elif data.original_price <= 0:
        errors["originalPrice"] = "Original price must be a positive number"

    if data.price is not None and data.original_price is not None and data.price >= data.original_price:
        errors["price"] = "Sale price must be less than original price"

    if data.quantity is not None and data.quantity < 0:
        errors["quantity"] = "Quantity must be a non-negative integer"

    if data.expiration_date is None:
        errors["expirationDate"] = "Expiration date is required"
    elif not validate_future_date(data.expiration_date, now=now):
        errors["expirationDate"] = "Expiration date must be in the future"

    if _blank(data.slug):
        errors["slug"] = "Slug is required"
    elif not validate_slug(data.slug):
        errors["slug"] = "Slug must contain only lowercase letters, numbers, and hyphens"

    return errors


def validate_retailer(data: RetailerCreate) -> dict[str, str]:
    """Validate an admin-created retailer payload."""
    errors: dict[str, str] = {}

    if _blank(data.name):
        errors["name"] = "Retailer name is required"
    elif len(data.name) > 100:
        errors["name"] = "Retailer name must be 100 characters or less"

    if _blank(data.slug):
        errors["slug"] = "Slug is required"
    elif not validate_slug(data.slug):
        errors["slug"] = "Slug must contain only lowercase letters, numbers, and hyphens"

    if _blank(data.logo_url):
        errors["logoUrl"] = "Logo URL is required"
    elif not validate_url(data.logo_url):
        errors["logoUrl"] = "Logo URL must be a valid URL (http:// or https://)"

    if _blank(data.website_url):
        errors["websiteUrl"] = "Website URL is required"
    elif not validate_url(data.website_url):
        errors["websiteUrl"] = "Website URL must be a valid URL (http:// or https://)"

    return errors


def validate_category(data: CategoryCreate) -> dict[str, str]:
    """Validate a category payload."""
    errors: dict[str, str] = {}

    if _blank(data.name):
        errors["name"] = "Category name is required"
    elif len(data.name) > 100:
        errors["name"] = "Category name must be 100 characters or less"

    if _blank(data.slug):
        errors["slug"] = "Slug is required"
    elif not validate_slug(data.slug):
        errors["slug"] = "Slug must contain only lowercase letters, numbers, and hyphens"

    if _blank(data.icon):
        errors["icon"] = "Icon is required"

    if data.description and len(data.description) > 500:
        errors["description"] = "Description must be 500 characters or less"

    if data.order < 0:
        errors["order"] = "Order must be a non-negative integer"

    return errors
