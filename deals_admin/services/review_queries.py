"""Read-side queries for the review dashboards.

Views:
- Pending queue (retailer applications with risk flags, flagged deal inventory)
- Approved / rejected lists with the reviewing admin resolved
- Queue stats (counts, 30-day approval rate, average review time)
- Recently cleared deals with the flags they were reviewed under

Lookups into user_profiles, retailers and categories are batched per list
(one IN query each) and default to placeholders when unresolved.
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deals_admin.errors import PersistenceFailedError
from deals_admin.models import Category, Deal, Retailer, UserProfile
from deals_admin.models.columns import utcnow
from deals_admin.schemas import (
    ApprovedItem,
    ClearedItem,
    FlaggedDeal,
    PendingRetailer,
    RejectedItem,
    ReviewStats,
    RiskFlagOut,
)
from deals_admin.services.approval import MODELS
from deals_admin.services.lifecycle import EntityKind, ReviewStatus
from deals_admin.services.risk import (
    RiskFlag,
    assess_deal_risk,
    assess_retailer_risk,
    summarize_flags,
    summarize_original_flags,
)
from deals_admin.stores.postgres import Database
from deals_admin.stores.redis import TTL_REVIEW_STATS, Cache, review_stats_key

logger = logging.getLogger("uvicorn.error")

ADMIN_PLACEHOLDER = "Admin"
NO_REASON_PLACEHOLDER = "No reason provided"
VERIFIED_PARTNER = "Verified Partner"
NEW_PARTNER = "New Partner"


def _as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _flags_out(flags: Iterable[RiskFlag]) -> list[RiskFlagOut]:
    return [RiskFlagOut(text=f.text, severity=f.severity) for f in flags]


def approval_rate(recent_approved: int, recent_rejected: int) -> int:
    """Whole-percent share of approvals among recent decisions (0 when none)."""
    total = recent_approved + recent_rejected
    if total <= 0:
        return 0
    # Half-up rounding on exact integers.
    return (200 * recent_approved + total) // (2 * total)


class ReviewQueryService:
    """Materializes review dashboard views from the database."""

    def __init__(
        self,
        db: Database,
        cache: Cache | None = None,
        *,
        approval_rate_window_days: int = 30,
        stats_cache_ttl: int = TTL_REVIEW_STATS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.cache = cache or Cache()
        self.approval_rate_window_days = approval_rate_window_days
        self.stats_cache_ttl = stats_cache_ttl
        self.clock = clock

    # ============================================================
    # Lists
    # ============================================================

    async def list_pending(self, kind: EntityKind) -> list[PendingRetailer] | list[FlaggedDeal]:
        """Pending entities, newest first by created_at."""
        try:
            if kind is EntityKind.RETAILER:
                return await self._pending_retailers()
            return await self._pending_deals()
        except SQLAlchemyError:
            logger.exception(f"[review] list pending {kind.value} failed")
            raise PersistenceFailedError(f"Failed to load pending {kind.value}s")

    async def list_approved(self, kind: EntityKind) -> list[ApprovedItem]:
        """Approved entities, newest first by updated_at, with approver display."""
        model = MODELS[kind]
        try:
            async with self.db.session() as session:
                rows = (
                    await session.execute(
                        select(model)
                        .where(model.status == ReviewStatus.APPROVED)
                        .order_by(model.updated_at.desc())
                    )
                ).scalars().all()
                displays = await self._admin_displays(session, (r.approved_by for r in rows))
                emails = await self._contact_emails(session, rows) if kind is EntityKind.RETAILER else {}
        except SQLAlchemyError:
            logger.exception(f"[review] list approved {kind.value} failed")
            raise PersistenceFailedError(f"Failed to load approved {kind.value}s")

        return [
            ApprovedItem(
                id=r.id,
                name=_entity_name(r),
                email=emails.get(r.id),
                is_active=r.is_active,
                approved_at=_as_utc(r.approved_at),
                approved_by=r.approved_by,
                approved_by_display=displays.get(r.approved_by or "", ADMIN_PLACEHOLDER),
                approval_notes=r.approval_notes,
                updated_at=_as_utc(r.updated_at),
            )
            for r in rows
        ]

    async def list_rejected(self, kind: EntityKind) -> list[RejectedItem]:
        """Rejected entities, newest first by updated_at."""
        model = MODELS[kind]
        try:
            async with self.db.session() as session:
                rows = (
                    await session.execute(
                        select(model)
                        .where(model.status == ReviewStatus.REJECTED)
                        .order_by(model.updated_at.desc())
                    )
                ).scalars().all()
                emails = await self._contact_emails(session, rows) if kind is EntityKind.RETAILER else {}
        except SQLAlchemyError:
            logger.exception(f"[review] list rejected {kind.value} failed")
            raise PersistenceFailedError(f"Failed to load rejected {kind.value}s")

        return [
            RejectedItem(
                id=r.id,
                name=_entity_name(r),
                email=emails.get(r.id),
                rejection_reason=r.rejection_reason or NO_REASON_PLACEHOLDER,
                rejected_by=r.approved_by,
                updated_at=_as_utc(r.updated_at),
            )
            for r in rows
        ]

    async def _pending_retailers(self) -> list[PendingRetailer]:
        current_year = self.clock().year
        async with self.db.session() as session:
            rows = (
                await session.execute(
                    select(Retailer)
                    .where(Retailer.status == ReviewStatus.PENDING)
                    .order_by(Retailer.created_at.desc())
                )
            ).scalars().all()
            emails = await self._contact_emails(session, rows)

        items: list[PendingRetailer] = []
        for r in rows:
            email = emails.get(r.id)
            items.append(
                PendingRetailer(
                    id=r.id,
                    name=r.name,
                    email=email,
                    phone=r.phone,
                    website_url=r.website_url,
                    entity_type=r.entity_type,
                    state=r.state,
                    year_established=r.year_established,
                    volume=r.volume,
                    categories=list(r.categories or []),
                    conditions=list(r.conditions or []),
                    discount_range=r.discount_range,
                    storage_location=r.storage_location,
                    min_margin=r.min_margin,
                    allow_dynamic_markdowns=r.allow_dynamic_markdowns,
                    allow_flash_sales=r.allow_flash_sales,
                    created_at=_as_utc(r.created_at),
                    risk_flags=_flags_out(assess_retailer_risk(r, email=email, current_year=current_year)),
                )
            )
        return items

    async def _pending_deals(self) -> list[FlaggedDeal]:
        async with self.db.session() as session:
            rows = (
                await session.execute(
                    select(Deal)
                    .where(Deal.status == ReviewStatus.PENDING)
                    .order_by(Deal.created_at.desc())
                )
            ).scalars().all()
            retailers = await self._retailers_by_slug(session, (d.retailer for d in rows))
            categories = await self._category_names(session, (d.category for d in rows))

        items: list[FlaggedDeal] = []
        for d in rows:
            risk = assess_deal_risk(d)
            retailer = retailers.get(d.retailer or "")
            retailer_name = retailer[0] if retailer else (d.retailer or "Unknown")
            items.append(
                FlaggedDeal(
                    id=d.id,
                    sku=d.sku or "N/A",
                    title=d.product_name,
                    description=d.description,
                    category=categories.get(d.category or "") or d.category or "Uncategorized",
                    retailer_name=retailer_name,
                    retailer_status=(
                        VERIFIED_PARTNER if retailer and retailer[1] is ReviewStatus.APPROVED else NEW_PARTNER
                    ),
                    original_price=d.original_price or 0,
                    current_price=d.price or 0,
                    quantity=d.quantity or 1,
                    deal_url=d.deal_url,
                    image_url=d.image_url,
                    discount=risk.discount,
                    risk_level=risk.risk_level,
                    flags=_flags_out(risk.flags),
                    flagged_at=_as_utc(d.created_at),
                    flag_notes=(
                        f"Automatic flag: Deal submitted by {retailer[0] if retailer else 'retailer'} "
                        "requires admin review."
                    ),
                )
            )
        return items

    # ============================================================
    # Stats
    # ============================================================

    async def compute_stats(self, kind: EntityKind) -> ReviewStats:
        """Queue counts plus approval rate over the trailing window.

        approval_rate = round(100 * approved / (approved + rejected)) for
        decisions whose updated_at falls in the window; 0 when there are none.
        """
        cache_key = review_stats_key(kind.value)
        cached = await self.cache.get_json(cache_key)
        if cached is not None:
            try:
                return ReviewStats.model_validate(cached)
            except ValueError:
                logger.warning(f"[review] ignoring malformed cached stats key={cache_key}")

        try:
            stats = await self._compute_stats_uncached(kind)
        except SQLAlchemyError:
            logger.exception(f"[review] stats {kind.value} failed")
            raise PersistenceFailedError(f"Failed to load {kind.value} stats")

        await self.cache.set_json(cache_key, stats.model_dump(mode="json"), self.stats_cache_ttl)
        return stats

    async def _compute_stats_uncached(self, kind: EntityKind) -> ReviewStats:
        model = MODELS[kind]
        now = self.clock()
        window_start = now - timedelta(days=self.approval_rate_window_days)
        day_start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        async with self.db.session() as session:
            counts: dict[ReviewStatus, int] = {s: 0 for s in ReviewStatus}
            for status, count in (
                await session.execute(select(model.status, func.count()).group_by(model.status))
            ).all():
                counts[ReviewStatus(status)] = count

            recent: dict[ReviewStatus, int] = {ReviewStatus.APPROVED: 0, ReviewStatus.REJECTED: 0}
            for status, count in (
                await session.execute(
                    select(model.status, func.count())
                    .where(model.status.in_([ReviewStatus.APPROVED, ReviewStatus.REJECTED]))
                    .where(model.updated_at >= window_start)
                    .group_by(model.status)
                )
            ).all():
                recent[ReviewStatus(status)] = count

            cleared_today = (
                await session.execute(
                    select(func.count())
                    .select_from(model)
                    .where(model.status == ReviewStatus.APPROVED)
                    .where(model.approved_at >= day_start)
                )
            ).scalar() or 0

            review_spans = (
                await session.execute(
                    select(model.created_at, model.approved_at)
                    .where(model.status == ReviewStatus.APPROVED)
                    .where(model.approved_at >= window_start)
                )
            ).all()

        hours = [
            (_as_utc(approved) - _as_utc(created)).total_seconds() / 3600
            for created, approved in review_spans
            if created is not None and approved is not None
        ]
        avg_review_hours = round(sum(hours) / len(hours), 1) if hours else None

        return ReviewStats(
            pending_count=counts[ReviewStatus.PENDING],
            approved_count=counts[ReviewStatus.APPROVED],
            rejected_count=counts[ReviewStatus.REJECTED],
            approval_rate=approval_rate(recent[ReviewStatus.APPROVED], recent[ReviewStatus.REJECTED]),
            cleared_today=cleared_today,
            avg_review_hours=avg_review_hours,
        )

    # ============================================================
    # Recently cleared
    # ============================================================

    async def recently_cleared(
        self,
        kind: EntityKind = EntityKind.DEAL,
        window_hours: int = 24,
        limit: int = 10,
    ) -> list[ClearedItem]:
        """Entities approved within the last `window_hours`, newest first."""
        model = MODELS[kind]
        since = self.clock() - timedelta(hours=window_hours)
        current_year = self.clock().year
        try:
            async with self.db.session() as session:
                rows = (
                    await session.execute(
                        select(model)
                        .where(model.status == ReviewStatus.APPROVED)
                        .where(model.approved_at >= since)
                        .order_by(model.approved_at.desc())
                        .limit(limit)
                    )
                ).scalars().all()
                displays = await self._admin_displays(session, (r.approved_by for r in rows))
                retailers = (
                    await self._retailers_by_slug(session, (r.retailer for r in rows))
                    if kind is EntityKind.DEAL
                    else {}
                )
        except SQLAlchemyError:
            logger.exception(f"[review] recently cleared {kind.value} failed")
            raise PersistenceFailedError(f"Failed to load recently cleared {kind.value}s")

        items: list[ClearedItem] = []
        for r in rows:
            if kind is EntityKind.DEAL:
                retailer = retailers.get(r.retailer or "")
                items.append(
                    ClearedItem(
                        id=r.id,
                        sku=r.sku or "N/A",
                        title=r.product_name,
                        retailer_name=retailer[0] if retailer else "Unknown",
                        original_flag=summarize_original_flags(r),
                        cleared_by=displays.get(r.approved_by or "", ADMIN_PLACEHOLDER),
                        cleared_at=_as_utc(r.approved_at),
                    )
                )
            else:
                items.append(
                    ClearedItem(
                        id=r.id,
                        title=r.name,
                        retailer_name=r.name,
                        original_flag=summarize_flags(assess_retailer_risk(r, current_year=current_year)),
                        cleared_by=displays.get(r.approved_by or "", ADMIN_PLACEHOLDER),
                        cleared_at=_as_utc(r.approved_at),
                    )
                )
        return items

    # ============================================================
    # Batched lookups
    # ============================================================

    async def _admin_displays(self, session: AsyncSession, admin_ids: Iterable[str | None]) -> dict[str, str]:
        """Map admin uid -> email, else full name, else placeholder."""
        ids = {a for a in admin_ids if a}
        if not ids:
            return {}
        result = await session.execute(
            select(UserProfile.id, UserProfile.email, UserProfile.full_name).where(UserProfile.id.in_(ids))
        )
        return {uid: email or full_name or ADMIN_PLACEHOLDER for uid, email, full_name in result.all()}

    async def _contact_emails(self, session: AsyncSession, retailers: Iterable[Retailer]) -> dict[str, str | None]:
        """Map retailer id -> own email, falling back to the linked profile email."""
        retailers = list(retailers)
        user_ids = {r.user_id for r in retailers if r.user_id and not r.email}
        profile_emails: dict[str, str | None] = {}
        if user_ids:
            result = await session.execute(
                select(UserProfile.id, UserProfile.email).where(UserProfile.id.in_(user_ids))
            )
            profile_emails = dict(result.all())
        return {r.id: r.email or profile_emails.get(r.user_id or "") for r in retailers}

    async def _retailers_by_slug(self, session: AsyncSession, slugs: Iterable[str | None]) -> dict[str, tuple[str, ReviewStatus]]:
        wanted = {s for s in slugs if s}
        if not wanted:
            return {}
        result = await session.execute(
            select(Retailer.slug, Retailer.name, Retailer.status).where(Retailer.slug.in_(wanted))
        )
        return {slug: (name, status) for slug, name, status in result.all()}

    async def _category_names(self, session: AsyncSession, slugs: Iterable[str | None]) -> dict[str, str]:
        wanted = {s for s in slugs if s}
        if not wanted:
            return {}
        result = await session.execute(select(Category.slug, Category.name).where(Category.slug.in_(wanted)))
        return dict(result.all())


def _entity_name(row: Retailer | Deal) -> str:
    return row.name if isinstance(row, Retailer) else row.product_name
