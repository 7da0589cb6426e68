"""Catalog management for deals, retailers and categories.

Admin-created retailers and deals skip review and are inserted approved via
the state machine. This module also owns the denormalized `deal_count`
counters on categories and retailers, and the delete guards that protect
rows deals still reference.

Deals reference categories and retailers by slug, so the counters are
recomputed from the referencing deals rather than incremented: retailer
submitted deals never pass through this module on insert.
"""

from collections.abc import Iterable
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deals_admin.errors import ConflictError, NotFoundError, PersistenceFailedError, ValidationFailedError
from deals_admin.models import Category, Deal, Retailer
from deals_admin.schemas import (
    CategoryCreate,
    CategoryOut,
    DealCreate,
    DealOut,
    DealUpdate,
    RetailerCreate,
    RetailerOut,
    RetailerUpdate,
)
from deals_admin.services.approval import ApprovalStateMachine
from deals_admin.services.lifecycle import EntityKind, ReviewStatus
from deals_admin.services.validation import (
    calculate_savings_percentage,
    generate_slug,
    validate_category,
    validate_deal,
    validate_retailer,
)
from deals_admin.stores.postgres import Database

logger = logging.getLogger("uvicorn.error")

TOGGLE_FIELDS = {"isActive": "is_active", "isFeatured": "is_featured"}

SLUG_CONFLICT = "This slug is already in use"


def _slug_conflict() -> ConflictError:
    return ConflictError(SLUG_CONFLICT, detail={"errors": {"slug": SLUG_CONFLICT}})


async def refresh_deal_counts(
    session: AsyncSession,
    category_slugs: Iterable[str | None] | None = None,
    retailer_slugs: Iterable[str | None] | None = None,
) -> None:
    """Recompute `deal_count` from the deals referencing each slug.

    Passing None for a side recounts every row on that side; an iterable
    limits the recount to those slugs.
    """
    for model, column, slugs in (
        (Category, Deal.category, category_slugs),
        (Retailer, Deal.retailer, retailer_slugs),
    ):
        stmt = update(model)
        if slugs is not None:
            wanted = sorted({s for s in slugs if s})
            if not wanted:
                continue
            stmt = stmt.where(model.slug.in_(wanted))
        count = select(func.count()).select_from(Deal).where(column == model.slug).scalar_subquery()
        # Derived column: keep updated_at, which feeds the approval-rate window
        await session.execute(
            stmt.values(deal_count=count, updated_at=model.updated_at).execution_options(synchronize_session=False)
        )


class CatalogService:
    """CRUD operations outside the review workflow."""

    def __init__(self, db: Database, state_machine: ApprovalStateMachine) -> None:
        self.db = db
        self.state_machine = state_machine

    # ============================================================
    # Retailers
    # ============================================================

    async def create_retailer(self, payload: RetailerCreate, admin_id: str) -> str:
        """Validate and insert an approved retailer. Returns the new id."""
        payload = self._checked_retailer(payload)
        values = {
            **self._retailer_values(payload),
            "deal_count": 0,
        }
        return await self.state_machine.create_approved(EntityKind.RETAILER, values, admin_id)

    async def update_retailer(self, retailer_id: str, payload: RetailerUpdate) -> None:
        """Replace a retailer's catalog fields.

        Email, phone and affiliate id are only overwritten when supplied. A
        slug change is carried over to the deals that referenced the old slug,
        so counters and delete guards keep following them.
        """
        payload = self._checked_retailer(payload)
        try:
            async with self.db.session() as session:
                retailer = await session.get(Retailer, retailer_id)
                if retailer is None:
                    raise NotFoundError("retailer", retailer_id)
                if payload.is_active and retailer.status is not ReviewStatus.APPROVED:
                    raise ConflictError(
                        "Only approved retailers can be activated",
                        detail={"id": retailer_id, "status": retailer.status.value},
                    )

                old_slug = retailer.slug
                values = self._retailer_values(payload)
                # Contact details come from the application; keep them unless given
                for column in ("email", "phone", "affiliate_id"):
                    if values[column] is None:
                        del values[column]
                for column, value in values.items():
                    setattr(retailer, column, value)
                if payload.is_active is not None:
                    retailer.is_active = payload.is_active
                retailer.updated_at = self.state_machine.clock()
                await session.flush()

                if old_slug and old_slug != payload.slug:
                    await self._rename_references(session, Deal.retailer, old_slug, payload.slug)
                await refresh_deal_counts(session, category_slugs=(), retailer_slugs=[payload.slug])
        except IntegrityError:
            logger.warning(f"[catalog] update retailer {retailer_id} conflict slug={payload.slug}")
            raise _slug_conflict()
        except SQLAlchemyError:
            logger.exception(f"[catalog] update retailer {retailer_id} failed")
            raise PersistenceFailedError("Failed to update retailer")
        logger.info(f"[catalog] updated retailer {retailer_id}")
        await self.state_machine.invalidate_stats(EntityKind.RETAILER)

    async def list_retailers(self) -> list[RetailerOut]:
        try:
            async with self.db.session() as session:
                rows = (await session.execute(select(Retailer).order_by(Retailer.name.asc()))).scalars().all()
        except SQLAlchemyError:
            logger.exception("[catalog] list retailers failed")
            raise PersistenceFailedError("Failed to load retailers")
        return [RetailerOut.model_validate(r) for r in rows]

    async def get_retailer(self, retailer_id: str) -> RetailerOut:
        return RetailerOut.model_validate(await self._load(Retailer, "retailer", retailer_id))

    async def delete_retailer(self, retailer_id: str) -> None:
        """Hard-delete a retailer that no deal references."""
        await self._delete_guarded(Retailer, Deal.retailer, "retailer", retailer_id)
        await self.state_machine.invalidate_stats(EntityKind.RETAILER)

    # ============================================================
    # Deals
    # ============================================================

    async def create_deal(self, payload: DealCreate, admin_id: str, admin_email: str | None = None) -> str:
        """Validate and insert an approved deal. Returns the new id."""
        payload = self._checked_deal(payload)
        values = {
            **self._deal_values(payload),
            "created_by": admin_email or admin_id,
        }
        deal_id = await self.state_machine.create_approved(EntityKind.DEAL, values, admin_id)
        await self._refresh_counts([payload.category], [payload.retailer])
        return deal_id

    async def update_deal(self, deal_id: str, payload: DealUpdate) -> None:
        """Replace a deal's fields and recompute its savings percentage.

        Review fields (status, approval) are untouched. Moving the deal to
        another category or retailer recounts both the old and new rows.
        """
        payload = self._checked_deal(payload)
        try:
            async with self.db.session() as session:
                deal = await session.get(Deal, deal_id)
                if deal is None:
                    raise NotFoundError("deal", deal_id)
                if payload.is_active and deal.status is not ReviewStatus.APPROVED:
                    raise ConflictError(
                        "Only approved deals can be activated",
                        detail={"id": deal_id, "status": deal.status.value},
                    )

                old_category, old_retailer = deal.category, deal.retailer
                for column, value in self._deal_values(payload).items():
                    setattr(deal, column, value)
                if payload.is_active is not None:
                    deal.is_active = payload.is_active
                deal.updated_at = self.state_machine.clock()
                await session.flush()

                await refresh_deal_counts(
                    session,
                    category_slugs=[old_category, payload.category],
                    retailer_slugs=[old_retailer, payload.retailer],
                )
        except IntegrityError:
            logger.warning(f"[catalog] update deal {deal_id} conflict slug={payload.slug}")
            raise _slug_conflict()
        except SQLAlchemyError:
            logger.exception(f"[catalog] update deal {deal_id} failed")
            raise PersistenceFailedError("Failed to update deal")
        logger.info(f"[catalog] updated deal {deal_id}")
        await self.state_machine.invalidate_stats(EntityKind.DEAL)

    async def list_deals(self) -> list[DealOut]:
        """All deals, newest first."""
        try:
            async with self.db.session() as session:
                rows = (await session.execute(select(Deal).order_by(Deal.created_at.desc()))).scalars().all()
        except SQLAlchemyError:
            logger.exception("[catalog] list deals failed")
            raise PersistenceFailedError("Failed to load deals")
        return [DealOut.model_validate(d) for d in rows]

    async def get_deal(self, deal_id: str) -> DealOut:
        return DealOut.model_validate(await self._load(Deal, "deal", deal_id))

    async def delete_deal(self, deal_id: str) -> None:
        try:
            async with self.db.session() as session:
                deal = await session.get(Deal, deal_id)
                if deal is None:
                    raise NotFoundError("deal", deal_id)
                category, retailer = deal.category, deal.retailer
                await session.delete(deal)
                await session.flush()
                await refresh_deal_counts(session, [category], [retailer])
        except SQLAlchemyError:
            logger.exception(f"[catalog] delete deal {deal_id} failed")
            raise PersistenceFailedError("Failed to delete deal")
        logger.info(f"[catalog] deleted deal {deal_id}")
        await self.state_machine.invalidate_stats(EntityKind.DEAL)

    async def toggle_deal(self, deal_id: str, field: str) -> bool:
        """Flip `isActive` or `isFeatured` on a deal. Returns the new value.

        Only approved deals can be activated; pausing or featuring is open to
        any deal.
        """
        column = TOGGLE_FIELDS.get(field)
        if column is None:
            raise ValidationFailedError.for_field("field", "Field must be isActive or isFeatured")

        try:
            async with self.db.session() as session:
                deal = await session.get(Deal, deal_id)
                if deal is None:
                    raise NotFoundError("deal", deal_id)
                new_value = not getattr(deal, column)
                if column == "is_active" and new_value and deal.status is not ReviewStatus.APPROVED:
                    raise ConflictError(
                        "Only approved deals can be activated",
                        detail={"id": deal_id, "status": deal.status.value},
                    )
                setattr(deal, column, new_value)
        except SQLAlchemyError:
            logger.exception(f"[catalog] toggle {field} on deal {deal_id} failed")
            raise PersistenceFailedError("Failed to update deal status")
        await self.state_machine.invalidate_stats(EntityKind.DEAL)
        return new_value

    async def bulk_update_deals(
        self,
        ids: list[str],
        *,
        is_active: bool | None = None,
        is_featured: bool | None = None,
    ) -> int:
        """Set flags on many deals at once. Returns the number of rows updated.

        Activation is applied to approved deals only; other selected deals are
        left untouched.
        """
        ids = [i for i in dict.fromkeys(ids) if i]
        if not ids:
            raise ValidationFailedError.for_field("ids", "No deals selected")
        values: dict[str, bool] = {}
        if is_active is not None:
            values["is_active"] = is_active
        if is_featured is not None:
            values["is_featured"] = is_featured
        if not values:
            raise ValidationFailedError.for_field("isActive", "Nothing to update")

        stmt = update(Deal).where(Deal.id.in_(ids))
        if is_active:
            stmt = stmt.where(Deal.status == ReviewStatus.APPROVED)
        try:
            async with self.db.session() as session:
                result = await session.execute(stmt.values(**values).execution_options(synchronize_session=False))
                updated = result.rowcount
        except SQLAlchemyError:
            logger.exception(f"[catalog] bulk update of {len(ids)} deals failed")
            raise PersistenceFailedError("Failed to update deals")
        if updated:
            await self.state_machine.invalidate_stats(EntityKind.DEAL)
        return updated

    # ============================================================
    # Categories
    # ============================================================

    async def create_category(self, payload: CategoryCreate) -> str:
        payload = self._checked_category(payload)
        category = Category(
            name=payload.name.strip(),
            slug=payload.slug,
            description=payload.description,
            icon=payload.icon,
            order=payload.order,
            is_active=payload.is_active,
            deal_count=0,
        )
        try:
            async with self.db.session() as session:
                session.add(category)
                await session.flush()
                category_id = category.id
        except IntegrityError:
            raise _slug_conflict()
        except SQLAlchemyError:
            logger.exception("[catalog] create category failed")
            raise PersistenceFailedError("Failed to create category")
        return category_id

    async def update_category(self, category_id: str, payload: CategoryCreate) -> None:
        """Replace a category. A slug change follows through to its deals."""
        payload = self._checked_category(payload)
        try:
            async with self.db.session() as session:
                category = await session.get(Category, category_id)
                if category is None:
                    raise NotFoundError("category", category_id)
                old_slug = category.slug
                category.name = payload.name.strip()
                category.slug = payload.slug
                category.description = payload.description
                category.icon = payload.icon
                category.order = payload.order
                category.is_active = payload.is_active
                category.updated_at = self.state_machine.clock()
                await session.flush()

                if old_slug != payload.slug:
                    await self._rename_references(session, Deal.category, old_slug, payload.slug)
                await refresh_deal_counts(session, category_slugs=[payload.slug], retailer_slugs=())
        except IntegrityError:
            raise _slug_conflict()
        except SQLAlchemyError:
            logger.exception(f"[catalog] update category {category_id} failed")
            raise PersistenceFailedError("Failed to update category")
        logger.info(f"[catalog] updated category {category_id}")

    async def update_category_order(self, category_id: str, order: int) -> None:
        if order < 0:
            raise ValidationFailedError.for_field("order", "Order must be a non-negative integer")
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    update(Category)
                    .where(Category.id == category_id)
                    .values(order=order, updated_at=self.state_machine.clock())
                )
                matched = result.rowcount
        except SQLAlchemyError:
            logger.exception(f"[catalog] reorder category {category_id} failed")
            raise PersistenceFailedError("Failed to update category order")
        if matched == 0:
            raise NotFoundError("category", category_id)

    async def list_categories(self) -> list[CategoryOut]:
        try:
            async with self.db.session() as session:
                rows = (
                    await session.execute(select(Category).order_by(Category.order.asc(), Category.name.asc()))
                ).scalars().all()
        except SQLAlchemyError:
            logger.exception("[catalog] list categories failed")
            raise PersistenceFailedError("Failed to load categories")
        return [CategoryOut.model_validate(c) for c in rows]

    async def get_category(self, category_id: str) -> CategoryOut:
        return CategoryOut.model_validate(await self._load(Category, "category", category_id))

    async def delete_category(self, category_id: str) -> None:
        await self._delete_guarded(Category, Deal.category, "category", category_id)

    # ============================================================
    # Helpers
    # ============================================================

    @staticmethod
    def _checked_retailer(payload: RetailerCreate) -> RetailerCreate:
        if not (payload.slug or "").strip():
            payload = payload.model_copy(update={"slug": generate_slug(payload.name)})
        errors = validate_retailer(payload)
        if errors:
            raise ValidationFailedError(errors)
        return payload

    @staticmethod
    def _retailer_values(payload: RetailerCreate) -> dict:
        return {
            "name": payload.name.strip(),
            "slug": payload.slug,
            "logo_url": payload.logo_url,
            "website_url": payload.website_url,
            "commission": payload.commission,
            "affiliate_id": payload.affiliate_id or None,
            "email": payload.email,
            "phone": payload.phone,
        }

    @staticmethod
    def _checked_deal(payload: DealCreate) -> DealCreate:
        if not (payload.slug or "").strip():
            payload = payload.model_copy(update={"slug": generate_slug(payload.product_name)})
        errors = validate_deal(payload)
        if errors:
            raise ValidationFailedError(errors)
        return payload

    @staticmethod
    def _deal_values(payload: DealCreate) -> dict:
        return {
            "product_name": payload.product_name.strip(),
            "slug": payload.slug,
            "description": payload.description,
            "image_url": payload.image_url,
            "deal_url": payload.deal_url,
            "category": payload.category,
            "retailer": payload.retailer,
            "price": payload.price,
            "original_price": payload.original_price,
            "savings_percentage": calculate_savings_percentage(payload.original_price, payload.price),
            "quantity": payload.quantity,
            "sku": payload.sku,
            "expiration_date": payload.expiration_date,
            "is_featured": payload.is_featured,
            "meta_description": payload.meta_description or None,
        }

    @staticmethod
    def _checked_category(payload: CategoryCreate) -> CategoryCreate:
        if not (payload.slug or "").strip():
            payload = payload.model_copy(update={"slug": generate_slug(payload.name)})
        errors = validate_category(payload)
        if errors:
            raise ValidationFailedError(errors)
        return payload

    async def _load(self, model: type[Deal] | type[Retailer] | type[Category], kind: str, entity_id: str):
        try:
            async with self.db.session() as session:
                row = await session.get(model, entity_id)
        except SQLAlchemyError:
            logger.exception(f"[catalog] load {kind} {entity_id} failed")
            raise PersistenceFailedError(f"Failed to load {kind}")
        if row is None:
            raise NotFoundError(kind, entity_id)
        return row

    @staticmethod
    async def _rename_references(session: AsyncSession, column, old_slug: str, new_slug: str) -> None:
        await session.execute(
            update(Deal)
            .where(column == old_slug)
            .values({column: new_slug, Deal.updated_at: Deal.updated_at})
            .execution_options(synchronize_session=False)
        )

    async def _delete_guarded(
        self,
        model: type[Retailer] | type[Category],
        reference,
        kind: str,
        entity_id: str,
    ) -> None:
        """Delete a catalog row unless deals still reference its slug.

        The stored counter and a live count of referencing deals are both
        checked, so a stale counter cannot let a referenced row go.
        """
        try:
            async with self.db.session() as session:
                row = await session.get(model, entity_id)
                if row is None:
                    raise NotFoundError(kind, entity_id)
                referencing = 0
                if row.slug:
                    referencing = (
                        await session.execute(select(func.count()).select_from(Deal).where(reference == row.slug))
                    ).scalar_one()
                deal_count = max(row.deal_count, referencing)
                if deal_count > 0:
                    raise ConflictError(
                        f"Cannot delete {kind} with {deal_count} associated deal(s)",
                        detail={"id": entity_id, "dealCount": deal_count},
                    )
                await session.execute(delete(model).where(model.id == entity_id))
        except SQLAlchemyError:
            logger.exception(f"[catalog] delete {kind} {entity_id} failed")
            raise PersistenceFailedError(f"Failed to delete {kind}")
        logger.info(f"[catalog] deleted {kind} {entity_id}")

    async def _refresh_counts(self, category_slugs: list[str | None], retailer_slugs: list[str | None]) -> None:
        """Best-effort recount after an insert committed in another session."""
        try:
            async with self.db.session() as session:
                await refresh_deal_counts(session, category_slugs, retailer_slugs)
        except SQLAlchemyError:
            logger.warning(
                f"[catalog] deal_count refresh failed categories={category_slugs} retailers={retailer_slugs}",
                exc_info=True,
            )
