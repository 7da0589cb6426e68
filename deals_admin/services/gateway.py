"""Single entry point for admin actions.

Every call is checked for the admin role before any store access, has its
inputs validated, and is delegated to the state machine, query service or
catalog service. Errors reach the caller only as ApprovalError subclasses;
anything unexpected is logged with its traceback and surfaced as a generic
PersistenceFailedError.
"""

from collections.abc import Awaitable, Callable
import logging
from typing import Any, TypeVar

from deals_admin.errors import ApprovalError, PersistenceFailedError, UnauthorizedError, ValidationFailedError
from deals_admin.schemas import (
    ApprovedItem,
    CategoryCreate,
    CategoryOut,
    ClearedItem,
    DealCreate,
    DealOut,
    DealUpdate,
    FlaggedDeal,
    PendingRetailer,
    RejectedItem,
    RetailerCreate,
    RetailerOut,
    RetailerUpdate,
    ReviewStats,
)
from deals_admin.services.approval import ApprovalStateMachine, TransitionOutcome
from deals_admin.services.auth import Caller
from deals_admin.services.catalog import CatalogService
from deals_admin.services.lifecycle import EntityKind
from deals_admin.services.review_queries import ReviewQueryService

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")


class ActionGateway:
    """Admin-only facade over review and catalog operations."""

    def __init__(
        self,
        state_machine: ApprovalStateMachine,
        queries: ReviewQueryService,
        catalog: CatalogService,
        *,
        recently_cleared_window_hours: int = 24,
        recently_cleared_limit: int = 10,
    ) -> None:
        self.state_machine = state_machine
        self.queries = queries
        self.catalog = catalog
        self.recently_cleared_window_hours = recently_cleared_window_hours
        self.recently_cleared_limit = recently_cleared_limit

    # ============================================================
    # Review decisions
    # ============================================================

    async def approve(
        self,
        caller: Caller | None,
        kind: EntityKind,
        entity_id: str,
        notes: str | None = None,
    ) -> TransitionOutcome:
        """Approve a pending (or previously rejected) retailer or deal.

        Args:
            caller: Authenticated caller; must be an admin.
            kind: Entity kind.
            entity_id: Target id.
            notes: Optional approval notes (defaulted when blank).

        Returns:
            TransitionOutcome with `changed=False` when it was already approved.
        """
        self._authorize(caller, f"approve {kind.value}")
        entity_id = _require_id(entity_id)
        return await self._call(
            f"approve {kind.value} {entity_id}",
            self.state_machine.approve,
            kind,
            entity_id,
            caller.uid,
            notes,
        )

    async def reject(
        self,
        caller: Caller | None,
        kind: EntityKind,
        entity_id: str,
        reason: str | None,
    ) -> TransitionOutcome:
        """Reject a retailer or deal. A non-empty reason is required."""
        self._authorize(caller, f"reject {kind.value}")
        entity_id = _require_id(entity_id)
        reason = self.state_machine.clean_reason(reason)
        return await self._call(
            f"reject {kind.value} {entity_id}",
            self.state_machine.reject,
            kind,
            entity_id,
            caller.uid,
            reason,
        )

    # ============================================================
    # Review views
    # ============================================================

    async def list_pending(self, caller: Caller | None, kind: EntityKind) -> list[PendingRetailer] | list[FlaggedDeal]:
        self._authorize(caller, f"list pending {kind.value}s")
        return await self._call(f"list pending {kind.value}s", self.queries.list_pending, kind)

    async def list_approved(self, caller: Caller | None, kind: EntityKind) -> list[ApprovedItem]:
        self._authorize(caller, f"list approved {kind.value}s")
        return await self._call(f"list approved {kind.value}s", self.queries.list_approved, kind)

    async def list_rejected(self, caller: Caller | None, kind: EntityKind) -> list[RejectedItem]:
        self._authorize(caller, f"list rejected {kind.value}s")
        return await self._call(f"list rejected {kind.value}s", self.queries.list_rejected, kind)

    async def stats(self, caller: Caller | None, kind: EntityKind) -> ReviewStats:
        self._authorize(caller, f"{kind.value} stats")
        return await self._call(f"{kind.value} stats", self.queries.compute_stats, kind)

    async def recently_cleared(
        self,
        caller: Caller | None,
        kind: EntityKind = EntityKind.DEAL,
        window_hours: int | None = None,
        limit: int | None = None,
    ) -> list[ClearedItem]:
        self._authorize(caller, f"recently cleared {kind.value}s")
        window_hours = window_hours if window_hours is not None else self.recently_cleared_window_hours
        limit = limit if limit is not None else self.recently_cleared_limit
        if window_hours <= 0:
            raise ValidationFailedError.for_field("windowHours", "Window must be a positive number of hours")
        if limit <= 0:
            raise ValidationFailedError.for_field("limit", "Limit must be a positive integer")
        return await self._call(
            f"recently cleared {kind.value}s",
            self.queries.recently_cleared,
            kind,
            window_hours,
            limit,
        )

    # ============================================================
    # Catalog
    # ============================================================

    async def create_retailer(self, caller: Caller | None, payload: RetailerCreate) -> str:
        self._authorize(caller, "create retailer")
        return await self._call("create retailer", self.catalog.create_retailer, payload, caller.uid)

    async def update_retailer(self, caller: Caller | None, retailer_id: str, payload: RetailerUpdate) -> None:
        self._authorize(caller, "update retailer")
        retailer_id = _require_id(retailer_id)
        await self._call(f"update retailer {retailer_id}", self.catalog.update_retailer, retailer_id, payload)

    async def list_retailers(self, caller: Caller | None) -> list[RetailerOut]:
        self._authorize(caller, "list retailers")
        return await self._call("list retailers", self.catalog.list_retailers)

    async def get_retailer(self, caller: Caller | None, retailer_id: str) -> RetailerOut:
        self._authorize(caller, "get retailer")
        retailer_id = _require_id(retailer_id)
        return await self._call(f"get retailer {retailer_id}", self.catalog.get_retailer, retailer_id)

    async def delete_retailer(self, caller: Caller | None, retailer_id: str) -> None:
        self._authorize(caller, "delete retailer")
        retailer_id = _require_id(retailer_id)
        await self._call(f"delete retailer {retailer_id}", self.catalog.delete_retailer, retailer_id)

    async def create_deal(self, caller: Caller | None, payload: DealCreate) -> str:
        self._authorize(caller, "create deal")
        return await self._call("create deal", self.catalog.create_deal, payload, caller.uid, caller.email)

    async def update_deal(self, caller: Caller | None, deal_id: str, payload: DealUpdate) -> None:
        self._authorize(caller, "update deal")
        deal_id = _require_id(deal_id)
        await self._call(f"update deal {deal_id}", self.catalog.update_deal, deal_id, payload)

    async def list_deals(self, caller: Caller | None) -> list[DealOut]:
        self._authorize(caller, "list deals")
        return await self._call("list deals", self.catalog.list_deals)

    async def get_deal(self, caller: Caller | None, deal_id: str) -> DealOut:
        self._authorize(caller, "get deal")
        deal_id = _require_id(deal_id)
        return await self._call(f"get deal {deal_id}", self.catalog.get_deal, deal_id)

    async def delete_deal(self, caller: Caller | None, deal_id: str) -> None:
        self._authorize(caller, "delete deal")
        deal_id = _require_id(deal_id)
        await self._call(f"delete deal {deal_id}", self.catalog.delete_deal, deal_id)

    async def toggle_deal(self, caller: Caller | None, deal_id: str, field: str) -> bool:
        self._authorize(caller, "toggle deal")
        deal_id = _require_id(deal_id)
        return await self._call(f"toggle {field} on deal {deal_id}", self.catalog.toggle_deal, deal_id, field)

    async def bulk_update_deals(
        self,
        caller: Caller | None,
        ids: list[str],
        *,
        is_active: bool | None = None,
        is_featured: bool | None = None,
    ) -> int:
        self._authorize(caller, "bulk update deals")
        return await self._call(
            "bulk update deals",
            self.catalog.bulk_update_deals,
            ids,
            is_active=is_active,
            is_featured=is_featured,
        )

    async def create_category(self, caller: Caller | None, payload: CategoryCreate) -> str:
        self._authorize(caller, "create category")
        return await self._call("create category", self.catalog.create_category, payload)

    async def list_categories(self, caller: Caller | None) -> list[CategoryOut]:
        self._authorize(caller, "list categories")
        return await self._call("list categories", self.catalog.list_categories)

    async def get_category(self, caller: Caller | None, category_id: str) -> CategoryOut:
        self._authorize(caller, "get category")
        category_id = _require_id(category_id)
        return await self._call(f"get category {category_id}", self.catalog.get_category, category_id)

    async def update_category(self, caller: Caller | None, category_id: str, payload: CategoryCreate) -> None:
        self._authorize(caller, "update category")
        category_id = _require_id(category_id)
        await self._call(f"update category {category_id}", self.catalog.update_category, category_id, payload)

    async def update_category_order(self, caller: Caller | None, category_id: str, order: int) -> None:
        self._authorize(caller, "reorder category")
        category_id = _require_id(category_id)
        await self._call(
            f"reorder category {category_id}",
            self.catalog.update_category_order,
            category_id,
            order,
        )

    async def delete_category(self, caller: Caller | None, category_id: str) -> None:
        self._authorize(caller, "delete category")
        category_id = _require_id(category_id)
        await self._call(f"delete category {category_id}", self.catalog.delete_category, category_id)

    # ============================================================
    # Internals
    # ============================================================

    @staticmethod
    def _authorize(caller: Caller | None, action: str) -> None:
        if caller is None:
            raise UnauthorizedError()
        if not caller.is_admin:
            logger.warning(f"[gateway] non-admin {caller.uid} attempted {action}")
            raise UnauthorizedError("Admin role required", forbidden=True)

    @staticmethod
    async def _call(action: str, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except ApprovalError:
            raise
        except Exception:
            logger.exception(f"[gateway] unexpected error during {action}")
            raise PersistenceFailedError()


def _require_id(entity_id: str | None) -> str:
    cleaned = (entity_id or "").strip()
    if not cleaned:
        raise ValidationFailedError.for_field("id", "Id is required")
    return cleaned
