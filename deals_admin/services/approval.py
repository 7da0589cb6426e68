"""Approval state machine for retailer applications and deals.

Flow for approve/reject:
1. Load the current status and check the transition table (lifecycle.py)
2. Conditional UPDATE ... WHERE id = :id AND status = :observed
3. If another admin won the race, re-read once and re-decide
4. Commit, then run secondary effects (profile cascade, cache invalidation)

Secondary effects are best-effort: each returns a SecondaryEffectResult that
is logged and attached to the outcome, and never fails the transition.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any

import redis.asyncio as redis
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from deals_admin.errors import (
    ApprovalError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceFailedError,
    ValidationFailedError,
)
from deals_admin.models import Deal, Retailer, UserProfile
from deals_admin.models.columns import utcnow
from deals_admin.services.lifecycle import EntityKind, ReviewStatus, TransitionAction, plan_transition
from deals_admin.stores.postgres import Database
from deals_admin.stores.redis import Cache, review_stats_key

logger = logging.getLogger("uvicorn.error")

DEFAULT_APPROVAL_NOTES = "Approved by admin review"

# Conditional update attempts before giving up on a contended row
_MAX_ATTEMPTS = 2

MODELS: dict[EntityKind, type[Retailer] | type[Deal]] = {
    EntityKind.RETAILER: Retailer,
    EntityKind.DEAL: Deal,
}


@dataclass(frozen=True)
class SecondaryEffectResult:
    """Outcome of one post-commit side effect."""

    name: str
    ok: bool
    error: str | None = None


@dataclass
class TransitionOutcome:
    """Result of approve/reject."""

    kind: EntityKind
    entity_id: str
    status: ReviewStatus
    changed: bool
    previous_status: ReviewStatus | None = None
    secondary_effects: list[SecondaryEffectResult] = field(default_factory=list)


class ApprovalStateMachine:
    """Applies review decisions to retailers and deals."""

    def __init__(
        self,
        db: Database,
        cache: Cache | None = None,
        *,
        rejection_reason_min_length: int = 1,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.cache = cache or Cache()
        self.rejection_reason_min_length = max(1, rejection_reason_min_length)
        self.clock = clock

    # ============================================================
    # Transitions
    # ============================================================

    async def approve(
        self,
        kind: EntityKind,
        entity_id: str,
        acting_admin_id: str,
        notes: str | None = None,
    ) -> TransitionOutcome:
        """Approve an entity: activate it and record the approving admin.

        Re-approving an approved entity is a no-op success.
        """
        now = self.clock()
        values = {
            "status": ReviewStatus.APPROVED,
            "is_active": True,
            "approved_at": now,
            "approved_by": acting_admin_id,
            "approval_notes": (notes or "").strip() or DEFAULT_APPROVAL_NOTES,
            "rejection_reason": None,
            "updated_at": now,
        }
        return await self._transition(kind, entity_id, ReviewStatus.APPROVED, values, acting_admin_id)

    async def reject(
        self,
        kind: EntityKind,
        entity_id: str,
        acting_admin_id: str,
        reason: str | None,
    ) -> TransitionOutcome:
        """Reject an entity: deactivate it and record the reason.

        `approved_by` records the rejecting admin. Re-rejecting a rejected
        entity is a no-op success and keeps the original reason.

        Raises:
            ValidationFailedError: If the reason is missing or too short.
        """
        cleaned = self.clean_reason(reason)
        now = self.clock()
        values = {
            "status": ReviewStatus.REJECTED,
            "is_active": False,
            "approved_at": None,
            "approved_by": acting_admin_id,
            "rejection_reason": cleaned,
            "updated_at": now,
        }
        return await self._transition(kind, entity_id, ReviewStatus.REJECTED, values, acting_admin_id)

    def clean_reason(self, reason: str | None) -> str:
        """Strip and check a rejection reason."""
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationFailedError.for_field("reason", "Rejection reason is required")
        if len(cleaned) < self.rejection_reason_min_length:
            raise ValidationFailedError.for_field(
                "reason",
                f"Rejection reason must be at least {self.rejection_reason_min_length} characters",
            )
        return cleaned

    async def create_approved(
        self,
        kind: EntityKind,
        values: dict[str, Any],
        creator_admin_id: str,
    ) -> str:
        """Insert an admin-created entity directly in the approved state.

        Args:
            kind: Entity kind.
            values: Column values for the new row (already validated).
            creator_admin_id: Admin recorded as the approver.

        Returns:
            The new entity id.

        Raises:
            ConflictError: If a unique column (slug) is already taken.
            PersistenceFailedError: On any other store failure.
        """
        model = MODELS[kind]
        now = self.clock()
        row = model(
            **values,
            status=ReviewStatus.APPROVED,
            is_active=True,
            approved_at=now,
            approved_by=creator_admin_id,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self.db.session() as session:
                session.add(row)
                await session.flush()
                entity_id = row.id
        except IntegrityError:
            logger.warning(f"[approval] create {kind.value} conflict slug={values.get('slug')}")
            raise ConflictError(
                "This slug is already in use",
                detail={"errors": {"slug": "This slug is already in use"}},
            )
        except SQLAlchemyError:
            logger.exception(f"[approval] create {kind.value} failed")
            raise PersistenceFailedError(f"Failed to create {kind.value}")

        logger.info(f"[approval] created approved {kind.value} id={entity_id} by={creator_admin_id}")
        await self.invalidate_stats(kind)
        return entity_id

    async def _transition(
        self,
        kind: EntityKind,
        entity_id: str,
        target: ReviewStatus,
        values: dict[str, Any],
        acting_admin_id: str,
    ) -> TransitionOutcome:
        model = MODELS[kind]
        user_col = Retailer.user_id if kind is EntityKind.RETAILER else None
        columns = [model.status] + ([user_col] if user_col is not None else [])

        outcome: TransitionOutcome | None = None
        user_id: str | None = None
        try:
            async with self.db.session() as session:
                for _ in range(_MAX_ATTEMPTS):
                    row = (await session.execute(select(*columns).where(model.id == entity_id))).first()
                    if row is None:
                        raise NotFoundError(kind.value, entity_id)

                    plan = plan_transition(row[0], target)
                    user_id = row[1] if user_col is not None else None

                    if plan.action is TransitionAction.NOOP:
                        outcome = TransitionOutcome(kind, entity_id, target, changed=False, previous_status=plan.current)
                        break
                    if plan.action is TransitionAction.FORBIDDEN:
                        raise InvalidTransitionError(kind.value, entity_id, plan.current.value, target.value)

                    result = await session.execute(
                        update(model)
                        .where(model.id == entity_id)
                        .where(model.status == plan.current)
                        .values(**values)
                    )
                    if result.rowcount == 1:
                        outcome = TransitionOutcome(kind, entity_id, target, changed=True, previous_status=plan.current)
                        break
                    logger.info(
                        f"[approval] {kind.value} {entity_id} changed under us (expected {plan.current.value}), re-reading"
                    )
        except ApprovalError:
            raise
        except SQLAlchemyError:
            logger.exception(f"[approval] {kind.value} {entity_id} -> {target.value} failed")
            verb = "approve" if target is ReviewStatus.APPROVED else "reject"
            raise PersistenceFailedError(f"Failed to {verb} {kind.value}")

        if outcome is None:
            raise ConflictError(
                f"{kind.value.capitalize()} is being reviewed concurrently, please retry",
                detail={"kind": kind.value, "id": entity_id},
            )

        if outcome.changed:
            logger.info(
                f"[approval] {kind.value} {entity_id} {outcome.previous_status.value} -> {target.value} by={acting_admin_id}"
            )
            # TODO: send the approval/rejection email to the retailer once a mail provider is wired in.
            outcome.secondary_effects = await self._run_secondary_effects(kind, target, user_id)
        else:
            logger.info(f"[approval] {kind.value} {entity_id} already {target.value}, nothing to do")

        return outcome

    # ============================================================
    # Secondary effects (post-commit, best-effort)
    # ============================================================

    async def _run_secondary_effects(
        self,
        kind: EntityKind,
        status: ReviewStatus,
        user_id: str | None,
    ) -> list[SecondaryEffectResult]:
        results: list[SecondaryEffectResult] = []
        if kind is EntityKind.RETAILER and user_id:
            results.append(await self._cascade_profile_status(user_id, status))
        results.append(await self.invalidate_stats(kind))

        for r in results:
            if not r.ok:
                logger.warning(f"[approval] secondary effect {r.name} failed: {r.error}")
        return results

    async def _cascade_profile_status(self, user_id: str, status: ReviewStatus) -> SecondaryEffectResult:
        """Mirror the retailer status onto the linked user profile."""
        name = "profile_status"
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    update(UserProfile)
                    .where(UserProfile.id == user_id)
                    .values(retailer_status=status.value, updated_at=self.clock())
                )
                matched = result.rowcount
        except SQLAlchemyError as e:
            logger.warning(f"[approval] profile cascade failed user_id={user_id}", exc_info=True)
            return SecondaryEffectResult(name, ok=False, error=type(e).__name__)
        if matched == 0:
            return SecondaryEffectResult(name, ok=False, error=f"profile {user_id} not found")
        return SecondaryEffectResult(name, ok=True)

    async def invalidate_stats(self, kind: EntityKind) -> SecondaryEffectResult:
        """Drop the cached review stats for `kind` so the next read recomputes them."""
        name = "stats_cache"
        try:
            await self.cache.delete(review_stats_key(kind.value))
        except redis.RedisError as e:
            return SecondaryEffectResult(name, ok=False, error=type(e).__name__)
        return SecondaryEffectResult(name, ok=True)
