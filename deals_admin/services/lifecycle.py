"""Review lifecycle states and the transition table.

Retailer applications and submitted deals share one lifecycle:

    pending --approve--> approved
    pending --reject---> rejected
    approved --reject--> rejected   (revocation)
    rejected --approve-> approved   (re-review)

Repeating the current decision (approve an approved entity, reject a rejected
one) is a no-op success. Nothing moves an entity back to pending.

This module is pure: no I/O, no ORM imports.
"""

from dataclasses import dataclass
from enum import Enum


class ReviewStatus(str, Enum):
    """Lifecycle state of a retailer application or deal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EntityKind(str, Enum):
    """Entity types that go through review."""

    RETAILER = "retailer"
    DEAL = "deal"


class TransitionAction(Enum):
    """What the state machine should do for a (current, target) pair."""

    APPLY = "apply"
    NOOP = "noop"
    FORBIDDEN = "forbidden"


# (current, target) -> action. Pairs not listed are forbidden.
TRANSITIONS: dict[tuple[ReviewStatus, ReviewStatus], TransitionAction] = {
    (ReviewStatus.PENDING, ReviewStatus.APPROVED): TransitionAction.APPLY,
    (ReviewStatus.PENDING, ReviewStatus.REJECTED): TransitionAction.APPLY,
    (ReviewStatus.APPROVED, ReviewStatus.APPROVED): TransitionAction.NOOP,
    (ReviewStatus.APPROVED, ReviewStatus.REJECTED): TransitionAction.APPLY,
    (ReviewStatus.REJECTED, ReviewStatus.APPROVED): TransitionAction.APPLY,
    (ReviewStatus.REJECTED, ReviewStatus.REJECTED): TransitionAction.NOOP,
}


@dataclass(frozen=True)
class TransitionPlan:
    """Decision for one requested transition."""

    current: ReviewStatus
    target: ReviewStatus
    action: TransitionAction

    @property
    def allowed(self) -> bool:
        return self.action is not TransitionAction.FORBIDDEN


def plan_transition(current: ReviewStatus | str, target: ReviewStatus | str) -> TransitionPlan:
    """Look up the action for moving from `current` to `target`.

    Args:
        current: Status currently stored for the entity.
        target: Status requested by the admin.

    Returns:
        TransitionPlan; `action` is FORBIDDEN for pairs outside the table.

    Raises:
        ValueError: If either value is not a known status.
    """
    cur = ReviewStatus(current)
    tgt = ReviewStatus(target)
    action = TRANSITIONS.get((cur, tgt), TransitionAction.FORBIDDEN)
    return TransitionPlan(current=cur, target=tgt, action=action)
