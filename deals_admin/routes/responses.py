"""Response builders shared by the review routers."""

from deals_admin.schemas import TransitionResponse
from deals_admin.services.approval import TransitionOutcome
from deals_admin.services.lifecycle import ReviewStatus


def transition_response(outcome: TransitionOutcome) -> TransitionResponse:
    noun = outcome.kind.value.capitalize()
    verb = "approved" if outcome.status is ReviewStatus.APPROVED else "rejected"
    if outcome.changed:
        message = f"{noun} {verb} successfully"
    else:
        message = f"{noun} was already {verb}"
    return TransitionResponse(
        success=True,
        message=message,
        id=outcome.entity_id,
        status=outcome.status.value,
        changed=outcome.changed,
    )
