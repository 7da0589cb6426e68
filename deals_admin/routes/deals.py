"""Deal inventory review and catalog endpoints."""

from fastapi import APIRouter, Depends, Query

from deals_admin.routes.deps import get_current_admin, get_gateway
from deals_admin.routes.responses import transition_response
from deals_admin.schemas import (
    ActionResponse,
    ApprovedItem,
    ApproveRequest,
    BulkUpdateRequest,
    ClearedItem,
    DealCreate,
    DealOut,
    DealUpdate,
    FlaggedDeal,
    RejectedItem,
    RejectRequest,
    ReviewStats,
    ToggleRequest,
    TransitionResponse,
)
from deals_admin.services.auth import Caller
from deals_admin.services.gateway import ActionGateway
from deals_admin.services.lifecycle import EntityKind

router = APIRouter()


# ============================================================
# Review queue
# ============================================================


@router.get("/pending", response_model=list[FlaggedDeal])
async def list_flagged_deals(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[FlaggedDeal]:
    """Flagged inventory: pending deals with discount and risk level."""
    return await gateway.list_pending(caller, EntityKind.DEAL)


@router.get("/approved", response_model=list[ApprovedItem])
async def list_approved_deals(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[ApprovedItem]:
    return await gateway.list_approved(caller, EntityKind.DEAL)


@router.get("/rejected", response_model=list[RejectedItem])
async def list_rejected_deals(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[RejectedItem]:
    return await gateway.list_rejected(caller, EntityKind.DEAL)


@router.get("/stats", response_model=ReviewStats)
async def deal_stats(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ReviewStats:
    return await gateway.stats(caller, EntityKind.DEAL)


@router.get("/recently-cleared", response_model=list[ClearedItem])
async def recently_cleared_deals(
    window_hours: int | None = Query(default=None, alias="windowHours", ge=1, le=24 * 30),
    limit: int | None = Query(default=None, ge=1, le=100),
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[ClearedItem]:
    """Deals approved in the trailing window, with the flags they were cleared under."""
    return await gateway.recently_cleared(caller, EntityKind.DEAL, window_hours, limit)


@router.post("/{deal_id}/approve", response_model=TransitionResponse)
async def approve_deal(
    deal_id: str,
    body: ApproveRequest | None = None,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> TransitionResponse:
    outcome = await gateway.approve(caller, EntityKind.DEAL, deal_id, body.notes if body else None)
    return transition_response(outcome)


@router.post("/{deal_id}/reject", response_model=TransitionResponse)
async def reject_deal(
    deal_id: str,
    body: RejectRequest | None = None,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> TransitionResponse:
    """Reject a deal. Body: {"reason": "..."} (required)."""
    outcome = await gateway.reject(caller, EntityKind.DEAL, deal_id, body.reason if body else None)
    return transition_response(outcome)


# ============================================================
# Catalog management
# ============================================================


@router.post("", response_model=ActionResponse, status_code=201)
async def create_deal(
    body: DealCreate,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    """Create a deal directly in the approved state."""
    deal_id = await gateway.create_deal(caller, body)
    return ActionResponse(message="Deal created successfully", data={"id": deal_id})


@router.post("/bulk", response_model=ActionResponse)
async def bulk_update_deals(
    body: BulkUpdateRequest,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    updated = await gateway.bulk_update_deals(
        caller,
        body.ids,
        is_active=body.is_active,
        is_featured=body.is_featured,
    )
    return ActionResponse(message=f"Updated {updated} deal(s)", data={"updated": updated})


@router.post("/{deal_id}/toggle", response_model=ActionResponse)
async def toggle_deal(
    deal_id: str,
    body: ToggleRequest,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    """Flip isActive or isFeatured on a deal."""
    value = await gateway.toggle_deal(caller, deal_id, body.field)
    return ActionResponse(message="Deal updated successfully", data={body.field: value})


@router.delete("/{deal_id}", response_model=ActionResponse)
async def delete_deal(
    deal_id: str,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    await gateway.delete_deal(caller, deal_id)
    return ActionResponse(message="Deal deleted successfully")


@router.get("", response_model=list[DealOut])
async def list_deals(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[DealOut]:
    """All deals, newest first, regardless of review status."""
    return await gateway.list_deals(caller)


@router.get("/{deal_id}", response_model=DealOut)
async def get_deal(
    deal_id: str,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> DealOut:
    return await gateway.get_deal(caller, deal_id)


@router.put("/{deal_id}", response_model=ActionResponse)
async def update_deal(
    deal_id: str,
    body: DealUpdate,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    """Replace a deal's catalog fields. Savings are recomputed from the prices."""
    await gateway.update_deal(caller, deal_id, body)
    return ActionResponse(message="Deal updated successfully")
