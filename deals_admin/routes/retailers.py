"""Retailer application review and catalog endpoints."""

from fastapi import APIRouter, Depends

from deals_admin.routes.deps import get_current_admin, get_gateway
from deals_admin.routes.responses import transition_response
from deals_admin.schemas import (
    ActionResponse,
    ApprovedItem,
    ApproveRequest,
    PendingRetailer,
    RejectedItem,
    RejectRequest,
    RetailerCreate,
    RetailerOut,
    RetailerUpdate,
    ReviewStats,
    TransitionResponse,
)
from deals_admin.services.auth import Caller
from deals_admin.services.gateway import ActionGateway
from deals_admin.services.lifecycle import EntityKind

router = APIRouter()


@router.get("/pending", response_model=list[PendingRetailer])
async def list_pending_retailers(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[PendingRetailer]:
    """Pending retailer applications, newest first, with risk flags."""
    return await gateway.list_pending(caller, EntityKind.RETAILER)


@router.get("/approved", response_model=list[ApprovedItem])
async def list_approved_retailers(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[ApprovedItem]:
    return await gateway.list_approved(caller, EntityKind.RETAILER)


@router.get("/rejected", response_model=list[RejectedItem])
async def list_rejected_retailers(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[RejectedItem]:
    return await gateway.list_rejected(caller, EntityKind.RETAILER)


@router.get("/stats", response_model=ReviewStats)
async def retailer_stats(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ReviewStats:
    return await gateway.stats(caller, EntityKind.RETAILER)


@router.post("", response_model=ActionResponse, status_code=201)
async def create_retailer(
    body: RetailerCreate,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    """Create a retailer directly in the approved state."""
    retailer_id = await gateway.create_retailer(caller, body)
    return ActionResponse(message="Retailer created successfully", data={"id": retailer_id})


@router.post("/{retailer_id}/approve", response_model=TransitionResponse)
async def approve_retailer(
    retailer_id: str,
    body: ApproveRequest | None = None,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> TransitionResponse:
    """Approve a retailer application.

    Marks it active, records the approving admin and mirrors the status onto
    the applicant's profile.
    """
    outcome = await gateway.approve(caller, EntityKind.RETAILER, retailer_id, body.notes if body else None)
    return transition_response(outcome)


@router.post("/{retailer_id}/reject", response_model=TransitionResponse)
async def reject_retailer(
    retailer_id: str,
    body: RejectRequest | None = None,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> TransitionResponse:
    """Reject a retailer application. Body: {"reason": "..."} (required)."""
    outcome = await gateway.reject(caller, EntityKind.RETAILER, retailer_id, body.reason if body else None)
    return transition_response(outcome)


@router.delete("/{retailer_id}", response_model=ActionResponse)
async def delete_retailer(
    retailer_id: str,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    """Delete a retailer. Refused while deals still reference it."""
    await gateway.delete_retailer(caller, retailer_id)
    return ActionResponse(message="Retailer deleted successfully")


@router.get("", response_model=list[RetailerOut])
async def list_retailers(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[RetailerOut]:
    """All retailers ordered by name, regardless of review status."""
    return await gateway.list_retailers(caller)


@router.get("/{retailer_id}", response_model=RetailerOut)
async def get_retailer(
    retailer_id: str,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> RetailerOut:
    return await gateway.get_retailer(caller, retailer_id)


@router.put("/{retailer_id}", response_model=ActionResponse)
async def update_retailer(
    retailer_id: str,
    body: RetailerUpdate,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    """Replace a retailer's catalog fields. A new slug is carried over to its deals."""
    await gateway.update_retailer(caller, retailer_id, body)
    return ActionResponse(message="Retailer updated successfully")
