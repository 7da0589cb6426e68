"""Category endpoints."""

from fastapi import APIRouter, Depends

from deals_admin.routes.deps import get_current_admin, get_gateway
from deals_admin.schemas import ActionResponse, CategoryCreate, CategoryOrderRequest, CategoryOut
from deals_admin.services.auth import Caller
from deals_admin.services.gateway import ActionGateway

router = APIRouter()


@router.get("", response_model=list[CategoryOut])
async def list_categories(
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> list[CategoryOut]:
    """Categories ordered by display order, then name."""
    return await gateway.list_categories(caller)


@router.post("", response_model=ActionResponse, status_code=201)
async def create_category(
    body: CategoryCreate,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    category_id = await gateway.create_category(caller, body)
    return ActionResponse(message="Category created successfully", data={"id": category_id})


@router.delete("/{category_id}", response_model=ActionResponse)
async def delete_category(
    category_id: str,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    """Delete a category. Refused while deals still reference it."""
    await gateway.delete_category(caller, category_id)
    return ActionResponse(message="Category deleted successfully")


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: str,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> CategoryOut:
    return await gateway.get_category(caller, category_id)


@router.put("/{category_id}", response_model=ActionResponse)
async def update_category(
    category_id: str,
    body: CategoryCreate,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    await gateway.update_category(caller, category_id, body)
    return ActionResponse(message="Category updated successfully")


@router.patch("/{category_id}/order", response_model=ActionResponse)
async def update_category_order(
    category_id: str,
    body: CategoryOrderRequest,
    caller: Caller = Depends(get_current_admin),
    gateway: ActionGateway = Depends(get_gateway),
) -> ActionResponse:
    await gateway.update_category_order(caller, category_id, body.order)
    return ActionResponse(message="Category order updated successfully")
