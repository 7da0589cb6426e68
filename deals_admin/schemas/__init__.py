"""Pydantic schemas for API request/response validation."""

from deals_admin.schemas.catalog import (
    BulkUpdateRequest,
    CategoryCreate,
    CategoryOrderRequest,
    CategoryOut,
    DealCreate,
    DealOut,
    DealUpdate,
    RetailerCreate,
    RetailerOut,
    RetailerUpdate,
    ToggleRequest,
)
from deals_admin.schemas.common import ActionResponse, ErrorDetail, ErrorResponse
from deals_admin.schemas.review import (
    ApprovedItem,
    ApproveRequest,
    ClearedItem,
    FlaggedDeal,
    PendingRetailer,
    RejectedItem,
    RejectRequest,
    ReviewStats,
    RiskFlagOut,
    TransitionResponse,
)

__all__ = [
    "ActionResponse",
    "ApprovedItem",
    "ApproveRequest",
    "BulkUpdateRequest",
    "CategoryCreate",
    "CategoryOrderRequest",
    "CategoryOut",
    "ClearedItem",
    "DealCreate",
    "DealOut",
    "DealUpdate",
    "ErrorDetail",
    "ErrorResponse",
    "FlaggedDeal",
    "PendingRetailer",
    "RejectedItem",
    "RejectRequest",
    "RetailerCreate",
    "RetailerOut",
    "RetailerUpdate",
    "ReviewStats",
    "RiskFlagOut",
    "TransitionResponse",
    "ToggleRequest",
]
