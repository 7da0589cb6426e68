"""Schemas for the review queues and approve/reject actions."""

from datetime import datetime

from pydantic import BaseModel, Field

from deals_admin.services.risk import RiskLevel, Severity


class ApproveRequest(BaseModel):
    """Body for POST .../{id}/approve (optional)."""

    notes: str | None = None


class RejectRequest(BaseModel):
    """Body for POST .../{id}/reject.

    `reason` is optional at the schema level so a missing reason is reported
    as VALIDATION_FAILED by the gateway instead of a generic 422.
    """

    reason: str | None = None


class RiskFlagOut(BaseModel):
    text: str
    severity: Severity


class TransitionResponse(BaseModel):
    """Response from approve/reject."""

    success: bool = True
    message: str
    id: str
    status: str
    changed: bool


class PendingRetailer(BaseModel):
    """A retailer application awaiting review."""

    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    website_url: str | None = Field(alias="websiteUrl", default=None)
    entity_type: str | None = Field(alias="entityType", default=None)
    state: str | None = None
    year_established: int | None = Field(alias="yearEstablished", default=None)
    volume: str | None = None
    categories: list[str] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    discount_range: str | None = Field(alias="discountRange", default=None)
    storage_location: str | None = Field(alias="storageLocation", default=None)
    min_margin: str | None = Field(alias="minMargin", default=None)
    allow_dynamic_markdowns: bool = Field(alias="allowDynamicMarkdowns", default=False)
    allow_flash_sales: bool = Field(alias="allowFlashSales", default=False)
    created_at: datetime | None = Field(alias="createdAt", default=None)
    risk_flags: list[RiskFlagOut] = Field(alias="riskFlags", default_factory=list)

    model_config = {"populate_by_name": True}


class FlaggedDeal(BaseModel):
    """A submitted deal in the flagged inventory queue."""

    id: str
    sku: str
    title: str
    description: str | None = None
    category: str
    retailer_name: str = Field(alias="retailerName")
    retailer_status: str = Field(alias="retailerStatus")
    original_price: int = Field(alias="originalPrice")
    current_price: int = Field(alias="currentPrice")
    quantity: int
    deal_url: str | None = Field(alias="dealUrl", default=None)
    image_url: str | None = Field(alias="imageUrl", default=None)
    discount: int
    risk_level: RiskLevel = Field(alias="riskLevel")
    flags: list[RiskFlagOut] = Field(default_factory=list)
    flagged_at: datetime | None = Field(alias="flaggedAt", default=None)
    flag_notes: str = Field(alias="flagNotes")

    model_config = {"populate_by_name": True}


class ApprovedItem(BaseModel):
    """An approved retailer or deal with the approving admin resolved."""

    id: str
    name: str
    email: str | None = None
    is_active: bool = Field(alias="isActive")
    approved_at: datetime | None = Field(alias="approvedAt", default=None)
    approved_by: str | None = Field(alias="approvedBy", default=None)
    approved_by_display: str = Field(alias="approvedByDisplay")
    approval_notes: str | None = Field(alias="approvalNotes", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    model_config = {"populate_by_name": True}


class RejectedItem(BaseModel):
    """A rejected retailer or deal."""

    id: str
    name: str
    email: str | None = None
    rejection_reason: str = Field(alias="rejectionReason")
    rejected_by: str | None = Field(alias="rejectedBy", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    model_config = {"populate_by_name": True}


class ReviewStats(BaseModel):
    """Queue counts and derived review metrics."""

    pending_count: int = Field(alias="pendingCount", ge=0)
    approved_count: int = Field(alias="approvedCount", ge=0)
    rejected_count: int = Field(alias="rejectedCount", ge=0)
    approval_rate: int = Field(alias="approvalRate", ge=0, le=100)
    cleared_today: int = Field(alias="clearedToday", ge=0, default=0)
    avg_review_hours: float | None = Field(alias="avgReviewHours", default=None)

    model_config = {"populate_by_name": True}


class ClearedItem(BaseModel):
    """A recently approved entity with the flags it was reviewed under."""

    id: str
    sku: str | None = None
    title: str
    retailer_name: str | None = Field(alias="retailerName", default=None)
    original_flag: str = Field(alias="originalFlag")
    cleared_by: str = Field(alias="clearedBy")
    cleared_at: datetime | None = Field(alias="clearedAt", default=None)

    model_config = {"populate_by_name": True}
