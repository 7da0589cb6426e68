"""Schemas for admin-created catalog entities."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from deals_admin.services.lifecycle import ReviewStatus


class RetailerCreate(BaseModel):
    """Body for POST /api/retailers (created already approved)."""

    name: str = ""
    slug: str | None = None
    logo_url: str = Field(alias="logoUrl", default="")
    website_url: str = Field(alias="websiteUrl", default="")
    commission: str | None = None
    affiliate_id: str | None = Field(alias="affiliateId", default=None)
    email: str | None = None
    phone: str | None = None

    model_config = {"populate_by_name": True}


class DealCreate(BaseModel):
    """Body for POST /api/deals (created already approved). Prices in cents."""

    product_name: str = Field(alias="productName", default="")
    slug: str | None = None
    description: str = ""
    image_url: str = Field(alias="imageUrl", default="")
    deal_url: str = Field(alias="dealUrl", default="")
    category: str = ""
    retailer: str = ""
    price: int | None = None
    original_price: int | None = Field(alias="originalPrice", default=None)
    quantity: int | None = None
    sku: str | None = None
    expiration_date: datetime | None = Field(alias="expirationDate", default=None)
    is_featured: bool = Field(alias="isFeatured", default=False)
    meta_description: str | None = Field(alias="metaDescription", default=None)

    model_config = {"populate_by_name": True}


class CategoryCreate(BaseModel):
    """Body for POST /api/categories."""

    name: str = ""
    slug: str | None = None
    description: str | None = None
    icon: str = ""
    order: int = 0
    is_active: bool = Field(alias="isActive", default=True)

    model_config = {"populate_by_name": True}


class CategoryOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None
    order: int = 0
    is_active: bool = Field(alias="isActive")
    deal_count: int = Field(alias="dealCount")

    model_config = {"populate_by_name": True, "from_attributes": True}


class ToggleRequest(BaseModel):
    """Body for POST /api/deals/{id}/toggle."""

    field: Literal["isActive", "isFeatured"]


class BulkUpdateRequest(BaseModel):
    """Body for POST /api/deals/bulk."""

    ids: list[str] = Field(default_factory=list)
    is_active: bool | None = Field(alias="isActive", default=None)
    is_featured: bool | None = Field(alias="isFeatured", default=None)

    model_config = {"populate_by_name": True}


class RetailerUpdate(RetailerCreate):
    """Body for PUT /api/retailers/{id}. `isActive` is left unchanged when omitted."""

    is_active: bool | None = Field(alias="isActive", default=None)


class DealUpdate(DealCreate):
    """Body for PUT /api/deals/{id}. `isActive` is left unchanged when omitted."""

    is_active: bool | None = Field(alias="isActive", default=None)


class CategoryOrderRequest(BaseModel):
    """Body for PATCH /api/categories/{id}/order."""

    order: int


class RetailerOut(BaseModel):
    id: str
    name: str
    slug: str | None = None
    logo_url: str | None = Field(alias="logoUrl", default=None)
    website_url: str | None = Field(alias="websiteUrl", default=None)
    commission: str | None = None
    affiliate_id: str | None = Field(alias="affiliateId", default=None)
    email: str | None = None
    phone: str | None = None
    deal_count: int = Field(alias="dealCount", default=0)
    status: ReviewStatus
    is_active: bool = Field(alias="isActive")
    approved_at: datetime | None = Field(alias="approvedAt", default=None)
    created_at: datetime | None = Field(alias="createdAt", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    model_config = {"populate_by_name": True, "from_attributes": True}


class DealOut(BaseModel):
    """Full deal record. Prices in cents."""

    id: str
    product_name: str = Field(alias="productName")
    slug: str
    description: str = ""
    sku: str | None = None
    meta_description: str | None = Field(alias="metaDescription", default=None)
    price: int
    original_price: int = Field(alias="originalPrice")
    savings_percentage: int = Field(alias="savingsPercentage", default=0)
    quantity: int | None = None
    category: str | None = None
    retailer: str | None = None
    deal_url: str | None = Field(alias="dealUrl", default=None)
    image_url: str | None = Field(alias="imageUrl", default=None)
    expiration_date: datetime | None = Field(alias="expirationDate", default=None)
    status: ReviewStatus
    is_active: bool = Field(alias="isActive")
    is_featured: bool = Field(alias="isFeatured")
    approved_at: datetime | None = Field(alias="approvedAt", default=None)
    approved_by: str | None = Field(alias="approvedBy", default=None)
    rejection_reason: str | None = Field(alias="rejectionReason", default=None)
    created_by: str | None = Field(alias="createdBy", default=None)
    created_at: datetime | None = Field(alias="createdAt", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    model_config = {"populate_by_name": True, "from_attributes": True}
