"""Deal model.

A discounted product listing. Retailer-submitted deals start pending and are
reviewed in the flagged inventory queue; admin-created deals start approved.
Prices are integer minor currency units (cents).
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from deals_admin.models.columns import generate_entity_id, status_column_type, utcnow
from deals_admin.services.lifecycle import ReviewStatus
from deals_admin.stores.postgres import Base


class Deal(Base):
    """Deal listing under review or live."""

    __tablename__ = "deals"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_entity_id)

    # Identity
    product_name: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    sku: Mapped[str | None] = mapped_column(String(100))
    meta_description: Mapped[str | None] = mapped_column(Text)

    # Commerce (cents)
    price: Mapped[int] = mapped_column()
    original_price: Mapped[int] = mapped_column()
    savings_percentage: Mapped[int] = mapped_column(default=0)
    quantity: Mapped[int | None] = mapped_column()

    # Catalog references by slug
    category: Mapped[str | None] = mapped_column(String(200), index=True)
    retailer: Mapped[str | None] = mapped_column(String(200), index=True)

    # URLs
    deal_url: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(Text)

    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Lifecycle
    status: Mapped[ReviewStatus] = mapped_column(
        status_column_type(),
        default=ReviewStatus.PENDING,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(default=False)
    is_featured: Mapped[bool] = mapped_column(default=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    approved_by: Mapped[str | None] = mapped_column(String(64))
    approval_notes: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(String(320))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Deal {self.slug} {self.price}c ({self.status.value})>"
