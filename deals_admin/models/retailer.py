"""Retailer model.

One row per retailer, whether it arrived as an application (pending) or was
created directly by an admin (approved). Approved retailers double as catalog
entries that deals reference by slug.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from deals_admin.models.columns import generate_entity_id, status_column_type, utcnow
from deals_admin.services.lifecycle import ReviewStatus
from deals_admin.stores.postgres import Base


class Retailer(Base):
    """Retailer application / catalog retailer."""

    __tablename__ = "retailers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_entity_id)

    # Identity
    name: Mapped[str] = mapped_column(String(200), index=True)
    slug: Mapped[str | None] = mapped_column(String(200), unique=True)
    entity_type: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100))
    year_established: Mapped[int | None] = mapped_column()

    # Contact
    email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(50))
    website_url: Mapped[str | None] = mapped_column(Text)

    # Inventory profile
    volume: Mapped[str | None] = mapped_column(String(100))
    categories: Mapped[list[str]] = mapped_column(JSON, default=list)
    conditions: Mapped[list[str]] = mapped_column(JSON, default=list)
    discount_range: Mapped[str | None] = mapped_column(String(100))
    storage_location: Mapped[str | None] = mapped_column(String(200))

    # Controls
    min_margin: Mapped[str | None] = mapped_column(String(50))
    allow_dynamic_markdowns: Mapped[bool] = mapped_column(default=False)
    allow_flash_sales: Mapped[bool] = mapped_column(default=False)

    # Catalog
    logo_url: Mapped[str | None] = mapped_column(Text)
    commission: Mapped[str | None] = mapped_column(String(50))
    affiliate_id: Mapped[str | None] = mapped_column(String(200))
    deal_count: Mapped[int] = mapped_column(default=0)

    # Lifecycle
    status: Mapped[ReviewStatus] = mapped_column(
        status_column_type(),
        default=ReviewStatus.PENDING,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(default=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[str | None] = mapped_column(String(64))
    approval_notes: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    # Link to the applicant account (lookup key, not ownership)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)

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
        return f"<Retailer {self.name} ({self.status.value})>"
