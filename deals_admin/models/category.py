"""Category model.

Catalog category that deals reference by slug. `deal_count` is a denormalized
counter recomputed by the catalog layer; deletion is blocked while any deal
references the slug.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from deals_admin.models.columns import generate_entity_id, utcnow
from deals_admin.stores.postgres import Base


class Category(Base):
    """Deal category."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_entity_id)
    name: Mapped[str] = mapped_column(String(100))
    slug: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    icon: Mapped[str | None] = mapped_column(String(100))
    order: Mapped[int] = mapped_column(default=0)
    is_active: Mapped[bool] = mapped_column(default=True)
    deal_count: Mapped[int] = mapped_column(default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category {self.slug}>"
