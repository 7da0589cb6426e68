"""User profile model.

Mirror of an auth-provider account. Holds the role used for the admin check,
the display identity shown as "approved by", and the retailer status that is
cascaded from the linked retailer application.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from deals_admin.models.columns import utcnow
from deals_admin.stores.postgres import Base

ROLE_ADMIN = "admin"
ROLE_RETAILER = "retailer"
ROLE_USER = "user"


class UserProfile(Base):
    """Account profile keyed by the auth provider uid."""

    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), index=True)
    full_name: Mapped[str | None] = mapped_column(String(200))
    role: Mapped[str] = mapped_column(String(20), default=ROLE_USER)
    retailer_status: Mapped[str | None] = mapped_column(String(20))

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
        return f"<UserProfile {self.id} ({self.role})>"
