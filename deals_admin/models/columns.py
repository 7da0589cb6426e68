"""Column helpers shared by the review models."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Enum

from deals_admin.services.lifecycle import ReviewStatus


def generate_entity_id() -> str:
    """Generate opaque entity ID."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def status_column_type() -> Enum:
    """Status stored as its lowercase value in a plain string column."""
    return Enum(
        ReviewStatus,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )
