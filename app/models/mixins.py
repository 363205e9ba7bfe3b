"""
Database model mixins for common functionality.
"""
import uuid
from sqlalchemy import Column, String, DateTime
from app.core.dates import utcnow


def generate_id() -> str:
    """Default primary key: a random UUID4 string."""
    return str(uuid.uuid4())


class IdMixin:
    """Opaque string identifier, assigned unless the caller supplies one."""
    id = Column(String(36), primary_key=True, default=generate_id)


class TimestampMixin:
    """Adds created_at and updated_at fields, kept in naive UTC."""
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class SoftDeleteMixin:
    """
    Mixin for soft delete functionality.

    Adds the deleted_at marker. A NULL marker means the record is live;
    the repository sets and clears it instead of removing rows.
    """
    deleted_at = Column(DateTime, nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
