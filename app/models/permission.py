from sqlalchemy import Column, String, Boolean, Enum as SQLEnum
from app.core.constants import PermissionGroup
from app.database import Base
from app.models.mixins import IdMixin, TimestampMixin, SoftDeleteMixin


class Permission(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Permission model - a code checked by the admin guards."""

    __tablename__ = "permissions"

    code = Column(String(50), unique=True, nullable=False, index=True)  # e.g., "USER_READ"
    name = Column(String(100), nullable=False)
    description = Column(String, nullable=True)
    group = Column(SQLEnum(PermissionGroup), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
