from sqlalchemy import Column, String, Boolean, ForeignKey, Table, Enum as SQLEnum
from sqlalchemy.orm import relationship
from app.core.constants import AccessFor
from app.database import Base
from app.models.mixins import IdMixin, TimestampMixin, SoftDeleteMixin

# Association table for many-to-many relationship between roles and permissions
role_permission = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Role(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Role model - a named set of permissions granted to users."""

    __tablename__ = "roles"

    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    access_for = Column(SQLEnum(AccessFor), nullable=False, default=AccessFor.USER)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    permissions = relationship("Permission", secondary=role_permission, order_by="Permission.code")
