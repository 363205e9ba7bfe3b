from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.mixins import IdMixin, TimestampMixin, SoftDeleteMixin


class User(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """User model - accounts that log in with username and password."""

    __tablename__ = "users"

    username = Column(String(100), unique=True, nullable=False, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), unique=True, nullable=False, index=True)
    mobile_number = Column(String(20), unique=True, nullable=True, index=True)
    password = Column(String, nullable=False)  # bcrypt hash
    password_expired = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    role_id = Column(String(36), ForeignKey("roles.id"), nullable=False, index=True)

    # Relationships
    role = relationship("Role")
