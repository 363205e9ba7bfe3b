from sqlalchemy import Column, String, Boolean
from app.database import Base
from app.models.mixins import IdMixin, TimestampMixin, SoftDeleteMixin


class ApiKey(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """API key model - credentials for the X-API-KEY header."""

    __tablename__ = "api_keys"

    name = Column(String(100), nullable=False)
    description = Column(String, nullable=True)
    key = Column(String(50), unique=True, nullable=False, index=True)  # public part of the header
    hash = Column(String(64), nullable=False)  # sha256 of "key:secret"
    encryption_key = Column(String(50), nullable=False)
    passphrase = Column(String(16), nullable=False)  # AES IV
    is_active = Column(Boolean, default=True, nullable=False)
