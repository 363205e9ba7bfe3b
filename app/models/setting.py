from sqlalchemy import Column, String, Enum as SQLEnum
from app.core.constants import SettingDataType
from app.database import Base
from app.models.mixins import IdMixin, TimestampMixin, SoftDeleteMixin


class Setting(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Setting model - runtime flags stored as strings with a declared type."""

    __tablename__ = "settings"

    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    type = Column(SQLEnum(SettingDataType), nullable=False)
    value = Column(String, nullable=False)  # decoded by SettingService.get_value
