import json
import logging
from typing import Any, List, Mapping, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.constants import MAINTENANCE_SETTING, SettingDataType
from app.core.pagination import Paging, SortType
from app.models.setting import Setting
from app.repositories.base import FilterCriteria
from app.repositories.setting import SettingRepository

logger = logging.getLogger(__name__)


class SettingService:
    """
    Service for runtime settings.

    Values are stored as strings and decoded by declared type:

        BOOLEAN          "true" / "false"
        NUMBER           decimal text, int when integral
        STRING           as is
        ARRAY_OF_STRING  JSON array
    """

    def __init__(self, repository: SettingRepository):
        self.repository = repository

    @staticmethod
    def check_value(setting_type: SettingDataType, value: Any) -> bool:
        """Whether ``value`` is acceptable for a setting of ``setting_type``."""
        if setting_type == SettingDataType.BOOLEAN:
            return isinstance(value, bool)
        if setting_type == SettingDataType.NUMBER:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if setting_type == SettingDataType.STRING:
            return isinstance(value, str)
        if setting_type == SettingDataType.ARRAY_OF_STRING:
            return isinstance(value, list) and all(isinstance(item, str) for item in value)
        return False

    @staticmethod
    def encode_value(setting_type: SettingDataType, value: Any) -> str:
        """
        Raises:
            ValueError if the value does not match the type
        """
        if not SettingService.check_value(setting_type, value):
            raise ValueError(f"Value is not a valid {setting_type.value}")
        if setting_type == SettingDataType.BOOLEAN:
            return "true" if value else "false"
        if setting_type == SettingDataType.ARRAY_OF_STRING:
            return json.dumps(value)
        return str(value)

    @staticmethod
    def get_value(setting: Setting) -> Any:
        """Decode a stored value according to the setting type."""
        if setting.type == SettingDataType.BOOLEAN:
            return setting.value == "true"
        if setting.type == SettingDataType.NUMBER:
            number = float(setting.value)
            return int(number) if number.is_integer() else number
        if setting.type == SettingDataType.ARRAY_OF_STRING:
            return json.loads(setting.value)
        return setting.value

    async def find_all(
        self,
        find: Optional[FilterCriteria] = None,
        paging: Optional[Paging] = None,
        sort: Optional[Mapping[str, SortType]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Setting]:
        return await self.repository.find_all(find, paging=paging, sort=sort, session=session)

    async def find_one_by_id(self, setting_id: str, session: Optional[AsyncSession] = None) -> Optional[Setting]:
        return await self.repository.find_one_by_id(setting_id, session=session)

    async def find_one_by_name(self, name: str, session: Optional[AsyncSession] = None) -> Optional[Setting]:
        return await self.repository.find_one({"name": name}, session=session)

    async def get_total(self, find: Optional[FilterCriteria] = None, session: Optional[AsyncSession] = None) -> int:
        return await self.repository.get_total(find, session=session)

    async def create(
        self,
        name: str,
        setting_type: SettingDataType,
        value: Any,
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Setting:
        return await self.repository.create(
            {
                "name": name,
                "description": description,
                "type": setting_type,
                "value": self.encode_value(setting_type, value),
            },
            session=session
        )

    async def update_one_by_id(
        self,
        setting_id: str,
        setting_type: SettingDataType,
        value: Any,
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[Setting]:
        """
        Store a new value, keeping the description unless one is given.

        Raises:
            ValueError if the value does not match the setting type
        """
        data = {"value": self.encode_value(setting_type, value)}
        if description is not None:
            data["description"] = description

        updated = await self.repository.update_one_by_id(setting_id, data, session=session)
        if updated:
            logger.info(f"Setting updated: {updated.name}")
        return updated

    async def delete_one_by_id(self, setting_id: str, session: Optional[AsyncSession] = None) -> Optional[Setting]:
        return await self.repository.delete_one_by_id(setting_id, session=session)

    async def get_maintenance(self, session: Optional[AsyncSession] = None) -> bool:
        """Current maintenance flag; a missing setting means not in maintenance."""
        setting = await self.find_one_by_name(MAINTENANCE_SETTING, session=session)
        if setting is None or setting.type != SettingDataType.BOOLEAN:
            return False
        return self.get_value(setting)
