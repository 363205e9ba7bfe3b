import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.constants import PermissionGroup
from app.core.pagination import Paging, SortType
from app.models.permission import Permission
from app.repositories.base import FilterCriteria
from app.repositories.permission import PermissionRepository

logger = logging.getLogger(__name__)


class PermissionService:
    """Service for permission lookup, activation and grouping."""

    def __init__(self, repository: PermissionRepository):
        self.repository = repository

    async def find_all(
        self,
        find: Optional[FilterCriteria] = None,
        paging: Optional[Paging] = None,
        sort: Optional[Mapping[str, SortType]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Permission]:
        return await self.repository.find_all(find, paging=paging, sort=sort, session=session)

    async def find_one_by_id(self, permission_id: str, session: Optional[AsyncSession] = None) -> Optional[Permission]:
        return await self.repository.find_one_by_id(permission_id, session=session)

    async def find_one(self, find: FilterCriteria, session: Optional[AsyncSession] = None) -> Optional[Permission]:
        return await self.repository.find_one(find, session=session)

    async def find_one_by_code(self, code: str, session: Optional[AsyncSession] = None) -> Optional[Permission]:
        return await self.repository.find_one({"code": code}, session=session)

    async def get_total(self, find: Optional[FilterCriteria] = None, session: Optional[AsyncSession] = None) -> int:
        return await self.repository.get_total(find, session=session)

    async def exist_by_code(
        self,
        code: str,
        exclude_id: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        return await self.repository.exists({"code": code}, exclude_id=exclude_id, session=session)

    async def create(
        self,
        code: str,
        name: str,
        group: PermissionGroup,
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Permission:
        permission = await self.repository.create(
            {
                "code": code,
                "name": name,
                "description": description,
                "group": group,
                "is_active": True,
            },
            session=session
        )
        logger.info(f"Permission created: {permission.code}")
        return permission

    async def create_many(self, data: Sequence[Dict[str, Any]], session: Optional[AsyncSession] = None) -> bool:
        """Bulk insert; each mapping needs ``code``, ``name`` and ``group``."""
        return await self.repository.create_many(
            [{"is_active": True, **item} for item in data],
            session=session
        )

    async def update(
        self,
        permission_id: str,
        name: str,
        group: PermissionGroup,
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[Permission]:
        return await self.repository.update_one_by_id(
            permission_id,
            {"name": name, "description": description, "group": group},
            session=session
        )

    async def active(self, permission_id: str, session: Optional[AsyncSession] = None) -> Optional[Permission]:
        return await self.repository.update_one_by_id(permission_id, {"is_active": True}, session=session)

    async def inactive(self, permission_id: str, session: Optional[AsyncSession] = None) -> Optional[Permission]:
        return await self.repository.update_one_by_id(permission_id, {"is_active": False}, session=session)

    async def delete_one_by_id(self, permission_id: str, session: Optional[AsyncSession] = None) -> Optional[Permission]:
        return await self.repository.delete_one_by_id(permission_id, session=session)

    async def group_by_groups(
        self,
        groups: Optional[Sequence[PermissionGroup]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Dict[str, Any]]:
        """
        Live permissions bucketed by group, in PermissionGroup declaration order.

        Args:
            groups: Restrict to these groups; all groups when empty

        Returns:
            ``[{"group": PermissionGroup, "permissions": [Permission, ...]}, ...]``,
            omitting groups without permissions
        """
        find = {"group": list(groups)} if groups else None
        permissions = await self.repository.find_all(find, sort={"code": SortType.ASC}, session=session)

        buckets: Dict[PermissionGroup, List[Permission]] = {}
        for permission in permissions:
            buckets.setdefault(permission.group, []).append(permission)

        return [
            {"group": group, "permissions": buckets[group]}
            for group in PermissionGroup
            if group in buckets
        ]
