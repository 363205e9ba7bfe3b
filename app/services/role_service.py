import logging
from typing import List, Mapping, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.constants import AccessFor
from app.core.pagination import Paging, SortType
from app.models.permission import Permission
from app.models.role import Role
from app.repositories.base import FilterCriteria
from app.repositories.permission import PermissionRepository
from app.repositories.role import RoleRepository

logger = logging.getLogger(__name__)

SUPER_ADMIN_ROLE_NAME = "super-admin"


class RoleService:
    """Service for roles and the permissions they grant."""

    def __init__(self, repository: RoleRepository, permission_repository: PermissionRepository):
        self.repository = repository
        self.permission_repository = permission_repository

    async def _resolve_permissions(
        self,
        permission_ids: Sequence[str],
        session: Optional[AsyncSession] = None
    ) -> List[Permission]:
        """Live permissions among ``permission_ids``; unknown or deleted ids are dropped."""
        if not permission_ids:
            return []
        return await self.permission_repository.find_all({"id": list(set(permission_ids))}, session=session)

    async def find_all(
        self,
        find: Optional[FilterCriteria] = None,
        paging: Optional[Paging] = None,
        sort: Optional[Mapping[str, SortType]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[Role]:
        return await self.repository.find_all(find, paging=paging, sort=sort, join=True, session=session)

    async def find_one_by_id(
        self,
        role_id: str,
        join: bool = True,
        session: Optional[AsyncSession] = None
    ) -> Optional[Role]:
        return await self.repository.find_one_by_id(role_id, join=join, session=session)

    async def find_one(self, find: FilterCriteria, session: Optional[AsyncSession] = None) -> Optional[Role]:
        return await self.repository.find_one(find, join=True, session=session)

    async def find_one_by_name(self, name: str, session: Optional[AsyncSession] = None) -> Optional[Role]:
        return await self.repository.find_one({"name": name}, join=True, session=session)

    async def get_total(self, find: Optional[FilterCriteria] = None, session: Optional[AsyncSession] = None) -> int:
        return await self.repository.get_total(find, session=session)

    async def exist_by_name(
        self,
        name: str,
        exclude_id: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        return await self.repository.exists({"name": name}, exclude_id=exclude_id, session=session)

    async def create(
        self,
        name: str,
        access_for: AccessFor,
        permission_ids: Sequence[str] = (),
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Role:
        """
        Create an active role.

        Args:
            permission_ids: Permission ids; only live permissions are attached
        """
        permissions = await self._resolve_permissions(permission_ids, session=session)
        role = await self.repository.create(
            {
                "name": name,
                "description": description,
                "access_for": access_for,
                "is_active": True,
                "permissions": permissions,
            },
            session=session
        )
        logger.info(f"Role created: {role.name} ({role.access_for.value}, {len(permissions)} permission(s))")
        return role

    async def create_super_admin(
        self,
        name: str = SUPER_ADMIN_ROLE_NAME,
        session: Optional[AsyncSession] = None
    ) -> Role:
        """Create a SUPER_ADMIN role holding every live permission."""
        permissions = await self.permission_repository.find_all(session=session)
        return await self.create(
            name=name,
            access_for=AccessFor.SUPER_ADMIN,
            permission_ids=[permission.id for permission in permissions],
            description="Super admin role",
            session=session
        )

    async def update(
        self,
        role_id: str,
        name: str,
        access_for: AccessFor,
        description: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> Optional[Role]:
        return await self.repository.update_one_by_id(
            role_id,
            {"name": name, "description": description, "access_for": access_for},
            join=True,
            session=session
        )

    async def update_permissions(
        self,
        role_id: str,
        permission_ids: Sequence[str],
        session: Optional[AsyncSession] = None
    ) -> Optional[Role]:
        permissions = await self._resolve_permissions(permission_ids, session=session)
        return await self.repository.update_permissions(
            role_id,
            [permission.id for permission in permissions],
            session=session
        )

    async def active(self, role_id: str, session: Optional[AsyncSession] = None) -> Optional[Role]:
        return await self.repository.update_one_by_id(role_id, {"is_active": True}, join=True, session=session)

    async def inactive(self, role_id: str, session: Optional[AsyncSession] = None) -> Optional[Role]:
        return await self.repository.update_one_by_id(role_id, {"is_active": False}, join=True, session=session)

    async def delete_one_by_id(self, role_id: str, session: Optional[AsyncSession] = None) -> Optional[Role]:
        return await self.repository.delete_one_by_id(role_id, join=True, session=session)
