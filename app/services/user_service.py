import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.pagination import Paging, SortType
from app.models.user import User
from app.repositories.base import FilterCriteria
from app.repositories.user import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Service for user accounts, their passwords and their token payload."""

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def _exists_any(
        self,
        find: FilterCriteria,
        exclude_id: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        """
        Check live and soft-deleted users.

        Unique columns stay reserved by soft-deleted rows, so both must be checked
        before an insert or an update can use a value.
        """
        if await self.repository.exists(find, exclude_id=exclude_id, session=session):
            return True
        return await self.repository.exists(find, with_deleted=True, exclude_id=exclude_id, session=session)

    async def find_all(
        self,
        find: Optional[FilterCriteria] = None,
        paging: Optional[Paging] = None,
        sort: Optional[Mapping[str, SortType]] = None,
        session: Optional[AsyncSession] = None
    ) -> List[User]:
        return await self.repository.find_all(find, paging=paging, sort=sort, join=True, session=session)

    async def find_one_by_id(
        self,
        user_id: str,
        join: bool = True,
        session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self.repository.find_one_by_id(user_id, join=join, session=session)

    async def find_one(self, find: FilterCriteria, session: Optional[AsyncSession] = None) -> Optional[User]:
        return await self.repository.find_one(find, join=True, session=session)

    async def find_one_by_username(
        self,
        username: str,
        join: bool = True,
        session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self.repository.find_one({"username": username}, join=join, session=session)

    async def get_total(self, find: Optional[FilterCriteria] = None, session: Optional[AsyncSession] = None) -> int:
        return await self.repository.get_total(find, session=session)

    async def exist_by_username(
        self,
        username: str,
        exclude_id: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        return await self._exists_any({"username": username}, exclude_id=exclude_id, session=session)

    async def exist_by_email(
        self,
        email: str,
        exclude_id: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        return await self._exists_any({"email": email.lower()}, exclude_id=exclude_id, session=session)

    async def exist_by_mobile_number(
        self,
        mobile_number: str,
        exclude_id: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None
    ) -> bool:
        return await self._exists_any({"mobile_number": mobile_number}, exclude_id=exclude_id, session=session)

    async def exist_by_role(self, role_id: str, session: Optional[AsyncSession] = None) -> bool:
        """True while any user, deleted or not, still references the role."""
        return await self._exists_any({"role_id": role_id}, session=session)

    async def create(
        self,
        username: str,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        password_expired: datetime,
        role_id: str,
        mobile_number: Optional[str] = None,
        session: Optional[AsyncSession] = None
    ) -> User:
        """
        Create an active user.

        Args:
            password: Already hashed password (see AuthService.create_password)
            password_expired: When the password expires
        """
        user = await self.repository.create(
            {
                "username": username,
                "first_name": first_name,
                "last_name": last_name,
                "email": email.lower(),
                "mobile_number": mobile_number,
                "password": password,
                "password_expired": password_expired,
                "role_id": role_id,
                "is_active": True,
            },
            session=session
        )
        logger.info(f"User created: {user.id}")
        return user

    async def update_name(
        self,
        user_id: str,
        first_name: str,
        last_name: str,
        session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self.repository.update_one_by_id(
            user_id,
            {"first_name": first_name, "last_name": last_name},
            join=True,
            session=session
        )

    async def update_password(
        self,
        user_id: str,
        password: str,
        password_expired: datetime,
        session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self.repository.update_one_by_id(
            user_id,
            {"password": password, "password_expired": password_expired},
            join=True,
            session=session
        )

    async def update_password_expired(
        self,
        user_id: str,
        password_expired: datetime,
        session: Optional[AsyncSession] = None
    ) -> Optional[User]:
        return await self.repository.update_one_by_id(
            user_id,
            {"password_expired": password_expired},
            join=True,
            session=session
        )

    async def active(self, user_id: str, session: Optional[AsyncSession] = None) -> Optional[User]:
        return await self.repository.update_one_by_id(user_id, {"is_active": True}, join=True, session=session)

    async def inactive(self, user_id: str, session: Optional[AsyncSession] = None) -> Optional[User]:
        return await self.repository.update_one_by_id(user_id, {"is_active": False}, join=True, session=session)

    async def delete_one_by_id(self, user_id: str, session: Optional[AsyncSession] = None) -> Optional[User]:
        return await self.repository.delete_one_by_id(user_id, join=True, session=session)

    async def soft_delete_one_by_id(self, user_id: str, session: Optional[AsyncSession] = None) -> Optional[User]:
        user = await self.repository.soft_delete_one_by_id(user_id, join=True, session=session)
        if user:
            logger.info(f"User soft deleted: {user.id}")
        return user

    async def restore_one_by_id(self, user_id: str, session: Optional[AsyncSession] = None) -> Optional[User]:
        return await self.repository.restore_one_by_id(user_id, join=True, session=session)

    @staticmethod
    def payload_serialization(user: User) -> Dict[str, Any]:
        """
        Claims describing a user, for access and refresh tokens.

        Args:
            user: User with role and permissions loaded

        Returns:
            Dictionary with user id, username, role id, access_for and live permission codes
        """
        role = user.role
        permissions = []
        if role is not None:
            permissions = sorted(
                permission.code
                for permission in role.permissions
                if permission.is_active and not permission.is_deleted
            )

        return {
            "user_id": user.id,
            "username": user.username,
            "role": role.id if role is not None else None,
            "access_for": role.access_for.value if role is not None else None,
            "permissions": permissions,
        }
