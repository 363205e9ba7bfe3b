from typing import Optional, Sequence
from sqlalchemy import delete, insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from app.models.role import Role, role_permission
from app.repositories.base import DatabaseRepository


class RoleRepository(DatabaseRepository[Role]):
    """Roles; ``join=True`` loads the permission list."""

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(
            Role,
            session_factory,
            join_on_find=[selectinload(Role.permissions)]
        )

    async def update_permissions(
        self,
        role_id: str,
        permission_ids: Sequence[str],
        *,
        session: Optional[AsyncSession] = None
    ) -> Optional[Role]:
        """
        Replace the permission set of a live role.

        Returns:
            The role with permissions loaded, or None if no live role has ``role_id``
        """
        async with self._session(session) as db:
            role = await self.find_one_by_id(role_id, session=db)
            if role is None:
                return None

            await db.execute(delete(role_permission).where(role_permission.c.role_id == role_id))
            if permission_ids:
                await db.execute(
                    insert(role_permission),
                    [{"role_id": role_id, "permission_id": permission_id} for permission_id in permission_ids]
                )

            return await self._reload(db, role_id, True)
