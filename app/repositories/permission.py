from sqlalchemy.ext.asyncio import async_sessionmaker
from app.models.permission import Permission
from app.repositories.base import DatabaseRepository


class PermissionRepository(DatabaseRepository[Permission]):
    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(Permission, session_factory)
