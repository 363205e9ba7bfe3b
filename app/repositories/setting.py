from sqlalchemy.ext.asyncio import async_sessionmaker
from app.models.setting import Setting
from app.repositories.base import DatabaseRepository


class SettingRepository(DatabaseRepository[Setting]):
    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(Setting, session_factory)
