from sqlalchemy.ext.asyncio import async_sessionmaker
from app.models.api_key import ApiKey
from app.repositories.base import DatabaseRepository


class ApiKeyRepository(DatabaseRepository[ApiKey]):
    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(ApiKey, session_factory)
