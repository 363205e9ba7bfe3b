from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload
from app.models.role import Role
from app.models.user import User
from app.repositories.base import DatabaseRepository


class UserRepository(DatabaseRepository[User]):
    """Users; ``join=True`` loads the role and its permissions."""

    def __init__(self, session_factory: async_sessionmaker):
        super().__init__(
            User,
            session_factory,
            join_on_find=[selectinload(User.role).selectinload(Role.permissions)]
        )
