import os

# Settings are read at import time; configure the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ACCESS_TOKEN_SECRET_KEY", "test-access-token-secret-key-0123456789")
os.environ.setdefault("REFRESH_TOKEN_SECRET_KEY", "test-refresh-token-secret-key-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_admin.db")
os.environ.setdefault("LOG_DIR", "./logs-test")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from typing import AsyncGenerator, Dict, Generator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from app.config import settings
from app.core.api_key import build_header_value
from app.core.constants import AccessFor, PermissionCode
from app.database import Base, get_session_factory
from app.models.user import User
from app.repositories.api_key import ApiKeyRepository
from app.repositories.permission import PermissionRepository
from app.repositories.role import RoleRepository
from app.repositories.user import UserRepository
from app.services.api_key_service import ApiKeyService
from app.services.auth_service import AuthService
from app.services.permission_service import PermissionService
from app.services.role_service import RoleService
from app.services.user_service import UserService

TEST_DATABASE_URL = settings.DATABASE_URL
TEST_PASSWORD = "Str0ngPassw0rd!"

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@pytest.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh tables for each test, dropped afterwards."""
    import app.models  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield TestSessionLocal

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """A caller-owned session; rolled back at the end of the test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
def client() -> Generator:
    """Create a sync test client (runs the startup hooks against the test database)."""
    from fastapi.testclient import TestClient
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
async def async_client(session_factory: async_sessionmaker) -> AsyncGenerator:
    """Create an async test client whose repositories use the test session factory."""
    from httpx import AsyncClient, ASGITransport
    from app.main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def api_key_service(session_factory: async_sessionmaker) -> ApiKeyService:
    return ApiKeyService(ApiKeyRepository(session_factory))


@pytest.fixture
def permission_service(session_factory: async_sessionmaker) -> PermissionService:
    return PermissionService(PermissionRepository(session_factory))


@pytest.fixture
def role_service(session_factory: async_sessionmaker) -> RoleService:
    return RoleService(RoleRepository(session_factory), PermissionRepository(session_factory))


@pytest.fixture
def user_service(session_factory: async_sessionmaker) -> UserService:
    return UserService(UserRepository(session_factory))


@pytest.fixture
async def api_key_headers(api_key_service: ApiKeyService) -> Dict[str, str]:
    """Headers carrying a valid X-API-KEY for a freshly created key."""
    api_key, secret = await api_key_service.create(name="test client")
    return {
        "X-API-KEY": build_header_value(api_key.key, secret, api_key.encryption_key, api_key.passphrase)
    }


@pytest.fixture
async def permissions(permission_service: PermissionService):
    """Every permission code, seeded."""
    await permission_service.create_many([
        {"code": code.value, "name": code.value.replace("_", " ").title(), "group": code.group}
        for code in PermissionCode
    ])
    return await permission_service.find_all()


async def create_user_with_role(
    role_service: RoleService,
    user_service: UserService,
    username: str,
    access_for: AccessFor,
    permission_ids=(),
    password: str = TEST_PASSWORD
) -> User:
    """Create a role named after the user, then the user holding it, and return it loaded."""
    role = await role_service.create(
        name=f"{username}-role",
        access_for=access_for,
        permission_ids=permission_ids
    )
    password_hash, password_expired = AuthService.create_password(password)
    user = await user_service.create(
        username=username,
        first_name=username.title(),
        last_name="Test",
        email=f"{username}@example.com",
        password=password_hash,
        password_expired=password_expired,
        role_id=role.id
    )
    return await user_service.find_one_by_id(user.id)


def bearer(user: User) -> Dict[str, str]:
    token = AuthService.create_access_token(UserService.payload_serialization(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def super_admin(permissions, role_service: RoleService, user_service: UserService) -> User:
    return await create_user_with_role(role_service, user_service, "superadmin", AccessFor.SUPER_ADMIN)


@pytest.fixture
async def admin(permissions, role_service: RoleService, user_service: UserService) -> User:
    """ADMIN holding only USER_READ."""
    user_read = [p.id for p in permissions if p.code == PermissionCode.USER_READ.value]
    return await create_user_with_role(role_service, user_service, "admin", AccessFor.ADMIN, user_read)


@pytest.fixture
async def member(permissions, role_service: RoleService, user_service: UserService) -> User:
    """A plain USER-access account."""
    return await create_user_with_role(role_service, user_service, "member", AccessFor.USER)


@pytest.fixture
def super_admin_headers(api_key_headers, super_admin) -> Dict[str, str]:
    return {**api_key_headers, **bearer(super_admin)}


@pytest.fixture
def admin_headers(api_key_headers, admin) -> Dict[str, str]:
    return {**api_key_headers, **bearer(admin)}


@pytest.fixture
def member_headers(api_key_headers, member) -> Dict[str, str]:
    return {**api_key_headers, **bearer(member)}
