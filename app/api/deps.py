import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from fastapi import Depends, Header, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import async_sessionmaker
from app.config import settings
from app.core.constants import ADMIN_ACCESS, AccessFor, PermissionCode, StatusCodeError
from app.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    PermissionDeniedException,
    ServiceUnavailableException,
    TokenException,
)
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.database import get_session_factory
from app.models.api_key import ApiKey
from app.models.user import User
from app.repositories.api_key import ApiKeyRepository
from app.repositories.permission import PermissionRepository
from app.repositories.role import RoleRepository
from app.repositories.setting import SettingRepository
from app.repositories.user import UserRepository
from app.services.api_key_service import ApiKeyService
from app.services.auth_service import AuthService
from app.services.permission_service import PermissionService
from app.services.role_service import RoleService
from app.services.setting_service import SettingService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for JWT authentication; missing credentials are reported by the guards
bearer_scheme = HTTPBearer(auto_error=False)


# Service Dependencies for Dependency Injection
def get_permission_service(
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> PermissionService:
    return PermissionService(PermissionRepository(session_factory))


def get_role_service(
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> RoleService:
    return RoleService(RoleRepository(session_factory), PermissionRepository(session_factory))


def get_user_service(
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> UserService:
    return UserService(UserRepository(session_factory))


def get_setting_service(
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> SettingService:
    return SettingService(SettingRepository(session_factory))


def get_api_key_service(
    session_factory: async_sessionmaker = Depends(get_session_factory)
) -> ApiKeyService:
    return ApiKeyService(ApiKeyRepository(session_factory))


def get_auth_service() -> AuthService:
    return AuthService()


@dataclass
class ListParams:
    """Query parameters shared by list endpoints."""
    page: int
    per_page: int
    sort: Optional[str]
    search: Optional[str]


def get_list_params(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.PAGINATION_DEFAULT_PER_PAGE, ge=1, le=settings.PAGINATION_MAX_PER_PAGE),
    sort: Optional[str] = Query(None, description="field@asc or field@desc"),
    search: Optional[str] = Query(None, max_length=100)
) -> ListParams:
    return ListParams(page=page, per_page=per_page, sort=sort, search=search)


# Request guards
async def validate_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-KEY"),
    api_key_service: ApiKeyService = Depends(get_api_key_service)
) -> ApiKey:
    """
    Authenticate the X-API-KEY header.

    Raises:
        ApiKeyException: 401 for a missing, unknown, inactive or invalid key
    """
    api_key = await api_key_service.validate_api_key(x_api_key)
    request.state.api_key_id = api_key.id
    return api_key


async def check_maintenance(
    setting_service: SettingService = Depends(get_setting_service)
) -> None:
    """
    Raises:
        ServiceUnavailableException: 503 while the maintenance setting is true
    """
    if await setting_service.get_maintenance():
        raise ServiceUnavailableException(detail="Service is under maintenance")


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials], code: StatusCodeError) -> str:
    if credentials is None or not credentials.credentials:
        raise TokenException(detail="Bearer token is required", code=code)
    return credentials.credentials


async def get_access_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """
    Get claims of a valid access token.

    Raises:
        TokenException: 401 if the token is missing, invalid or expired
    """
    token = _bearer_token(credentials, StatusCodeError.AUTH_JWT_ACCESS_TOKEN_ERROR)
    payload = auth_service.payload_access_token(token)
    if not payload or not payload.get("user_id"):
        raise TokenException(code=StatusCodeError.AUTH_JWT_ACCESS_TOKEN_ERROR)
    return payload


async def get_refresh_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """
    Get claims of a valid refresh token.

    Raises:
        TokenException: 401 if the token is missing, invalid, expired or not yet usable
    """
    token = _bearer_token(credentials, StatusCodeError.AUTH_JWT_REFRESH_TOKEN_ERROR)
    payload = auth_service.payload_refresh_token(token)
    if not payload or not payload.get("user_id"):
        raise TokenException(
            detail="Invalid or expired refresh token",
            code=StatusCodeError.AUTH_JWT_REFRESH_TOKEN_ERROR
        )
    return payload


def check_user(user: Optional[User], auth_service: AuthService, check_expired: bool = True) -> User:
    """
    Apply the account checks shared by login, refresh and authenticated routes.

    Login and the password change pass ``check_expired=False`` so that a user
    whose password expired can still get a token and replace it.

    Raises:
        NotFoundException: 404 if the user does not exist
        ForbiddenException: 403 if the user or its role is inactive, or the password expired
    """
    if user is None:
        raise NotFoundException(detail="User not found", code=StatusCodeError.USER_NOT_FOUND_ERROR)

    if not user.is_active:
        raise ForbiddenException(detail="User is inactive", code=StatusCodeError.USER_IS_INACTIVE_ERROR)

    role = user.role
    if role is None or not role.is_active or role.is_deleted:
        raise ForbiddenException(detail="Role is inactive", code=StatusCodeError.ROLE_IS_INACTIVE_ERROR)

    if check_expired and auth_service.check_password_expired(user.password_expired):
        raise ForbiddenException(detail="Password expired", code=StatusCodeError.USER_PASSWORD_EXPIRED_ERROR)

    return user


async def get_current_user(
    payload: Dict[str, Any] = Depends(get_access_payload),
    user_service: UserService = Depends(get_user_service),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get the user behind the access token, with role and permissions loaded.

    Raises:
        NotFoundException: 404 if the user no longer exists
        ForbiddenException: 403 if the user cannot use the API right now
    """
    user = await user_service.find_one_by_id(payload["user_id"])
    return check_user(user, auth_service)


async def get_current_user_password_expired_allowed(
    payload: Dict[str, Any] = Depends(get_access_payload),
    user_service: UserService = Depends(get_user_service),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """Same as get_current_user, but an expired password is let through."""
    user = await user_service.find_one_by_id(payload["user_id"])
    return check_user(user, auth_service, check_expired=False)


def require_admin(*permissions: PermissionCode):
    """
    Build a dependency admitting SUPER_ADMIN and ADMIN users holding ``permissions``.

    SUPER_ADMIN skips the permission check.

    Usage:
        @router.get("/list")
        async def list_users(user: User = Depends(require_admin(PermissionCode.USER_READ))):
            ...
    """

    async def admin_guard(
        request: Request,
        user: User = Depends(get_current_user)
    ) -> User:
        access_for = user.role.access_for
        if access_for not in ADMIN_ACCESS:
            raise ForbiddenException(
                detail="Admin access required",
                code=StatusCodeError.AUTH_ACCESS_FOR_INVALID_ERROR
            )

        if access_for == AccessFor.SUPER_ADMIN:
            if permissions:
                logger.warning(
                    sanitize_log_message(
                        "Super admin bypassed permission check",
                        UserID=user.id,
                        Path=request.url.path,
                        Required=[permission.value for permission in permissions],
                        RequestID=get_request_id(request)
                    )
                )
            return user

        granted = {
            permission.code
            for permission in user.role.permissions
            if permission.is_active and not permission.is_deleted
        }
        missing = [permission.value for permission in permissions if permission.value not in granted]
        if missing:
            logger.warning(
                sanitize_log_message(
                    "Permission denied",
                    UserID=user.id,
                    Path=request.url.path,
                    Missing=missing,
                    RequestID=get_request_id(request)
                )
            )
            raise PermissionDeniedException()

        return user

    return admin_guard
