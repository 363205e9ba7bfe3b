"""Pydantic schemas for request/response contracts."""
from app.schemas.pagination import ListResponse
from app.schemas.permission import (
    PermissionResponse,
    PermissionGroupResponse,
    PermissionUpdateRequest,
)
from app.schemas.role import (
    RoleResponse,
    RoleCreateRequest,
    RoleUpdateRequest,
    RoleUpdatePermissionRequest,
)
from app.schemas.user import (
    UserResponse,
    UserCreateRequest,
    UserUpdateRequest,
)
from app.schemas.auth import (
    LoginRequest,
    TokenResponse,
    ChangePasswordRequest,
)
from app.schemas.setting import (
    SettingResponse,
    SettingUpdateRequest,
)
from app.schemas.api_key import (
    ApiKeyResponse,
    ApiKeyCreateRequest,
    ApiKeyUpdateRequest,
    ApiKeyCreateResponse,
)

__all__ = [
    "ListResponse",
    "PermissionResponse",
    "PermissionGroupResponse",
    "PermissionUpdateRequest",
    "RoleResponse",
    "RoleCreateRequest",
    "RoleUpdateRequest",
    "RoleUpdatePermissionRequest",
    "UserResponse",
    "UserCreateRequest",
    "UserUpdateRequest",
    "LoginRequest",
    "TokenResponse",
    "ChangePasswordRequest",
    "SettingResponse",
    "SettingUpdateRequest",
    "ApiKeyResponse",
    "ApiKeyCreateRequest",
    "ApiKeyUpdateRequest",
    "ApiKeyCreateResponse",
]
