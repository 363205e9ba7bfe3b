"""Repositories: soft-delete aware data access, one per model."""
from app.repositories.base import DatabaseRepository, InvalidQueryShape
from app.repositories.permission import PermissionRepository
from app.repositories.role import RoleRepository
from app.repositories.user import UserRepository
from app.repositories.setting import SettingRepository
from app.repositories.api_key import ApiKeyRepository

__all__ = [
    "DatabaseRepository",
    "InvalidQueryShape",
    "PermissionRepository",
    "RoleRepository",
    "UserRepository",
    "SettingRepository",
    "ApiKeyRepository",
]
