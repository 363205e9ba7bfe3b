"""Database models."""
from app.models.permission import Permission
from app.models.role import Role, role_permission
from app.models.user import User
from app.models.setting import Setting
from app.models.api_key import ApiKey

__all__ = [
    "Permission",
    "Role",
    "role_permission",
    "User",
    "Setting",
    "ApiKey",
]
