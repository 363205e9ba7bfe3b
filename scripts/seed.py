#!/usr/bin/env python3
"""
Seed the database with permissions, the default roles, a super admin and the
maintenance setting.

Existing records are left untouched, so the script can be run again after new
permission codes are added.

Usage:
    python scripts/seed.py --username superadmin --email admin@example.com --password "Str0ngPassw0rd!"
"""

import asyncio
import argparse
import sys
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.constants import MAINTENANCE_SETTING, AccessFor, PermissionCode, SettingDataType
from app.database import AsyncSessionLocal, close_db, init_db
from app.repositories.permission import PermissionRepository
from app.repositories.role import RoleRepository
from app.repositories.setting import SettingRepository
from app.repositories.user import UserRepository
from app.services.auth_service import AuthService
from app.services.permission_service import PermissionService
from app.services.role_service import SUPER_ADMIN_ROLE_NAME, RoleService
from app.services.setting_service import SettingService
from app.services.user_service import UserService

DEFAULT_ROLES = (
    ("admin", AccessFor.ADMIN, [code for code in PermissionCode if code.value.endswith("_READ")]),
    ("user", AccessFor.USER, []),
)


async def seed_permissions(permission_service: PermissionService) -> int:
    missing = []
    for code in PermissionCode:
        if not await permission_service.exist_by_code(code.value):
            missing.append({
                "code": code.value,
                "name": code.value.replace("_", " ").capitalize(),
                "group": code.group,
            })

    if missing:
        await permission_service.create_many(missing)
    return len(missing)


async def seed_roles(role_service: RoleService, permission_service: PermissionService) -> None:
    if not await role_service.exist_by_name(SUPER_ADMIN_ROLE_NAME):
        await role_service.create_super_admin()
        print(f"Role created: {SUPER_ADMIN_ROLE_NAME}")

    for name, access_for, codes in DEFAULT_ROLES:
        if await role_service.exist_by_name(name):
            continue
        permissions = await permission_service.find_all({"code": [code.value for code in codes]})
        await role_service.create(
            name=name,
            access_for=access_for,
            permission_ids=[permission.id for permission in permissions]
        )
        print(f"Role created: {name}")


async def seed_super_admin(
    role_service: RoleService,
    user_service: UserService,
    username: str,
    email: str,
    password: str
) -> None:
    if await user_service.exist_by_username(username):
        print(f"User {username} already exists, skipped")
        return

    role = await role_service.find_one_by_name(SUPER_ADMIN_ROLE_NAME)
    password_hash, password_expired = AuthService.create_password(password)
    await user_service.create(
        username=username,
        first_name="Super",
        last_name="Admin",
        email=email,
        password=password_hash,
        password_expired=password_expired,
        role_id=role.id
    )
    print(f"User created: {username}")


async def seed_settings(setting_service: SettingService) -> None:
    if await setting_service.find_one_by_name(MAINTENANCE_SETTING) is None:
        await setting_service.create(
            MAINTENANCE_SETTING,
            SettingDataType.BOOLEAN,
            False,
            description="Close every API route with 503 while true"
        )
        print(f"Setting created: {MAINTENANCE_SETTING}")


async def main():
    """Main function."""
    parser = argparse.ArgumentParser(description="Seed the Admin API database")
    parser.add_argument("--username", default="superadmin", help="Super admin username")
    parser.add_argument("--email", default="superadmin@example.com", help="Super admin email")
    parser.add_argument("--password", required=True, help="Super admin password (required)")

    args = parser.parse_args()

    await init_db()

    permission_service = PermissionService(PermissionRepository(AsyncSessionLocal))
    role_service = RoleService(RoleRepository(AsyncSessionLocal), PermissionRepository(AsyncSessionLocal))
    user_service = UserService(UserRepository(AsyncSessionLocal))
    setting_service = SettingService(SettingRepository(AsyncSessionLocal))

    try:
        created = await seed_permissions(permission_service)
        print(f"Permissions created: {created}")
        await seed_roles(role_service, permission_service)
        await seed_super_admin(role_service, user_service, args.username, args.email, args.password)
        await seed_settings(setting_service)
    except Exception as e:
        print(f"Error seeding database: {str(e)}", file=sys.stderr)
        sys.exit(1)
    finally:
        await close_db()

    print("Seed complete")


if __name__ == "__main__":
    asyncio.run(main())
