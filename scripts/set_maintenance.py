#!/usr/bin/env python3
"""
Turn maintenance mode on or off.

Maintenance closes every /api/v1 route, including the admin setting update,
so switching it off goes through this script.

Usage:
    python scripts/set_maintenance.py on
    python scripts/set_maintenance.py off
"""

import asyncio
import argparse
import sys
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.constants import MAINTENANCE_SETTING, SettingDataType
from app.database import AsyncSessionLocal, close_db, init_db
from app.repositories.setting import SettingRepository
from app.services.setting_service import SettingService


async def main():
    """Main function."""
    parser = argparse.ArgumentParser(description="Turn maintenance mode on or off")
    parser.add_argument("state", choices=["on", "off"])

    args = parser.parse_args()
    value = args.state == "on"

    await init_db()

    setting_service = SettingService(SettingRepository(AsyncSessionLocal))
    try:
        setting = await setting_service.find_one_by_name(MAINTENANCE_SETTING)
        if setting is None:
            await setting_service.create(MAINTENANCE_SETTING, SettingDataType.BOOLEAN, value)
        else:
            await setting_service.update_one_by_id(setting.id, SettingDataType.BOOLEAN, value)
    except Exception as e:
        print(f"Error updating maintenance: {str(e)}", file=sys.stderr)
        sys.exit(1)
    finally:
        await close_db()

    print(f"Maintenance mode {args.state}")


if __name__ == "__main__":
    asyncio.run(main())
