#!/usr/bin/env python3
"""
Script to create a new API key for the Admin API.

Usage:
    python scripts/create_api_key.py --name "My API Key" --description "Description here"
    python scripts/create_api_key.py --name "My API Key"  # Description is optional
"""

import asyncio
import argparse
import sys
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.api_key import build_header_value
from app.database import AsyncSessionLocal, close_db, init_db
from app.repositories.api_key import ApiKeyRepository
from app.services.api_key_service import ApiKeyService


async def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Create a new API key for the Admin API"
    )
    parser.add_argument(
        "--name",
        required=True,
        help="Name for the API key (required)"
    )
    parser.add_argument(
        "--description",
        default=None,
        help="Description for the API key (optional)"
    )

    args = parser.parse_args()

    # Initialize database
    await init_db()

    api_key_service = ApiKeyService(ApiKeyRepository(AsyncSessionLocal))
    try:
        api_key, secret = await api_key_service.create(name=args.name, description=args.description)
    except Exception as e:
        print(f"Error creating API key: {str(e)}", file=sys.stderr)
        sys.exit(1)
    finally:
        await close_db()

    print("\n" + "=" * 70)
    print("API KEY CREATED SUCCESSFULLY")
    print("=" * 70)
    print(f"ID: {api_key.id}")
    print(f"Name: {api_key.name}")
    if api_key.description:
        print(f"Description: {api_key.description}")
    print("\n" + "-" * 70)
    print("IMPORTANT: Save these values now. The secret will NOT be shown again!")
    print("-" * 70)
    print(f"\nKey:            {api_key.key}")
    print(f"Secret:         {secret}")
    print(f"Encryption key: {api_key.encryption_key}")
    print(f"Passphrase:     {api_key.passphrase}\n")
    print("=" * 70)
    print("\nClients send X-API-KEY: <key>:<encrypted payload>, built fresh per request.")
    print("Example (valid for this key):")
    print("X-API-KEY: " + build_header_value(api_key.key, secret, api_key.encryption_key, api_key.passphrase))
    print("=" * 70 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
