#!/usr/bin/env python3
"""
Issue an API key for an existing user of the Forge Admin API.

Usage:
    python scripts/create_api_key.py --email admin@example.com --name "CI key"
    python scripts/create_api_key.py --email admin@example.com --name "CI key" --permissions read write
"""

import asyncio
import argparse
import sys

from sqlalchemy import select
from app.database import AsyncSessionLocal, init_db
from app.models.user import User
from app.services.api_key_service import ApiKeyService


async def issue_api_key(email: str, name: str, permissions: list) -> tuple:
    """
    Issue a key for the user with the given email.

    Returns:
        Tuple of (plain_api_key, ApiKey model)

    Raises:
        LookupError if no user has that email
    """
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalars().first()
        if user is None:
            raise LookupError(f"No user with email {email}")

        api_key, plain_key = await ApiKeyService.create_api_key(
            db=session,
            user=user,
            name=name,
            permissions=permissions
        )
        return plain_key, api_key


async def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Issue an API key for a Forge Admin API user"
    )
    parser.add_argument(
        "--email",
        required=True,
        help="Email of the user the key is issued to (required)"
    )
    parser.add_argument(
        "--name",
        required=True,
        help="Name for the API key (required)"
    )
    parser.add_argument(
        "--permissions",
        nargs="+",
        choices=["read", "write", "admin"],
        default=["read"],
        help="Permissions granted to the key (default: read)"
    )

    args = parser.parse_args()

    await init_db()

    try:
        plain_key, api_key = await issue_api_key(
            email=args.email,
            name=args.name,
            permissions=args.permissions
        )
    except LookupError as e:
        print(f"Error creating API key: {str(e)}", file=sys.stderr)
        sys.exit(1)

    print(f"Issued API key {api_key.id} ({api_key.name}) for {args.email}")
    print(f"Permissions: {', '.join(api_key.permissions)}")
    print("Store this key now, it cannot be recovered:")
    print(plain_key)


if __name__ == "__main__":
    asyncio.run(main())
