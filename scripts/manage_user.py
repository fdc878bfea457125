#!/usr/bin/env python3
"""Admin script to manage the local user directory.

Usage:
    python scripts/manage_user.py <user_id> --role admin|worker [--name NAME]
    python scripts/manage_user.py --list [--banned]
"""

import asyncio
import logging
import sys

from fieldops.core import db_client
from fieldops.domain.user import UserRole


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def list_users(*, banned: bool) -> None:
    """List users, optionally only the banned ones."""
    users = await db_client.fetch_all("SELECT * FROM users WHERE banned = ? ORDER BY name, id", (banned,))

    for user in users:
        logger.info(f"{user['id']} - {user['name']} ({', '.join(user['roles'])})")


async def grant_role(user_id: str, role: UserRole, name: str | None = None) -> None:
    """Add a role to a user, creating the user when it does not exist yet.

    Args:
        user_id: External user ID
        role: Role to grant
        name: Display name for a newly created user
    """
    try:
        user = await db_client.get_record(collection="users", record_id=user_id)
    except db_client.RecordNotFoundError:
        await db_client.create_record(
            collection="users",
            data={"id": user_id, "name": name or user_id, "roles": [role.value], "banned": False},
        )
        logger.info(f"Created {user_id} with role {role}")
        return

    roles = sorted({*user["roles"], role.value})
    await db_client.update_record(collection="users", record_id=user_id, data={"roles": roles})
    logger.info(f"{user_id} now has roles {', '.join(roles)}")


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print_usage()
        return

    await db_client.init_db()
    try:
        if "--list" in args:
            await list_users(banned="--banned" in args)
            return

        user_id = args[0]
        if "--role" not in args or args.index("--role") + 1 >= len(args):
            print_usage()
            sys.exit(1)

        try:
            role = UserRole(args[args.index("--role") + 1])
        except ValueError:
            print_usage()
            sys.exit(1)

        name = None
        if "--name" in args and args.index("--name") + 1 < len(args):
            name = args[args.index("--name") + 1]

        await grant_role(user_id, role, name)
    finally:
        await db_client.close_connection()


if __name__ == "__main__":
    asyncio.run(main())
