#!/usr/bin/env python3
"""Issue a signed identity token for a user.

Usage:
    python scripts/issue_token.py <user_id> [--role admin|worker ...]
"""

import logging
import sys

from fieldops.domain.user import UserRole
from fieldops.interface.auth import issue_token


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]
    if not args or "--help" in args or "-h" in args:
        logger.info(__doc__)
        return

    roles = [UserRole(args[i + 1]) for i, arg in enumerate(args[:-1]) if arg == "--role"]
    logger.info(issue_token(args[0], roles or [UserRole.WORKER]))


if __name__ == "__main__":
    main()
