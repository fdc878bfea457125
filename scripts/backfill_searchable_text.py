#!/usr/bin/env python3
"""Recompute the searchable text of every task.

Run after changing how search text is built.

Usage:
    python scripts/backfill_searchable_text.py [--batch-size N]
"""

import asyncio
import logging
import sys

from fieldops.core import db_client
from fieldops.core.logging import configure_logfire
from fieldops.services import search_index


logger = logging.getLogger(__name__)


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]
    batch_size = 100
    if "--batch-size" in args:
        batch_size = int(args[args.index("--batch-size") + 1])

    configure_logfire()
    await db_client.init_db()
    try:
        updated = await search_index.backfill_searchable_text(batch_size=batch_size)
        logger.info("Backfill complete", extra={"tasks_updated": updated})
    finally:
        await db_client.close_connection()


if __name__ == "__main__":
    asyncio.run(main())
