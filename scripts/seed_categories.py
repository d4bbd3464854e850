"""
Seed the default listing categories into the configured database.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from guideme.db import DbError
from guideme.dependencies import get_db_client
from guideme.directory import DEFAULT_CATEGORIES, seed_default_categories

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed default categories")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the categories without writing them",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    if args.dry_run:
        for name, slug in DEFAULT_CATEGORIES:
            logger.info("Would seed %s (%s)", name, slug)
        return 0

    try:
        inserted = seed_default_categories(get_db_client())
    except DbError as exc:
        logger.error("Seeding failed: %s", exc)
        return 1
    logger.info("Seeded %d new categories", inserted)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
