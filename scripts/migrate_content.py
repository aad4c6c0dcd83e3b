"""
Copy all content from the document store into the relational store and blob
bucket, or the other way round with ``--reverse``.

Both stores are configured from the usual environment (MONGODB_URI,
DATABASE_URL, IMAGES_BUCKET, ...).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portfolio.config import get_settings
from portfolio.dependencies import get_lock_provider, get_storage_client
from portfolio.migration import migrate_content
from portfolio.mongo_store import MongoContentStore
from portfolio.sql_store import SqlContentStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Migrate portfolio content between stores")
    parser.add_argument(
        "--reverse",
        action="store_true",
        help="Copy from the relational store into the document store instead",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be copied without writing anything",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()
    if settings.use_in_memory_backends:
        logger.error("USE_IN_MEMORY_BACKENDS is set; refusing to migrate into memory")
        return 1

    locks = get_lock_provider()
    document_store = MongoContentStore.from_uri(
        settings.mongodb_uri,
        settings.mongodb_database,
        locks=locks,
        url_prefix=settings.api_prefix,
    )
    relational_store = SqlContentStore(
        settings.sql_url,
        get_storage_client(),
        locks=locks,
        url_prefix=settings.api_prefix,
    )
    source, target = document_store, relational_store
    if args.reverse:
        source, target = target, source

    report = migrate_content(source, target, dry_run=args.dry_run)
    print(report.summary())
    return 1 if report.warnings else 0


if __name__ == "__main__":
    sys.exit(main())
