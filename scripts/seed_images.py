"""
Upload every image file under a directory into the configured content store.

The slug is the file's path relative to the directory, without extension and
slugified (``icons/Figma Logo.svg`` -> ``icons-figma-logo``). The category is
the first directory component when it names an image category, else
``general``.
"""

from __future__ import annotations

import argparse
import logging
import mimetypes
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portfolio.dependencies import get_content_store
from portfolio.records import IMAGE_CATEGORIES
from portfolio.slugs import slugify
from portfolio.stores import ContentStore

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".avif"}


def image_slug_for(path: Path, root: Path) -> str:
    relative = path.relative_to(root).with_suffix("")
    return slugify("-".join(relative.parts))


def image_category_for(path: Path, root: Path) -> str:
    parts = path.relative_to(root).parts
    if len(parts) > 1:
        candidate = parts[0].lower()
        if candidate in IMAGE_CATEGORIES:
            return candidate
        if candidate.rstrip("s") in IMAGE_CATEGORIES:
            return candidate.rstrip("s")
    return "general"


def seed_directory(store: ContentStore, root: Path, dry_run: bool = False) -> int:
    seeded = 0
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        slug = image_slug_for(path, root)
        category = image_category_for(path, root)
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        if dry_run:
            logger.info("Would upload %s as %s (%s)", path, slug, category)
        else:
            store.put_image(
                slug,
                path.read_bytes(),
                mime_type,
                name=path.stem,
                category=category,
                filename=path.name,
            )
        seeded += 1
    return seeded


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed images from a directory")
    parser.add_argument("directory", type=Path, help="Directory of image files")
    parser.add_argument("--dry-run", action="store_true", help="List uploads only")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    if not args.directory.is_dir():
        logger.error("%s is not a directory", args.directory)
        return 1

    seeded = seed_directory(get_content_store(), args.directory, dry_run=args.dry_run)
    logger.info("Seeded %d image(s)", seeded)
    return 0


if __name__ == "__main__":
    sys.exit(main())
