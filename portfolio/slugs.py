"""
Slug, filename and URL derivation rules.

Blob keys written by earlier deployments follow these rules, so they must not
change.
"""

from __future__ import annotations

import mimetypes
import os
import re
from typing import Optional

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9-]")
_NON_FILENAME = re.compile(r"[^a-zA-Z0-9.-]")

DEFAULT_MIME_TYPE = "application/octet-stream"


def slugify(text: str) -> str:
    """Lowercase, turn whitespace runs into ``-`` and drop anything else."""
    lowered = _WHITESPACE.sub("-", (text or "").strip().lower())
    return _NON_SLUG.sub("", lowered)


def screen_image_slug(project_slug: str, screen_title: str) -> str:
    return f"project-{slugify(project_slug)}-{slugify(screen_title)}"


def mockup_image_slug(project_slug: str) -> str:
    return f"project-{slugify(project_slug)}-mockup"


def extension_for(mime_type: str, original_filename: Optional[str] = None) -> str:
    if original_filename:
        _, ext = os.path.splitext(original_filename)
        if ext:
            return ext
    subtype = (mime_type or "").split("/")[-1].split(";")[0].strip()
    if subtype == "svg+xml":
        subtype = "svg"
    return f".{subtype or 'png'}"


def blob_filename(
    slug: str, mime_type: str, original_filename: Optional[str] = None
) -> str:
    """Blob key for an image: ``{slug}{original-extension}``."""
    filename = f"{slug}{extension_for(mime_type, original_filename)}"
    return _NON_FILENAME.sub("", _WHITESPACE.sub("-", filename))


def resolve_mime_type(
    declared: Optional[str], original_filename: Optional[str] = None
) -> str:
    if declared and declared.startswith("image/"):
        return declared
    if original_filename:
        guessed, _ = mimetypes.guess_type(original_filename)
        if guessed:
            return guessed
    return declared or DEFAULT_MIME_TYPE


def image_url(slug: Optional[str], prefix: str = "/api") -> Optional[str]:
    if not slug:
        return None
    return f"{prefix.rstrip('/')}/images/{slug}"
