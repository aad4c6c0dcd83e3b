"""
Content records shared by both store variants, plus the field rules that
keep them consistent.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from portfolio.errors import ValidationError

IMAGE_CATEGORIES = ("project", "skill", "general", "icon")
PROJECT_CATEGORIES = ("ux-design", "ui-design", "branding", "web-development")
SKILL_CATEGORIES = ("design", "development", "tools")

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

PROJECT_FIELDS = (
    "title",
    "slug",
    "description",
    "short_description",
    "category",
    "technologies",
    "images",
    "live_url",
    "github_url",
    "featured",
    "order",
)
SKILL_FIELDS = ("name", "icon", "category", "proficiency", "order")
MESSAGE_FIELDS = ("name", "email", "subject", "message")


def now_ts() -> float:
    return time.time()


def touch_ts(previous: Optional[float] = None) -> float:
    """A fresh timestamp, strictly later than ``previous``."""
    current = now_ts()
    if previous is not None and current <= previous:
        return previous + 0.001
    return current


def iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class Image:
    id: str
    name: str
    slug: str
    category: str
    mime_type: str
    filename: str
    size: int
    created_at: float = field(default_factory=now_ts)
    updated_at: float = field(default_factory=now_ts)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "category": self.category,
            "mimeType": self.mime_type,
            "filename": self.filename,
            "size": self.size,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def as_reference(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "mimeType": self.mime_type,
        }


@dataclass
class Screen:
    """One showcased image of a project, owned by the project."""

    title: str
    description: str
    image: Optional[str] = None
    image_slug: Optional[str] = None
    image_url: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "imageSlug": self.image_slug,
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Screen":
        image = data.get("image")
        return cls(
            title=data.get("title", ""),
            description=data.get("description", ""),
            image=str(image) if image is not None else None,
            image_slug=data.get("imageSlug"),
            image_url=data.get("imageUrl"),
        )


@dataclass
class Project:
    id: str
    title: str
    slug: str
    description: str
    short_description: str
    category: str
    technologies: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    screens: List[Screen] = field(default_factory=list)
    thumbnail: Optional[str] = None
    thumbnail_slug: Optional[str] = None
    thumbnail_url: Optional[str] = None
    thumbnail_filename: Optional[str] = None
    live_url: Optional[str] = None
    github_url: Optional[str] = None
    featured: bool = False
    order: int = 0
    created_at: float = field(default_factory=now_ts)
    updated_at: float = field(default_factory=now_ts)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "shortDescription": self.short_description,
            "category": self.category,
            "technologies": list(self.technologies),
            "images": list(self.images),
            "screens": [screen.as_dict() for screen in self.screens],
            "screenCount": len(self.screens),
            "thumbnail": self.thumbnail,
            "thumbnailSlug": self.thumbnail_slug,
            "thumbnailUrl": self.thumbnail_url,
            "thumbnailFilename": self.thumbnail_filename,
            "liveUrl": self.live_url,
            "githubUrl": self.github_url,
            "featured": self.featured,
            "order": self.order,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class Skill:
    id: str
    name: str
    icon: str
    category: str
    proficiency: int
    order: int = 0

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "category": self.category,
            "proficiency": self.proficiency,
            "order": self.order,
        }


@dataclass
class Message:
    id: str
    name: str
    email: str
    subject: str
    message: str
    read: bool = False
    created_at: float = field(default_factory=now_ts)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.message,
            "read": self.read,
            "createdAt": iso(self.created_at),
        }


@dataclass
class User:
    id: str
    email: str
    name: str
    password_hash: str
    created_at: float = field(default_factory=now_ts)

    def as_dict(self) -> dict:
        # The password hash never leaves the backend.
        return {"id": self.id, "email": self.email, "name": self.name}


# =============================================================================
# Field rules
# =============================================================================


def _require(fields: Dict[str, Any], names: Iterable[str], message: str) -> None:
    for name in names:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(message)


def _max_length(fields: Dict[str, Any], name: str, limit: int, label: str) -> None:
    value = fields.get(name)
    if isinstance(value, str) and len(value) > limit:
        raise ValidationError(f"{label} cannot exceed {limit} characters")


def _one_of(value: Any, allowed: Iterable[str], label: str) -> None:
    if value not in allowed:
        raise ValidationError(
            f"{label} must be one of: {', '.join(allowed)}"
        )


def _string_list(value: Any, label: str) -> List[str]:
    if not isinstance(value, (list, tuple)) or not all(
        isinstance(item, str) for item in value
    ):
        raise ValidationError(f"{label} must be a list of strings")
    return [item.strip() for item in value]


def clean_project_fields(fields: Dict[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    """Validate and normalize project fields. Unknown keys are dropped."""
    cleaned = {k: v for k, v in fields.items() if k in PROJECT_FIELDS}
    if not partial:
        _require(
            cleaned,
            ("title", "slug", "description", "short_description", "category"),
            "Please provide title, slug, description, shortDescription and category",
        )
    else:
        for name in ("title", "slug", "description", "short_description", "category"):
            if name in cleaned:
                _require(cleaned, (name,), f"{name} cannot be empty")
    _max_length(cleaned, "title", 100, "Title")
    _max_length(cleaned, "description", 5000, "Description")
    _max_length(cleaned, "short_description", 300, "Short description")
    if "category" in cleaned:
        _one_of(cleaned["category"], PROJECT_CATEGORIES, "category")
    if "slug" in cleaned:
        cleaned["slug"] = cleaned["slug"].strip().lower()
    if "title" in cleaned:
        cleaned["title"] = cleaned["title"].strip()
    for name in ("technologies", "images"):
        if cleaned.get(name) is not None:
            cleaned[name] = _string_list(cleaned[name], name)
        elif name in cleaned:
            cleaned[name] = []
    for name in ("live_url", "github_url"):
        if isinstance(cleaned.get(name), str):
            cleaned[name] = cleaned[name].strip() or None
    if "featured" in cleaned:
        cleaned["featured"] = bool(cleaned["featured"])
    if cleaned.get("order") is not None:
        cleaned["order"] = int(cleaned["order"])
    elif "order" in cleaned:
        cleaned["order"] = 0
    if not partial:
        cleaned.setdefault("technologies", [])
        cleaned.setdefault("images", [])
        cleaned.setdefault("featured", False)
        cleaned.setdefault("order", 0)
        cleaned.setdefault("live_url", None)
        cleaned.setdefault("github_url", None)
    return cleaned


def clean_skill_fields(fields: Dict[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    cleaned = {k: v for k, v in fields.items() if k in SKILL_FIELDS}
    if not partial:
        _require(
            cleaned,
            ("name", "icon", "category", "proficiency"),
            "Please provide name, icon, category and proficiency",
        )
    if "name" in cleaned:
        _require(cleaned, ("name",), "Skill name is required")
        cleaned["name"] = cleaned["name"].strip()
    if "category" in cleaned:
        _one_of(cleaned["category"], SKILL_CATEGORIES, "category")
    if "proficiency" in cleaned:
        try:
            proficiency = int(cleaned["proficiency"])
        except (TypeError, ValueError) as exc:
            raise ValidationError("Proficiency must be a number") from exc
        if not 1 <= proficiency <= 5:
            raise ValidationError("Proficiency must be between 1 and 5")
        cleaned["proficiency"] = proficiency
    if cleaned.get("order") is not None:
        cleaned["order"] = int(cleaned["order"])
    elif "order" in cleaned:
        cleaned["order"] = 0
    if not partial:
        cleaned.setdefault("order", 0)
    return cleaned


def clean_message_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {k: v for k, v in fields.items() if k in MESSAGE_FIELDS}
    _require(
        cleaned,
        MESSAGE_FIELDS,
        "Please provide name, email, subject, and message",
    )
    cleaned = {k: v.strip() if k != "message" else v for k, v in cleaned.items()}
    cleaned["email"] = cleaned["email"].lower()
    if not EMAIL_PATTERN.match(cleaned["email"]):
        raise ValidationError("Please provide a valid email")
    _max_length(cleaned, "name", 100, "Name")
    _max_length(cleaned, "subject", 200, "Subject")
    _max_length(cleaned, "message", 5000, "Message")
    return cleaned


def clean_image_fields(name: str, slug: str, category: str) -> None:
    if not name or not slug or not category:
        raise ValidationError("Missing required fields: name, slug, category")
    _one_of(category, IMAGE_CATEGORIES, "category")
