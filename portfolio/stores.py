"""
Storage-agnostic content store.

``ContentStore`` owns every rule that must hold regardless of where content
lives: slug uniqueness, screen addressing by index, the derived display URLs
and the reporting aggregate. Subclasses only supply record-level primitives
(find/insert/update/remove) for their backend.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from portfolio.errors import (
    ConflictError,
    InvalidIndexError,
    NotFoundError,
    ScreenIndexError,
    ValidationError,
)
from portfolio.locks import InMemoryLockProvider, LockProvider
from portfolio.records import (
    PROJECT_FIELDS,
    Image,
    Message,
    Project,
    Screen,
    Skill,
    User,
    clean_image_fields,
    clean_project_fields,
)
from portfolio.slugs import (
    DEFAULT_MIME_TYPE,
    image_url,
    mockup_image_slug,
    screen_image_slug,
)

logger = logging.getLogger(__name__)

IMAGE_SORT_KEYS = ("name", "category")


class ContentStore(ABC):
    """Interface shared by the document and the relational store."""

    backend_name = "abstract"

    def __init__(
        self,
        *,
        locks: Optional[LockProvider] = None,
        url_prefix: str = "/api",
    ):
        self.locks = locks or InMemoryLockProvider()
        self.url_prefix = url_prefix

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _new_id(self) -> str:
        ...

    @abstractmethod
    def _find_image(self, slug: str) -> Optional[Image]:
        ...

    @abstractmethod
    def _find_image_by_id(self, image_id: str) -> Optional[Image]:
        ...

    @abstractmethod
    def _write_image(
        self,
        existing: Optional[Image],
        *,
        slug: str,
        content: bytes,
        mime_type: str,
        name: str,
        category: str,
        filename: Optional[str],
    ) -> Image:
        """Create the image, or overwrite ``existing`` in place keeping its id."""

    @abstractmethod
    def _read_image_bytes(self, image: Image) -> bytes:
        ...

    @abstractmethod
    def _query_images(self, category: Optional[str]) -> List[Image]:
        ...

    @abstractmethod
    def _remove_image(self, image: Image) -> None:
        ...

    @abstractmethod
    def _find_project(self, key: str) -> Optional[Project]:
        """Look ``key`` up as an id first, then as a slug."""

    @abstractmethod
    def _find_project_by_slug(self, slug: str) -> Optional[Project]:
        ...

    @abstractmethod
    def _insert_project(self, project: Project) -> Project:
        ...

    @abstractmethod
    def _update_project(self, project_id: str, changes: Dict[str, Any]) -> Project:
        """Apply ``changes`` (record attribute names) and refresh ``updated_at``."""

    @abstractmethod
    def _remove_project(self, project_id: str) -> None:
        ...

    @abstractmethod
    def list_projects(
        self, category: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Project]:
        """Projects ordered by ``order`` ascending, newest first within a tie."""

    # Skills -------------------------------------------------------------

    @abstractmethod
    def list_skills(self, category: Optional[str] = None) -> List[Skill]:
        ...

    @abstractmethod
    def get_skill(self, skill_id: str) -> Skill:
        ...

    @abstractmethod
    def create_skill(self, fields: Dict[str, Any]) -> Skill:
        ...

    @abstractmethod
    def update_skill(self, skill_id: str, fields: Dict[str, Any]) -> Skill:
        ...

    @abstractmethod
    def delete_skill(self, skill_id: str) -> None:
        ...

    # Messages -------------------------------------------------------------

    @abstractmethod
    def create_message(
        self, fields: Dict[str, Any], *, created_at: Optional[float] = None
    ) -> Message:
        """Store a new unread message, stamped now unless ``created_at`` is given."""

    @abstractmethod
    def get_message(self, message_id: str) -> Message:
        ...

    @abstractmethod
    def list_messages(self, read: Optional[bool] = None) -> List[Message]:
        """Messages newest first, optionally filtered on the read flag."""

    @abstractmethod
    def mark_message_read(self, message_id: str) -> Message:
        ...

    @abstractmethod
    def delete_message(self, message_id: str) -> None:
        ...

    # Users -------------------------------------------------------------

    @abstractmethod
    def create_user(self, email: str, name: str, password_hash: str) -> User:
        ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    def list_users(self) -> List[User]:
        ...

    @abstractmethod
    def reset(self) -> None:
        """Drop all stored content (useful in tests)."""

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def put_image(
        self,
        slug: str,
        content: bytes,
        mime_type: str,
        *,
        name: str,
        category: str,
        filename: Optional[str] = None,
    ) -> Image:
        """
        Store ``content`` under ``slug``. An existing image keeps its id and
        slug; its bytes, mime type, size and filename are replaced.
        """
        clean_image_fields(name, slug, category)
        if not content:
            raise ValidationError("Image content is empty")
        existing = self._find_image(slug)
        image = self._write_image(
            existing,
            slug=slug,
            content=content,
            mime_type=mime_type,
            name=name,
            category=category,
            filename=filename,
        )
        logger.info(
            "%s image %s (%d bytes)",
            "Replaced" if existing else "Created",
            slug,
            image.size,
        )
        return image

    def create_image(
        self,
        slug: str,
        content: bytes,
        mime_type: str,
        *,
        name: str,
        category: str,
        filename: Optional[str] = None,
    ) -> Image:
        if self._find_image(slug):
            raise ConflictError("Image with this slug already exists")
        return self.put_image(
            slug, content, mime_type, name=name, category=category, filename=filename
        )

    def replace_image(
        self,
        slug: str,
        content: bytes,
        mime_type: str,
        filename: Optional[str] = None,
    ) -> Image:
        existing = self.get_image_metadata(slug)
        return self.put_image(
            slug,
            content,
            mime_type,
            name=existing.name,
            category=existing.category,
            filename=filename,
        )

    def get_image(self, slug: str) -> Tuple[Image, bytes]:
        image = self.get_image_metadata(slug)
        try:
            content = self._read_image_bytes(image)
        except FileNotFoundError as exc:
            raise NotFoundError("Image file not found") from exc
        return image, content

    def get_image_metadata(self, slug: str) -> Image:
        image = self._find_image(slug)
        if image is None:
            raise NotFoundError("Image not found")
        return image

    def get_image_metadata_by_id(self, image_id: str) -> Image:
        image = self._find_image_by_id(image_id)
        if image is None:
            raise NotFoundError("Image not found")
        return image

    def list_images(
        self, category: Optional[str] = None, sort: str = "name"
    ) -> List[Image]:
        if sort not in IMAGE_SORT_KEYS:
            raise ValidationError(f"sort must be one of: {', '.join(IMAGE_SORT_KEYS)}")
        images = self._query_images(category)
        if sort == "category":
            return sorted(images, key=lambda image: (image.category, image.name))
        return sorted(images, key=lambda image: image.name)

    def delete_image(self, slug: str) -> None:
        # Projects referencing this image are left alone; their references
        # resolve to "not found" when fetched.
        image = self.get_image_metadata(slug)
        self._remove_image(image)
        logger.info("Deleted image %s", slug)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, fields: Dict[str, Any]) -> Project:
        cleaned = clean_project_fields(fields)
        if self._find_project_by_slug(cleaned["slug"]):
            raise ConflictError("A project with this slug already exists")
        project = self._insert_project(Project(id=self._new_id(), **cleaned))
        logger.info("Created project %s", project.slug)
        return project

    def restore_project(self, project: Project) -> Project:
        """
        Insert a copy of ``project`` under a new id, keeping its timestamps,
        screens and thumbnail reference. Used when moving content between stores.
        """
        cleaned = clean_project_fields({name: getattr(project, name) for name in PROJECT_FIELDS})
        if self._find_project_by_slug(cleaned["slug"]):
            raise ConflictError("A project with this slug already exists")
        restored = self._insert_project(replace(project, id=self._new_id(), **cleaned))
        logger.info("Restored project %s", restored.slug)
        return restored

    def get_project(self, key: str) -> Project:
        project = self._find_project(key)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    def update_project(self, key: str, fields: Dict[str, Any]) -> Project:
        cleaned = clean_project_fields(fields, partial=True)
        project = self.get_project(key)
        new_slug = cleaned.get("slug")
        if new_slug and new_slug != project.slug and self._find_project_by_slug(new_slug):
            raise ConflictError("A project with this slug already exists")
        updated = self._update_project(project.id, cleaned)
        logger.info("Updated project %s (%s)", updated.slug, ", ".join(cleaned) or "touch")
        return updated

    def delete_project(self, key: str) -> None:
        project = self.get_project(key)
        self._remove_project(project.id)
        logger.info("Deleted project %s", project.slug)

    def set_thumbnail(self, project_slug: str, image_slug: str) -> Tuple[Project, Image]:
        project = self.get_project(project_slug)
        image = self.get_image_metadata(image_slug)
        updated = self._update_project(
            project.id,
            {
                "thumbnail": image.id,
                "thumbnail_slug": image.slug,
                "thumbnail_url": image_url(image.slug, self.url_prefix),
                "thumbnail_filename": image.filename,
            },
        )
        return updated, image

    def upload_thumbnail(
        self,
        project_slug: str,
        content: bytes,
        mime_type: str,
        filename: Optional[str] = None,
    ) -> Tuple[Project, Image]:
        project = self.get_project(project_slug)
        image = self.put_image(
            mockup_image_slug(project.slug),
            content,
            mime_type,
            name=f"{project.slug} Mockup",
            category="project",
            filename=filename,
        )
        return self.set_thumbnail(project.slug, image.slug)

    def _screen_for(self, title: str, description: str, image: Optional[Image]) -> Screen:
        if image is None:
            return Screen(title=title, description=description)
        return Screen(
            title=title,
            description=description,
            image=image.id,
            image_slug=image.slug,
            image_url=image_url(image.slug, self.url_prefix),
        )

    def add_screen(
        self,
        project_slug: str,
        title: str,
        description: str,
        *,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
        image_slug: Optional[str] = None,
    ) -> Project:
        if not title or not title.strip() or not description:
            raise ValidationError("Screen title and description are required")
        project = self.get_project(project_slug)
        with self.locks.hold(f"project:{project.id}"):
            if content:
                image = self.put_image(
                    screen_image_slug(project.slug, title),
                    content,
                    mime_type or DEFAULT_MIME_TYPE,
                    name=title,
                    category="project",
                    filename=filename,
                )
            elif image_slug:
                image = self.get_image_metadata(image_slug)
            else:
                image = None
            current = self.get_project(project.id)
            screens = list(current.screens)
            screens.append(self._screen_for(title, description, image))
            return self._update_project(project.id, {"screens": screens})

    def update_screen(
        self,
        project_slug: str,
        index: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        content: Optional[bytes] = None,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> Project:
        project = self.get_project(project_slug)
        with self.locks.hold(f"project:{project.id}"):
            screens = list(self.get_project(project.id).screens)
            if not 0 <= index < len(screens):
                raise ScreenIndexError(index)
            screen = screens[index]
            if title:
                screen = replace(screen, title=title)
            if description:
                screen = replace(screen, description=description)
            if content:
                image = self.put_image(
                    screen_image_slug(project.slug, screen.title),
                    content,
                    mime_type or DEFAULT_MIME_TYPE,
                    name=screen.title,
                    category="project",
                    filename=filename,
                )
                screen = self._screen_for(screen.title, screen.description, image)
            screens[index] = screen
            return self._update_project(project.id, {"screens": screens})

    def delete_screen(self, project_slug: str, index: int) -> Project:
        project = self.get_project(project_slug)
        with self.locks.hold(f"project:{project.id}"):
            screens = list(self.get_project(project.id).screens)
            if not 0 <= index < len(screens):
                raise ScreenIndexError(index)
            del screens[index]
            return self._update_project(project.id, {"screens": screens})

    def reorder_screen(self, project_slug: str, from_index: int, to_index: int) -> Project:
        project = self.get_project(project_slug)
        with self.locks.hold(f"project:{project.id}"):
            screens = list(self.get_project(project.id).screens)
            size = len(screens)
            if not (0 <= from_index < size and 0 <= to_index < size):
                raise InvalidIndexError()
            moved = screens.pop(from_index)
            screens.insert(to_index, moved)
            return self._update_project(project.id, {"screens": screens})

    def populate_project(self, project: Project) -> dict:
        """Project dict with image references expanded to image summaries."""
        data = project.as_dict()
        cache: Dict[str, Optional[dict]] = {}

        def resolve(image_id: Optional[str]) -> Optional[dict]:
            if not image_id:
                return None
            if image_id not in cache:
                image = self._find_image_by_id(image_id)
                cache[image_id] = image.as_reference() if image else None
            return cache[image_id]

        data["thumbnail"] = resolve(project.thumbnail)
        for screen_data, screen in zip(data["screens"], project.screens):
            screen_data["image"] = resolve(screen.image)
        return data

    def project_stats(self) -> dict:
        return compute_project_stats(self.list_projects())


def compute_project_stats(projects: List[Project]) -> dict:
    groups: Dict[str, Dict[str, Any]] = {}
    technologies: set[str] = set()
    for project in projects:
        group = groups.setdefault(
            project.category,
            {"count": 0, "featuredCount": 0, "techTotal": 0, "totalScreens": 0},
        )
        group["count"] += 1
        group["featuredCount"] += 1 if project.featured else 0
        group["techTotal"] += len(project.technologies)
        group["totalScreens"] += len(project.screens)
        technologies.update(project.technologies)

    by_category = [
        {
            "category": category,
            "count": group["count"],
            "featuredCount": group["featuredCount"],
            "avgTechnologies": round(group["techTotal"] / group["count"], 1),
            "totalScreens": group["totalScreens"],
        }
        for category, group in groups.items()
    ]
    by_category.sort(key=lambda row: (-row["count"], row["category"]))
    return {
        "byCategory": by_category,
        "totals": {
            "totalProjects": len(projects),
            "totalFeatured": sum(1 for p in projects if p.featured),
            "totalScreens": sum(len(p.screens) for p in projects),
            "uniqueTechnologies": len(technologies),
        },
    }
