"""
Copy content between two content stores (document <-> relational+blob).

Only the public ``ContentStore`` operations are used, so either variant can be
the source or the target. Images are copied first so project thumbnails and
screens can be re-linked by image slug in the target. Project and message
timestamps are carried over, so list order is the same on both sides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from portfolio.errors import NotFoundError
from portfolio.records import Image, Project, Screen
from portfolio.slugs import image_url
from portfolio.stores import ContentStore

logger = logging.getLogger(__name__)

KINDS = ("images", "skills", "users", "projects", "messages")


@dataclass
class MigrationReport:
    copied: Dict[str, int] = field(default_factory=lambda: dict.fromkeys(KINDS, 0))
    skipped: Dict[str, int] = field(default_factory=lambda: dict.fromkeys(KINDS, 0))
    warnings: List[str] = field(default_factory=list)
    dry_run: bool = False

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def summary(self) -> str:
        lines = [f"{'Dry run' if self.dry_run else 'Migration'} summary:"]
        for kind in KINDS:
            lines.append(
                f"  {kind}: {self.copied[kind]} copied, {self.skipped[kind]} skipped"
            )
        if self.warnings:
            lines.append(f"  {len(self.warnings)} warning(s)")
        return "\n".join(lines)


def migrate_content(
    source: ContentStore, target: ContentStore, *, dry_run: bool = False
) -> MigrationReport:
    report = MigrationReport(dry_run=dry_run)
    logger.info(
        "Migrating content %s -> %s%s",
        source.backend_name,
        target.backend_name,
        " (dry run)" if dry_run else "",
    )
    _copy_images(source, target, report)
    _copy_skills(source, target, report)
    _copy_users(source, target, report)
    _copy_projects(source, target, report)
    _copy_messages(source, target, report)
    logger.info(report.summary())
    return report


def _copy_images(source: ContentStore, target: ContentStore, report: MigrationReport) -> None:
    for image in source.list_images():
        try:
            _, content = source.get_image(image.slug)
        except NotFoundError:
            report.warn(f"Image {image.slug} has no stored bytes; skipped")
            report.skipped["images"] += 1
            continue
        if not report.dry_run:
            target.put_image(
                image.slug,
                content,
                image.mime_type,
                name=image.name,
                category=image.category,
                filename=image.filename,
            )
        report.copied["images"] += 1


def _copy_skills(source: ContentStore, target: ContentStore, report: MigrationReport) -> None:
    existing = {skill.name for skill in target.list_skills()}
    for skill in source.list_skills():
        if skill.name in existing:
            report.skipped["skills"] += 1
            continue
        if not report.dry_run:
            target.create_skill(
                {
                    "name": skill.name,
                    "icon": skill.icon,
                    "category": skill.category,
                    "proficiency": skill.proficiency,
                    "order": skill.order,
                }
            )
        report.copied["skills"] += 1


def _copy_users(source: ContentStore, target: ContentStore, report: MigrationReport) -> None:
    for user in source.list_users():
        if target.get_user_by_email(user.email) is not None:
            report.skipped["users"] += 1
            continue
        if not report.dry_run:
            # Hashes carry their own salt, so they stay valid as-is.
            target.create_user(user.email, user.name, user.password_hash)
        report.copied["users"] += 1


def _project_exists(store: ContentStore, slug: str) -> bool:
    try:
        store.get_project(slug)
    except NotFoundError:
        return False
    return True


def _copy_projects(source: ContentStore, target: ContentStore, report: MigrationReport) -> None:
    for project in source.list_projects():
        if _project_exists(target, project.slug):
            report.skipped["projects"] += 1
            continue
        if not report.dry_run:
            _copy_project(project, source, target, report)
        report.copied["projects"] += 1


def _copy_project(
    project: Project, source: ContentStore, target: ContentStore, report: MigrationReport
) -> None:
    thumbnail = _linked_image(
        source,
        target,
        project.thumbnail_slug,
        project.thumbnail,
        f"Project {project.slug}: thumbnail",
        report,
    )
    screens = []
    for screen in project.screens:
        image = _linked_image(
            source,
            target,
            screen.image_slug,
            screen.image,
            f"Project {project.slug}: screen {screen.title!r}",
            report,
        )
        screens.append(
            Screen(
                title=screen.title,
                description=screen.description,
                image=image.id if image else None,
                image_slug=image.slug if image else None,
                image_url=image_url(image.slug, target.url_prefix) if image else None,
            )
        )
    target.restore_project(
        replace(
            project,
            screens=screens,
            thumbnail=thumbnail.id if thumbnail else None,
            thumbnail_slug=thumbnail.slug if thumbnail else None,
            thumbnail_url=image_url(thumbnail.slug, target.url_prefix) if thumbnail else None,
            thumbnail_filename=thumbnail.filename if thumbnail else None,
        )
    )


def _linked_image(
    source: ContentStore,
    target: ContentStore,
    slug: Optional[str],
    image_id: Optional[str],
    label: str,
    report: MigrationReport,
) -> Optional[Image]:
    """The target image a source reference points at, matched by slug."""
    if not slug and not image_id:
        return None
    if not slug:
        # Mongoose-era documents reference images by id only.
        try:
            slug = source.get_image_metadata_by_id(image_id).slug
        except NotFoundError:
            report.warn(f"{label}: image {image_id} not found")
            return None
    try:
        return target.get_image_metadata(slug)
    except NotFoundError:
        report.warn(f"{label}: image {slug} not found")
        return None


def _copy_messages(source: ContentStore, target: ContentStore, report: MigrationReport) -> None:
    existing = {(m.email, m.subject, m.message) for m in target.list_messages()}
    for message in source.list_messages():
        if (message.email, message.subject, message.message) in existing:
            report.skipped["messages"] += 1
            continue
        if not report.dry_run:
            copied = target.create_message(
                {
                    "name": message.name,
                    "email": message.email,
                    "subject": message.subject,
                    "message": message.message,
                },
                created_at=message.created_at,
            )
            if message.read:
                target.mark_message_read(copied.id)
        report.copied["messages"] += 1
