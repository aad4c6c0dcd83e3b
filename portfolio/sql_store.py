"""
Relational content store: metadata rows in SQL, image bytes in blob storage.

Nested lists (technologies, images, screens) are stored as JSON-encoded text
columns, so every change to a project's screens rewrites the whole column.
Column names follow the schema used by the edge deployment (D1) so exported
databases stay readable by both.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio.errors import ConflictError, NotFoundError, StorageError
from portfolio.locks import LockProvider
from portfolio.records import (
    Image,
    Message,
    Project,
    Screen,
    Skill,
    User,
    clean_message_fields,
    clean_skill_fields,
    now_ts,
    touch_ts,
)
from portfolio.slugs import blob_filename
from portfolio.storage import InMemoryStorageClient, StorageClient
from portfolio.stores import ContentStore

logger = logging.getLogger(__name__)


class SqlContentStore(ContentStore):
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g.,
    Postgres, or SQLite for local runs and tests).
    """

    backend_name = "sql"

    def __init__(
        self,
        database_url: str,
        storage: Optional[StorageClient] = None,
        *,
        locks: Optional[LockProvider] = None,
        url_prefix: str = "/api",
    ):
        super().__init__(locks=locks, url_prefix=url_prefix)
        if not database_url:
            raise ValueError("database_url is required for SqlContentStore")
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection, otherwise every thread sees an empty database.
            self.engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False
        )
        self.storage = storage if storage is not None else InMemoryStorageClient()
        Base.metadata.create_all(self.engine)

    def _new_id(self) -> str:
        return uuid.uuid4().hex

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _to_image(row: "ImageRow") -> Image:
        return Image(
            id=row.id,
            name=row.name,
            slug=row.slug,
            category=row.category,
            mime_type=row.mime_type,
            filename=row.filename,
            size=row.size,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _to_project(row: "ProjectRow") -> Project:
        return Project(
            id=row.id,
            title=row.title,
            slug=row.slug,
            description=row.description,
            short_description=row.short_description,
            category=row.category,
            technologies=json.loads(row.technologies or "[]"),
            images=json.loads(row.images or "[]"),
            screens=[Screen.from_dict(s) for s in json.loads(row.screens or "[]")],
            thumbnail=row.thumbnail_id,
            thumbnail_slug=row.thumbnail_slug,
            thumbnail_url=row.thumbnail_url,
            thumbnail_filename=row.thumbnail_filename,
            live_url=row.live_url,
            github_url=row.github_url,
            featured=bool(row.featured),
            order=row.order or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _to_skill(row: "SkillRow") -> Skill:
        return Skill(
            id=row.id,
            name=row.name,
            icon=row.icon,
            category=row.category,
            proficiency=row.proficiency,
            order=row.order or 0,
        )

    @staticmethod
    def _to_message(row: "MessageRow") -> Message:
        return Message(
            id=row.id,
            name=row.name,
            email=row.email,
            subject=row.subject,
            message=row.message,
            read=bool(row.read),
            created_at=row.created_at,
        )

    @staticmethod
    def _to_user(row: "UserRow") -> User:
        return User(
            id=row.id,
            email=row.email,
            name=row.name,
            password_hash=row.password,
            created_at=row.created_at,
        )

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _find_image(self, slug: str) -> Optional[Image]:
        with self.Session() as session:
            row = session.execute(
                select(ImageRow).where(ImageRow.slug == slug)
            ).scalar_one_or_none()
            return self._to_image(row) if row else None

    def _find_image_by_id(self, image_id: str) -> Optional[Image]:
        with self.Session() as session:
            row = session.get(ImageRow, image_id)
            return self._to_image(row) if row else None

    def _discard_blob(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except Exception as exc:
            logger.warning("Could not remove blob %s: %s", key, exc)

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
        key = blob_filename(slug, mime_type, filename)
        now = now_ts()
        with self.Session() as session:
            row = session.get(ImageRow, existing.id) if existing else None
            previous_key = row.filename if row else None
            if row is None:
                row = ImageRow(
                    id=self._new_id(),
                    name=name,
                    slug=slug,
                    category=category,
                    created_at=now,
                )
                session.add(row)
            row.mime_type = mime_type
            row.size = len(content)
            row.filename = key
            row.updated_at = touch_ts(row.updated_at)
            try:
                session.flush()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Image with this slug already exists") from exc

            # The row is only committed once the blob is in place.
            try:
                self.storage.put_bytes(key, content, mime_type)
            except Exception as exc:
                session.rollback()
                logger.error("Blob upload for %s failed: %s", key, exc)
                raise StorageError("Failed to upload image", path=key) from exc
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if previous_key != key:
                    self._discard_blob(key)
                raise ConflictError("Image with this slug already exists") from exc
            except Exception:
                session.rollback()
                if previous_key != key:
                    self._discard_blob(key)
                raise
            image = self._to_image(row)

        if previous_key and previous_key != key:
            self._discard_blob(previous_key)
        return image

    def _read_image_bytes(self, image: Image) -> bytes:
        return self.storage.get_bytes(image.filename)

    def _query_images(self, category: Optional[str]) -> List[Image]:
        with self.Session() as session:
            stmt = select(ImageRow)
            if category:
                stmt = stmt.where(ImageRow.category == category)
            return [self._to_image(row) for row in session.execute(stmt).scalars()]

    def _remove_image(self, image: Image) -> None:
        with self.Session() as session:
            row = session.get(ImageRow, image.id)
            if row is None:
                raise NotFoundError("Image not found")
            session.delete(row)
            session.commit()
        self._discard_blob(image.filename)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _find_project(self, key: str) -> Optional[Project]:
        with self.Session() as session:
            row = session.get(ProjectRow, key)
            if row is None:
                row = session.execute(
                    select(ProjectRow).where(ProjectRow.slug == key)
                ).scalar_one_or_none()
            return self._to_project(row) if row else None

    def _find_project_by_slug(self, slug: str) -> Optional[Project]:
        with self.Session() as session:
            row = session.execute(
                select(ProjectRow).where(ProjectRow.slug == slug)
            ).scalar_one_or_none()
            return self._to_project(row) if row else None

    def _insert_project(self, project: Project) -> Project:
        with self.Session() as session:
            row = ProjectRow(
                id=project.id,
                title=project.title,
                slug=project.slug,
                description=project.description,
                short_description=project.short_description,
                category=project.category,
                technologies=json.dumps(project.technologies),
                images=json.dumps(project.images),
                screens=json.dumps([s.as_dict() for s in project.screens]),
                thumbnail_id=project.thumbnail,
                thumbnail_slug=project.thumbnail_slug,
                thumbnail_url=project.thumbnail_url,
                thumbnail_filename=project.thumbnail_filename,
                live_url=project.live_url,
                github_url=project.github_url,
                featured=project.featured,
                order=project.order,
                created_at=project.created_at,
                updated_at=project.updated_at,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("A project with this slug already exists") from exc
            return self._to_project(row)

    def _update_project(self, project_id: str, changes: Dict[str, Any]) -> Project:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if row is None:
                raise NotFoundError("Project not found")
            for attr, value in changes.items():
                if attr == "screens":
                    row.screens = json.dumps([screen.as_dict() for screen in value])
                elif attr in ("technologies", "images"):
                    setattr(row, attr, json.dumps(value))
                elif attr == "thumbnail":
                    row.thumbnail_id = value
                else:
                    setattr(row, attr, value)
            row.updated_at = touch_ts(row.updated_at)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("A project with this slug already exists") from exc
            return self._to_project(row)

    def _remove_project(self, project_id: str) -> None:
        with self.Session() as session:
            row = session.get(ProjectRow, project_id)
            if row is None:
                raise NotFoundError("Project not found")
            session.delete(row)
            session.commit()

    def list_projects(
        self, category: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Project]:
        with self.Session() as session:
            stmt = select(ProjectRow)
            if category:
                stmt = stmt.where(ProjectRow.category == category)
            if featured:
                stmt = stmt.where(ProjectRow.featured.is_(True))
            stmt = stmt.order_by(ProjectRow.order.asc(), ProjectRow.created_at.desc())
            return [self._to_project(row) for row in session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def list_skills(self, category: Optional[str] = None) -> List[Skill]:
        with self.Session() as session:
            stmt = select(SkillRow)
            if category:
                stmt = stmt.where(SkillRow.category == category)
            stmt = stmt.order_by(SkillRow.order.asc(), SkillRow.proficiency.desc())
            return [self._to_skill(row) for row in session.execute(stmt).scalars()]

    def get_skill(self, skill_id: str) -> Skill:
        with self.Session() as session:
            row = session.get(SkillRow, skill_id)
            if row is None:
                raise NotFoundError("Skill not found")
            return self._to_skill(row)

    def _skill_name_taken(self, session: Session, name: str, skill_id: Optional[str] = None) -> bool:
        row = session.execute(
            select(SkillRow).where(SkillRow.name == name)
        ).scalar_one_or_none()
        return row is not None and row.id != skill_id

    def create_skill(self, fields: Dict[str, Any]) -> Skill:
        cleaned = clean_skill_fields(fields)
        with self.Session() as session:
            if self._skill_name_taken(session, cleaned["name"]):
                raise ConflictError("A skill with this name already exists")
            row = SkillRow(id=self._new_id(), **cleaned)
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("A skill with this name already exists") from exc
            return self._to_skill(row)

    def update_skill(self, skill_id: str, fields: Dict[str, Any]) -> Skill:
        cleaned = clean_skill_fields(fields, partial=True)
        with self.Session() as session:
            row = session.get(SkillRow, skill_id)
            if row is None:
                raise NotFoundError("Skill not found")
            if "name" in cleaned and self._skill_name_taken(session, cleaned["name"], skill_id):
                raise ConflictError("A skill with this name already exists")
            for attr, value in cleaned.items():
                setattr(row, attr, value)
            session.commit()
            return self._to_skill(row)

    def delete_skill(self, skill_id: str) -> None:
        with self.Session() as session:
            row = session.get(SkillRow, skill_id)
            if row is None:
                raise NotFoundError("Skill not found")
            session.delete(row)
            session.commit()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def create_message(
        self, fields: Dict[str, Any], *, created_at: Optional[float] = None
    ) -> Message:
        cleaned = clean_message_fields(fields)
        if created_at is None:
            created_at = now_ts()
        with self.Session() as session:
            row = MessageRow(id=self._new_id(), read=False, created_at=created_at, **cleaned)
            session.add(row)
            session.commit()
            return self._to_message(row)

    def get_message(self, message_id: str) -> Message:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            if row is None:
                raise NotFoundError("Message not found")
            return self._to_message(row)

    def list_messages(self, read: Optional[bool] = None) -> List[Message]:
        with self.Session() as session:
            stmt = select(MessageRow)
            if read is not None:
                stmt = stmt.where(MessageRow.read == read)
            stmt = stmt.order_by(MessageRow.created_at.desc())
            return [self._to_message(row) for row in session.execute(stmt).scalars()]

    def mark_message_read(self, message_id: str) -> Message:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            if row is None:
                raise NotFoundError("Message not found")
            row.read = True
            session.commit()
            return self._to_message(row)

    def delete_message(self, message_id: str) -> None:
        with self.Session() as session:
            row = session.get(MessageRow, message_id)
            if row is None:
                raise NotFoundError("Message not found")
            session.delete(row)
            session.commit()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, email: str, name: str, password_hash: str) -> User:
        email = email.strip().lower()
        with self.Session() as session:
            existing = session.execute(
                select(UserRow).where(UserRow.email == email)
            ).scalar_one_or_none()
            if existing is not None:
                raise ConflictError("A user with this email already exists")
            row = UserRow(
                id=self._new_id(),
                email=email,
                name=name.strip(),
                password=password_hash,
                created_at=now_ts(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("A user with this email already exists") from exc
            return self._to_user(row)

    def get_user(self, user_id: str) -> Optional[User]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self.Session() as session:
            row = session.execute(
                select(UserRow).where(UserRow.email == email.strip().lower())
            ).scalar_one_or_none()
            return self._to_user(row) if row else None

    def list_users(self) -> List[User]:
        with self.Session() as session:
            rows = session.execute(select(UserRow).order_by(UserRow.created_at)).scalars()
            return [self._to_user(row) for row in rows]

    def reset(self) -> None:
        with self.Session() as session:
            for table in reversed(Base.metadata.sorted_tables):
                session.execute(table.delete())
            session.commit()
        if isinstance(self.storage, InMemoryStorageClient):
            self.storage.reset()


Base = declarative_base()


class ImageRow(Base):
    __tablename__ = "images"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    category = Column(String, nullable=False, index=True)
    mime_type = Column("mimeType", String, nullable=False)
    size = Column(Integer, nullable=False)
    filename = Column(String, nullable=False)
    created_at = Column("createdAt", Float, nullable=False)
    updated_at = Column("updatedAt", Float, nullable=False)


class ProjectRow(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False)
    short_description = Column("shortDescription", String, nullable=False)
    category = Column(String, nullable=False, index=True)
    technologies = Column(Text, nullable=False, default="[]")  # JSON array
    thumbnail_id = Column("thumbnailId", String, nullable=True)
    thumbnail_slug = Column("thumbnailSlug", String, nullable=True)
    thumbnail_url = Column("thumbnailUrl", String, nullable=True)
    thumbnail_filename = Column("thumbnailFilename", String, nullable=True)
    images = Column(Text, nullable=False, default="[]")  # JSON array
    screens = Column(Text, nullable=False, default="[]")  # JSON array
    live_url = Column("liveUrl", String, nullable=True)
    github_url = Column("githubUrl", String, nullable=True)
    featured = Column(Boolean, nullable=False, default=False, index=True)
    order = Column("order", Integer, nullable=False, default=0)
    created_at = Column("createdAt", Float, nullable=False)
    updated_at = Column("updatedAt", Float, nullable=False)


class SkillRow(Base):
    __tablename__ = "skills"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    icon = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    proficiency = Column(Integer, nullable=False)
    order = Column("order", Integer, nullable=False, default=0)


class MessageRow(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column("createdAt", Float, nullable=False, index=True)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    password = Column(String, nullable=False)
    created_at = Column("createdAt", Float, nullable=False)
