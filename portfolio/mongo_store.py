"""
Document content store backed by MongoDB.

Image bytes are embedded (base64) in the image documents. Projects hold true
ObjectId references to their thumbnail and screen images next to the
denormalized display URLs.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from portfolio.errors import ConflictError, NotFoundError
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
from portfolio.stores import ContentStore

# Record attribute -> document field, where the two differ.
PROJECT_DOC_FIELDS = {
    "short_description": "shortDescription",
    "thumbnail_slug": "thumbnailSlug",
    "thumbnail_url": "thumbnailUrl",
    "thumbnail_filename": "thumbnailFilename",
    "live_url": "liveUrl",
    "github_url": "githubUrl",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

IMAGE_METADATA_PROJECTION = {"data": 0}


def _oid(value: Optional[str]) -> Optional[ObjectId]:
    if value is None:
        return None
    if isinstance(value, ObjectId):
        return value
    return ObjectId(value) if ObjectId.is_valid(value) else None


def _epoch(value: Any) -> Optional[float]:
    # Documents written by the Mongoose backend carry BSON dates, read back as
    # naive UTC datetimes.
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return value


def _decode_image_data(data: str) -> bytes:
    # Documents written by older tooling may carry a data-URL prefix.
    if data.startswith("data:"):
        data = data.split(",", 1)[1]
    return base64.b64decode(data)


class MongoContentStore(ContentStore):
    """pymongo implementation over one database handle."""

    backend_name = "mongo"

    def __init__(
        self,
        database: Database,
        *,
        locks: Optional[LockProvider] = None,
        url_prefix: str = "/api",
    ):
        super().__init__(locks=locks, url_prefix=url_prefix)
        self.db = database
        self.images = database["images"]
        self.projects = database["projects"]
        self.skills = database["skills"]
        self.messages = database["messages"]
        self.users = database["users"]
        self._ensure_indexes()

    @classmethod
    def from_uri(cls, uri: str, database_name: str, **kwargs) -> "MongoContentStore":
        client = MongoClient(uri)
        return cls(client[database_name], **kwargs)

    def _ensure_indexes(self) -> None:
        self.images.create_index("slug", unique=True)
        self.images.create_index("category")
        self.projects.create_index("slug", unique=True)
        self.projects.create_index("category")
        self.projects.create_index("featured")
        self.skills.create_index("name", unique=True)
        self.skills.create_index("category")
        self.messages.create_index("read")
        self.messages.create_index([("createdAt", DESCENDING)])
        self.users.create_index("email", unique=True)

    def _new_id(self) -> str:
        return str(ObjectId())

    # ------------------------------------------------------------------
    # Document conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _to_image(doc: dict) -> Image:
        return Image(
            id=str(doc["_id"]),
            name=doc["name"],
            slug=doc["slug"],
            category=doc["category"],
            mime_type=doc["mimeType"],
            filename=doc.get("filename") or blob_filename(doc["slug"], doc["mimeType"]),
            size=doc["size"],
            created_at=_epoch(doc.get("createdAt")),
            updated_at=_epoch(doc.get("updatedAt")),
        )

    @staticmethod
    def _to_project(doc: dict) -> Project:
        thumbnail = doc.get("thumbnail")
        return Project(
            id=str(doc["_id"]),
            title=doc["title"],
            slug=doc["slug"],
            description=doc["description"],
            short_description=doc["shortDescription"],
            category=doc["category"],
            technologies=list(doc.get("technologies") or []),
            images=list(doc.get("images") or []),
            screens=[Screen.from_dict(s) for s in doc.get("screens") or []],
            thumbnail=str(thumbnail) if thumbnail else None,
            thumbnail_slug=doc.get("thumbnailSlug"),
            thumbnail_url=doc.get("thumbnailUrl"),
            thumbnail_filename=doc.get("thumbnailFilename"),
            live_url=doc.get("liveUrl"),
            github_url=doc.get("githubUrl"),
            featured=bool(doc.get("featured", False)),
            order=doc.get("order", 0),
            created_at=_epoch(doc.get("createdAt")),
            updated_at=_epoch(doc.get("updatedAt")),
        )

    @staticmethod
    def _screen_doc(screen: Screen) -> dict:
        data = screen.as_dict()
        data["image"] = _oid(screen.image)
        return data

    @staticmethod
    def _to_skill(doc: dict) -> Skill:
        return Skill(
            id=str(doc["_id"]),
            name=doc["name"],
            icon=doc["icon"],
            category=doc["category"],
            proficiency=doc["proficiency"],
            order=doc.get("order", 0),
        )

    @staticmethod
    def _to_message(doc: dict) -> Message:
        return Message(
            id=str(doc["_id"]),
            name=doc["name"],
            email=doc["email"],
            subject=doc["subject"],
            message=doc["message"],
            read=bool(doc.get("read", False)),
            created_at=_epoch(doc.get("createdAt")),
        )

    @staticmethod
    def _to_user(doc: dict) -> User:
        return User(
            id=str(doc["_id"]),
            email=doc["email"],
            name=doc["name"],
            password_hash=doc["password"],
            created_at=_epoch(doc.get("createdAt")),
        )

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _find_image(self, slug: str) -> Optional[Image]:
        doc = self.images.find_one({"slug": slug}, IMAGE_METADATA_PROJECTION)
        return self._to_image(doc) if doc else None

    def _find_image_by_id(self, image_id: str) -> Optional[Image]:
        oid = _oid(image_id)
        if oid is None:
            return None
        doc = self.images.find_one({"_id": oid}, IMAGE_METADATA_PROJECTION)
        return self._to_image(doc) if doc else None

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
        content_fields = {
            "mimeType": mime_type,
            "data": base64.b64encode(content).decode("ascii"),
            "size": len(content),
            "filename": blob_filename(slug, mime_type, filename),
        }
        if existing is not None:
            doc = self.images.find_one_and_update(
                {"_id": ObjectId(existing.id)},
                {"$set": {**content_fields, "updatedAt": touch_ts(existing.updated_at)}},
                projection=IMAGE_METADATA_PROJECTION,
                return_document=ReturnDocument.AFTER,
            )
            if doc is not None:
                return self._to_image(doc)

        now = now_ts()
        doc = {
            "_id": ObjectId(),
            "name": name,
            "slug": slug,
            "category": category,
            **content_fields,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            self.images.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ConflictError("Image with this slug already exists") from exc
        return self._to_image(doc)

    def _read_image_bytes(self, image: Image) -> bytes:
        doc = self.images.find_one({"_id": ObjectId(image.id)}, {"data": 1})
        if not doc or not doc.get("data"):
            raise FileNotFoundError(image.slug)
        return _decode_image_data(doc["data"])

    def _query_images(self, category: Optional[str]) -> List[Image]:
        query = {"category": category} if category else {}
        return [
            self._to_image(doc)
            for doc in self.images.find(query, IMAGE_METADATA_PROJECTION)
        ]

    def _remove_image(self, image: Image) -> None:
        result = self.images.delete_one({"_id": ObjectId(image.id)})
        if result.deleted_count == 0:
            raise NotFoundError("Image not found")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _find_project(self, key: str) -> Optional[Project]:
        doc = None
        oid = _oid(key)
        if oid is not None:
            doc = self.projects.find_one({"_id": oid})
        if doc is None:
            doc = self.projects.find_one({"slug": key})
        return self._to_project(doc) if doc else None

    def _find_project_by_slug(self, slug: str) -> Optional[Project]:
        doc = self.projects.find_one({"slug": slug})
        return self._to_project(doc) if doc else None

    def _project_doc_value(self, attr: str, value: Any) -> Any:
        if attr == "screens":
            return [self._screen_doc(screen) for screen in value]
        if attr == "thumbnail":
            return _oid(value)
        return value

    def _insert_project(self, project: Project) -> Project:
        doc: Dict[str, Any] = {"_id": ObjectId(project.id)}
        for attr, value in vars(project).items():
            if attr == "id":
                continue
            doc[PROJECT_DOC_FIELDS.get(attr, attr)] = self._project_doc_value(attr, value)
        try:
            self.projects.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ConflictError("A project with this slug already exists") from exc
        return self._to_project(doc)

    def _update_project(self, project_id: str, changes: Dict[str, Any]) -> Project:
        oid = ObjectId(project_id)
        current = self.projects.find_one({"_id": oid}, {"updatedAt": 1})
        if current is None:
            raise NotFoundError("Project not found")
        update = {
            PROJECT_DOC_FIELDS.get(attr, attr): self._project_doc_value(attr, value)
            for attr, value in changes.items()
        }
        update["updatedAt"] = touch_ts(_epoch(current.get("updatedAt")))
        try:
            doc = self.projects.find_one_and_update(
                {"_id": oid},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise ConflictError("A project with this slug already exists") from exc
        if doc is None:
            raise NotFoundError("Project not found")
        return self._to_project(doc)

    def _remove_project(self, project_id: str) -> None:
        result = self.projects.delete_one({"_id": ObjectId(project_id)})
        if result.deleted_count == 0:
            raise NotFoundError("Project not found")

    def list_projects(
        self, category: Optional[str] = None, featured: Optional[bool] = None
    ) -> List[Project]:
        query: Dict[str, Any] = {}
        if category:
            query["category"] = category
        if featured:
            query["featured"] = True
        cursor = self.projects.find(query).sort(
            [("order", ASCENDING), ("createdAt", DESCENDING)]
        )
        return [self._to_project(doc) for doc in cursor]

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def list_skills(self, category: Optional[str] = None) -> List[Skill]:
        query = {"category": category} if category else {}
        cursor = self.skills.find(query).sort(
            [("order", ASCENDING), ("proficiency", DESCENDING)]
        )
        return [self._to_skill(doc) for doc in cursor]

    def _find_skill_doc(self, skill_id: str) -> dict:
        oid = _oid(skill_id)
        doc = self.skills.find_one({"_id": oid}) if oid else None
        if doc is None:
            raise NotFoundError("Skill not found")
        return doc

    def get_skill(self, skill_id: str) -> Skill:
        return self._to_skill(self._find_skill_doc(skill_id))

    def create_skill(self, fields: Dict[str, Any]) -> Skill:
        cleaned = clean_skill_fields(fields)
        if self.skills.find_one({"name": cleaned["name"]}):
            raise ConflictError("A skill with this name already exists")
        doc = {"_id": ObjectId(), **cleaned}
        try:
            self.skills.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ConflictError("A skill with this name already exists") from exc
        return self._to_skill(doc)

    def update_skill(self, skill_id: str, fields: Dict[str, Any]) -> Skill:
        cleaned = clean_skill_fields(fields, partial=True)
        doc = self._find_skill_doc(skill_id)
        if "name" in cleaned:
            other = self.skills.find_one({"name": cleaned["name"]})
            if other is not None and other["_id"] != doc["_id"]:
                raise ConflictError("A skill with this name already exists")
        if not cleaned:
            return self._to_skill(doc)
        updated = self.skills.find_one_and_update(
            {"_id": doc["_id"]},
            {"$set": cleaned},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise NotFoundError("Skill not found")
        return self._to_skill(updated)

    def delete_skill(self, skill_id: str) -> None:
        doc = self._find_skill_doc(skill_id)
        self.skills.delete_one({"_id": doc["_id"]})

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def create_message(
        self, fields: Dict[str, Any], *, created_at: Optional[float] = None
    ) -> Message:
        cleaned = clean_message_fields(fields)
        doc = {
            "_id": ObjectId(),
            **cleaned,
            "read": False,
            "createdAt": now_ts() if created_at is None else created_at,
        }
        self.messages.insert_one(doc)
        return self._to_message(doc)

    def get_message(self, message_id: str) -> Message:
        oid = _oid(message_id)
        doc = self.messages.find_one({"_id": oid}) if oid else None
        if doc is None:
            raise NotFoundError("Message not found")
        return self._to_message(doc)

    def list_messages(self, read: Optional[bool] = None) -> List[Message]:
        query = {} if read is None else {"read": read}
        cursor = self.messages.find(query).sort("createdAt", DESCENDING)
        return [self._to_message(doc) for doc in cursor]

    def mark_message_read(self, message_id: str) -> Message:
        oid = _oid(message_id)
        doc = None
        if oid is not None:
            doc = self.messages.find_one_and_update(
                {"_id": oid},
                {"$set": {"read": True}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise NotFoundError("Message not found")
        return self._to_message(doc)

    def delete_message(self, message_id: str) -> None:
        oid = _oid(message_id)
        result = self.messages.delete_one({"_id": oid}) if oid else None
        if result is None or result.deleted_count == 0:
            raise NotFoundError("Message not found")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, email: str, name: str, password_hash: str) -> User:
        email = email.strip().lower()
        if self.users.find_one({"email": email}):
            raise ConflictError("A user with this email already exists")
        doc = {
            "_id": ObjectId(),
            "email": email,
            "name": name.strip(),
            "password": password_hash,
            "createdAt": now_ts(),
        }
        try:
            self.users.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ConflictError("A user with this email already exists") from exc
        return self._to_user(doc)

    def get_user(self, user_id: str) -> Optional[User]:
        oid = _oid(user_id)
        doc = self.users.find_one({"_id": oid}) if oid else None
        return self._to_user(doc) if doc else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        doc = self.users.find_one({"email": email.strip().lower()})
        return self._to_user(doc) if doc else None

    def list_users(self) -> List[User]:
        return [self._to_user(doc) for doc in self.users.find().sort("createdAt", ASCENDING)]

    def reset(self) -> None:
        for collection in (self.images, self.projects, self.skills, self.messages, self.users):
            collection.delete_many({})
