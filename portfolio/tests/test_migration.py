import base64
import unittest
import uuid
from datetime import datetime, timezone

import mongomock
from bson import ObjectId

from portfolio.auth import AuthService, hash_password
from portfolio.config import Settings
from portfolio.migration import migrate_content
from portfolio.mongo_store import MongoContentStore
from portfolio.sql_store import SqlContentStore
from portfolio.storage import InMemoryStorageClient

PNG = b"\x89PNG\r\n\x1a\nfake-png"


class MigrationTests(unittest.TestCase):
    def setUp(self):
        self.document = MongoContentStore(
            mongomock.MongoClient()[f"portfolio-{uuid.uuid4().hex}"]
        )
        self.storage = InMemoryStorageClient()
        self.relational = SqlContentStore("sqlite+pysqlite:///:memory:", self.storage)
        self._seed(self.document)

    def _seed(self, store):
        store.put_image("cover", PNG, "image/png", name="Cover", category="project")
        store.put_image("icon-figma", b"<svg/>", "image/svg+xml", name="Figma", category="icon")
        store.create_skill(
            {"name": "Figma", "icon": "icon-figma", "category": "design", "proficiency": 5}
        )
        store.create_user("admin@example.com", "Admin", hash_password("long-enough"))
        store.create_project(
            {
                "title": "Acme",
                "slug": "acme",
                "description": "Acme redesign",
                "short_description": "Acme",
                "category": "branding",
                "technologies": ["Figma"],
                "featured": True,
                "order": 2,
            }
        )
        store.set_thumbnail("acme", "cover")
        store.add_screen("acme", "Home", "Landing page", content=PNG, mime_type="image/png")
        store.add_screen("acme", "About", "About page", image_slug="cover")
        message = store.create_message(
            {"name": "Ada", "email": "ada@example.com", "subject": "Hi", "message": "Hello"}
        )
        store.mark_message_read(message.id)
        store.create_message(
            {"name": "Bob", "email": "bob@example.com", "subject": "Yo", "message": "Hey"}
        )

    def test_document_to_relational(self):
        report = migrate_content(self.document, self.relational)

        self.assertEqual(
            report.copied,
            {"images": 3, "skills": 1, "users": 1, "projects": 1, "messages": 2},
        )
        self.assertEqual(report.warnings, [])

        image, content = self.relational.get_image("cover")
        self.assertEqual(content, PNG)
        self.assertEqual(self.storage.stored_objects["cover.png"], PNG)
        self.assertEqual(image.name, "Cover")

        project = self.relational.get_project("acme")
        self.assertTrue(project.featured)
        self.assertEqual(project.order, 2)
        self.assertEqual(project.thumbnail, image.id)
        self.assertEqual(project.thumbnail_url, "/api/images/cover")
        self.assertEqual([s.title for s in project.screens], ["Home", "About"])
        self.assertEqual(project.screens[0].image_slug, "project-acme-home")
        home = self.relational.get_image_metadata("project-acme-home")
        self.assertEqual(project.screens[0].image, home.id)

        messages = self.relational.list_messages()
        self.assertEqual([m.email for m in messages], ["bob@example.com", "ada@example.com"])
        self.assertEqual([m.read for m in messages], [False, True])

        # Hashes carry their own salt, so the account still logs in.
        auth = AuthService(self.relational, Settings(jwt_secret="test-secret"))
        _, user = auth.login("admin@example.com", "long-enough")
        self.assertEqual(user.email, "admin@example.com")

    def test_rerun_skips_existing_records(self):
        migrate_content(self.document, self.relational)
        report = migrate_content(self.document, self.relational)
        self.assertEqual(
            report.skipped,
            {"images": 0, "skills": 1, "users": 1, "projects": 1, "messages": 2},
        )
        self.assertEqual(len(self.relational.list_projects()), 1)
        self.assertEqual(len(self.relational.list_images()), 3)

    def test_dry_run_writes_nothing(self):
        report = migrate_content(self.document, self.relational, dry_run=True)
        self.assertTrue(report.dry_run)
        self.assertEqual(report.copied["projects"], 1)
        self.assertEqual(self.relational.list_projects(), [])
        self.assertEqual(self.relational.list_images(), [])
        self.assertIn("Dry run", report.summary())

    def test_relational_to_document(self):
        migrate_content(self.document, self.relational)
        target = MongoContentStore(mongomock.MongoClient()[f"portfolio-{uuid.uuid4().hex}"])
        report = migrate_content(self.relational, target)
        self.assertEqual(report.copied["projects"], 1)
        _, content = target.get_image("project-acme-home")
        self.assertEqual(content, PNG)
        self.assertEqual(
            [s.image_slug for s in target.get_project("acme").screens],
            ["project-acme-home", "cover"],
        )

    def test_dangling_screen_image_is_reported(self):
        self.document.delete_image("cover")
        report = migrate_content(self.document, self.relational)
        self.assertEqual(len(report.warnings), 2)
        project = self.relational.get_project("acme")
        self.assertIsNone(project.thumbnail)
        self.assertIsNone(project.screens[1].image)


    def test_project_and_message_order_survive(self):
        source = MongoContentStore(mongomock.MongoClient()[f"portfolio-{uuid.uuid4().hex}"])
        for slug in ("older", "newer"):
            source.create_project(
                {
                    "title": slug.title(),
                    "slug": slug,
                    "description": "Same order value",
                    "short_description": slug,
                    "category": "ui-design",
                }
            )
        # Same order value, so createdAt decides.
        source.projects.update_one({"slug": "older"}, {"$set": {"createdAt": 1000.0}})
        source.projects.update_one({"slug": "newer"}, {"$set": {"createdAt": 2000.0}})
        source.create_message(
            {"name": "Ada", "email": "ada@example.com", "subject": "First", "message": "1"},
            created_at=1000.0,
        )
        source.create_message(
            {"name": "Bob", "email": "bob@example.com", "subject": "Second", "message": "2"},
            created_at=2000.0,
        )

        migrate_content(source, self.relational)

        before = source.list_projects()
        after = self.relational.list_projects()
        self.assertEqual([p.slug for p in before], ["newer", "older"])
        self.assertEqual([p.slug for p in after], [p.slug for p in before])
        self.assertEqual([p.created_at for p in after], [p.created_at for p in before])
        self.assertEqual([p.updated_at for p in after], [p.updated_at for p in before])
        self.assertEqual(
            [m.created_at for m in self.relational.list_messages()], [2000.0, 1000.0]
        )


class MongooseDocumentTests(unittest.TestCase):
    """Documents as the Node backend wrote them: BSON dates, id-only references."""

    def setUp(self):
        self.database = mongomock.MongoClient()[f"portfolio-{uuid.uuid4().hex}"]
        self.source = MongoContentStore(self.database)
        self.created = datetime(2024, 3, 1, 12, 0, 0)
        self.image_id = ObjectId()
        self.database["images"].insert_one(
            {
                "_id": self.image_id,
                "name": "Cover",
                "slug": "cover",
                "category": "project",
                "mimeType": "image/png",
                "data": base64.b64encode(PNG).decode("ascii"),
                "size": len(PNG),
                "createdAt": self.created,
                "updatedAt": self.created,
                "__v": 0,
            }
        )
        self.database["projects"].insert_one(
            {
                "_id": ObjectId(),
                "title": "Acme",
                "slug": "acme",
                "description": "Acme redesign",
                "shortDescription": "Acme",
                "category": "branding",
                "technologies": ["Figma"],
                "thumbnail": self.image_id,
                "thumbnailUrl": "/api/images/cover",
                "images": [],
                "screens": [
                    {
                        "_id": ObjectId(),
                        "title": "Home",
                        "description": "Landing page",
                        "image": self.image_id,
                        "imageUrl": "/api/images/cover",
                    }
                ],
                "featured": True,
                "order": 1,
                "createdAt": self.created,
                "updatedAt": self.created,
                "__v": 0,
            }
        )

    def test_dates_read_as_timestamps(self):
        expected = self.created.replace(tzinfo=timezone.utc)
        image = self.source.get_image_metadata("cover")
        self.assertEqual(image.created_at, expected.timestamp())
        self.assertEqual(image.as_dict()["createdAt"], expected.isoformat())

        project = self.source.get_project("acme")
        self.assertEqual(project.as_dict()["updatedAt"], expected.isoformat())
        populated = self.source.populate_project(project)
        self.assertEqual(populated["thumbnail"]["slug"], "cover")
        self.assertEqual(populated["screens"][0]["image"]["slug"], "cover")

        updated = self.source.update_project("acme", {"featured": False})
        self.assertGreater(updated.updated_at, expected.timestamp())

    def test_id_only_references_are_relinked(self):
        target = SqlContentStore("sqlite+pysqlite:///:memory:", InMemoryStorageClient())
        report = migrate_content(self.source, target)
        self.assertEqual(report.warnings, [])

        cover = target.get_image_metadata("cover")
        project = target.get_project("acme")
        self.assertEqual(project.thumbnail, cover.id)
        self.assertEqual(project.thumbnail_slug, "cover")
        self.assertEqual(project.screens[0].image, cover.id)
        self.assertEqual(project.screens[0].image_slug, "cover")
        self.assertEqual(project.screens[0].image_url, "/api/images/cover")
        self.assertEqual(
            project.created_at, self.created.replace(tzinfo=timezone.utc).timestamp()
        )


if __name__ == "__main__":
    unittest.main()
