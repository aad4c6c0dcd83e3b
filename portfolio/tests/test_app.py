import unittest
from datetime import timedelta

from fastapi.testclient import TestClient

from portfolio.app import create_app
from portfolio.auth import AuthService
from portfolio.config import Settings, get_settings
from portfolio.dependencies import get_content_store
from portfolio.sql_store import SqlContentStore
from portfolio.storage import InMemoryStorageClient

PNG = b"\x89PNG\r\n\x1a\nfake-png"
JPEG = b"\xff\xd8\xff\xe0a-somewhat-longer-jpeg-payload"

PROJECT = {
    "title": "Acme Redesign",
    "slug": "acme",
    "description": "A full redesign of the Acme storefront.",
    "shortDescription": "Acme storefront redesign",
    "category": "ux-design",
    "technologies": ["Figma", "React"],
}


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(
            use_in_memory_backends=True, jwt_secret="test-secret", api_prefix="/api"
        )
        self.store = SqlContentStore("sqlite+pysqlite:///:memory:", InMemoryStorageClient())
        self.app = create_app(self.settings)
        self.app.dependency_overrides[get_content_store] = lambda: self.store
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(self.app)

        response = self.client.post(
            "/api/auth/signup",
            json={"email": "admin@example.com", "password": "long-enough", "name": "Admin"},
        )
        self.assertEqual(response.status_code, 201)
        self.token = response.json()["data"]["token"]
        self.headers = {"Authorization": f"Bearer {self.token}"}

    def create_project(self, **overrides):
        response = self.client.post(
            "/api/projects", json={**PROJECT, **overrides}, headers=self.headers
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def upload_image(self, slug="logo", content=PNG, mime_type="image/png", filename="logo.png"):
        return self.client.post(
            "/api/images",
            files={"file": (filename, content, mime_type)},
            data={"name": "Logo", "slug": slug, "category": "general"},
            headers=self.headers,
        )

    # General ---------------------------------------------------------------

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
        self.assertEqual(response.json()["backend"], "sql")

    def test_unknown_route(self):
        response = self.client.get("/api/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json(),
            {"success": False, "error": "Route GET /api/nope not found", "type": "NotFound"},
        )

    def test_unexpected_error_is_generic(self):
        class BrokenStore:
            def list_skills(self, category=None):
                raise RuntimeError("database password is hunter2")

        self.app.dependency_overrides[get_content_store] = lambda: BrokenStore()
        client = TestClient(self.app, raise_server_exceptions=False)
        response = client.get("/api/skills")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"success": False, "error": "Internal server error", "type": "InternalError"},
        )

    # Auth ------------------------------------------------------------------

    def test_protected_route_requires_token(self):
        response = self.client.post("/api/projects", json=PROJECT)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["reason"], "no_token")
        self.assertFalse(response.json()["success"])

    def test_login_failures_look_the_same(self):
        unknown = self.client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "long-enough"}
        )
        wrong = self.client.post(
            "/api/auth/login", json={"email": "admin@example.com", "password": "not-it-at-all"}
        )
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.json(), wrong.json())
        self.assertEqual(unknown.json()["error"], "Invalid email or password")

        ok = self.client.post(
            "/api/auth/login", json={"email": "admin@example.com", "password": "long-enough"}
        )
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["data"]["user"]["email"], "admin@example.com")
        self.assertNotIn("password", str(ok.json()["data"]["user"]))

    def test_verify_token_reasons(self):
        response = self.client.get("/api/auth/verify", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["user"]["name"], "Admin")

        user = self.store.get_user_by_email("admin@example.com")
        expired = AuthService(self.store, self.settings).create_token(
            user, expires_delta=timedelta(seconds=-30)
        )
        response = self.client.get(
            "/api/auth/verify", headers={"Authorization": f"Bearer {expired}"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["reason"], "token_expired")

        response = self.client.get(
            "/api/auth/verify", headers={"Authorization": "Bearer garbage"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["reason"], "token_invalid")

    def test_signup_duplicate_and_validation(self):
        duplicate = self.client.post(
            "/api/auth/signup",
            json={"email": "ADMIN@example.com", "password": "long-enough", "name": "Admin"},
        )
        self.assertEqual(duplicate.status_code, 409)
        short = self.client.post(
            "/api/auth/signup",
            json={"email": "new@example.com", "password": "short", "name": "New"},
        )
        self.assertEqual(short.status_code, 400)
        self.assertEqual(short.json()["type"], "ValidationError")

    # Projects --------------------------------------------------------------

    def test_project_lifecycle(self):
        created = self.create_project()
        self.assertEqual(created["slug"], "acme")
        self.assertEqual(created["screens"], [])

        by_slug = self.client.get("/api/projects/acme")
        self.assertEqual(by_slug.status_code, 200)
        self.assertEqual(by_slug.json()["data"]["id"], created["id"])
        by_id = self.client.get(f"/api/projects/{created['id']}")
        self.assertEqual(by_id.json()["data"]["slug"], "acme")

        updated = self.client.put(
            "/api/projects/acme", json={"featured": True}, headers=self.headers
        )
        self.assertEqual(updated.status_code, 200)
        self.assertTrue(updated.json()["data"]["featured"])
        self.assertEqual(updated.json()["data"]["title"], "Acme Redesign")

        deleted = self.client.delete("/api/projects/acme", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)
        self.assertTrue(deleted.json()["success"])

        missing = self.client.get("/api/projects/acme")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["success"], False)
        self.assertEqual(missing.json()["error"], "Project not found")

    def test_project_conflict_and_validation(self):
        self.create_project()
        duplicate = self.client.post("/api/projects", json=PROJECT, headers=self.headers)
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(duplicate.json()["type"], "Conflict")

        incomplete = self.client.post(
            "/api/projects", json={"title": "No slug"}, headers=self.headers
        )
        self.assertEqual(incomplete.status_code, 400)
        self.assertEqual(incomplete.json()["type"], "ValidationError")

        bad_category = self.client.post(
            "/api/projects",
            json={**PROJECT, "slug": "other", "category": "painting"},
            headers=self.headers,
        )
        self.assertEqual(bad_category.status_code, 400)

    def test_list_projects_and_stats(self):
        self.create_project(featured=True)
        self.create_project(slug="beta", category="branding", order=1)

        listed = self.client.get("/api/projects")
        self.assertEqual(listed.json()["count"], 2)
        self.assertEqual([p["slug"] for p in listed.json()["data"]], ["acme", "beta"])
        featured = self.client.get("/api/projects", params={"featured": "true"})
        self.assertEqual([p["slug"] for p in featured.json()["data"]], ["acme"])

        stats = self.client.get("/api/projects/stats")
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(stats.json()["data"]["totals"]["totalProjects"], 2)
        self.assertEqual(stats.json()["data"]["totals"]["uniqueTechnologies"], 2)

    def test_mockup_upload_and_existing(self):
        self.create_project()
        response = self.client.post(
            "/api/projects/acme/mockup",
            files={"file": ("mock.png", PNG, "image/png")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()["data"]
        self.assertEqual(data["url"], "/api/images/project-acme-mockup")
        self.assertEqual(data["filename"], "project-acme-mockup.png")
        self.assertEqual(data["project"]["thumbnailSlug"], "project-acme-mockup")

        self.upload_image(slug="cover")
        response = self.client.post(
            "/api/projects/acme/mockup-existing",
            json={"imageSlug": "cover"},
            headers=self.headers,
        )
        self.assertEqual(response.json()["data"]["url"], "/api/images/cover")

        populated = self.client.get("/api/projects/acme", params={"populate": "true"})
        self.assertEqual(populated.json()["data"]["thumbnail"]["slug"], "cover")

    def test_screens(self):
        self.create_project()
        first = self.client.post(
            "/api/projects/acme/screens",
            files={"file": ("home.png", PNG, "image/png")},
            data={"title": "Home Page", "description": "Landing"},
            headers=self.headers,
        )
        self.assertEqual(first.status_code, 201, first.text)
        screen = first.json()["data"]["screens"][0]
        self.assertEqual(screen["imageSlug"], "project-acme-home-page")
        self.assertEqual(screen["imageUrl"], "/api/images/project-acme-home-page")

        image = self.client.get(screen["imageUrl"])
        self.assertEqual(image.status_code, 200)
        self.assertEqual(image.content, PNG)

        self.upload_image(slug="shared")
        second = self.client.post(
            "/api/projects/acme/screens-existing",
            json={"title": "About", "description": "About us", "imageSlug": "shared"},
            headers=self.headers,
        )
        self.assertEqual(second.status_code, 201)
        self.assertEqual(second.json()["data"]["screenCount"], 2)

        reordered = self.client.put(
            "/api/projects/acme/screens-reorder",
            json={"fromIndex": 1, "toIndex": 0},
            headers=self.headers,
        )
        self.assertEqual(
            [s["title"] for s in reordered.json()["data"]["screens"]], ["About", "Home Page"]
        )

        invalid = self.client.put(
            "/api/projects/acme/screens-reorder",
            json={"fromIndex": 0, "toIndex": 7},
            headers=self.headers,
        )
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.json()["error"], "Invalid index")

        updated = self.client.put(
            "/api/projects/acme/screens/0",
            data={"description": "About the team"},
            headers=self.headers,
        )
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["data"]["screens"][0]["description"], "About the team")

        out_of_range = self.client.put(
            "/api/projects/acme/screens/9",
            data={"title": "Ghost"},
            headers=self.headers,
        )
        self.assertEqual(out_of_range.status_code, 404)
        self.assertEqual(out_of_range.json()["type"], "IndexOutOfRange")

        deleted = self.client.delete("/api/projects/acme/screens/0", headers=self.headers)
        self.assertEqual(
            [s["title"] for s in deleted.json()["data"]["screens"]], ["Home Page"]
        )

    # Images ----------------------------------------------------------------

    def test_image_create_conflict_and_replace(self):
        created = self.upload_image()
        self.assertEqual(created.status_code, 201, created.text)
        self.assertEqual(created.json()["data"]["slug"], "logo")
        self.assertEqual(created.json()["data"]["size"], len(PNG))

        duplicate = self.upload_image()
        self.assertEqual(duplicate.status_code, 409)

        fetched = self.client.get("/api/images/logo")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.content, PNG)
        self.assertEqual(fetched.headers["content-type"], "image/png")
        self.assertEqual(fetched.headers["content-length"], str(len(PNG)))
        self.assertEqual(fetched.headers["cache-control"], "public, max-age=31536000")

        replaced = self.client.put(
            "/api/images/logo",
            files={"file": ("logo.jpg", JPEG, "image/jpeg")},
            headers=self.headers,
        )
        self.assertEqual(replaced.status_code, 200)
        self.assertEqual(replaced.json()["data"]["id"], created.json()["data"]["id"])

        fetched = self.client.get("/api/images/logo")
        self.assertEqual(fetched.content, JPEG)
        self.assertEqual(fetched.headers["content-length"], str(len(JPEG)))
        self.assertEqual(fetched.headers["content-type"], "image/jpeg")

        metadata = self.client.get("/api/images/logo/metadata")
        self.assertEqual(metadata.json()["data"]["mimeType"], "image/jpeg")
        self.assertNotIn("data", metadata.json()["data"])

    def test_image_list_and_delete(self):
        self.upload_image(slug="a")
        self.upload_image(slug="b")
        listed = self.client.get("/api/images", params={"category": "general"})
        self.assertEqual(listed.json()["count"], 2)

        deleted = self.client.delete("/api/images/a", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)
        missing = self.client.get("/api/images/a")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"], "Image not found")

        self.assertEqual(self.client.delete("/api/images/a").status_code, 401)

    # Skills and messages ---------------------------------------------------

    def test_skills(self):
        created = self.client.post(
            "/api/skills",
            json={"name": "Figma", "icon": "figma", "category": "design", "proficiency": 5},
            headers=self.headers,
        )
        self.assertEqual(created.status_code, 201)
        skill_id = created.json()["data"]["id"]

        listed = self.client.get("/api/skills", params={"category": "design"})
        self.assertEqual(listed.json()["count"], 1)

        updated = self.client.put(
            f"/api/skills/{skill_id}", json={"order": 3}, headers=self.headers
        )
        self.assertEqual(updated.json()["data"]["order"], 3)
        self.assertEqual(self.client.get(f"/api/skills/{skill_id}").status_code, 200)

        deleted = self.client.delete(f"/api/skills/{skill_id}", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get(f"/api/skills/{skill_id}").status_code, 404)

    def test_messages(self):
        submitted = self.client.post(
            "/api/messages",
            json={
                "name": "Ada",
                "email": "ADA@example.com",
                "subject": "Hello",
                "message": "Loved it",
            },
        )
        self.assertEqual(submitted.status_code, 201)
        message_id = submitted.json()["data"]["id"]
        self.assertEqual(submitted.json()["data"]["email"], "ada@example.com")

        self.assertEqual(self.client.get("/api/messages").status_code, 401)

        unread = self.client.get(
            "/api/messages", params={"read": "false"}, headers=self.headers
        )
        self.assertEqual(unread.json()["count"], 1)

        marked = self.client.put(f"/api/messages/{message_id}/read", headers=self.headers)
        self.assertTrue(marked.json()["data"]["read"])
        fetched = self.client.get(f"/api/messages/{message_id}", headers=self.headers)
        self.assertTrue(fetched.json()["data"]["read"])

        deleted = self.client.delete(f"/api/messages/{message_id}", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)

        invalid = self.client.post(
            "/api/messages",
            json={"name": "Ada", "email": "nope", "subject": "Hi", "message": "Hey"},
        )
        self.assertEqual(invalid.status_code, 400)


if __name__ == "__main__":
    unittest.main()
