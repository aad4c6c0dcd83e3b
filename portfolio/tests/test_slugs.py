import unittest

from portfolio.slugs import (
    blob_filename,
    image_url,
    mockup_image_slug,
    resolve_mime_type,
    screen_image_slug,
    slugify,
)


class SlugTests(unittest.TestCase):
    def test_slugify(self):
        self.assertEqual(slugify("Home Page"), "home-page")
        self.assertEqual(slugify("  Check   out!  "), "check-out")
        self.assertEqual(slugify("Café & Bar"), "caf--bar")
        self.assertEqual(slugify(""), "")

    def test_screen_and_mockup_slugs(self):
        self.assertEqual(screen_image_slug("acme", "Home Page"), "project-acme-home-page")
        self.assertEqual(screen_image_slug("acme", "Step 2: Pay"), "project-acme-step-2-pay")
        self.assertEqual(mockup_image_slug("acme"), "project-acme-mockup")

    def test_blob_filename(self):
        self.assertEqual(blob_filename("logo", "image/png"), "logo.png")
        self.assertEqual(blob_filename("logo", "image/svg+xml"), "logo.svg")
        self.assertEqual(blob_filename("logo", "image/png", "Logo Final.webp"), "logo.webp")
        self.assertEqual(blob_filename("my logo", "image/png"), "my-logo.png")
        self.assertEqual(blob_filename("logo", ""), "logo.png")

    def test_resolve_mime_type(self):
        self.assertEqual(resolve_mime_type("image/webp", "x.png"), "image/webp")
        self.assertEqual(resolve_mime_type("application/octet-stream", "x.png"), "image/png")
        self.assertEqual(resolve_mime_type(None, None), "application/octet-stream")

    def test_image_url(self):
        self.assertEqual(image_url("logo"), "/api/images/logo")
        self.assertEqual(image_url("logo", "/v2/"), "/v2/images/logo")
        self.assertIsNone(image_url(None))


if __name__ == "__main__":
    unittest.main()
