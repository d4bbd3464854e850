import os
import unittest
from unittest import mock

from fastapi.testclient import TestClient

from guideme.app import create_app
from guideme.config import get_settings
from guideme.db import InMemoryDbClient
from guideme.dependencies import get_db_client
from guideme.security import create_access_token

TEST_ENV = {"GEMINI_API_KEY": ""}


class PageTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.dict(os.environ, TEST_ENV)
        patcher.start()
        self.addCleanup(patcher.stop)
        get_settings.cache_clear()
        self.addCleanup(get_settings.cache_clear)

        self.client = TestClient(create_app())
        self.db = get_db_client()
        if isinstance(self.db, InMemoryDbClient):
            self.db.reset()

    def _get(self, path, **kwargs):
        return self.client.get(path, follow_redirects=False, **kwargs)

    def _headers(self, email="owner@example.com", app_metadata=None):
        user = self.db.get_user_by_email(email) or self.db.create_user(
            email, app_metadata=app_metadata
        )
        self.db.upsert_profile(user.id)
        token = create_access_token(user.id, get_settings().jwt_secret, 3600)
        return {"Authorization": f"Bearer {token}"}

    def _pro_listing(self, **values):
        slug = f"reef-divers-{len(self.db.list_businesses())}"
        business = self.db.create_business(None, "Reef Divers", slug)
        self.db.upsert_subscription(business.id, plan="pro", status="active")
        fields = {
            "business_name": "Reef Divers",
            "business_id": business.id,
            "island": "bonaire",
            "status": "active",
            "subscription_plan": "pro",
            "phone": "+599 717 0000",
        }
        fields.update(values)
        return self.db.create_listing(None, fields)

    # Locale gate

    def test_root_redirects_to_guessed_locale(self):
        response = self._get("/")
        self.assertEqual(response.status_code, 307)
        self.assertEqual(response.headers["location"], "/en")

        response = self._get("/", headers={"accept-language": "nl-NL,nl;q=0.9"})
        self.assertEqual(response.headers["location"], "/nl")

        response = self._get("/islands?x=1", headers={"accept-language": "es"})
        self.assertEqual(response.headers["location"], "/es/islands?x=1")

    def test_public_pages_render(self):
        for path in (
            "/en",
            "/nl/islands",
            "/pap/businesses",
            "/es/search",
            "/en/pricing",
            "/en/contact",
            "/en/business/auth",
        ):
            response = self._get(path)
            self.assertEqual(response.status_code, 200, path)
            self.assertIn("text/html", response.headers["content-type"])

    def test_home_lists_featured_and_forbidden_notice(self):
        listing = self._pro_listing()
        self.db.create_listing(
            None, {"business_name": "Free Snacks", "island": "aruba", "status": "active"}
        )
        response = self._get("/en?forbidden=admin")
        self.assertIn("Reef Divers", response.text)
        self.assertIn("Free Snacks", response.text)
        self.assertIn(f"/en/biz/{listing.id}", response.text)
        self.assertIn("You do not have access to that page.", response.text)
        self.assertLess(response.text.index("Reef Divers"), response.text.index("Free Snacks"))

    def test_island_pages(self):
        self.db.upsert_categories([("Restaurants", "restaurants")])
        self._pro_listing()
        response = self._get("/en/islands/Bonaire")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Reef Divers", response.text)
        self.assertNotIn("Reef Divers", self._get("/en/islands/aruba").text)

        self.assertEqual(self._get("/en/islands/bonaire/restaurants").status_code, 200)
        self.assertEqual(self._get("/en/islands/jamaica").status_code, 404)
        self.assertEqual(self._get("/en/islands/bonaire/bakeries").status_code, 404)

    def test_search_page(self):
        self._pro_listing()
        self.assertIn("Reef Divers", self._get("/en/search?q=reef").text)
        self.assertNotIn("Reef Divers", self._get("/en/search?q=r").text)

    # Mini-site

    def test_mini_site_for_active_pro_listing(self):
        listing = self._pro_listing(
            opening_hours='{"monday": {"from": "08:00", "to": "17:00"}}'
        )
        response = self._get(f"/nl/biz/{listing.id}")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Reef Divers", response.text)
        self.assertIn(f'data-business-id="{listing.business_id}"', response.text)
        self.assertIn('data-track="call"', response.text)

    def test_mini_site_not_found_cases(self):
        pending = self._pro_listing(status="pending")
        deleted = self._pro_listing(deleted_at=1.0)
        starter = self._pro_listing(subscription_plan="starter")
        for listing_id in (pending.id, deleted.id, starter.id, "missing"):
            response = self._get(f"/en/biz/{listing_id}")
            self.assertEqual(response.status_code, 404, listing_id)
            self.assertIn("Page not found", response.text)

    # Protected pages

    def test_protected_pages_redirect_to_sign_in(self):
        response = self._get("/nl/business/dashboard")
        self.assertEqual(response.status_code, 307)
        self.assertEqual(
            response.headers["location"],
            "/nl/business/auth?redirectedFrom=%2Fnl%2Fbusiness%2Fdashboard",
        )
        for path in ("/en/account/security", "/en/admin/businesses", "/en/godmode"):
            response = self._get(path)
            self.assertTrue(
                response.headers["location"].startswith("/en/business/auth?"), path
            )

    def test_dashboard_lists_own_listings(self):
        headers = self._headers()
        owner = self.db.get_user_by_email("owner@example.com")
        self.db.create_listing(owner.id, {"business_name": "Kas di Pan"})
        self.db.create_listing(None, {"business_name": "Someone Else"})

        response = self._get("/en/business/dashboard", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertIn("Kas di Pan", response.text)
        self.assertNotIn("Someone Else", response.text)

        response = self._get("/en/business", headers=headers)
        self.assertEqual(response.headers["location"], "/en/business/dashboard")
        response = self._get("/en/business/auth", headers=headers)
        self.assertEqual(response.headers["location"], "/en/business/dashboard")

    def test_account_security_page(self):
        response = self._get("/en/account/security", headers=self._headers())
        self.assertEqual(response.status_code, 200)

    def test_mfa_page_without_pending_sign_in(self):
        response = self._get("/en/business/auth/mfa")
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/en/business/auth")

    def test_admin_pages_by_role(self):
        owner = self._headers()
        admin = self._headers("admin@example.com", {"roles": ["admin"]})
        root = self._headers("root@example.com", {"roles": ["super_admin"]})

        response = self._get("/en/admin/businesses", headers=owner)
        self.assertEqual(response.headers["location"], "/en?forbidden=admin")
        self.assertEqual(self._get("/en/admin/businesses", headers=admin).status_code, 200)

        response = self._get("/en/godmode", headers=admin)
        self.assertEqual(response.headers["location"], "/en?forbidden=super")
        for path in ("/en/godmode", "/en/godmode/users", "/en/godmode/settings"):
            self.assertEqual(self._get(path, headers=root).status_code, 200, path)
        self.assertIn("admin@example.com", self._get("/en/godmode/users", headers=root).text)
        self.assertIn("maintenance_mode", self._get("/en/godmode/settings", headers=root).text)

    # Maintenance

    def test_maintenance_mode(self):
        self.db.upsert_settings({"maintenance_mode": True})
        response = self._get("/en/islands")
        self.assertEqual(response.status_code, 307)
        self.assertEqual(response.headers["location"], "/en/maintenance")
        self.assertEqual(self._get("/en/maintenance").status_code, 503)
        self.assertEqual(self._get("/en/business/auth").status_code, 200)

        root = self._headers("root@example.com", {"roles": ["super_admin"]})
        self.assertEqual(self._get("/en/islands", headers=root).status_code, 200)
        # The API is not gated.
        self.assertEqual(self.client.get("/api/categories").status_code, 200)


if __name__ == "__main__":
    unittest.main()
