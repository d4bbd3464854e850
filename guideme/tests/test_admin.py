import os
import unittest
from unittest import mock

from fastapi import HTTPException
from fastapi.testclient import TestClient

from guideme.app import create_app
from guideme.config import get_settings
from guideme.db import InMemoryDbClient
from guideme.dependencies import get_db_client
from guideme.guards import require_admin_token
from guideme.security import create_access_token

TEST_ENV = {"GEMINI_API_KEY": "", "GODMODE_TOKEN": "test-godmode-token"}
ADMIN_TOKEN = {"x-admin-token": "test-godmode-token"}


class AdminApiTests(unittest.TestCase):
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

        self.root, self.root_headers = self._sign_in(
            "root@example.com", {"roles": ["super_admin"]}
        )

    def _sign_in(self, email, app_metadata=None):
        user = self.db.create_user(email, app_metadata=app_metadata)
        self.db.upsert_profile(user.id)
        token = create_access_token(user.id, get_settings().jwt_secret, 3600)
        return user, {"Authorization": f"Bearer {token}"}

    def _business_with_listings(self, count=2):
        business = self.db.create_business(None, "Dive Shop", "dive-shop", island="bonaire")
        listings = [
            self.db.create_listing(
                None, {"business_name": f"Dive Shop {i}", "business_id": business.id}
            )
            for i in range(count)
        ]
        return business, listings

    # Role checks

    def test_moderation_requires_super_admin(self):
        _, admin_headers = self._sign_in("admin@example.com", {"roles": ["admin"]})
        _, listings = self._business_with_listings(1)
        payload = {"ref": listings[0].id, "status": "active"}

        response = self.client.post("/api/admin/listings/status", json=payload)
        self.assertEqual(response.status_code, 401)
        response = self.client.post(
            "/api/admin/listings/status", json=payload, headers=admin_headers
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.db.get_listing(listings[0].id).status, "pending")

    def test_godmode_requires_super_admin(self):
        _, admin_headers = self._sign_in("admin@example.com", {"role": "admin"})
        self.assertEqual(
            self.client.get("/api/godmode/users", headers=admin_headers).status_code, 403
        )
        self.assertEqual(
            self.client.get("/api/godmode/settings", headers=admin_headers).status_code,
            403,
        )

    # Moderation

    def test_status_applies_to_whole_business_and_is_audited(self):
        business, listings = self._business_with_listings(2)
        response = self.client.post(
            "/api/admin/listings/status",
            json={"ref": business.id, "status": "Active"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(all(self.db.get_listing(l.id).status == "active" for l in listings))

        audit = self.db.list_audit()
        self.assertEqual(audit[0].action, "set_status")
        self.assertEqual(audit[0].business_id, business.id)
        self.assertEqual(audit[0].actor_user_id, self.root.id)
        self.assertEqual(audit[0].detail["status"], "active")

    def test_status_validation(self):
        response = self.client.post(
            "/api/admin/listings/status",
            json={"ref": "missing", "status": "bogus"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            "/api/admin/listings/status",
            json={"ref": "missing", "status": "active"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 404)

    def test_verified_sets_and_clears_timestamp(self):
        listing = self.db.create_listing(None, {"business_name": "Solo"})
        self.client.post(
            "/api/admin/listings/verified",
            json={"ref": listing.id, "verified": True},
            headers=self.root_headers,
        )
        self.assertTrue(self.db.get_listing(listing.id).is_verified)
        self.assertIsNotNone(self.db.get_listing(listing.id).verified_at)

        self.client.post(
            "/api/admin/listings/verified",
            json={"ref": listing.id, "verified": False},
            headers=self.root_headers,
        )
        self.assertFalse(self.db.get_listing(listing.id).is_verified)
        self.assertIsNone(self.db.get_listing(listing.id).verified_at)
        # Standalone listings are audited under their own id.
        self.assertEqual(self.db.list_audit()[0].business_id, listing.id)

    def test_plan_syncs_subscription(self):
        business, listings = self._business_with_listings(1)
        response = self.client.post(
            "/api/admin/listings/plan",
            json={"ref": listings[0].id, "plan": "pro"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.get_listing(listings[0].id).subscription_plan, "pro")
        subscription = self.db.get_subscription(business.id)
        self.assertEqual((subscription.plan, subscription.status), ("pro", "active"))

        response = self.client.post(
            "/api/admin/listings/plan",
            json={"ref": listings[0].id, "plan": "platinum"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_status_and_plan_skip_soft_deleted_listings(self):
        business, (live, removed) = self._business_with_listings(2)
        self.db.update_listing(removed.id, {"deleted_at": 1.0})

        for path, payload in (
            ("/api/admin/listings/status", {"ref": business.id, "status": "active"}),
            ("/api/admin/listings/plan", {"ref": business.id, "plan": "growth"}),
        ):
            response = self.client.post(path, json=payload, headers=self.root_headers)
            self.assertEqual(response.status_code, 200, path)

        self.assertEqual(self.db.get_listing(live.id).status, "active")
        self.assertEqual(self.db.get_listing(live.id).subscription_plan, "growth")
        self.assertEqual(self.db.get_listing(removed.id).status, "pending")
        self.assertIsNone(self.db.get_listing(removed.id).subscription_plan)

    def test_delete_and_undo(self):
        business, listings = self._business_with_listings(2)
        self.client.post(
            "/api/admin/listings/delete",
            json={"ref": listings[0].id},
            headers=self.root_headers,
        )
        self.assertTrue(all(self.db.get_listing(l.id).deleted_at for l in listings))
        self.assertIsNotNone(self.db.get_business(business.id).deleted_at)

        self.client.post(
            "/api/admin/listings/undo-delete",
            json={"ref": business.id},
            headers=self.root_headers,
        )
        self.assertTrue(all(self.db.get_listing(l.id).deleted_at is None for l in listings))
        self.assertIsNone(self.db.get_business(business.id).deleted_at)
        self.assertEqual(
            [a.action for a in self.db.list_audit()], ["undo_delete", "delete"]
        )

    # Subscriptions

    def test_session_subscription_override(self):
        business, _ = self._business_with_listings(1)
        response = self.client.post(
            "/api/admin/businesses/subscription",
            json={"businessId": business.id, "plan": "growth", "status": "active"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.get_subscription(business.id).plan, "growth")

        response = self.client.post(
            "/api/admin/businesses/subscription",
            json={"businessId": "nope", "plan": "growth", "status": "active"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 400)

        listed = self.client.get(
            "/api/admin/businesses", headers=self.root_headers
        ).json()["businesses"]
        self.assertEqual(listed[0]["subscription"], {"plan": "growth", "status": "active"})

    def test_token_endpoints(self):
        business, _ = self._business_with_listings(1)

        response = self.client.get("/api/admin/businesses/set-subscription")
        self.assertEqual(response.status_code, 401)
        response = self.client.get(
            "/api/admin/businesses/set-subscription",
            headers={"x-admin-token": "wrong"},
        )
        self.assertEqual(response.status_code, 401)
        response = self.client.get(
            "/api/admin/businesses/set-subscription",
            headers={"x-admin-token": "t\u00e9st".encode("utf-8")},
        )
        self.assertEqual(response.status_code, 401)

        response = self.client.get(
            "/api/admin/businesses/set-subscription", headers=ADMIN_TOKEN
        )
        self.assertEqual(response.status_code, 200)
        row = response.json()["businesses"][0]
        self.assertEqual(row["subscription"], {"plan": "free", "status": "inactive"})

        response = self.client.post(
            "/api/admin/businesses/update-subscription",
            json={"businessId": business.id, "plan": "Pro"},
            headers=ADMIN_TOKEN,
        )
        self.assertEqual(response.status_code, 200)
        subscription = self.db.get_subscription(business.id)
        self.assertEqual((subscription.plan, subscription.status), ("pro", "inactive"))

        response = self.client.post(
            "/api/admin/businesses/update-subscription",
            json={"businessId": business.id, "status": "paused"},
            headers=ADMIN_TOKEN,
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            "/api/admin/businesses/update-subscription", json={}, headers=ADMIN_TOKEN
        )
        self.assertEqual(response.status_code, 400)

    def test_admin_token_guard_rejects_non_ascii_token(self):
        with self.assertRaises(HTTPException) as ctx:
            require_admin_token("t\u00e9st")
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIsNone(require_admin_token("test-godmode-token"))

    def test_token_endpoints_unconfigured(self):
        with mock.patch.dict(os.environ, {"GODMODE_TOKEN": ""}):
            get_settings.cache_clear()
            response = self.client.get(
                "/api/admin/businesses/set-subscription", headers=ADMIN_TOKEN
            )
        self.assertEqual(response.status_code, 500)

    def test_seed_categories(self):
        response = self.client.post("/api/seed/categories", headers=ADMIN_TOKEN)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json(), {"ok": True, "inserted": 3})
        response = self.client.post("/api/seed/categories", headers=ADMIN_TOKEN)
        self.assertEqual(response.json()["inserted"], 0)
        self.assertEqual(
            [c.slug for c in self.db.list_categories()],
            ["restaurants", "services", "shops"],
        )
        self.assertEqual(self.client.post("/api/seed/categories").status_code, 401)

    # Godmode

    def test_list_users_merges_profiles(self):
        user = self.db.create_user(
            "owner@example.com", user_metadata={"full_name": "From Auth"}
        )
        self.db.upsert_profile(user.id, business_name="Kas di Pan", is_blocked=True)

        response = self.client.get("/api/godmode/users", headers=self.root_headers)
        self.assertEqual(response.status_code, 200)
        rows = {r["email"]: r for r in response.json()["users"]}
        self.assertEqual(rows["owner@example.com"]["full_name"], "From Auth")
        self.assertEqual(rows["owner@example.com"]["business_name"], "Kas di Pan")
        self.assertTrue(rows["owner@example.com"]["is_blocked"])
        self.assertEqual(rows["root@example.com"]["roles"], ["super_admin"])

    def test_toggle_role(self):
        user, _ = self._sign_in("owner@example.com")
        response = self.client.post(
            "/api/godmode/users/toggle-role",
            json={"userId": user.id, "role": "Admin"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["roles"], ["admin"])
        self.assertEqual(self.db.get_user(user.id).app_metadata["roles"], ["admin"])

        response = self.client.post(
            "/api/godmode/users/toggle-role",
            json={"userId": user.id, "role": "admin"},
            headers=self.root_headers,
        )
        self.assertEqual(response.json()["roles"], [])

    def test_toggle_role_guards(self):
        response = self.client.post(
            "/api/godmode/users/toggle-role",
            json={"userId": self.root.id, "role": "super_admin"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            "/api/godmode/users/toggle-role",
            json={"userId": "missing", "role": "admin"},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 404)
        response = self.client.post(
            "/api/godmode/users/toggle-role",
            json={"userId": self.root.id},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_toggle_blocked(self):
        user, user_headers = self._sign_in("owner@example.com")
        response = self.client.post(
            "/api/godmode/users/toggle-blocked",
            json={"userId": user.id},
            headers=self.root_headers,
        )
        self.assertEqual(response.json(), {"ok": True, "userId": user.id, "is_blocked": True})
        self.assertEqual(
            self.client.get("/api/listings", headers=user_headers).status_code, 401
        )

        response = self.client.post(
            "/api/godmode/users/toggle-blocked",
            json={"userId": user.id},
            headers=self.root_headers,
        )
        self.assertFalse(response.json()["is_blocked"])

        response = self.client.post(
            "/api/godmode/users/toggle-blocked",
            json={"userId": self.root.id},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_settings(self):
        response = self.client.get("/api/godmode/settings", headers=self.root_headers)
        payload = response.json()
        self.assertEqual(payload["rows"], [])
        self.assertFalse(payload["settings"]["maintenance_mode"])
        self.assertEqual(payload["settings"]["ai_max_free"], 5)

        response = self.client.put(
            "/api/godmode/settings",
            json={"ai_max_free": 8, "allow_registrations": False},
            headers=self.root_headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["settings"]["ai_max_free"], 8)
        self.assertFalse(self.db.get_setting("allow_registrations"))

        for bad in ({"unknown_key": 1}, {"maintenance_mode": "yes"}, {"ai_max_free": True}):
            response = self.client.put(
                "/api/godmode/settings", json=bad, headers=self.root_headers
            )
            self.assertEqual(response.status_code, 400, bad)


if __name__ == "__main__":
    unittest.main()
