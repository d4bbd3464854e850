import time
import unittest

from guideme.db import (
    AuditRecord,
    ClickEventRecord,
    DbConflictError,
    DbNotFoundError,
    PostgresDbClient,
)


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_users_and_profiles(self):
        user = self.db.create_user("Owner@Example.com", user_metadata={"full_name": "Ana"})
        self.assertEqual(user.email, "owner@example.com")
        self.assertEqual(self.db.get_user_by_email("OWNER@example.com").id, user.id)

        with self.assertRaises(DbConflictError):
            self.db.create_user("owner@example.com")

        self.db.update_user_app_metadata(user.id, {"roles": ["admin"]})
        self.assertEqual(self.db.get_user(user.id).app_metadata, {"roles": ["admin"]})
        with self.assertRaises(DbNotFoundError):
            self.db.update_user_app_metadata("missing", {})

        self.db.touch_last_sign_in(user.id)
        self.assertIsNotNone(self.db.get_user(user.id).last_sign_in_at)

        profile = self.db.upsert_profile(user.id, full_name="Ana")
        self.assertEqual(profile.ai_daily_quota, 5)
        self.db.upsert_profile(user.id, is_blocked=True)
        self.assertTrue(self.db.get_profile(user.id).is_blocked)
        self.assertEqual([p.id for p in self.db.get_profiles([user.id, "x"])], [user.id])

    def test_list_users_pages(self):
        for i in range(5):
            self.db.create_user(f"user{i}@example.com")
        self.assertEqual(len(self.db.list_users(page=1, per_page=2)), 2)
        self.assertEqual(len(self.db.list_users(page=3, per_page=2)), 1)

    def test_categories_upsert_ignores_duplicates(self):
        inserted = self.db.upsert_categories([("Shops", "shops"), ("Food", "food")])
        self.assertEqual(inserted, 2)
        inserted = self.db.upsert_categories([("Shops again", "shops")])
        self.assertEqual(inserted, 0)
        self.assertEqual([c.name for c in self.db.list_categories()], ["Food", "Shops"])
        self.assertEqual(self.db.get_category_by_slug("food").name, "Food")

    def test_business_slug_unique(self):
        self.db.create_business(None, "Dive Shop", "dive-shop", island="bonaire")
        self.assertTrue(self.db.business_slug_exists("dive-shop"))
        with self.assertRaises(DbConflictError):
            self.db.create_business(None, "Dive Shop 2", "dive-shop")

    def test_listing_lifecycle_and_owner_scope(self):
        listing = self.db.create_listing("u1", {"business_name": "Kas di Pan"})
        self.assertEqual(listing.status, "pending")

        self.assertIsNone(self.db.update_listing(listing.id, {"phone": "1"}, user_id="u2"))
        updated = self.db.update_listing(listing.id, {"phone": "123"}, user_id="u1")
        self.assertEqual(updated.phone, "123")

        with self.assertRaises(ValueError):
            self.db.update_listing(listing.id, {"nope": 1})

        self.assertFalse(self.db.delete_listing(listing.id, user_id="u2"))
        self.assertTrue(self.db.delete_listing(listing.id, user_id="u1"))
        self.assertIsNone(self.db.get_listing(listing.id))

    def test_public_listings_filter_and_search(self):
        self.db.create_listing(
            None, {"business_name": "Sunset Grill", "island": "aruba", "status": "active"}
        )
        self.db.create_listing(
            None,
            {
                "business_name": "Hidden Grill",
                "island": "aruba",
                "status": "active",
                "deleted_at": time.time(),
            },
        )
        self.db.create_listing(
            None, {"business_name": "Reef Divers", "island": "bonaire", "status": "active"}
        )

        aruba = self.db.list_public_listings(island="aruba")
        self.assertEqual([l.business_name for l in aruba], ["Sunset Grill"])
        hits = self.db.search_listings("GRILL")
        self.assertEqual([l.business_name for l in hits], ["Sunset Grill"])
        self.assertEqual(self.db.search_listings("grill", island="bonaire"), [])

    def test_resolve_listing_by_business_id_and_bulk_update(self):
        business = self.db.create_business(None, "Dive Shop", "dive-shop")
        first = self.db.create_listing(
            None, {"business_name": "Dive Shop", "business_id": business.id}
        )
        self.db.create_listing(
            None, {"business_name": "Dive Shop Kralendijk", "business_id": business.id}
        )

        self.assertEqual(self.db.resolve_listing(first.id).id, first.id)
        self.assertIsNotNone(self.db.resolve_listing(business.id))
        self.assertIsNone(self.db.resolve_listing("missing"))

        updated = self.db.update_listings_for_business(business.id, {"status": "active"})
        self.assertEqual(updated, 2)
        self.assertEqual(self.db.get_listing(first.id).status, "active")

        self.db.update_listing(first.id, {"deleted_at": 1.0})
        updated = self.db.update_listings_for_business(
            business.id, {"status": "paused"}, live_only=True
        )
        self.assertEqual(updated, 1)
        self.assertEqual(self.db.get_listing(first.id).status, "active")

    def test_subscription_upsert_and_stripe_update(self):
        business = self.db.create_business(None, "Dive Shop", "dive-shop")
        created = self.db.upsert_subscription(business.id, plan="growth", status="active")
        again = self.db.upsert_subscription(
            business.id, plan="pro", stripe_subscription_id="sub_1"
        )
        self.assertEqual(created.id, again.id)
        self.assertEqual(again.plan, "pro")
        self.assertEqual(again.status, "active")

        self.assertEqual(
            self.db.update_subscription_by_stripe_id("sub_1", status="canceled"), 1
        )
        self.assertEqual(self.db.get_subscription(business.id).status, "canceled")
        self.assertEqual(self.db.update_subscription_by_stripe_id("sub_x", status="x"), 0)
        self.assertEqual(len(self.db.list_subscriptions([business.id, "other"])), 1)

    def test_settings_roundtrip(self):
        self.db.upsert_settings({"maintenance_mode": True, "ai_max_premium": 80})
        self.db.upsert_settings({"maintenance_mode": False})
        self.assertEqual(
            self.db.list_settings(), [("ai_max_premium", 80), ("maintenance_mode", False)]
        )
        self.assertEqual(self.db.get_setting("missing", "fallback"), "fallback")

    def test_click_events_since(self):
        self.db.insert_click_event(ClickEventRecord(business_id="b1", event_type="call"))
        self.db.insert_click_event(
            ClickEventRecord(business_id="b1", event_type="route", created_at=10.0)
        )
        recent = self.db.list_click_events("b1", since=time.time() - 60)
        self.assertEqual([e.event_type for e in recent], ["call"])

    def test_audit_newest_first(self):
        self.db.insert_audit(
            AuditRecord(business_id="b1", actor_user_id="u1", action="delete", created_at=1.0)
        )
        self.db.insert_audit(
            AuditRecord(business_id="b1", actor_user_id="u1", action="undo_delete", created_at=2.0)
        )
        self.assertEqual(
            [a.action for a in self.db.list_audit()], ["undo_delete", "delete"]
        )


if __name__ == "__main__":
    unittest.main()
