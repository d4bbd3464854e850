"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import ListingStatus, SubscriptionPlan, SubscriptionStatus


class DbError(Exception):
    """Raised when the backing store rejects an operation."""


class DbConflictError(DbError):
    """A unique constraint was violated."""


class DbNotFoundError(DbError):
    """The row an operation targets does not exist."""


def _now() -> float:
    return time.time()


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class UserRecord:
    id: str
    email: str
    app_metadata: dict = field(default_factory=dict)
    user_metadata: dict = field(default_factory=dict)
    created_at: float = field(default_factory=_now)
    last_sign_in_at: Optional[float] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProfileRecord:
    id: str
    full_name: Optional[str] = None
    business_name: Optional[str] = None
    plan: Optional[str] = None
    is_blocked: bool = False
    ai_daily_quota: int = 5
    ai_used_today: int = 0
    ai_last_reset: Optional[str] = None
    mfa_totp_secret: Optional[str] = None
    is_mfa_enabled: bool = False

    def as_dict(self) -> dict:
        data = asdict(self)
        data.pop("mfa_totp_secret")
        return data


@dataclass
class CategoryRecord:
    id: str
    name: str
    slug: str
    created_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "slug": self.slug}


@dataclass
class BusinessRecord:
    id: str
    user_id: Optional[str]
    name: str
    slug: str
    island: Optional[str] = None
    plan: Optional[str] = None
    trial_end: Optional[float] = None
    deleted_at: Optional[float] = None
    created_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ListingRecord:
    id: str
    user_id: Optional[str]
    business_id: Optional[str] = None
    business_name: str = ""
    category_id: Optional[str] = None
    island: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    whatsapp: Optional[str] = None
    route_url: Optional[str] = None
    logo_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    opening_hours: Optional[str] = None
    highlight_1: Optional[str] = None
    highlight_2: Optional[str] = None
    highlight_3: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    tiktok: Optional[str] = None
    status: str = ListingStatus.PENDING.value
    subscription_plan: Optional[str] = None
    is_verified: bool = False
    verified_at: Optional[float] = None
    deleted_at: Optional[float] = None
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return asdict(self)


# Columns a listing owner may write through the API.
OWNER_LISTING_FIELDS = (
    "business_name",
    "category_id",
    "island",
    "description",
    "address",
    "phone",
    "email",
    "website",
    "whatsapp",
    "route_url",
    "logo_url",
    "cover_image_url",
    "opening_hours",
    "highlight_1",
    "highlight_2",
    "highlight_3",
    "instagram",
    "facebook",
    "tiktok",
)

MODERATION_LISTING_FIELDS = (
    "status",
    "subscription_plan",
    "is_verified",
    "verified_at",
    "deleted_at",
)

# business_id is written only when a business is created.
LISTING_FIELDS = OWNER_LISTING_FIELDS + ("business_id",) + MODERATION_LISTING_FIELDS


@dataclass
class SubscriptionRecord:
    id: str
    business_id: str
    plan: str = SubscriptionPlan.FREE.value
    status: str = SubscriptionStatus.INACTIVE.value
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_end: Optional[float] = None
    cancel_at_period_end: bool = False
    ends_at: Optional[float] = None
    paid_until: Optional[float] = None
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return asdict(self)


SUBSCRIPTION_FIELDS = (
    "plan",
    "status",
    "stripe_customer_id",
    "stripe_subscription_id",
    "current_period_end",
    "cancel_at_period_end",
    "ends_at",
    "paid_until",
)


@dataclass
class ClickEventRecord:
    business_id: str
    event_type: str
    path: Optional[str] = None
    lang: Optional[str] = None
    island: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    user_agent: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class AiQuestionRecord:
    user_id: str
    question: str
    answer: str
    island: Optional[str] = None
    plan_at_time: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class AuditRecord:
    business_id: Optional[str]
    actor_user_id: Optional[str]
    action: str
    detail: dict = field(default_factory=dict)
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)

    def as_dict(self) -> dict:
        return asdict(self)


class DbClient(Protocol):
    """Interface for database access."""

    # Users
    def create_user(
        self,
        email: str,
        app_metadata: Optional[dict] = None,
        user_metadata: Optional[dict] = None,
    ) -> UserRecord:
        ...

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    def list_users(self, page: int = 1, per_page: int = 200) -> list[UserRecord]:
        ...

    def update_user_app_metadata(self, user_id: str, app_metadata: dict) -> UserRecord:
        ...

    def touch_last_sign_in(self, user_id: str) -> None:
        ...

    # Profiles
    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        ...

    def get_profiles(self, user_ids: Iterable[str]) -> list[ProfileRecord]:
        ...

    def upsert_profile(self, user_id: str, **values: Any) -> ProfileRecord:
        ...

    # Categories
    def list_categories(self) -> list[CategoryRecord]:
        ...

    def get_category_by_slug(self, slug: str) -> Optional[CategoryRecord]:
        ...

    def upsert_categories(self, rows: Iterable[tuple[str, str]]) -> int:
        ...

    # Businesses
    def create_business(
        self,
        user_id: Optional[str],
        name: str,
        slug: str,
        island: Optional[str] = None,
        plan: Optional[str] = None,
    ) -> BusinessRecord:
        ...

    def get_business(self, business_id: str) -> Optional[BusinessRecord]:
        ...

    def list_businesses_for_user(self, user_id: str) -> list[BusinessRecord]:
        ...

    def list_businesses(self) -> list[BusinessRecord]:
        ...

    def business_slug_exists(self, slug: str) -> bool:
        ...

    def set_business_deleted(
        self, business_id: str, deleted_at: Optional[float]
    ) -> None:
        ...

    # Listings
    def create_listing(self, user_id: Optional[str], values: dict) -> ListingRecord:
        ...

    def get_listing(self, listing_id: str) -> Optional[ListingRecord]:
        ...

    def list_listings_for_user(self, user_id: str) -> list[ListingRecord]:
        ...

    def update_listing(
        self, listing_id: str, values: dict, user_id: Optional[str] = None
    ) -> Optional[ListingRecord]:
        ...

    def update_listings_for_business(
        self, business_id: str, values: dict, live_only: bool = False
    ) -> int:
        ...

    def delete_listing(self, listing_id: str, user_id: Optional[str] = None) -> bool:
        ...

    def list_public_listings(
        self,
        island: Optional[str] = None,
        category_id: Optional[str] = None,
        status: str = ListingStatus.ACTIVE.value,
    ) -> list[ListingRecord]:
        ...

    def search_listings(
        self, query: str, island: Optional[str] = None, limit: int = 20
    ) -> list[ListingRecord]:
        ...

    def resolve_listing(self, ref: str) -> Optional[ListingRecord]:
        ...

    # Subscriptions
    def get_subscription(self, business_id: str) -> Optional[SubscriptionRecord]:
        ...

    def list_subscriptions(
        self, business_ids: Iterable[str]
    ) -> list[SubscriptionRecord]:
        ...

    def upsert_subscription(self, business_id: str, **values: Any) -> SubscriptionRecord:
        ...

    def update_subscription_by_stripe_id(
        self, stripe_subscription_id: str, **values: Any
    ) -> int:
        ...

    # Platform settings
    def list_settings(self) -> list[tuple[str, Any]]:
        ...

    def get_setting(self, key: str, default: Any = None) -> Any:
        ...

    def upsert_settings(self, values: Dict[str, Any]) -> None:
        ...

    # Events and logs
    def insert_click_event(self, event: ClickEventRecord) -> None:
        ...

    def list_click_events(
        self, business_id: str, since: float
    ) -> list[ClickEventRecord]:
        ...

    def insert_ai_question(self, record: AiQuestionRecord) -> None:
        ...

    def insert_audit(self, record: AuditRecord) -> None:
        ...

    def list_audit(self, limit: int = 50) -> list[AuditRecord]:
        ...


def _newest_first(items: Iterable[Any]) -> list[Any]:
    # Stable sort over reversed insertion order keeps ties newest first.
    return sorted(reversed(list(items)), key=lambda r: r.created_at, reverse=True)


def _check_fields(values: dict, allowed: Iterable[str]) -> None:
    unknown = set(values) - set(allowed)
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.profiles: Dict[str, ProfileRecord] = {}
        self.categories: Dict[str, CategoryRecord] = {}
        self.businesses: Dict[str, BusinessRecord] = {}
        self.listings: Dict[str, ListingRecord] = {}
        self.subscriptions: Dict[str, SubscriptionRecord] = {}
        self.settings: Dict[str, Any] = {}
        self.click_events: list[ClickEventRecord] = []
        self.ai_questions: list[AiQuestionRecord] = []
        self.audit: list[AuditRecord] = []

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.profiles.clear()
        self.categories.clear()
        self.businesses.clear()
        self.listings.clear()
        self.subscriptions.clear()
        self.settings.clear()
        self.click_events.clear()
        self.ai_questions.clear()
        self.audit.clear()

    # Users

    def create_user(
        self,
        email: str,
        app_metadata: Optional[dict] = None,
        user_metadata: Optional[dict] = None,
    ) -> UserRecord:
        email = email.strip().lower()
        if self.get_user_by_email(email):
            raise DbConflictError(f"User {email} already exists")
        user = UserRecord(
            id=_new_id(),
            email=email,
            app_metadata=dict(app_metadata or {}),
            user_metadata=dict(user_metadata or {}),
        )
        self.users[user.id] = user
        return user

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = (email or "").strip().lower()
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def list_users(self, page: int = 1, per_page: int = 200) -> list[UserRecord]:
        users = sorted(self.users.values(), key=lambda u: u.created_at)
        start = (max(page, 1) - 1) * per_page
        return users[start : start + per_page]

    def update_user_app_metadata(self, user_id: str, app_metadata: dict) -> UserRecord:
        user = self.users.get(user_id)
        if not user:
            raise DbNotFoundError(f"User {user_id} not found")
        user.app_metadata = dict(app_metadata)
        return user

    def touch_last_sign_in(self, user_id: str) -> None:
        user = self.users.get(user_id)
        if user:
            user.last_sign_in_at = _now()

    # Profiles

    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        return self.profiles.get(user_id)

    def get_profiles(self, user_ids: Iterable[str]) -> list[ProfileRecord]:
        return [self.profiles[i] for i in user_ids if i in self.profiles]

    def upsert_profile(self, user_id: str, **values: Any) -> ProfileRecord:
        profile = self.profiles.get(user_id)
        if not profile:
            profile = ProfileRecord(id=user_id)
            self.profiles[user_id] = profile
        for key, value in values.items():
            setattr(profile, key, value)
        return profile

    # Categories

    def list_categories(self) -> list[CategoryRecord]:
        return sorted(self.categories.values(), key=lambda c: c.name)

    def get_category_by_slug(self, slug: str) -> Optional[CategoryRecord]:
        for category in self.categories.values():
            if category.slug == slug:
                return category
        return None

    def upsert_categories(self, rows: Iterable[tuple[str, str]]) -> int:
        inserted = 0
        for name, slug in rows:
            if self.get_category_by_slug(slug):
                continue
            category = CategoryRecord(id=_new_id(), name=name, slug=slug)
            self.categories[category.id] = category
            inserted += 1
        return inserted

    # Businesses

    def create_business(
        self,
        user_id: Optional[str],
        name: str,
        slug: str,
        island: Optional[str] = None,
        plan: Optional[str] = None,
    ) -> BusinessRecord:
        if self.business_slug_exists(slug):
            raise DbConflictError(f"Business slug {slug} already exists")
        business = BusinessRecord(
            id=_new_id(), user_id=user_id, name=name, slug=slug, island=island, plan=plan
        )
        self.businesses[business.id] = business
        return business

    def get_business(self, business_id: str) -> Optional[BusinessRecord]:
        return self.businesses.get(business_id)

    def list_businesses_for_user(self, user_id: str) -> list[BusinessRecord]:
        return _newest_first(b for b in self.businesses.values() if b.user_id == user_id)

    def list_businesses(self) -> list[BusinessRecord]:
        return _newest_first(self.businesses.values())

    def business_slug_exists(self, slug: str) -> bool:
        return any(b.slug == slug for b in self.businesses.values())

    def set_business_deleted(
        self, business_id: str, deleted_at: Optional[float]
    ) -> None:
        business = self.businesses.get(business_id)
        if business:
            business.deleted_at = deleted_at

    # Listings

    def create_listing(self, user_id: Optional[str], values: dict) -> ListingRecord:
        _check_fields(values, LISTING_FIELDS)
        listing = ListingRecord(id=_new_id(), user_id=user_id, **values)
        self.listings[listing.id] = listing
        return listing

    def get_listing(self, listing_id: str) -> Optional[ListingRecord]:
        return self.listings.get(listing_id)

    def list_listings_for_user(self, user_id: str) -> list[ListingRecord]:
        return _newest_first(l for l in self.listings.values() if l.user_id == user_id)

    def update_listing(
        self, listing_id: str, values: dict, user_id: Optional[str] = None
    ) -> Optional[ListingRecord]:
        _check_fields(values, LISTING_FIELDS)
        listing = self.listings.get(listing_id)
        if not listing or (user_id is not None and listing.user_id != user_id):
            return None
        for key, value in values.items():
            setattr(listing, key, value)
        listing.updated_at = _now()
        return listing

    def update_listings_for_business(
        self, business_id: str, values: dict, live_only: bool = False
    ) -> int:
        _check_fields(values, LISTING_FIELDS)
        updated = 0
        for listing in self.listings.values():
            if listing.business_id != business_id:
                continue
            if live_only and listing.deleted_at is not None:
                continue
            for key, value in values.items():
                setattr(listing, key, value)
            listing.updated_at = _now()
            updated += 1
        return updated

    def delete_listing(self, listing_id: str, user_id: Optional[str] = None) -> bool:
        listing = self.listings.get(listing_id)
        if not listing or (user_id is not None and listing.user_id != user_id):
            return False
        del self.listings[listing_id]
        return True

    def list_public_listings(
        self,
        island: Optional[str] = None,
        category_id: Optional[str] = None,
        status: str = ListingStatus.ACTIVE.value,
    ) -> list[ListingRecord]:
        return _newest_first(
            l
            for l in self.listings.values()
            if l.status == status
            and l.deleted_at is None
            and (island is None or l.island == island)
            and (category_id is None or l.category_id == category_id)
        )

    def search_listings(
        self, query: str, island: Optional[str] = None, limit: int = 20
    ) -> list[ListingRecord]:
        needle = query.strip().lower()
        hits = [
            l
            for l in self.list_public_listings(island=island)
            if needle in (l.business_name or "").lower()
            or needle in (l.description or "").lower()
        ]
        return hits[:limit]

    def resolve_listing(self, ref: str) -> Optional[ListingRecord]:
        listing = self.listings.get(ref)
        if listing:
            return listing
        for listing in _newest_first(self.listings.values()):
            if listing.business_id == ref:
                return listing
        return None

    # Subscriptions

    def get_subscription(self, business_id: str) -> Optional[SubscriptionRecord]:
        return self.subscriptions.get(business_id)

    def list_subscriptions(
        self, business_ids: Iterable[str]
    ) -> list[SubscriptionRecord]:
        return [self.subscriptions[b] for b in business_ids if b in self.subscriptions]

    def upsert_subscription(self, business_id: str, **values: Any) -> SubscriptionRecord:
        _check_fields(values, SUBSCRIPTION_FIELDS)
        subscription = self.subscriptions.get(business_id)
        if not subscription:
            subscription = SubscriptionRecord(id=_new_id(), business_id=business_id)
            self.subscriptions[business_id] = subscription
        for key, value in values.items():
            setattr(subscription, key, value)
        subscription.updated_at = _now()
        return subscription

    def update_subscription_by_stripe_id(
        self, stripe_subscription_id: str, **values: Any
    ) -> int:
        _check_fields(values, SUBSCRIPTION_FIELDS)
        updated = 0
        for subscription in self.subscriptions.values():
            if subscription.stripe_subscription_id == stripe_subscription_id:
                for key, value in values.items():
                    setattr(subscription, key, value)
                subscription.updated_at = _now()
                updated += 1
        return updated

    # Platform settings

    def list_settings(self) -> list[tuple[str, Any]]:
        return sorted(self.settings.items())

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    def upsert_settings(self, values: Dict[str, Any]) -> None:
        self.settings.update(values)

    # Events and logs

    def insert_click_event(self, event: ClickEventRecord) -> None:
        self.click_events.append(event)

    def list_click_events(
        self, business_id: str, since: float
    ) -> list[ClickEventRecord]:
        return [
            e
            for e in self.click_events
            if e.business_id == business_id and e.created_at >= since
        ]

    def insert_ai_question(self, record: AiQuestionRecord) -> None:
        self.ai_questions.append(record)

    def insert_audit(self, record: AuditRecord) -> None:
        self.audit.append(record)

    def list_audit(self, limit: int = 50) -> list[AuditRecord]:
        return _newest_first(self.audit)[:limit]


def _to_record(row: Any, record_cls: type) -> Any:
    return record_cls(**{f.name: getattr(row, f.name) for f in fields(record_cls)})


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _commit(self, session: Session, what: str) -> None:
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise DbConflictError(f"{what}: {e.orig}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise DbError(f"{what}: {e}") from e

    # Users

    def create_user(
        self,
        email: str,
        app_metadata: Optional[dict] = None,
        user_metadata: Optional[dict] = None,
    ) -> UserRecord:
        record = UserRecord(
            id=_new_id(),
            email=email.strip().lower(),
            app_metadata=dict(app_metadata or {}),
            user_metadata=dict(user_metadata or {}),
        )
        with self.Session() as session:
            session.add(UserRow(**asdict(record)))
            self._commit(session, f"create user {record.email}")
        return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return _to_record(row, UserRecord) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == (email or "").strip().lower())
            row = session.execute(stmt).scalar_one_or_none()
            return _to_record(row, UserRecord) if row else None

    def list_users(self, page: int = 1, per_page: int = 200) -> list[UserRecord]:
        with self.Session() as session:
            stmt = (
                select(UserRow)
                .order_by(UserRow.created_at.asc())
                .offset((max(page, 1) - 1) * per_page)
                .limit(per_page)
            )
            return [_to_record(r, UserRecord) for r in session.execute(stmt).scalars()]

    def update_user_app_metadata(self, user_id: str, app_metadata: dict) -> UserRecord:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                raise DbNotFoundError(f"User {user_id} not found")
            row.app_metadata = dict(app_metadata)
            self._commit(session, f"update user {user_id}")
            return _to_record(row, UserRecord)

    def touch_last_sign_in(self, user_id: str) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            row.last_sign_in_at = _now()
            self._commit(session, f"touch user {user_id}")

    # Profiles

    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        with self.Session() as session:
            row = session.get(ProfileRow, user_id)
            return _to_record(row, ProfileRecord) if row else None

    def get_profiles(self, user_ids: Iterable[str]) -> list[ProfileRecord]:
        ids = list(user_ids)
        if not ids:
            return []
        with self.Session() as session:
            stmt = select(ProfileRow).where(ProfileRow.id.in_(ids))
            return [_to_record(r, ProfileRecord) for r in session.execute(stmt).scalars()]

    def upsert_profile(self, user_id: str, **values: Any) -> ProfileRecord:
        with self.Session() as session:
            row = session.get(ProfileRow, user_id)
            if not row:
                row = ProfileRow(**asdict(ProfileRecord(id=user_id)))
                session.add(row)
            for key, value in values.items():
                setattr(row, key, value)
            self._commit(session, f"upsert profile {user_id}")
            return _to_record(row, ProfileRecord)

    # Categories

    def list_categories(self) -> list[CategoryRecord]:
        with self.Session() as session:
            stmt = select(CategoryRow).order_by(CategoryRow.name.asc())
            return [_to_record(r, CategoryRecord) for r in session.execute(stmt).scalars()]

    def get_category_by_slug(self, slug: str) -> Optional[CategoryRecord]:
        with self.Session() as session:
            stmt = select(CategoryRow).where(CategoryRow.slug == slug)
            row = session.execute(stmt).scalar_one_or_none()
            return _to_record(row, CategoryRecord) if row else None

    def upsert_categories(self, rows: Iterable[tuple[str, str]]) -> int:
        inserted = 0
        with self.Session() as session:
            for name, slug in rows:
                stmt = select(CategoryRow.id).where(CategoryRow.slug == slug)
                if session.execute(stmt).first():
                    continue
                session.add(
                    CategoryRow(id=_new_id(), name=name, slug=slug, created_at=_now())
                )
                inserted += 1
            self._commit(session, "upsert categories")
        return inserted

    # Businesses

    def create_business(
        self,
        user_id: Optional[str],
        name: str,
        slug: str,
        island: Optional[str] = None,
        plan: Optional[str] = None,
    ) -> BusinessRecord:
        record = BusinessRecord(
            id=_new_id(), user_id=user_id, name=name, slug=slug, island=island, plan=plan
        )
        with self.Session() as session:
            session.add(BusinessRow(**asdict(record)))
            self._commit(session, f"create business {slug}")
        return record

    def get_business(self, business_id: str) -> Optional[BusinessRecord]:
        with self.Session() as session:
            row = session.get(BusinessRow, business_id)
            return _to_record(row, BusinessRecord) if row else None

    def list_businesses_for_user(self, user_id: str) -> list[BusinessRecord]:
        with self.Session() as session:
            stmt = (
                select(BusinessRow)
                .where(BusinessRow.user_id == user_id)
                .order_by(BusinessRow.created_at.desc())
            )
            return [_to_record(r, BusinessRecord) for r in session.execute(stmt).scalars()]

    def list_businesses(self) -> list[BusinessRecord]:
        with self.Session() as session:
            stmt = select(BusinessRow).order_by(BusinessRow.created_at.desc())
            return [_to_record(r, BusinessRecord) for r in session.execute(stmt).scalars()]

    def business_slug_exists(self, slug: str) -> bool:
        with self.Session() as session:
            stmt = select(BusinessRow.id).where(BusinessRow.slug == slug)
            return session.execute(stmt).first() is not None

    def set_business_deleted(
        self, business_id: str, deleted_at: Optional[float]
    ) -> None:
        with self.Session() as session:
            row = session.get(BusinessRow, business_id)
            if not row:
                return
            row.deleted_at = deleted_at
            self._commit(session, f"delete business {business_id}")

    # Listings

    def create_listing(self, user_id: Optional[str], values: dict) -> ListingRecord:
        _check_fields(values, LISTING_FIELDS)
        record = ListingRecord(id=_new_id(), user_id=user_id, **values)
        with self.Session() as session:
            session.add(ListingRow(**asdict(record)))
            self._commit(session, "create listing")
        return record

    def get_listing(self, listing_id: str) -> Optional[ListingRecord]:
        with self.Session() as session:
            row = session.get(ListingRow, listing_id)
            return _to_record(row, ListingRecord) if row else None

    def list_listings_for_user(self, user_id: str) -> list[ListingRecord]:
        with self.Session() as session:
            stmt = (
                select(ListingRow)
                .where(ListingRow.user_id == user_id)
                .order_by(ListingRow.created_at.desc())
            )
            return [_to_record(r, ListingRecord) for r in session.execute(stmt).scalars()]

    def update_listing(
        self, listing_id: str, values: dict, user_id: Optional[str] = None
    ) -> Optional[ListingRecord]:
        _check_fields(values, LISTING_FIELDS)
        with self.Session() as session:
            row = session.get(ListingRow, listing_id)
            if not row or (user_id is not None and row.user_id != user_id):
                return None
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = _now()
            self._commit(session, f"update listing {listing_id}")
            return _to_record(row, ListingRecord)

    def update_listings_for_business(
        self, business_id: str, values: dict, live_only: bool = False
    ) -> int:
        _check_fields(values, LISTING_FIELDS)
        with self.Session() as session:
            query = session.query(ListingRow).filter(
                ListingRow.business_id == business_id
            )
            if live_only:
                query = query.filter(ListingRow.deleted_at.is_(None))
            updated = query.update(
                {**values, "updated_at": _now()}, synchronize_session=False
            )
            self._commit(session, f"update listings of {business_id}")
            return updated or 0

    def delete_listing(self, listing_id: str, user_id: Optional[str] = None) -> bool:
        with self.Session() as session:
            row = session.get(ListingRow, listing_id)
            if not row or (user_id is not None and row.user_id != user_id):
                return False
            session.delete(row)
            self._commit(session, f"delete listing {listing_id}")
            return True

    def _public_listings_stmt(
        self,
        island: Optional[str],
        category_id: Optional[str],
        status: str,
    ):
        stmt = select(ListingRow).where(
            ListingRow.status == status, ListingRow.deleted_at.is_(None)
        )
        if island:
            stmt = stmt.where(ListingRow.island == island)
        if category_id:
            stmt = stmt.where(ListingRow.category_id == category_id)
        return stmt.order_by(ListingRow.created_at.desc())

    def list_public_listings(
        self,
        island: Optional[str] = None,
        category_id: Optional[str] = None,
        status: str = ListingStatus.ACTIVE.value,
    ) -> list[ListingRecord]:
        with self.Session() as session:
            stmt = self._public_listings_stmt(island, category_id, status)
            return [_to_record(r, ListingRecord) for r in session.execute(stmt).scalars()]

    def search_listings(
        self, query: str, island: Optional[str] = None, limit: int = 20
    ) -> list[ListingRecord]:
        pattern = f"%{query.strip().lower()}%"
        with self.Session() as session:
            stmt = (
                self._public_listings_stmt(island, None, ListingStatus.ACTIVE.value)
                .where(
                    or_(
                        func.lower(ListingRow.business_name).like(pattern),
                        func.lower(ListingRow.description).like(pattern),
                    )
                )
                .limit(limit)
            )
            return [_to_record(r, ListingRecord) for r in session.execute(stmt).scalars()]

    def resolve_listing(self, ref: str) -> Optional[ListingRecord]:
        with self.Session() as session:
            row = session.get(ListingRow, ref)
            if not row:
                stmt = (
                    select(ListingRow)
                    .where(ListingRow.business_id == ref)
                    .order_by(ListingRow.created_at.desc())
                    .limit(1)
                )
                row = session.execute(stmt).scalar_one_or_none()
            return _to_record(row, ListingRecord) if row else None

    # Subscriptions

    def get_subscription(self, business_id: str) -> Optional[SubscriptionRecord]:
        with self.Session() as session:
            stmt = select(SubscriptionRow).where(SubscriptionRow.business_id == business_id)
            row = session.execute(stmt).scalar_one_or_none()
            return _to_record(row, SubscriptionRecord) if row else None

    def list_subscriptions(
        self, business_ids: Iterable[str]
    ) -> list[SubscriptionRecord]:
        ids = list(business_ids)
        if not ids:
            return []
        with self.Session() as session:
            stmt = select(SubscriptionRow).where(SubscriptionRow.business_id.in_(ids))
            return [
                _to_record(r, SubscriptionRecord) for r in session.execute(stmt).scalars()
            ]

    def upsert_subscription(self, business_id: str, **values: Any) -> SubscriptionRecord:
        _check_fields(values, SUBSCRIPTION_FIELDS)
        with self.Session() as session:
            stmt = select(SubscriptionRow).where(SubscriptionRow.business_id == business_id)
            row = session.execute(stmt).scalar_one_or_none()
            if not row:
                row = SubscriptionRow(
                    **asdict(SubscriptionRecord(id=_new_id(), business_id=business_id))
                )
                session.add(row)
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = _now()
            self._commit(session, f"upsert subscription {business_id}")
            return _to_record(row, SubscriptionRecord)

    def update_subscription_by_stripe_id(
        self, stripe_subscription_id: str, **values: Any
    ) -> int:
        _check_fields(values, SUBSCRIPTION_FIELDS)
        with self.Session() as session:
            updated = (
                session.query(SubscriptionRow)
                .filter(SubscriptionRow.stripe_subscription_id == stripe_subscription_id)
                .update({**values, "updated_at": _now()}, synchronize_session=False)
            )
            self._commit(session, f"update subscription {stripe_subscription_id}")
            return updated or 0

    # Platform settings

    def list_settings(self) -> list[tuple[str, Any]]:
        with self.Session() as session:
            stmt = select(SettingRow).order_by(SettingRow.key.asc())
            return [(r.key, r.value) for r in session.execute(stmt).scalars()]

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self.Session() as session:
            row = session.get(SettingRow, key)
            return row.value if row else default

    def upsert_settings(self, values: Dict[str, Any]) -> None:
        with self.Session() as session:
            for key, value in values.items():
                row = session.get(SettingRow, key)
                if row:
                    row.value = value
                else:
                    session.add(SettingRow(key=key, value=value))
            self._commit(session, "upsert settings")

    # Events and logs

    def insert_click_event(self, event: ClickEventRecord) -> None:
        with self.Session() as session:
            session.add(ClickEventRow(**asdict(event)))
            self._commit(session, "insert click event")

    def list_click_events(
        self, business_id: str, since: float
    ) -> list[ClickEventRecord]:
        with self.Session() as session:
            stmt = select(ClickEventRow).where(
                ClickEventRow.business_id == business_id,
                ClickEventRow.created_at >= since,
            )
            return [
                _to_record(r, ClickEventRecord) for r in session.execute(stmt).scalars()
            ]

    def insert_ai_question(self, record: AiQuestionRecord) -> None:
        with self.Session() as session:
            session.add(AiQuestionRow(**asdict(record)))
            self._commit(session, "insert ai question")

    def insert_audit(self, record: AuditRecord) -> None:
        with self.Session() as session:
            session.add(AuditRow(**asdict(record)))
            self._commit(session, "insert audit")

    def list_audit(self, limit: int = 50) -> list[AuditRecord]:
        with self.Session() as session:
            stmt = select(AuditRow).order_by(AuditRow.created_at.desc()).limit(limit)
            return [_to_record(r, AuditRecord) for r in session.execute(stmt).scalars()]


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    app_metadata = Column(JSON, nullable=False, default=dict)
    user_metadata = Column(JSON, nullable=False, default=dict)
    created_at = Column(Float, nullable=False)
    last_sign_in_at = Column(Float, nullable=True)


class ProfileRow(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    full_name = Column(String, nullable=True)
    business_name = Column(String, nullable=True)
    plan = Column(String, nullable=True)
    is_blocked = Column(Boolean, nullable=False, default=False)
    ai_daily_quota = Column(Integer, nullable=False, default=5)
    ai_used_today = Column(Integer, nullable=False, default=0)
    ai_last_reset = Column(String, nullable=True)
    mfa_totp_secret = Column(String, nullable=True)
    is_mfa_enabled = Column(Boolean, nullable=False, default=False)


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    created_at = Column(Float, nullable=False)


class BusinessRow(Base):
    __tablename__ = "businesses"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    island = Column(String, nullable=True)
    plan = Column(String, nullable=True)
    trial_end = Column(Float, nullable=True)
    deleted_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)


class ListingRow(Base):
    __tablename__ = "business_listings"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)
    business_id = Column(String, nullable=True, index=True)
    business_name = Column(String, nullable=False, default="")
    category_id = Column(String, nullable=True)
    island = Column(String, nullable=True, index=True)
    description = Column(Text, nullable=True)
    address = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    website = Column(String, nullable=True)
    whatsapp = Column(String, nullable=True)
    route_url = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    cover_image_url = Column(String, nullable=True)
    opening_hours = Column(Text, nullable=True)
    highlight_1 = Column(String, nullable=True)
    highlight_2 = Column(String, nullable=True)
    highlight_3 = Column(String, nullable=True)
    instagram = Column(String, nullable=True)
    facebook = Column(String, nullable=True)
    tiktok = Column(String, nullable=True)
    status = Column(String, nullable=False, default=ListingStatus.PENDING.value)
    subscription_plan = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_at = Column(Float, nullable=True)
    deleted_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    id = Column(String, primary_key=True)
    business_id = Column(String, nullable=False, unique=True)
    plan = Column(String, nullable=False)
    status = Column(String, nullable=False)
    stripe_customer_id = Column(String, nullable=True)
    stripe_subscription_id = Column(String, nullable=True, index=True)
    current_period_end = Column(Float, nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    ends_at = Column(Float, nullable=True)
    paid_until = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class SettingRow(Base):
    __tablename__ = "platform_settings"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)


class ClickEventRow(Base):
    __tablename__ = "business_click_events"

    id = Column(String, primary_key=True)
    business_id = Column(String, nullable=False, index=True)
    event_type = Column(String, nullable=False)
    path = Column(String, nullable=True)
    lang = Column(String, nullable=True)
    island = Column(String, nullable=True)
    user_id = Column(String, nullable=True)
    session_id = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, index=True)


class AiQuestionRow(Base):
    __tablename__ = "ai_questions"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    island = Column(String, nullable=True)
    plan_at_time = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class AuditRow(Base):
    __tablename__ = "moderation_audit"

    id = Column(String, primary_key=True)
    business_id = Column(String, nullable=True, index=True)
    actor_user_id = Column(String, nullable=True)
    action = Column(String, nullable=False)
    detail = Column(JSON, nullable=False, default=dict)
    created_at = Column(Float, nullable=False)
