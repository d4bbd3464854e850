"""
Platform-wide switches managed from the godmode settings screen.
"""

from __future__ import annotations

from typing import Any, Dict

from guideme.db import DbClient

SETTING_DEFAULTS: Dict[str, Any] = {
    "maintenance_mode": False,
    "allow_registrations": True,
    "auto_approve_businesses": False,
    "auto_approve_reviews": False,
    "force_email_verification": False,
    "ai_max_free": 5,
    "ai_max_premium": 50,
    "ai_temperature": 0.4,
    "featured_per_island": 6,
    "auto_sort_popular": True,
    "auto_block_suspicious": False,
    "rate_limit_level": 1,
}


def validate_settings(values: Dict[str, Any]) -> Dict[str, Any]:
    """Checks keys and value types; raises ValueError on the first bad entry."""
    clean: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in SETTING_DEFAULTS:
            raise ValueError(f"Unknown setting: {key}")
        default = SETTING_DEFAULTS[key]
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean")
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        clean[key] = value
    return clean


def load_settings(db: DbClient) -> Dict[str, Any]:
    merged = dict(SETTING_DEFAULTS)
    merged.update(dict(db.list_settings()))
    return merged


def is_maintenance(db: DbClient) -> bool:
    return bool(db.get_setting("maintenance_mode", False))


def registrations_open(db: DbClient) -> bool:
    return bool(db.get_setting("allow_registrations", True))
