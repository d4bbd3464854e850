# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""
Role resolution for auth users.

Roles live in the user's app metadata, either as a list under "roles" or as a
single string under "role". Older accounts may carry them on the user itself
or in user metadata, so every lookup goes through get_roles().
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List

SUPER_ADMIN = "super_admin"
ADMIN = "admin"
MODERATOR = "moderator"
OWNER = "owner"
BUSINESS_OWNER = "business_owner"
USER = "user"

SUPER_ADMIN_ROLES = frozenset({"super_admin", "superadmin", "godmode", "god_mode"})
ADMIN_ROLES = frozenset({ADMIN, MODERATOR}) | SUPER_ADMIN_ROLES
OWNER_ROLES = frozenset({OWNER, BUSINESS_OWNER})

_WHITESPACE = re.compile(r"\s+")


def normalize_role(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE.sub("_", str(value).strip().lower())


def normalize_roles(raw: Any) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, (list, tuple, set, frozenset)):
        roles = [normalize_role(r) for r in raw]
        return [r for r in roles if r]
    if isinstance(raw, str):
        role = normalize_role(raw)
        return [role] if role else []
    return []


def _get(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def get_roles(user: Any) -> List[str]:
    """Returns the normalized, de-duplicated roles of a user (dict or record)."""
    if user is None:
        return []
    app_meta = _get(user, "app_metadata") or {}
    user_meta = _get(user, "user_metadata") or {}

    for raw in (
        _get(app_meta, "roles"),
        _get(app_meta, "role"),
        _get(user, "role"),
        _get(user_meta, "roles"),
        _get(user_meta, "role"),
    ):
        if raw:
            return list(dict.fromkeys(normalize_roles(raw)))
    return []


def is_super_admin_roles(roles: Iterable[str]) -> bool:
    return any(normalize_role(r) in SUPER_ADMIN_ROLES for r in roles)


def is_admin_roles(roles: Iterable[str]) -> bool:
    return any(normalize_role(r) in ADMIN_ROLES for r in roles)


def is_super_admin(user: Any) -> bool:
    return is_super_admin_roles(get_roles(user))


def is_admin(user: Any) -> bool:
    return is_admin_roles(get_roles(user))


@dataclass(frozen=True)
class RoleFlags:
    roles: List[str] = field(default_factory=list)
    is_super_admin: bool = False
    is_admin: bool = False
    is_owner: bool = False
    is_user: bool = False


def get_role_flags(user: Any) -> RoleFlags:
    roles = get_roles(user)
    return RoleFlags(
        roles=roles,
        is_super_admin=is_super_admin_roles(roles),
        is_admin=is_admin_roles(roles),
        is_owner=any(r in OWNER_ROLES for r in roles),
        is_user=USER in roles or not roles,
    )


def toggle_role(roles: Iterable[str], role: str) -> List[str]:
    """Adds the role when missing, removes it when present."""
    current = normalize_roles(list(roles))
    target = normalize_role(role)
    if target in current:
        return [r for r in current if r != target]
    return current + [target]
