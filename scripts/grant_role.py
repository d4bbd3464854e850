"""
Add or remove a role on a user, e.g. to bootstrap the first super admin.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from guideme.dependencies import get_db_client
from shared import roles

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Grant a role to a user")
    parser.add_argument("email", help="Email address of the user")
    parser.add_argument(
        "--role",
        default=roles.SUPER_ADMIN,
        help="Role to grant (default: super_admin)",
    )
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Remove the role instead of adding it",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    db = get_db_client()
    user = db.get_user_by_email(args.email.strip().lower())
    if not user:
        logger.error("No user with email %s", args.email)
        return 1

    role = roles.normalize_role(args.role)
    current = roles.get_roles(user)
    if args.revoke:
        next_roles = [r for r in current if r != role]
    elif role in current:
        logger.info("%s already has role %s", user.email, role)
        return 0
    else:
        next_roles = current + [role]

    db.update_user_app_metadata(user.id, {**user.app_metadata, "roles": next_roles})
    logger.info("Roles of %s set to %s", user.email, next_roles)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
