"""
Role names and role checks.
"""

from __future__ import annotations

from typing import Iterable

ROLE_ADMIN = "ROLE_ADMIN"
ROLE_USER = "ROLE_USER"

ALL_ROLES = (ROLE_ADMIN, ROLE_USER)


def has_any_role(user_roles: Iterable[str], *required: str) -> bool:
    held = set(user_roles or ())
    return any(role in held for role in required)


def is_admin(user: dict) -> bool:
    return has_any_role(user.get("roles") or (), ROLE_ADMIN)
