"""
Auth persistence helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from core import db

_USER_COLUMNS = """
    u.id, u.username, u.email, u.password_hash, u.is_active, u.created_at, u.updated_at,
    COALESCE(
        array_agg(r.name ORDER BY r.name) FILTER (WHERE r.name IS NOT NULL),
        '{}'::text[]
    ) AS roles
"""

_USER_FROM = """
    FROM users u
    LEFT JOIN user_roles ur ON ur.user_id = u.id
    LEFT JOIN roles r ON r.id = ur.role_id
"""


def normalize_username(username: str) -> str:
    return (username or "").strip()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def create_user(
    *,
    username: str,
    email: str,
    password_hash: str,
    roles: Iterable[str],
    is_active: bool = True,
) -> dict:
    """
    Insert a user and its role links in one transaction.
    """
    async with db.transaction() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO users (username, email, password_hash, is_active)
            VALUES ($1, $2, $3, $4)
            RETURNING id
            """,
            normalize_username(username),
            normalize_email(email),
            password_hash,
            is_active,
        )
        if row is None:
            raise RuntimeError("Failed to create user.")

        user_id = int(row["id"])
        await conn.execute(
            """
            INSERT INTO user_roles (user_id, role_id)
            SELECT $1, r.id
            FROM roles r
            WHERE r.name = ANY($2::text[])
            ON CONFLICT DO NOTHING
            """,
            user_id,
            list(roles),
        )

    user = await get_user_by_id(user_id)
    if user is None:
        raise RuntimeError("Failed to create user.")
    return user


async def get_user_by_username(username: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        {_USER_FROM}
        WHERE lower(u.username) = lower($1)
        GROUP BY u.id
        """,
        normalize_username(username),
    )


async def get_user_by_email(email: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        {_USER_FROM}
        WHERE lower(u.email) = lower($1)
        GROUP BY u.id
        """,
        normalize_email(email),
    )


async def get_user_by_id(user_id: int) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_USER_COLUMNS}
        {_USER_FROM}
        WHERE u.id = $1
        GROUP BY u.id
        """,
        user_id,
    )


async def ensure_roles(names: Iterable[str]) -> None:
    await db.execute(
        """
        INSERT INTO roles (name)
        SELECT unnest($1::text[])
        ON CONFLICT (name) DO NOTHING
        """,
        list(names),
    )


async def insert_refresh_token(
    *,
    user_id: int,
    token_hash: str,
    expires_at: datetime,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> dict:
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    row = await db.fetch_one(
        """
        INSERT INTO refresh_tokens (user_id, token_hash, expires_at, user_agent, ip_address)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING id, user_id, token_hash, expires_at, revoked_at,
                  replaced_by_token_id, created_at, last_used_at, user_agent, ip_address
        """,
        user_id,
        token_hash,
        expires_at,
        user_agent,
        ip_address,
    )
    if row is None:
        raise RuntimeError("Failed to insert refresh token.")
    return row


async def get_refresh_token_by_hash(token_hash: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, user_id, token_hash, expires_at, revoked_at,
               replaced_by_token_id, created_at, last_used_at, user_agent, ip_address
        FROM refresh_tokens
        WHERE token_hash = $1
        """,
        token_hash,
    )


async def rotate_refresh_token(token_id: int) -> None:
    """
    Mark a refresh token used and revoked in one statement.
    """
    await db.execute(
        """
        UPDATE refresh_tokens
        SET last_used_at = now(),
            revoked_at = COALESCE(revoked_at, now())
        WHERE id = $1
        """,
        token_id,
    )


async def revoke_refresh_token_by_hash(token_hash: str) -> bool:
    row = await db.fetch_one(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE token_hash = $1
          AND revoked_at IS NULL
        RETURNING id
        """,
        token_hash,
    )
    return row is not None


async def revoke_refresh_token_by_id(token_id: int) -> bool:
    row = await db.fetch_one(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE id = $1
          AND revoked_at IS NULL
        RETURNING id
        """,
        token_id,
    )
    return row is not None


async def revoke_all_refresh_tokens_for_user(user_id: int) -> None:
    await db.execute(
        """
        UPDATE refresh_tokens
        SET revoked_at = now()
        WHERE user_id = $1
          AND revoked_at IS NULL
        """,
        user_id,
    )


async def set_refresh_token_replacement(*, old_token_id: int, new_token_id: int) -> None:
    await db.execute(
        """
        UPDATE refresh_tokens
        SET replaced_by_token_id = $2
        WHERE id = $1
        """,
        old_token_id,
        new_token_id,
    )
