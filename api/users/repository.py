"""
User persistence (raw SQL).

Email uniqueness is checked with `email_in_use` before each write, but the
check and the write are separate statements: two concurrent requests with the
same email can both pass the check. The `users_email_key` UNIQUE constraint
closes that gap; the losing write raises `db.DuplicateKeyError`.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db

from .queries import USER_COLUMNS, UserFilters, build_list_query


async def ensure_schema(pool: asyncpg.Pool) -> None:
    """
    Create the users table if missing. Runs as the pool's on-connect hook.
    """
    await pool.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id_user BIGSERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            age INTEGER NOT NULL,
            CONSTRAINT users_email_key UNIQUE (email)
        )
        """
    )


async def email_in_use(
    database: db.Database,
    email: str,
    *,
    exclude_id: int | None = None,
) -> bool:
    if exclude_id is None:
        row = await database.fetch_one(
            """
            SELECT 1 AS ok
            FROM users
            WHERE email = $1
            LIMIT 1
            """,
            email,
        )
    else:
        row = await database.fetch_one(
            """
            SELECT 1 AS ok
            FROM users
            WHERE email = $1
              AND id_user <> $2
            LIMIT 1
            """,
            email,
            exclude_id,
        )
    return row is not None


async def insert_user(database: db.Database, *, name: str, email: str, age: int) -> dict[str, Any]:
    row = await database.fetch_one(
        f"""
        INSERT INTO users (name, email, age)
        VALUES ($1, $2, $3)
        RETURNING {USER_COLUMNS}
        """,
        name,
        email,
        age,
    )
    if row is None:
        raise db.StoreError("Insert returned no row.")
    return row


async def list_users(database: db.Database, filters: UserFilters | None = None) -> list[dict[str, Any]]:
    statement = build_list_query(filters)
    return await database.fetch_all(statement.sql, *statement.params)


async def update_user(
    database: db.Database,
    id_user: int,
    *,
    name: str,
    email: str,
    age: int,
) -> int:
    return await database.execute(
        """
        UPDATE users
        SET name = $1, email = $2, age = $3
        WHERE id_user = $4
        """,
        name,
        email,
        age,
        id_user,
    )


async def delete_user(database: db.Database, id_user: int) -> int:
    return await database.execute(
        """
        DELETE FROM users
        WHERE id_user = $1
        """,
        id_user,
    )
