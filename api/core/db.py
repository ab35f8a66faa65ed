"""
Async database access (raw SQL) using asyncpg.

`Database` owns the connection pool. FastAPI opens it on startup and closes it
on shutdown (see `api/main.py`); request handlers receive it through the
`get_database` dependency.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import asyncpg
from fastapi import Request

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """
    The store could not be reached or rejected a statement.
    """


class DuplicateKeyError(StoreError):
    """
    A write violated a unique constraint.
    """


_CONNECTION_ERRORS = (asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


def affected_rows(status: str) -> int:
    """
    Parse the row count out of a command status tag ("UPDATE 2", "INSERT 0 1").
    """
    last = (status or "").rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else 0


class Database:
    """
    Handle around one asyncpg pool.

    `on_connect` runs against every freshly created pool before it is handed
    out (e.g. to bootstrap tables). If it fails, the pool is discarded and the
    next call tries again from scratch.
    """

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 1,
        max_size: int = 5,
        command_timeout: float = 30,
        on_connect: Callable[[asyncpg.Pool], Awaitable[Any]] | None = None,
    ) -> None:
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.on_connect = on_connect
        self._pool: asyncpg.Pool | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        async with self._connect_lock:
            # Another request may have connected while we waited.
            if self._pool is not None:
                return None
            try:
                pool = await asyncpg.create_pool(
                    dsn=self.dsn,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    command_timeout=self.command_timeout,
                )
            except (asyncpg.PostgresError, *_CONNECTION_ERRORS) as exc:
                raise StoreError(f"Could not connect to database: {exc}") from exc

            if self.on_connect is not None:
                try:
                    await self.on_connect(pool)
                except (asyncpg.PostgresError, *_CONNECTION_ERRORS) as exc:
                    await pool.close()
                    raise StoreError(f"Connection setup failed: {exc}") from exc

            self._pool = pool
        logger.info("db_pool_opened min_size=%s max_size=%s", self.min_size, self.max_size)

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None
        logger.info("db_pool_closed")

    async def _acquire_pool(self) -> asyncpg.Pool:
        # Startup may have failed to connect; try again on demand.
        if self._pool is None:
            await self.connect()
        pool = self._pool
        if pool is None:
            raise StoreError("DB pool is not initialized.")
        return pool

    async def _run(self, method: str, sql: str, *args: Any) -> Any:
        pool = await self._acquire_pool()
        try:
            return await getattr(pool, method)(sql, *args)
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateKeyError(str(exc)) from exc
        except (asyncpg.PostgresError, *_CONNECTION_ERRORS) as exc:
            raise StoreError(str(exc)) from exc

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self._run("fetchrow", sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self._run("fetch", sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> int:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL) and return the affected-row count.
        """
        status = await self._run("execute", sql, *args)
        return affected_rows(status)


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database is not initialized. It is created on application startup.")
    return database
