"""Application lifespan: startup with and without a reachable store."""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from main import app


def test_app_starts_when_store_is_unreachable(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@nowhere:5432/app")

    with patch("core.db.asyncpg.create_pool", new=AsyncMock(side_effect=OSError("refused"))):
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

            response = client.get("/usuarios")

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to list users."}


def test_startup_creates_schema_and_shutdown_closes_pool(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/app")
    monkeypatch.delenv("USERS_AUTO_CREATE_SCHEMA", raising=False)
    pool = MagicMock()
    pool.execute = AsyncMock(return_value="CREATE TABLE")
    pool.close = AsyncMock()

    with patch("core.db.asyncpg.create_pool", new=AsyncMock(return_value=pool)):
        with TestClient(app):
            pass

    ddl = pool.execute.await_args.args[0]
    assert "CREATE TABLE IF NOT EXISTS users" in ddl
    assert "UNIQUE (email)" in ddl
    pool.close.assert_awaited_once()


def test_schema_is_created_when_store_comes_up_after_startup(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/app")
    monkeypatch.delenv("USERS_AUTO_CREATE_SCHEMA", raising=False)
    pool = MagicMock()
    pool.execute = AsyncMock(return_value="CREATE TABLE")
    pool.fetch = AsyncMock(return_value=[])
    pool.close = AsyncMock()

    create_pool = AsyncMock(side_effect=[OSError("refused"), pool])
    with patch("core.db.asyncpg.create_pool", new=create_pool):
        with TestClient(app) as client:
            response = client.get("/usuarios")

    assert response.status_code == 200
    assert response.json() == []
    assert create_pool.await_count == 2
    ddl = pool.execute.await_args.args[0]
    assert "CREATE TABLE IF NOT EXISTS users" in ddl
    assert pool.execute.await_count == 1
