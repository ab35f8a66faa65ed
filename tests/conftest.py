"""Pytest fixtures for the users API tests.

`FakeDatabase` stands in for `core.db.Database`: it keeps rows in memory and
understands the handful of statements `users.repository` issues, including the
UNIQUE(email) constraint of the real table.
"""

import re

import pytest
from fastapi.testclient import TestClient

from core import db
from main import app

_PREDICATE = re.compile(r"(\w+) (=|<>) \$(\d+)")


def _normalize(sql: str) -> str:
    return " ".join(sql.split())


def _where_predicates(sql: str, args: tuple) -> list[tuple[str, str, object]]:
    if " WHERE " not in sql:
        return []
    clause = sql.split(" WHERE ", 1)[1]
    clause = re.split(r" ORDER BY | LIMIT ", clause)[0]
    return [(column, op, args[int(position) - 1]) for column, op, position in _PREDICATE.findall(clause)]


def _matches(row: dict, predicates: list[tuple[str, str, object]]) -> bool:
    for column, op, value in predicates:
        if op == "=" and row[column] != value:
            return False
        if op == "<>" and row[column] == value:
            return False
    return True


class FakeDatabase:
    def __init__(self):
        self.rows: list[dict] = []
        self.statements: list[tuple[str, tuple]] = []
        self.fail_on: list[str] = []
        self._next_id = 1

    def seed(self, name: str, email: str, age: int) -> dict:
        row = {"id_user": self._next_id, "name": name, "email": email, "age": age}
        self._next_id += 1
        self.rows.append(row)
        return dict(row)

    def _check(self, sql: str, args: tuple) -> None:
        self.statements.append((sql, args))
        for fragment in self.fail_on:
            if fragment in sql:
                raise db.StoreError(f"simulated failure on {fragment!r}")

    def _email_taken(self, email: str, *, exclude_id=None) -> bool:
        return any(r["email"] == email and r["id_user"] != exclude_id for r in self.rows)

    async def fetch_one(self, sql: str, *args):
        sql = _normalize(sql)
        self._check(sql, args)
        if sql.startswith("SELECT 1 AS ok FROM users"):
            predicates = _where_predicates(sql, args)
            return {"ok": 1} if any(_matches(r, predicates) for r in self.rows) else None
        if sql.startswith("INSERT INTO users (name, email, age)"):
            name, email, age = args
            if self._email_taken(email):
                raise db.DuplicateKeyError("duplicate key value violates unique constraint \"users_email_key\"")
            return self.seed(name, email, age)
        raise AssertionError(f"unexpected fetch_one: {sql}")

    async def fetch_all(self, sql: str, *args):
        sql = _normalize(sql)
        self._check(sql, args)
        if sql.startswith("SELECT id_user, name, email, age FROM users"):
            predicates = _where_predicates(sql, args)
            rows = [dict(r) for r in self.rows if _matches(r, predicates)]
            return sorted(rows, key=lambda r: r["id_user"])
        raise AssertionError(f"unexpected fetch_all: {sql}")

    async def execute(self, sql: str, *args) -> int:
        sql = _normalize(sql)
        self._check(sql, args)
        if sql.startswith("CREATE TABLE"):
            return 0
        if sql.startswith("UPDATE users SET name = $1, email = $2, age = $3 WHERE id_user = $4"):
            name, email, age, id_user = args
            targets = [r for r in self.rows if r["id_user"] == id_user]
            if targets and self._email_taken(email, exclude_id=id_user):
                raise db.DuplicateKeyError("duplicate key value violates unique constraint \"users_email_key\"")
            for row in targets:
                row.update(name=name, email=email, age=age)
            return len(targets)
        if sql.startswith("DELETE FROM users WHERE id_user = $1"):
            (id_user,) = args
            before = len(self.rows)
            self.rows = [r for r in self.rows if r["id_user"] != id_user]
            return before - len(self.rows)
        raise AssertionError(f"unexpected execute: {sql}")


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def client(fake_db):
    """TestClient wired to the in-memory store (startup hooks are not run)."""
    app.dependency_overrides[db.get_database] = lambda: fake_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
