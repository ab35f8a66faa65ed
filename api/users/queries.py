"""
SQL assembly for filtered user listing.

Filter values only ever travel as bound parameters; the SQL text contains
column names and placeholders, nothing from the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

USER_COLUMNS = "id_user, name, email, age"

# Predicate order is fixed so the generated SQL is deterministic.
FILTER_COLUMNS = ("name", "email", "age")


@dataclass(frozen=True)
class UserFilters:
    name: str | None = None
    email: str | None = None
    age: int | None = None

    def pairs(self) -> list[tuple[str, Any]]:
        """
        Supplied filters as (column, value), in FILTER_COLUMNS order.

        None and blank strings mean "not supplied".
        """
        pairs: list[tuple[str, Any]] = []
        for column in FILTER_COLUMNS:
            value = getattr(self, column)
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            pairs.append((column, value))
        return pairs


@dataclass(frozen=True)
class Statement:
    sql: str
    params: tuple[Any, ...]


def build_list_query(filters: UserFilters | None = None) -> Statement:
    pairs = (filters or UserFilters()).pairs()

    predicates = [f"{column} = ${position}" for position, (column, _) in enumerate(pairs, start=1)]
    params = tuple(value for _, value in pairs)

    sql = f"SELECT {USER_COLUMNS} FROM users"
    if predicates:
        sql += " WHERE " + " AND ".join(predicates)
    sql += " ORDER BY id_user"
    return Statement(sql=sql, params=params)
