"""
Required-field checks for user writes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

REQUIRED_FIELDS = ("name", "email", "age")
REQUIRED_FIELDS_MESSAGE = "All fields (name, email, age) are required."


@dataclass(frozen=True)
class ValidationResult:
    missing: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing

    @property
    def message(self) -> str:
        return "" if self.ok else REQUIRED_FIELDS_MESSAGE


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_user_payload(payload: Mapping[str, Any]) -> ValidationResult:
    """
    A payload is valid when name, email and age are all present and non-null.

    Strings must be non-blank; age 0 counts as present.
    """
    missing = tuple(field for field in REQUIRED_FIELDS if _is_blank(payload.get(field)))
    return ValidationResult(missing=missing)
