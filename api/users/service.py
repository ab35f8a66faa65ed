"""
User business logic.

Every store failure is caught here and turned into an HTTPException; the raw
error is only logged.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core import db

from . import repository, schemas
from .queries import UserFilters
from .validation import validate_user_payload

logger = logging.getLogger(__name__)

EMAIL_IN_USE = "Email is already in use."
EMAIL_IN_USE_BY_OTHER = "Email is already in use by another user."
USER_NOT_FOUND = "User not found."


def _to_user_response(row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id_user=int(row["id_user"]),
        name=str(row["name"]),
        email=str(row["email"]),
        age=int(row["age"]),
    )


def _store_failure(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def _clean_payload(payload: schemas.UserPayload) -> tuple[str, str, int]:
    result = validate_user_payload(payload.model_dump())
    if not result.ok:
        logger.info("user_payload_rejected missing=%s", ",".join(result.missing))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
    return str(payload.name).strip(), str(payload.email).strip(), int(payload.age)


def _ensure_id_storable(id_user: int) -> None:
    # Ids outside the BIGSERIAL range cannot exist, and asyncpg would refuse to encode them.
    if not schemas.ID_USER_MIN <= id_user <= schemas.ID_USER_MAX:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=USER_NOT_FOUND)


async def _ensure_email_available(
    database: db.Database,
    email: str,
    *,
    exclude_id: int | None = None,
    conflict_detail: str,
) -> None:
    try:
        in_use = await repository.email_in_use(database, email, exclude_id=exclude_id)
    except db.StoreError as exc:
        logger.exception("email_check_failed exclude_id=%s", exclude_id)
        raise _store_failure("Failed to check email.") from exc

    if in_use:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=conflict_detail)


async def create_user(database: db.Database, payload: schemas.UserPayload) -> schemas.CreatedUserResponse:
    name, email, age = _clean_payload(payload)
    await _ensure_email_available(database, email, conflict_detail=EMAIL_IN_USE)

    try:
        row = await repository.insert_user(database, name=name, email=email, age=age)
    except db.DuplicateKeyError as exc:
        # Lost the race against a concurrent write with the same email.
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMAIL_IN_USE) from exc
    except db.StoreError as exc:
        logger.exception("user_insert_failed")
        raise _store_failure("Failed to insert user.") from exc

    user = _to_user_response(row)
    logger.info("user_created id_user=%s", user.id_user)
    return schemas.CreatedUserResponse(message="User created successfully.", user=user)


async def list_users(database: db.Database, filters: UserFilters) -> list[schemas.UserResponse]:
    try:
        rows = await repository.list_users(database, filters)
    except db.StoreError as exc:
        logger.exception("user_list_failed")
        raise _store_failure("Failed to list users.") from exc
    return [_to_user_response(row) for row in rows]


async def update_user(
    database: db.Database,
    id_user: int,
    payload: schemas.UserPayload,
) -> schemas.MessageResponse:
    name, email, age = _clean_payload(payload)
    _ensure_id_storable(id_user)
    await _ensure_email_available(
        database,
        email,
        exclude_id=id_user,
        conflict_detail=EMAIL_IN_USE_BY_OTHER,
    )

    try:
        updated = await repository.update_user(database, id_user, name=name, email=email, age=age)
    except db.DuplicateKeyError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=EMAIL_IN_USE_BY_OTHER) from exc
    except db.StoreError as exc:
        logger.exception("user_update_failed id_user=%s", id_user)
        raise _store_failure("Failed to update user.") from exc

    if updated == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=USER_NOT_FOUND)

    logger.info("user_updated id_user=%s", id_user)
    return schemas.MessageResponse(message="User updated successfully.")


async def delete_user(database: db.Database, id_user: int) -> schemas.MessageResponse:
    _ensure_id_storable(id_user)
    try:
        deleted = await repository.delete_user(database, id_user)
    except db.StoreError as exc:
        logger.exception("user_delete_failed id_user=%s", id_user)
        raise _store_failure("Failed to delete user.") from exc

    if deleted == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=USER_NOT_FOUND)

    logger.info("user_deleted id_user=%s", id_user)
    return schemas.MessageResponse(message="User deleted successfully.")
