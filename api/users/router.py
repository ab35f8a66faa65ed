"""
User API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from core import db

from . import schemas, service
from .queries import UserFilters

router = APIRouter()


@router.post(
    "/usuarios",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.CreatedUserResponse,
)
async def create_user(
    payload: schemas.UserPayload,
    database: db.Database = Depends(db.get_database),
) -> schemas.CreatedUserResponse:
    return await service.create_user(database, payload)


@router.get("/usuarios", response_model=list[schemas.UserResponse])
async def list_users(
    name: str | None = Query(default=None, max_length=200),
    email: str | None = Query(default=None, max_length=320),
    age: int | None = Query(default=None, ge=schemas.AGE_MIN, le=schemas.AGE_MAX),
    database: db.Database = Depends(db.get_database),
) -> list[schemas.UserResponse]:
    """
    List users, optionally narrowed by exact name, email and/or age.
    """
    filters = UserFilters(name=name, email=email, age=age)
    return await service.list_users(database, filters)


@router.put("/usuarios/{id_user}", response_model=schemas.MessageResponse)
async def update_user(
    id_user: int,
    payload: schemas.UserPayload,
    database: db.Database = Depends(db.get_database),
) -> schemas.MessageResponse:
    """
    Replace name, email and age of an existing user.
    """
    return await service.update_user(database, id_user, payload)


@router.delete("/usuarios/{id_user}", response_model=schemas.MessageResponse)
async def delete_user(
    id_user: int,
    database: db.Database = Depends(db.get_database),
) -> schemas.MessageResponse:
    return await service.delete_user(database, id_user)
