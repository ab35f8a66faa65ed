"""
Pydantic schemas for user endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Column ranges: age is INTEGER, id_user is BIGSERIAL.
AGE_MIN = -(2**31)
AGE_MAX = 2**31 - 1
ID_USER_MIN = 1
ID_USER_MAX = 2**63 - 1


class UserPayload(BaseModel):
    # Fields are optional here so that missing ones reach the validator and
    # produce a 400 with a single message, not a per-field 422.
    name: str | None = Field(default=None, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    age: int | None = Field(default=None, ge=AGE_MIN, le=AGE_MAX)


class UserResponse(BaseModel):
    id_user: int
    name: str
    email: str
    age: int


class MessageResponse(BaseModel):
    message: str


class CreatedUserResponse(MessageResponse):
    user: UserResponse
