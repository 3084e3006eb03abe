"""Pydantic schemas for the users API."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(v: str) -> str:
    v2 = v.strip().lower()
    if not EMAIL_RE.match(v2):
        raise ValueError("Invalid email format")
    return v2


class CreateUserDTO(BaseModel):
    """Body for ``POST /api/users/``.

    Attributes:
        name: Display name, surrounding whitespace stripped.
        email: Email address, normalized to lowercase.
    """

    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=254)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("Name must not be blank")
        return v2

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class UpdateUserDTO(BaseModel):
    """Body for ``PUT``/``PATCH /api/users/<id>/``; omitted fields are kept."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = Field(default=None, min_length=3, max_length=254)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return None if v is None else _normalize_email(v)


class UserReadDTO(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime
