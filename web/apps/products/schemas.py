"""Pydantic schemas for the products API.

Prices are decimals with at most two fractional digits (``NUMERIC(10,2)``)
and are rendered as strings so no precision is lost in JSON.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


def _strip(v: str) -> str:
    v2 = v.strip()
    if not v2:
        raise ValueError("Name must not be blank")
    return v2


class CreateProductDTO(BaseModel):
    """Body for ``POST /api/products/``.

    Attributes:
        name: Unique product name.
        price: Unit price, strictly positive.
        stock: Units on hand, zero or more.
    """

    name: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip(v)


class UpdateProductDTO(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    stock: int | None = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return None if v is None else _strip(v)


class ProductReadDTO(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    created_at: datetime
