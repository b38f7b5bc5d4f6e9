from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    error: str | list | None = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
