"""Shared response envelope and base schema configuration."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.common import ensure_utc

DataT = TypeVar("DataT")

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"

# ids are generated lowercase; accept either case and compare lowercase
ObjectIdStr = Annotated[
    str,
    Field(pattern=OBJECT_ID_PATTERN, description="24-character hexadecimal identifier."),
    AfterValidator(str.lower),
]

# SQLite hands back naive timestamps; everything leaves the API as UTC
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """Base model exposing camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorDetail(BaseModel):
    """A single field-level (or general) error message."""

    field: str | None = None
    message: str


class ApiResponse(BaseModel, Generic[DataT]):
    """Envelope wrapping every successful response."""

    success: bool = True
    message: str
    data: DataT | None = None


class ErrorResponse(BaseModel):
    """Envelope returned by the exception handlers."""

    success: bool = False
    message: str
    errors: list[ErrorDetail] | None = None


__all__ = [
    "OBJECT_ID_PATTERN",
    "ApiResponse",
    "CamelModel",
    "ErrorDetail",
    "ErrorResponse",
    "ObjectIdStr",
    "UtcDatetime",
]
