"""Shared pydantic models: camelCase base and the error envelope."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorDetail(CamelModel):
    """Error detail in API responses."""

    code: str
    message: str
    details: dict[str, Any] | list[Any] | str | None = None
    trace_id: str
    timestamp: datetime


class ErrorResponse(CamelModel):
    """Standard error response."""

    error: ErrorDetail


class MessageResponse(CamelModel):
    """Outcome of a mutating command."""

    success: bool = True
    message: str
