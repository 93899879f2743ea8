"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    message: str
    errors: list[dict[str, Any]] | None = None


class SuccessResponse(BaseModel):
    """Standard success response."""

    success: bool = True
    message: str
