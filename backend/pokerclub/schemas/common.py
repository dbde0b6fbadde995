"""Shared schema base and the error/success envelopes."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """camelCase on the wire, snake_case in Python.

    Request models are dumped with ``by_alias=False`` before being passed to
    services as keyword arguments.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        serialize_by_alias=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error code, e.g. PRIZE_POOL_LOCKED")
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response."""

    error: ErrorDetail
    trace_id: str = Field(..., alias="traceId", description="X-Request-ID of the request")


class SuccessResponse(BaseModel):
    success: bool = True
    message: str = "Operation completed successfully"
