"""Envelope used by every endpoint except the grammar check.

``POST /orchestrator/check`` returns its closed payload directly; chat,
connection tests, model listing, the rewrite endpoints and all errors use
this shape.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class ApiError(BaseModel):
    """One error entry; ``field`` points at the offending request field, if any."""

    code: str
    message: str
    field: str | None = None


class Envelope(BaseModel):
    status: Literal["success", "error"]
    data: Any = None
    errors: list[ApiError] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)


def success_response(data: Any, **meta: Any) -> dict:
    """``{status: "success", data, errors: [], meta}``. ``None`` meta values are dropped."""
    return Envelope(
        status="success",
        data=data,
        meta={k: v for k, v in meta.items() if v is not None},
    ).model_dump()


def error_response(*errors: ApiError, **meta: Any) -> dict:
    """``{status: "error", data: None, errors, meta}``."""
    return Envelope(
        status="error",
        errors=list(errors),
        meta={k: v for k, v in meta.items() if v is not None},
    ).model_dump()
