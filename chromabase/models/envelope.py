"""Uniform success/error response envelope."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    status: Literal["success"] = "success"
    data: Any


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
    details: dict | None = None


def success(data: Any) -> dict:
    return {"status": "success", "data": data}
