"""Shared response helpers for the API layer."""
from __future__ import annotations

from fastapi.responses import PlainTextResponse


def ok(data: object) -> dict:
    return {"status": "ok", "data": data}


def failure(message: str, status_code: int = 501) -> PlainTextResponse:
    """Plain-text failure body, the shape feed clients already handle."""
    return PlainTextResponse(message, status_code=status_code)
