"""Translate domain errors into FastAPI HTTP errors."""

from fastapi import HTTPException

from services.errors import AppError


def to_http(exc: AppError) -> HTTPException:
    """Return an HTTPException carrying the error's status and message."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)
