"""
Service-layer exceptions.

Services raise these (all ValueError subclasses, like the rest of the service
layer) and endpoints translate them into HTTP status codes.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class NotFoundError(ValueError):
    pass


class PermissionDeniedError(ValueError):
    pass


class ConflictError(ValueError):
    pass


class ValidationFailedError(ValueError):
    """Carries every field error collected during validation."""

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message or "; ".join(e["message"] for e in errors))


def to_http_exception(exc: ValueError) -> HTTPException:
    """Map a service ValueError onto the matching HTTPException."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValidationFailedError):
        detail: Any = {"error": "Validation failed", "errors": exc.errors}
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
