"""Error taxonomy for the content workflow.

Services raise these and never translate them; the exception handlers
registered in ``contentflow.main`` are the only place an error kind becomes
an HTTP status.
"""
from __future__ import annotations

from typing import Optional


class ContentFlowError(Exception):
    status_code: int = 500
    error: str = "Internal Server Error"
    # shown to callers instead of str(exc) when set
    public_message: Optional[str] = None

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def client_message(self) -> str:
        return self.public_message or self.message


class ValidationError(ContentFlowError):
    status_code = 400
    error = "Validation Error"


class NotAuthorized(ContentFlowError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(ContentFlowError):
    status_code = 404
    error = "Not Found"


class AIServiceError(ContentFlowError):
    status_code = 500
    error = "AI Service Error"
    public_message = "AI service encountered an error"


class StoreError(ContentFlowError):
    status_code = 500
    error = "Internal Server Error"
    public_message = "An unexpected error occurred"


__all__ = [
    "ContentFlowError",
    "ValidationError",
    "NotAuthorized",
    "NotFoundError",
    "AIServiceError",
    "StoreError",
]
