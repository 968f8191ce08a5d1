from __future__ import annotations

from typing import Any, Dict

from loguru import logger


class PersonaEngineError(Exception):
    """Base class for errors surfaced to chat callers.

    ``public_message`` is the only text a caller ever sees; the exception's own
    message (and any chained cause) is diagnostic detail meant for the logs.
    """

    status_code = 500
    public_message = "Failed to process chat message"


class ValidationError(PersonaEngineError):
    status_code = 400
    public_message = "Invalid chat request"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        # Validation problems are the caller's own input, so they are safe to echo.
        self.public_message = message


class NotFound(PersonaEngineError):
    status_code = 404
    public_message = "Agent not found"


class UpstreamFailure(PersonaEngineError):
    """Captioning or generation backend failed, timed out, or returned garbage."""

    status_code = 502


class StorageFailure(PersonaEngineError):
    """Session store unreachable or returned unreadable data."""

    status_code = 503


class ConfigurationError(PersonaEngineError):
    pass


def error_payload(exc: BaseException) -> Dict[str, Any]:
    """Map an exception to the generic body (with status) reported to the caller."""
    if isinstance(exc, PersonaEngineError):
        return {"error": exc.public_message, "status": exc.status_code}
    logger.opt(exception=exc).error(f"unexpected_error | type={type(exc).__name__} err={exc}")
    return {"error": PersonaEngineError.public_message, "status": 500}


__all__ = [
    "PersonaEngineError",
    "ValidationError",
    "NotFound",
    "UpstreamFailure",
    "StorageFailure",
    "ConfigurationError",
    "error_payload",
]
