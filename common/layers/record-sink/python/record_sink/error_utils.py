"""Helpers for consistent error logging and Lambda responses."""

from __future__ import annotations

from typing import Any, Dict
import logging

from .errors import PartialWriteError

__all__ = ["error_response", "lambda_response", "log_exception"]


def lambda_response(status: int, body: Any) -> Dict[str, Any]:
    """Return a standard Lambda response dictionary."""
    return {"statusCode": status, "body": body}


def log_exception(message: str, exc: Exception, logger: logging.Logger) -> None:
    """Log ``exc`` with ``message`` using ``logger``."""

    logger.error("%s: %s", message, exc)


def error_response(
    logger: logging.Logger, status: int, message: str, exc: Exception | None = None
) -> Dict[str, Any]:
    """Return ``lambda_response`` with error details after logging ``message``.

    Rejected documents of a :class:`PartialWriteError` are included under
    ``failures`` so callers see every one of them.
    """

    body: Dict[str, Any] = {"error": message}
    if exc is not None:
        logger.error("%s: %s", message, exc)
        body["detail"] = str(exc)
        if isinstance(exc, PartialWriteError):
            body["failures"] = exc.failures
    else:
        logger.error("%s", message)
    return lambda_response(status, body)
