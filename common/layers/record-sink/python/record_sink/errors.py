"""Exception types raised by the record sink."""

from __future__ import annotations

from typing import Any, Dict, List

__all__ = [
    "SinkError",
    "FieldNotFound",
    "RecordDecodeError",
    "DatastoreConnectionError",
    "WriteError",
    "PartialWriteError",
]


class SinkError(Exception):
    """Base class for all record sink failures."""


class FieldNotFound(SinkError):
    """A configured column is missing from a record."""

    def __init__(self, field: str) -> None:
        super().__init__(f"field {field} not found in record")
        self.field = field


class RecordDecodeError(SinkError):
    """A streamed message could not be turned into a :class:`Record`."""


class DatastoreConnectionError(SinkError):
    """The Elasticsearch client could not be created."""


class WriteError(SinkError):
    """The bulk request failed at the transport or protocol level."""


class PartialWriteError(WriteError):
    """The bulk request succeeded but some documents were rejected.

    ``failures`` holds every failed bulk item in response order; the message
    describes the first one.
    """

    def __init__(self, failures: List[Dict[str, Any]]) -> None:
        first = failures[0] if failures else {}
        message = (
            f"failed to index document {first.get('id')} into "
            f"{first.get('index')}: {first.get('error')}"
        )
        if len(failures) > 1:
            message += f" (and {len(failures) - 1} more failed documents)"
        super().__init__(message)
        self.failures = failures
