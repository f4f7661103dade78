"""Dataclasses describing streamed records and sink configuration."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from .errors import FieldNotFound, RecordDecodeError
from .get_secret import get_secret
from .get_ssm import get_config

__all__ = ["Record", "SinkConfig", "parse_duration"]

TIMESTAMP_FORMAT = "%Y-%m-%d"

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class Record:
    """Single message read from a Kafka topic."""

    topic: str
    partition: int
    offset: int
    timestamp: datetime
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def id(self) -> str:
        """Default document identifier, unique per topic partition offset."""
        return f"{self.topic}:{self.partition}:{self.offset}"

    def format_timestamp(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_FORMAT)

    def get_value_for_field(self, name: str) -> str:
        """Return the value of field ``name`` rendered as a string.

        Raises :class:`FieldNotFound` when the record has no such field.
        """
        if name not in self.fields:
            raise FieldNotFound(name)
        value = self.fields[name]
        if isinstance(value, str):
            return value
        if isinstance(value, (dict, list)):
            return json.dumps(value, separators=(",", ":"))
        return str(value)

    def filtered_fields(self, blacklist: Iterable[str]) -> Dict[str, Any]:
        """Return a fresh copy of the fields without the ``blacklist`` names."""
        excluded = set(blacklist)
        return {k: v for k, v in self.fields.items() if k not in excluded}

    @classmethod
    def from_kafka_message(cls, message: Mapping[str, Any]) -> "Record":
        """Build a record from one message of an MSK Lambda event.

        ``value`` is the base64 encoded JSON document and ``timestamp`` the
        broker timestamp in epoch milliseconds.
        """
        try:
            raw = base64.b64decode(message.get("value") or b"", validate=True)
            payload = json.loads(raw) if raw else {}
        except (binascii.Error, ValueError) as exc:
            raise RecordDecodeError(
                f"cannot decode message {message.get('topic')}:"
                f"{message.get('partition')}:{message.get('offset')}: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise RecordDecodeError(
                f"message {message.get('topic')}:{message.get('partition')}:"
                f"{message.get('offset')} is not a JSON object"
            )
        millis = int(message.get("timestamp") or 0)
        try:
            timestamp = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise RecordDecodeError(
                f"message {message.get('topic')}:{message.get('partition')}:"
                f"{message.get('offset')} has invalid timestamp {millis}: {exc}"
            ) from exc
        return cls(
            topic=str(message["topic"]),
            partition=int(message["partition"]),
            offset=int(message["offset"]),
            timestamp=timestamp,
            fields=payload,
        )


def parse_duration(value: str | float | int | None, default: float) -> float:
    """Convert ``"500ms"``, ``"1s"``, ``"2m"`` or a bare number to seconds."""

    if value is None or value == "":
        return default
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit or "s"]


def _split_columns(value: Optional[str]) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(c.strip() for c in value.split(",") if c.strip())


@dataclass(frozen=True)
class SinkConfig:
    """Settings governing where and how records are written."""

    host: str = "http://localhost:9200"
    bulk_timeout: float = 1.0
    index: Optional[str] = None
    index_column: Optional[str] = None
    doc_id_column: Optional[str] = None
    blacklisted_columns: FrozenSet[str] = frozenset()
    username: Optional[str] = None
    password: Optional[str] = None
    include_doc_type: bool = False

    @classmethod
    def from_env(cls) -> "SinkConfig":
        """Load settings from environment variables or Parameter Store.

        - ``ELASTICSEARCH_HOST`` (default ``http://localhost:9200``)
        - ``ES_BULK_TIMEOUT`` (default ``1s``)
        - ``ES_INDEX``, ``ES_INDEX_COLUMN``, ``ES_DOC_ID_COLUMN``
        - ``ES_BLACKLISTED_COLUMNS`` (comma separated)
        - ``ELASTICSEARCH_USER`` and ``ELASTICSEARCH_PASSWORD``; the password
          is fetched from Secrets Manager when
          ``ELASTICSEARCH_PASSWORD_SECRET_NAME`` is set
        - ``ES_INCLUDE_DOC_TYPE`` (``true`` to send ``_type``)
        """

        password = get_config("ELASTICSEARCH_PASSWORD", decrypt=True)
        if password is None and get_config("ELASTICSEARCH_PASSWORD_SECRET_NAME"):
            password = get_secret("ELASTICSEARCH_PASSWORD")

        return cls(
            host=get_config("ELASTICSEARCH_HOST") or cls.host,
            bulk_timeout=parse_duration(get_config("ES_BULK_TIMEOUT"), cls.bulk_timeout),
            index=get_config("ES_INDEX") or None,
            index_column=get_config("ES_INDEX_COLUMN") or None,
            doc_id_column=get_config("ES_DOC_ID_COLUMN") or None,
            blacklisted_columns=_split_columns(get_config("ES_BLACKLISTED_COLUMNS")),
            username=get_config("ELASTICSEARCH_USER") or None,
            password=password or None,
            include_doc_type=str(get_config("ES_INCLUDE_DOC_TYPE") or "false").lower() == "true",
        )
