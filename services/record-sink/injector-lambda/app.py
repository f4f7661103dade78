# ---------------------------------------------------------------------------
# app.py
# ---------------------------------------------------------------------------
"""Index Kafka records delivered by an MSK event source into Elasticsearch."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from record_sink import (
    DatastoreConnectionError,
    FieldNotFound,
    Record,
    RecordDecodeError,
    RecordSink,
    SinkConfig,
    WriteError,
    configure_logger,
    error_response,
    lambda_response,
)

# Module Metadata
__author__ = "Koushik Sinha"
__version__ = "1.0.0"
__modified_by__ = "Koushik Sinha"

logger = configure_logger(__name__)

sink = RecordSink(SinkConfig.from_env())


class KafkaMessage(BaseModel):
    topic: str
    partition: int
    offset: int
    timestamp: int = 0
    value: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class InsertEvent(BaseModel):
    records: Dict[str, List[KafkaMessage]] = {}

    model_config = ConfigDict(extra="allow")


def _decode(payload: InsertEvent) -> List[Record]:
    records: List[Record] = []
    for key in sorted(payload.records):
        for message in payload.records[key]:
            records.append(Record.from_kafka_message(message.model_dump()))
    return records


def _insert(event: Dict[str, Any]) -> Dict[str, Any]:
    try:
        payload = InsertEvent.model_validate(event)
        records = _decode(payload)
    except ValidationError as exc:
        return error_response(logger, 400, "Invalid event", exc)
    except RecordDecodeError as exc:
        return error_response(logger, 400, "Could not decode Kafka message", exc)

    try:
        sink.insert(records)
    except FieldNotFound as exc:
        return error_response(logger, 422, "Record is missing a configured column", exc)
    except DatastoreConnectionError as exc:
        return error_response(logger, 503, "Elasticsearch is unavailable", exc)
    except WriteError as exc:
        return error_response(logger, 502, "Failed to index records", exc)
    return lambda_response(200, {"inserted": len(records)})


def _readiness(event: Dict[str, Any]) -> Dict[str, Any]:
    ready = sink.readiness_check()
    return lambda_response(200 if ready else 503, {"ready": ready})


_HANDLERS = {
    "insert": _insert,
    "readiness": _readiness,
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Triggered by the Kafka event source mapping or a health probe.

    1. ``insert`` (default) decodes every message in ``records`` and indexes
       them with one bulk request.
    2. ``readiness`` pings Elasticsearch.

    Returns a Lambda-style response describing the outcome.
    """

    if not isinstance(event, dict):
        return lambda_response(400, {"error": "event must be an object"})
    op = str(event.get("operation") or "insert").lower()
    handler = _HANDLERS.get(op)
    if not handler:
        return lambda_response(400, {"error": "unsupported operation"})
    return handler(event)
