"""Write batches of Kafka records into Elasticsearch with one bulk request."""

from __future__ import annotations

# Module Metadata
__author__ = "Koushik Sinha"
__version__ = "1.0.0"
__modified_by__ = "Koushik Sinha"

from typing import Any, Dict, List, Optional, Sequence

from elasticsearch import ApiError, TransportError

from .elasticsearch_client import ElasticsearchClient
from .error_utils import log_exception
from .errors import FieldNotFound, PartialWriteError, WriteError
from .logging_utils import configure_logger
from .models import Record, SinkConfig

logger = configure_logger(__name__)


class RecordSink:
    """Derive index names and document ids for records and bulk index them."""

    def __init__(
        self,
        config: SinkConfig,
        connection: Optional[ElasticsearchClient] = None,
    ) -> None:
        self.config = config
        self.connection = connection or ElasticsearchClient(config)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def get_client(self) -> Any:
        return self.connection.get_client()

    def close_client(self) -> None:
        self.connection.close_client()

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------
    def index_name(self, record: Record) -> str:
        """Return ``<prefix>-<suffix>`` for ``record``.

        The prefix is the configured index or the record topic.  The suffix is
        the record date unless ``index_column`` names a field to use instead.
        """

        prefix = self.config.index or record.topic
        suffix = record.format_timestamp()
        if self.config.index_column:
            try:
                suffix = record.get_value_for_field(self.config.index_column)
            except FieldNotFound as exc:
                log_exception("Could not get column value from record", exc, logger)
                raise
        return f"{prefix}-{suffix}"

    def doc_id(self, record: Record) -> str:
        """Return the record id, or the ``doc_id_column`` value when configured."""

        if not self.config.doc_id_column:
            return record.id
        try:
            return record.get_value_for_field(self.config.doc_id_column)
        except FieldNotFound as exc:
            log_exception("Could not get doc id value from record", exc, logger)
            raise

    def build_actions(self, records: Sequence[Record]) -> List[Dict[str, Any]]:
        """Return the bulk body for ``records``, action and source interleaved."""

        actions: List[Dict[str, Any]] = []
        for record in records:
            meta = {"_index": self.index_name(record), "_id": self.doc_id(record)}
            if self.config.include_doc_type:
                meta["_type"] = record.topic
            actions.append({"index": meta})
            actions.append(record.filtered_fields(self.config.blacklisted_columns))
        return actions

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def insert(self, records: Sequence[Record]) -> None:
        """Index ``records`` with a single bulk request.

        Raises :class:`FieldNotFound` before anything is sent when a configured
        column is missing, :class:`WriteError` when the request fails and
        :class:`PartialWriteError` when Elasticsearch rejects some documents.
        """

        actions = self.build_actions(records)
        if not actions:
            logger.debug("No records to insert")
            return

        client = self.get_client()
        try:
            response = client.options(request_timeout=self.config.bulk_timeout).bulk(
                operations=actions
            )
        except (ApiError, TransportError) as exc:
            log_exception("Bulk request to Elasticsearch failed", exc, logger)
            raise WriteError(f"bulk request failed: {exc}") from exc

        body = getattr(response, "body", response)
        if body.get("errors"):
            failures = _failed_items(body.get("items", []))
            if failures:
                error = PartialWriteError(failures)
                log_exception(
                    f"Elasticsearch rejected {len(failures)} of {len(records)} documents",
                    error,
                    logger,
                )
                raise error
            logger.warning("Bulk response flagged errors but no failed items were reported")
        logger.info("Indexed %d records", len(records))

    def readiness_check(self) -> bool:
        """Return ``True`` when Elasticsearch answers, ``False`` otherwise."""

        try:
            info = self.get_client().info()
        except Exception:
            logger.exception("error pinging elasticsearch")
            return False
        body = getattr(info, "body", info)
        version = (body.get("version") or {}).get("number")
        logger.info("connected to es version %s", version)
        return True


def _failed_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    failures = []
    for item in items:
        for op, result in item.items():
            status = int(result.get("status", 0))
            if "error" in result or not 200 <= status <= 299:
                failures.append(
                    {
                        "op": op,
                        "index": result.get("_index"),
                        "id": result.get("_id"),
                        "status": status,
                        "error": result.get("error"),
                    }
                )
    return failures
