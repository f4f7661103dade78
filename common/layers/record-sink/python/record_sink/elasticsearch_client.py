"""Lazily created, thread-safe handle around the ``elasticsearch`` client."""

from __future__ import annotations

# Module Metadata
__author__ = "Koushik Sinha"
__version__ = "1.0.0"
__modified_by__ = "Koushik Sinha"

import threading
from typing import Any, Callable, Optional

from elasticsearch import Elasticsearch

from .errors import DatastoreConnectionError
from .logging_utils import configure_logger
from .models import SinkConfig

logger = configure_logger(__name__)


class ElasticsearchClient:
    """Owns at most one live :class:`Elasticsearch` connection.

    The client is created on first use and dropped by :meth:`close_client`;
    using the handle again afterwards reconnects.  Creation and teardown are
    serialised with a lock so concurrent callers share a single client.
    """

    def __init__(
        self,
        config: SinkConfig,
        factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        """Create a handle for ``config.host``.

        ``factory`` builds the underlying client and defaults to
        :class:`elasticsearch.Elasticsearch`.
        """

        self.config = config
        self._factory = factory or Elasticsearch
        self._client: Any = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def get_client(self) -> Any:
        """Return the live client, creating it if needed.

        Raises :class:`DatastoreConnectionError` when the client cannot be
        constructed.
        """

        client = self._client
        if client is not None:
            return client
        with self._lock:
            if self._client is None:
                self._client = self._connect()
            return self._client

    def close_client(self) -> None:
        """Close the live client, if any."""

        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()
            logger.info("Closed Elasticsearch client for %s", self.config.host)

    def _connect(self) -> Any:
        kwargs: dict[str, Any] = {"max_retries": 0, "retry_on_timeout": False}
        if self.config.username:
            kwargs["basic_auth"] = (self.config.username, self.config.password or "")
        try:
            client = self._factory(self.config.host, **kwargs)
        except Exception as exc:
            logger.error("could not init elasticsearch client: %s", exc)
            raise DatastoreConnectionError(
                f"could not init elasticsearch client for {self.config.host}: {exc}"
            ) from exc
        logger.info("Created Elasticsearch client for %s", self.config.host)
        return client
