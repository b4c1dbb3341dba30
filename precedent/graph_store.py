"""
Neo4j Graph Store adapter.

This module owns the connection to the graph engine and is the only
place that talks to the Neo4j driver. Everything above it works with
plain dictionaries.

Features:
    - One lazily created driver, shared process-wide
    - One scoped session per query, always released
    - Parameterized queries with optional per-call timeout
    - Result rows normalized to ``{output_name: value}`` mappings
    - Driver errors mapped onto the package exception hierarchy

Example:
    >>> store = get_graph_store()
    >>> rows = store.execute("MATCH (c:Case {id: $id}) RETURN c", {"id": "roe_v_wade_1973"})
    >>> rows[0]["c"]["properties"]["name"]
    'Roe v. Wade'
"""

from __future__ import annotations

import atexit
import logging
from contextlib import contextmanager
from threading import Lock
from typing import Any, Callable, Iterator, Mapping, Optional

from neo4j import Driver, GraphDatabase, Query, Session
from neo4j.exceptions import (
    AuthError,
    ConfigurationError,
    Neo4jError,
    ServiceUnavailable,
    SessionExpired,
    TransientError,
)
from neo4j.graph import Node, Relationship

from config.settings import Settings, get_settings
from precedent.exceptions import (
    DatabaseAuthError,
    DatabaseConnectionError,
    QueryExecutionError,
)

logger = logging.getLogger(__name__)

DriverFactory = Callable[..., Driver]

CONNECTIVITY_PROBE = 'RETURN "Connected!" AS message'


def normalize_value(value: Any) -> Any:
    """
    Convert a Neo4j result value into plain Python data.

    Nodes and relationships become dictionaries exposing their
    attributes under ``properties``; lists and maps are converted
    element-wise; scalars pass through unchanged.
    """
    if isinstance(value, Node):
        return {
            "element_id": value.element_id,
            "labels": sorted(value.labels),
            "properties": dict(value.items()),
        }
    if isinstance(value, Relationship):
        return {
            "element_id": value.element_id,
            "type": value.type,
            "properties": dict(value.items()),
        }
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    if isinstance(value, dict):
        return {key: normalize_value(item) for key, item in value.items()}
    return value


def normalize_record(record: Any) -> dict[str, Any]:
    """Map each bound output name of a record to its normalized value."""
    return {key: normalize_value(value) for key, value in record.items()}


class GraphStore:
    """
    Executes parameterized Cypher against Neo4j.

    The driver is created on first use and reused until ``close()``.
    Each ``execute`` call opens its own session, so concurrent callers
    never share one; the driver multiplexes them over its pool.

    Supports context manager protocol for safe resource cleanup.

    Attributes:
        uri: The Neo4j endpoint this store connects to.

    Example:
        >>> with GraphStore() as store:
        ...     store.verify_connectivity()
        True
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        driver_factory: DriverFactory = GraphDatabase.driver,
    ) -> None:
        """
        Initialize the store without connecting.

        Args:
            settings: Connection settings (defaults to the global settings).
            driver_factory: Callable that builds a driver from
                ``(uri, auth=...)``; replaced in tests.
        """
        self._settings = settings or get_settings()
        self._driver_factory = driver_factory
        self._driver: Driver | None = None
        self._lock = Lock()
        self._closed = False

    def __enter__(self) -> "GraphStore":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            status = "closed"
        elif self._driver is None:
            status = "idle"
        else:
            status = "open"
        return f"<GraphStore uri={self.uri!r} status={status}>"

    @property
    def uri(self) -> str:
        return self._settings.NEO4J_URI

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def driver(self) -> Driver:
        """The shared driver, created on first access."""
        if self._closed:
            raise RuntimeError("GraphStore is closed")
        if self._driver is None:
            with self._lock:
                if self._driver is None:
                    self._driver = self._create_driver()
        return self._driver

    def _create_driver(self) -> Driver:
        try:
            driver = self._driver_factory(
                self._settings.NEO4J_URI,
                auth=(self._settings.NEO4J_USER, self._settings.NEO4J_PASSWORD),
            )
        except (ConfigurationError, ValueError) as e:
            raise DatabaseConnectionError(
                message=f"Invalid Neo4j configuration: {e}",
                uri=self.uri,
            ) from e
        logger.info(f"Created Neo4j driver for {self.uri}")
        return driver

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Create a managed session context."""
        if self._settings.NEO4J_DATABASE:
            session = self.driver.session(database=self._settings.NEO4J_DATABASE)
        else:
            session = self.driver.session()
        try:
            yield session
        finally:
            session.close()

    def execute(
        self,
        query: str,
        parameters: Optional[Mapping[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> list[dict[str, Any]]:
        """
        Run a parameterized query and return its rows.

        Values must always travel in ``parameters``; the query text is
        sent as-is.

        Args:
            query: Cypher text.
            parameters: Values bound to ``$name`` placeholders.
            timeout: Transaction timeout in seconds. Defaults to
                ``NEO4J_QUERY_TIMEOUT``.

        Returns:
            One dictionary per result row, keyed by output name.

        Raises:
            DatabaseAuthError: If the server rejects the credentials.
            DatabaseConnectionError: If the server cannot be reached
                or reports a transient failure.
            QueryExecutionError: If the server rejects the query.
        """
        if timeout is None:
            timeout = self._settings.NEO4J_QUERY_TIMEOUT
        params = dict(parameters or {})
        logger.debug(f"Executing query: {' '.join(query.split())} | params={sorted(params)}")

        try:
            with self._session() as session:
                result = session.run(Query(query, timeout=timeout), params)
                return [normalize_record(record) for record in result]
        except AuthError as e:
            raise DatabaseAuthError(
                message=f"Neo4j authentication failed: {e}",
                uri=self.uri,
            ) from e
        except (ServiceUnavailable, SessionExpired) as e:
            raise DatabaseConnectionError(
                message=f"Neo4j is unavailable: {e}",
                uri=self.uri,
            ) from e
        except TransientError as e:
            raise DatabaseConnectionError(
                message=f"Neo4j transient failure: {e}",
                uri=self.uri,
            ) from e
        except Neo4jError as e:
            raise QueryExecutionError(
                message=f"Neo4j rejected the query: {e}",
                query=query,
                code=getattr(e, "code", None),
            ) from e

    def verify_connectivity(self) -> bool:
        """
        Probe the database with a trivial query.

        Returns:
            True if the probe succeeded, False on any failure.
        """
        try:
            rows = self.execute(CONNECTIVITY_PROBE)
        except Exception as e:
            logger.error(f"Neo4j connection failed: {e}")
            return False
        logger.info(f"Neo4j connection successful: {rows[0]['message'] if rows else 'no rows'}")
        return True

    def close(self) -> None:
        """Close the driver if one was created. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._driver is not None:
                self._driver.close()
                self._driver = None
                logger.debug("Neo4j driver closed.")


# Process-wide store: created on first use, closed at interpreter exit
_shared_store: GraphStore | None = None
_shared_lock = Lock()


def get_graph_store() -> GraphStore:
    """
    Return the process-wide GraphStore, creating it on first call.

    The store is closed by an ``atexit`` hook; callers should pass it
    into components rather than calling this from inside them.
    """
    global _shared_store
    if _shared_store is None or _shared_store.is_closed:
        with _shared_lock:
            if _shared_store is None or _shared_store.is_closed:
                _shared_store = GraphStore()
    return _shared_store


def close_graph_store() -> None:
    """Close the process-wide GraphStore, if any."""
    global _shared_store
    with _shared_lock:
        if _shared_store is not None:
            _shared_store.close()
            _shared_store = None


atexit.register(close_graph_store)
