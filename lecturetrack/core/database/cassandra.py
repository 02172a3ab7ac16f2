"""Cassandra-backed document store using cassandra-asyncio-driver.

Documents live in a single ``documents`` table partitioned by collection with
the JSON body in a text column. Fields declared as indexed are dual-written to
``document_index`` so that query-by-field hits one partition instead of
scanning the collection.
"""

import asyncio
import json
from typing import TYPE_CHECKING, Any

import structlog
from cassandra import DriverException, OperationTimedOut, RequestExecutionException
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import NoHostAvailable
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from lecturetrack.core.database.store import Document, to_json_document
from lecturetrack.core.exceptions import StoreUnavailableError


if TYPE_CHECKING:
    from lecturetrack.config.settings import Settings

logger = structlog.get_logger(__name__)

_DRIVER_ERRORS = (
    DriverException,
    RequestExecutionException,
    NoHostAvailable,
    OperationTimedOut,
)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Document bodies, one partition per collection
DOCUMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.documents (
    collection TEXT,
    doc_id TEXT,
    body TEXT,
    updated_at TIMESTAMP,
    PRIMARY KEY (collection, doc_id)
)
"""

# Lookup: documents by field value, for query-by-field
DOCUMENT_INDEX_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.document_index (
    collection TEXT,
    field TEXT,
    value TEXT,
    doc_id TEXT,
    PRIMARY KEY ((collection, field, value), doc_id)
)
"""

DOCUMENT_TABLES_CQL = [
    DOCUMENTS_TABLE_CQL,
    DOCUMENT_INDEX_TABLE_CQL,
]


def _index_value(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


class CassandraDocumentStore:
    """Document store over a session that supports ``aexecute()``.

    Args:
        session: Cassandra session from cassandra-asyncio-driver.
        keyspace: Keyspace holding the document tables.
        indexed_fields: Per collection, the fields maintained in the lookup
            table. Queries on other fields fall back to a partition scan.
    """

    def __init__(
        self,
        session: Any,
        keyspace: str,
        indexed_fields: dict[str, tuple[str, ...]] | None = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.indexed_fields = indexed_fields or {}
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_document = self.session.prepare(f"""
            SELECT doc_id, body FROM {self.keyspace}.documents
            WHERE collection = ? AND doc_id = ?
        """)

        self._get_collection = self.session.prepare(f"""
            SELECT doc_id, body FROM {self.keyspace}.documents
            WHERE collection = ?
        """)

        self._put_document = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.documents
            (collection, doc_id, body, updated_at)
            VALUES (?, ?, ?, toTimestamp(now()))
        """)

        self._get_index = self.session.prepare(f"""
            SELECT doc_id FROM {self.keyspace}.document_index
            WHERE collection = ? AND field = ? AND value = ?
        """)

        self._put_index = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.document_index
            (collection, field, value, doc_id)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_index = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.document_index
            WHERE collection = ? AND field = ? AND value = ? AND doc_id = ?
        """)

    async def _execute(self, statement: Any, params: list[Any]) -> Any:
        try:
            return await self.session.aexecute(statement, params)
        except _DRIVER_ERRORS as e:
            logger.warning(
                "document_store_request_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreUnavailableError(f"Document store request failed: {e}") from e

    async def get(self, collection: str, doc_id: str) -> Document | None:
        result = await self._execute(self._get_document, [collection, doc_id])
        row = result.one()
        return json.loads(row.body) if row else None

    async def upsert(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        merge: bool = True,
    ) -> Document:
        values = to_json_document(fields)
        current = await self.get(collection, doc_id)
        stored = {**current, **values} if merge and current else values

        await self._execute(
            self._put_document,
            [collection, doc_id, json.dumps(stored)],
        )

        # Dual write: keep lookup rows in step with the body
        for field in self.indexed_fields.get(collection, ()):
            old = current.get(field) if current else None
            new = stored.get(field)
            if current is not None and field in current and old != new:
                await self._execute(
                    self._delete_index,
                    [collection, field, _index_value(old), doc_id],
                )
            if field in stored:
                await self._execute(
                    self._put_index,
                    [collection, field, _index_value(new), doc_id],
                )

        return stored

    async def query(
        self,
        collection: str,
        field_equals: dict[str, Any],
    ) -> list[Document]:
        wanted = to_json_document(field_equals)
        indexed = [f for f in self.indexed_fields.get(collection, ()) if f in wanted]

        if indexed:
            field = indexed[0]
            rows = await self._execute(
                self._get_index,
                [collection, field, _index_value(wanted[field])],
            )
            candidates = await asyncio.gather(
                *(self.get(collection, row.doc_id) for row in rows)
            )
            docs = [doc for doc in candidates if doc is not None]
        else:
            logger.debug(
                "document_store_collection_scan",
                collection=collection,
                fields=sorted(wanted),
            )
            rows = await self._execute(self._get_collection, [collection])
            docs = [json.loads(row.body) for row in rows]

        return [
            doc for doc in docs if all(doc.get(k) == v for k, v in wanted.items())
        ]


# ==============================================================================
# Connection management
# ==============================================================================


class AsyncCassandraConnection:
    """Async Cassandra connection manager.

    Connection is synchronous; the returned session supports ``aexecute()``.
    """

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls, settings: "Settings"):
        """Establish connection to the Cassandra cluster.

        Raises:
            ConnectionError: If connection fails
        """
        if cls._session is not None:
            return cls._session

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
            logger.info(
                "cassandra_connected",
                hosts=settings.cassandra_hosts,
                port=settings.cassandra_port,
            )
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        """Close connection to Cassandra."""
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
            logger.info("cassandra_session_closed")

        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_cluster_closed")

    @classmethod
    def is_connected(cls) -> bool:
        """Check if connection is active."""
        return cls._session is not None and not cls._session.is_shutdown


async def init_keyspace(session, settings: "Settings") -> None:
    """Create the keyspace and document tables if they don't exist."""
    keyspace = settings.cassandra_keyspace

    if settings.is_production:
        replication = """
            'class': 'NetworkTopologyStrategy',
            'datacenter1': 3
        """
    else:
        replication = """
            'class': 'SimpleStrategy',
            'replication_factor': 1
        """

    await session.aexecute(f"""
        CREATE KEYSPACE IF NOT EXISTS {keyspace}
        WITH replication = {{{replication}}}
        AND durable_writes = true
    """)
    session.set_keyspace(keyspace)

    for cql_template in DOCUMENT_TABLES_CQL:
        await session.aexecute(cql_template.format(keyspace=keyspace))

    logger.info("cassandra_schema_initialized", keyspace=keyspace)


async def init_cassandra_store(
    settings: "Settings",
    indexed_fields: dict[str, tuple[str, ...]],
) -> CassandraDocumentStore:
    """Connect, create the schema and return a ready document store."""
    session = AsyncCassandraConnection.connect(settings)
    await init_keyspace(session, settings)
    return CassandraDocumentStore(
        session,
        settings.cassandra_keyspace,
        indexed_fields=indexed_fields,
    )


async def shutdown_cassandra() -> None:
    """Shutdown Cassandra connection."""
    AsyncCassandraConnection.disconnect()
