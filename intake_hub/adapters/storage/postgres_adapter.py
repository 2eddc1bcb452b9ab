"""PostgreSQL Storage Adapter.

This adapter provides a PostgreSQL implementation of the RecordStorePort
contract. Each patient record is stored as one JSONB document in a single
table, so the table behaves as a document collection: the database assigns
the identifier and all matching happens server-side.

Security Impact:
    - Only validated PatientRecord instances are persisted
    - Connection credentials are managed via StoreConfig and never logged
    - All statements use bound parameters

Architecture:
    - Implements RecordStorePort (Hexagonal Architecture)
    - Holds no in-memory copy of the data; every search hits the database
    - Connection pooling via psycopg2's ThreadedConnectionPool
    - Degraded mode: an unreachable database at startup is logged, and each
      operation raises StoreUnavailableError until a connection succeeds
"""

import logging
from typing import Any, Mapping, Optional

import psycopg2
from psycopg2 import pool, sql
from psycopg2.extras import Json

from intake_hub.domain.patient_record import PatientRecord, StoredRecord
from intake_hub.domain.ports import (
    RecordStorePort,
    StorageError,
    StoreUnavailableError,
    coerce_record,
)
from intake_hub.domain.search_index import validate_query
from intake_hub.infrastructure.config_manager import StoreConfig

logger = logging.getLogger(__name__)

# Connection-level failures mean the database is unreachable, not that the
# statement was wrong
_UNAVAILABLE_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError)


class PostgresRecordStore(RecordStorePort):
    """PostgreSQL implementation of RecordStorePort.

    Parameters:
        store_config: StoreConfig from configuration manager (preferred)
        connection_string: PostgreSQL connection string (alternative)
        table_name: Table holding patient documents
        pool_size: Maximum pooled connections

    Example Usage:
        ```python
        store = PostgresRecordStore(store_config=get_store_config())
        store.initialize()
        stored = store.create(payload)
        print(stored.id)
        ```
    """

    backend_name = "postgresql"

    def __init__(
        self,
        store_config: Optional[StoreConfig] = None,
        connection_string: Optional[str] = None,
        table_name: str = "patient_documents",
        pool_size: int = 5,
    ):
        if store_config is not None:
            if store_config.backend != "postgresql":
                raise ValueError(
                    f"StoreConfig backend '{store_config.backend}' does not match PostgreSQL adapter"
                )
            self.connection_params = {"dsn": store_config.get_connection_string()}
            self.table_name = store_config.table_name
            self.pool_size = store_config.pool_size
        elif connection_string:
            self.connection_params = {"dsn": connection_string}
            self.table_name = table_name
            self.pool_size = pool_size
        else:
            raise ValueError("PostgresRecordStore requires store_config or connection_string")

        self._connection_pool: Optional[pool.ThreadedConnectionPool] = None
        self._schema_ready = False

    @property
    def _table(self) -> sql.Identifier:
        return sql.Identifier(self.table_name)

    def _get_connection_pool(self) -> pool.ThreadedConnectionPool:
        """Get or create the connection pool.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        if self._connection_pool is None:
            try:
                self._connection_pool = pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=self.pool_size,
                    **self.connection_params,
                )
                logger.info("Created PostgreSQL connection pool")
            except psycopg2.Error as e:
                raise StoreUnavailableError(
                    f"Failed to connect to PostgreSQL: {str(e).strip()}",
                    operation="connect",
                    code=getattr(e, "pgcode", None),
                    path=self.table_name,
                )
        return self._connection_pool

    def _get_connection(self):
        connection_pool = self._get_connection_pool()
        try:
            return connection_pool.getconn()
        except (psycopg2.Error, pool.PoolError) as e:
            raise StoreUnavailableError(
                f"Failed to get connection from pool: {str(e)}",
                operation="get_connection",
                path=self.table_name,
            )

    def _return_connection(self, conn, broken: bool = False) -> None:
        if self._connection_pool is None:
            return
        try:
            self._connection_pool.putconn(conn, close=broken)
        except (psycopg2.Error, pool.PoolError) as e:
            logger.warning(f"Error returning connection to pool: {str(e)}")

    def _translate(self, error: Exception, operation: str) -> StorageError:
        message = str(error).strip()
        if isinstance(error, _UNAVAILABLE_ERRORS):
            return StoreUnavailableError(
                f"PostgreSQL unavailable during {operation}: {message}",
                operation=operation,
                code=getattr(error, "pgcode", None),
                path=self.table_name,
            )
        return StorageError(
            f"PostgreSQL {operation} failed: {message}",
            operation=operation,
            code=getattr(error, "pgcode", None),
            path=self.table_name,
        )

    def _execute(self, operation: str, statement, params=None, fetch: str = "none", commit: bool = False):
        """Run one statement on a pooled connection.

        Parameters:
            operation: Operation name used in errors and logs
            statement: SQL statement (sql.Composed or str)
            params: Bound parameters
            fetch: 'none', 'one' or 'all'
            commit: Commit after executing

        Raises:
            StoreUnavailableError: On connection-level failures
            StorageError: On statement failures
        """
        conn = self._get_connection()
        broken = False
        try:
            with conn.cursor() as cursor:
                cursor.execute(statement, params)
                if fetch == "one":
                    result = cursor.fetchone()
                elif fetch == "all":
                    result = cursor.fetchall()
                else:
                    result = None
            if commit:
                conn.commit()
            else:
                conn.rollback()
            return result
        except psycopg2.Error as e:
            broken = isinstance(e, _UNAVAILABLE_ERRORS)
            if not broken:
                conn.rollback()
            logger.error(f"PostgreSQL {operation} failed: {str(e).strip()}", exc_info=True)
            raise self._translate(e, operation)
        finally:
            self._return_connection(conn, broken=broken)

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        statement = sql.SQL(
            """
            CREATE TABLE IF NOT EXISTS {table} (
                id BIGSERIAL PRIMARY KEY,
                document JSONB NOT NULL,
                created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        ).format(table=self._table)
        self._execute("initialize", statement, commit=True)
        self._schema_ready = True
        logger.info(f"PostgreSQL table '{self.table_name}' ready")

    def initialize(self) -> None:
        """Connect and create the documents table.

        An unreachable database is logged and leaves the store degraded; the
        process keeps starting.
        """
        try:
            self._ensure_schema()
        except StorageError as e:
            logger.error(
                f"PostgreSQL store unavailable at startup, running degraded: {e.message}"
            )

    def create(self, record: Mapping[str, Any]) -> StoredRecord:
        """Insert one document and return it with the generated id.

        Raises:
            ValidationError: If a required field is absent or empty
            StorageError: If the insert fails
            StoreUnavailableError: If the database cannot be reached
        """
        patient = coerce_record(record)
        self._ensure_schema()
        statement = sql.SQL("INSERT INTO {table} (document) VALUES (%s) RETURNING id").format(
            table=self._table
        )
        row = self._execute("create", statement, [Json(patient.to_document())], fetch="one", commit=True)
        stored = StoredRecord.from_record(patient, str(row[0]))
        logger.info(f"Patient document {stored.id} inserted into {self.table_name}")
        return stored

    def search(self, name_part: Optional[str]) -> list[StoredRecord]:
        """Query documents whose firstName OR lastName contains name_part.

        Raises:
            InvalidQueryError: If name_part is missing or empty
            StoreUnavailableError: If the database cannot be reached
        """
        needle = validate_query(name_part)
        self._ensure_schema()
        statement = sql.SQL(
            """
            SELECT id, document FROM {table}
            WHERE strpos(lower(document->>'firstName'), lower(%s)) > 0
               OR strpos(lower(document->>'lastName'), lower(%s)) > 0
            ORDER BY id
            """
        ).format(table=self._table)
        rows = self._execute("search", statement, [needle, needle], fetch="all")
        return [
            StoredRecord.from_record(PatientRecord.from_mapping(document), str(row_id))
            for row_id, document in rows
        ]

    def count(self) -> int:
        self._ensure_schema()
        statement = sql.SQL("SELECT count(*) FROM {table}").format(table=self._table)
        row = self._execute("count", statement, fetch="one")
        return int(row[0])

    def check_health(self) -> bool:
        try:
            self._execute("health", "SELECT 1", fetch="one")
            return True
        except StorageError as e:
            logger.warning(f"PostgreSQL health check failed: {e.message}")
            return False

    def close(self) -> None:
        """Close all pooled connections."""
        if self._connection_pool is not None:
            self._connection_pool.closeall()
            self._connection_pool = None
            logger.info("PostgreSQL connection pool closed")
