"""
Database client for PostgreSQL using asyncpg.

This module provides an async database client with connection pooling,
read-only transactions, per-statement timeouts and comprehensive error
handling. It runs both catalog introspection and LLM-authored statements.
"""

from typing import Any, Dict, List, Optional
from contextlib import asynccontextmanager
import asyncpg

from ..config import DatabaseConfig
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..domain.errors import DatabaseConnectionError, DatabaseQueryError


logger = get_module_logger()


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class DatabaseClient:
    """
    Low-level async PostgreSQL database client using asyncpg.

    This is a thin infrastructure layer providing the "execute SQL, return
    rows" capability. Schema introspection lives in SchemaRepository.

    Features:
    - Connection pooling with asyncpg
    - Read-only transactions (on by default)
    - Per-statement timeout via SET LOCAL statement_timeout
    - Structured logging with trace IDs
    - Driver errors mapped to DatabaseQueryError with the server message kept

    Usage:
        client = DatabaseClient(config)
        await client.connect()

        rows = await client.execute_query('SELECT * FROM "Drivers" LIMIT 10')

        rows = await client.execute_query(
            'SELECT * FROM "Drivers" WHERE "driverId" = $1',
            params=[driver_id]
        )

        await client.close()
    """

    def __init__(self, config: DatabaseConfig):
        """
        Initialize database client with configuration.

        Args:
            config: Database configuration
        """
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None
        self._is_connected = False

        logger.info(
            "DatabaseClient initialized",
            default_schema=config.default_schema,
            connection_pool_size=config.connection_pool_max_size,
            query_timeout_seconds=config.query_timeout_seconds,
            application_name=config.application_name
        )

    async def connect(self) -> None:
        """
        Establish connection pool to the database.

        Raises:
            DatabaseConnectionError: If connection fails
        """
        if self._is_connected:
            logger.warning("Database client already connected")
            return

        trace_id = current_trace_id()
        logger.info("Establishing database connection", trace_id=trace_id)

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.config.database_url,
                min_size=self.config.connection_pool_min_size,
                max_size=self.config.connection_pool_max_size,
                command_timeout=self.config.query_timeout_seconds,
                timeout=self.config.connection_timeout_seconds,
                max_queries=self.config.connection_pool_max_queries,
                server_settings={
                    'application_name': self.config.application_name,
                    'search_path': self.config.default_schema
                }
            )

            await self._test_connection(self._pool)

            self._is_connected = True
            logger.info(
                "Database connection established successfully",
                pool_size=self.config.connection_pool_max_size,
                default_schema=self.config.default_schema,
                trace_id=trace_id
            )

        except asyncpg.InvalidCatalogNameError as e:
            error_msg = f"Database does not exist: {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseConnectionError(error_msg) from e

        except asyncpg.InvalidPasswordError as e:
            error_msg = f"Authentication failed: {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseConnectionError(error_msg) from e

        except Exception as e:
            error_msg = f"Failed to connect to database: {e}"
            logger.error(error_msg, error_type=type(e).__name__, trace_id=trace_id)
            raise DatabaseConnectionError(error_msg) from e

    async def _test_connection(self, pool: asyncpg.Pool) -> None:
        """Test database connection."""
        trace_id = current_trace_id()
        try:
            async with pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise DatabaseConnectionError("Connection test failed")

                current_schema = await conn.fetchval("SELECT current_schema()")
                logger.info(
                    "Connection test successful",
                    current_schema=current_schema,
                    trace_id=trace_id
                )
        except Exception as e:
            error_msg = f"Connection test failed: {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseConnectionError(error_msg) from e

    async def close(self) -> None:
        """Close database connection pool."""
        trace_id = current_trace_id()
        logger.info("Closing database connection", trace_id=trace_id)

        if self._pool:
            await self._pool.close()
            logger.info("Connection pool closed", trace_id=trace_id)

        self._is_connected = False
        self._pool = None

        logger.info("Database connection closed", trace_id=trace_id)

    def is_connected(self) -> bool:
        """Check if database client is connected."""
        return self._is_connected and self._pool is not None

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on database connection.

        Returns:
            Dictionary with status and connection details

        Example:
            {
                "status": "healthy",
                "connected": True,
                "pool_size": 5,
                "current_schema": "public"
            }
        """
        trace_id = current_trace_id()

        if not self.is_connected():
            return {
                "status": "unhealthy",
                "connected": False,
                "error": "Database client not connected"
            }

        try:
            async with self.acquire_connection() as conn:
                result = await conn.fetchval("SELECT 1")
                current_schema = await conn.fetchval("SELECT current_schema()")

                if result != 1:
                    return {
                        "status": "unhealthy",
                        "connected": True,
                        "error": "Connection test query failed"
                    }

                logger.info("Database health check passed", trace_id=trace_id)

                return {
                    "status": "healthy",
                    "connected": True,
                    "pool_size": self.config.connection_pool_max_size,
                    "current_schema": current_schema
                }

        except Exception as e:
            logger.error(
                "Database health check failed",
                error=str(e),
                error_type=type(e).__name__,
                trace_id=trace_id
            )
            return {
                "status": "unhealthy",
                "connected": True,
                "error": str(e)
            }

    @asynccontextmanager
    async def acquire_connection(self, schema: Optional[str] = None):
        """
        Context manager to acquire a database connection from the pool.

        Args:
            schema: Optional schema to put on the search_path for this connection

        Yields:
            asyncpg.Connection: Database connection
        """
        if not self.is_connected():
            raise DatabaseConnectionError("Database client is not connected")

        if self._pool is None:
            raise DatabaseConnectionError("Connection pool is not available")

        async with self._pool.acquire() as connection:
            switch_schema = bool(schema) and schema != self.config.default_schema
            if switch_schema:
                await connection.execute(f"SET search_path TO {_quote_identifier(schema)}")

            try:
                yield connection
            finally:
                if switch_schema:
                    await connection.execute(
                        f"SET search_path TO {_quote_identifier(self.config.default_schema)}"
                    )

    async def execute_query(
        self,
        query: str,
        params: Optional[List[Any]] = None,
        timeout: Optional[int] = None,
        read_only: Optional[bool] = None,
        schema: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a SQL statement and return results as a list of dictionaries.

        The statement runs in its own transaction. Each row dict keeps the
        result-set column order; NULLs come back as None.

        Args:
            query: SQL statement
            params: Optional positional parameters ($1, $2, ...)
            timeout: Statement timeout in seconds (default: config.query_timeout_seconds)
            read_only: Run in a READ ONLY transaction (default: config.enforce_read_only_default)
            schema: Optional schema for the search_path

        Returns:
            List of dictionaries containing query results

        Raises:
            DatabaseConnectionError: If the client is not connected
            DatabaseQueryError: If the statement fails; the message carries
                the server's error text
        """
        if not self.is_connected():
            raise DatabaseConnectionError("Database client is not connected")

        trace_id = current_trace_id()

        effective_timeout = timeout or self.config.query_timeout_seconds
        effective_read_only = (
            self.config.enforce_read_only_default if read_only is None else read_only
        )
        effective_schema = schema or self.config.default_schema

        logger.info(
            "Executing database query",
            query=query[:200],
            schema=effective_schema,
            read_only=effective_read_only,
            timeout_seconds=effective_timeout,
            trace_id=trace_id
        )

        try:
            async with self.acquire_connection(schema=schema) as conn:
                async with conn.transaction(readonly=effective_read_only):
                    # SET LOCAL does not accept bind parameters; value is an int we control
                    await conn.execute(
                        f"SET LOCAL statement_timeout = {int(effective_timeout * 1000)}"
                    )

                    if params is not None:
                        rows = await conn.fetch(query, *params)
                    else:
                        rows = await conn.fetch(query)

                results = [dict(row.items()) for row in rows]

                logger.info(
                    "Query executed successfully",
                    row_count=len(results),
                    schema=effective_schema,
                    trace_id=trace_id
                )

                return results

        except DatabaseConnectionError:
            raise

        except asyncpg.QueryCanceledError as e:
            error_msg = f"Query timeout exceeded: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.ReadOnlySQLTransactionError as e:
            error_msg = f"Statement attempted to write in a read-only transaction: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.PostgresSyntaxError as e:
            error_msg = f"SQL syntax error: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.UndefinedTableError as e:
            error_msg = f"Table does not exist: {e}"
            logger.error(error_msg, query=query[:200], schema=effective_schema, trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.UndefinedColumnError as e:
            error_msg = f"Column does not exist: {e}"
            logger.error(error_msg, query=query[:200], trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except asyncpg.InvalidSchemaNameError as e:
            error_msg = f"Invalid schema name: {e}"
            logger.error(error_msg, schema=effective_schema, trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        except Exception as e:
            error_msg = f"Query execution failed: {e}"
            logger.error(
                error_msg,
                error_type=type(e).__name__,
                query=query[:200],
                trace_id=trace_id
            )
            raise DatabaseQueryError(error_msg) from e
