"""
Schema Repository for extracting database schema information.

This repository provides methods to fetch schema metadata from PostgreSQL
information_schema using the DatabaseClient infrastructure layer.

All methods return domain models from schema_nodes.py (SSOT) for type safety.
"""

from typing import List

from ..infrastructure.database_client import DatabaseClient
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..domain.errors import DatabaseQueryError
from ..domain.schema_nodes import ColumnNode, RelationshipNode


logger = get_module_logger()

# Introspection queries are cheap; keep them well under the statement timeout
INTROSPECTION_TIMEOUT_SECONDS = 10


class SchemaRepository:
    """
    Repository for schema metadata operations.

    This class provides methods to extract database schema information
    from PostgreSQL's information_schema: column names, column details with
    primary key flags, and outgoing foreign keys of a table.

    Usage:
        db_client = DatabaseClient(config)
        await db_client.connect()

        schema_repo = SchemaRepository(db_client)
        names = await schema_repo.get_column_names("f1", "Drivers")
        columns = await schema_repo.get_columns("f1", "Drivers")
        foreign_keys = await schema_repo.get_foreign_keys("f1", "Results")
    """

    def __init__(self, db_client: DatabaseClient):
        """
        Initialize schema repository.

        Args:
            db_client: DatabaseClient instance for database operations
        """
        self.db_client = db_client
        logger.info("SchemaRepository initialized")

    async def get_column_names(self, schema: str, table_name: str) -> List[str]:
        """
        Fetch the column names of a table in ordinal order.

        An unknown table yields an empty list.

        Raises:
            DatabaseQueryError: If query execution fails
        """
        trace_id = current_trace_id()

        query = """
            SELECT column_name
            FROM information_schema.columns
            WHERE table_schema = $1 AND table_name = $2
            ORDER BY ordinal_position
        """

        try:
            results = await self.db_client.execute_query(
                query=query,
                params=[schema, table_name],
                timeout=INTROSPECTION_TIMEOUT_SECONDS,
                read_only=True
            )
        except Exception as e:
            error_msg = f"Failed to fetch column names for table '{schema}.{table_name}': {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

        names = [row["column_name"] for row in results]

        logger.debug(
            "Column names fetched",
            schema=schema,
            table_name=table_name,
            count=len(names),
            trace_id=trace_id
        )

        return names

    async def get_columns(self, schema: str, table_name: str) -> List[ColumnNode]:
        """
        Fetch all columns for a specific table.

        Args:
            schema: PostgreSQL schema name
            table_name: Name of the table

        Returns:
            List of ColumnNode domain models (column_name, data_type,
            is_nullable, is_primary_key) in ordinal order

        Raises:
            DatabaseQueryError: If query execution fails
        """
        trace_id = current_trace_id()
        logger.info(
            "Fetching columns",
            table_name=table_name,
            schema=schema,
            trace_id=trace_id
        )

        # Single join path with aggregation; scans table_constraints once
        query = """
            SELECT
                c.column_name,
                c.is_nullable,
                c.data_type,
                COALESCE(bool_or(tc.constraint_type = 'PRIMARY KEY'), false) AS is_primary_key
            FROM information_schema.columns c
            LEFT JOIN information_schema.key_column_usage kcu
                ON c.column_name = kcu.column_name
                AND c.table_schema = kcu.table_schema
                AND c.table_name = kcu.table_name
            LEFT JOIN information_schema.table_constraints tc
                ON kcu.constraint_name = tc.constraint_name
                AND kcu.table_schema = tc.table_schema
                AND tc.table_schema = $1
                AND tc.table_name = $2
            WHERE c.table_schema = $1 AND c.table_name = $2
            GROUP BY c.column_name, c.is_nullable, c.data_type, c.ordinal_position
            ORDER BY c.ordinal_position
        """

        try:
            results = await self.db_client.execute_query(
                query=query,
                params=[schema, table_name],
                timeout=INTROSPECTION_TIMEOUT_SECONDS,
                read_only=True
            )

            columns = [
                ColumnNode(
                    column_name=row["column_name"],
                    data_type=row["data_type"],
                    is_nullable=(row["is_nullable"] == "YES"),
                    is_primary_key=row["is_primary_key"]
                )
                for row in results
            ]

            logger.info(
                "Columns fetched successfully",
                table_name=table_name,
                count=len(columns),
                schema=schema,
                trace_id=trace_id
            )

            return columns

        except Exception as e:
            error_msg = f"Failed to fetch columns for table '{schema}.{table_name}': {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e

    async def get_foreign_keys(self, schema: str, table_name: str) -> List[RelationshipNode]:
        """
        Fetch the outgoing foreign keys of a table.

        Args:
            schema: PostgreSQL schema name
            table_name: Name of the referencing table

        Returns:
            List of RelationshipNode domain models with:
            - from_column
            - to_schema, to_table, to_column
            - constraint_name

        Raises:
            DatabaseQueryError: If query execution fails
        """
        trace_id = current_trace_id()
        logger.info(
            "Fetching foreign keys",
            table_name=table_name,
            schema=schema,
            trace_id=trace_id
        )

        query = """
            SELECT
                tc.constraint_name,
                kcu.column_name AS from_column,
                ccu.table_schema AS to_schema,
                ccu.table_name AS to_table,
                ccu.column_name AS to_column
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            JOIN information_schema.constraint_column_usage AS ccu
                ON ccu.constraint_name = tc.constraint_name
                AND ccu.constraint_schema = tc.constraint_schema
            WHERE tc.constraint_type = 'FOREIGN KEY'
                AND tc.table_schema = $1
                AND tc.table_name = $2
            ORDER BY tc.constraint_name, kcu.ordinal_position
        """

        try:
            results = await self.db_client.execute_query(
                query=query,
                params=[schema, table_name],
                timeout=INTROSPECTION_TIMEOUT_SECONDS,
                read_only=True
            )

            foreign_keys = [
                RelationshipNode(
                    constraint_name=row["constraint_name"],
                    from_column=row["from_column"],
                    to_schema=row["to_schema"],
                    to_table=row["to_table"],
                    to_column=row["to_column"]
                )
                for row in results
            ]

            logger.info(
                "Foreign keys fetched successfully",
                table_name=table_name,
                count=len(foreign_keys),
                schema=schema,
                trace_id=trace_id
            )

            return foreign_keys

        except Exception as e:
            error_msg = f"Failed to fetch foreign keys for table '{schema}.{table_name}': {e}"
            logger.error(error_msg, trace_id=trace_id)
            raise DatabaseQueryError(error_msg) from e
