"""
Schema Service for orchestrating schema operations.

This service turns a (filtered) schema catalog into the JSON schema
description handed to the SQL generator, and serves the declared catalog
to the API layer.
"""

import asyncio

from ..domain.catalog import SchemaCatalog
from ..domain.errors import DatabaseError, SchemaError
from ..domain.schema_nodes import ReflectedSchema, TableNode
from ..repositories.schema_repository import SchemaRepository
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()


class SchemaService:
    """
    Service for schema-related business logic.

    Usage:
        schema_service = SchemaService(schema_repo, catalog)
        schema_json = await schema_service.reverse_engineer_schema(filtered_catalog)
    """

    def __init__(self, schema_repository: SchemaRepository, catalog: SchemaCatalog):
        """
        Initialize schema service.

        Args:
            schema_repository: SchemaRepository instance for data access
            catalog: The declared schema catalog
        """
        self.schema_repo = schema_repository
        self.catalog = catalog

        logger.info(
            "SchemaService initialized",
            schema_count=len(catalog.schemas),
            table_count=len(catalog.all_tables())
        )

    def get_catalog(self) -> SchemaCatalog:
        """Return the declared schema catalog."""
        return self.catalog

    async def reflect_table(self, schema_name: str, table_name: str) -> TableNode:
        """Reflect one table's columns and outgoing foreign keys."""
        columns, foreign_keys = await asyncio.gather(
            self.schema_repo.get_columns(schema_name, table_name),
            self.schema_repo.get_foreign_keys(schema_name, table_name),
        )

        if not columns:
            logger.warning(
                "Declared table has no columns in the database",
                schema=schema_name,
                table_name=table_name,
                trace_id=current_trace_id()
            )

        return TableNode(
            schema_name=schema_name,
            table_name=table_name,
            columns=columns,
            foreign_keys=foreign_keys,
        )

    async def reflect(self, catalog: SchemaCatalog) -> ReflectedSchema:
        """
        Reflect every table of the catalog concurrently, in declaration order.

        Foreign keys pointing at tables outside the catalog are dropped.

        Raises:
            SchemaError: If introspection fails
        """
        trace_id = current_trace_id()

        try:
            reflected = await asyncio.gather(
                *(self.reflect_table(schema_name, table_name)
                  for schema_name, table_name in catalog.iter_tables())
            )
        except DatabaseError as e:
            error_msg = f"Schema reflection failed: {e.message}"
            logger.error(error_msg, trace_id=trace_id)
            raise SchemaError(error_msg) from e

        tables = [self._drop_outside_foreign_keys(table, catalog) for table in reflected]

        logger.info(
            "Schema reflected",
            table_count=len(tables),
            column_count=sum(len(t.columns) for t in tables),
            trace_id=trace_id
        )

        return ReflectedSchema(description=catalog.description, tables=tables)

    @staticmethod
    def _drop_outside_foreign_keys(table: TableNode, catalog: SchemaCatalog) -> TableNode:
        kept = [fk for fk in table.foreign_keys if catalog.contains(fk.to_schema, fk.to_table)]
        if len(kept) == len(table.foreign_keys):
            return table

        logger.debug(
            "Dropped foreign keys to tables outside the catalog",
            schema=table.schema_name,
            table_name=table.table_name,
            dropped=len(table.foreign_keys) - len(kept),
        )
        return table.model_copy(update={"foreign_keys": kept})

    async def reverse_engineer_schema(self, catalog: SchemaCatalog) -> str:
        """
        Produce the schema JSON for the SQL generator.

        Example output:
            {"description": "Formula One ...", "tables": [{"schema_name": "f1",
             "table_name": "Drivers", "columns": [...], "foreign_keys": []}]}
        """
        reflected = await self.reflect(catalog)
        return reflected.to_prompt_json()
