"""
Integration tests for DatabaseClient connection.

This module verifies basic connectivity to the PostgreSQL database holding
the catalog tables.

Usage:
    RUN_INTEGRATION=1 pytest tests/integration/test_db_connection.py -v
"""

import pytest

from statquery.config import get_settings
from statquery.domain.errors import DatabaseQueryError
from statquery.infrastructure.database_client import DatabaseClient
from statquery.repositories.schema_repository import SchemaRepository


@pytest.fixture
def db_config():
    """Get database configuration from settings."""
    settings = get_settings()
    return settings.database


@pytest.fixture
async def db_client(db_config):
    """Create and connect database client."""
    client = DatabaseClient(db_config)
    await client.connect()
    yield client
    if client.is_connected():
        await client.close()


@pytest.mark.integration
class TestDatabaseConnection:
    """Integration tests for database connectivity."""

    async def test_basic_connection(self, db_config):
        """Test basic database connection and disconnection."""
        client = DatabaseClient(db_config)

        await client.connect()
        assert client.is_connected()

        await client.close()
        assert not client.is_connected()

    async def test_simple_query(self, db_client):
        rows = await db_client.execute_query("SELECT 1 AS one")
        assert rows == [{"one": 1}]

    async def test_row_column_order_preserved(self, db_client):
        rows = await db_client.execute_query("SELECT 2 AS b, 1 AS a")
        assert list(rows[0].keys()) == ["b", "a"]

    async def test_health_check(self, db_client):
        health = await db_client.health_check()
        assert health["status"] == "healthy"

    async def test_statement_timeout(self, db_client):
        with pytest.raises(DatabaseQueryError):
            await db_client.execute_query("SELECT pg_sleep(3)", timeout=1)

    async def test_syntax_error_message_kept(self, db_client):
        with pytest.raises(DatabaseQueryError) as exc_info:
            await db_client.execute_query("SELECT * FROM pg_class This query lists tables")
        assert "syntax error" in exc_info.value.message

    async def test_catalog_tables_reflect(self, db_client):
        """Every table of the configured catalog has columns in the database."""
        from statquery.utils.yaml_loader import load_catalog

        catalog = load_catalog(get_settings().catalog)
        repo = SchemaRepository(db_client)

        for schema_name, table_name in catalog.iter_tables():
            columns = await repo.get_columns(schema_name, table_name)
            assert columns, f"{schema_name}.{table_name} has no columns"
