"""Unit tests for SQLExecutionRepository."""

import pytest

from statquery.domain.errors import DatabaseConnectionError, DatabaseQueryError
from statquery.repositories.sql_execution import SQLExecutionRepository

from stubs import StubDatabaseClient


async def test_success_returns_rows_in_order():
    rows = [{"surname": "Hamilton", "wins": 103}, {"surname": "Schumacher", "wins": 91}]
    db = StubDatabaseClient(lambda sql: rows)

    outcome = await SQLExecutionRepository(db).execute("  SELECT 1  ", timeout_seconds=5)

    assert outcome.succeeded
    assert outcome.rows == rows
    assert outcome.error_message is None
    assert db.calls == [{"query": "SELECT 1", "timeout": 5, "read_only": True}]


async def test_query_error_becomes_failed_outcome():
    db = StubDatabaseClient(lambda sql: DatabaseQueryError('relation "drivers" does not exist'))

    outcome = await SQLExecutionRepository(db).execute("SELECT * FROM drivers", timeout_seconds=30)

    assert not outcome.succeeded
    assert outcome.error_message == 'relation "drivers" does not exist'
    assert outcome.rows == []


async def test_connection_error_propagates():
    db = StubDatabaseClient(lambda sql: DatabaseConnectionError("Database pool not initialized"))

    with pytest.raises(DatabaseConnectionError):
        await SQLExecutionRepository(db).execute("SELECT 1", timeout_seconds=30)
