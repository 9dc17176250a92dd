"""
SQL Execution Repository.

Runs one generated statement against the database and reports the result as
an ExecutionOutcome instead of raising, so the execution loop can feed the
error text back to the generator.

Safety Features:
- Read-only enforcement: statements run in a READ ONLY transaction
- Timeout protection: statement_timeout per call (default 30s)

Usage:
    repo = SQLExecutionRepository(db_client)
    outcome = await repo.execute('SELECT "forename" FROM "Drivers"', timeout_seconds=30)
    if outcome.succeeded:
        print(outcome.rows)
    else:
        print(outcome.error_message)
"""

from datetime import datetime, timezone

from statquery.domain.errors import DatabaseQueryError
from statquery.domain.pipeline import ExecutionOutcome
from statquery.infrastructure.database_client import DatabaseClient
from statquery.utils.logging import get_module_logger
from statquery.utils.tracing import current_trace_id

logger = get_module_logger()


class SQLExecutionRepository:
    """
    Repository for SQL execution.

    Only query failures become failed outcomes; a lost connection
    (DatabaseConnectionError) still propagates.
    """

    def __init__(self, db_client: DatabaseClient):
        self.db_client = db_client

    async def execute(self, sql: str, timeout_seconds: int) -> ExecutionOutcome:
        """
        Execute a generated statement.

        Args:
            sql: Statement to run
            timeout_seconds: Statement timeout

        Returns:
            ExecutionOutcome.success(rows) or ExecutionOutcome.failure(message)
        """
        trace_id = current_trace_id()

        logger.info(
            "Executing SQL query",
            sql_length=len(sql),
            timeout=timeout_seconds,
            trace_id=trace_id,
        )

        start_time = datetime.now(timezone.utc)

        try:
            rows = await self.db_client.execute_query(
                query=sql.strip(),
                timeout=timeout_seconds,
                read_only=True,
            )
        except DatabaseQueryError as e:
            logger.warning(
                "SQL execution failed",
                error=e.message,
                trace_id=trace_id,
            )
            return ExecutionOutcome.failure(e.message)

        execution_time_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

        logger.info(
            "SQL execution successful",
            row_count=len(rows),
            execution_time_ms=round(execution_time_ms, 2),
            trace_id=trace_id,
        )

        return ExecutionOutcome.success(rows)
