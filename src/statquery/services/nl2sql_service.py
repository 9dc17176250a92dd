"""
NL2SQL Service - Main orchestrator for answering questions from the database.

This service is a THIN ORCHESTRATOR that coordinates repositories:
1. IntentClassificationRepository - statistical vs conversational
2. QueryRewriteRepository - make follow-ups self-contained
3. TableSelectionRepository - embedding-based table gating
4. SchemaService - reflect the selected tables into schema JSON
5. SQLGenerationRepository - LLM-based SQL generation
6. SQLValidationRepository - static pre-execution checks
7. SQLExecutionRepository - read-only execution

Steps 5-7 form the execution loop: up to max_attempts cycles, each feeding
the previous statement and its error back into generation.

Key principles:
- Service layer only orchestrates, no business logic
- All logic lives in repositories
- Clear separation of concerns
"""

from typing import Optional, Sequence

from statquery.config import NL2SQLConfig
from statquery.domain.base_enums import PipelineStepName
from statquery.domain.catalog import SchemaCatalog
from statquery.domain.conversation import ConversationTurn, serialize_history
from statquery.domain.errors import EmptyQueryError, ExhaustedRetryError, SQLGenerationError
from statquery.domain.pipeline import AttemptRecord, GeneratedSql, PipelineState, StatisticalAnswer
from statquery.repositories.intent_classification import IntentClassificationRepository
from statquery.repositories.query_rewrite import QueryRewriteRepository
from statquery.repositories.sql_execution import SQLExecutionRepository
from statquery.repositories.sql_generation import SQLGenerationRepository
from statquery.repositories.sql_validation import SQLValidationRepository
from statquery.repositories.table_selection import TableSelectionRepository
from statquery.services.schema_service import SchemaService
from statquery.utils.logging import get_module_logger
from statquery.utils.token_utils import InputValidator
from statquery.utils.tracing import current_trace_id

logger = get_module_logger()


def require_query(user_query: Optional[str]) -> str:
    """Return the stripped query, raising EmptyQueryError if it is blank."""
    try:
        return InputValidator.validate_not_blank(user_query, "Query cannot be empty")
    except ValueError as e:
        raise EmptyQueryError(str(e), details={"field": "query"}) from e


async def classify_intent(
    intent_repository: IntentClassificationRepository,
    history: Sequence[ConversationTurn],
    user_query: str,
) -> bool:
    """
    Classify a message with only the LLM-backed repository.

    The classify-intent route uses this directly so it keeps working while
    the database is unavailable.
    """
    query = require_query(user_query)
    return await intent_repository.classify(serialize_history(history), query)


class NL2SQLService:
    """
    Main orchestrator for the statistical question pipeline.

    Exposes two operations:
    - classify_intent(history, query) -> bool
    - answer_statistical_query(history, query) -> StatisticalAnswer
    """

    def __init__(
        self,
        intent_repository: IntentClassificationRepository,
        rewrite_repository: QueryRewriteRepository,
        table_selection_repository: TableSelectionRepository,
        schema_service: SchemaService,
        sql_generation_repository: SQLGenerationRepository,
        sql_validation_repository: SQLValidationRepository,
        sql_execution_repository: SQLExecutionRepository,
        catalog: SchemaCatalog,
        config: NL2SQLConfig,
    ):
        self.intent_repo = intent_repository
        self.rewrite_repo = rewrite_repository
        self.selection_repo = table_selection_repository
        self.schema_service = schema_service
        self.generation_repo = sql_generation_repository
        self.validation_repo = sql_validation_repository
        self.execution_repo = sql_execution_repository
        self.catalog = catalog
        self.config = config

        logger.info(
            "NL2SQLService initialized",
            max_attempts=config.max_attempts,
            max_selected_tables=config.max_selected_tables,
            validate_sql=config.validate_sql,
        )

    async def classify_intent(
        self,
        history: Sequence[ConversationTurn],
        user_query: str,
    ) -> bool:
        """
        Decide whether the message needs a database lookup.

        Raises:
            EmptyQueryError: If the query is blank
            ClassificationError: If the LLM call fails
        """
        return await classify_intent(self.intent_repo, history, user_query)

    async def answer_statistical_query(
        self,
        history: Sequence[ConversationTurn],
        user_query: str,
    ) -> StatisticalAnswer:
        """
        Answer a statistical question with rows from the database.

        Raises:
            EmptyQueryError: If the query is blank
            RewriteError: If the rewrite call fails
            SchemaError: If schema reflection fails
            ExhaustedRetryError: If every attempt failed; carries the last error
        """
        trace_id = current_trace_id()
        query = require_query(user_query)

        state = PipelineState(user_query=query, history_text=serialize_history(history))

        logger.info(
            "Starting statistical query pipeline",
            query_length=len(query),
            history_turns=len(history),
            trace_id=trace_id,
        )

        # Step 1: Rewrite
        state.rewritten_query = await self.rewrite_repo.rewrite(state.history_text, state.user_query)

        # Step 2: Table selection
        state.selected_tables = await self.selection_repo.select_tables(state.rewritten_query, self.catalog)
        state.filtered_catalog = self.catalog.restrict_to(state.selected_tables)

        # Step 3: Schema reflection
        state.schema_json = await self.schema_service.reverse_engineer_schema(state.filtered_catalog)

        # Steps 4-6: Generate, validate, execute with retry
        return await self._run_execution_loop(state)

    async def _run_execution_loop(self, state: PipelineState) -> StatisticalAnswer:
        """Generate/validate/execute up to max_attempts times."""
        trace_id = current_trace_id()
        max_attempts = self.config.max_attempts

        # Fed back to the generator; only updated when a statement was produced
        feedback_sql: Optional[str] = None
        feedback_error: Optional[str] = None

        for attempt in range(1, max_attempts + 1):
            logger.info(
                f"SQL attempt {attempt}/{max_attempts}",
                trace_id=trace_id,
            )

            try:
                statement = await self.generation_repo.generate_sql(
                    rewritten_query=state.rewritten_query,
                    schema_json=state.schema_json,
                    previous_sql=feedback_sql,
                    previous_error=feedback_error,
                )
            except SQLGenerationError as e:
                self._record_failure(state, attempt, None, e.message, PipelineStepName.SQL_GENERATION)
                continue

            state.last_sql = GeneratedSql(statement=statement, attempt=attempt)

            if self.config.validate_sql:
                validation = self.validation_repo.validate(statement)
                if not validation.passed:
                    error = validation.message or "Generated SQL failed validation"
                    self._record_failure(state, attempt, statement, error, PipelineStepName.SQL_VALIDATION)
                    feedback_sql, feedback_error = statement, error
                    continue

            outcome = await self.execution_repo.execute(
                statement,
                timeout_seconds=self.config.query_timeout_seconds,
            )

            if outcome.succeeded:
                state.rows = outcome.rows
                state.last_error = None
                state.attempts.append(AttemptRecord(attempt=attempt, sql=statement, succeeded=True))

                logger.info(
                    "Statistical query answered",
                    attempt=attempt,
                    row_count=len(outcome.rows),
                    trace_id=trace_id,
                )

                return StatisticalAnswer(
                    rows=outcome.rows,
                    sql=statement,
                    rewritten_query=state.rewritten_query,
                    selected_tables=list(state.selected_tables),
                    attempts=list(state.attempts),
                )

            error = outcome.error_message or "SQL execution failed"
            self._record_failure(state, attempt, statement, error, PipelineStepName.SQL_EXECUTION)
            feedback_sql, feedback_error = statement, error

        logger.error(
            "All SQL attempts failed",
            attempts=len(state.attempts),
            last_error=state.last_error,
            trace_id=trace_id,
        )
        raise ExhaustedRetryError(state.last_error or "All SQL attempts failed", attempts=state.attempts)

    @staticmethod
    def _record_failure(
        state: PipelineState,
        attempt: int,
        sql: Optional[str],
        error: str,
        step: PipelineStepName,
    ) -> None:
        state.last_error = error
        state.attempts.append(
            AttemptRecord(
                attempt=attempt,
                sql=sql,
                succeeded=False,
                error_message=error,
                failed_step=step.value,
            )
        )
        logger.warning(
            "SQL attempt failed",
            attempt=attempt,
            failed_step=step.value,
            error=error,
            trace_id=current_trace_id(),
        )
