"""
SQL Generation Repository.

Handles LLM-based SQL generation:
- System prompt with the reflected schema JSON and formatting rules
- Optional FIX FAILED QUERY block carrying the previous statement and error
- LLM interaction

The reply is returned as-is; the validation stage and the database decide
whether it is usable.
"""

from typing import Optional

from statquery.domain.conversation import ChatMessage
from statquery.domain.errors import LLMError, SQLGenerationError
from statquery.infrastructure.llm_client import LLMClient
from statquery.utils.logging import get_module_logger
from statquery.utils.tracing import current_trace_id

logger = get_module_logger()

BASE_PROMPT_TEMPLATE = """You are responsible for generating a SQL query in response to user input. Only target the tables described in the given database schema.

Perform each of the following steps:
1. Generate a query that is always entirely based on the targeted database schema.
2. Return ONLY the SQL query, nothing more.

IMPORTANT:
    - Return only a valid SQL query.
        - Do not include any backticks, newlines, backslashes, escape sequences, or any other formatting.
        - The entire SQL query must appear on a single line, with no whitespace except single spaces after colons and commas.
        - Return only the SQL query and nothing else.

The database schema is described according to the following json schema:
{schema_json}"""

FIX_PROMPT_TEMPLATE = """

IMPORTANT - FIX FAILED QUERY:
The following SQL query failed with this error: {error}

Failed SQL query: {sql}

Please fix this SQL query to address this specific error. Make sure your fixed query follows all of the formatting instructions above."""


def build_system_prompt(
    schema_json: str,
    previous_sql: Optional[str] = None,
    previous_error: Optional[str] = None,
) -> str:
    """Build the SQL generation system prompt. The fix block needs both previous values."""
    prompt = BASE_PROMPT_TEMPLATE.format(schema_json=schema_json)
    if previous_sql and previous_error:
        prompt += FIX_PROMPT_TEMPLATE.format(error=previous_error, sql=previous_sql)
    return prompt


class SQLGenerationRepository:
    """
    Repository for LLM-based SQL generation.

    Handles prompt construction and LLM interaction.
    """

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    async def generate_sql(
        self,
        rewritten_query: str,
        schema_json: str,
        previous_sql: Optional[str] = None,
        previous_error: Optional[str] = None,
    ) -> str:
        """
        Generate one SQL statement for the question.

        Args:
            rewritten_query: Self-contained user question
            schema_json: Reflected schema of the selected tables
            previous_sql: Statement from the previous attempt (for retry)
            previous_error: Error the previous statement produced (for retry)

        Returns:
            The model's reply, unmodified

        Raises:
            SQLGenerationError: If the LLM call fails
        """
        trace_id = current_trace_id()

        system_prompt = build_system_prompt(schema_json, previous_sql, previous_error)

        logger.debug(
            "Calling LLM for SQL generation",
            prompt_length=len(system_prompt),
            is_retry=bool(previous_sql and previous_error),
            trace_id=trace_id,
        )

        try:
            sql = await self.llm_client.complete_chat([
                ChatMessage.system(system_prompt),
                ChatMessage.user(f"User Prompt: '{rewritten_query}'"),
            ])
        except LLMError as e:
            raise SQLGenerationError(
                f"SQL generation failed: {e.message}",
                details=e.details,
            ) from e

        logger.debug("SQL generated", sql=sql, trace_id=trace_id)

        return sql
