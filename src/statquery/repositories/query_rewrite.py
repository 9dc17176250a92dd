"""
Query Rewrite Repository.

Rewrites a follow-up question into a self-contained one using the
conversation history. If the user asked "Who won the most races in 2023?"
and then "How many points did he score?", the rewrite becomes something like
"How many points did Max Verstappen score in the 2023 season?", which the
SQL generator can answer without seeing the history.
"""

import re

from statquery.domain.conversation import ChatMessage
from statquery.domain.errors import LLMError, RewriteError
from statquery.infrastructure.llm_client import LLMClient
from statquery.utils.logging import get_module_logger
from statquery.utils.tracing import current_trace_id

logger = get_module_logger()

SYSTEM_PROMPT_TEMPLATE = (
    "You are a query enhancer that rewrites the latest user question based on "
    "contextual information from previous exchanges in the chat history, if necessary. "
    "If the question seems to be a follow-up question, write it so the full context is "
    "preserved. If the question is already explicit, return it unchanged. Only return "
    "the rewritten question text without explanations.\n\n"
    "Chat History: {history}"
)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_LABEL = re.compile(
    r"^(?:rewritten\s+(?:question|query|prompt)|user\s+prompt|question|query)\s*:\s*",
    re.IGNORECASE,
)
_QUOTE_PAIRS = (('"', '"'), ("'", "'"), ("“", "”"), ("‘", "’"))


def sanitize_rewrite(reply: str) -> str:
    """
    Strip formatting models add around the rewritten question.

    Removes code fences, a leading "Rewritten question:"-style label and
    one layer of surrounding quotes. May return an empty string.
    """
    text = _FENCE.sub("", reply.strip()).strip()
    text = _LABEL.sub("", text).strip()
    for opening, closing in _QUOTE_PAIRS:
        if len(text) >= 2 and text.startswith(opening) and text.endswith(closing):
            text = text[1:-1].strip()
            break
    return text


class QueryRewriteRepository:
    """
    Repository for LLM-based query rewriting.

    Never returns an empty string for a non-empty query: when the reply is
    empty after sanitizing, the original query is used.
    """

    def __init__(self, llm_client: LLMClient):
        self.llm_client = llm_client

    async def rewrite(self, history_text: str, user_query: str) -> str:
        """
        Rewrite the user query with context from the history.

        Raises:
            RewriteError: If the LLM call fails (no retry)
        """
        trace_id = current_trace_id()

        messages = [
            ChatMessage.system(SYSTEM_PROMPT_TEMPLATE.format(history=history_text)),
            ChatMessage.user(f"User Prompt: '{user_query}'"),
        ]

        try:
            reply = await self.llm_client.complete_chat(messages)
        except LLMError as e:
            raise RewriteError(
                f"Query rewrite failed: {e.message}",
                details=e.details,
            ) from e

        rewritten = sanitize_rewrite(reply)
        if not rewritten:
            logger.warning(
                "Rewrite came back empty, using original query",
                trace_id=trace_id,
            )
            rewritten = user_query

        logger.info(
            "Query rewritten",
            received_query=user_query,
            rewritten_query=rewritten,
            trace_id=trace_id,
        )

        return rewritten
