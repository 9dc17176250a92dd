"""
Intent Classification Repository.

Decides with one LLM call whether a user message needs a database lookup
(statistical) or is general conversation. The conversation history is part
of the prompt so short follow-ups ("and in 2022?") are classified correctly.

The answer is parsed leniently: any reply containing the word STATISTICAL
(case-insensitive) counts as statistical, anything else as conversational.
"""

from statquery.config_constants import CONVERSATIONAL_LABEL, STATISTICAL_LABEL
from statquery.domain.conversation import ChatMessage
from statquery.domain.errors import ClassificationError, LLMError
from statquery.infrastructure.llm_client import LLMClient
from statquery.utils.logging import get_module_logger
from statquery.utils.tracing import current_trace_id

logger = get_module_logger()


def is_statistical_reply(reply: str) -> bool:
    """Parse the classifier reply. No unknown state: ambiguity means conversational."""
    return STATISTICAL_LABEL in reply.upper()


class IntentClassificationRepository:
    """
    Repository for LLM-based intent classification.

    Handles prompt construction, the LLM call and reply parsing.
    """

    def __init__(self, llm_client: LLMClient, domain_description: str = ""):
        self.llm_client = llm_client
        self.domain_description = domain_description.strip()

    async def classify(self, history_text: str, user_query: str) -> bool:
        """
        Classify a user message.

        Args:
            history_text: Serialized conversation history (may be empty)
            user_query: The current user message

        Returns:
            True if the message asks for data held in the database

        Raises:
            ClassificationError: If the LLM call fails (no retry)
        """
        trace_id = current_trace_id()

        messages = [
            ChatMessage.system(self._build_system_prompt(history_text)),
            ChatMessage.user(self._build_user_prompt(user_query)),
        ]

        logger.debug(
            "Calling LLM for intent classification",
            history_length=len(history_text),
            query_length=len(user_query),
            trace_id=trace_id,
        )

        try:
            reply = await self.llm_client.complete_chat(messages)
        except LLMError as e:
            raise ClassificationError(
                f"Intent classification failed: {e.message}",
                details=e.details,
            ) from e

        is_statistical = is_statistical_reply(reply)

        logger.info(
            "Intent classified",
            is_statistical=is_statistical,
            reply=reply[:50],
            trace_id=trace_id,
        )

        return is_statistical

    def _topic(self) -> str:
        return self.domain_description or "the data held in the database"

    def _build_system_prompt(self, history_text: str) -> str:
        return (
            "You are an AI assistant that determines if a user's question requires "
            f"a statistics lookup about {self._topic()} or is just a conversational message.\n"
            "The user's question may be a short follow up question so you must use the "
            "context of the chat history to determine if the user's question is related "
            "to statistics.\n"
            f"You must only respond with '{STATISTICAL_LABEL}' or '{CONVERSATIONAL_LABEL}'.\n\n"
            f"Chat History: {history_text}"
        )

    def _build_user_prompt(self, user_query: str) -> str:
        return (
            f"Classify this message: '{user_query}'. Is this asking about statistics, "
            f"records or results covered by {self._topic()} "
            f"(respond with {STATISTICAL_LABEL}) or is it just a greeting or general "
            "conversation not related to data lookup "
            f"(respond with {CONVERSATIONAL_LABEL})?"
        )
