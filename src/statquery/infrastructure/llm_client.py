"""
LLM client using LangChain.

This module provides an async chat completion client that uses LangChain's
ChatOpenAI against any OpenAI-compatible endpoint.
"""

from typing import List, Optional, Sequence
from langchain_openai import ChatOpenAI
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import SecretStr

from ..config import LLMConfig
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..utils.token_utils import InputValidator
from ..domain.base_enums import ChatRole
from ..domain.conversation import ChatMessage
from ..domain.errors import LLMError


logger = get_module_logger()


class LLMClient:
    """
    LLM client using LangChain's ChatOpenAI.

    This is a thin infrastructure layer providing the "complete chat given
    messages" capability. Prompt construction lives in the repositories.

    Features:
    - OpenAI-compatible API integration via LangChain
    - Configurable model, temperature, top_p, max_tokens
    - Structured logging with trace IDs
    - Transport-level retry handled by the SDK (max_retries)
    - Input size validation before the API call

    Usage:
        client = LLMClient(config)
        await client.connect()

        text = await client.complete_chat([
            ChatMessage.system("You are a helpful assistant."),
            ChatMessage.user("What is the capital of France?"),
        ])

        await client.close()
    """

    def __init__(self, config: LLMConfig):
        """
        Initialize LLM client with configuration.

        Args:
            config: LLM configuration
        """
        self.config = config
        self._llm: Optional[ChatOpenAI] = None
        self._is_connected = False

        logger.info(
            "LLMClient initialized",
            default_model=config.default_model,
            base_url=config.base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens
        )

    async def connect(self) -> None:
        """
        Initialize LangChain ChatOpenAI client.

        Note: This creates the client configuration but doesn't make any API calls.
        Validation happens on first actual use.

        Raises:
            LLMError: If initialization fails
        """
        if self._is_connected:
            logger.warning("LLM client already connected")
            return

        trace_id = current_trace_id()
        logger.info("Initializing LLM client", trace_id=trace_id)

        try:
            self._llm = ChatOpenAI(
                model=self.config.default_model,
                api_key=SecretStr(self.config.api_key),
                base_url=self.config.base_url,
                temperature=self.config.temperature,
                max_completion_tokens=self.config.max_tokens,
                top_p=self.config.top_p,
                timeout=self.config.timeout_seconds,
                max_retries=self.config.max_retries
            )

            self._is_connected = True
            logger.info("LLM client initialized successfully", trace_id=trace_id)

        except Exception as e:
            error_msg = f"Failed to initialize LLM client: {e}"
            logger.error(error_msg, error_type=type(e).__name__, trace_id=trace_id)
            raise LLMError(error_msg) from e

    async def close(self) -> None:
        """Close LLM client and release resources."""
        trace_id = current_trace_id()
        logger.info("Closing LLM client", trace_id=trace_id)

        # LangChain ChatOpenAI doesn't need explicit cleanup
        self._is_connected = False
        self._llm = None

        logger.info("LLM client closed", trace_id=trace_id)

    def is_connected(self) -> bool:
        """Check if LLM client is connected."""
        return self._is_connected and self._llm is not None

    @staticmethod
    def _to_langchain(messages: Sequence[ChatMessage]) -> List[BaseMessage]:
        converted: List[BaseMessage] = []
        for message in messages:
            if message.role == ChatRole.SYSTEM:
                converted.append(SystemMessage(content=message.text))
            elif message.role == ChatRole.ASSISTANT:
                converted.append(AIMessage(content=message.text))
            else:
                converted.append(HumanMessage(content=message.text))
        return converted

    async def complete_chat(
        self,
        messages: Sequence[ChatMessage],
        temperature: Optional[float] = None,
    ) -> str:
        """
        Complete a chat given an ordered list of messages.

        Args:
            messages: System/user/assistant messages, oldest first
            temperature: Optional temperature override

        Returns:
            Completion text

        Raises:
            LLMError: If the call fails, returns nothing, or the input is too large
        """
        if not self.is_connected():
            raise LLMError("LLM client is not connected")

        if not messages:
            raise LLMError("At least one message is required")

        try:
            InputValidator.validate_total_chars(
                [m.text for m in messages],
                max_chars=self.config.max_input_chars
            )
        except ValueError as e:
            raise LLMError(str(e)) from e

        trace_id = current_trace_id()

        logger.info(
            "Generating LLM response",
            message_count=len(messages),
            input_chars=sum(len(m.text) for m in messages),
            max_input_chars=self.config.max_input_chars,
            trace_id=trace_id
        )

        try:
            if not self._llm:
                raise LLMError("LLM client not initialized")

            llm = self._llm
            if temperature is not None:
                llm = llm.bind(temperature=temperature)

            response = await llm.ainvoke(self._to_langchain(messages))

            if not response or not response.content:
                raise LLMError("LLM returned empty response")

            content = str(response.content)

            logger.info(
                "LLM response generated successfully",
                response_length=len(content),
                trace_id=trace_id
            )

            return content

        except Exception as e:
            error_msg = f"LLM generation failed: {e}"
            logger.error(
                error_msg,
                error_type=type(e).__name__,
                message_count=len(messages),
                trace_id=trace_id
            )
            raise LLMError(error_msg) from e
