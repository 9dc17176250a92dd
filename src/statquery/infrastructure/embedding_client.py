"""
Embedding client using LangChain.

This module provides an async embedding client that uses LangChain's
OpenAIEmbeddings for turning questions and table descriptions into vectors.
"""

from typing import List, Optional
from pydantic import SecretStr
from langchain_openai import OpenAIEmbeddings

from ..config import EmbeddingConfig
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from ..utils.token_utils import InputValidator
from ..domain.errors import EmbeddingError


logger = get_module_logger()


class EmbeddingClient:
    """
    Embedding client using LangChain's OpenAIEmbeddings.

    This is a thin infrastructure layer providing the "embed a text" capability.
    Similarity scoring and caching are implemented in the table selection
    repository.

    Features:
    - OpenAI-compatible API integration via LangChain
    - Configurable model and dimensions
    - Structured logging with trace IDs
    - Automatic retry on transient failures
    - Input size validation before the API call

    Usage:
        client = EmbeddingClient(config)
        await client.connect()

        vector = await client.embed_text("Who won the 2023 championship?")

        await client.close()
    """

    def __init__(self, config: EmbeddingConfig):
        """
        Initialize embedding client with configuration.

        Args:
            config: Embedding configuration
        """
        self.config = config
        self._embeddings: Optional[OpenAIEmbeddings] = None
        self._is_connected = False

        logger.info(
            "EmbeddingClient initialized",
            embedding_model=config.embedding_model,
            base_url=config.base_url,
            embedding_dimension=config.embedding_dimension
        )

    def _supports_dimensions(self) -> bool:
        # Only the text-embedding-3 family accepts a dimensions override
        return self.config.embedding_model.startswith("text-embedding-3")

    async def connect(self) -> None:
        """
        Initialize LangChain OpenAIEmbeddings client.

        Note: This creates the client configuration but doesn't make any API calls.
        Validation happens on first actual use.

        Raises:
            EmbeddingError: If initialization fails
        """
        if self._is_connected:
            logger.warning("Embedding client already connected")
            return

        trace_id = current_trace_id()
        logger.info("Initializing embedding client", trace_id=trace_id)

        try:
            self._embeddings = OpenAIEmbeddings(
                model=self.config.embedding_model,
                api_key=SecretStr(self.config.api_key),
                base_url=self.config.base_url,
                dimensions=self.config.embedding_dimension if self._supports_dimensions() else None,
                timeout=self.config.timeout_seconds,
                max_retries=self.config.max_retries
            )

            self._is_connected = True
            logger.info("Embedding client initialized successfully", trace_id=trace_id)

        except Exception as e:
            error_msg = f"Failed to initialize embedding client: {e}"
            logger.error(error_msg, error_type=type(e).__name__, trace_id=trace_id)
            raise EmbeddingError(error_msg) from e

    async def close(self) -> None:
        """Close embedding client and release resources."""
        trace_id = current_trace_id()
        logger.info("Closing embedding client", trace_id=trace_id)

        # LangChain OpenAIEmbeddings doesn't need explicit cleanup
        self._is_connected = False
        self._embeddings = None

        logger.info("Embedding client closed", trace_id=trace_id)

    def is_connected(self) -> bool:
        """Check if embedding client is connected."""
        return self._is_connected and self._embeddings is not None

    async def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding vector for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            EmbeddingError: If embedding generation fails or text exceeds the limit

        Example:
            vector = await client.embed_text("Table: Drivers (forename, surname)")
            print(f"Vector dimension: {len(vector)}")
        """
        if not self.is_connected():
            raise EmbeddingError("Embedding client is not connected")

        try:
            InputValidator.validate_char_limit(text, max_chars=self.config.max_input_chars)
        except ValueError as e:
            raise EmbeddingError(str(e)) from e

        trace_id = current_trace_id()

        logger.debug(
            "Generating embedding for text",
            text_length=len(text),
            trace_id=trace_id
        )

        try:
            if not self._embeddings:
                raise EmbeddingError("Embedding client not initialized")

            vector = await self._embeddings.aembed_query(text)

            if not vector:
                raise EmbeddingError("Embedding provider returned an empty vector")

            if self._supports_dimensions() and len(vector) != self.config.embedding_dimension:
                raise EmbeddingError(
                    f"Invalid embedding dimension: expected {self.config.embedding_dimension}, "
                    f"got {len(vector)}"
                )

            logger.debug(
                "Embedding generated successfully",
                dimension=len(vector),
                trace_id=trace_id
            )

            return vector

        except Exception as e:
            error_msg = f"Embedding generation failed: {e}"
            logger.error(
                error_msg,
                error_type=type(e).__name__,
                text_length=len(text),
                trace_id=trace_id
            )
            raise EmbeddingError(error_msg) from e
