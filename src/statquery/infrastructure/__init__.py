"""
Infrastructure layer for external integrations.

This module contains the clients for the database, the chat completion
provider and the embedding provider.
"""

from .database_client import DatabaseClient
from .embedding_client import EmbeddingClient
from .llm_client import LLMClient

__all__ = ["DatabaseClient", "EmbeddingClient", "LLMClient"]
