"""
Integration tests for LLMClient connection and functionality.

This module verifies connectivity to the configured OpenAI-compatible
endpoint and the prompts of the LLM-backed repositories.

Usage:
    RUN_INTEGRATION=1 pytest tests/integration/test_llm_connection.py -v -s
"""

import pytest

from statquery.config import get_settings
from statquery.domain.conversation import ChatMessage
from statquery.infrastructure.llm_client import LLMClient
from statquery.repositories.intent_classification import IntentClassificationRepository
from statquery.repositories.query_rewrite import QueryRewriteRepository


@pytest.fixture
def llm_config():
    """Get LLM configuration from settings."""
    settings = get_settings()
    return settings.llm


@pytest.fixture
async def llm_client(llm_config):
    """Create and connect LLM client."""
    client = LLMClient(llm_config)
    await client.connect()
    yield client
    if client.is_connected():
        await client.close()


@pytest.mark.integration
class TestLLMConnection:
    """Integration tests for LLM client connectivity."""

    async def test_basic_connection(self, llm_config):
        client = LLMClient(llm_config)

        await client.connect()
        assert client.is_connected()

        await client.close()
        assert not client.is_connected()

    async def test_complete_chat(self, llm_client):
        reply = await llm_client.complete_chat([
            ChatMessage.system("Answer with a single word."),
            ChatMessage.user("What is the capital of France?"),
        ])
        assert "paris" in reply.lower()

    async def test_greeting_is_conversational(self, llm_client):
        repo = IntentClassificationRepository(llm_client, "Formula One racing statistics")
        assert await repo.classify("", "Hello") is False

    async def test_follow_up_is_statistical(self, llm_client):
        repo = IntentClassificationRepository(llm_client, "Formula One racing statistics")
        history = "User: Who won the most races in 2023?\nAssistant: Max Verstappen"
        assert await repo.classify(history, "How many points did he score?") is True

    async def test_rewrite_resolves_pronoun(self, llm_client):
        repo = QueryRewriteRepository(llm_client)
        history = "User: Who won the most races in 2023?\nAssistant: Max Verstappen"

        rewritten = await repo.rewrite(history, "How many points did he score?")

        assert "Verstappen" in rewritten
