"""Unit tests for IntentClassificationRepository."""

import pytest

from statquery.domain.errors import ClassificationError, LLMError
from statquery.repositories.intent_classification import (
    IntentClassificationRepository,
    is_statistical_reply,
)

from stubs import StubLLMClient


@pytest.mark.parametrize("reply, expected", [
    ("STATISTICAL", True),
    ("statistical", True),
    ("The answer is: Statistical.", True),
    ("CONVERSATIONAL", False),
    ("", False),
    ("I am not sure", False),
])
def test_reply_parsing(reply, expected):
    assert is_statistical_reply(reply) is expected


async def test_greeting_with_empty_history():
    llm = StubLLMClient(["CONVERSATIONAL"])
    repo = IntentClassificationRepository(llm, "Formula One racing statistics")

    assert await repo.classify("", "Hello") is False

    system, user = llm.calls[0]
    assert system.role == "system"
    assert "Formula One racing statistics" in system.text
    assert "'STATISTICAL' or 'CONVERSATIONAL'" in system.text
    assert user.role == "user"
    assert "'Hello'" in user.text


async def test_classification_is_idempotent():
    llm = StubLLMClient(responder=lambda messages: "STATISTICAL")
    repo = IntentClassificationRepository(llm)
    history = "User: Who won the most races in 2023?\nAssistant: Max Verstappen"

    results = [await repo.classify(history, "How many points did he score?") for _ in range(3)]

    assert results == [True, True, True]
    assert llm.calls[0] == llm.calls[1] == llm.calls[2]


async def test_history_included_in_system_prompt():
    llm = StubLLMClient(["STATISTICAL"])
    repo = IntentClassificationRepository(llm)

    await repo.classify("User: Who won in 2021?\nAssistant: Max Verstappen", "and 2022?")

    assert "Chat History: User: Who won in 2021?\nAssistant: Max Verstappen" in llm.calls[0][0].text


async def test_default_topic_without_description():
    llm = StubLLMClient(["CONVERSATIONAL"])
    repo = IntentClassificationRepository(llm)

    await repo.classify("", "Thanks!")

    assert "the data held in the database" in llm.calls[0][0].text


async def test_llm_failure_wrapped():
    llm = StubLLMClient([LLMError("LLM request failed: 429", details={"model": "gpt-4o-mini"})])
    repo = IntentClassificationRepository(llm)

    with pytest.raises(ClassificationError) as exc_info:
        await repo.classify("", "Who won in 2021?")

    assert "429" in exc_info.value.message
    assert exc_info.value.details == {"model": "gpt-4o-mini"}
    assert exc_info.value.http_status == 503
