"""
Unit tests for NL2SQLService.

The LLM and database are stubbed; the repositories are the real ones, so
these tests cover prompt wiring as well as the retry loop.
"""

import pytest

from statquery.config import NL2SQLConfig
from statquery.domain.conversation import ConversationTurn
from statquery.domain.errors import (
    ClassificationError,
    DatabaseQueryError,
    EmptyQueryError,
    ExhaustedRetryError,
    LLMError,
    RewriteError,
)
from statquery.repositories.intent_classification import IntentClassificationRepository
from statquery.repositories.query_rewrite import QueryRewriteRepository
from statquery.repositories.sql_execution import SQLExecutionRepository
from statquery.repositories.sql_generation import SQLGenerationRepository
from statquery.repositories.sql_validation import SQLValidationRepository
from statquery.repositories.table_selection import TableSelectionRepository
from statquery.services.nl2sql_service import NL2SQLService, classify_intent
from statquery.services.schema_service import SchemaService

from stubs import StubDatabaseClient, StubEmbeddingClient, StubLLMClient


REWRITTEN = "How many drivers are there?"


def make_service(
    catalog,
    schema_repo,
    llm_replies,
    db_responder,
    embedding_client=None,
    **config_overrides,
):
    llm = StubLLMClient(llm_replies)
    db = StubDatabaseClient(db_responder)
    config = NL2SQLConfig(**config_overrides)
    service = NL2SQLService(
        intent_repository=IntentClassificationRepository(llm, catalog.description),
        rewrite_repository=QueryRewriteRepository(llm),
        table_selection_repository=TableSelectionRepository(embedding_client, schema_repo, config),
        schema_service=SchemaService(schema_repo, catalog),
        sql_generation_repository=SQLGenerationRepository(llm),
        sql_validation_repository=SQLValidationRepository(),
        sql_execution_repository=SQLExecutionRepository(db),
        catalog=catalog,
        config=config,
    )
    return service, llm, db


def failing_db(message):
    return lambda sql: DatabaseQueryError(message)


def system_prompt(call):
    return call[0].text


class TestClassifyIntent:
    """Tests for NL2SQLService.classify_intent."""

    async def test_greeting_is_conversational(self, f1_catalog, f1_schema_repo):
        service, llm, _ = make_service(f1_catalog, f1_schema_repo, ["CONVERSATIONAL"], failing_db("unused"))

        assert await service.classify_intent([], "Hello") is False
        assert len(llm.calls) == 1

    async def test_statistics_question_is_statistical(self, f1_catalog, f1_schema_repo):
        service, _, _ = make_service(f1_catalog, f1_schema_repo, ["STATISTICAL"], failing_db("unused"))

        assert await service.classify_intent([], "Who won the 2021 championship?") is True

    async def test_history_is_in_prompt(self, f1_catalog, f1_schema_repo):
        history = [
            ConversationTurn(sender="user", text="Who won the most races in 2023?"),
            ConversationTurn(sender="assistant", text="Max Verstappen"),
        ]
        service, llm, _ = make_service(f1_catalog, f1_schema_repo, ["STATISTICAL"], failing_db("unused"))

        await service.classify_intent(history, "and in 2022?")

        prompt = system_prompt(llm.calls[0])
        assert "User: Who won the most races in 2023?" in prompt
        assert "Assistant: Max Verstappen" in prompt

    @pytest.mark.parametrize("query", ["", "   ", "\n"])
    async def test_blank_query_rejected_before_llm(self, f1_catalog, f1_schema_repo, query):
        service, llm, _ = make_service(f1_catalog, f1_schema_repo, [], failing_db("unused"))

        with pytest.raises(EmptyQueryError):
            await service.classify_intent([], query)
        assert llm.calls == []

    async def test_llm_failure_raises_classification_error(self, f1_catalog, f1_schema_repo):
        service, _, _ = make_service(
            f1_catalog, f1_schema_repo, [LLMError("LLM request failed: timeout")], failing_db("unused")
        )

        with pytest.raises(ClassificationError, match="timeout"):
            await service.classify_intent([], "Who won in 2021?")

    async def test_classifies_with_only_the_intent_repository(self, f1_catalog):
        llm = StubLLMClient(["STATISTICAL"])
        repo = IntentClassificationRepository(llm, f1_catalog.description)

        assert await classify_intent(repo, [], "  How many drivers are there?  ") is True
        assert "How many drivers are there?" in llm.calls[0][-1].text


class TestAnswerStatisticalQuery:
    """Tests for the rewrite -> select -> reflect -> generate/execute pipeline."""

    async def test_first_attempt_success(self, f1_catalog, f1_schema_repo):
        rows = [{"count": 857}]
        service, llm, db = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, 'SELECT COUNT(*) AS "count" FROM "f1"."Drivers"'],
            lambda sql: rows,
        )

        answer = await service.answer_statistical_query([], "How many drivers are there?")

        assert answer.rows == rows
        assert answer.sql == 'SELECT COUNT(*) AS "count" FROM "f1"."Drivers"'
        assert answer.rewritten_query == REWRITTEN
        assert answer.attempt_count == 1
        assert answer.attempts[0].succeeded is True
        assert db.calls[0]["read_only"] is True
        assert db.calls[0]["timeout"] == 30

    async def test_without_embeddings_all_tables_reach_generator(self, f1_catalog, f1_schema_repo):
        service, llm, _ = make_service(
            f1_catalog, f1_schema_repo, [REWRITTEN, "SELECT 1"], lambda sql: [{"?column?": 1}]
        )

        answer = await service.answer_statistical_query([], "How many drivers are there?")

        assert [t.table_name for t in answer.selected_tables] == [
            "Drivers", "Races", "Results", "ConstructorChampionships"
        ]
        generation_prompt = system_prompt(llm.calls[1])
        for table in ("Drivers", "Races", "Results", "ConstructorChampionships"):
            assert f'"table_name":"{table}"' in generation_prompt

    async def test_gated_tables_restrict_schema_json(self, f1_catalog, f1_schema_repo):
        embeddings = StubEmbeddingClient(
            vectors={
                REWRITTEN: [1.0, 0.0, 0.0],
                "f1.Drivers: driverId, forename, surname, nationality": [1.0, 0.0, 0.0],
            },
            default=[0.0, 1.0, 0.0],
        )
        service, llm, _ = make_service(
            f1_catalog, f1_schema_repo, [REWRITTEN, "SELECT 1"], lambda sql: [],
            embedding_client=embeddings,
        )

        answer = await service.answer_statistical_query([], "How many drivers are there?")

        assert [t.qualified_name for t in answer.selected_tables] == ["f1.Drivers"]
        generation_prompt = system_prompt(llm.calls[1])
        assert '"table_name":"Drivers"' in generation_prompt
        assert '"table_name":"Races"' not in generation_prompt

    async def test_success_on_second_attempt_returns_second_rows(self, f1_catalog, f1_schema_repo):
        def responder(sql):
            if "surname" in sql:
                return [{"surname": "Hamilton"}]
            return DatabaseQueryError('column "lastname" does not exist')

        service, llm, _ = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, 'SELECT "lastname" FROM "Drivers"', 'SELECT "surname" FROM "Drivers"'],
            responder,
        )

        answer = await service.answer_statistical_query([], "List driver surnames")

        assert answer.rows == [{"surname": "Hamilton"}]
        assert answer.sql == 'SELECT "surname" FROM "Drivers"'
        assert [a.succeeded for a in answer.attempts] == [False, True]
        assert answer.attempts[0].failed_step == "sql_execution"

        retry_prompt = system_prompt(llm.calls[2])
        assert "IMPORTANT - FIX FAILED QUERY" in retry_prompt
        assert 'column "lastname" does not exist' in retry_prompt
        assert 'Failed SQL query: SELECT "lastname" FROM "Drivers"' in retry_prompt

    async def test_first_attempt_prompt_has_no_fix_block(self, f1_catalog, f1_schema_repo):
        service, llm, _ = make_service(f1_catalog, f1_schema_repo, [REWRITTEN, "SELECT 1"], lambda sql: [])

        await service.answer_statistical_query([], "How many drivers are there?")

        assert "FIX FAILED QUERY" not in system_prompt(llm.calls[1])
        assert llm.calls[1][1].text == f"User Prompt: '{REWRITTEN}'"

    async def test_exhaustion_reports_final_error(self, f1_catalog, f1_schema_repo):
        errors = iter(["error one", "error two", "error three"])
        service, llm, db = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, "SELECT a", "SELECT b", "SELECT c"],
            lambda sql: DatabaseQueryError(next(errors)),
        )

        with pytest.raises(ExhaustedRetryError) as exc_info:
            await service.answer_statistical_query([], "How many drivers are there?")

        assert exc_info.value.message == "error three"
        assert len(exc_info.value.attempts) == 3
        assert db.statements == ["SELECT a", "SELECT b", "SELECT c"]
        # rewrite + three generations, no fourth attempt
        assert len(llm.calls) == 4

    async def test_max_attempts_is_configurable(self, f1_catalog, f1_schema_repo):
        service, llm, db = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, "SELECT a"],
            failing_db("syntax error"),
            max_attempts=1,
        )

        with pytest.raises(ExhaustedRetryError, match="syntax error"):
            await service.answer_statistical_query([], "How many drivers are there?")
        assert len(db.statements) == 1

    async def test_trailing_explanation_fails_at_database_three_times(self, f1_catalog, f1_schema_repo):
        """Generator keeps appending prose; the database rejects it every time."""
        bad_sql = "SELECT * FROM Drivers This query lists drivers"
        errors = iter([
            'syntax error at or near "This" (attempt 1)',
            'syntax error at or near "This" (attempt 2)',
            'syntax error at or near "This" (attempt 3)',
        ])
        service, llm, _ = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, bad_sql, bad_sql, bad_sql],
            lambda sql: DatabaseQueryError(next(errors)),
        )

        with pytest.raises(ExhaustedRetryError) as exc_info:
            await service.answer_statistical_query([], "List all drivers")

        assert exc_info.value.message == 'syntax error at or near "This" (attempt 3)'
        assert 'syntax error at or near "This" (attempt 1)' in system_prompt(llm.calls[2])
        assert 'syntax error at or near "This" (attempt 2)' in system_prompt(llm.calls[3])

    async def test_multi_line_sql_rejected_before_execution(self, f1_catalog, f1_schema_repo):
        multi_line = "SELECT * FROM Drivers\nThis query lists drivers"
        service, llm, db = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, multi_line, 'SELECT * FROM "Drivers"'],
            lambda sql: [{"driverId": 1}],
        )

        answer = await service.answer_statistical_query([], "List all drivers")

        assert db.statements == ['SELECT * FROM "Drivers"']
        assert answer.attempts[0].failed_step == "sql_validation"
        retry_prompt = system_prompt(llm.calls[2])
        assert "single line" in retry_prompt

    async def test_multi_line_sql_reaches_database_when_validation_disabled(self, f1_catalog, f1_schema_repo):
        multi_line = "SELECT * FROM Drivers\nThis query lists drivers"
        service, _, db = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, multi_line, multi_line, multi_line],
            failing_db('syntax error at or near "This"'),
            validate_sql=False,
        )

        with pytest.raises(ExhaustedRetryError, match="syntax error"):
            await service.answer_statistical_query([], "List all drivers")
        assert db.statements == [multi_line] * 3

    async def test_generation_failure_consumes_attempt(self, f1_catalog, f1_schema_repo):
        service, llm, db = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, LLMError("rate limited"), "SELECT 1"],
            lambda sql: [{"?column?": 1}],
        )

        answer = await service.answer_statistical_query([], "How many drivers are there?")

        assert answer.attempt_count == 2
        assert answer.attempts[0].sql is None
        assert answer.attempts[0].failed_step == "sql_generation"
        # no statement existed, so the retry prompt has no fix block
        assert "FIX FAILED QUERY" not in system_prompt(llm.calls[2])

    async def test_generation_failures_exhaust_attempts(self, f1_catalog, f1_schema_repo):
        service, _, db = make_service(
            f1_catalog, f1_schema_repo,
            [REWRITTEN, LLMError("down"), LLMError("down"), LLMError("still down")],
            lambda sql: [],
        )

        with pytest.raises(ExhaustedRetryError, match="still down"):
            await service.answer_statistical_query([], "How many drivers are there?")
        assert db.statements == []

    async def test_rewrite_failure_is_not_retried(self, f1_catalog, f1_schema_repo):
        service, llm, db = make_service(
            f1_catalog, f1_schema_repo, [LLMError("timeout")], lambda sql: []
        )

        with pytest.raises(RewriteError):
            await service.answer_statistical_query([], "How many drivers are there?")
        assert len(llm.calls) == 1
        assert db.statements == []

    async def test_blank_query_rejected(self, f1_catalog, f1_schema_repo):
        service, llm, _ = make_service(f1_catalog, f1_schema_repo, [], lambda sql: [])

        with pytest.raises(EmptyQueryError):
            await service.answer_statistical_query([], "  ")
        assert llm.calls == []
