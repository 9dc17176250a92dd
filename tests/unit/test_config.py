import pytest
from pydantic import ValidationError

from statquery.config import EmbeddingConfig, NL2SQLConfig, Settings, get_settings
from statquery.config_constants import LogLevel


## test for import and loading settings
def test_get_settings():
    settings = get_settings()
    assert settings is not None
    assert settings.database.database_url
    assert settings.llm.temperature >= 0.0
    assert settings.app.log_level in LogLevel


## test for singleton
def test_get_settings_singleton():
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2


def test_pipeline_defaults():
    config = NL2SQLConfig()
    assert config.max_attempts == 3
    assert config.similarity_threshold == pytest.approx(0.20)
    assert config.max_selected_tables == 2
    assert config.query_timeout_seconds == 30
    assert config.validate_sql is True


def test_max_attempts_must_be_positive():
    with pytest.raises(ValidationError):
        NL2SQLConfig(max_attempts=0)


@pytest.mark.parametrize("threshold", [1.5, -1.01])
def test_similarity_threshold_must_be_a_cosine(threshold):
    with pytest.raises(ValidationError):
        NL2SQLConfig(similarity_threshold=threshold)


def test_negative_similarity_threshold_allowed():
    assert NL2SQLConfig(similarity_threshold=-0.5).similarity_threshold == pytest.approx(-0.5)


def test_embedding_disabled_without_key():
    assert EmbeddingConfig().enabled is False
    assert EmbeddingConfig(api_key="sk-test").enabled is True


def test_nested_env_variables(monkeypatch):
    monkeypatch.setenv("NL2SQL__MAX_SELECTED_TABLES", "4")
    monkeypatch.setenv("CATALOG__SCHEMAS", '[{"schema_name": "f1", "tables": ["Drivers"]}]')

    settings = Settings()  # type: ignore[call-arg]

    assert settings.nl2sql.max_selected_tables == 4
    assert settings.catalog.schemas[0].schema_name == "f1"
    assert settings.catalog.schemas[0].tables == ["Drivers"]
