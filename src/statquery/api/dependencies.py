"""
FastAPI dependencies for dependency injection.

This module provides reusable dependencies that can be injected into
API route handlers following proper layered architecture:
- Services (NL2SQLService, the intent classifier) for business logic
- Settings for configuration
- Optional client dependencies for health checks only

Routes should depend on services, not infrastructure clients directly.
Long-lived objects (clients, the catalog, the table embedding cache) live
on app.state and are created by the lifespan in main.py.
"""

from typing import Annotated

from fastapi import Depends, Request

from ..infrastructure.database_client import DatabaseClient
from ..infrastructure.llm_client import LLMClient
from ..infrastructure.embedding_client import EmbeddingClient
from ..domain.catalog import SchemaCatalog
from ..domain.errors import ServiceUnavailableError
from ..repositories.schema_repository import SchemaRepository
from ..repositories.intent_classification import IntentClassificationRepository
from ..repositories.query_rewrite import QueryRewriteRepository
from ..repositories.table_selection import TableSelectionRepository
from ..repositories.sql_generation import SQLGenerationRepository
from ..repositories.sql_validation import SQLValidationRepository
from ..repositories.sql_execution import SQLExecutionRepository
from ..services.schema_service import SchemaService
from ..services.nl2sql_service import NL2SQLService
from ..config import Settings


def get_settings(request: Request) -> Settings:
    """
    Dependency to get the settings from app state.

    Usage in routes:
        @app.get("/config")
        async def get_config(settings: SettingsDep):
            return {"log_level": settings.app.log_level}

    Raises:
        RuntimeError: If settings are not initialized
    """
    if not hasattr(request.app.state, "settings"):
        raise RuntimeError("Settings not initialized")

    return request.app.state.settings


def get_catalog(request: Request) -> SchemaCatalog:
    """Dependency to get the declared schema catalog loaded at startup."""
    if not hasattr(request.app.state, "catalog"):
        raise RuntimeError("Schema catalog not initialized")

    return request.app.state.catalog


# Optional dependency getters for health checks and endpoints that need graceful degradation
def get_db_client_optional(request: Request) -> DatabaseClient | None:
    """Get database client if available, None otherwise."""
    return getattr(request.app.state, "db_client", None)


def get_llm_client_optional(request: Request) -> LLMClient | None:
    """Get LLM client if available, None otherwise."""
    return getattr(request.app.state, "llm_client", None)


def get_embedding_client_optional(request: Request) -> EmbeddingClient | None:
    """Get embedding client if available, None otherwise."""
    return getattr(request.app.state, "embedding_client", None)


def _require_db_client(request: Request) -> DatabaseClient:
    db_client = get_db_client_optional(request)
    if db_client is None or not db_client.is_connected():
        raise ServiceUnavailableError("Database client not connected")
    return db_client


def _require_llm_client(request: Request) -> LLMClient:
    llm_client = get_llm_client_optional(request)
    if llm_client is None or not llm_client.is_connected():
        raise ServiceUnavailableError("LLM client not connected")
    return llm_client


def get_intent_classification_repository(request: Request) -> IntentClassificationRepository:
    """
    Dependency to get the intent classifier.

    Only the LLM client is required, so classification keeps working while
    the database is unavailable.

    Raises:
        ServiceUnavailableError: If the LLM client is not connected
    """
    llm_client = _require_llm_client(request)
    return IntentClassificationRepository(llm_client, get_catalog(request).description)


def get_nl2sql_service(request: Request) -> NL2SQLService:
    """
    Dependency to get an NL2SQLService instance.

    This creates an NL2SQLService with full repository tree:
    NL2SQLService (orchestrator)
      ├── IntentClassificationRepository (LLM)
      ├── QueryRewriteRepository (LLM)
      ├── TableSelectionRepository (embeddings + shared cache)
      ├── SchemaService (reflection)
      ├── SQLGenerationRepository (LLM)
      ├── SQLValidationRepository (static checks)
      └── SQLExecutionRepository (read-only execution)

    The embedding client is optional: without it, table selection returns
    every declared table.

    Raises:
        ServiceUnavailableError: If the database or LLM client is not connected
    """
    settings = get_settings(request)
    catalog = get_catalog(request)
    db_client = _require_db_client(request)
    llm_client = _require_llm_client(request)
    embedding_client = get_embedding_client_optional(request)

    schema_repo = SchemaRepository(db_client)
    schema_service = SchemaService(schema_repository=schema_repo, catalog=catalog)

    table_selection_repo = TableSelectionRepository(
        embedding_client=embedding_client,
        schema_repository=schema_repo,
        config=settings.nl2sql,
        cache=getattr(request.app.state, "embedding_cache", None),
    )

    return NL2SQLService(
        intent_repository=IntentClassificationRepository(llm_client, catalog.description),
        rewrite_repository=QueryRewriteRepository(llm_client),
        table_selection_repository=table_selection_repo,
        schema_service=schema_service,
        sql_generation_repository=SQLGenerationRepository(llm_client),
        sql_validation_repository=SQLValidationRepository(),
        sql_execution_repository=SQLExecutionRepository(db_client),
        catalog=catalog,
        config=settings.nl2sql,
    )


# Type aliases for cleaner dependency injection
# Service dependencies (used in API routes)
IntentClassifierDep = Annotated[IntentClassificationRepository, Depends(get_intent_classification_repository)]
NL2SQLServiceDep = Annotated[NL2SQLService, Depends(get_nl2sql_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
CatalogDep = Annotated[SchemaCatalog, Depends(get_catalog)]

# Optional client dependencies (used in health checks)
OptionalDatabaseClientDep = Annotated[DatabaseClient | None, Depends(get_db_client_optional)]
OptionalLLMClientDep = Annotated[LLMClient | None, Depends(get_llm_client_optional)]
OptionalEmbeddingClientDep = Annotated[EmbeddingClient | None, Depends(get_embedding_client_optional)]
