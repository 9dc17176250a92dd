"""
Main FastAPI application for the statquery system.

This module sets up the FastAPI application with proper logging,
tracing, and error handling middleware, and exposes the two pipeline
operations (intent classification and statistical query answering).
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Union

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .utils.logging import configure_logging, get_module_logger
from .utils.tracing import get_trace_id
from .utils.yaml_loader import load_catalog
from .domain.base_enums import Intent, QueryStatus
from .domain.requests import QueryRequest
from .domain.responses import (
    AttemptSummary,
    CatalogResponse,
    HealthResponse,
    IntentResponse,
    StatisticalQueryResponse,
)
from .api.middleware import (
    trace_id_middleware,
    logging_middleware,
    register_exception_handlers,
    ERROR_RESPONSES,
)
from .api.dependencies import (
    SettingsDep,
    CatalogDep,
    IntentClassifierDep,
    NL2SQLServiceDep,
    OptionalDatabaseClientDep,
    OptionalLLMClientDep,
    OptionalEmbeddingClientDep,
)
from .config import get_settings
from .infrastructure.database_client import DatabaseClient
from .infrastructure.llm_client import LLMClient
from .infrastructure.embedding_client import EmbeddingClient
from .repositories.table_selection import TableEmbeddingCache
from .services.nl2sql_service import classify_intent as classify_message


APP_VERSION = "0.1.0"

logger = get_module_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Load settings once at startup
    settings = get_settings()
    configure_logging(settings.app.log_level, settings.app.json_logs)
    app.state.settings = settings

    logger.info("Starting statquery API server", version=APP_VERSION)

    # Catalog errors are fatal: there is nothing to query without it
    app.state.catalog = load_catalog(settings.catalog, base_dir=Path.cwd())
    app.state.embedding_cache = TableEmbeddingCache(settings.nl2sql.embedding_cache_size)

    # Initialize database client
    db_client = DatabaseClient(settings.database)
    try:
        await db_client.connect()
        logger.info("Database client connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect database client: {e}")
        # Continue without database - health check will report status

    # Initialize LLM client
    llm_client = LLMClient(settings.llm)
    try:
        await llm_client.connect()
        logger.info("LLM client connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect LLM client: {e}")
        # Continue without LLM - health check will report status

    # Embedding client is optional; without it table selection returns every table
    embedding_client = None
    if settings.embedding.enabled:
        embedding_client = EmbeddingClient(settings.embedding)
        try:
            await embedding_client.connect()
            logger.info("Embedding client connected successfully")
        except Exception as e:
            logger.error(f"Failed to connect embedding client: {e}")
    else:
        logger.info("Embedding API key not set, table gating disabled")

    # Store clients in app state for dependency injection
    app.state.db_client = db_client
    app.state.llm_client = llm_client
    app.state.embedding_client = embedding_client

    yield

    # Shutdown
    logger.info("Shutting down statquery API server")

    await db_client.close()
    await llm_client.close()
    if embedding_client is not None:
        await embedding_client.close()

    logger.info("All clients closed")


# Create FastAPI application
app = FastAPI(
    title="statquery API",
    description="Answers natural-language statistics questions with SQL against a declared schema catalog",
    version=APP_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register middleware in correct order (last registered = first executed)
app.middleware("http")(logging_middleware)
app.middleware("http")(trace_id_middleware)

# Register all exception handlers (NL2SQLException, RequestValidationError, HTTPException, etc.)
register_exception_handlers(app)


# API Routes
@app.get("/", tags=["Root"])
async def root(settings: SettingsDep) -> Dict[str, Union[str, None]]:
    """
    Root endpoint returning basic API information.

    **Response**: Dict with message, version, trace_id, log_level
    """
    trace_id = get_trace_id()
    logger.info("Root endpoint accessed", trace_id=trace_id)

    return {
        "message": "statquery API",
        "version": APP_VERSION,
        "trace_id": trace_id,
        "log_level": settings.app.log_level
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health(
    db_client: OptionalDatabaseClientDep,
    llm_client: OptionalLLMClientDep,
    embedding_client: OptionalEmbeddingClientDep,
) -> HealthResponse:
    """
    Health check endpoint with system status.

    **Response Model**: `HealthResponse`
    - status: healthy when database and LLM are up (embeddings are optional)
    - database_status, llm_service_status, embedding_service_status
    """
    trace_id = get_trace_id()
    logger.info("Health check endpoint accessed", trace_id=trace_id)

    database_status = "not_configured"
    if db_client:
        db_health = await db_client.health_check()
        database_status = db_health.get("status", "unknown")

    llm_status = "not_configured"
    if llm_client:
        llm_status = "healthy" if llm_client.is_connected() else "unhealthy"

    embedding_status = "not_configured"
    if embedding_client:
        embedding_status = "healthy" if embedding_client.is_connected() else "unhealthy"

    overall_status = "healthy" if (
        database_status == "healthy" and
        llm_status == "healthy" and
        embedding_status in ("healthy", "not_configured")
    ) else "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=APP_VERSION,
        database_status=database_status,
        llm_service_status=llm_status,
        embedding_service_status=embedding_status
    )


@app.get("/api/v1/schema/catalog", response_model=CatalogResponse, tags=["Schema"])
async def schema_catalog(catalog: CatalogDep) -> CatalogResponse:
    """
    Return the declared schema catalog.

    **Response Model**: `CatalogResponse`
    - description, schemas, table_count
    """
    trace_id = get_trace_id()

    return CatalogResponse(
        trace_id=trace_id,
        description=catalog.description,
        schemas=catalog.schemas,
        table_count=len(catalog.all_tables()),
    )


@app.post(
    "/api/v1/classify-intent",
    response_model=IntentResponse,
    tags=["NL2SQL"],
    responses={k: v for k, v in ERROR_RESPONSES.items() if k in [422, 503]},
)
async def classify_intent(
    request: QueryRequest,
    intent_classifier: IntentClassifierDep,
) -> IntentResponse:
    """
    Classify the latest user message as statistical or conversational.

    **Request Model**: `QueryRequest`
    - query: Latest user message (required, non-empty)
    - messages: Conversation history, oldest first

    **Response Model**: `IntentResponse`
    - is_statistical: True if the message needs a database lookup

    **Possible Errors**:
    - 422: Empty query
    - 503: LLM unavailable
    """
    trace_id = get_trace_id()

    is_statistical = await classify_message(intent_classifier, request.messages, request.query)

    return IntentResponse(
        trace_id=trace_id,
        is_statistical=is_statistical,
        intent=Intent.STATISTICAL if is_statistical else Intent.CONVERSATIONAL,
    )


@app.post(
    "/api/v1/query",
    response_model=StatisticalQueryResponse,
    tags=["NL2SQL"],
    responses={k: v for k, v in ERROR_RESPONSES.items() if k in [422, 500, 503]},
)
async def statistical_query(
    request: QueryRequest,
    nl2sql_service: NL2SQLServiceDep,
) -> StatisticalQueryResponse:
    """
    Answer a statistical question with rows from the database.

    Pipeline:
    1. **Rewrite**: resolve follow-ups using the conversation history
    2. **Table selection**: embedding similarity over the declared tables
    3. **Reflection**: JSON description of the selected tables
    4. **Generation**: single-line SQL from the LLM
    5. **Validation**: static read-only checks
    6. **Execution**: read-only transaction with statement timeout

    Steps 4-6 are retried with the previous error as feedback, up to
    nl2sql.max_attempts times.

    **Possible Errors**:
    - 422: Empty query
    - 500: Every attempt failed; message is the last database error
    - 503: LLM or database unavailable
    """
    trace_id = get_trace_id()
    start_time = datetime.now(timezone.utc)

    logger.info(
        "Statistical query requested",
        query_length=len(request.query),
        history_turns=len(request.messages),
        trace_id=trace_id,
    )

    answer = await nl2sql_service.answer_statistical_query(request.messages, request.query)

    total_time_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

    logger.info(
        "Statistical query completed",
        row_count=len(answer.rows),
        attempts=answer.attempt_count,
        total_time_ms=round(total_time_ms, 2),
        trace_id=trace_id,
    )

    return StatisticalQueryResponse(
        trace_id=trace_id,
        status=QueryStatus.COMPLETED,
        query=request.query,
        rewritten_query=answer.rewritten_query,
        selected_tables=answer.selected_tables,
        sql=answer.sql,
        rows=answer.rows,
        row_count=len(answer.rows),
        attempts=[AttemptSummary.from_record(a) for a in answer.attempts],
        total_time_ms=total_time_ms,
    )
