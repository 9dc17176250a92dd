"""
Domain package for the statquery system.

This package contains all domain models, entities, and value objects
used throughout the application for type safety and validation.
"""

from .base_enums import (
    Sender,
    ChatRole,
    Intent,
    QueryStatus,
    PipelineStepName,
)
from .catalog import SchemaDescriptor, SchemaCatalog, SelectedTable
from .conversation import ConversationTurn, ChatMessage, serialize_history
from .schema_nodes import ColumnNode, RelationshipNode, TableNode, ReflectedSchema
from .pipeline import (
    TableEmbedding,
    GeneratedSql,
    ExecutionOutcome,
    AttemptRecord,
    PipelineState,
    StatisticalAnswer,
)
from .requests import QueryRequest
from .responses import (
    HealthResponse,
    ErrorResponse,
    ValidationStep,
    IntentResponse,
    AttemptSummary,
    StatisticalQueryResponse,
    CatalogResponse,
)

__all__ = [
    # Enums
    "Sender",
    "ChatRole",
    "Intent",
    "QueryStatus",
    "PipelineStepName",

    # Catalog
    "SchemaDescriptor",
    "SchemaCatalog",
    "SelectedTable",

    # Conversation
    "ConversationTurn",
    "ChatMessage",
    "serialize_history",

    # Reflection
    "ColumnNode",
    "RelationshipNode",
    "TableNode",
    "ReflectedSchema",

    # Pipeline
    "TableEmbedding",
    "GeneratedSql",
    "ExecutionOutcome",
    "AttemptRecord",
    "PipelineState",
    "StatisticalAnswer",

    # Requests
    "QueryRequest",

    # Responses
    "HealthResponse",
    "ErrorResponse",
    "ValidationStep",
    "IntentResponse",
    "AttemptSummary",
    "StatisticalQueryResponse",
    "CatalogResponse",
]
