"""
API response models for the statquery system.

These models define the structure for all outgoing API responses,
ensuring consistent response formats and type safety.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from .base_enums import Intent, QueryStatus
from .catalog import SchemaDescriptor, SelectedTable
from .pipeline import AttemptRecord


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Health status", examples=["healthy", "degraded", "unhealthy"])
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Application version")
    database_status: str = Field(..., description="Database connection status")
    llm_service_status: str = Field(..., description="LLM service status")
    embedding_service_status: str = Field(..., description="Embedding service status")


class ErrorResponse(BaseModel):
    """Response model for error responses."""

    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )
    trace_id: Optional[str] = Field(
        default=None,
        description="Trace ID for debugging"
    )
    timestamp: datetime = Field(..., description="Error timestamp")


class ValidationStep(BaseModel):
    """Result of the pre-execution SQL validation stage."""

    step_name: str = Field(..., description="Name of validation check")
    passed: bool = Field(..., description="Whether validation passed")
    message: Optional[str] = Field(None, description="Validation message or error")
    sql_attempted: Optional[str] = Field(None, description="SQL that was validated")


class IntentResponse(BaseModel):
    """Response model for the intent classification endpoint."""

    trace_id: str = Field(..., description="Unique trace ID for this request")
    is_statistical: bool = Field(..., description="True if the query needs a database lookup")
    intent: Intent = Field(..., description="Classified intent")


class AttemptSummary(BaseModel):
    """One generation + execution cycle, as reported to callers."""

    attempt: int = Field(..., description="Attempt number (1-based)")
    sql: Optional[str] = Field(None, description="SQL generated in this attempt")
    succeeded: bool = Field(..., description="Whether the attempt returned rows")
    error_message: Optional[str] = Field(None, description="Failure message")
    failed_step: Optional[str] = Field(None, description="Pipeline step that failed")

    @classmethod
    def from_record(cls, record: AttemptRecord) -> "AttemptSummary":
        return cls(
            attempt=record.attempt,
            sql=record.sql,
            succeeded=record.succeeded,
            error_message=record.error_message,
            failed_step=record.failed_step,
        )


class StatisticalQueryResponse(BaseModel):
    """Response model for the statistical query endpoint."""

    trace_id: str = Field(..., description="Unique trace ID for this request")
    status: QueryStatus = Field(..., description="Query execution status")
    query: str = Field(..., description="Original natural language query from user")
    rewritten_query: Optional[str] = Field(None, description="Self-contained query after context resolution")
    selected_tables: List[SelectedTable] = Field(
        default_factory=list,
        description="Tables chosen by embedding gating"
    )
    sql: Optional[str] = Field(None, description="Statement whose rows are returned")
    rows: List[Dict[str, Any]] = Field(default_factory=list, description="Result rows")
    row_count: int = Field(default=0, description="Number of rows returned")
    attempts: List[AttemptSummary] = Field(default_factory=list, description="Generation + execution cycles")
    error_message: Optional[str] = Field(None, description="Final error message if query failed")
    total_time_ms: float = Field(..., description="Total request processing time in milliseconds")


class CatalogResponse(BaseModel):
    """Response model for the declared schema catalog."""

    trace_id: str = Field(..., description="Unique trace ID for this request")
    description: str = Field(..., description="Free-text domain description")
    schemas: List[SchemaDescriptor] = Field(..., description="Declared schemas and tables")
    table_count: int = Field(..., description="Total declared tables")
