"""
Custom exception hierarchy for the statquery system.

This module defines a comprehensive exception hierarchy with:
- Consistent error codes for API responses
- HTTP status code mappings for FastAPI
- Detailed error messages for debugging

Exception Categories:
- 4xx Client Errors: ValidationError, EmptyQueryError
- 5xx Server Errors: DatabaseError, LLMError, EmbeddingError, ExhaustedRetryError, etc.

Pipeline failure policy:
- ClassificationError / RewriteError: fail fast, never retried
- EmbeddingError: never escapes table selection (degrades to all tables)
- SQLGenerationError, validation rejections and DatabaseQueryError are
  recovered by the execution loop, converted to ExhaustedRetryError after the last attempt

Usage:
    raise DatabaseConnectionError("Failed to connect to database")
    raise EmptyQueryError("Query cannot be empty", details={"field": "query"})
"""

from typing import Any, Dict, List, Optional


class NL2SQLException(Exception):
    """
    Base exception for all statquery errors.

    All custom exceptions inherit from this class, providing:
    - error_code: Machine-readable error identifier
    - http_status: Suggested HTTP status code for API responses
    - details: Optional structured data for debugging

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code (e.g., "DATABASE_CONNECTION_ERROR")
        http_status: HTTP status code to return (default: 500)
        details: Optional dictionary with additional error context
    """

    error_code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        if http_status:
            self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Client Errors (4xx)
# =============================================================================


class ValidationError(NL2SQLException):
    """
    Raised when input validation fails.

    HTTP Status: 422 Unprocessable Entity
    """

    error_code = "VALIDATION_ERROR"
    http_status = 422


class EmptyQueryError(ValidationError):
    """
    Raised when the user query is empty or whitespace only.

    Checked before intent classification; the classifier never sees it.
    """

    error_code = "EMPTY_QUERY"
    http_status = 422


# =============================================================================
# Configuration Errors (5xx)
# =============================================================================


class ConfigurationError(NL2SQLException):
    """
    Raised when configuration is invalid or missing.

    HTTP Status: 500 Internal Server Error

    Examples:
        - Catalog YAML file missing or malformed
        - Duplicate table declarations
    """

    error_code = "CONFIGURATION_ERROR"
    http_status = 500


# =============================================================================
# Database Errors (5xx)
# =============================================================================


class DatabaseError(NL2SQLException):
    """
    Base class for database-related errors.

    HTTP Status: 503 Service Unavailable
    """

    error_code = "DATABASE_ERROR"
    http_status = 503


class DatabaseConnectionError(DatabaseError):
    """
    Raised when database connection fails.

    HTTP Status: 503 Service Unavailable
    """

    error_code = "DATABASE_CONNECTION_ERROR"
    http_status = 503


class DatabaseQueryError(DatabaseError):
    """
    Raised when database query execution fails.

    HTTP Status: 500 Internal Server Error

    Examples:
        - SQL syntax error
        - Table/column not found
        - Statement timeout
    """

    error_code = "DATABASE_QUERY_ERROR"
    http_status = 500


# =============================================================================
# Schema Errors (5xx)
# =============================================================================


class SchemaError(NL2SQLException):
    """
    Raised when schema reflection fails.

    HTTP Status: 500 Internal Server Error
    """

    error_code = "SCHEMA_ERROR"
    http_status = 500


# =============================================================================
# LLM Errors (5xx)
# =============================================================================


class LLMError(NL2SQLException):
    """
    Raised when LLM operations fail.

    HTTP Status: 503 Service Unavailable

    Examples:
        - LLM API unreachable
        - Empty completion
        - Context length exceeded
    """

    error_code = "LLM_ERROR"
    http_status = 503


class ClassificationError(LLMError):
    """Raised when the intent classification call fails. Not retried."""

    error_code = "CLASSIFICATION_ERROR"


class RewriteError(LLMError):
    """Raised when the query rewrite call fails. Not retried."""

    error_code = "REWRITE_ERROR"


class SQLGenerationError(LLMError):
    """
    Raised when the SQL generation call itself fails.

    Distinct from "the SQL does not run"; still consumes one attempt of the
    execution loop.
    """

    error_code = "SQL_GENERATION_ERROR"


class EmbeddingError(NL2SQLException):
    """
    Raised when embedding operations fail.

    HTTP Status: 503 Service Unavailable

    Examples:
        - Embedding API failure
        - Dimension mismatch
    """

    error_code = "EMBEDDING_ERROR"
    http_status = 503


# =============================================================================
# SQL Errors (5xx)
# =============================================================================


class ExhaustedRetryError(NL2SQLException):
    """
    Raised when every generation + execution attempt failed.

    HTTP Status: 500 Internal Server Error

    The message is the final attempt's error, verbatim.
    """

    error_code = "EXHAUSTED_RETRIES"
    http_status = 500

    def __init__(
        self,
        message: str,
        attempts: Optional[List[Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.attempts = attempts or []
        merged_details = {"attempts": len(self.attempts)}
        merged_details.update(details or {})
        super().__init__(message, details=merged_details)


# =============================================================================
# Service Unavailable (5xx)
# =============================================================================


class ServiceUnavailableError(NL2SQLException):
    """
    Raised when a required service is not available.

    HTTP Status: 503 Service Unavailable

    Examples:
        - Database client not connected
        - LLM client not initialized
    """

    error_code = "SERVICE_UNAVAILABLE"
    http_status = 503
