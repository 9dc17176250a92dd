"""
Pipeline state models for the statquery system.

These models represent the values that flow between the pipeline stages
of a single request. None of them outlive the request except cached
TableEmbedding vectors.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .catalog import SchemaCatalog, SelectedTable
from .types import Rows, Vector


@dataclass(frozen=True)
class TableEmbedding:
    """Embedding of one declared table's description text."""

    schema_name: str
    table_name: str
    description_text: str
    vector: Vector


@dataclass(frozen=True)
class GeneratedSql:
    """One candidate statement. Superseded by the next attempt, never mutated."""

    statement: str
    attempt: int


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Result of executing one statement.

    Exactly one of rows / error_message is meaningful, selected by succeeded.
    """

    succeeded: bool
    rows: Rows = field(default_factory=list)
    error_message: Optional[str] = None

    @classmethod
    def success(cls, rows: Rows) -> "ExecutionOutcome":
        return cls(succeeded=True, rows=rows)

    @classmethod
    def failure(cls, error_message: str) -> "ExecutionOutcome":
        return cls(succeeded=False, error_message=error_message)


@dataclass(frozen=True)
class AttemptRecord:
    """Audit entry for one generation + execution cycle."""

    attempt: int
    sql: Optional[str]
    succeeded: bool
    error_message: Optional[str] = None
    failed_step: Optional[str] = None


@dataclass
class PipelineState:
    """
    Mutable state passed through the statistical answer pipeline.

    Tracks intermediate results as the query flows through rewrite,
    selection, reflection, and the generate/execute loop.
    """

    # Input
    user_query: str
    history_text: str

    # Rewrite + selection
    rewritten_query: Optional[str] = None
    selected_tables: List[SelectedTable] = field(default_factory=list)
    filtered_catalog: Optional[SchemaCatalog] = None
    schema_json: Optional[str] = None

    # Generate/execute loop
    attempts: List[AttemptRecord] = field(default_factory=list)
    last_sql: Optional[GeneratedSql] = None
    last_error: Optional[str] = None
    rows: Optional[Rows] = None


@dataclass(frozen=True)
class StatisticalAnswer:
    """Successful outcome of answering a statistical question."""

    rows: Rows
    sql: str
    rewritten_query: str
    selected_tables: List[SelectedTable]
    attempts: List[AttemptRecord]

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)
