from enum import Enum


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Intent(str, Enum):
    STATISTICAL = "statistical"
    CONVERSATIONAL = "conversational"


class QueryStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineStepName(str, Enum):
    """Pipeline step names for the NL2SQL processing pipeline."""
    INTENT_CLASSIFICATION = "intent_classification"
    QUERY_REWRITE = "query_rewrite"
    TABLE_SELECTION = "table_selection"
    SCHEMA_REFLECTION = "schema_reflection"
    SQL_GENERATION = "sql_generation"
    SQL_VALIDATION = "sql_validation"
    SQL_EXECUTION = "sql_execution"
