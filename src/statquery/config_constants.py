from enum import Enum


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

class OPENAI_LLM_MODELS(str, Enum):
    GPT_4O = "gpt-4o"
    GPT_4O_MINI = "gpt-4o-mini"
    GPT_41 = "gpt-4.1"
    GPT_41_MINI = "gpt-4.1-mini"

class OPENAI_EMBEDDING_MODELS(str, Enum):
    TEXT_EMBEDDING_3_SMALL = "text-embedding-3-small"
    TEXT_EMBEDDING_3_LARGE = "text-embedding-3-large"
    TEXT_EMBEDDING_ADA_002 = "text-embedding-ada-002"

OPENAI_API_URL = "https://api.openai.com/v1"

# -------------------------
# Pipeline Constants
# -------------------------

# Labels the intent classifier asks the LLM to answer with
STATISTICAL_LABEL = "STATISTICAL"
CONVERSATIONAL_LABEL = "CONVERSATIONAL"

# Keywords rejected by the pre-execution validation stage
FORBIDDEN_SQL_KEYWORDS = frozenset({
    "INSERT", "UPDATE", "DELETE", "DROP", "ALTER", "CREATE",
    "TRUNCATE", "GRANT", "REVOKE", "MERGE", "EXEC", "EXECUTE",
})
