"""
API request models for the statquery system.

These models define the structure for all incoming API requests,
ensuring type safety and validation at API boundaries.

All fields include detailed descriptions that appear in Swagger/OpenAPI documentation.
"""

from pydantic import BaseModel, Field
from typing import List

from .conversation import ConversationTurn


class QueryRequest(BaseModel):
    """
    Request model for intent classification and statistical queries.

    The same body is posted to both endpoints: the caller first asks whether
    the query needs a lookup, then asks for the rows.
    """

    query: str = Field(
        ...,
        description="Latest natural language input from the user. "
                    "Example: 'How many points did he score?'",
        max_length=2000,
        json_schema_extra={"example": "How many points did he score?"}
    )
    messages: List[ConversationTurn] = Field(
        default_factory=list,
        description="Conversation so far, oldest first. "
                    "Used to resolve pronouns and follow-up questions.",
        json_schema_extra={
            "example": [
                {"sender": "user", "text": "Who won the most races in 2023?"},
                {"sender": "assistant", "text": "Max Verstappen"},
            ]
        }
    )
