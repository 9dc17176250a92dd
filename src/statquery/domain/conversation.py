"""
Conversation models shared by the classifier, the rewriter and the LLM client.
"""

from typing import List, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .base_enums import ChatRole, Sender


class ConversationTurn(BaseModel):
    """One turn of the caller-owned conversation history. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    sender: Sender = Field(..., description="Who produced the turn")
    text: str = Field(..., description="Turn text")


class ChatMessage(BaseModel):
    """A single message sent to the chat completion capability."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole = Field(..., description="Message role")
    text: str = Field(..., description="Message content")

    @classmethod
    def system(cls, text: str) -> "ChatMessage":
        return cls(role=ChatRole.SYSTEM, text=text)

    @classmethod
    def user(cls, text: str) -> "ChatMessage":
        return cls(role=ChatRole.USER, text=text)


ConversationHistory = List[ConversationTurn]


def serialize_history(history: Sequence[ConversationTurn]) -> str:
    """
    Render the history as prompt text, one "User: ..." / "Assistant: ..." line per turn.

    Example:
        >>> serialize_history([ConversationTurn(sender="user", text="Hi")])
        'User: Hi'
    """
    lines = []
    for turn in history:
        speaker = "User" if turn.sender == Sender.USER else "Assistant"
        lines.append(f"{speaker}: {turn.text}")
    return "\n".join(lines)
