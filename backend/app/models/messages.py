"""Chat, message and vote domain models.

Stored messages carry structured content parts; UI messages are the flattened
display form produced by the reconciliation layer.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from backend.app.models.common import Role, Visibility
from backend.app.models.documents import CamelModel


class TextPart(CamelModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallPart(CamelModel):
    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(CamelModel):
    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    result: Any = None


class ReasoningPart(CamelModel):
    type: Literal["reasoning"] = "reasoning"
    reasoning: str


MessagePart = Annotated[
    TextPart | ToolCallPart | ToolResultPart | ReasoningPart,
    Field(discriminator="type"),
]


class Message(CamelModel):
    """Message in storage form.

    Content is either a plain string (user input) or an ordered list of parts.
    """

    id: UUID
    chat_id: UUID
    role: Role
    content: str | list[MessagePart]
    created_at: datetime


class ResponseMessage(CamelModel):
    """Assistant or tool message produced during a chat turn, before storage."""

    id: UUID
    role: Literal["assistant", "tool"]
    content: str | list[MessagePart]


class ToolInvocation(CamelModel):
    """Model-initiated function call and, once available, its result."""

    state: Literal["call", "result"]
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: Any = None

    @model_validator(mode="after")
    def _result_state_carries_payload(self) -> "ToolInvocation":
        if self.state == "result" and "result" not in self.model_fields_set:
            raise ValueError("a tool invocation in 'result' state must carry its result")
        return self


class UIMessage(CamelModel):
    """Message in display form."""

    id: UUID
    role: Role
    content: str = ""
    reasoning: str | None = None
    tool_invocations: list[ToolInvocation] = Field(default_factory=list)


class Chat(CamelModel):
    id: UUID
    created_at: datetime
    title: str
    user_id: UUID
    visibility: Visibility = Visibility.private


class Vote(CamelModel):
    """At most one vote per (chat_id, message_id)."""

    chat_id: UUID
    message_id: UUID
    is_upvoted: bool


class ChatRequestMessage(BaseModel):
    """Message as posted by the chat client."""

    id: UUID
    role: Role
    content: str
    created_at: datetime | None = Field(None, alias="createdAt")
