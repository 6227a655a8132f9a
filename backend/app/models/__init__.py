"""Models package - re-exports for convenience."""

from backend.app.models.common import ArtifactKind, Role, Visibility, VoteType
from backend.app.models.documents import (
    Document,
    StreamedSuggestion,
    Suggestion,
    SuggestionElement,
    UISuggestion,
)
from backend.app.models.events import StreamEvent, StreamEventType
from backend.app.models.messages import (
    Chat,
    ChatRequestMessage,
    Message,
    MessagePart,
    ReasoningPart,
    ResponseMessage,
    TextPart,
    ToolCallPart,
    ToolInvocation,
    ToolResultPart,
    UIMessage,
    Vote,
)

__all__ = [
    # Common
    "ArtifactKind",
    "Role",
    "Visibility",
    "VoteType",
    # Documents
    "Document",
    "Suggestion",
    "StreamedSuggestion",
    "SuggestionElement",
    "UISuggestion",
    # Events
    "StreamEvent",
    "StreamEventType",
    # Messages
    "Chat",
    "ChatRequestMessage",
    "Message",
    "MessagePart",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "ReasoningPart",
    "ResponseMessage",
    "ToolInvocation",
    "UIMessage",
    "Vote",
]
