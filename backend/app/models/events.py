"""Data stream event models - what a document operation tells the viewer."""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class StreamEventType(str, Enum):
    """Typed events of the server-to-client artifact channel."""

    kind = "kind"
    id = "id"
    title = "title"
    clear = "clear"
    suggestion = "suggestion"
    text_delta = "text-delta"
    code_delta = "code-delta"
    sheet_delta = "sheet-delta"
    image_delta = "image-delta"
    finish = "finish"


BOOTSTRAP_EVENT_TYPES: tuple[str, ...] = (
    StreamEventType.kind.value,
    StreamEventType.id.value,
    StreamEventType.title.value,
    StreamEventType.clear.value,
)

REPEATABLE_EVENT_TYPES: frozenset[str] = frozenset(
    {
        StreamEventType.suggestion.value,
        StreamEventType.text_delta.value,
        StreamEventType.code_delta.value,
        StreamEventType.sheet_delta.value,
        StreamEventType.image_delta.value,
    }
)


class StreamEvent(BaseModel):
    """One event on the data stream.

    `type` is kept as a plain string so that events of types this build does
    not know about still parse and can be forwarded.
    """

    type: str
    content: Any = ""

    @classmethod
    def of(cls, event_type: StreamEventType, content: Any = "") -> "StreamEvent":
        return cls(type=event_type.value, content=content)

    @property
    def known_type(self) -> StreamEventType | None:
        try:
            return StreamEventType(self.type)
        except ValueError:
            return None
