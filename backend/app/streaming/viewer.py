"""Client-side consumer of the artifact data stream.

`ArtifactViewer` folds events into a `UIArtifact` and rejects sequences that
break the stream's ordering rules. Events of unknown types are ignored so that
newer servers can add event types without breaking older viewers.
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

from backend.app.models.common import ArtifactKind
from backend.app.models.documents import StreamedSuggestion
from backend.app.models.events import (
    BOOTSTRAP_EVENT_TYPES,
    REPEATABLE_EVENT_TYPES,
    StreamEvent,
    StreamEventType,
)

logger = logging.getLogger(__name__)


class StreamProtocolError(ValueError):
    """Event arrived in an order the protocol forbids."""

    pass


class UIArtifact(BaseModel):
    """What the artifact panel currently shows."""

    document_id: str = "init"
    kind: ArtifactKind = ArtifactKind.text
    title: str = ""
    content: str = ""
    status: Literal["idle", "streaming"] = "idle"
    is_visible: bool = False
    suggestions: list[StreamedSuggestion] = Field(default_factory=list)


class ArtifactViewer:
    """Applies one operation's event stream to a UI artifact."""

    def __init__(self, artifact: UIArtifact | None = None) -> None:
        self.artifact = artifact or UIArtifact()
        self.seen: list[str] = []
        self.finished = False

    def apply(self, event: StreamEvent) -> UIArtifact:
        """Apply one event and return the updated artifact.

        Raises:
            StreamProtocolError: If the event violates stream ordering
        """
        event_type = event.known_type
        if event_type is None:
            logger.debug("Ignoring unknown stream event type %s", event.type)
            return self.artifact

        self._check_order(event_type.value)
        self.seen.append(event_type.value)
        self._fold(event_type, event.content)
        return self.artifact

    def apply_all(self, events: list[StreamEvent]) -> UIArtifact:
        for event in events:
            self.apply(event)
        return self.artifact

    def _check_order(self, event_type: str) -> None:
        if self.finished:
            raise StreamProtocolError(f"'{event_type}' event received after 'finish'")

        if event_type in BOOTSTRAP_EVENT_TYPES and event_type in self.seen:
            raise StreamProtocolError(f"'{event_type}' event may appear only once per stream")

        if event_type in REPEATABLE_EVENT_TYPES:
            if any(t in self.seen for t in BOOTSTRAP_EVENT_TYPES) and StreamEventType.clear.value not in self.seen:
                raise StreamProtocolError(f"'{event_type}' event received before 'clear'")
        elif event_type in BOOTSTRAP_EVENT_TYPES and any(t in REPEATABLE_EVENT_TYPES for t in self.seen):
            raise StreamProtocolError(f"'{event_type}' event received after progress events")

    def _fold(self, event_type: StreamEventType, content: Any) -> None:
        artifact = self.artifact
        if event_type is StreamEventType.kind:
            artifact.kind = ArtifactKind(content)
        elif event_type is StreamEventType.id:
            artifact.document_id = str(content)
        elif event_type is StreamEventType.title:
            artifact.title = str(content)
        elif event_type is StreamEventType.clear:
            artifact.content = ""
            artifact.suggestions = []
            artifact.status = "streaming"
        elif event_type is StreamEventType.suggestion:
            artifact.suggestions.append(StreamedSuggestion.model_validate(content))
        elif event_type is StreamEventType.text_delta:
            artifact.content += str(content)
            self._reveal()
        elif event_type in (StreamEventType.code_delta, StreamEventType.sheet_delta, StreamEventType.image_delta):
            artifact.content = str(content)
            self._reveal()
        elif event_type is StreamEventType.finish:
            artifact.status = "idle"
            self.finished = True

    def _reveal(self) -> None:
        # Panel opens once a streaming draft reaches 400 characters
        artifact = self.artifact
        if artifact.status == "streaming" and 400 <= len(artifact.content) <= 450:
            artifact.is_visible = True
