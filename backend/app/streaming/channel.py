"""Server-side data stream channels.

A document operation writes typed `StreamEvent`s to a `DataStreamWriter`. The
chat turn shares the same channel for its own frames (text deltas, tool
results, finish), so every frame carries an SSE event name.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel

from backend.app.models.events import StreamEvent
from backend.app.utils.metrics import PrometheusDocumentMetrics

DATA_FRAME = "data"


class StreamClosedError(RuntimeError):
    """Write attempted on a closed stream."""

    pass


class DataStreamWriter(Protocol):
    """Ordered, fire-and-forget sink for data stream events."""

    async def write(self, event: StreamEvent) -> None:
        """Append one event to the stream."""
        ...


@dataclass(frozen=True)
class StreamFrame:
    """One named SSE frame."""

    event: str
    data: Any

    def to_sse(self) -> str:
        if isinstance(self.data, BaseModel):
            payload = self.data.model_dump_json(by_alias=True)
        else:
            payload = json.dumps(self.data, default=str)
        return f"event: {self.event}\ndata: {payload}\n\n"


class RecordingDataStream:
    """In-memory stream that keeps everything written to it."""

    def __init__(self) -> None:
        self.frames: list[StreamFrame] = []

    @property
    def events(self) -> list[StreamEvent]:
        return [frame.data for frame in self.frames if frame.event == DATA_FRAME]

    async def write(self, event: StreamEvent) -> None:
        self.frames.append(StreamFrame(DATA_FRAME, event))

    async def send(self, event: str, data: Any) -> None:
        self.frames.append(StreamFrame(event, data))


_CLOSE = object()


class QueueDataStream:
    """Producer/consumer channel backed by an asyncio queue.

    Producers `write`/`send`; one consumer iterates frames until `close()`.
    """

    def __init__(self, metrics: PrometheusDocumentMetrics | None = None) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._metrics = metrics or PrometheusDocumentMetrics()

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, event: StreamEvent) -> None:
        await self.send(DATA_FRAME, event)
        self._metrics.inc_stream_event(event.type)

    async def send(self, event: str, data: Any) -> None:
        if self._closed:
            raise StreamClosedError(f"Cannot write '{event}' frame to a closed stream")
        await self._queue.put(StreamFrame(event, data))

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSE)

    async def __aiter__(self) -> AsyncIterator[StreamFrame]:
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield item

    async def sse(self) -> AsyncIterator[str]:
        """Frames encoded for a text/event-stream response."""
        async for frame in self:
            yield frame.to_sse()
