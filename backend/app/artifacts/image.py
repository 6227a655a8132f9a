"""Image artifacts: one generated PNG, stored base64-encoded."""

from backend.app.llm.client import SMALL_IMAGE_MODEL, LanguageModelService
from backend.app.models.common import ArtifactKind
from backend.app.models.documents import Document
from backend.app.models.events import StreamEvent, StreamEventType
from backend.app.streaming.channel import DataStreamWriter


class ImageStrategy:
    kind = ArtifactKind.image

    def __init__(self, llm: LanguageModelService, model: str = SMALL_IMAGE_MODEL) -> None:
        self.llm = llm
        self.model = model

    async def on_create(self, *, title: str, data_stream: DataStreamWriter) -> str:
        return await self._generate(title, data_stream)

    async def on_update(self, *, document: Document, description: str, data_stream: DataStreamWriter) -> str:
        return await self._generate(description, data_stream)

    async def _generate(self, prompt: str, data_stream: DataStreamWriter) -> str:
        image = await self.llm.generate_image(model=self.model, prompt=prompt)
        await data_stream.write(StreamEvent.of(StreamEventType.image_delta, image))
        return image
