"""Code artifacts: self-contained Python snippets."""

from backend.app.chat.prompts import CODE_PROMPT, update_document_prompt
from backend.app.llm.client import ARTIFACT_MODEL, LanguageModelService
from backend.app.models.common import ArtifactKind
from backend.app.models.documents import Document
from backend.app.models.events import StreamEvent, StreamEventType
from backend.app.streaming.channel import DataStreamWriter


class CodeStrategy:
    kind = ArtifactKind.code

    def __init__(self, llm: LanguageModelService) -> None:
        self.llm = llm

    async def on_create(self, *, title: str, data_stream: DataStreamWriter) -> str:
        return await self._stream(system=CODE_PROMPT, prompt=title, data_stream=data_stream)

    async def on_update(self, *, document: Document, description: str, data_stream: DataStreamWriter) -> str:
        return await self._stream(
            system=update_document_prompt(document.content, self.kind),
            prompt=description,
            data_stream=data_stream,
        )

    async def _stream(self, *, system: str, prompt: str, data_stream: DataStreamWriter) -> str:
        """Each code-delta carries the whole snippet so far."""
        code = ""
        async for delta in self.llm.stream_text(model=ARTIFACT_MODEL, system=system, prompt=prompt):
            code += delta
            await data_stream.write(StreamEvent.of(StreamEventType.code_delta, code))
        return code
