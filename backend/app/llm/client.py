"""Language-model service with OpenAI integration.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic client when no key is present, for tests and local runs.
"""

import base64
import json
import logging
import re
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, TypeVar

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from backend.app.config import Settings, get_settings
from backend.app.models.messages import (
    TextPart,
    ToolCallPart,
    ToolResultPart,
)

logger = logging.getLogger(__name__)

ElementT = TypeVar("ElementT", bound=BaseModel)


# -- model aliases ----------------------------------------------------------

DEFAULT_CHAT_MODEL = "chat-model-small"
REASONING_CHAT_MODEL = "chat-model-reasoning"
TITLE_MODEL = "title-model"
ARTIFACT_MODEL = "artifact-model"
SMALL_IMAGE_MODEL = "small-image-model"
LARGE_IMAGE_MODEL = "large-image-model"


@dataclass(frozen=True)
class ChatModel:
    id: str
    name: str
    description: str


CHAT_MODELS: tuple[ChatModel, ...] = (
    ChatModel("chat-model-small", "Small model", "Small model for fast, lightweight tasks"),
    ChatModel("chat-model-large", "Large model", "Large model for complex, multi-step tasks"),
    ChatModel(REASONING_CHAT_MODEL, "Reasoning model", "Uses advanced reasoning"),
)


def resolve_model(alias: str, settings: Settings | None = None) -> str:
    """Map a model alias to the provider model name; unknown names pass through."""
    settings = settings or get_settings()
    aliases = {
        "chat-model-small": settings.chat_model,
        "chat-model-large": settings.chat_model_large,
        REASONING_CHAT_MODEL: settings.reasoning_model,
        TITLE_MODEL: settings.title_model,
        ARTIFACT_MODEL: settings.artifact_model,
        SMALL_IMAGE_MODEL: settings.small_image_model,
        LARGE_IMAGE_MODEL: settings.image_model,
    }
    return aliases.get(alias, alias)


# -- chat stream deltas -----------------------------------------------------


@dataclass(frozen=True)
class TextDelta:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ReasoningDelta:
    text: str
    type: Literal["reasoning"] = "reasoning"


@dataclass(frozen=True)
class ToolCallDelta:
    """A complete tool call; emitted once all argument fragments arrived."""

    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = field(default_factory=dict)
    type: Literal["tool-call"] = "tool-call"


ChatDelta = TextDelta | ReasoningDelta | ToolCallDelta


@dataclass(frozen=True)
class ToolDefinition:
    """Function exposed to the chat model."""

    name: str
    description: str
    parameters: dict[str, Any]


class ChatMessageLike(Protocol):
    role: str
    content: Any


class LanguageModelService(Protocol):
    """Protocol for language-model service implementations."""

    def stream_text(self, *, model: str, system: str, prompt: str) -> AsyncIterator[str]:
        """Stream text deltas for a single prompt."""
        ...

    def stream_elements(
        self, *, model: str, system: str, prompt: str, schema: type[ElementT]
    ) -> AsyncIterator[ElementT]:
        """Stream elements of a JSON array, each validated against `schema`."""
        ...

    async def generate_text(self, *, model: str, system: str, prompt: str) -> str:
        """Generate a complete text response."""
        ...

    async def generate_image(self, *, model: str, prompt: str) -> str:
        """Generate one image and return it base64-encoded."""
        ...

    def stream_chat(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[ChatMessageLike],
        tools: Sequence[ToolDefinition],
    ) -> AsyncIterator[ChatDelta]:
        """Stream one model step of a conversation."""
        ...


# -- incremental parsing helpers ------------------------------------------------


class ThinkTagSplitter:
    """Splits `<think>...</think>` segments out of streamed text as reasoning."""

    OPEN = "<think>"
    CLOSE = "</think>"

    def __init__(self) -> None:
        self._buffer = ""
        self._in_think = False

    def feed(self, chunk: str) -> list[TextDelta | ReasoningDelta]:
        self._buffer += chunk
        deltas: list[TextDelta | ReasoningDelta] = []

        while self._buffer:
            tag = self.CLOSE if self._in_think else self.OPEN
            index = self._buffer.find(tag)
            if index != -1:
                self._emit(self._buffer[:index], deltas)
                self._buffer = self._buffer[index + len(tag) :]
                self._in_think = not self._in_think
                continue

            # Hold back a suffix that could be the start of a tag split across chunks
            keep = 0
            for size in range(min(len(tag) - 1, len(self._buffer)), 0, -1):
                if tag.startswith(self._buffer[-size:]):
                    keep = size
                    break
            self._emit(self._buffer[: len(self._buffer) - keep], deltas)
            self._buffer = self._buffer[len(self._buffer) - keep :]
            break

        return deltas

    def flush(self) -> list[TextDelta | ReasoningDelta]:
        deltas: list[TextDelta | ReasoningDelta] = []
        self._emit(self._buffer, deltas)
        self._buffer = ""
        return deltas

    def _emit(self, text: str, deltas: list[TextDelta | ReasoningDelta]) -> None:
        if text:
            deltas.append(ReasoningDelta(text) if self._in_think else TextDelta(text))


class JsonArrayElementParser:
    """Extracts complete top-level object elements from a streamed JSON array.

    Anything before the first `[` is skipped, so both a bare array and an
    object wrapping one array (`{"elements": [...]}`) are accepted.
    """

    def __init__(self) -> None:
        self._started = False
        self._done = False
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._current: list[str] = []

    def feed(self, chunk: str) -> list[str]:
        elements: list[str] = []
        for char in chunk:
            if self._done:
                break
            if not self._started:
                if char == "[":
                    self._started = True
                continue

            if self._depth == 0:
                if char == "]":
                    self._done = True
                elif char == "{":
                    self._depth = 1
                    self._current = [char]
                continue

            self._current.append(char)
            if self._in_string:
                if self._escape:
                    self._escape = False
                elif char == "\\":
                    self._escape = True
                elif char == '"':
                    self._in_string = False
            elif char == '"':
                self._in_string = True
            elif char in "{[":
                self._depth += 1
            elif char in "}]":
                self._depth -= 1
                if self._depth == 0:
                    elements.append("".join(self._current))
                    self._current = []
        return elements


def to_openai_messages(system: str, messages: Sequence[ChatMessageLike]) -> list[dict[str, Any]]:
    """Convert stored or request messages into OpenAI chat messages."""
    converted: list[dict[str, Any]] = [{"role": "system", "content": system}]

    for message in messages:
        if isinstance(message.content, str):
            converted.append({"role": message.role, "content": message.content})
            continue

        if message.role == "tool":
            for part in message.content:
                if isinstance(part, ToolResultPart):
                    converted.append(
                        {
                            "role": "tool",
                            "tool_call_id": part.tool_call_id,
                            "content": json.dumps(part.result, default=str),
                        }
                    )
            continue

        text = "".join(part.text for part in message.content if isinstance(part, TextPart))
        tool_calls = [
            {
                "id": part.tool_call_id,
                "type": "function",
                "function": {"name": part.tool_name, "arguments": json.dumps(part.args)},
            }
            for part in message.content
            if isinstance(part, ToolCallPart)
        ]
        entry: dict[str, Any] = {"role": message.role, "content": text or None}
        if tool_calls:
            entry["tool_calls"] = tool_calls
        converted.append(entry)

    return converted


def _last_user_text(messages: Sequence[ChatMessageLike]) -> str:
    for message in reversed(messages):
        if message.role != "user":
            continue
        if isinstance(message.content, str):
            return message.content
        return "".join(part.text for part in message.content if isinstance(part, TextPart))
    return ""


_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]")


# -- implementations ----------------------------------------------------------


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required).

    Args:
        chat_steps: Scripted deltas, one list per `stream_chat` call. When
            exhausted, the client answers with a short echo of the last user
            message.
        elements: Raw element dicts returned by `stream_elements`; defaults to
            one suggestion per sentence of the prompt.
    """

    def __init__(
        self,
        chat_steps: list[list[ChatDelta]] | None = None,
        elements: list[dict[str, Any]] | None = None,
    ) -> None:
        self.chat_steps = list(chat_steps or [])
        self.elements = elements
        self.calls: list[dict[str, Any]] = []

    async def stream_text(self, *, model: str, system: str, prompt: str) -> AsyncIterator[str]:
        self.calls.append({"method": "stream_text", "model": model, "system": system, "prompt": prompt})
        text = f"# {prompt}\n\nThis is a stub draft about {prompt}."
        for word in re.findall(r"\S+\s*", text):
            yield word

    async def stream_elements(
        self, *, model: str, system: str, prompt: str, schema: type[ElementT]
    ) -> AsyncIterator[ElementT]:
        self.calls.append({"method": "stream_elements", "model": model, "system": system, "prompt": prompt})
        elements = self.elements
        if elements is None:
            elements = [
                {
                    "originalSentence": sentence.strip(),
                    "suggestedSentence": sentence.strip().rstrip(".!?") + ", stated more clearly.",
                    "description": "Clarify the sentence.",
                }
                for sentence in _SENTENCE_RE.findall(prompt)
            ]
        for element in elements:
            yield schema.model_validate(element)

    async def generate_text(self, *, model: str, system: str, prompt: str) -> str:
        self.calls.append({"method": "generate_text", "model": model, "system": system, "prompt": prompt})
        return prompt.strip().replace('"', "").replace(":", "")[:80] or "New chat"

    async def generate_image(self, *, model: str, prompt: str) -> str:
        self.calls.append({"method": "generate_image", "model": model, "prompt": prompt})
        return base64.b64encode(f"stub-image:{prompt}".encode()).decode()

    async def stream_chat(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[ChatMessageLike],
        tools: Sequence[ToolDefinition],
    ) -> AsyncIterator[ChatDelta]:
        self.calls.append(
            {"method": "stream_chat", "model": model, "system": system, "tools": [t.name for t in tools]}
        )
        if self.chat_steps:
            for delta in self.chat_steps.pop(0):
                yield delta
            return
        yield TextDelta(f"You said: {_last_user_text(messages)}")


class OpenAIClient:
    """OpenAI-backed language-model service."""

    def __init__(self, api_key: str, settings: Settings | None = None, client: AsyncOpenAI | None = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            settings: Settings used to resolve model aliases
            client: Preconfigured SDK client, mainly for tests
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.settings = settings or get_settings()

    def _model(self, alias: str) -> str:
        return resolve_model(alias, self.settings)

    async def stream_text(self, *, model: str, system: str, prompt: str) -> AsyncIterator[str]:
        try:
            stream = await self.client.chat.completions.create(
                model=self._model(model),
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                stream=True,
            )
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except OpenAIError as e:
            logger.error(f"OpenAI text stream failed: {e}")
            raise

    async def stream_elements(
        self, *, model: str, system: str, prompt: str, schema: type[ElementT]
    ) -> AsyncIterator[ElementT]:
        instructions = (
            f"{system}\n\nRespond with a JSON object of the form "
            '{"elements": [...]} where every element matches this JSON schema:\n'
            f"{json.dumps(schema.model_json_schema())}"
        )
        parser = JsonArrayElementParser()
        try:
            stream = await self.client.chat.completions.create(
                model=self._model(model),
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices or not chunk.choices[0].delta.content:
                    continue
                for raw in parser.feed(chunk.choices[0].delta.content):
                    try:
                        yield schema.model_validate_json(raw)
                    except ValidationError as e:
                        logger.warning(f"Skipping element that does not match {schema.__name__}: {e}")
        except OpenAIError as e:
            logger.error(f"OpenAI element stream failed: {e}")
            raise

    async def generate_text(self, *, model: str, system: str, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self._model(model),
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise
        return response.choices[0].message.content or ""

    async def generate_image(self, *, model: str, prompt: str) -> str:
        try:
            response = await self.client.images.generate(
                model=self._model(model),
                prompt=prompt,
                n=1,
                response_format="b64_json",
            )
        except OpenAIError as e:
            logger.error(f"OpenAI image generation failed: {e}")
            raise
        return response.data[0].b64_json or ""

    async def stream_chat(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[ChatMessageLike],
        tools: Sequence[ToolDefinition],
    ) -> AsyncIterator[ChatDelta]:
        request: dict[str, Any] = {
            "model": self._model(model),
            "messages": to_openai_messages(system, messages),
            "stream": True,
        }
        if tools:
            request["tools"] = [
                {
                    "type": "function",
                    "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
                }
                for t in tools
            ]

        splitter = ThinkTagSplitter()
        pending_calls: dict[int, dict[str, str]] = {}
        try:
            stream = await self.client.chat.completions.create(**request)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta

                reasoning = getattr(delta, "reasoning_content", None)
                if reasoning:
                    yield ReasoningDelta(reasoning)
                if delta.content:
                    for piece in splitter.feed(delta.content):
                        yield piece

                for call in delta.tool_calls or []:
                    entry = pending_calls.setdefault(call.index, {"id": "", "name": "", "arguments": ""})
                    if call.id:
                        entry["id"] = call.id
                    if call.function and call.function.name:
                        entry["name"] = call.function.name
                    if call.function and call.function.arguments:
                        entry["arguments"] += call.function.arguments
        except OpenAIError as e:
            logger.error(f"OpenAI chat stream failed: {e}")
            raise

        for piece in splitter.flush():
            yield piece
        for index in sorted(pending_calls):
            entry = pending_calls[index]
            yield ToolCallDelta(entry["id"], entry["name"], json.loads(entry["arguments"] or "{}"))


async def get_llm_client() -> LanguageModelService:
    """Factory function to get appropriate language-model client based on config.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client")
        return OpenAIClient(api_key=api_key.get_secret_value(), settings=settings)
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub client")
        return DeterministicStubClient()

