"""Tools exposed to the chat model and their dispatch."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from backend.app.llm.client import REASONING_CHAT_MODEL, ToolDefinition
from backend.app.tools.context import ToolContext
from backend.app.tools.documents import CreateDocumentArgs, UpdateDocumentArgs, create_document, update_document
from backend.app.tools.suggestions import RequestSuggestionsArgs, request_suggestions
from backend.app.tools.weather import GetWeatherArgs, get_weather

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    args_model: type[BaseModel]
    execute: Callable[[ToolContext, Any], Awaitable[dict[str, Any]]]

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.args_model.model_json_schema(),
        )


TOOLS: tuple[Tool, ...] = (
    Tool(
        "getWeather",
        "Get the current weather at a location",
        GetWeatherArgs,
        get_weather,
    ),
    Tool(
        "createDocument",
        "Create a document for a writing or content creation activities. This tool will call other "
        "functions that will generate the contents of the document based on the title and kind.",
        CreateDocumentArgs,
        create_document,
    ),
    Tool(
        "updateDocument",
        "Update a document with the given description.",
        UpdateDocumentArgs,
        update_document,
    ),
    Tool(
        "requestSuggestions",
        "Request suggestions for a document",
        RequestSuggestionsArgs,
        request_suggestions,
    ),
)


def tools_for_model(model_id: str) -> tuple[Tool, ...]:
    """The reasoning model runs without tools."""
    if model_id == REASONING_CHAT_MODEL:
        return ()
    return TOOLS


class ToolRegistry:
    """Executes model tool calls against one turn's collaborators."""

    def __init__(self, tools: ToolContext, available: tuple[Tool, ...] = TOOLS) -> None:
        self.tools = tools
        self._by_name = {tool.name: tool for tool in available}

    @property
    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition for tool in self._by_name.values()]

    async def execute(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        """Run one tool call.

        Unknown tools and invalid arguments come back as `{"error": ...}` so
        the model can react; failures inside a tool propagate.
        """
        tool = self._by_name.get(name)
        if tool is None:
            logger.warning("Model requested unknown tool %s", name)
            return {"error": f"Unknown tool: {name}"}

        try:
            parsed = tool.args_model.model_validate(args)
        except ValidationError as e:
            logger.warning("Invalid arguments for tool %s: %s", name, e)
            return {"error": f"Invalid arguments for {name}"}

        return await tool.execute(self.tools, parsed)
