"""Message reconciliation between storage form and display form.

Streaming can deliver a tool call before its result. These helpers make sure
neither the stored history nor the rendered history exposes a call that never
got a result.
"""

from collections.abc import Sequence

from backend.app.models.messages import (
    Message,
    ReasoningPart,
    ResponseMessage,
    TextPart,
    ToolCallPart,
    ToolInvocation,
    ToolResultPart,
    UIMessage,
)


def _attach_tool_results(message: Message, ui_messages: list[UIMessage]) -> None:
    results = {
        part.tool_call_id: part
        for part in (message.content if isinstance(message.content, list) else [])
        if isinstance(part, ToolResultPart)
    }
    if not results:
        return

    for ui_message in ui_messages:
        if not ui_message.tool_invocations:
            continue
        ui_message.tool_invocations = [
            ToolInvocation(
                state="result",
                tool_call_id=invocation.tool_call_id,
                tool_name=invocation.tool_name,
                args=invocation.args,
                result=results[invocation.tool_call_id].result,
            )
            if invocation.tool_call_id in results
            else invocation
            for invocation in ui_message.tool_invocations
        ]


def to_ui_messages(messages: Sequence[Message]) -> list[UIMessage]:
    """Fold stored messages into display messages.

    Tool messages are not shown on their own; their results are attached to
    the matching invocations of earlier assistant messages.
    """
    ui_messages: list[UIMessage] = []

    for message in messages:
        if message.role == "tool":
            _attach_tool_results(message, ui_messages)
            continue

        text = ""
        reasoning: str | None = None
        invocations: list[ToolInvocation] = []

        if isinstance(message.content, str):
            text = message.content
        else:
            for part in message.content:
                if isinstance(part, TextPart):
                    text += part.text
                elif isinstance(part, ToolCallPart):
                    invocations.append(
                        ToolInvocation(
                            state="call",
                            tool_call_id=part.tool_call_id,
                            tool_name=part.tool_name,
                            args=part.args,
                        )
                    )
                elif isinstance(part, ReasoningPart):
                    reasoning = part.reasoning

        ui_messages.append(
            UIMessage(
                id=message.id,
                role=message.role,
                content=text,
                reasoning=reasoning,
                tool_invocations=invocations,
            )
        )

    return ui_messages


def sanitize_response_messages(
    messages: Sequence[ResponseMessage],
    reasoning: str | None = None,
) -> list[ResponseMessage]:
    """Drop unanswered tool calls and empty text before messages are stored.

    Args:
        messages: Assistant and tool messages produced by one chat turn
        reasoning: Reasoning text to attach to assistant messages

    Returns:
        Sanitized messages; messages left without content are removed
    """
    tool_result_ids = {
        part.tool_call_id
        for message in messages
        if message.role == "tool" and isinstance(message.content, list)
        for part in message.content
        if isinstance(part, ToolResultPart)
    }

    sanitized: list[ResponseMessage] = []
    for message in messages:
        if message.role == "assistant" and isinstance(message.content, list):
            content = [
                part
                for part in message.content
                if not (isinstance(part, ToolCallPart) and part.tool_call_id not in tool_result_ids)
                and not (isinstance(part, TextPart) and not part.text)
            ]
            if reasoning:
                content.append(ReasoningPart(reasoning=reasoning))
            message = message.model_copy(update={"content": content})

        if len(message.content) > 0:
            sanitized.append(message)

    return sanitized


def sanitize_ui_messages(messages: Sequence[UIMessage]) -> list[UIMessage]:
    """Drop assistant tool invocations that never reached the result state."""
    sanitized: list[UIMessage] = []
    for message in messages:
        if message.role == "assistant" and message.tool_invocations:
            result_ids = {inv.tool_call_id for inv in message.tool_invocations if inv.state == "result"}
            kept = [
                inv for inv in message.tool_invocations if inv.state == "result" or inv.tool_call_id in result_ids
            ]
            message = message.model_copy(update={"tool_invocations": kept})

        if message.content or message.tool_invocations:
            sanitized.append(message)

    return sanitized


def get_most_recent_user_message(messages: Sequence[UIMessage | Message]) -> UIMessage | Message | None:
    user_messages = [message for message in messages if message.role == "user"]
    return user_messages[-1] if user_messages else None
