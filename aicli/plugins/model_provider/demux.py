"""Streaming event demultiplexer.

Turns the raw chunk stream of a generation call into an ordered sequence of
typed events: ``TextEvent``, ``ToolCallEvent`` and ``ToolResultEvent``.

Chunks follow the google.genai response shape::

    chunk.candidates[0].content.parts[i]
        .function_call          -> name, args
        .function_response      -> name, response
        .executable_code        -> language, code        (built-in code execution)
        .code_execution_result  -> outcome, output
        .text

Parts are inspected in order and events are yielded in exactly that order;
nothing is buffered here. Two optional hooks run inline:

- ``on_tool_call(name, params)`` before a tool call event is yielded.
- ``on_tool_result(name, result)`` after a tool result event is built,
  before it is yielded.

Hooks may be plain callables or coroutine functions. Exceptions raised by
the chunk source or by a hook propagate to the consumer after whatever was
already yielded.
"""

import inspect
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Union

from .types import StreamEvent, TextEvent, ToolCallEvent, ToolResultEvent


ToolCallHook = Callable[[str, Dict[str, Any]], Union[None, Awaitable[None]]]
ToolResultHook = Callable[[str, Any], Union[None, Awaitable[None]]]

CODE_EXECUTION_TOOL_NAME = "code_execution"
UNKNOWN_TOOL_NAME = "unknown"


async def demultiplex(
    chunks: AsyncIterable[Any],
    on_tool_call: Optional[ToolCallHook] = None,
    on_tool_result: Optional[ToolResultHook] = None,
) -> AsyncIterator[StreamEvent]:
    """Yield typed events for every signal in the chunk stream.

    Args:
        chunks: Async iterable of provider chunks, in network arrival order.
        on_tool_call: Hook invoked before each tool call event is yielded.
        on_tool_result: Hook invoked after each tool result event is built.

    Yields:
        StreamEvent values in the order their parts appeared.
    """
    async for chunk in chunks:
        for part in chunk_parts(chunk):
            event = part_to_event(part)
            if event is None:
                continue
            if isinstance(event, ToolCallEvent):
                if on_tool_call is not None:
                    await _invoke(on_tool_call, event.name, event.params)
            elif isinstance(event, ToolResultEvent):
                if on_tool_result is not None:
                    await _invoke(on_tool_result, event.name, event.result)
            yield event


def part_to_event(part: Any) -> Optional[StreamEvent]:
    """Classify a single response part, or None if it carries no signal."""
    function_call = getattr(part, "function_call", None)
    if function_call:
        name = getattr(function_call, "name", None) or UNKNOWN_TOOL_NAME
        args = getattr(function_call, "args", None) or {}
        return ToolCallEvent(name=name, params=dict(args))

    function_response = getattr(part, "function_response", None)
    if function_response:
        name = getattr(function_response, "name", None) or UNKNOWN_TOOL_NAME
        response = getattr(function_response, "response", None) or {}
        return ToolResultEvent(name=name, result=response)

    executable_code = getattr(part, "executable_code", None)
    if executable_code:
        return ToolCallEvent(
            name=CODE_EXECUTION_TOOL_NAME,
            params={
                "language": _enum_value(getattr(executable_code, "language", None)),
                "code": getattr(executable_code, "code", None) or "",
            },
        )

    execution_result = getattr(part, "code_execution_result", None)
    if execution_result:
        return ToolResultEvent(
            name=CODE_EXECUTION_TOOL_NAME,
            result={
                "outcome": _enum_value(getattr(execution_result, "outcome", None)),
                "output": getattr(execution_result, "output", None) or "",
            },
        )

    text = getattr(part, "text", None)
    if text:
        return TextEvent(text=text)

    return None


async def collect_events(
    chunks: AsyncIterable[Any],
    on_tool_call: Optional[ToolCallHook] = None,
    on_tool_result: Optional[ToolResultHook] = None,
) -> List[StreamEvent]:
    """Drain the demultiplexer into a list."""
    return [event async for event in demultiplex(chunks, on_tool_call, on_tool_result)]


def chunk_parts(chunk: Any) -> List[Any]:
    """Parts of the first candidate of a chunk, or ``[]``."""
    candidates = getattr(chunk, "candidates", None)
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    if content is None:
        return []
    return list(getattr(content, "parts", None) or [])


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", None) or str(value)


async def _invoke(hook: Callable[..., Any], *args: Any) -> None:
    outcome = hook(*args)
    if inspect.isawaitable(outcome):
        await outcome
