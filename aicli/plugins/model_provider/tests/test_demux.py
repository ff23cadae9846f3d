# aicli/plugins/model_provider/tests/test_demux.py
"""Tests for the streaming event demultiplexer."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from aicli.plugins.model_provider.demux import (
    CODE_EXECUTION_TOOL_NAME,
    collect_events,
    demultiplex,
    part_to_event,
)
from aicli.plugins.model_provider.types import TextEvent, ToolCallEvent, ToolResultEvent


# ==================== Helpers ====================

def text_part(text):
    return SimpleNamespace(text=text)


def call_part(name, args=None):
    return SimpleNamespace(function_call=SimpleNamespace(name=name, args=args))


def result_part(name, response=None):
    return SimpleNamespace(function_response=SimpleNamespace(name=name, response=response))


def chunk(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


async def stream_of(*chunks, error=None):
    for c in chunks:
        yield c
    if error is not None:
        raise error


# ==================== Classification ====================

class TestPartToEvent:

    def test_text(self):
        assert part_to_event(text_part("hi")) == TextEvent("hi")

    def test_empty_text_is_skipped(self):
        assert part_to_event(text_part("")) is None

    def test_function_call(self):
        event = part_to_event(call_part("read_file", {"path": "a.txt"}))
        assert event == ToolCallEvent("read_file", {"path": "a.txt"})

    def test_function_call_defaults(self):
        event = part_to_event(call_part(None, None))
        assert event == ToolCallEvent("unknown", {})

    def test_function_response(self):
        event = part_to_event(result_part("read_file", {"content": "x"}))
        assert event == ToolResultEvent("read_file", {"content": "x"})

    def test_function_response_defaults(self):
        assert part_to_event(result_part(None, None)) == ToolResultEvent("unknown", {})

    def test_executable_code(self):
        part = SimpleNamespace(
            executable_code=SimpleNamespace(language=SimpleNamespace(value="PYTHON"), code="print(1)"),
        )
        event = part_to_event(part)
        assert event == ToolCallEvent(CODE_EXECUTION_TOOL_NAME, {"language": "PYTHON", "code": "print(1)"})

    def test_code_execution_result(self):
        part = SimpleNamespace(
            code_execution_result=SimpleNamespace(outcome="OUTCOME_OK", output="1\n"),
        )
        event = part_to_event(part)
        assert event == ToolResultEvent(CODE_EXECUTION_TOOL_NAME, {"outcome": "OUTCOME_OK", "output": "1\n"})

    def test_function_call_wins_over_text(self):
        part = SimpleNamespace(function_call=SimpleNamespace(name="t", args={}), text="ignored")
        assert isinstance(part_to_event(part), ToolCallEvent)

    def test_part_without_signal(self):
        assert part_to_event(SimpleNamespace()) is None


# ==================== Ordering ====================

class TestOrdering:

    @pytest.mark.asyncio
    async def test_interleaving_is_preserved(self):
        chunks = stream_of(
            chunk(text_part("Let me check."), call_part("ls", {"dir": "."})),
            chunk(result_part("ls", {"files": ["a"]})),
            chunk(text_part("Found "), text_part("a.")),
        )
        events = await collect_events(chunks)
        assert events == [
            TextEvent("Let me check."),
            ToolCallEvent("ls", {"dir": "."}),
            ToolResultEvent("ls", {"files": ["a"]}),
            TextEvent("Found "),
            TextEvent("a."),
        ]

    @pytest.mark.asyncio
    async def test_chunks_without_content_yield_nothing(self):
        chunks = stream_of(
            SimpleNamespace(candidates=None),
            SimpleNamespace(candidates=[SimpleNamespace(content=None)]),
            SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=None))]),
            chunk(text_part("ok")),
        )
        assert await collect_events(chunks) == [TextEvent("ok")]

    @pytest.mark.asyncio
    async def test_is_lazy(self):
        consumed = []

        async def source():
            for i in range(3):
                consumed.append(i)
                yield chunk(text_part(str(i)))

        events = demultiplex(source())
        first = await events.__anext__()
        assert first == TextEvent("0")
        assert consumed == [0]
        await events.aclose()


# ==================== Hooks ====================

class TestHooks:

    @pytest.mark.asyncio
    async def test_call_hook_runs_before_yield(self):
        log = []
        chunks = stream_of(chunk(call_part("t", {"a": 1})))

        async for event in demultiplex(chunks, on_tool_call=lambda n, p: log.append(("hook", n, p))):
            log.append(("event", event.name))

        assert log == [("hook", "t", {"a": 1}), ("event", "t")]

    @pytest.mark.asyncio
    async def test_result_hook_runs_before_yield(self):
        log = []
        chunks = stream_of(chunk(result_part("t", {"ok": True})))

        async for event in demultiplex(chunks, on_tool_result=lambda n, r: log.append(("hook", n, r))):
            log.append(("event", event.name))

        assert log == [("hook", "t", {"ok": True}), ("event", "t")]

    @pytest.mark.asyncio
    async def test_async_hooks_are_awaited(self):
        on_call = AsyncMock()
        on_result = AsyncMock()
        chunks = stream_of(chunk(call_part("t", {"x": 1}), result_part("t", "done")))

        await collect_events(chunks, on_tool_call=on_call, on_tool_result=on_result)

        on_call.assert_awaited_once_with("t", {"x": 1})
        on_result.assert_awaited_once_with("t", "done")

    @pytest.mark.asyncio
    async def test_text_does_not_fire_hooks(self):
        on_call = MagicMock()
        on_result = MagicMock()
        await collect_events(stream_of(chunk(text_part("hi"))), on_call, on_result)
        on_call.assert_not_called()
        on_result.assert_not_called()

    @pytest.mark.asyncio
    async def test_code_execution_fires_hooks(self):
        on_call = MagicMock()
        part = SimpleNamespace(executable_code=SimpleNamespace(language="PYTHON", code="1"))
        await collect_events(stream_of(chunk(part)), on_tool_call=on_call)
        on_call.assert_called_once_with(CODE_EXECUTION_TOOL_NAME, {"language": "PYTHON", "code": "1"})

    @pytest.mark.asyncio
    async def test_hook_failure_propagates(self):
        def boom(name, params):
            raise RuntimeError("hook failed")

        received = []
        chunks = stream_of(chunk(text_part("before"), call_part("t")))
        with pytest.raises(RuntimeError, match="hook failed"):
            async for event in demultiplex(chunks, on_tool_call=boom):
                received.append(event)
        assert received == [TextEvent("before")]


# ==================== Failures ====================

class TestFailures:

    @pytest.mark.asyncio
    async def test_provider_error_after_partial_output(self):
        received = []
        chunks = stream_of(chunk(text_part("partial")), error=ConnectionError("network down"))
        with pytest.raises(ConnectionError, match="network down"):
            async for event in demultiplex(chunks):
                received.append(event)
        assert received == [TextEvent("partial")]

    @pytest.mark.asyncio
    async def test_error_is_not_wrapped(self):
        error = ValueError("malformed")
        with pytest.raises(ValueError) as exc_info:
            await collect_events(stream_of(error=error))
        assert exc_info.value is error
