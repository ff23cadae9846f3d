# aicli/pipeline.py
"""Response pipeline: one request/response cycle against the model.

Resolves tools once, opens the provider stream, runs it through the event
demultiplexer and feeds text into a fresh output buffer. Tool events only
need bookkeeping here; UI reactions run in the activity hooks.

Usage:
    pipeline = ResponsePipeline(
        provider,
        PipelineConfig(model="gemini-2.0-flash", toolset=ToolCategoryPreference.EXTERNAL,
                       external_tools=tuple(sessions)),
        buffer_factory=lambda: OutputBuffer(formatter.format_output, sys.stdout.write),
        activity=ToolActivityAdapter(ui),
    )
    outcome = await pipeline.run(history)
    if outcome.used_tools:
        ui.divider()
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence, Tuple

from aicli.output_buffer import OutputBuffer
from aicli.plugins.model_provider.base import ModelProviderPlugin
from aicli.plugins.model_provider.catalog import DEFAULT_MODEL
from aicli.plugins.model_provider.demux import demultiplex
from aicli.plugins.model_provider.tool_resolver import resolve_tools
from aicli.plugins.model_provider.types import (
    Message,
    TextEvent,
    ToolCallEvent,
    ToolCategoryPreference,
    TurnOutcome,
)
from aicli.trace import trace as _trace_write

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_TOKENS = 8192


def _trace(msg: str) -> None:
    _trace_write("Pipeline", msg)


class ToolActivity(Protocol):
    """Receives tool events while the stream is being consumed."""

    def on_tool_call(self, name: str, params: dict) -> Any:
        ...

    def on_tool_result(self, name: str, result: Any) -> Any:
        ...


@dataclass(frozen=True)
class PipelineConfig:
    """Everything the pipeline needs, resolved before the turn starts.

    Attributes:
        model: Model identifier.
        toolset: Tool category to attach.
        external_tools: External tool handles (MCP sessions).
        system_instruction: System prompt for the request.
        max_output_tokens: Output token limit.
    """
    model: str = DEFAULT_MODEL
    toolset: ToolCategoryPreference = ToolCategoryPreference.EXTERNAL
    external_tools: Tuple[Any, ...] = ()
    system_instruction: Optional[str] = None
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS


class ResponsePipeline:
    """Runs one turn at a time; holds no per-turn state between runs."""

    def __init__(
        self,
        provider: ModelProviderPlugin,
        config: PipelineConfig,
        buffer_factory: Callable[[], OutputBuffer],
        activity: Optional[ToolActivity] = None,
        first_output: Optional[Callable[[], None]] = None,
    ):
        self._provider = provider
        self._config = config
        self._buffer_factory = buffer_factory
        self._activity = activity
        self._first_output = first_output

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def run(self, history: Sequence[Message]) -> TurnOutcome:
        """Send ``history`` and render the streamed reply.

        The buffer is flushed exactly once, also when the stream fails part
        way; whatever was already rendered stays. Errors from the provider or
        from an activity hook are re-raised unchanged.
        """
        config = self._config
        tools = resolve_tools(config.model, config.external_tools, config.toolset)
        buffer = self._buffer_factory()
        outcome = TurnOutcome()
        text_parts = []
        seen_output = False

        _trace(f"run: model={config.model} toolset={config.toolset.value} declarations={len(tools)}")

        chunks = self._provider.stream(
            config.model,
            list(history),
            config.system_instruction,
            tools,
            config.max_output_tokens,
        )
        events = demultiplex(
            chunks,
            on_tool_call=self._activity.on_tool_call if self._activity else None,
            on_tool_result=self._activity.on_tool_result if self._activity else None,
        )
        failed = True
        try:
            async for event in events:
                outcome.events.append(event)
                if isinstance(event, TextEvent):
                    if not seen_output:
                        seen_output = True
                        if self._first_output is not None:
                            self._first_output()
                    text_parts.append(event.text)
                    buffer.append(event.text)
                elif isinstance(event, ToolCallEvent):
                    outcome.tool_calls.append(event)
            failed = False
        finally:
            await events.aclose()
            outcome.text = "".join(text_parts)
            if failed:
                _flush_after_error(buffer)
            else:
                buffer.flush()
            _trace(
                f"run: done events={len(outcome.events)} "
                f"tool_calls={len(outcome.tool_calls)} chars={len(outcome.text)}"
            )

        logger.debug("Turn finished with %d event(s)", len(outcome.events))
        return outcome


__all__ = ["DEFAULT_MAX_OUTPUT_TOKENS", "PipelineConfig", "ResponsePipeline", "ToolActivity", "TurnOutcome"]


def _flush_after_error(buffer: OutputBuffer) -> None:
    """Flush partial output; the turn's own exception must stay the one raised."""
    try:
        buffer.flush()
    except Exception as e:
        logger.debug("Flush after failed turn raised: %s", e)
        _trace(f"run: flush after error failed: {type(e).__name__}: {e}")
