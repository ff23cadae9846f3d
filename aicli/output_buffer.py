# aicli/output_buffer.py
"""Incremental markdown-safe output buffer.

Streamed model text arrives in arbitrary token-sized fragments. Rendering
each fragment as it arrives would print half a code fence and break block
formatting, so the buffer only hands complete lines to the renderer and
holds back everything while a triple-backtick fence is open.

Usage:
    from aicli.output_buffer import OutputBuffer
    from aicli.plugins.markdown_formatter import create_plugin

    buffer = OutputBuffer(create_plugin().format_output, write=sys.stdout.write)
    for fragment in stream:
        buffer.append(fragment)   # renders zero or more complete lines
    buffer.flush()                # renders whatever is left, fence or not
"""

from dataclasses import dataclass
from typing import Callable, Optional

from aicli.trace import trace as _trace_write

FENCE = "```"

Renderer = Callable[[str], str]
Writer = Callable[[str], None]


def _trace(msg: str) -> None:
    _trace_write("OutputBuffer", msg)


def fence_count(text: str) -> int:
    """Number of non-overlapping triple-backtick markers in ``text``."""
    return text.count(FENCE)


def safe_split_point(text: str) -> int:
    """Length of the longest renderable prefix of ``text``.

    The prefix ends with a newline and contains an even number of fence
    markers, so it never starts inside a block and ends outside it. Returns
    0 when no such prefix exists.
    """
    cut = 0
    fences = 0
    start = 0
    while True:
        newline = text.find("\n", start)
        if newline == -1:
            return cut
        fences += fence_count(text[start:newline + 1])
        start = newline + 1
        if fences % 2 == 0:
            cut = start


@dataclass
class BufferState:
    """Text received but not yet rendered."""
    pending: str = ""

    @property
    def in_fence(self) -> bool:
        return fence_count(self.pending) % 2 == 1


class OutputBuffer:
    """Accumulates streamed text and renders it in fence-safe units.

    One instance per response. ``append`` and ``flush`` return the rendered
    text and also pass it to ``write`` when one is given.
    """

    def __init__(self, renderer: Renderer, write: Optional[Writer] = None):
        self._renderer = renderer
        self._write = write
        self._state = BufferState()

    @property
    def pending(self) -> str:
        return self._state.pending

    @property
    def in_fence(self) -> bool:
        return self._state.in_fence

    def append(self, text: str) -> str:
        """Add a fragment; render every complete line that is safe to render.

        Returns:
            The rendered text, or "" when nothing became eligible.
        """
        if not text:
            return ""
        self._state.pending += text
        if self._state.in_fence:
            return ""

        cut = safe_split_point(self._state.pending)
        if cut == 0:
            return ""
        ready = self._state.pending[:cut]
        self._state.pending = self._state.pending[cut:]
        return self._emit(ready)

    def flush(self) -> str:
        """Render and clear everything pending, even an unterminated fence."""
        if not self._state.pending:
            return ""
        if self._state.in_fence:
            _trace(f"flush: rendering unterminated fence ({len(self._state.pending)} chars)")
        ready = self._state.pending
        self._state.pending = ""
        return self._emit(ready)

    def reset(self) -> None:
        """Drop pending text without rendering it."""
        self._state = BufferState()

    def _emit(self, text: str) -> str:
        rendered = self._renderer(text)
        if self._write is not None and rendered:
            self._write(rendered)
        return rendered
