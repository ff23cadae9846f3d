"""Terminal UI: status messages, spinner, tool activity lines.

Everything that draws on the terminal besides the rendered model text lives
here. The response pipeline only sees ``ToolActivityAdapter``, which turns
tool events into spinner and status-line updates.
"""

import sys
from typing import Any, Dict, Optional, TextIO

from rich import box as rich_box
from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.text import Text

INFO_PREFIX = "ℹ"
SUCCESS_PREFIX = "✓"
WARNING_PREFIX = "⚠"
ERROR_PREFIX = "✗"
TOOL_PREFIX = "⚡"


def format_tool_args_summary(tool_args: Dict[str, Any], max_length: int = 60) -> str:
    """Format tool arguments as a truncated summary string."""
    args_str = str(tool_args)
    if len(args_str) > max_length:
        return args_str[:max_length - 3] + "..."
    return args_str


class ConsoleUI:
    """Prefixed messages, spinner and separators on a rich console.

    Args:
        console: Console for regular output (stdout by default).
        err_console: Console for warnings and errors (stderr by default).
        color: False disables all styling.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
        color: bool = True,
    ):
        self.console = console or Console(highlight=False, no_color=not color)
        self.err_console = err_console or Console(stderr=True, highlight=False, no_color=not color)
        self._status: Optional[Status] = None

    @property
    def width(self) -> int:
        return self.console.width

    @property
    def spinner_active(self) -> bool:
        return self._status is not None

    # ==================== Messages ====================

    def info(self, message: str) -> None:
        self.console.print(Text(f"{INFO_PREFIX} {message}", style="cyan"))

    def success(self, message: str) -> None:
        self.console.print(Text(f"{SUCCESS_PREFIX} {message}", style="green"))

    def warning(self, message: str) -> None:
        self.err_console.print(Text(f"{WARNING_PREFIX} {message}", style="yellow"))

    def error(self, message: str) -> None:
        self.err_console.print(Text(f"{ERROR_PREFIX} {message}", style="bold red"))

    def write(self, text: str) -> None:
        """Write already-rendered text as is."""
        out: TextIO = self.console.file or sys.stdout
        out.write(text)
        out.flush()

    def newline(self) -> None:
        self.write("\n")

    # ==================== Spinner ====================

    def show_spinner(self, message: str = "Thinking") -> None:
        if self._status is not None:
            return
        self._status = self.console.status(Text(message, style="dim"), spinner="dots")
        self._status.start()

    def hide_spinner(self) -> None:
        if self._status is None:
            return
        self._status.stop()
        self._status = None

    # ==================== Tools and layout ====================

    def tool_call_start(self, name: str, params: Dict[str, Any]) -> None:
        line = Text(f"{TOOL_PREFIX} ", style="yellow")
        line.append(name, style="bold yellow")
        if params:
            line.append(f" {format_tool_args_summary(params)}", style="dim")
        self.console.print(line)

    def tool_call_end(self, name: str) -> None:
        self.console.print(Text(f"{SUCCESS_PREFIX} {name} completed", style="green"))

    def divider(self) -> None:
        self.console.print(Text("─" * self.console.width, style="dim"))

    def box(self, content: str, title: Optional[str] = None) -> None:
        self.console.print(Panel(content, title=title, box=rich_box.ROUNDED, expand=False))


class ToolActivityAdapter:
    """Translates tool events from the response stream into UI updates."""

    def __init__(self, ui: ConsoleUI):
        self._ui = ui

    def on_tool_call(self, name: str, params: Dict[str, Any]) -> None:
        self._ui.hide_spinner()
        self._ui.tool_call_start(name, params)

    def on_tool_result(self, name: str, result: Any) -> None:
        self._ui.tool_call_end(name)
        self._ui.newline()
