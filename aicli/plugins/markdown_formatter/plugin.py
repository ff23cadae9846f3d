# aicli/plugins/markdown_formatter/plugin.py
"""Markdown to ANSI terminal formatter.

A stateless text transform used by the output buffer to render model text:

- fenced code blocks → bordered panels with syntax highlighting
- ``# headings`` → bold cyan
- ``-``/``*``/``+`` bullets → ``•``
- ``> quotes`` → dim bar
- ``---`` rules → full-width line
- inline ``code``, **bold**, *italic*, ~~strike~~, [text](url)

Fences are paired strictly in order of appearance, the same way the output
buffer counts them, so rendering a text in line-aligned pieces that each
close every fence they open gives the same result as rendering it whole.

Usage:
    from aicli.plugins.markdown_formatter import create_plugin

    formatter = create_plugin()
    formatter.initialize({"theme": "monokai", "console_width": 100})
    print(formatter.format_output(text), end="")
"""

import io
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax


FENCE = "```"

LANGUAGE_ALIASES = {
    'js': 'javascript',
    'ts': 'typescript',
    'py': 'python',
    'rb': 'ruby',
    'yml': 'yaml',
    'sh': 'bash',
    'shell': 'bash',
    'zsh': 'bash',
    'dockerfile': 'docker',
    'md': 'markdown',
    'cs': 'csharp',
    'c++': 'cpp',
    'objective-c': 'objectivec',
}

# ANSI attribute codes
BOLD_ON = "\x1b[1m"
DIM_ON = "\x1b[2m"
ITALIC_ON = "\x1b[3m"
UNDERLINE_ON = "\x1b[4m"
STRIKETHROUGH_ON = "\x1b[9m"
CYAN_FG = "\x1b[36m"
BLUE_FG = "\x1b[34m"
INLINE_CODE_FG = "\x1b[38;2;135;215;215m"
INLINE_CODE_BG = "\x1b[48;2;45;45;61m"
RESET = "\x1b[0m"

HEADING_PATTERN = re.compile(r'^(\s{0,3})(#{1,6})\s+(.*?)\s*#*\s*$')
BULLET_PATTERN = re.compile(r'^(\s*)[-*+]\s+(.*)$')
QUOTE_PATTERN = re.compile(r'^(\s*)>\s?(.*)$')
RULE_PATTERN = re.compile(r'^\s{0,3}([-*_])(\s*\1){2,}\s*$')

# Longer markers first so *** is not read as ** or *; no whitespace directly
# inside markers, so "2 * 3 * 4" stays plain.
INLINE_MD_PATTERN = re.compile(
    r'(?P<code>`[^`\n]+`)'
    r'|(?P<bold_italic>\*\*\*(?!\s)(?:(?!\*\*\*).)+?(?<!\s)\*\*\*)'
    r'|(?P<bold>\*\*(?!\s)(?:(?!\*\*).)+?(?<!\s)\*\*)'
    r'|(?P<italic>(?<!\*)\*(?!\*|\s)(?:(?!\*).)+?(?<!\s)\*(?!\*))'
    r'|(?P<strike>~~(?!\s)(?:(?!~~).)+?(?<!\s)~~)'
    r'|(?P<link>\[(?P<link_text>[^\]\n]+)\]\((?P<link_url>[^)\n]+)\))'
)

_MARKER_CHARS = frozenset('`*~[')


@dataclass
class Segment:
    """A run of plain text or one fenced code block."""
    text: str = ""
    is_code: bool = False
    language: str = ""
    closed: bool = True


def split_segments(text: str) -> Iterator[Segment]:
    """Split text into plain runs and fenced blocks.

    The first fence opens a block and the next one closes it. A newline
    directly after a closing fence belongs to the block. An opening fence
    without a closer yields an unclosed block running to the end.
    """
    pos = 0
    length = len(text)
    while pos < length:
        start = text.find(FENCE, pos)
        if start == -1:
            yield Segment(text=text[pos:])
            return
        if start > pos:
            yield Segment(text=text[pos:start])

        body_start = start + len(FENCE)
        end = text.find(FENCE, body_start)
        if end == -1:
            body, pos, closed = text[body_start:], length, False
        else:
            body, pos, closed = text[body_start:end], end + len(FENCE), True
            if text.startswith("\n", pos):
                pos += 1

        info, newline, code = body.partition("\n")
        if newline:
            language = info.strip().split()[0] if info.strip() else ""
        else:
            language, code = "", info
        if code.endswith("\n"):
            code = code[:-1]
        yield Segment(text=code, is_code=True, language=language, closed=closed)


class MarkdownFormatterPlugin:
    """Renders markdown text as ANSI-styled terminal text.

    Pure: ``format_output`` depends only on its argument and the settings
    fixed by ``initialize``.
    """

    @property
    def name(self) -> str:
        """Unique identifier for this formatter."""
        return "markdown_formatter"

    def __init__(self):
        self._theme = "monokai"
        self._line_numbers = False
        self._word_wrap = True
        self._console_width = 80
        self._color = True

    def initialize(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Apply configuration.

        Args:
            config: Dict with optional settings:
                - theme: Pygments theme for code blocks (default: "monokai")
                - line_numbers: Show line numbers in code blocks (default: False)
                - word_wrap: Wrap long code lines (default: True)
                - console_width: Rendering width (default: 80)
                - color: Emit ANSI styling (default: True)
        """
        config = config or {}
        self._theme = config.get("theme", "monokai")
        self._line_numbers = config.get("line_numbers", False)
        self._word_wrap = config.get("word_wrap", True)
        self._console_width = max(20, config.get("console_width", 80))
        self._color = config.get("color", True)

    def __call__(self, text: str) -> str:
        return self.format_output(text)

    def format_output(self, text: str) -> str:
        """Transform markdown text into terminal text."""
        result = []
        at_line_start = True
        for segment in split_segments(text):
            if segment.is_code:
                if not at_line_start:
                    result.append("\n")
                result.append(self._render_code_block(segment.text, segment.language))
                at_line_start = True
            else:
                result.append(self._render_plain(segment.text))
                at_line_start = segment.text.endswith("\n")
        return "".join(result)

    # ==================== Code blocks ====================

    def _render_code_block(self, code: str, language: str) -> str:
        """Render one fenced block as a bordered panel, ending with a newline."""
        lang = LANGUAGE_ALIASES.get(language.lower(), language.lower()) or "text"
        try:
            syntax = Syntax(
                code,
                lang,
                theme=self._theme,
                line_numbers=self._line_numbers,
                word_wrap=self._word_wrap,
            )
            panel = Panel(
                syntax,
                title=language or None,
                title_align="left",
                box=box.ROUNDED,
                border_style="dim",
                expand=True,
            )
            console = self._make_console()
            with console.capture() as capture:
                console.print(panel)
            return capture.get()
        except Exception:
            # Highlighting failed: show the block as raw markdown.
            return f"{FENCE}{language}\n{code}\n{FENCE}\n"

    def _make_console(self) -> Console:
        if self._color:
            return Console(
                file=io.StringIO(),
                width=self._console_width,
                force_terminal=True,
                color_system="truecolor",
                highlight=False,
            )
        return Console(
            file=io.StringIO(),
            width=self._console_width,
            force_terminal=False,
            no_color=True,
            color_system=None,
            highlight=False,
        )

    # ==================== Plain text ====================

    def _render_plain(self, text: str) -> str:
        return "\n".join(self._render_line(line) for line in text.split("\n"))

    def _render_line(self, line: str) -> str:
        if not line:
            return line

        if RULE_PATTERN.match(line):
            return self._style("─" * self._console_width, DIM_ON)

        heading = HEADING_PATTERN.match(line)
        if heading:
            indent, _, title = heading.groups()
            return indent + self._style(self._format_inline(title), BOLD_ON + CYAN_FG)

        bullet = BULLET_PATTERN.match(line)
        if bullet:
            indent, item = bullet.groups()
            return f"{indent}• {self._format_inline(item)}"

        quote = QUOTE_PATTERN.match(line)
        if quote:
            indent, quoted = quote.groups()
            return indent + self._style("│ ", DIM_ON) + self._format_inline(quoted)

        return self._format_inline(line)

    def _format_inline(self, line: str) -> str:
        if not _MARKER_CHARS.intersection(line):
            return line
        return INLINE_MD_PATTERN.sub(self._replace_inline, line)

    def _replace_inline(self, match: "re.Match[str]") -> str:
        if match.group("code"):
            return self._style(match.group("code")[1:-1], INLINE_CODE_FG + INLINE_CODE_BG)
        if match.group("bold_italic"):
            return self._style(match.group("bold_italic")[3:-3], BOLD_ON + ITALIC_ON)
        if match.group("bold"):
            return self._style(match.group("bold")[2:-2], BOLD_ON)
        if match.group("italic"):
            return self._style(match.group("italic")[1:-1], ITALIC_ON)
        if match.group("strike"):
            return self._style(match.group("strike")[2:-2], STRIKETHROUGH_ON)
        link_text = match.group("link_text")
        if self._color:
            return self._style(link_text, BLUE_FG + UNDERLINE_ON)
        return f"{link_text} ({match.group('link_url')})"

    def _style(self, text: str, codes: str) -> str:
        if not self._color:
            return text
        return f"{codes}{text}{RESET}"


def create_plugin() -> MarkdownFormatterPlugin:
    """Factory function to create a MarkdownFormatterPlugin instance."""
    return MarkdownFormatterPlugin()
