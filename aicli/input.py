"""Gathering of piped stdin and ``--file`` contents."""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from aicli.prompts import format_file_content


@dataclass(frozen=True)
class InputFile:
    path: str
    content: str


def read_stdin(stream: Optional[TextIO] = None) -> str:
    """Read all piped input; an interactive terminal yields ""."""
    stream = stream if stream is not None else sys.stdin
    if stream is None or stream.isatty():
        return ""
    return stream.read()


def read_files(paths: Iterable[str]) -> List[InputFile]:
    """Read each file as UTF-8, in the given order.

    Raises:
        OSError: A file is missing or unreadable.
    """
    return [
        InputFile(path=path, content=Path(path).read_text(encoding="utf-8"))
        for path in paths
    ]


def format_input_content(files: List[InputFile], stdin: str = "") -> str:
    """Files as titled fenced blocks, then stdin.

    Stdin gets its own fenced section when files are present, and is used
    verbatim otherwise.
    """
    parts: List[str] = []
    for item in files:
        parts.append(format_file_content(item.path, item.content))
        parts.append("")

    if stdin.strip():
        if files:
            parts.extend(["## stdin", "```", stdin, "```"])
        else:
            parts.append(stdin)

    return "\n".join(parts).strip()
