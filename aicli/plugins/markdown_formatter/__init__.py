# aicli/plugins/markdown_formatter/__init__.py
"""Markdown to ANSI terminal rendering."""

from .plugin import (
    FENCE,
    LANGUAGE_ALIASES,
    MarkdownFormatterPlugin,
    Segment,
    create_plugin,
    split_segments,
)

__all__ = [
    "FENCE",
    "LANGUAGE_ALIASES",
    "MarkdownFormatterPlugin",
    "Segment",
    "create_plugin",
    "split_segments",
]
