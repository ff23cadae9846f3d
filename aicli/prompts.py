"""System prompt and user message construction."""

import os
import platform
import socket
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

SYSTEM_PROMPT_TEMPLATE = """You are a skilled programming assistant. Follow these guidelines:

## Principles
- Keep answers concise and accurate
- Propose code that is readable and maintainable
- Understand the user's intent precisely and ask when something is unclear
- Always take safety and security into account

## Answer style
- Explain technical points clearly and correctly
- Code examples must be complete and runnable
- When pointing out an error or problem, also propose a fix
- Do not guess; ask for clarification instead

## Special handling
- When file contents are provided, base the answer on them
- In code reviews, explain each improvement and the reason for it
- When debugging, explain the cause and the fix step by step

## Ethics
- Refuse to write or explain malicious code
- Handle private and security-sensitive information with care
- Respect licenses and copyright

{context}"""

# File extension -> fenced code block language
EXTENSION_LANGUAGES = {
    "ts": "typescript",
    "tsx": "tsx",
    "js": "javascript",
    "jsx": "jsx",
    "py": "python",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
    "scala": "scala",
    "sh": "bash",
    "bash": "bash",
    "zsh": "zsh",
    "fish": "fish",
    "ps1": "powershell",
    "r": "r",
    "sql": "sql",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "less": "less",
    "xml": "xml",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "ini": "ini",
    "cfg": "ini",
    "conf": "nginx",
    "md": "markdown",
    "mdx": "markdown",
    "tex": "latex",
    "vim": "vim",
    "lua": "lua",
    "dart": "dart",
    "elm": "elm",
    "clj": "clojure",
    "ex": "elixir",
    "exs": "elixir",
    "erl": "erlang",
    "hrl": "erlang",
    "fs": "fsharp",
    "fsx": "fsharp",
    "ml": "ocaml",
    "mli": "ocaml",
    "pas": "pascal",
    "pl": "perl",
    "hs": "haskell",
    "jl": "julia",
    "nim": "nim",
    "nix": "nix",
    "vue": "vue",
    "svelte": "svelte",
}


@dataclass(frozen=True)
class ContextualPrompt:
    """System instruction plus the first user message of a one-shot run."""
    system_prompt: str
    user_message: str


def build_working_directory_context(now: Optional[datetime] = None) -> str:
    """Describe where the assistant runs: cwd, host, OS and local time."""
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = "unknown"
    now = now or datetime.now().astimezone()
    return (
        "## Environment\n"
        f"- Working directory: {os.getcwd()}\n"
        f"- Hostname: {hostname}\n"
        f"- OS: {platform.system().lower() or 'unknown'}\n"
        f"- Time: {now.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}"
    )


def default_system_prompt(context: Optional[str] = None) -> str:
    if context is None:
        context = build_working_directory_context()
    return SYSTEM_PROMPT_TEMPLATE.format(context=context)


def build_system_prompt(custom_system: Optional[str] = None) -> str:
    """A custom prompt replaces the default one entirely."""
    return custom_system or default_system_prompt()


def build_contextual_prompt(
    input_content: str,
    user_prompt: Optional[str] = None,
    custom_system: Optional[str] = None,
) -> ContextualPrompt:
    """Combine gathered input and the prompt into one user message.

    Input comes first; the prompt follows after a blank line.
    """
    if input_content:
        user_message = input_content
        if user_prompt:
            user_message += "\n\n" + user_prompt
    else:
        user_message = user_prompt or ""
    return ContextualPrompt(
        system_prompt=build_system_prompt(custom_system),
        user_message=user_message,
    )


def language_for_path(path: str) -> str:
    """Fence language for a file path; the bare extension when unmapped."""
    _, dot, extension = os.path.basename(path).rpartition(".")
    if not dot:
        return ""
    return EXTENSION_LANGUAGES.get(extension.lower(), extension)


def format_file_content(path: str, content: str) -> str:
    """Wrap file contents in a titled fenced block."""
    return f"## File: {path}\n```{language_for_path(path)}\n{content}\n```"
