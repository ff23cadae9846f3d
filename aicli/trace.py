"""Trace file writer.

Two trace channels:
- Application trace: AICLI_TRACE_LOG (pipeline, MCP host, CLI)
- Provider trace: AICLI_PROVIDER_TRACE (model provider SDK calls)

An empty value disables a channel. When unset, traces go to a file in the
system temp directory.

Usage:
    from aicli.trace import trace, provider_trace

    trace("MCP", "connected to 3 servers")
    provider_trace("google_genai", "STREAM_START model=gemini-2.0-flash")
"""

import os
import tempfile
import traceback as _traceback_module
from datetime import datetime
from typing import Optional, Set


_ensured_dirs: Set[str] = set()


def _ensure_parent_dirs(file_path: str) -> None:
    parent = os.path.dirname(os.path.abspath(file_path))
    if parent not in _ensured_dirs:
        os.makedirs(parent, exist_ok=True)
        _ensured_dirs.add(parent)


def resolve_trace_path(env_var: str, default_filename: str) -> Optional[str]:
    """Resolve a trace file path from an environment variable.

    Returns:
        The configured path, the temp-dir default when unset, or None when
        the variable is set to an empty string.
    """
    value = os.environ.get(env_var)
    if value == "":
        return None
    if value:
        return value
    return os.path.join(tempfile.gettempdir(), default_filename)


def trace_write(
    component: str,
    msg: str,
    trace_path: Optional[str],
    *,
    include_traceback: bool = False,
) -> None:
    """Append one timestamped line to ``trace_path``.

    Never raises: a broken trace file must not break the session.
    """
    if not trace_path:
        return
    try:
        _ensure_parent_dirs(trace_path)
        with open(trace_path, "a", encoding="utf-8") as f:
            ts = datetime.now().strftime("%H:%M:%S.%f")[:-3]
            f.write(f"[{ts}] [{component}] {msg}\n")
            if include_traceback:
                tb = _traceback_module.format_exc()
                if tb and tb.strip() != "NoneType: None":
                    f.write(f"[{ts}] [{component}] Traceback:\n{tb}\n")
    except OSError:
        pass


def trace(component: str, msg: str, *, include_traceback: bool = False) -> None:
    """Write to the application trace (AICLI_TRACE_LOG)."""
    path = resolve_trace_path("AICLI_TRACE_LOG", "aicli_trace.log")
    trace_write(component, msg, path, include_traceback=include_traceback)


def provider_trace(component: str, msg: str, *, include_traceback: bool = False) -> None:
    """Write to the provider trace (AICLI_PROVIDER_TRACE)."""
    path = resolve_trace_path("AICLI_PROVIDER_TRACE", "aicli_provider_trace.log")
    trace_write(component, msg, path, include_traceback=include_traceback)
