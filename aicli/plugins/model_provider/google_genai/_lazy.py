"""Lazy loading for the Google GenAI SDK.

The google.genai package is heavy to import; deferring it keeps
``aicli --help`` and ``aicli mcp list`` fast and lets the rest of the
pipeline be tested without the SDK installed.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from google import genai
    from google.genai import types

_genai = None
_types = None
_errors = None

_INSTALL_HINT = "google-genai package not installed. Install with: pip install google-genai"


def get_genai() -> Any:
    """Return the google.genai module, importing it on first use.

    Raises:
        ImportError: If the google-genai package is not installed.
    """
    global _genai
    if _genai is None:
        try:
            from google import genai
            _genai = genai
        except ImportError as e:
            raise ImportError(_INSTALL_HINT) from e
    return _genai


def get_types() -> Any:
    """Return the google.genai.types module, importing it on first use.

    Raises:
        ImportError: If the google-genai package is not installed.
    """
    global _types
    if _types is None:
        try:
            from google.genai import types
            _types = types
        except ImportError as e:
            raise ImportError(_INSTALL_HINT) from e
    return _types


def get_errors() -> Any:
    """Return the google.genai.errors module, importing it on first use."""
    global _errors
    if _errors is None:
        try:
            from google.genai import errors
            _errors = errors
        except ImportError as e:
            raise ImportError(_INSTALL_HINT) from e
    return _errors
