"""Environment variable resolution for the Google GenAI provider."""

import os
from typing import List, Optional


API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_GENAI_API_KEY", "GOOGLE_API_KEY")


def resolve_api_key() -> Optional[str]:
    """Resolve the Gemini API key from the environment.

    Checks, in order: GEMINI_API_KEY, GOOGLE_GENAI_API_KEY, GOOGLE_API_KEY.
    Empty values are ignored.

    Returns:
        API key if found, None otherwise.
    """
    for var in API_KEY_ENV_VARS:
        value = os.environ.get(var, "").strip()
        if value:
            return value
    return None


def get_checked_credential_locations() -> List[str]:
    """Environment variables consulted for credentials, for error messages."""
    return list(API_KEY_ENV_VARS)
