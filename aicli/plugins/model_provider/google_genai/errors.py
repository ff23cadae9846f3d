"""Custom exceptions for the Google GenAI provider.

Provides descriptive error messages for common failure scenarios.
"""

from typing import List, Optional


class GoogleGenAIProviderError(Exception):
    """Base exception for Google GenAI provider errors."""

    pass


class CredentialsNotFoundError(GoogleGenAIProviderError):
    """Raised when no API key can be found."""

    def __init__(self, checked_locations: Optional[List[str]] = None):
        self.checked_locations = checked_locations or []

        locations = ", ".join(self.checked_locations) if self.checked_locations else "environment"
        message = (
            f"Gemini API key not found.\n"
            f"Checked: {locations}\n\n"
            f"To fix this:\n"
            f"  1. Get an API key from https://aistudio.google.com/apikey\n"
            f"  2. Set GEMINI_API_KEY in your environment or .env file:\n"
            f"     export GEMINI_API_KEY='...'"
        )
        super().__init__(message)


class CredentialsInvalidError(GoogleGenAIProviderError):
    """Raised when the SDK rejects the configured credentials."""

    def __init__(self, reason: str, original_error: Optional[str] = None):
        self.reason = reason
        self.original_error = original_error

        message = f"Gemini credentials rejected: {reason}"
        if original_error and original_error != reason:
            message += f"\nOriginal error: {original_error}"
        super().__init__(message)


class ProviderNotInitializedError(GoogleGenAIProviderError):
    """Raised when a request is made before initialize()."""

    def __init__(self):
        super().__init__("Provider not initialized. Call initialize() first.")
