"""Google GenAI (Gemini API) provider plugin."""

from .errors import (
    CredentialsInvalidError,
    CredentialsNotFoundError,
    GoogleGenAIProviderError,
    ProviderNotInitializedError,
)
from .provider import GoogleGenAIProvider, create_provider

__all__ = [
    "GoogleGenAIProvider",
    "create_provider",
    "GoogleGenAIProviderError",
    "CredentialsNotFoundError",
    "CredentialsInvalidError",
    "ProviderNotInitializedError",
]
