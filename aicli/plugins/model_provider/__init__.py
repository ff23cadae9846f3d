"""Model provider plugins and the provider-agnostic pipeline types."""

from typing import Optional

from .base import ModelProviderPlugin, ProviderConfig
from .catalog import (
    CATALOG_VERSION,
    DEFAULT_MODEL,
    MODEL_CATALOG,
    ModelCapability,
    get_capability,
    get_default_model,
    list_models,
)
from .demux import collect_events, demultiplex
from .tool_resolver import resolve_tools
from .types import (
    BuiltinTool,
    DeclarationKind,
    Message,
    Role,
    StreamEvent,
    TextEvent,
    ToolCallEvent,
    ToolCategoryPreference,
    ToolDeclaration,
    ToolResultEvent,
    TurnOutcome,
)


def load_provider(name: str = "google_genai", config: Optional[ProviderConfig] = None) -> ModelProviderPlugin:
    """Create and initialize a provider by name.

    Raises:
        ValueError: Unknown provider name.
    """
    if name != "google_genai":
        raise ValueError(f"Unknown model provider: {name}")
    from .google_genai import create_provider
    provider = create_provider()
    provider.initialize(config)
    return provider


__all__ = [
    "ModelProviderPlugin",
    "ProviderConfig",
    "load_provider",
    "CATALOG_VERSION",
    "DEFAULT_MODEL",
    "MODEL_CATALOG",
    "ModelCapability",
    "get_capability",
    "get_default_model",
    "list_models",
    "collect_events",
    "demultiplex",
    "resolve_tools",
    "BuiltinTool",
    "DeclarationKind",
    "Message",
    "Role",
    "StreamEvent",
    "TextEvent",
    "ToolCallEvent",
    "ToolCategoryPreference",
    "ToolDeclaration",
    "ToolResultEvent",
    "TurnOutcome",
]
