"""Base protocol for model provider plugins.

A provider turns (model id, history, system instruction, tool declarations)
into a raw stream of provider chunks. Everything above it, from event
classification to rendering, is provider-agnostic.
"""

from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Optional, Protocol, Sequence, runtime_checkable

from .types import Message, ToolDeclaration


@dataclass
class ProviderConfig:
    """Configuration for model provider initialization.

    Attributes:
        api_key: API key for authentication. When None, the provider
            resolves one from its environment variables.
    """
    api_key: Optional[str] = None


@runtime_checkable
class ModelProviderPlugin(Protocol):
    """Protocol for model provider plugins.

    Example implementation:
        class EchoProvider:
            @property
            def name(self) -> str:
                return "echo"

            def initialize(self, config=None) -> None:
                pass

            async def stream(self, model_id, history, system_instruction=None,
                             tools=None, max_output_tokens=None):
                yield make_chunk(history[-1].text)
    """

    @property
    def name(self) -> str:
        """Unique identifier for this provider (e.g., 'google_genai')."""
        ...

    def initialize(self, config: Optional[ProviderConfig] = None) -> None:
        """Authenticate and create the SDK client."""
        ...

    def shutdown(self) -> None:
        """Release any resources held by the provider."""
        ...

    def stream(
        self,
        model_id: str,
        history: Sequence[Message],
        system_instruction: Optional[str] = None,
        tools: Optional[List[ToolDeclaration]] = None,
        max_output_tokens: Optional[int] = None,
    ) -> AsyncIterator[Any]:
        """Issue a streaming generation call and yield raw provider chunks.

        Failures (authentication, network, malformed response) are raised
        from the iterator; nothing is retried.
        """
        ...
