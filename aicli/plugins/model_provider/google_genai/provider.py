"""Google GenAI (Gemini API) model provider.

Issues streaming generation calls through ``client.aio.models
.generate_content_stream()`` and hands the raw chunks to the caller. The
provider is stateless with respect to conversation history: the caller
passes the full message list on every call.

Tools arrive as resolver output (``ToolDeclaration``s). External
declarations carry MCP client sessions; their tools are declared to the
model as functions and run here, between yielded chunks (see
``function_calling``). Built-in declarations become a ``types.Tool`` with
code execution and/or search enabled.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, TYPE_CHECKING

from ..base import ProviderConfig
from ..catalog import get_capability
from ..types import Message, ToolDeclaration
from ..demux import chunk_parts
from ._lazy import get_errors, get_genai, get_types
from .converters import external_sessions, history_to_sdk, tool_declarations_to_sdk
from .function_calling import MAX_TOOL_ROUNDS, ExternalToolRouter, function_response_chunk
from .env import get_checked_credential_locations, resolve_api_key
from .errors import CredentialsInvalidError, CredentialsNotFoundError, ProviderNotInitializedError
from aicli.trace import provider_trace

if TYPE_CHECKING:
    from google import genai

logger = logging.getLogger(__name__)


class GoogleGenAIProvider:
    """Gemini API provider (stateless, streaming only).

    Usage::

        provider = GoogleGenAIProvider()
        provider.initialize(ProviderConfig(api_key="..."))
        async for chunk in provider.stream(
            "gemini-2.0-flash",
            [Message.user("Hello!")],
            system_instruction="You are a helpful assistant.",
        ):
            ...

    Environment variables (used when no key is passed explicitly):
        GEMINI_API_KEY / GOOGLE_GENAI_API_KEY / GOOGLE_API_KEY
    """

    def __init__(self):
        self._client: Optional[genai.Client] = None

    @property
    def name(self) -> str:
        """Provider identifier."""
        return "google_genai"

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    def _trace(self, msg: str) -> None:
        provider_trace("google_genai", msg)

    # ==================== Lifecycle ====================

    def initialize(self, config: Optional[ProviderConfig] = None) -> None:
        """Create the SDK client.

        Args:
            config: Configuration with an optional explicit API key.

        Raises:
            CredentialsNotFoundError: No API key in config or environment.
            CredentialsInvalidError: The SDK rejected the key format.
        """
        config = config or ProviderConfig()
        api_key = config.api_key or resolve_api_key()
        if not api_key:
            raise CredentialsNotFoundError(
                checked_locations=get_checked_credential_locations(),
            )

        try:
            self._client = get_genai().Client(api_key=api_key)
        except Exception as e:
            error_msg = str(e).lower()
            if "api key" in error_msg or "invalid" in error_msg:
                raise CredentialsInvalidError(reason=str(e)) from e
            raise
        self._trace("INITIALIZED api_key=****")

    def shutdown(self) -> None:
        """Drop the SDK client."""
        self._client = None

    # ==================== Streaming ====================

    def build_config(
        self,
        model_id: str,
        system_instruction: Optional[str] = None,
        tools: Optional[List[ToolDeclaration]] = None,
        max_output_tokens: Optional[int] = None,
        function_declarations: Optional[Sequence[Any]] = None,
    ) -> Any:
        """Build the ``GenerateContentConfig`` for one request.

        Automatic function calling is always disabled; external tools are
        run by ``stream()`` so callers see each call before it executes.
        """
        types = get_types()
        sdk_tools = tool_declarations_to_sdk(
            list(tools or []), get_capability(model_id), function_declarations,
        )

        config_kwargs: Dict[str, Any] = {
            "system_instruction": system_instruction or None,
            "max_output_tokens": max_output_tokens,
            "tools": sdk_tools or None,
            "automatic_function_calling": types.AutomaticFunctionCallingConfig(disable=True),
        }
        if function_declarations:
            config_kwargs["tool_config"] = types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(mode="AUTO"),
            )
        return types.GenerateContentConfig(**config_kwargs)

    async def stream(
        self,
        model_id: str,
        history: Sequence[Message],
        system_instruction: Optional[str] = None,
        tools: Optional[List[ToolDeclaration]] = None,
        max_output_tokens: Optional[int] = None,
    ) -> AsyncIterator[Any]:
        """Yield raw response chunks for one generation call.

        When the model requests external tools, the chunk holding the
        ``function_call`` is yielded first, then the tool runs on its MCP
        session, then a chunk holding the matching ``function_response`` is
        yielded and the request is re-issued with both appended. This
        repeats for at most ``MAX_TOOL_ROUNDS`` model turns.

        Raises:
            ProviderNotInitializedError: initialize() was not called.
            Exception: Any SDK error, unchanged, after chunks already yielded.
        """
        if self._client is None:
            raise ProviderNotInitializedError()

        declarations = list(tools or [])
        router = await ExternalToolRouter.from_sessions(external_sessions(declarations))
        config = self.build_config(
            model_id, system_instruction, declarations, max_output_tokens, router.declarations,
        )
        contents = history_to_sdk(history)
        self._trace(
            f"STREAM_START model={model_id} messages={len(contents)} "
            f"tools={len(declarations)} functions={len(router.tool_names)}"
        )

        types = get_types()
        chunk_count = 0
        for round_number in range(MAX_TOOL_ROUNDS + 1):
            response = await self._client.aio.models.generate_content_stream(
                model=model_id,
                contents=list(contents),
                config=config,
            )
            model_parts: List[Any] = []
            function_calls: List[Any] = []
            async for chunk in response:
                chunk_count += 1
                yield chunk
                for part in chunk_parts(chunk):
                    model_parts.append(part)
                    function_call = getattr(part, "function_call", None)
                    if function_call:
                        function_calls.append(function_call)

            if not function_calls:
                break
            if round_number == MAX_TOOL_ROUNDS:
                logger.warning("Stopping after %d tool rounds", MAX_TOOL_ROUNDS)
                self._trace(f"TOOL_ROUNDS_EXHAUSTED rounds={MAX_TOOL_ROUNDS}")
                break

            contents.append(types.Content(role="model", parts=model_parts))
            response_parts: List[Any] = []
            for call in function_calls:
                self._trace(f"FUNCTION_CALL name={call.name}")
                result = await router.call(call.name, dict(call.args or {}))
                chunk = function_response_chunk(call.name, result)
                response_parts.extend(chunk_parts(chunk))
                yield chunk
            contents.append(types.Content(role="user", parts=response_parts))

        self._trace(f"STREAM_END chunks={chunk_count}")

    # ==================== Error Classification ====================

    def classify_error(self, exc: Exception) -> Dict[str, bool]:
        """Classify an exception for display purposes.

        Returns a dict with ``auth`` (credentials problem) and ``transient``
        (worth trying again later) flags. Nothing in this package retries.
        """
        if isinstance(exc, (CredentialsNotFoundError, CredentialsInvalidError)):
            return {"auth": True, "transient": False}

        lower = str(exc).lower()
        errors = get_errors()
        if isinstance(exc, errors.ClientError):
            if any(p in lower for p in ("401", "403", "api key", "permission")):
                return {"auth": True, "transient": False}
            if any(p in lower for p in ("429", "resource_exhausted", "resource exhausted", "quota")):
                return {"auth": False, "transient": True}
            return {"auth": False, "transient": False}
        if isinstance(exc, errors.ServerError):
            return {"auth": False, "transient": True}

        transient = any(p in lower for p in ("timeout", "timed out", "connection", "503", "unavailable"))
        return {"auth": False, "transient": transient}


def create_provider() -> GoogleGenAIProvider:
    """Factory function for plugin discovery."""
    return GoogleGenAIProvider()
