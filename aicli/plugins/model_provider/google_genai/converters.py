"""Conversions between pipeline types and google.genai SDK types."""

from typing import Any, List, Optional, Sequence

from ..catalog import ModelCapability
from ..types import BuiltinTool, Message, ToolDeclaration
from ._lazy import get_types


def history_to_sdk(history: Sequence[Message]) -> List[Any]:
    """Convert conversation history to a list of ``types.Content``."""
    types = get_types()
    return [
        types.Content(role=message.role.value, parts=[types.Part(text=message.text)])
        for message in history
    ]


def tool_declarations_to_sdk(
    declarations: Sequence[ToolDeclaration],
    capability: Optional[ModelCapability] = None,
    function_declarations: Optional[Sequence[Any]] = None,
) -> List[Any]:
    """Build the SDK ``tools`` list for a request.

    External declarations are represented by ``function_declarations``
    (listed from their MCP sessions beforehand), bundled into a single
    ``types.Tool``. Each built-in declaration becomes one ``types.Tool``
    carrying every tool it bundles.

    Args:
        declarations: Resolver output, in submission order.
        capability: Capability of the target model, used to pick the search
            field name. Defaults to ``google_search``.
        function_declarations: ``types.FunctionDeclaration``s for the
            external tools.
    """
    sdk_tools: List[Any] = []
    for declaration in declarations:
        if declaration.is_builtin:
            sdk_tools.append(_builtin_to_sdk(declaration.builtin_tools, capability))
        elif function_declarations:
            sdk_tools.append(get_types().Tool(function_declarations=list(function_declarations)))
            function_declarations = None
    return sdk_tools


def external_sessions(declarations: Sequence[ToolDeclaration]) -> List[Any]:
    """MCP sessions carried by external declarations, in order."""
    sessions: List[Any] = []
    for declaration in declarations:
        if not declaration.is_builtin:
            sessions.extend(declaration.external_tools)
    return sessions


def _builtin_to_sdk(
    tools: Sequence[BuiltinTool],
    capability: Optional[ModelCapability],
) -> Any:
    types = get_types()
    kwargs = {}
    for tool in tools:
        if tool is BuiltinTool.CODE_EXECUTION:
            kwargs["code_execution"] = types.ToolCodeExecution()
        elif tool is BuiltinTool.SEARCH:
            search_field = capability.search_tool if capability else "google_search"
            if search_field == "google_search_retrieval":
                kwargs["google_search_retrieval"] = types.GoogleSearchRetrieval()
            else:
                kwargs["google_search"] = types.GoogleSearch()
    return types.Tool(**kwargs)
