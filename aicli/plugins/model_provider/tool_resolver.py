"""Per-model tool resolution.

Decides which tool declarations may legally accompany a generation request.
Some models reject a request that combines two built-in tools, so the rule
lives here, driven by the capability catalog, instead of surfacing as a
provider error at request time.

Resolution never raises: an unknown model or an unsupported preference
degrades to a smaller (possibly empty) tool list.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from .catalog import MODEL_CATALOG, ModelCapability
from .types import BuiltinTool, ToolCategoryPreference, ToolDeclaration

logger = logging.getLogger(__name__)


def resolve_tools(
    model_id: str,
    external_tools: Optional[Sequence[Any]],
    preference: ToolCategoryPreference,
    catalog: Mapping[str, ModelCapability] = MODEL_CATALOG,
) -> List[ToolDeclaration]:
    """Produce the ordered tool declarations for a request.

    Args:
        model_id: Model identifier, looked up in ``catalog``.
        external_tools: External tool handles (possibly empty).
        preference: Tool category chosen by the user.
        catalog: Capability table; defaults to the built-in catalog.

    Returns:
        Tool declarations to submit. Never more than one built-in
        declaration when the model disallows multiple built-in tools.
    """
    handles = list(external_tools or [])
    capability = catalog.get(model_id)

    if capability is None:
        logger.debug("No capability data for %s; using external tools only", model_id)
        return _external(handles)

    if preference is ToolCategoryPreference.EXTERNAL:
        declarations = _external(handles)
    elif preference is ToolCategoryPreference.BUILTIN:
        declarations = _builtin(capability)
    elif preference is ToolCategoryPreference.CODE_EXECUTION_ONLY:
        declarations = _single(capability, BuiltinTool.CODE_EXECUTION)
    elif preference is ToolCategoryPreference.SEARCH_ONLY:
        declarations = _single(capability, BuiltinTool.SEARCH)
    else:
        declarations = _external(handles)

    logger.debug(
        "Resolved %d tool declaration(s) for %s with preference %s",
        len(declarations), model_id, preference.value,
    )
    return declarations


def _external(handles: List[Any]) -> List[ToolDeclaration]:
    if not handles:
        return []
    return [ToolDeclaration.external(handles)]


def _builtin(capability: ModelCapability) -> List[ToolDeclaration]:
    if not capability.has_builtin_tools:
        return []
    if capability.supports_multiple_builtin_tools:
        return [ToolDeclaration.builtin(*capability.builtin_tools)]
    return [ToolDeclaration.builtin(_fallback_tool(capability))]


def _fallback_tool(capability: ModelCapability) -> BuiltinTool:
    """The single built-in tool to use when tools may not be combined.

    The first entry of ``default_tools`` the model actually supports wins;
    otherwise code execution, then search.
    """
    for tool in capability.default_tools:
        if capability.supports(tool):
            return tool
    if capability.supports_code_execution:
        return BuiltinTool.CODE_EXECUTION
    return BuiltinTool.SEARCH


def _single(capability: ModelCapability, tool: BuiltinTool) -> List[ToolDeclaration]:
    if not capability.supports(tool):
        return []
    return [ToolDeclaration.builtin(tool)]
