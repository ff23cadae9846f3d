"""Client-side function calling for external (MCP) tools.

The SDK's automatic function calling runs a tool before the chunk that
requested it reaches the caller and never yields the function responses.
The provider therefore disables it and drives the loop itself: the
function-call chunk is yielded first, the tool runs, then a synthesized
chunk carrying the ``function_response`` part is yielded before the
request is re-issued.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ._lazy import get_types

logger = logging.getLogger(__name__)

# Model turns that may request tools before the loop gives up
MAX_TOOL_ROUNDS = 10


class ExternalToolRouter:
    """Maps tool names to the MCP session that serves them.

    Usage::

        router = await ExternalToolRouter.from_sessions(sessions)
        config.tools = [types.Tool(function_declarations=router.declarations)]
        response = await router.call("read_file", {"path": "/tmp/x"})
    """

    def __init__(self):
        self._routes: Dict[str, Any] = {}
        self._declarations: List[Any] = []

    @classmethod
    async def from_sessions(cls, sessions: Sequence[Any]) -> "ExternalToolRouter":
        router = cls()
        for session in sessions:
            await router.add_session(session)
        return router

    async def add_session(self, session: Any) -> None:
        """List the session's tools; the first server to claim a name wins."""
        listed = await session.list_tools()
        for tool in listed.tools:
            data = tool.model_dump(mode="json", by_alias=True, exclude_none=True)
            name = data["name"]
            if name in self._routes:
                logger.warning("Tool '%s' is served by more than one MCP server; using the first", name)
                continue
            self._routes[name] = session
            self._declarations.append(function_declaration(data))

    @property
    def declarations(self) -> List[Any]:
        """``types.FunctionDeclaration`` per routed tool, in listing order."""
        return list(self._declarations)

    @property
    def tool_names(self) -> List[str]:
        return list(self._routes)

    async def call(self, name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run one tool and return the response payload for the model.

        Failures become ``{"error": ...}`` so the model can see them; the
        turn itself continues.
        """
        session = self._routes.get(name)
        if session is None:
            return {"error": f"Tool '{name}' not found on any server"}
        try:
            result = await session.call_tool(name, args or {})
        except Exception as e:
            logger.warning("MCP tool '%s' failed: %s", name, e)
            return {"error": f"{type(e).__name__}: {e}"}
        return call_result_to_response(result)


def function_declaration(tool: Dict[str, Any]) -> Any:
    """Build a ``types.FunctionDeclaration`` from a dumped MCP tool."""
    types = get_types()
    return types.FunctionDeclaration(
        name=tool["name"],
        description=tool.get("description") or "",
        parameters_json_schema=tool.get("inputSchema") or {"type": "object", "properties": {}},
    )


def call_result_to_response(result: Any) -> Dict[str, Any]:
    """Flatten a ``CallToolResult`` into a function response dict.

    Text-only content is joined into one string; anything else is passed on
    as the dumped content blocks. Structured content takes priority.
    """
    data = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    key = "error" if data.get("isError") else "output"
    if data.get("structuredContent") is not None:
        return {key: data["structuredContent"]}

    blocks = data.get("content", [])
    if all(block.get("type") == "text" for block in blocks):
        return {key: "\n".join(block.get("text", "") for block in blocks)}
    return {key: blocks}


def function_response_chunk(name: str, response: Dict[str, Any]) -> Any:
    """A response chunk carrying one ``function_response`` part."""
    types = get_types()
    part = types.Part.from_function_response(name=name, response=response)
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="user", parts=[part]))],
    )
