"""Provider-agnostic types for the streaming response pipeline.

This module defines the values that flow between the tool resolver, the
provider call, the streaming demultiplexer and the output buffer. None of
them depend on the google.genai SDK; the provider converts them to SDK
objects at the request boundary.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class Role(str, Enum):
    """Message role in a conversation."""
    USER = "user"
    MODEL = "model"


class BuiltinTool(str, Enum):
    """Tools offered directly by the provider, without an external process."""
    CODE_EXECUTION = "code_execution"
    SEARCH = "search"


class ToolCategoryPreference(str, Enum):
    """User-selected category of tools to attach to a generation request.

    Values:
        EXTERNAL: Externally registered (MCP) tools only.
        BUILTIN: The provider's own tools, combined if the model allows it.
        CODE_EXECUTION_ONLY: Only the built-in code execution tool.
        SEARCH_ONLY: Only the built-in search tool.
    """
    EXTERNAL = "external"
    BUILTIN = "builtin"
    CODE_EXECUTION_ONLY = "code_execution"
    SEARCH_ONLY = "search"

    @classmethod
    def parse(cls, value: Union[str, "ToolCategoryPreference"]) -> "ToolCategoryPreference":
        """Parse a preference from its canonical or legacy stored name.

        Older preference files store ``custom``, ``codeExecution`` and
        ``googleSearch``; those map onto the canonical members.

        Raises:
            ValueError: If the value names no known category.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip()
        legacy = _LEGACY_PREFERENCE_NAMES.get(normalized)
        if legacy is not None:
            return legacy
        try:
            return cls(normalized.lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown toolset '{value}'. Expected one of: {choices}"
            ) from None


_LEGACY_PREFERENCE_NAMES = {
    "custom": ToolCategoryPreference.EXTERNAL,
    "mcp": ToolCategoryPreference.EXTERNAL,
    "codeExecution": ToolCategoryPreference.CODE_EXECUTION_ONLY,
    "googleSearch": ToolCategoryPreference.SEARCH_ONLY,
}


class DeclarationKind(str, Enum):
    """What a ToolDeclaration carries."""
    EXTERNAL = "external"
    BUILTIN = "builtin"


@dataclass(frozen=True)
class ToolDeclaration:
    """One tool or tool group submitted with a generation request.

    The pipeline treats declarations as opaque; only the provider looks
    inside to build its SDK tool list. Order in the resolver's output
    matters for submission only.

    Attributes:
        kind: Whether this wraps external handles or built-in tools.
        external_tools: External tool handles (e.g. MCP client sessions).
        builtin_tools: Built-in tools bundled in this declaration.
    """
    kind: DeclarationKind
    external_tools: Tuple[Any, ...] = ()
    builtin_tools: Tuple[BuiltinTool, ...] = ()

    @classmethod
    def external(cls, handles: List[Any]) -> "ToolDeclaration":
        """Wrap all external tool handles in a single declaration."""
        return cls(kind=DeclarationKind.EXTERNAL, external_tools=tuple(handles))

    @classmethod
    def builtin(cls, *tools: BuiltinTool) -> "ToolDeclaration":
        """Bundle one or more built-in tools in a single declaration."""
        return cls(kind=DeclarationKind.BUILTIN, builtin_tools=tuple(tools))

    @property
    def is_builtin(self) -> bool:
        return self.kind is DeclarationKind.BUILTIN


@dataclass(frozen=True)
class TextEvent:
    """Plain model text."""
    text: str

    @property
    def kind(self) -> str:
        return "text"


@dataclass(frozen=True)
class ToolCallEvent:
    """The model invoked a tool."""
    name: str
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return "tool_call"


@dataclass(frozen=True)
class ToolResultEvent:
    """A tool's result became known."""
    name: str
    result: Any = None

    @property
    def kind(self) -> str:
        return "tool_result"


StreamEvent = Union[TextEvent, ToolCallEvent, ToolResultEvent]


def _generate_message_id() -> str:
    """Generate a unique message ID."""
    return str(uuid.uuid4())


@dataclass
class Message:
    """A text message in the conversation history.

    Attributes:
        role: Who produced the message.
        text: The message text.
        message_id: Unique identifier for this message.
    """
    role: Role
    text: str
    message_id: str = field(default_factory=_generate_message_id)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=Role.USER, text=text)

    @classmethod
    def model(cls, text: str) -> "Message":
        return cls(role=Role.MODEL, text=text)


@dataclass
class TurnOutcome:
    """What one request/response cycle produced.

    Attributes:
        text: Concatenated model text of the response.
        tool_calls: Tool call events observed, in arrival order.
        events: Every event observed, in arrival order.
    """
    text: str = ""
    tool_calls: List[ToolCallEvent] = field(default_factory=list)
    events: List[StreamEvent] = field(default_factory=list)

    @property
    def used_tools(self) -> bool:
        """True if at least one tool was invoked during the turn."""
        return bool(self.tool_calls)

    def to_message(self) -> Optional[Message]:
        """The model reply as a history message, or None if it had no text."""
        if not self.text:
            return None
        return Message.model(self.text)
