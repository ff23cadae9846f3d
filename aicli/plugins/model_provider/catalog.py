"""Static capability table for the Gemini model family.

Adding a model is a data change: append a ``ModelCapability`` entry to
``_ENTRIES`` and bump ``CATALOG_VERSION``. The table is frozen at import
time and never mutated afterwards.

Built-in tool rules encoded here follow the Gemini API documentation:
- Gemini 2.x models accept several built-in tools in one request.
- Gemini 1.5 models reject a request that combines code execution with
  search, and use the legacy ``google_search_retrieval`` field for search.
- Embedding and native-audio models take no built-in tools.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .types import BuiltinTool


CATALOG_VERSION = "2025.05.1"


@dataclass(frozen=True)
class ModelCapability:
    """Capabilities of one model identifier.

    Attributes:
        model_id: API model identifier.
        display_name: Human-readable name.
        category: Model family ("flash", "pro", "embedding", "native-audio").
        supports_code_execution: Model accepts the code execution tool.
        supports_search: Model accepts the search tool.
        supports_multiple_builtin_tools: Model accepts more than one built-in
            tool in the same request.
        default_tools: Preferred built-in tools, in order, used when only a
            single built-in tool may be attached.
        context_window: Input context size in tokens.
        max_output_tokens: Maximum output tokens.
        search_tool: SDK field used to declare search for this model.
        description: Short description for listings.
    """
    model_id: str
    display_name: str
    category: str
    supports_code_execution: bool = False
    supports_search: bool = False
    supports_multiple_builtin_tools: bool = False
    default_tools: Tuple[BuiltinTool, ...] = ()
    context_window: int = 1_048_576
    max_output_tokens: int = 8_192
    search_tool: str = "google_search"
    description: str = ""

    @property
    def has_builtin_tools(self) -> bool:
        return self.supports_code_execution or self.supports_search

    def supports(self, tool: BuiltinTool) -> bool:
        """Whether this model accepts the given built-in tool."""
        if tool is BuiltinTool.CODE_EXECUTION:
            return self.supports_code_execution
        if tool is BuiltinTool.SEARCH:
            return self.supports_search
        return False

    @property
    def builtin_tools(self) -> Tuple[BuiltinTool, ...]:
        """Every built-in tool this model supports, in declaration order."""
        return tuple(tool for tool in BuiltinTool if self.supports(tool))


_ENTRIES: Tuple[ModelCapability, ...] = (
    ModelCapability(
        model_id="gemini-2.5-flash-preview-05-20",
        display_name="Gemini 2.5 Flash Preview",
        category="flash",
        supports_code_execution=True,
        supports_search=True,
        supports_multiple_builtin_tools=True,
        max_output_tokens=65_536,
        description="Latest Flash model with adaptive thinking and cost efficiency",
    ),
    ModelCapability(
        model_id="gemini-2.5-flash-preview-native-audio-dialog",
        display_name="Gemini 2.5 Flash Native Audio Dialog",
        category="native-audio",
        context_window=128_000,
        max_output_tokens=8_000,
        description="Specialized for interactive audio conversations with audio generation",
    ),
    ModelCapability(
        model_id="gemini-2.5-pro-preview-05-06",
        display_name="Gemini 2.5 Pro Preview",
        category="pro",
        supports_code_execution=True,
        supports_search=True,
        supports_multiple_builtin_tools=True,
        max_output_tokens=65_536,
        description="Advanced reasoning and complex problem solving capabilities",
    ),
    ModelCapability(
        model_id="gemini-2.0-flash",
        display_name="Gemini 2.0 Flash",
        category="flash",
        supports_code_execution=True,
        supports_search=True,
        supports_multiple_builtin_tools=True,
        description="Next-gen tool use with native streaming support",
    ),
    ModelCapability(
        model_id="gemini-1.5-pro",
        display_name="Gemini 1.5 Pro",
        category="pro",
        supports_code_execution=True,
        supports_search=True,
        default_tools=(BuiltinTool.CODE_EXECUTION,),
        context_window=2_097_152,
        search_tool="google_search_retrieval",
        description="Large data processing with 2M token context window",
    ),
    ModelCapability(
        model_id="gemini-1.5-flash",
        display_name="Gemini 1.5 Flash",
        category="flash",
        supports_code_execution=True,
        supports_search=True,
        default_tools=(BuiltinTool.CODE_EXECUTION,),
        search_tool="google_search_retrieval",
        description="Fast and versatile performance across diverse tasks",
    ),
    ModelCapability(
        model_id="gemini-1.5-flash-8b",
        display_name="Gemini 1.5 Flash 8B",
        category="flash",
        supports_code_execution=True,
        default_tools=(BuiltinTool.CODE_EXECUTION,),
        description="Smaller, faster variant ideal for lower intelligence tasks",
    ),
    ModelCapability(
        model_id="gemini-1.5-pro-002",
        display_name="Gemini 1.5 Pro 002",
        category="pro",
        supports_code_execution=True,
        supports_search=True,
        default_tools=(BuiltinTool.SEARCH, BuiltinTool.CODE_EXECUTION),
        context_window=2_097_152,
        search_tool="google_search_retrieval",
        description="Updated Pro model with improved performance",
    ),
    ModelCapability(
        model_id="gemini-1.5-flash-002",
        display_name="Gemini 1.5 Flash 002",
        category="flash",
        supports_code_execution=True,
        supports_search=True,
        default_tools=(BuiltinTool.CODE_EXECUTION,),
        search_tool="google_search_retrieval",
        description="Updated Flash model with enhanced capabilities",
    ),
    ModelCapability(
        model_id="gemini-embedding-exp-03-07",
        display_name="Gemini Embedding Experimental",
        category="embedding",
        context_window=8_192,
        description="Multi-lingual embeddings with high retrieval performance",
    ),
)


def _build_catalog(entries: Tuple[ModelCapability, ...]) -> Mapping[str, ModelCapability]:
    """Index entries by model id, rejecting duplicates."""
    table: Dict[str, ModelCapability] = {}
    for entry in entries:
        if entry.model_id in table:
            raise ValueError(f"Duplicate model capability entry: {entry.model_id}")
        table[entry.model_id] = entry
    return MappingProxyType(table)


MODEL_CATALOG: Mapping[str, ModelCapability] = _build_catalog(_ENTRIES)

DEFAULT_MODEL = "gemini-2.5-flash-preview-05-20"


def get_capability(
    model_id: str,
    catalog: Mapping[str, ModelCapability] = MODEL_CATALOG,
) -> Optional[ModelCapability]:
    """Look up a model's capabilities; None for unknown identifiers."""
    return catalog.get(model_id)


def list_models(category: Optional[str] = None) -> List[ModelCapability]:
    """List catalog entries, optionally filtered by category."""
    return [
        entry for entry in MODEL_CATALOG.values()
        if category is None or entry.category == category
    ]


def get_default_model() -> str:
    """Model used when neither flags nor preferences choose one."""
    return DEFAULT_MODEL
