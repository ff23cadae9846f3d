# aicli package
#
# Gemini assistant for the terminal. The public surface can be imported from
# the package root:
#
#   from aicli import ResponsePipeline, PipelineConfig, OutputBuffer, resolve_tools
#
# Lazy loading: imports are deferred via __getattr__ so that `aicli mcp list`
# and `aicli --help` do not pull in the model SDK.

__version__ = "0.1.0"

# Mapping from public name -> (module_path, attribute_name)
_LAZY_IMPORTS = {
    # Pipeline
    "ResponsePipeline": (".pipeline", "ResponsePipeline"),
    "PipelineConfig": (".pipeline", "PipelineConfig"),
    "OutputBuffer": (".output_buffer", "OutputBuffer"),
    # Configuration
    "AppConfig": (".config", "AppConfig"),
    # Tool host
    "MCPClientManager": (".mcp_context_manager", "MCPClientManager"),
    "load_server_configs": (".mcp_context_manager", "load_server_configs"),
    # Model provider
    "load_provider": (".plugins.model_provider", "load_provider"),
    "resolve_tools": (".plugins.model_provider", "resolve_tools"),
    "demultiplex": (".plugins.model_provider", "demultiplex"),
    "MODEL_CATALOG": (".plugins.model_provider", "MODEL_CATALOG"),
    # Provider-agnostic types
    "Message": (".plugins.model_provider.types", "Message"),
    "ToolCategoryPreference": (".plugins.model_provider.types", "ToolCategoryPreference"),
    "TurnOutcome": (".plugins.model_provider.types", "TurnOutcome"),
    # Rendering
    "MarkdownFormatterPlugin": (".plugins.markdown_formatter", "MarkdownFormatterPlugin"),
}


def __getattr__(name):
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        import importlib
        module = importlib.import_module(module_path, __name__)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = list(_LAZY_IMPORTS)
