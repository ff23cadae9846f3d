# aicli/plugins/model_provider/tests/test_tool_resolver.py
"""Tests for per-model tool resolution."""

import pytest

from aicli.plugins.model_provider.catalog import MODEL_CATALOG, ModelCapability, _build_catalog
from aicli.plugins.model_provider.tool_resolver import resolve_tools
from aicli.plugins.model_provider.types import (
    BuiltinTool,
    DeclarationKind,
    ToolCategoryPreference,
    ToolDeclaration,
)


HANDLE_A = object()
HANDLE_B = object()

ALL_PREFERENCES = list(ToolCategoryPreference)


def _catalog(*entries):
    return _build_catalog(tuple(entries))


SINGLE_TOOL_MODEL = ModelCapability(
    model_id="single",
    display_name="Single",
    category="flash",
    supports_code_execution=True,
    supports_search=True,
    supports_multiple_builtin_tools=False,
    default_tools=(BuiltinTool.CODE_EXECUTION,),
)


class TestExternalPreference:

    def test_wraps_all_handles_in_one_declaration(self):
        result = resolve_tools("gemini-2.0-flash", [HANDLE_A, HANDLE_B], ToolCategoryPreference.EXTERNAL)
        assert result == [ToolDeclaration.external([HANDLE_A, HANDLE_B])]
        assert result[0].kind is DeclarationKind.EXTERNAL

    def test_no_handles_gives_empty_list(self):
        assert resolve_tools("gemini-2.0-flash", [], ToolCategoryPreference.EXTERNAL) == []

    def test_none_handles_gives_empty_list(self):
        assert resolve_tools("gemini-2.0-flash", None, ToolCategoryPreference.EXTERNAL) == []

    def test_never_attaches_builtin_tools(self):
        result = resolve_tools("gemini-2.0-flash", [HANDLE_A], ToolCategoryPreference.EXTERNAL)
        assert not any(d.is_builtin for d in result)


class TestBuiltinPreference:

    def test_multi_tool_model_bundles_everything(self):
        result = resolve_tools("gemini-2.0-flash", [], ToolCategoryPreference.BUILTIN)
        assert result == [ToolDeclaration.builtin(BuiltinTool.CODE_EXECUTION, BuiltinTool.SEARCH)]

    def test_single_tool_model_uses_default_tool(self):
        result = resolve_tools("single", [], ToolCategoryPreference.BUILTIN, _catalog(SINGLE_TOOL_MODEL))
        assert result == [ToolDeclaration.builtin(BuiltinTool.CODE_EXECUTION)]

    def test_default_tools_order_is_respected(self):
        result = resolve_tools("gemini-1.5-pro-002", [], ToolCategoryPreference.BUILTIN)
        assert result == [ToolDeclaration.builtin(BuiltinTool.SEARCH)]

    def test_fallback_to_code_execution_without_defaults(self):
        model = ModelCapability(
            "nodefault", "No default", "flash",
            supports_code_execution=True, supports_search=True,
        )
        result = resolve_tools("nodefault", [], ToolCategoryPreference.BUILTIN, _catalog(model))
        assert result == [ToolDeclaration.builtin(BuiltinTool.CODE_EXECUTION)]

    def test_fallback_to_search_when_only_search(self):
        model = ModelCapability("searchonly", "Search", "flash", supports_search=True)
        result = resolve_tools("searchonly", [], ToolCategoryPreference.BUILTIN, _catalog(model))
        assert result == [ToolDeclaration.builtin(BuiltinTool.SEARCH)]

    def test_unsupported_default_is_skipped(self):
        model = ModelCapability(
            "skip", "Skip", "flash",
            supports_search=True,
            default_tools=(BuiltinTool.CODE_EXECUTION,),
        )
        result = resolve_tools("skip", [], ToolCategoryPreference.BUILTIN, _catalog(model))
        assert result == [ToolDeclaration.builtin(BuiltinTool.SEARCH)]

    def test_model_without_tools_gives_empty_list(self):
        result = resolve_tools("gemini-embedding-exp-03-07", [HANDLE_A], ToolCategoryPreference.BUILTIN)
        assert result == []

    def test_external_handles_are_ignored(self):
        result = resolve_tools("gemini-2.0-flash", [HANDLE_A], ToolCategoryPreference.BUILTIN)
        assert all(d.is_builtin for d in result)


class TestSingleToolPreferences:

    def test_code_execution_only(self):
        result = resolve_tools("gemini-1.5-flash-8b", [], ToolCategoryPreference.CODE_EXECUTION_ONLY)
        assert result == [ToolDeclaration.builtin(BuiltinTool.CODE_EXECUTION)]

    def test_search_only_unsupported_gives_empty_list(self):
        assert resolve_tools("gemini-1.5-flash-8b", [], ToolCategoryPreference.SEARCH_ONLY) == []

    def test_search_only(self):
        result = resolve_tools("gemini-2.0-flash", [HANDLE_A], ToolCategoryPreference.SEARCH_ONLY)
        assert result == [ToolDeclaration.builtin(BuiltinTool.SEARCH)]


class TestProperties:

    @pytest.mark.parametrize("model_id", sorted(MODEL_CATALOG) + ["not-a-real-model"])
    @pytest.mark.parametrize("preference", ALL_PREFERENCES)
    def test_deterministic(self, model_id, preference):
        first = resolve_tools(model_id, [HANDLE_A], preference)
        second = resolve_tools(model_id, [HANDLE_A], preference)
        assert first == second

    @pytest.mark.parametrize(
        "model_id",
        [m for m, c in MODEL_CATALOG.items() if not c.supports_multiple_builtin_tools],
    )
    def test_single_builtin_invariant(self, model_id):
        assert len(resolve_tools(model_id, [], ToolCategoryPreference.BUILTIN)) <= 1

    @pytest.mark.parametrize("model_id", sorted(MODEL_CATALOG))
    @pytest.mark.parametrize("preference", ALL_PREFERENCES)
    def test_at_most_one_builtin_declaration(self, model_id, preference):
        result = resolve_tools(model_id, [HANDLE_A], preference)
        assert sum(1 for d in result if d.is_builtin) <= 1
        capability = MODEL_CATALOG[model_id]
        if not capability.supports_multiple_builtin_tools:
            for declaration in result:
                assert len(declaration.builtin_tools) <= 1

    @pytest.mark.parametrize("preference", ALL_PREFERENCES)
    def test_unknown_model_degrades_to_external(self, preference):
        result = resolve_tools("not-a-real-model", [HANDLE_A], preference)
        assert result == resolve_tools("not-a-real-model", [HANDLE_A], ToolCategoryPreference.EXTERNAL)
        assert result == [ToolDeclaration.external([HANDLE_A])]

    def test_concrete_single_tool_scenario(self):
        result = resolve_tools("single", [], ToolCategoryPreference.BUILTIN, _catalog(SINGLE_TOOL_MODEL))
        assert len(result) == 1
        assert result[0].builtin_tools == (BuiltinTool.CODE_EXECUTION,)


class TestPreferenceParsing:

    @pytest.mark.parametrize("raw,expected", [
        ("external", ToolCategoryPreference.EXTERNAL),
        ("BUILTIN", ToolCategoryPreference.BUILTIN),
        ("code_execution", ToolCategoryPreference.CODE_EXECUTION_ONLY),
        ("search", ToolCategoryPreference.SEARCH_ONLY),
        ("custom", ToolCategoryPreference.EXTERNAL),
        ("mcp", ToolCategoryPreference.EXTERNAL),
        ("codeExecution", ToolCategoryPreference.CODE_EXECUTION_ONLY),
        ("googleSearch", ToolCategoryPreference.SEARCH_ONLY),
    ])
    def test_parse(self, raw, expected):
        assert ToolCategoryPreference.parse(raw) is expected

    def test_parse_passes_members_through(self):
        assert ToolCategoryPreference.parse(ToolCategoryPreference.BUILTIN) is ToolCategoryPreference.BUILTIN

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown toolset"):
            ToolCategoryPreference.parse("everything")
