# aicli/tests/test_config.py
"""Tests for preferences and configuration resolution."""

import json
import os
from argparse import Namespace
from pathlib import Path

import pytest

from aicli.config import (
    AppConfig,
    ConfigError,
    Preferences,
    get_config_dir,
    get_mcp_config_path,
    load_env_file,
    load_preferences,
    save_preferences,
    set_default_model,
    set_default_toolset,
)
from aicli.pipeline import DEFAULT_MAX_OUTPUT_TOKENS
from aicli.plugins.model_provider.catalog import DEFAULT_MODEL
from aicli.plugins.model_provider.types import ToolCategoryPreference


@pytest.fixture
def xdg_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    monkeypatch.delenv("MCP_CONFIG_PATH", raising=False)
    return tmp_path


def _args(**kwargs):
    defaults = {"model": None, "toolset": None, "max_tokens": None, "system": None, "verbose": False}
    defaults.update(kwargs)
    return Namespace(**defaults)


# ==================== Paths ====================

class TestPaths:

    def test_xdg_config_home(self, xdg_home):
        assert get_config_dir() == xdg_home / "ai-cli"

    def test_home_fallback(self, monkeypatch, tmp_path):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_config_dir() == tmp_path / ".config" / "ai-cli"

    def test_mcp_config_override(self, xdg_home, monkeypatch):
        assert get_mcp_config_path() == xdg_home / "ai-cli" / "mcp-config.json"
        monkeypatch.setenv("MCP_CONFIG_PATH", "/etc/mcp.json")
        assert get_mcp_config_path() == Path("/etc/mcp.json")


# ==================== Preferences ====================

class TestPreferences:

    def test_missing_file_gives_defaults(self, xdg_home):
        prefs = load_preferences()
        assert prefs.default_model == DEFAULT_MODEL
        assert prefs.default_toolset is ToolCategoryPreference.EXTERNAL
        assert prefs.last_updated is None

    def test_round_trip(self, xdg_home):
        prefs = Preferences(default_model="gemini-1.5-pro", default_toolset=ToolCategoryPreference.SEARCH_ONLY)
        assert save_preferences(prefs)
        loaded = load_preferences()
        assert loaded.default_model == "gemini-1.5-pro"
        assert loaded.default_toolset is ToolCategoryPreference.SEARCH_ONLY
        assert loaded.last_updated is not None

    def test_stored_keys(self, xdg_home):
        save_preferences(Preferences())
        data = json.loads((xdg_home / "ai-cli" / "preferences.json").read_text())
        assert set(data) == {"defaultModel", "defaultToolset", "lastUpdated"}
        assert data["defaultToolset"] == "external"

    def test_legacy_toolset_names(self, xdg_home):
        path = xdg_home / "ai-cli" / "preferences.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"defaultModel": "gemini-2.0-flash", "defaultToolset": "codeExecution"}))
        prefs = load_preferences()
        assert prefs.default_toolset is ToolCategoryPreference.CODE_EXECUTION_ONLY

    def test_missing_keys_get_defaults(self, xdg_home):
        path = xdg_home / "ai-cli" / "preferences.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"defaultModel": "gemini-2.0-flash"}))
        prefs = load_preferences()
        assert prefs.default_model == "gemini-2.0-flash"
        assert prefs.default_toolset is ToolCategoryPreference.EXTERNAL

    def test_corrupt_file_gives_defaults(self, xdg_home, caplog):
        path = xdg_home / "ai-cli" / "preferences.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        prefs = load_preferences()
        assert prefs.default_model == DEFAULT_MODEL
        assert "Failed to load preferences" in caplog.text

    def test_unknown_stored_toolset_is_ignored(self, xdg_home):
        path = xdg_home / "ai-cli" / "preferences.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"defaultToolset": "everything"}))
        assert load_preferences().default_toolset is ToolCategoryPreference.EXTERNAL

    def test_setters(self, xdg_home):
        set_default_model("gemini-1.5-flash")
        set_default_toolset("builtin")
        prefs = load_preferences()
        assert prefs.default_model == "gemini-1.5-flash"
        assert prefs.default_toolset is ToolCategoryPreference.BUILTIN

    def test_set_unknown_toolset_raises(self, xdg_home):
        with pytest.raises(ValueError):
            set_default_toolset("everything")


# ==================== Resolution ====================

class TestAppConfigResolve:

    def test_defaults(self, xdg_home):
        config = AppConfig.resolve(_args(), env={}, preferences=Preferences())
        assert config.model == DEFAULT_MODEL
        assert config.toolset is ToolCategoryPreference.EXTERNAL
        assert config.max_output_tokens == DEFAULT_MAX_OUTPUT_TOKENS
        assert config.uses_external_tools

    def test_preferences_over_defaults(self, xdg_home):
        prefs = Preferences(default_model="gemini-1.5-pro", default_toolset=ToolCategoryPreference.BUILTIN)
        config = AppConfig.resolve(_args(), env={}, preferences=prefs)
        assert config.model == "gemini-1.5-pro"
        assert config.toolset is ToolCategoryPreference.BUILTIN
        assert not config.uses_external_tools

    def test_unknown_model_needs_mcp_servers(self, xdg_home):
        prefs = Preferences(default_model="my-tuned-model", default_toolset=ToolCategoryPreference.BUILTIN)
        config = AppConfig.resolve(_args(), env={}, preferences=prefs)
        assert config.uses_external_tools

    def test_env_over_preferences(self, xdg_home):
        prefs = Preferences(default_model="gemini-1.5-pro")
        env = {"AICLI_MODEL": "gemini-2.0-flash", "AICLI_TOOLSET": "search", "AICLI_MAX_TOKENS": "100"}
        config = AppConfig.resolve(_args(), env=env, preferences=prefs)
        assert config.model == "gemini-2.0-flash"
        assert config.toolset is ToolCategoryPreference.SEARCH_ONLY
        assert config.max_output_tokens == 100

    def test_flags_over_env(self, xdg_home):
        env = {"AICLI_MODEL": "gemini-2.0-flash", "AICLI_TOOLSET": "search", "AICLI_MAX_TOKENS": "100"}
        args = _args(model="gemini-1.5-flash", toolset="builtin", max_tokens=50, system="be terse", verbose=True)
        config = AppConfig.resolve(args, env=env, preferences=Preferences())
        assert config.model == "gemini-1.5-flash"
        assert config.toolset is ToolCategoryPreference.BUILTIN
        assert config.max_output_tokens == 50
        assert config.system_prompt == "be terse"
        assert config.verbose

    def test_invalid_toolset_flag(self, xdg_home):
        with pytest.raises(ConfigError, match="Unknown toolset"):
            AppConfig.resolve(_args(toolset="all"), env={}, preferences=Preferences())

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_invalid_max_tokens_env(self, xdg_home, value):
        with pytest.raises(ConfigError):
            AppConfig.resolve(_args(), env={"AICLI_MAX_TOKENS": value}, preferences=Preferences())

    def test_invalid_max_tokens_flag(self, xdg_home):
        with pytest.raises(ConfigError):
            AppConfig.resolve(_args(max_tokens=0), env={}, preferences=Preferences())

    def test_mcp_path_from_env_mapping(self, xdg_home):
        config = AppConfig.resolve(_args(), env={"MCP_CONFIG_PATH": "/tmp/m.json"}, preferences=Preferences())
        assert config.mcp_config_path == Path("/tmp/m.json")

    def test_is_frozen(self, xdg_home):
        config = AppConfig.resolve(_args(), env={}, preferences=Preferences())
        with pytest.raises(AttributeError):
            config.model = "other"

    def test_to_pipeline_config(self, xdg_home):
        session = object()
        config = AppConfig.resolve(_args(max_tokens=10), env={}, preferences=Preferences())
        pipeline_config = config.to_pipeline_config([session], "sys")
        assert pipeline_config.model == config.model
        assert pipeline_config.external_tools == (session,)
        assert pipeline_config.system_instruction == "sys"
        assert pipeline_config.max_output_tokens == 10


class TestEnvFile:

    def test_loads_without_overriding(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("AICLI_TEST_A=from-file\nAICLI_TEST_B=from-file\n")
        monkeypatch.setenv("AICLI_TEST_A", "from-env")
        monkeypatch.delenv("AICLI_TEST_B", raising=False)

        assert load_env_file(str(env_file))

        assert os.environ["AICLI_TEST_A"] == "from-env"
        assert os.environ["AICLI_TEST_B"] == "from-file"

    def test_missing_file(self, tmp_path):
        assert not load_env_file(str(tmp_path / "missing.env"))
