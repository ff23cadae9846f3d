# aicli/config.py
"""Configuration: paths, stored preferences and the resolved app config.

Sources, highest priority first:

1. Command-line flags (``--model``, ``--toolset``, ``--max-tokens``)
2. Environment (``AICLI_MODEL``, ``AICLI_TOOLSET``, ``AICLI_MAX_TOKENS``),
   optionally seeded from a ``.env`` file
3. ``$XDG_CONFIG_HOME/ai-cli/preferences.json``
4. Built-in defaults

Everything is resolved once, at startup, into a frozen ``AppConfig``; the
response pipeline never reads configuration on its own.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from dotenv import load_dotenv

from aicli.pipeline import DEFAULT_MAX_OUTPUT_TOKENS, PipelineConfig
from aicli.plugins.model_provider.catalog import DEFAULT_MODEL, get_capability
from aicli.plugins.model_provider.types import ToolCategoryPreference

logger = logging.getLogger(__name__)

APP_DIR_NAME = "ai-cli"
PREFERENCES_FILENAME = "preferences.json"
MCP_CONFIG_FILENAME = "mcp-config.json"

ENV_MODEL = "AICLI_MODEL"
ENV_TOOLSET = "AICLI_TOOLSET"
ENV_MAX_TOKENS = "AICLI_MAX_TOKENS"
ENV_MCP_CONFIG_PATH = "MCP_CONFIG_PATH"

DEFAULT_TOOLSET = ToolCategoryPreference.EXTERNAL


class ConfigError(ValueError):
    """A configuration value given by the user cannot be used."""


# ==================== Paths ====================

def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/ai-cli``, falling back to ``~/.config/ai-cli``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_DIR_NAME


def get_preferences_path() -> Path:
    return get_config_dir() / PREFERENCES_FILENAME


def get_mcp_config_path() -> Path:
    """MCP server config file; ``MCP_CONFIG_PATH`` overrides the default."""
    override = os.environ.get(ENV_MCP_CONFIG_PATH)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / MCP_CONFIG_FILENAME


def load_env_file(env_file: str = ".env") -> bool:
    """Load a ``.env`` file into the environment without overriding it."""
    loaded = load_dotenv(env_file)
    if loaded:
        logger.debug("Loaded environment from %s", env_file)
    return loaded


# ==================== Preferences ====================

@dataclass
class Preferences:
    """Stored user defaults.

    Attributes:
        default_model: Model used when no flag or env var picks one.
        default_toolset: Tool category used when no flag or env var picks one.
        last_updated: ISO timestamp of the last save.
    """
    default_model: str = DEFAULT_MODEL
    default_toolset: ToolCategoryPreference = DEFAULT_TOOLSET
    last_updated: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Preferences":
        """Build from the stored JSON object; missing or bad keys get defaults."""
        prefs = cls()
        model = data.get("defaultModel")
        if isinstance(model, str) and model.strip():
            prefs.default_model = model.strip()
        toolset = data.get("defaultToolset")
        if toolset is not None:
            try:
                prefs.default_toolset = ToolCategoryPreference.parse(toolset)
            except ValueError as e:
                logger.warning(f"Ignoring stored toolset: {e}")
        last_updated = data.get("lastUpdated")
        if isinstance(last_updated, str):
            prefs.last_updated = last_updated
        return prefs

    def to_dict(self) -> dict:
        return {
            "defaultModel": self.default_model,
            "defaultToolset": self.default_toolset.value,
            "lastUpdated": self.last_updated,
        }


def load_preferences(path: Optional[Path] = None) -> Preferences:
    """Load preferences; a missing or unreadable file yields defaults."""
    prefs_path = path or get_preferences_path()
    try:
        if prefs_path.exists():
            with open(prefs_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                return Preferences.from_dict(data)
            logger.warning(f"Ignoring preferences file {prefs_path}: not a JSON object")
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to load preferences: {e}")
    return Preferences()


def save_preferences(prefs: Preferences, path: Optional[Path] = None) -> bool:
    """Write preferences, stamping ``last_updated``.

    Returns:
        True if saved successfully, False otherwise.
    """
    prefs_path = path or get_preferences_path()
    prefs.last_updated = datetime.now(timezone.utc).isoformat()
    try:
        prefs_path.parent.mkdir(parents=True, exist_ok=True)
        with open(prefs_path, "w", encoding="utf-8") as f:
            json.dump(prefs.to_dict(), f, indent=2)
        logger.info(f"Saved preferences to {prefs_path}")
        return True
    except OSError as e:
        logger.warning(f"Failed to save preferences: {e}")
        return False


def set_default_model(model: str, path: Optional[Path] = None) -> Preferences:
    prefs = load_preferences(path)
    prefs.default_model = model
    save_preferences(prefs, path)
    return prefs


def set_default_toolset(toolset: str, path: Optional[Path] = None) -> Preferences:
    """Persist a default toolset.

    Raises:
        ValueError: ``toolset`` names no known category.
    """
    prefs = load_preferences(path)
    prefs.default_toolset = ToolCategoryPreference.parse(toolset)
    save_preferences(prefs, path)
    return prefs


# ==================== Resolved config ====================

@dataclass(frozen=True)
class AppConfig:
    """Immutable configuration for one CLI run."""
    model: str = DEFAULT_MODEL
    toolset: ToolCategoryPreference = DEFAULT_TOOLSET
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    mcp_config_path: Path = field(default_factory=get_mcp_config_path)
    system_prompt: Optional[str] = None
    verbose: bool = False

    @classmethod
    def resolve(
        cls,
        args: Any = None,
        env: Optional[Mapping[str, str]] = None,
        preferences: Optional[Preferences] = None,
    ) -> "AppConfig":
        """Merge flags, environment and preferences.

        Args:
            args: argparse namespace (attributes ``model``, ``toolset``,
                ``max_tokens``, ``system``, ``verbose``; all optional).
            env: Environment mapping; defaults to ``os.environ``.
            preferences: Stored preferences; loaded from disk when None.

        Raises:
            ConfigError: A flag or environment value is invalid.
        """
        env = os.environ if env is None else env
        prefs = preferences if preferences is not None else load_preferences()

        model = (
            getattr(args, "model", None)
            or env.get(ENV_MODEL)
            or prefs.default_model
            or DEFAULT_MODEL
        )

        raw_toolset = getattr(args, "toolset", None) or env.get(ENV_TOOLSET)
        if raw_toolset:
            try:
                toolset = ToolCategoryPreference.parse(raw_toolset)
            except ValueError as e:
                raise ConfigError(str(e)) from None
        else:
            toolset = prefs.default_toolset

        max_tokens = getattr(args, "max_tokens", None)
        if max_tokens is None and env.get(ENV_MAX_TOKENS):
            max_tokens = _parse_positive_int(env[ENV_MAX_TOKENS], ENV_MAX_TOKENS)
        if max_tokens is None:
            max_tokens = DEFAULT_MAX_OUTPUT_TOKENS
        elif max_tokens <= 0:
            raise ConfigError(f"max tokens must be positive, got {max_tokens}")

        override = env.get(ENV_MCP_CONFIG_PATH)
        mcp_path = Path(override).expanduser() if override else get_config_dir() / MCP_CONFIG_FILENAME

        config = cls(
            model=model,
            toolset=toolset,
            max_output_tokens=max_tokens,
            mcp_config_path=mcp_path,
            system_prompt=getattr(args, "system", None),
            verbose=bool(getattr(args, "verbose", False)),
        )
        logger.debug("Resolved config: %s", config)
        return config

    @property
    def uses_external_tools(self) -> bool:
        """True when the resolver may send MCP tools.

        Models outside the catalog fall back to external tools whatever
        the toolset, so their MCP servers are needed too.
        """
        return self.toolset is ToolCategoryPreference.EXTERNAL or get_capability(self.model) is None

    def to_pipeline_config(
        self,
        external_tools: Tuple[Any, ...] = (),
        system_instruction: Optional[str] = None,
    ) -> PipelineConfig:
        return PipelineConfig(
            model=self.model,
            toolset=self.toolset,
            external_tools=tuple(external_tools),
            system_instruction=system_instruction,
            max_output_tokens=self.max_output_tokens,
        )


def _parse_positive_int(value: str, name: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{value}'") from None
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number
