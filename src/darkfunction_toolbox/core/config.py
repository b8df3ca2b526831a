"""ConfigManager: global and per-tool settings backed by TOML files."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from darkfunction_toolbox.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "DARKFUNCTION_TOOLBOX_CONFIG"

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "darkfunction-toolbox"

# Built-in values used when no config file provides the key.
DEFAULTS: dict[str, Any] = {
    "delay_scale": 100,
    "speed": 1.0,
    "step_ms": 16.0,
    "duration_ms": 2000.0,
    "enforce_loops": False,
}


def default_config_dir() -> Path:
    """Return the config directory, honouring ``$DARKFUNCTION_TOOLBOX_CONFIG``."""
    value = os.environ.get(CONFIG_DIR_ENV)
    return Path(value) if value else _DEFAULT_CONFIG_DIR


class ConfigManager:
    """Hierarchical configuration: built-in defaults < ``config.toml`` < ``tools/<tool>.toml``.

    Layout on disk::

        <config_dir>/config.toml
        <config_dir>/tools/animation_player.toml

    Args:
        config_dir: Root directory for configuration files.  Defaults to
            ``$DARKFUNCTION_TOOLBOX_CONFIG`` or ``~/.config/darkfunction-toolbox/``.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir = config_dir or default_config_dir()
        self._global: dict[str, Any] = {}
        self._per_tool: dict[str, dict[str, Any]] = {}

    @property
    def config_dir(self) -> Path:
        """Return the configuration directory path."""
        return self._config_dir

    def load(self) -> None:
        """Load global and per-tool config from ``config_dir``.

        Missing files are silently skipped.

        Raises:
            ValidationError: If a file is not valid TOML.
        """
        global_file = self._config_dir / "config.toml"
        if global_file.is_file():
            self._global = self._read_toml(global_file)
            logger.info("Loaded global config from %s", global_file)

        tools_dir = self._config_dir / "tools"
        if tools_dir.is_dir():
            for toml_file in sorted(tools_dir.glob("*.toml")):
                tool_name = toml_file.stem
                self._per_tool[tool_name] = self._read_toml(toml_file)
                logger.info("Loaded config for tool '%s'", tool_name)

    def get(self, key: str, *, tool: str | None = None, default: Any = None) -> Any:
        """Retrieve a config value with optional tool-level override.

        Args:
            key: The configuration key.
            tool: If given, check the tool-specific config first.
            default: Fallback when neither file nor ``DEFAULTS`` has the key.

        Returns:
            The configuration value, or *default*.
        """
        if tool and tool in self._per_tool:
            value = self._per_tool[tool].get(key)
            if value is not None:
                return value
        if key in self._global:
            return self._global[key]
        return DEFAULTS.get(key, default)

    def set_global(self, key: str, value: Any) -> None:
        """Set a global configuration value (in-memory only)."""
        self._global[key] = value

    def tool_settings(self, tool: str) -> dict[str, Any]:
        """Return every known key merged for *tool* (defaults < global < per-tool)."""
        merged = {**DEFAULTS, **self._global}
        merged.update({key: value for key, value in self._per_tool.get(tool, {}).items() if value is not None})
        return merged

    @staticmethod
    def _read_toml(path: Path) -> dict[str, Any]:
        try:
            with path.open("rb") as fh:
                return tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {path}: {exc}"
            raise ValidationError(msg) from exc
