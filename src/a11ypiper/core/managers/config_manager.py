# src/a11ypiper/core/managers/config_manager.py
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from a11ypiper.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


class ConfigError(ValueError):
    """An override that cannot be applied to the loaded settings."""


class ConfigManager:
    """
    Process-wide settings: the package's settings.json plus the per-run
    overrides given on the command line (`--set crawler.max_pages=20`).

    Overrides only live in memory; `reset()` reloads the file and drops them.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._config = {}
            cls._instance.overrides = {}
            cls._instance.reset()
        return cls._instance

    @staticmethod
    def _read_settings(path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path.name} must hold a JSON object, got {type(data).__name__}")
        return data

    def reset(self) -> None:
        """Reloads settings.json and forgets every override."""
        self.overrides: Dict[str, Any] = {}
        path = PathUtils.get_settings_file()
        if not path.exists():
            logger.warning("No settings file at %s; running with built-in defaults.", path)
            self._config: Dict[str, Any] = {}
            return
        try:
            self._config = self._read_settings(path)
        except (OSError, ValueError) as e:
            logger.error("Could not load %s: %s", path, e)
            self._config = {}
            return
        logger.debug("Loaded %d settings sections from %s.", len(self._config), path)

    def get_all(self) -> Dict[str, Any]:
        return self._config

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of the current settings, safe to adjust for a single run."""
        return copy.deepcopy(self._config)

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """Dotted lookup, e.g. 'crawler.whole_site_depth'."""
        node: Any = self._config
        for key in key_path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return default if node is None else node

    @staticmethod
    def _cast(current: Any, raw: Any) -> Any:
        """Converts a command-line string to the type of the setting it replaces."""
        if not isinstance(raw, str) or current is None or isinstance(current, str):
            return raw
        text = raw.strip()
        if isinstance(current, bool):
            if text.lower() in _TRUTHY:
                return True
            if text.lower() in _FALSY:
                return False
            raise ConfigError(f"expected a boolean, got '{raw}'")
        if isinstance(current, (int, float)):
            try:
                return type(current)(text)
            except ValueError:
                raise ConfigError(f"expected {type(current).__name__}, got '{raw}'") from None
        try:
            value = json.loads(text)
        except ValueError:
            raise ConfigError(f"expected JSON {type(current).__name__}, got '{raw}'") from None
        if not isinstance(value, type(current)):
            raise ConfigError(f"expected JSON {type(current).__name__}, got '{raw}'")
        return value

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Overrides one setting in memory, casting `value` to the type of the
        setting it replaces. Returns False (and changes nothing) when the key
        runs through a non-section or the value does not fit.
        """
        *sections, leaf = key_path.split(".")
        node = self._config
        for key in sections:
            node = node.setdefault(key, {})
            if not isinstance(node, dict):
                logger.error("Cannot set '%s': '%s' is not a section.", key_path, key)
                return False
        try:
            node[leaf] = self._cast(node.get(leaf), value)
        except ConfigError as e:
            logger.error("Cannot set '%s': %s", key_path, e)
            return False

        self.overrides[key_path] = node[leaf]
        logger.info("Setting overridden: %s = %r", key_path, node[leaf])
        return True

    def apply_overrides(self, assignments: Iterable[str]) -> List[str]:
        """
        Applies 'key.path=value' assignments in order.

        Returns:
            The assignments that were rejected; empty when all were applied.
        """
        rejected = []
        for assignment in assignments:
            key_path, sep, value = assignment.partition("=")
            if not sep or not key_path.strip() or not self.set_nested(key_path.strip(), value):
                rejected.append(assignment)
        return rejected


# The global singleton instance that the entire application will use.
config_manager = ConfigManager()
