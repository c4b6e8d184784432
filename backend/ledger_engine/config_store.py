"""Config store: env, an optional config file (master over env) and pushed overrides.

The file may be flat (``delivery_token_ttl_hours: 24``) or grouped by
section, in which case section and key are joined with an underscore::

    delivery:
      token_prefix: KAMPAY
      token_ttl_hours: 24
    surprise_box:
      cost: 50
"""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

logger = logging.getLogger(__name__)

_LOADERS: dict[str, Callable[[str], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML or JSON config file into flat settings keys. Unusable files yield {}."""
    if not path.exists():
        logger.debug("Config file not found: %s (optional; using env/defaults)", path)
        return {}
    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        logger.warning("Config file must be .yaml, .yml, or .json: %s", path)
        return {}
    try:
        data = loader(path.read_text())
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.warning("Could not load config file %s: %s", path, e)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file must contain a mapping; got %s", type(data).__name__)
        return {}
    return _flatten(data)


class ConfigStore:
    """Builds the Settings snapshot. Precedence: overrides > config file > env > defaults.

    A rebuild that fails validation keeps the previous snapshot, so a bad push
    or a half-written file never takes the engine's TTL or costs away.
    """

    def __init__(self, settings_cls: type, config_file_path: Optional[str] = None):
        self._settings_cls = settings_cls
        self._file_path = Path(config_file_path).expanduser().resolve() if config_file_path else None
        self._overrides: dict[str, Any] = {}
        self._current: Optional[Any] = None
        self._lock = threading.RLock()

    def _build(self, overrides: dict[str, Any]) -> Any:
        env_values = self._settings_cls().model_dump()
        file_values = read_config_file(self._file_path) if self._file_path else {}
        if file_values:
            unknown = sorted(set(file_values) - set(env_values))
            if unknown:
                logger.warning("Ignoring unknown config keys in %s: %s", self._file_path, ", ".join(unknown))
        return self._settings_cls(**{**env_values, **file_values, **overrides})

    def _rebuild(self, overrides: dict[str, Any], action: str) -> bool:
        try:
            self._current = self._build(overrides)
        except ValueError as e:
            if self._current is None:
                raise
            logger.warning("Config %s failed validation; keeping previous config: %s", action, e)
            return False
        return True

    def load_initial(self) -> None:
        """Build the first snapshot. Call once at startup."""
        with self._lock:
            self._rebuild(self._overrides, "load")
            if self._file_path and self._file_path.exists():
                logger.info("Loaded config file (master over env): %s", self._file_path)

    def get_settings(self) -> Any:
        with self._lock:
            if self._current is None:
                self.load_initial()
            return self._current

    def update(self, overrides: dict[str, Any]) -> bool:
        """Push overrides on top of file and env. Returns False (and changes nothing) if they do not validate."""
        with self._lock:
            self.get_settings()
            merged = {**self._overrides, **overrides}
            if self._rebuild(merged, "update"):
                self._overrides = merged
                return True
            return False

    def reload_from_file(self) -> bool:
        """Re-read the config file, keeping pushed overrides."""
        with self._lock:
            return self._rebuild(self._overrides, "reload")

    def clear_overrides(self) -> None:
        with self._lock:
            self._overrides = {}
            self._rebuild(self._overrides, "reset")
