"""Persisted configuration for nbi.

Holds the registry selection in ``config.json`` under ``NBI_CONFIG_DIR``
(default: ``~/.config/nbi``).  A missing file, or a missing key in it,
means "enabled".  The GitHub credential is never written here; it comes
from ``GITHUB_TOKEN`` only.

Usage::

    from nbi.config import load_config, save_config
    config = load_config()
    config.registries.toggle(RegistryKind.BREW)
    save_config(config)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from nbi.registry.base import RegistrySelection

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

_CONFIG_PATH: Path | None = None


class ConfigError(Exception):
    """Raised when the config file exists but cannot be read or parsed."""


def config_dir() -> Path:
    """Directory for config and log files."""
    env = os.environ.get("NBI_CONFIG_DIR")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".config" / "nbi"


def config_path() -> Path:
    if _CONFIG_PATH is not None:
        return _CONFIG_PATH
    return config_dir() / CONFIG_FILENAME


def set_config_path(path: str | Path | None) -> None:
    """Override the config file location (useful for tests). ``None`` resets it."""
    global _CONFIG_PATH
    _CONFIG_PATH = Path(path) if path is not None else None


@dataclass
class Config:
    registries: RegistrySelection = field(default_factory=RegistrySelection)

    def to_dict(self) -> dict[str, Any]:
        return {"registries": self.registries.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        registries = data.get("registries")
        if not isinstance(registries, dict):
            registries = None
        return cls(registries=RegistrySelection.from_dict(registries))


def load_config(path: str | Path | None = None) -> Config:
    """Read the config file; return defaults when it does not exist."""
    target = Path(path) if path is not None else config_path()
    if not target.exists():
        return Config()
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read {target}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Cannot read {target}: expected a JSON object")
    return Config.from_dict(data)


def load_config_or_default(path: str | Path | None = None) -> Config:
    """Like :func:`load_config` but falls back to defaults on a broken file."""
    try:
        return load_config(path)
    except ConfigError as exc:
        logger.warning("%s; using defaults", exc)
        return Config()


def save_config(config: Config, path: str | Path | None = None) -> None:
    """Write *config* atomically.  Raises ``OSError`` on failure."""
    target = Path(path) if path is not None else config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(target.name + ".tmp")
    tmp.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
    tmp.replace(target)
    logger.debug("Saved config to %s", target)


def save_selection(selection: RegistrySelection, path: str | Path | None = None) -> None:
    """Persist only the registry selection, keeping the rest of the file."""
    config = load_config_or_default(path)
    config.registries = selection.copy()
    save_config(config, path)
