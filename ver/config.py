"""Settings for where and how patches and blobs are stored.

Settings are resolved in layers, later layers winning:

1. built-in defaults
2. an optional ``ver.yaml`` in the storage root
3. ``VER_*`` environment variables
4. explicit keyword overrides (``None`` means "not given")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from ver.errors import ConfigError

CONFIG_FILE = "ver.yaml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

_ENV_KEYS = {
    "index_file": "VER_INDEX_FILE",
    "blob_dir": "VER_BLOB_DIR",
    "verify_blobs": "VER_VERIFY_BLOBS",
    "locking": "VER_LOCKING",
}


@dataclass(frozen=True)
class Settings:
    """Resolved storage settings."""

    root: Path = Path(".")
    index_file: str = "patches.json"
    blob_dir: str = "blobs"
    verify_blobs: bool = False
    locking: bool = True

    @property
    def index_path(self) -> Path:
        return self.root / self.index_file

    @property
    def blob_root(self) -> Path:
        return self.root / self.blob_dir

    @property
    def lock_path(self) -> Path:
        return self.root / f"{self.index_file}.lock"


def parse_bool(value: object, *, field_name: str) -> bool:
    """Interpret a YAML or environment value as a boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ConfigError(f"{field_name} must be a boolean, got {value!r}")


def _coerce(name: str, value: Any) -> Any:
    """Validate one setting value against its field type."""
    if name in ("verify_blobs", "locking"):
        return parse_bool(value, field_name=name)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{name} must be a non-empty string, got {value!r}")
    return value


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping of settings")

    known = {f.name for f in fields(Settings)} - {"root"}
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        raise ConfigError(f"Unknown settings in {path}: {', '.join(unknown)}")
    return {key: _coerce(key, value) for key, value in data.items()}


def _read_environment() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, env_key in _ENV_KEYS.items():
        raw = os.environ.get(env_key)
        if raw is not None:
            values[name] = _coerce(name, raw)
    return values


def load_settings(root: Optional[str | Path] = None, **overrides: Any) -> Settings:
    """Resolve settings for a storage root.

    ``root`` defaults to ``$VER_ROOT`` and then to the current directory.
    """
    if root is None:
        root = os.environ.get("VER_ROOT") or "."
    root_path = Path(root)

    settings = Settings(root=root_path)
    settings = replace(settings, **_read_config_file(root_path / CONFIG_FILE))
    settings = replace(settings, **_read_environment())

    known = {f.name for f in fields(Settings)} - {"root"}
    given: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}")
        if value is not None:
            given[key] = _coerce(key, value)
    return replace(settings, **given)
