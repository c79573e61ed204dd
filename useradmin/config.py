"""Configuration management for the user administration service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .store import DEFAULT_COLLECTION_NAME, DEFAULT_DATABASE_NAME
from .templates import TEMPLATE_DIR

STATIC_DIR = Path(__file__).resolve().parent / "static"

DEFAULT_MONGO_URI = "mongodb://localhost:27017"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

_FILE_KEYS = {
    "mongo_uri",
    "database",
    "collection",
    "template_dir",
    "static_dir",
    "auto_reload_templates",
    "host",
    "port",
}

_ENV_KEYS: Dict[str, str] = {
    "USERADMIN_MONGO_URI": "mongo_uri",
    "USERADMIN_DATABASE": "database",
    "USERADMIN_COLLECTION": "collection",
    "USERADMIN_TEMPLATE_DIR": "template_dir",
    "USERADMIN_STATIC_DIR": "static_dir",
    "USERADMIN_TEMPLATE_RELOAD": "auto_reload_templates",
    "USERADMIN_HOST": "host",
    "USERADMIN_PORT": "port",
}


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the service."""

    mongo_uri: str = DEFAULT_MONGO_URI
    database: str = DEFAULT_DATABASE_NAME
    collection: str = DEFAULT_COLLECTION_NAME
    template_dir: Path = TEMPLATE_DIR
    static_dir: Path = STATIC_DIR
    auto_reload_templates: bool = False
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw mapping data, falling back to defaults."""

        unknown = set(data.keys()) - _FILE_KEYS
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        defaults = Settings()
        return Settings(
            mongo_uri=str(data.get("mongo_uri", defaults.mongo_uri)),
            database=str(data.get("database", defaults.database)),
            collection=str(data.get("collection", defaults.collection)),
            template_dir=_resolve_path(data.get("template_dir"), base_path, defaults.template_dir),
            static_dir=_resolve_path(data.get("static_dir"), base_path, defaults.static_dir),
            auto_reload_templates=_as_bool(data.get("auto_reload_templates", defaults.auto_reload_templates)),
            host=str(data.get("host", defaults.host)),
            port=int(data.get("port", defaults.port)),
        )


def _resolve_path(value: object, base_path: Path | None, default: Path) -> Path:
    if value is None or value == "":
        return default
    raw = Path(str(value)).expanduser()
    if raw.is_absolute():
        return raw.resolve(strict=False)
    if base_path is not None:
        return (base_path / raw).resolve(strict=False)
    return raw.resolve(strict=False)


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the path to the optional YAML configuration file."""
    if not env_value:
        return None
    return Path(env_value).expanduser().resolve(strict=False)


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from defaults, an optional YAML file and the environment."""

    env = os.environ if environ is None else environ

    if config_path is None:
        config_path = resolve_config_path(env.get("USERADMIN_CONFIG"))

    if config_path is not None:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        settings = Settings.from_dict(raw, base_path=config_path.parent)
    else:
        settings = Settings()

    overrides: Dict[str, object] = {}
    for env_name, key in _ENV_KEYS.items():
        value = env.get(env_name)
        if value is None or not value.strip():
            continue
        value = value.strip()
        if key in {"template_dir", "static_dir"}:
            overrides[key] = _resolve_path(value, None, getattr(settings, key))
        elif key == "auto_reload_templates":
            overrides[key] = _as_bool(value)
        elif key == "port":
            overrides[key] = int(value)
        else:
            overrides[key] = value

    if overrides:
        settings = replace(settings, **overrides)
    return settings


__all__ = ["Settings", "load_settings", "resolve_config_path"]
