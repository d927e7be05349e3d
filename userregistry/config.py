"""Configuration management for the user registry service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path

_ENV_OVERRIDES = {
    "USER_REGISTRY_DB_PATH": "database_path",
    "USER_REGISTRY_HOST": "host",
    "USER_REGISTRY_PORT": "port",
    "USER_REGISTRY_LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the service and its command-line tools."""

    database_path: Path
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        allowed = {"database_path", "host", "port", "log_level"}
        unknown = set(data.keys()) - allowed
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        return Settings(
            database_path=database_path,
            host=str(data.get("host", "0.0.0.0")),
            port=int(data.get("port", 8080)),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )


def _apply_env_overrides(settings: Settings, environ: Mapping[str, str]) -> Settings:
    overrides: Dict[str, object] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or not value.strip():
            continue
        value = value.strip()
        if field_name == "database_path":
            overrides[field_name] = resolve_database_path(value)
        elif field_name == "port":
            try:
                overrides[field_name] = int(value)
            except ValueError as exc:
                raise ValueError(f"{env_name} must be an integer, got {value!r}") from exc
        elif field_name == "log_level":
            overrides[field_name] = value.upper()
        else:
            overrides[field_name] = value
    if not overrides:
        return settings
    return replace(settings, **overrides)


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    if environ is None:
        environ = os.environ

    raw: object = {}
    base_path: Path | None = None
    if config_path is not None and config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        base_path = config_path.parent

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping of settings")

    settings = Settings.from_dict(raw, base_path=base_path)
    return _apply_env_overrides(settings, environ)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "settings.yaml").resolve(strict=False)
    return candidate


__all__ = ["Settings", "load_settings", "resolve_config_path"]
