"""Configuration management for the backoffice service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path

_FALSEY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the CLI and the web application."""

    database_path: Path
    session_secret: Optional[str] = None
    session_cookie: str = "backoffice_session"
    secure_cookies: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_db = data.get("database_path")
        if raw_db:
            db_path = Path(str(raw_db)).expanduser()
            if not db_path.is_absolute() and base_path is not None:
                db_path = base_path / db_path
            database_path = db_path.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        secret = data.get("session_secret")
        return Settings(
            database_path=database_path,
            session_secret=str(secret) if secret is not None else None,
            session_cookie=str(data.get("session_cookie", "backoffice_session")),
            secure_cookies=_parse_bool(data.get("secure_cookies", False)),
            host=str(data.get("host", "127.0.0.1")),
            port=int(data.get("port", 8000)),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )


_KNOWN_KEYS = {
    "database_path",
    "session_secret",
    "session_cookie",
    "secure_cookies",
    "host",
    "port",
    "log_level",
}


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in _FALSEY


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, object]:
    overrides: Dict[str, object] = {}
    if environ.get("BACKOFFICE_DB_PATH"):
        overrides["database_path"] = resolve_database_path(environ["BACKOFFICE_DB_PATH"])
    if environ.get("BACKOFFICE_SESSION_SECRET"):
        overrides["session_secret"] = environ["BACKOFFICE_SESSION_SECRET"]
    if environ.get("BACKOFFICE_SESSION_SECURE") is not None:
        overrides["secure_cookies"] = _parse_bool(environ["BACKOFFICE_SESSION_SECURE"])
    if environ.get("BACKOFFICE_HOST"):
        overrides["host"] = environ["BACKOFFICE_HOST"]
    if environ.get("BACKOFFICE_PORT"):
        overrides["port"] = int(environ["BACKOFFICE_PORT"])
    if environ.get("BACKOFFICE_LOG_LEVEL"):
        overrides["log_level"] = environ["BACKOFFICE_LOG_LEVEL"].upper()
    return overrides


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""
    if environ is None:
        environ = os.environ

    if config_path is None and environ.get("BACKOFFICE_CONFIG"):
        config_path = Path(environ["BACKOFFICE_CONFIG"]).expanduser()

    if config_path is not None:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")
        settings = Settings.from_dict(raw, base_path=config_path.parent)
    else:
        settings = Settings.from_dict({})

    return replace(settings, **_env_overrides(environ))


__all__ = ["Settings", "load_settings"]
