"""
Application settings.

Layered YAML configuration validated with pydantic:

1. ``configuration/base.yaml``
2. ``configuration/<APP_ENVIRONMENT>.yaml`` (``local`` when unset)
3. ``APP_<SECTION>__<KEY>`` environment variables, e.g. ``APP_APPLICATION__PORT=5001``
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_CONFIG_DIR = Path("configuration")
ENVIRONMENTS = ("local", "production")
ENV_PREFIX = "APP_"


class ApplicationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = 8000
    base_url: str = "http://127.0.0.1:8000"
    hashing_workers: int = Field(default=2, ge=1)


class DatabaseSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = "data/postbox.db"
    migrations_dir: str = "migrations"
    max_connections: int = Field(default=5, ge=1)
    acquire_timeout_seconds: float = Field(default=2.0, gt=0)
    busy_timeout_ms: int = Field(default=5000, ge=0)

    @field_validator("path")
    @classmethod
    def path_must_be_a_file(cls, v: str) -> str:
        # Every pooled connection opens its own database, so it has to live on disk
        if not v.strip() or v.strip() == ":memory:" or "mode=memory" in v:
            raise ValueError(
                "database.path must point to a file; in-memory databases are not shared"
            )
        return v


class EmailClientSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: Literal["http", "dev"] = "dev"
    base_url: str = "http://localhost:8025"
    sender_email: str = "newsletter@example.com"
    sender_name: str | None = None
    authorization_token: str = Field(default="", repr=False)
    timeout_milliseconds: int = Field(default=10000, gt=0)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_milliseconds / 1000


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    name: str = "postbox"


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    application: ApplicationSettings = Field(default_factory=ApplicationSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    email_client: EmailClientSettings = Field(default_factory=EmailClientSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``APP_<SECTION>__<KEY>`` variables into a nested mapping."""
    overrides: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX) or "__" not in name:
            continue
        section, _, key = name[len(ENV_PREFIX) :].lower().partition("__")
        if section and key:
            overrides.setdefault(section, {})[key] = value
    return overrides


def load_settings(
    config_dir: Path | None = None,
    environment: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load and validate settings.

    Raises FileNotFoundError if base.yaml is missing.
    Raises ValueError for an unknown environment or an invalid schema.
    """
    env = os.environ if environ is None else environ
    directory = config_dir or Path(env.get("APP_CONFIG_DIR", DEFAULT_CONFIG_DIR))
    environment = (environment or env.get("APP_ENVIRONMENT", "local")).lower()

    if environment not in ENVIRONMENTS:
        raise ValueError(
            f"{environment} is not a supported environment. "
            f"Use either {' or '.join(repr(e) for e in ENVIRONMENTS)}."
        )

    base_path = directory / "base.yaml"
    if not base_path.exists():
        raise FileNotFoundError(f"Configuration file not found at: {base_path}")

    data = _read_yaml(base_path)
    env_path = directory / f"{environment}.yaml"
    if env_path.exists():
        data = _deep_merge(data, _read_yaml(env_path))
    data = _deep_merge(data, env_overrides(env))

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed:\n{e}") from e
