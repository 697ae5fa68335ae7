"""Settings loader combining ``conf/studio.yaml`` with environment overrides."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .. import logging_manager

logger = logging_manager.get_logger().getChild("config")

CONFIG_PATH_ENV = "STUDIO_CONFIG_FILE"
_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "conf" / "studio.yaml"


class StudioSettings(BaseModel):
    """Typed representation of the service configuration."""

    model_config = ConfigDict(extra="ignore")

    # Remote command server running the production pipeline.
    remote_server_url: str = "http://localhost:5000"
    remote_api_key: Optional[SecretStr] = None
    remote_timeout_seconds: float = 30.0
    remote_health_timeout_seconds: float = 5.0
    pipeline_script: str = "python3 b2vp*"
    validation_limit: int = 2
    production_limit: int = 5

    # Object storage.
    storage_backend: Literal["s3", "local"] = "local"
    storage_root: str = "storage"
    r2_account_id: Optional[str] = None
    r2_access_key_id: Optional[SecretStr] = None
    r2_secret_access_key: Optional[SecretStr] = None
    r2_bucket_name: str = "studio-files"
    s3_endpoint_url: Optional[str] = None
    signed_url_ttl_seconds: int = 3600

    # Pronunciation dictionary provider.
    elevenlabs_api_key: Optional[SecretStr] = None
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1"
    elevenlabs_timeout_seconds: float = 30.0
    master_dictionary_name: str = "studio_master_dictionary"
    master_dictionary_id: Optional[str] = None

    database_url: Optional[SecretStr] = None

    # Polling, watchers and backoff.
    status_poll_interval_seconds: float = 5.0
    storyboard_settle_seconds: float = 3.0
    completion_initial_delay_seconds: float = 6.0
    completion_check_interval_seconds: float = 5.0
    completion_timeout_seconds: float = 600.0
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 240.0

    # Backend health monitoring and admin alerts.
    health_monitor_enabled: bool = False
    health_check_interval_seconds: float = 60.0
    health_max_consecutive_failures: int = 3
    admin_email: str = "admin@example.com"

    def limit_for_mode(self, mode: str) -> int:
        return self.production_limit if mode == "production" else self.validation_limit

    def secret(self, name: str) -> Optional[str]:
        value = getattr(self, name, None)
        if isinstance(value, SecretStr):
            return value.get_secret_value() or None
        return value or None


class EnvironmentOverrides(BaseSettings):
    """Configuration overrides sourced from environment variables."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    remote_server_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("REMOTE_SERVER_URL", "STUDIO_REMOTE_SERVER_URL")
    )
    remote_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("REMOTE_API_KEY", "STUDIO_REMOTE_API_KEY")
    )
    storage_backend: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("STUDIO_STORAGE_BACKEND")
    )
    storage_root: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("STUDIO_STORAGE_ROOT")
    )
    r2_account_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("R2_ACCOUNT_ID")
    )
    r2_access_key_id: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("R2_ACCESS_KEY_ID")
    )
    r2_secret_access_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("R2_SECRET_ACCESS_KEY")
    )
    r2_bucket_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("R2_BUCKET_NAME")
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("STUDIO_S3_ENDPOINT_URL")
    )
    elevenlabs_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("ELEVEN_API_KEY", "ELEVENLABS_API_KEY")
    )
    master_dictionary_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("STUDIO_MASTER_DICTIONARY_ID")
    )
    database_url: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("DATABASE_URL", "STUDIO_DATABASE_URL")
    )
    admin_email: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("STUDIO_ADMIN_EMAIL")
    )
    health_monitor_enabled: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("STUDIO_HEALTH_MONITOR")
    )


def _load_environment_overrides() -> Dict[str, Any]:
    """Return configuration overrides sourced from environment variables."""

    try:
        overrides = EnvironmentOverrides()
    except ValidationError as exc:
        logger.warning(
            "Invalid environment configuration detected; using file values.",
            extra={"event": "config.env.validation_error", "error": str(exc)},
        )
        return {}
    return overrides.model_dump(exclude_none=True)


def _read_config_file(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        logger.debug(
            "Configuration file %s not found; using defaults.",
            path,
            extra={"event": "config.file.missing"},
        )
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"{path} must contain a mapping of settings")
    return payload


def load_settings(
    path: Optional[Path | str] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
) -> StudioSettings:
    """Load and validate settings from disk, the environment and ``overrides``."""

    config_path = Path(path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    payload: Dict[str, Any] = dict(_read_config_file(config_path))
    payload.update(_load_environment_overrides())
    if overrides:
        payload.update(overrides)
    return StudioSettings.model_validate(payload)


@lru_cache(maxsize=1)
def get_settings() -> StudioSettings:
    """Return the cached service settings."""

    return load_settings()


__all__ = ["EnvironmentOverrides", "StudioSettings", "get_settings", "load_settings"]
