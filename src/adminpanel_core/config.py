from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

CONFIG_PATH_ENV = "ADMINPANEL_CONFIG"


class NetworkConfig(BaseModel):
    bind_host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=1, le=65535)


class AuthConfig(BaseModel):
    admin_password: str | None = Field(default=None)
    session_secret: str | None = Field(
        default=None,
        description="HMAC key for session tokens; a random key is generated per process if unset",
    )
    session_max_age_s: int = Field(default=60 * 60 * 24, ge=60)
    cookie_secure: bool = Field(default=False)


class UpstreamConfig(BaseModel):
    base_url: str | None = Field(default=None)
    api_key: str | None = Field(default=None)
    requires_api_key_for_health: bool = Field(default=True)
    requires_api_key_for_data: bool = Field(default=True)

    @field_validator("base_url", "api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.rstrip("/") or None


class PlanControllerUpstreamConfig(UpstreamConfig):
    # Health endpoint is public unless configured otherwise.
    requires_api_key_for_health: bool = Field(default=False)


class UpstreamsConfig(BaseModel):
    shared_variables: UpstreamConfig = Field(default_factory=UpstreamConfig)
    plan_controller: PlanControllerUpstreamConfig = Field(
        default_factory=PlanControllerUpstreamConfig
    )


class ProxyConfig(BaseModel):
    timeout_s: float = Field(default=10.0, gt=0, description="Per-call upstream timeout")
    api_key_header: str = Field(default="x-api-key")


class HealthConfig(BaseModel):
    poll_interval_s: int = Field(default=30, ge=1)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    file: str | None = Field(default=None, description="Optional rotating log file path")
    max_size_mb: int = Field(
        default=10, ge=1, description="Max size of a log file in MB before rolling."
    )
    backup_count: int = Field(default=5, ge=1, description="Number of log archives to keep.")


class CoreConfig(BaseModel):
    version: str = Field(default="1")
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    upstreams: UpstreamsConfig = Field(default_factory=UpstreamsConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Environment variable -> dotted config path.
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "SHARED_VARIABLES_SERVICE_URL": ("upstreams", "shared_variables", "base_url"),
    "SHARED_VARIABLES_SERVICE_API_KEY": ("upstreams", "shared_variables", "api_key"),
    "PLAN_CONTROLLER_SERVICE_URL": ("upstreams", "plan_controller", "base_url"),
    "PLAN_CONTROLLER_SERVICE_API_KEY": ("upstreams", "plan_controller", "api_key"),
    "PLAN_CONTROLLER_HEALTH_REQUIRES_API_KEY": (
        "upstreams",
        "plan_controller",
        "requires_api_key_for_health",
    ),
    "NEXT_PUBLIC_ADMIN_PASSWORD": ("auth", "admin_password"),
    "ADMIN_PASSWORD": ("auth", "admin_password"),
    "ADMINPANEL_SESSION_SECRET": ("auth", "session_secret"),
    "ADMINPANEL_SESSION_MAX_AGE_S": ("auth", "session_max_age_s"),
    "ADMINPANEL_COOKIE_SECURE": ("auth", "cookie_secure"),
    "ADMINPANEL_UPSTREAM_TIMEOUT_S": ("proxy", "timeout_s"),
    "ADMINPANEL_HEALTH_POLL_S": ("health", "poll_interval_s"),
    "ADMINPANEL_BIND": ("network", "bind_host"),
    "ADMINPANEL_PORT": ("network", "port"),
    "ADMINPANEL_LOG_FILE": ("logging", "file"),
    "ADMINPANEL_LOG_LEVEL": ("logging", "level"),
}


def _read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config format at {path}")
    return data


def _set_path(raw: dict[str, Any], keys: tuple[str, ...], value: str) -> None:
    node = raw
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = value


def load_core_config(environ: dict[str, str] | None = None) -> CoreConfig:
    """Load config from an optional JSON file plus environment overrides.

    - ``ADMINPANEL_CONFIG`` may point to a JSON file; missing means defaults.
    - Upstream URLs, API keys and the admin password come from the environment.
    - Validation is performed by Pydantic.
    """

    env = os.environ if environ is None else environ

    raw: dict[str, Any] = {}
    config_file = (env.get(CONFIG_PATH_ENV) or "").strip()
    if config_file:
        path = Path(config_file).expanduser()
        if path.exists():
            raw = _read_json(path)

    # Later entries win, so ADMIN_PASSWORD overrides the legacy public variable.
    for env_name, keys in ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is None or not value.strip():
            continue
        _set_path(raw, keys, value)

    return CoreConfig.model_validate(raw)
