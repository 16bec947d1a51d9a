"""
Configuration models for shiplog using Pydantic v2 Settings.

``TransportConfig`` holds everything the batching transport needs and can be
built directly in code. ``Settings`` layers environment loading on top
(``SHIPLOG_`` prefix, ``__`` as the nested delimiter) and honours the
``PARSEABLE_*`` variables older deployments already export.
"""

from __future__ import annotations

import os
from typing import Any, Literal, Mapping, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .._version import __version__

DEFAULT_ENDPOINT_URL = "http://parseable:8000"
DEFAULT_STREAM = "n8n-logs"

# Legacy deployment variables -> TransportConfig field
PARSEABLE_ENV_ALIASES: dict[str, str] = {
    "PARSEABLE_URL": "endpoint_url",
    "PARSEABLE_USERNAME": "username",
    "PARSEABLE_PASSWORD": "password",
    "PARSEABLE_STREAM": "stream",
}

LevelName = Literal[
    "TRACE",
    "DEBUG",
    "INFO",
    "WARN",
    "WARNING",
    "ERROR",
    "FATAL",
    "CRITICAL",
]


class TransportConfig(BaseModel):
    """Options recognised by :class:`~shiplog.transport.ParseableTransport`.

    ``endpoint_url`` is a plain string. A malformed URL does not fail
    construction; the transport reports it and degrades instead.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    endpoint_url: str = Field(
        default=DEFAULT_ENDPOINT_URL,
        description="Base URL of the log ingestion service",
    )
    username: str = Field(default="admin", description="Basic auth username")
    password: SecretStr = Field(
        default=SecretStr("admin"), description="Basic auth password"
    )
    stream: str = Field(
        default=DEFAULT_STREAM,
        min_length=1,
        description="Destination stream stamped on every request",
    )
    batch_size: int = Field(
        default=5,
        ge=1,
        description="Number of buffered events that triggers an immediate flush",
    )
    flush_interval_ms: int = Field(
        default=3000,
        ge=1,
        description="Maximum time a non-empty batch waits before being flushed",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Failed attempts before a batch remainder is abandoned",
    )
    retry_tail_size: int = Field(
        default=3,
        ge=0,
        description="Most recent events of a failed batch kept for the next attempt",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Fixed timeout for each delivery request",
    )
    max_queue_size: int = Field(
        default=10_000,
        ge=1,
        description="Hard bound on buffered events; further events are dropped",
    )
    service_name: str = Field(
        default="shiplog", description="OTLP resource service.name"
    )
    resource_attributes: dict[str, str] = Field(
        default_factory=dict,
        description="Extra OTLP resource attributes",
    )
    scope_name: str = Field(default="shiplog", description="OTLP instrumentation scope")
    scope_version: str = Field(default=__version__)
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra request headers (cannot override protocol headers)",
    )

    @field_validator("headers", "resource_attributes", mode="before")
    @classmethod
    def _coerce_str_mapping(cls, value: Mapping[str, Any] | None) -> dict[str, str]:
        if value is None:
            return {}
        return {str(k): str(v) for k, v in dict(value).items()}

    @property
    def flush_interval_seconds(self) -> float:
        return self.flush_interval_ms / 1000.0

    def redacted(self) -> dict[str, Any]:
        """JSON-ready dump with the password masked."""
        data = self.model_dump(mode="json")
        data["password"] = "***"
        return data


class CoreSettings(BaseModel):
    """Process-level behaviour shared by every transport and logger."""

    app_name: str = Field(default="shiplog", description="Logical application name")
    log_level: LevelName = Field(
        default="INFO",
        description="Minimum level forwarded by logger facades",
    )
    internal_logging_enabled: bool = Field(
        default=True,
        description="Emit transport diagnostics to stderr",
    )
    diagnostics_level: Literal["DEBUG", "INFO", "WARN"] = Field(
        default="INFO",
        description="Lowest diagnostics level written when enabled",
    )
    enable_metrics: bool = Field(
        default=False,
        description="Mirror transport counters into Prometheus metrics",
    )
    atexit_close_enabled: bool = Field(
        default=True,
        description="Close live transports from an atexit hook",
    )
    atexit_close_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Upper bound for each transport close at interpreter exit",
    )

    @field_validator("app_name")
    @classmethod
    def _ensure_app_name_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("app_name must not be empty")
        return value


class Settings(BaseSettings):
    """Top-level configuration loaded from the environment."""

    core: CoreSettings = Field(default_factory=CoreSettings)
    transport: TransportConfig = Field(default_factory=TransportConfig)

    model_config = SettingsConfigDict(
        env_prefix="SHIPLOG_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _apply_parseable_env_aliases(self) -> Settings:
        """Fill transport fields from ``PARSEABLE_*`` when not set explicitly."""
        updates: dict[str, Any] = {}
        for env_name, field_name in PARSEABLE_ENV_ALIASES.items():
            raw = os.getenv(env_name)
            if raw is None or not raw.strip():
                continue
            if field_name in self.transport.model_fields_set:
                continue
            updates[field_name] = raw.strip()
        if updates:
            merged = self.transport.model_dump()
            merged["password"] = self.transport.password.get_secret_value()
            merged.update(updates)
            self.transport = TransportConfig(**merged)
        return self

    def to_transport_config(self) -> TransportConfig:
        return self.transport

    def to_dict(self) -> dict[str, object]:
        return {
            "core": self.core.model_dump(mode="json"),
            "transport": self.transport.redacted(),
        }


M = TypeVar("M", bound=BaseModel)


def parse_config(
    model: type[M], config: M | Mapping[str, Any] | None = None, **overrides: Any
) -> M:
    """Accept a model instance, a mapping or nothing, plus keyword overrides."""
    if isinstance(config, model):
        if not overrides:
            return config
        data = config.model_dump()
        for name, value in data.items():
            if isinstance(value, SecretStr):
                data[name] = value.get_secret_value()
        data.update(overrides)
        return model(**data)
    data = dict(config or {})
    data.update(overrides)
    return model(**data)
