"""Settings for the engine connection, the HTTP server, and logging.

Sources, highest precedence first: a YAML file passed to
:meth:`Settings.from_yaml`, ``DISTANT_``-prefixed environment variables
(nested with ``__``), an optional ``.env`` file, and the defaults below.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from distant.engine.exceptions import ConfigurationError
from distant.models.duration import Duration


class EngineSettings(BaseModel):
    """Where the search engine lives and how to authenticate against it."""

    hosts: list[str] = Field(
        default_factory=lambda: ["http://localhost:9200"],
        min_length=1,
        description="Engine node URLs; requests go to the first one",
    )
    username: str | None = Field(default=None, description="Basic-auth user")
    password: SecretStr | None = Field(default=None, description="Basic-auth password")
    api_key: SecretStr | None = Field(default=None, description="Encoded API key, sent as 'ApiKey <key>'")
    verify_certs: bool = Field(default=True, description="Verify the engine's TLS certificate")
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    scroll_keep_alive: Duration = Field(default="5m", description="How long the engine keeps a scroll context")
    default_index: str | None = Field(default=None, description="Index searched when the CLI is given none")

    @field_validator("hosts", mode="before")
    @classmethod
    def _split_hosts(cls, v: Any) -> Any:
        # Env vars arrive as a JSON list or a comma-separated string
        if not isinstance(v, str):
            return v
        if v.lstrip().startswith("["):
            return json.loads(v)
        return [part.strip() for part in v.split(",") if part.strip()]

    @field_validator("hosts")
    @classmethod
    def _check_hosts(cls, v: list[str]) -> list[str]:
        for host in v:
            if not host.startswith(("http://", "https://")):
                raise ValueError(f"Engine host must be an http(s) URL: {host!r}")
        return [host.rstrip("/") for host in v]


class ServerSettings(BaseModel):
    """Bind address and process model for ``distant serve``."""

    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=8080, ge=1, le=65535, description="TCP port")
    workers: int = Field(default=1, ge=1, description="Uvicorn worker processes")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Origins allowed by CORS")


class ObservabilitySettings(BaseModel):
    log_level: str = Field(default="info", description="debug, info, warning, or error")
    log_format: str = Field(default="json", description="'json' for one object per line, 'console' for humans")


class Settings(BaseSettings):
    """Root settings.

    Example::

        DISTANT_ENGINE__HOSTS='["https://es-1:9200", "https://es-2:9200"]'
        DISTANT_ENGINE__API_KEY=...
        DISTANT_ENGINE__SCROLL_KEEP_ALIVE=2m
        DISTANT_SERVER__PORT=9090
    """

    model_config = SettingsConfigDict(
        env_prefix="DISTANT_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = Field(default="Distant", description="Name reported by the API")
    debug: bool = Field(default=False)

    engine: EngineSettings = Field(default_factory=EngineSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Build settings from a YAML file.

        Values set in the file win over environment variables; anything the
        file leaves out falls back to the environment, then to defaults.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            ConfigurationError: If the file is not a YAML mapping.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
        return cls(**data)
