"""Devspace settings.

Values come from environment variables (DEVSPACE_ prefix, ``__`` between
nested keys), then an optional YAML file, then the defaults below.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class DockerConfig(BaseModel):
    """Docker driver configuration."""

    socket: str = "unix:///var/run/docker.sock"
    # None = default bridge network; the editor is reached via its host port
    network: str | None = None


class DriverConfig(BaseModel):
    """Driver layer configuration."""

    type: Literal["docker"] = "docker"
    docker: DockerConfig = Field(default_factory=DockerConfig)


class EditorConfig(BaseModel):
    """Editor-server container configuration."""

    image: str = "gitpod/openvscode-server:latest"
    container_port: int = 3000
    mount_path: str = "/home/workspace"
    name_prefix: str = "openvscode"
    env: dict[str, str] = Field(default_factory=dict)
    stop_timeout_seconds: int = 10
    # Host name used when building the access URL handed back to callers
    public_host: str = "localhost"
    # Remove the container when it exits (forced off in container workspace mode
    # so clone failures stay readable via logs)
    auto_remove: bool = True
    # Command the editor image runs after the in-container clone (container mode)
    server_command: str = (
        "exec /home/.openvscode-server/bin/openvscode-server "
        "--host 0.0.0.0 --without-connection-token"
    )


class WorkspaceConfig(BaseModel):
    """Session workspace storage configuration."""

    root_path: str = "./repos"
    # host: clone on the host and bind-mount; container: clone inside the container
    mode: Literal["host", "container"] = "host"
    git_binary: str = "git"
    clone_depth: int | None = 1
    clone_timeout_seconds: float = 300.0


class PortsConfig(BaseModel):
    """Host port allocation."""

    preferred: int = 8080
    bind_host: str = "0.0.0.0"
    max_attempts: int = 32


class ReadinessConfig(BaseModel):
    """Background readiness probing after container start."""

    enabled: bool = True
    attempts: int = 10
    interval_seconds: float = 1.0
    request_timeout_seconds: float = 2.0
    probe_host: str = "localhost"
    log_tail: int = 50


class SessionsConfig(BaseModel):
    # None = unlimited concurrent sessions
    max_sessions: int | None = None
    logs_default_tail: int = 200
    cleanup_on_shutdown: bool = True


class Settings(BaseSettings):
    """Devspace application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEVSPACE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    driver: DriverConfig = Field(default_factory=DriverConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    ports: PortsConfig = Field(default_factory=PortsConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values passed in from the YAML file
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def _load_config_file() -> dict:
    """First YAML file found among DEVSPACE_CONFIG_FILE, ./config.yaml and
    /etc/devspace/config.yaml, parsed into a dict (empty if none exists).
    """
    candidates = [
        os.environ.get("DEVSPACE_CONFIG_FILE"),
        "config.yaml",
        "/etc/devspace/config.yaml",
    ]
    for candidate in filter(None, candidates):
        config_path = Path(candidate)
        if config_path.exists():
            with open(config_path) as f:
                return yaml.safe_load(f) or {}
    return {}


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings: YAML file values, overridden by the environment."""
    return Settings(**_load_config_file())
