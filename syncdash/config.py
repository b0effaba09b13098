"""Configuration: Pydantic Settings + YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "default.yaml"
SESSIONS_DIR = Path("logs")


class DaemonSettings(BaseSettings):
    """Where the daemon lives and how to authenticate.

    Reads ``SYNCTHING_URL`` and ``SYNCTHING_API_KEY`` from the environment.
    """

    model_config = SettingsConfigDict(env_prefix="SYNCTHING_")

    url: str = "http://localhost:8384"
    api_key: str = ""
    verify_ssl: bool = False
    timeout: float = 10.0
    user_agent: str = "syncdash/1.0"


class RefreshSettings(BaseSettings):
    status_interval: float = 10.0
    clock_interval: float = 1.0
    events_timeout: int = 60
    retry_delay: float = 1.0
    retry_backoff: Literal["fixed", "exponential"] = "fixed"
    retry_max_delay: float = 30.0


class SessionLogSettings(BaseSettings):
    enabled: bool = False
    log_dir: Path = SESSIONS_DIR
    max_sessions: int = 20


class Settings(BaseSettings):
    """Root settings: merges defaults, YAML config, and env vars."""

    daemon: DaemonSettings = Field(default_factory=DaemonSettings)
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    session_log: SessionLogSettings = Field(default_factory=SessionLogSettings)
    log_level: str = "INFO"

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> Settings:
        """Load settings from YAML file, falling back to defaults."""
        data: dict[str, Any] = {}

        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        path = Path(config_path)
        if path.exists():
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
                if isinstance(raw, dict):
                    data = raw

        # Env vars win over the file for the daemon section.
        daemon = data.pop("daemon", None)
        if isinstance(daemon, dict):
            env = DaemonSettings()
            for key in env.model_fields_set:
                daemon.pop(key, None)
            data["daemon"] = DaemonSettings(**daemon)

        return cls(**data)
