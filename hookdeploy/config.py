"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from hookdeploy.utils.platform import get_config_dir, get_data_dir, normalize_path


class ConfigError(Exception):
    """Raised when required settings are missing at startup."""


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = Field(default=6666, ge=0, le=65535)
    max_body_size: int = Field(default=1024 * 1024, gt=0)


class DeployConfig(BaseModel):
    script: str = ""
    interpreter: str = "/bin/bash"
    timeout: float = Field(default=30.0, gt=0)
    log_file: str = ""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HOOKDEPLOY_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)
    secret: str = Field(default="", repr=False)
    data_dir: str = ""
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Env vars win over the YAML file; yaml_file is unset unless
        # load_settings() found one
        return (init_settings, env_settings, YamlConfigSettingsSource(settings_cls))

    def get_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir)
        return get_data_dir()

    def get_log_file(self) -> Path:
        if self.deploy.log_file:
            return normalize_path(self.deploy.log_file)
        return self.get_data_dir() / "webhook-deploy.log"

    def get_secret(self) -> bytes:
        return self.secret.encode()

    def check(self) -> None:
        """Fail fast on values the server cannot run without."""
        missing = []
        if not self.secret:
            missing.append("secret (HOOKDEPLOY_SECRET)")
        if not self.deploy.script:
            missing.append("deploy.script (HOOKDEPLOY_DEPLOY__SCRIPT)")
        if missing:
            raise ConfigError("Missing required settings: " + ", ".join(missing))


def _find_config_file(config_path: str | Path | None) -> Path | None:
    if config_path is None:
        config_path = os.environ.get("HOOKDEPLOY_CONFIG")
    if config_path is None:
        default = get_config_dir() / "config.yaml"
        if default.exists():
            config_path = default
    return Path(config_path) if config_path is not None else None


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, falling back to an optional YAML config."""
    path = _find_config_file(config_path)
    if path is None:
        return Settings()

    class FileSettings(Settings):
        model_config = SettingsConfigDict(yaml_file=path)

    return FileSettings()
