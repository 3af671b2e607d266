"""Load configuration from YAML and environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default config lives next to this module
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"

DEFAULT_SYSTEM_PROMPT = (
    "You are NEMO, a helpful assistant. Be concise and polite. If a file is attached, "
    "reference its name and preview/link provided by the server."
)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class ServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SERVER_", extra="ignore")
    host: str = "0.0.0.0"
    port: int = 3000
    uploads_dir: str = "uploads"
    max_upload_mb: int = 20
    cors_allow_origin: str = "*"


class ModelSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MODEL_", extra="ignore")
    api_key: str = ""
    base_url: str = "https://integrate.api.nvidia.com/v1"
    name: str = "nvidia/llama-3.1-nemotron-ultra-253b-v1"
    temperature: float = 0.6
    top_p: float = 0.95
    max_tokens: int = 1024
    system_prompt: str = DEFAULT_SYSTEM_PROMPT


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")
    level: str = "INFO"
    use_json: bool = True


class Config(BaseSettings):
    """Application config: YAML + env. Secrets from env only."""

    model_config = SettingsConfigDict(env_nested_delimiter="__", extra="ignore")

    server: ServerSettings = Field(default_factory=ServerSettings)
    model: ModelSettings = Field(default_factory=ModelSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "Config":
        path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
        yaml_data = _load_yaml(path)
        env_name = os.getenv("CHAT_RELAY_ENV", "")
        if env_name:
            yaml_data = _deep_merge(yaml_data, _load_yaml(Path(f"config/{env_name}.yaml")))
        api_key = os.getenv("NVIDIA_API_KEY")
        if api_key:
            yaml_data.setdefault("model", {})["api_key"] = api_key
        port = os.getenv("PORT")
        if port:
            yaml_data.setdefault("server", {})["port"] = int(port)
        level = os.getenv("LOG_LEVEL")
        if level:
            yaml_data.setdefault("logging", {})["level"] = level
        return cls(**yaml_data)

    @property
    def uploads_path(self) -> Path:
        return Path(self.server.uploads_dir).resolve()


def get_config(config_path: str | Path | None = None) -> Config:
    return Config.load(config_path)
