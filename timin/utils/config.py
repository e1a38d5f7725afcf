"""
Configuration management with schema validation.
Single source of truth for Timin settings.

Defaults come from the environment. An optional YAML file
(config/settings.yaml, or the path in TIMIN_SETTINGS) overrides them and may
reference environment variables as ${VAR} or ${VAR:default}.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

SETTINGS_FILE = Path(os.getenv("TIMIN_SETTINGS", "config/settings.yaml"))

TOKEN_TTL_SECONDS = 60 * 60 * 24 * 7


class AppSettings(BaseModel):
    name: str = "Timin"
    version: str = "1.0.0"
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "development").lower())

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


class AuthSettings(BaseModel):
    secret: str = Field(default_factory=lambda: os.getenv("TIMIN_SECRET", "dev-secret"))
    token_ttl_seconds: int = TOKEN_TTL_SECONDS
    cookie_name: str = "timin_token"

    @property
    def signing_key(self) -> str:
        return self.secret + "-hmac"


class StorageSettings(BaseModel):
    data_dir: str = Field(default_factory=lambda: os.getenv("TIMIN_DATA_DIR", "data"))
    lock_timeout_seconds: float = 10.0
    seed_demo_data: bool = True


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = None
    max_bytes: int = 10485760
    backup_count: int = 5


class ServerSettings(BaseModel):
    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    workers: int = 1


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} and ${VAR:default} placeholders"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                return os.getenv(var_name.strip(), default.strip())
            env_value = os.getenv(var_expr)
            if env_value is None:
                raise ConfigError(f"Environment variable {var_expr} not found")
            return env_value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load and validate settings; missing file means defaults."""
    settings_path = Path(path) if path is not None else SETTINGS_FILE
    if not settings_path.exists():
        return Settings()

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Failed to read settings from {settings_path}: {e}")

    if not isinstance(raw_data, dict):
        raise ConfigError(f"Settings file {settings_path} must contain a mapping")

    try:
        return Settings(**_substitute_env_vars(raw_data))
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid settings in {settings_path}: {e}")
