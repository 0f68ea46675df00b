"""
Configuration loading with schema validation.

Settings come from config/settings.yaml (optional) with ${VAR:default}
environment substitution, after .env has been loaded. A handful of
environment variables override the file for container deployments.
"""

import os
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .exceptions import ConfigError


DEFAULT_SETTINGS_FILE = Path("config") / "settings.yaml"


class AppSettings(BaseModel):
    name: str = "EventThreads"
    version: str = "1.0.0"
    environment: str = "development"


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 5000
    api_prefix: str = "/api"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class StorageSettings(BaseModel):
    data_dir: str = "data"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = "logs/eventthreads.log"
    max_bytes: int = 10485760
    backup_count: int = 5


class AuthSettings(BaseModel):
    session_expiry_days: int = 7
    admin_session_expiry_hours: int = 24
    bcrypt_rounds: int = 12


class AdminSettings(BaseModel):
    user_id: str = "admin_001"
    username: Optional[str] = None
    password: Optional[str] = None


class ExpirySettings(BaseModel):
    sweep_interval_seconds: float = 60.0


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    admin: AdminSettings = Field(default_factory=AdminSettings)
    expiry: ExpirySettings = Field(default_factory=ExpirySettings)


def _substitute_env_vars(value: Any, context: str = "") -> Any:
    """Recursively substitute ${VAR} / ${VAR:default} in config values"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                resolved = os.getenv(var_name.strip(), default.strip())
                return resolved if resolved != "" else None
            env_value = os.getenv(var_expr)
            if env_value is None:
                error_msg = f"Environment variable {var_expr} not found"
                if context:
                    error_msg += f" (context: {context})"
                raise ConfigError(error_msg)
            return env_value
    elif isinstance(value, dict):
        return {
            k: _substitute_env_vars(v, context=f"{context}.{k}" if context else k)
            for k, v in value.items()
        }
    elif isinstance(value, list):
        return [
            _substitute_env_vars(item, context=f"{context}[{i}]" if context else f"[{i}]")
            for i, item in enumerate(value)
        ]
    return value


def _apply_env_overrides(raw: dict) -> dict:
    overrides = {
        ("storage", "data_dir"): os.getenv("EVENTTHREADS_DATA_DIR"),
        ("admin", "username"): os.getenv("ADMIN_USERNAME"),
        ("admin", "password"): os.getenv("ADMIN_PASSWORD"),
        ("admin", "user_id"): os.getenv("ADMIN_USER_ID"),
        ("server", "port"): os.getenv("PORT"),
        ("logging", "level"): os.getenv("LOG_LEVEL"),
    }
    for (section, key), value in overrides.items():
        if value:
            raw.setdefault(section, {})[key] = value

    cors = os.getenv("CORS_ORIGINS")
    if cors:
        raw.setdefault("server", {})["cors_origins"] = [
            origin.strip() for origin in cors.split(",") if origin.strip()
        ]
    return raw


def load_settings(settings_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load application settings.

    A missing settings file is not an error: defaults plus environment
    overrides are used. A malformed file raises ConfigError.
    """
    load_dotenv()

    path = Path(settings_path) if settings_path else DEFAULT_SETTINGS_FILE
    raw: dict = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid settings file {path}: {e}")
        if not isinstance(raw, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")
        raw = _substitute_env_vars(raw)

    raw = _apply_env_overrides(raw)
    try:
        return Settings(**raw)
    except Exception as e:
        raise ConfigError(f"Invalid settings: {e}")
