"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (ANNOUNCEHELPER__AUTH__ADMIN_KEY=...)
  2. announcehelper.yaml    (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. Every field has a default except the two secrets
(admin key, model API key), whose absence is reported at runtime.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("announcehelper")
_DEFAULT_USERS_PATH = str(Path(_DEFAULT_DATA_DIR) / "users.json")


def _find_config_file() -> str | None:
    """Return the path of the first announcehelper.yaml found, or None."""
    candidates = [
        Path("announcehelper.yaml"),
        Path(platformdirs.user_config_dir("announcehelper")) / "announcehelper.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    max_body_bytes: int = 2 * 1024 * 1024


class AuthSettings(BaseModel):
    admin_key: str | None = None
    admin_key_header: str = "x-admin-key"
    session_ttl_hours: float = 12
    cookie_name: str = "sid"
    cookie_secure: bool = True
    cookie_samesite: Literal["strict", "lax", "none"] = "none"
    # Written to the user store only when no store exists yet. Rotate after first login.
    bootstrap_username: str = "admin"
    bootstrap_password: str = "admin123"


class UserStoreSettings(BaseModel):
    path: str = _DEFAULT_USERS_PATH
    bcrypt_rounds: int = 12


class CacheSettings(BaseModel):
    ttl_hours: float = 24 * 7
    cleanup_interval_minutes: float = 30


class RateLimitSettings(BaseModel):
    login_max_attempts: int = 10
    login_window_seconds: float = 60
    # Only enable behind a reverse proxy that overwrites X-Forwarded-For.
    trust_forwarded_for: bool = False


class FetcherSettings(BaseModel):
    announcements_url: str = "https://help.mypurecloud.com/announcements/"
    base_url: str = "https://help.mypurecloud.com"
    timeout_seconds: float = 30.0
    user_agent: str = "Mozilla/5.0"


class SummarizerSettings(BaseModel):
    api_key: str | None = None
    default_model: str = "gemma-3-27b-it"
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    max_content_chars: int = 15000


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: ANNOUNCEHELPER__SERVER__PORT=9090
        env_prefix="ANNOUNCEHELPER__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    auth: AuthSettings = AuthSettings()
    users: UserStoreSettings = UserStoreSettings()
    cache: CacheSettings = CacheSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    fetcher: FetcherSettings = FetcherSettings()
    summarizer: SummarizerSettings = SummarizerSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
