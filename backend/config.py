"""
Environment-backed settings for the CareAI backend.
Values come from the process environment, after loading a local .env file.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

PLACEHOLDER_API_KEY = "your-api-key-here"


class ConfigError(Exception):
    """Raised when an environment value cannot be used."""


@dataclass(frozen=True)
class Config:
    anthropic_api_key: str | None
    model: str = "claude-sonnet-4-5"
    database_path: str = "careai.db"
    timezone: str = "America/Sao_Paulo"
    user_id: str = "user_1"
    completion_timeout: float = 30.0
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def api_key_configured(self) -> bool:
        return bool(self.anthropic_api_key) and self.anthropic_api_key != PLACEHOLDER_API_KEY


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Build the Config from the environment.

    Raises:
        ConfigError: a numeric value is malformed or the time zone is unknown
    """
    load_dotenv()

    timezone = os.getenv("CAREAI_TIMEZONE", "America/Sao_Paulo")
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown time zone: {timezone!r}")

    origins = os.getenv("CAREAI_CORS_ORIGINS", "http://localhost:3000")

    return Config(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        model=os.getenv("CAREAI_MODEL", "claude-sonnet-4-5"),
        database_path=os.getenv("CAREAI_DATABASE_PATH", "careai.db"),
        timezone=timezone,
        user_id=os.getenv("CAREAI_USER_ID", "user_1"),
        completion_timeout=_read_float("CAREAI_COMPLETION_TIMEOUT", 30.0),
        log_level=os.getenv("CAREAI_LOG_LEVEL", "INFO").upper(),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )


def reset_config() -> None:
    """Forget the cached Config so the next get_config() rereads the environment."""
    get_config.cache_clear()
