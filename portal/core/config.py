from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HARDWARE_SEED: dict[str, dict[str, int]] = {
    "HWSET1": {"capacity": 250, "checked_out": 20},
    "HWSET2": {"capacity": 300, "checked_out": 70},
}


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "HaaS Portal"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")

    # Empty means "SQLite file under DATA_DIR", see ``database_url``.
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DATABASE_URL", "DB_URL"))

    APP_SECRET: str = Field(
        default="dev-only-change-me",
        validation_alias=AliasChoices("APP_SECRET", "SESSION_SECRET"),
    )
    SESSION_COOKIE_NAME: str = "haas.sid"
    SESSION_MAX_AGE: int = 60 * 60 * 8
    SESSION_HTTPS_ONLY: bool = False
    # Comma separated; kept as a string so env values need no JSON quoting.
    ALLOWED_ORIGINS: str = "http://localhost:5173"

    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    BCRYPT_ROUNDS: int = 10

    HARDWARE_SEED: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {name: dict(values) for name, values in DEFAULT_HARDWARE_SEED.items()}
    )
    SEED_ON_STARTUP: bool = True

    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'portal.db'}"

    @property
    def allowed_origins(self) -> list[str]:
        return [item.strip() for item in self.ALLOWED_ORIGINS.split(",") if item.strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return (value or "INFO").strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if settings.database_url.startswith("sqlite:///") and not settings.DB_URL:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
