import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    app_name: str = "Job Costing API"
    database_url: str = Field(
        default="sqlite:///./jobcost.db",
        description="Database connection string",
    )
    cors_origins: str = ""
    log_level: str = "INFO"
    default_labor_rate: float = Field(default=40.0, description="Hourly labor rate when a worker has none")
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN for error monitoring")
    otlp_endpoint: str | None = Field(default=None, description="OTLP endpoint for traces/metrics")

    model_config = SettingsConfigDict(env_prefix="JOBCOST_", extra="ignore")

    @field_validator("default_labor_rate")
    @classmethod
    def non_negative_rate(cls, value: float) -> float:
        if value < 0:
            raise ValueError("default_labor_rate must be >= 0")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def env_file_path(self) -> Path:
        env_specific = BASE_DIR / f".env.{self.env}"
        return env_specific if env_specific.exists() else BASE_DIR / ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=get_settings_env_file())


def get_settings_env_file() -> str | None:
    """Resolve environment-specific env file if it exists."""
    env = os.getenv("JOBCOST_ENV", "dev")
    env_file = BASE_DIR / f".env.{env}"
    default_file = BASE_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    if default_file.exists():
        return str(default_file)
    return None


settings = get_settings()
