from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "searchbridge"
    env: str = "development"
    debug: bool = True
    port: int = 8000
    log_level: str = "INFO"
    # Transport settings for FastMCP: "stdio" (default), "http", or "sse"
    transport: Literal["stdio", "http", "sse"] = "stdio"
    host: str = "127.0.0.1"
    # JSON file describing servers and indexes
    entities_file: Optional[str] = None


class DatabaseConfig(BaseModel):
    """Database configuration values for the task log and access grants."""

    url: str = "sqlite:///searchbridge.db"
    echo: bool = False


class BackendConfig(BaseModel):
    """Whoosh backend configuration values."""

    # Directory holding one sub-directory per index; None keeps indexes in RAM
    path: Optional[str] = "whoosh_indexes"
    limitmb: int = 64


class TasksConfig(BaseModel):
    """Background task draining configuration values."""

    drain_interval_seconds: int = 60
    drain_on_startup: bool = True


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="SEARCHBRIDGE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    database: DatabaseConfig = DatabaseConfig()
    backend: BackendConfig = BackendConfig()
    tasks: TasksConfig = TasksConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    return Settings()  # type: ignore[call-arg]
