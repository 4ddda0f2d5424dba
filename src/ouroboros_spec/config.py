"""Runtime configuration, read from OUROBOROS_* environment variables or .env."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OUROBOROS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Spec files
    rest_spec_path: Path = Path("ouroboros/rest/ourorest.yml")
    websocket_spec_path: Path = Path("ouroboros/websocket/ourowebsocket.yml")

    # Server entries created for new WebSocket operations
    default_server_host: str = "localhost:8080"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
