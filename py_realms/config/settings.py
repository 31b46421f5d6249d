"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="REALMS_", env_file=".env", extra="ignore")

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Generation
    max_map_size: int = Field(default=4096, description="Maximum canvas width or height")
    max_points: int = Field(default=20000, description="Maximum number of sampled cells")

    # Simulation
    event_log_size: int = Field(default=500, description="Events kept per session")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")


settings = Settings()
