"""
Configuration management using Pydantic Settings
Loads configuration from environment variables (.env file)
"""

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Scoring thresholds are fixed business rules and live with the engine,
    not here - only operational knobs are configurable.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ========================================================================
    # APPLICATION
    # ========================================================================
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["plain", "structured"] = "plain"
    LOG_FILE: Optional[str] = None

    # ========================================================================
    # STORAGE
    # ========================================================================
    REPOSITORY_BACKEND: Literal["memory", "sql"] = "memory"
    DATABASE_URL: str = "sqlite:///./claimflow.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # ========================================================================
    # WORKFLOW SETTINGS
    # ========================================================================
    CLAIM_LOCK_TIMEOUT_SECONDS: float = 5.0  # Upper bound on waiting for a busy claim

    # ========================================================================
    # SEED DATA
    # ========================================================================
    SEED_DATA_PATH: str = "data/sample_claims.csv"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names from the environment"""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("CLAIM_LOCK_TIMEOUT_SECONDS")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        """A zero or negative timeout would make every decision fail"""
        if v <= 0:
            raise ValueError("CLAIM_LOCK_TIMEOUT_SECONDS must be positive")
        return v


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance"""
    return settings


# Export settings
__all__ = ["settings", "Settings", "get_settings"]
