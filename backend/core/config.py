"""
Configuration management for the punch card service.

Secrets and deployment specific values come from environment variables
(or a local .env file); everything else has a development default.
"""

from functools import lru_cache
from typing import List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-change-in-production"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Field names map to upper-case environment variables, e.g.
    ``PUNCH_TIMEZONE=Europe/Paris``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    database_url: str = "sqlite:///./punchcards.db"

    # Environment Settings
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    app_base_url: str = "http://localhost:3000"

    # Identity provider tokens - secret MUST be overridden in production
    jwt_secret_key: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "punchcards-identity"
    jwt_audience: str = "punchcards-api"
    jwt_access_token_expire_minutes: int = 60

    # API Security & Rate Limiting
    cors_origins: Union[List[str], str] = ["http://localhost:3000"]
    rate_limit_enabled: bool = True
    redis_url: Optional[str] = None

    # Punch engine
    punch_timezone: str = "UTC"  # calendar day boundary for daily limits
    reward_code_length: int = 8
    reward_code_max_attempts: int = 3
    strict_reward_issuance: bool = False

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("punch_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        if v.upper() == "UTC":
            return "UTC"
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone '{v}'")
        return v

    @field_validator("reward_code_length")
    @classmethod
    def validate_code_length(cls, v: int) -> int:
        if v < 4 or v > 20:
            raise ValueError("reward_code_length must be between 4 and 20")
        return v

    @model_validator(mode="after")
    def validate_jwt_secret(self):
        """Ensure JWT secret is not using default in production."""
        if self.is_production and self.jwt_secret_key == DEV_JWT_SECRET:
            raise ValueError(
                "JWT_SECRET_KEY must be set to a secure value in production"
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def redis_enabled(self) -> bool:
        return self.redis_url is not None


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Returns:
        Settings instance with environment variables loaded
    """
    return Settings()


# Export settings instance for easy import
settings = get_settings()
