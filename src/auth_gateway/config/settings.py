"""Configuration Settings for Moodle Auth Gateway

Manages environment variables and application configuration.
"""

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Service info
    service_name: str = "moodle-auth-gateway"
    service_version: str = "1.0.0"
    environment: str = "development"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Remote Moodle site (required, no default)
    moodle_url: str = Field(..., min_length=1)
    moodle_service: str = "moodle_mobile_app"
    user_agent: str = "MWAuthMoodleBot/1.0"
    request_timeout_seconds: float = 5.0
    max_redirects: int = 10

    # Username -> email (or "unset") of users to become bureaucrats on login
    auto_bureaucrats: Dict[str, str] = Field(default_factory=dict)

    # Pending attempt storage
    attempt_store_backend: str = "memory"  # memory or redis
    pending_attempt_ttl_seconds: int = 300
    pending_attempt_max_entries: int = 10000

    # Host identity storage
    identity_store_backend: str = "memory"  # memory or redis
    capitalize_usernames: bool = False

    # Redis configuration
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components"""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # CORS configuration
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    @field_validator("moodle_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the Moodle URL so endpoint paths can be appended"""
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("moodle_url must not be empty")
        return v

    @field_validator("attempt_store_backend", "identity_store_backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Only memory and redis backends exist"""
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError(f"Unknown store backend: {v}. Valid options: memory, redis")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance

    Returns:
        Settings instance

    Raises:
        pydantic.ValidationError: If MOODLE_URL is not configured
    """
    return Settings()
