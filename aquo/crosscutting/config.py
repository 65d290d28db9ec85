"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults that match the behavior of the admin console

Collaborators:
  - container.py: reads settings to build the remote store client
  - infrastructure/retry.py: rate-limit retry policy
  - application/flash_messages.py: auto-clear interval
  - domain/user_rules.py: password policy

Constraints:
  - No business logic - pure configuration
  - Env vars are prefixed with AQUO_ (e.g. AQUO_API_BASE_URL)

Notes:
  - Singleton via lru_cache; tests call get_settings.cache_clear()
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_env: Application environment (development/test/production)
        api_base_url: Base URL of the remote store (users + sites API)
        request_timeout_seconds: Per-request timeout (default: 10)
        rate_limit_retry_attempts: Extra attempts after a 429 (default: 1)
        rate_limit_retry_delay_seconds: Pause before retrying a 429 (default: 2)
        flash_message_ttl_seconds: Lifetime of success messages (default: 3)
        min_password_length: Minimum length for new passwords (default: 8)
        log_level: Root log level for the aquo logger
        log_json: Emit JSON logs (False = plain text)
    """

    app_env: str = "development"

    # Remote store
    api_base_url: str = "http://localhost:3001/api"
    request_timeout_seconds: float = 10.0

    # Retry/Resilience (429 Too Many Requests only)
    rate_limit_retry_attempts: int = 1
    rate_limit_retry_delay_seconds: float = 2.0

    # UI feedback
    flash_message_ttl_seconds: float = 3.0

    # Account policy
    min_password_length: int = 8

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("api_base_url")
    @classmethod
    def api_base_url_must_be_http(cls, v: str) -> str:
        url = (v or "").strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return url

    @field_validator("request_timeout_seconds", "flash_message_ttl_seconds")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("rate_limit_retry_attempts")
    @classmethod
    def retry_attempts_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("rate_limit_retry_attempts must be >= 0")
        return v

    @field_validator("rate_limit_retry_delay_seconds")
    @classmethod
    def retry_delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("rate_limit_retry_delay_seconds must be >= 0")
        return v

    @field_validator("min_password_length")
    @classmethod
    def password_length_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("min_password_length must be >= 1")
        return v

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    model_config = SettingsConfigDict(
        env_prefix="AQUO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()
