"""Configuration using pydantic-settings.

Every setting can be supplied through a GOOGLEAPIS_AUTH_* environment
variable or a .env file, e.g. GOOGLEAPIS_AUTH_SCOPES, GOOGLEAPIS_AUTH_SUBJECT.
"""

import re

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from googleapis_authenticator.token_endpoint import DEFAULT_TIMEOUT, TOKEN_URI


class Settings(BaseSettings):
    """Authenticator settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLEAPIS_AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # OAuth scopes, comma or whitespace separated
    scopes: str = ""

    # User to impersonate (domain-wide delegation); empty means none
    subject: str = ""

    token_uri: str = TOKEN_URI
    http_timeout: int = DEFAULT_TIMEOUT

    environment: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    def get_scopes(self) -> list[str]:
        """Get configured scopes in the order given."""
        return [s for s in re.split(r"[,\s]+", self.scopes) if s]

    @model_validator(mode="after")
    def validate_scopes(self) -> "Settings":
        """Validate that at least one scope is configured."""
        if not self.get_scopes():
            raise ValueError("GOOGLEAPIS_AUTH_SCOPES must contain at least one scope")
        return self

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of: {allowed}")
        return v

    @field_validator("http_timeout")
    @classmethod
    def validate_http_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("http_timeout must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known value."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper
