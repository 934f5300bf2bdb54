"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="Financial Notification Parser", alias="APP_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Inbound trigger
    inbound_email_domain: Optional[str] = Field(default=None, alias="INBOUND_EMAIL_DOMAIN")
    inbound_secret_key: Optional[str] = Field(default=None, alias="INBOUND_SECRET_KEY")

    # Ledger backend
    backend_webhook_url: str = Field(default="http://localhost:3000/webhook", alias="BACKEND_WEBHOOK_URL")
    backend_forward_url: Optional[str] = Field(default=None, alias="BACKEND_FORWARD_URL")
    backend_secret_key: str = Field(default="", alias="BACKEND_SECRET_KEY")
    backend_timeout: float = Field(default=15.0, alias="BACKEND_TIMEOUT")

    # Probabilistic classifier gateway
    llm_gateway_url: str = Field(default="", alias="LLM_GATEWAY_URL")
    llm_api_key: str = Field(default="", alias="LLM_API_KEY")
    llm_model: str = Field(default="llama-3.2-3b-instruct", alias="LLM_MODEL")
    llm_timeout: float = Field(default=10.0, alias="LLM_TIMEOUT")
    llm_max_attempts: int = Field(default=2, alias="LLM_MAX_ATTEMPTS")
    llm_verify_ssl: bool = Field(default=True, alias="LLM_VERIFY_SSL")

    # Pipeline
    institutions_path: str = Field(
        default=str(PROJECT_ROOT / "data" / "institutions.json"),
        alias="INSTITUTIONS_PATH",
    )
    default_currency: str = Field(default="ARS", alias="DEFAULT_CURRENCY")
    categorize_transactions: bool = Field(default=True, alias="CATEGORIZE_TRANSACTIONS")
    verification_senders: str = Field(
        default="forwarding-noreply@google.com,noreply@google.com",
        alias="VERIFICATION_SENDERS",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("llm_max_attempts")
    @classmethod
    def validate_attempts(cls, v):
        """Validate classifier retry attempts."""
        if v < 1:
            raise ValueError("LLM max attempts must be at least 1")
        if v > 5:
            raise ValueError("LLM max attempts should not exceed 5")
        return v

    @field_validator("llm_timeout", "backend_timeout")
    @classmethod
    def validate_timeout(cls, v):
        """Every outbound call must be bounded."""
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v

    @property
    def llm_enabled(self) -> bool:
        """The classifier is only used when a gateway is configured."""
        return bool(self.llm_gateway_url)

    @property
    def forward_url(self) -> str:
        """Endpoint for sender-verification forwarding."""
        if self.backend_forward_url:
            return self.backend_forward_url
        base = self.backend_webhook_url
        if base.endswith("/webhook"):
            base = base[: -len("/webhook")]
        return base.rstrip("/") + "/forward-verification"

    @property
    def verification_sender_list(self) -> List[str]:
        """Verification sender addresses, lower-cased."""
        return [s.strip().lower() for s in self.verification_senders.split(",") if s.strip()]


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
