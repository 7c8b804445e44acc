"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENCRYPTION_KEY = "your-fallback-encryption-key-min-32-chars"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "InboxBridge"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    app_base_url: str = "http://localhost:8080"
    dashboard_path: str = "/dashboard"

    # Token encryption
    encryption_key: SecretStr = Field(default=SecretStr(DEFAULT_ENCRYPTION_KEY))
    token_cookie_max_age_seconds: int = 60 * 60 * 24 * 7

    # Google OAuth / Gmail
    google_client_id: str | None = None
    google_client_secret: SecretStr | None = None
    google_redirect_uri: str | None = None
    pubsub_topic_name: str | None = None
    gmail_list_query: str = "has:attachment"
    gmail_max_results: int = 10

    # Microsoft OAuth / Outlook
    outlook_client_id: str | None = None
    outlook_client_secret: SecretStr | None = None
    outlook_redirect_uri: str | None = None
    outlook_tenant: str = "common"
    outlook_webhook_url: str | None = None
    outlook_client_state: SecretStr = Field(default=SecretStr("outlookSubscriptionVerification"))
    outlook_list_filter: str = "hasAttachments eq true"
    outlook_max_results: int = 20

    # Storage
    sqlite_db_path: str = "data/inboxbridge.db"

    # Fetching
    email_cache_ttl_seconds: float = 300.0
    http_timeout_seconds: float = 30.0
    max_mime_depth: int = 32

    @computed_field
    @property
    def is_development(self) -> bool:
        """Whether internal error detail may be exposed to clients."""
        return self.environment == "development"

    @computed_field
    @property
    def secure_cookies(self) -> bool:
        """Cookies are marked Secure outside development."""
        return self.environment == "production"

    @computed_field
    @property
    def google_redirect(self) -> str:
        """Resolve the Google OAuth redirect URI."""
        return self.google_redirect_uri or f"{self.app_base_url}/auth/gmail/callback"

    @computed_field
    @property
    def outlook_redirect(self) -> str:
        """Resolve the Microsoft OAuth redirect URI."""
        return self.outlook_redirect_uri or f"{self.app_base_url}/auth/outlook/callback"

    @computed_field
    @property
    def outlook_notification_url(self) -> str:
        """Resolve the Graph subscription notification URL."""
        return self.outlook_webhook_url or f"{self.app_base_url}/webhook/outlook"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
