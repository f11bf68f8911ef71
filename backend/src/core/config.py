"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Auth0 - identity provider used for OAuth sign-in and JWT validation
    auth0_domain: str = Field(default="", validation_alias="AUTH0_DOMAIN")
    auth0_audience: str = Field(default="", validation_alias="AUTH0_AUDIENCE")
    auth0_client_id: str = Field(default="", validation_alias="AUTH0_CLIENT_ID")
    auth0_client_secret: str = Field(default="", validation_alias="AUTH0_CLIENT_SECRET")
    auth0_connection: str = Field(default="google-oauth2", validation_alias="AUTH0_CONNECTION")

    # Development mode - bypasses auth for local development
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # Public origin of the web app. Used for OAuth callbacks and extension deep links.
    app_url: str = Field(default="http://localhost:3000", validation_alias="APP_URL")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    session_cookie_name: str = Field(
        default="bookmarks_session", validation_alias="SESSION_COOKIE_NAME",
    )

    # External AI categorization service
    categorizer_url: str = Field(default="", validation_alias="CATEGORIZER_URL")
    categorizer_api_key: str = Field(default="", validation_alias="CATEGORIZER_API_KEY")
    categorizer_timeout: float = Field(default=30.0, validation_alias="CATEGORIZER_TIMEOUT")

    # Field length limits
    max_url_length: int = Field(default=2048, validation_alias="MAX_URL_LENGTH")
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_description_length: int = Field(
        default=2000, validation_alias="MAX_DESCRIPTION_LENGTH",
    )
    max_name_length: int = Field(default=100, validation_alias="MAX_NAME_LENGTH")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE completely bypasses authentication, so it is only allowed with
        local databases (localhost or a SQLite file).
        """
        if not self.dev_mode:
            return self

        if self.database_url.startswith("sqlite"):
            return self

        try:
            parsed = urlparse(self.database_url)
            hostname = parsed.hostname or ""
        except ValueError:
            hostname = ""

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses all authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def auth0_issuer(self) -> str:
        """Get the Auth0 issuer URL."""
        return f"https://{self.auth0_domain}/"

    @property
    def auth0_jwks_url(self) -> str:
        """Get the Auth0 JWKS URL for fetching public keys."""
        return f"https://{self.auth0_domain}/.well-known/jwks.json"

    @property
    def auth0_authorize_url(self) -> str:
        """Get the Auth0 authorization endpoint."""
        return f"https://{self.auth0_domain}/authorize"

    @property
    def auth0_token_url(self) -> str:
        """Get the Auth0 token endpoint used for the code exchange."""
        return f"https://{self.auth0_domain}/oauth/token"

    @property
    def oauth_configured(self) -> bool:
        """True when enough provider settings exist to run the OAuth flow."""
        return bool(self.auth0_domain and self.auth0_client_id)

    @property
    def categorizer_configured(self) -> bool:
        """True when an external categorization endpoint is set."""
        return bool(self.categorizer_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
