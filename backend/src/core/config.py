"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database (user records and collection mapping)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./blog.db",
        validation_alias="DATABASE_URL",
    )

    # Notion workspace - template collection, parent page for per-user collections
    notion_token: str = Field(default="", validation_alias="NOTION_TOKEN")
    notion_database_id: str = Field(default="", validation_alias="NOTION_DATABASE_ID")
    notion_parent_page_id: str = Field(default="", validation_alias="NOTION_PARENT_PAGE_ID")
    enable_notion_cms: bool = Field(default=False, validation_alias="ENABLE_NOTION_CMS")
    notion_cache_revalidate: int = Field(
        default=3600, validation_alias="NOTION_CACHE_REVALIDATE",
    )
    notion_api_url: str = Field(
        default="https://api.notion.com/v1", validation_alias="NOTION_API_URL",
    )
    notion_version: str = Field(default="2022-06-28", validation_alias="NOTION_VERSION")
    # Outbound calls must never hang a request indefinitely
    notion_timeout: float = Field(default=15.0, validation_alias="NOTION_TIMEOUT")

    # Caching
    blog_cache_ttl: int = Field(default=60, validation_alias="BLOG_CACHE_TTL")
    page_cache_ttl: int = Field(default=60, validation_alias="PAGE_CACHE_TTL")

    # Local markdown/mdx posts
    content_dir: str = Field(default="content/posts", validation_alias="CONTENT_DIR")

    # Sessions
    session_secret: str = Field(
        default="dev-session-secret-change-me",
        validation_alias="NEXTAUTH_SECRET",
    )
    session_max_age_seconds: int = Field(
        default=30 * 24 * 3600, validation_alias="SESSION_MAX_AGE",
    )

    # Shared secret for external revalidation webhooks (unset = refuse all)
    revalidation_secret: str = Field(default="", validation_alias="REVALIDATION_SECRET")

    # SSO providers
    google_client_id: str = Field(default="", validation_alias="GOOGLE_CLIENT_ID")
    google_client_secret: str = Field(default="", validation_alias="GOOGLE_CLIENT_SECRET")
    github_client_id: str = Field(default="", validation_alias="GITHUB_CLIENT_ID")
    github_client_secret: str = Field(default="", validation_alias="GITHUB_CLIENT_SECRET")

    # Admin - comma-separated list of emails allowed on /api/admin
    admin_emails_str: str = Field(
        default="admin@example.com", validation_alias="ADMIN_EMAILS",
    )

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        return _split_csv(self.cors_origins_str)

    @property
    def admin_email_list(self) -> list[str]:
        """Parse comma-separated admin emails into a lowercase list."""
        return [email.lower() for email in _split_csv(self.admin_emails_str)]

    @property
    def notion_configured(self) -> bool:
        """True only when both the access token and base collection id are set."""
        return bool(self.notion_token and self.notion_database_id)

    @property
    def notion_enabled(self) -> bool:
        """Remote posts are merged only when the feature flag is on AND credentials exist."""
        return self.enable_notion_cms and self.notion_configured

    @property
    def sso_providers(self) -> list[str]:
        """Names of SSO providers that have a complete client id/secret pair."""
        providers = []
        if self.google_client_id and self.google_client_secret:
            providers.append("google")
        if self.github_client_id and self.github_client_secret:
            providers.append("github")
        return providers


def _split_csv(value: str) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
