"""Application settings and configuration.

Every tunable of the settlement engine lives here. Settings are loaded from
environment variables (or a ``.env`` file) with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application metadata
    app_name: str = Field(default="Skinbag Settlement", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Security and authentication
    secret_key: str = Field(default="dev-secret-change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./skinbag.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Default payment policy, applied lazily on first read per owner
    default_autopay_enabled: bool = Field(default=False, alias="DEFAULT_AUTOPAY_ENABLED")
    default_require_approval: bool = Field(default=True, alias="DEFAULT_REQUIRE_APPROVAL")
    default_max_single_payout_cents: int = Field(
        default=100_000,
        alias="DEFAULT_MAX_SINGLE_PAYOUT_CENTS",
    )
    default_max_daily_payout_cents: int = Field(
        default=300_000,
        alias="DEFAULT_MAX_DAILY_PAYOUT_CENTS",
    )
    default_allowed_chains: list[str] = Field(
        default=["polygon"],
        alias="DEFAULT_ALLOWED_CHAINS",
    )
    default_allowed_tokens: list[str] = Field(
        default=["USDC"],
        alias="DEFAULT_ALLOWED_TOKENS",
    )

    # Platform fee (basis points) and floor, in cents
    platform_fee_bps_manual: int = Field(default=75, alias="PLATFORM_FEE_BPS_MANUAL")
    platform_fee_bps_agent_auto: int = Field(default=100, alias="PLATFORM_FEE_BPS_AGENT_AUTO")
    platform_fee_min_cents: int = Field(default=25, alias="PLATFORM_FEE_MIN_CENTS")

    # Wallet verification challenges
    challenge_expiry_default_minutes: int = Field(
        default=15,
        alias="CHALLENGE_EXPIRY_DEFAULT_MINUTES",
    )
    challenge_expiry_min_minutes: int = Field(default=1, alias="CHALLENGE_EXPIRY_MIN_MINUTES")
    challenge_expiry_max_minutes: int = Field(
        default=1440,
        alias="CHALLENGE_EXPIRY_MAX_MINUTES",
    )

    # List pagination
    default_page_size: int = Field(default=30, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")
    delivery_page_size: int = Field(default=50, alias="DELIVERY_PAGE_SIZE")
    delivery_max_page_size: int = Field(default=200, alias="DELIVERY_MAX_PAGE_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous operations such as
        Alembic migrations.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
