"""Application settings and configuration.

This module defines all configuration options for the Meriter core service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Meriter Core", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./meriter.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Defaults applied to team communities created during invite redemption
    default_daily_emission: int = Field(default=10, alias="DEFAULT_DAILY_EMISSION")
    default_post_cost: int = Field(default=1, alias="DEFAULT_POST_COST")
    default_poll_cost: int = Field(default=1, alias="DEFAULT_POLL_COST")
    default_forward_cost: int = Field(default=1, alias="DEFAULT_FORWARD_COST")
    team_name_template: str = Field(default="{name}'s Team", alias="TEAM_NAME_TEMPLATE")

    # Daily quota window; resets run at midnight in this timezone
    quota_timezone: str = Field(default="UTC", alias="QUOTA_TIMEZONE")
    quota_reset_enabled: bool = Field(default=True, alias="QUOTA_RESET_ENABLED")

    # Invite codes
    invite_code_bytes: int = Field(default=12, alias="INVITE_CODE_BYTES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
