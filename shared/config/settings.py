"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    GEMINI = "gemini"


class StorageBackend(str, Enum):
    """Where helpdesk records are persisted."""

    MEMORY = "memory"
    SQL = "sql"


class DatabaseSettings(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    user: str = "helpdesk"
    password: SecretStr = SecretStr("helpdesk_dev_password")
    db: str = "helpdesk"

    # Full SQLAlchemy URL; overrides the discrete fields when set
    url: str | None = Field(default=None, alias="DATABASE_URL")

    pool_size: int = 10
    max_overflow: int = 20

    @property
    def async_url(self) -> str:
        """Generate async SQLAlchemy connection URL."""
        if self.url:
            return self.url
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}"


class GeminiSettings(BaseSettings):
    """Google Gemini API configuration."""

    model_config = SettingsConfigDict(env_prefix="GEMINI_")

    api_key: SecretStr = SecretStr("")
    model: str = "gemini-1.5-flash"
    fallback_models: list[str] = Field(
        default_factory=lambda: ["gemini-1.5-pro-latest", "gemini-1.5-pro", "gemini-1.5-flash-latest"],
    )
    api_versions: list[str] = Field(default_factory=lambda: ["v1beta", "v1"])
    base_url: str = "https://generativelanguage.googleapis.com"

    @property
    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return bool(self.api_key.get_secret_value().strip())


class LLMSettings(BaseSettings):
    """LLM provider configuration."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    provider: LLMProvider = LLMProvider.GEMINI
    temperature: float = 0.2
    max_retries: int = 2
    timeout_seconds: float = 20.0

    # Provider-specific settings
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)


class JWTSettings(BaseSettings):
    """JWT authentication configuration."""

    model_config = SettingsConfigDict(env_prefix="JWT_")

    secret_key: SecretStr = SecretStr("helpdesk-jwt-secret-key-min-32-chars-long")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class HelpdeskSettings(BaseSettings):
    """Ticket lifecycle and storage behaviour."""

    model_config = SettingsConfigDict(env_prefix="HELPDESK_")

    storage: StorageBackend = StorageBackend.MEMORY
    seed_demo_data: bool = True

    # Default SLA per priority, in hours from creation
    sla_hours_low: int = 48
    sla_hours_normal: int = 24
    sla_hours_high: int = 8
    sla_hours_urgent: int = 4

    number_retry_attempts: int = 5
    update_retry_attempts: int = 3

    default_page_size: int = 50
    max_page_size: int = 200

    demo_admin_email: str = "admin@helpdesk.local"
    demo_admin_password: SecretStr = SecretStr("admin123")


class ServicePorts(BaseSettings):
    """Service port configuration."""

    helpdesk: int = Field(default=8000, alias="HELPDESK_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Persistence
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    helpdesk: HelpdeskSettings = Field(default_factory=HelpdeskSettings)

    # LLM configuration
    llm: LLMSettings = Field(default_factory=LLMSettings)

    # Authentication
    jwt: JWTSettings = Field(default_factory=JWTSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
