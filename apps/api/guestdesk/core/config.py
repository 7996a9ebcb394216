"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.03.00"

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 8

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # AI classification (empty key = guest messages stay unclassified)
    OPENAI_API_KEY: str = ""
    AI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT_SECONDS: float = 30.0
    AI_CONTEXT_MESSAGES: int = 5
    AI_CONTEXT_KB_ENTRIES: int = 10

    # Outbound replies
    SEND_CHANNEL: str = "pms"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 60

    # Background worker
    WORKER_POLL_INTERVAL: int = 5
    WORKER_BATCH_SIZE: int = 10
    JOB_MAX_ATTEMPTS: int = 3
    # Running jobs older than this are treated as orphaned by a dead worker
    JOB_STALE_AFTER_SECONDS: int = 600

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def ai_enabled(self) -> bool:
        """Classification runs only when a provider key is configured."""
        return bool(self.OPENAI_API_KEY)


settings = Settings()
