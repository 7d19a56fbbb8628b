# byok/app/core/config.py
"""
Application configuration using pydantic-settings.

Security considerations:
- SECRET_KEY must be set via env outside local development
- CORS_ORIGINS parsed from comma-separated env var, never defaults to "*"
- Database URLs normalized for async drivers automatically
- The vault encryption key is NOT configuration: it is generated on first
  use and lives in the database next to the ciphertexts it protects
"""
from functools import lru_cache
from typing import List

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_SECRET_KEY = "INSECURE_DEV_KEY_CHANGE_IN_PRODUCTION"


class Settings(BaseSettings):
    """
    Strictly typed application settings.

    Priority for loading:
    1. Environment variables (highest priority)
    2. .env file (via pydantic-settings)
    3. Default values (lowest priority, dev-safe only)
    """

    # ─────────────────────────────────────────────────────────────
    # Application metadata
    # ─────────────────────────────────────────────────────────────
    PROJECT_NAME: str = "BYOK Video Studio"
    PROJECT_VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ─────────────────────────────────────────────────────────────
    # Security: JWT Configuration
    # Tokens carry the user id ("sub") and the providers the user
    # may generate with ("providers")
    # ─────────────────────────────────────────────────────────────
    SECRET_KEY: str = DEV_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # ─────────────────────────────────────────────────────────────
    # Database Configuration
    # Local SQLite file by default: this is the device-local store
    # for the encryption key, credentials and generation history.
    # ─────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./byok.db"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """
        Normalize database URLs for async SQLAlchemy compatibility.

        Conversions:
        - postgres://     → postgresql+asyncpg://
        - postgresql://   → postgresql+asyncpg://
        - sqlite:///      → sqlite+aiosqlite:///
        """
        if v is None:
            return "sqlite+aiosqlite:///./byok.db"

        url = v.strip()

        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)

        if url.startswith("postgresql://") and "+asyncpg" not in url:
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)

        if url.startswith("sqlite:///") and "+aiosqlite" not in url:
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

        return url

    # MUST be False in production to prevent SQL query exposure
    DATABASE_ECHO: bool = False

    # ─────────────────────────────────────────────────────────────
    # CORS Configuration
    # Empty string → empty list (NOT "*")
    # ─────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def BACKEND_CORS_ORIGINS(self) -> List[str]:
        """Parse CORS_ORIGINS string into a list of allowed origins."""
        if not self.CORS_ORIGINS or not self.CORS_ORIGINS.strip():
            return []

        return [
            origin.strip()
            for origin in self.CORS_ORIGINS.split(",")
            if origin.strip()
        ]

    # ─────────────────────────────────────────────────────────────
    # Credential vault
    # Fixed storage name of the device-local Fernet key
    # ─────────────────────────────────────────────────────────────
    ENCRYPTION_KEY_NAME: str = "byok-encryption-key"

    # ─────────────────────────────────────────────────────────────
    # Generation orchestrator
    # 80 attempts x 3 s = 4 minute hard ceiling per job
    # ─────────────────────────────────────────────────────────────
    POLL_INTERVAL_SECONDS: float = 3.0
    MAX_POLL_ATTEMPTS: int = 80
    MAX_PROMPT_LENGTH: int = 500

    # Providers switched on by the administrator (comma-separated).
    # A user additionally needs the provider in their token's allow-list.
    ENABLED_PROVIDERS: str = "google-veo,meta-moviegen,runway-gen3"

    @property
    def enabled_providers(self) -> List[str]:
        return [
            provider.strip()
            for provider in self.ENABLED_PROVIDERS.split(",")
            if provider.strip()
        ]

    # ─────────────────────────────────────────────────────────────
    # Google Veo (Vertex AI) reference adapter
    # ─────────────────────────────────────────────────────────────
    GOOGLE_PROJECT_ID: str = "byok-video-studio"
    GOOGLE_LOCATION: str = "us-central1"
    GOOGLE_VEO_MODEL_ID: str = "veo-3.1-fast-generate-001"
    PROVIDER_HTTP_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database (local development)."""
        return "sqlite" in self.DATABASE_URL.lower()

    @model_validator(mode="after")
    def require_secret_key_in_production(self) -> "Settings":
        """Refuse the built-in development SECRET_KEY in production."""
        if self.is_production and self.SECRET_KEY == DEV_SECRET_KEY:
            raise ValueError("SECRET_KEY must be set when ENVIRONMENT is production")
        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.

    Using lru_cache ensures settings are only loaded once,
    providing consistent configuration across the application.
    """
    return Settings()


# Existing code imports `settings` directly from this module
settings = get_settings()
