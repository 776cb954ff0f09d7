# commerce/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local runs)
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (storage uploads/deletes, backend only)
      - ADMIN_NOTIFICATION_EMAIL (receives new order / status change mails)
      - SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD (+ SMTP_* options) for sending them
      - REDIS_URL (only used by the arq sweep worker)
    """

    PROJECT_NAME: str = "Commerce Catalogue API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Object storage
    STORAGE_BUCKET: str = "catalogue"
    IMAGE_URL_TTL_MINUTES: int = 60
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    MAX_CATALOG_IMAGES: int = 5

    # Carts older than this (and inactive) are removed by the daily sweep
    CART_RETENTION_DAYS: int = 30

    # Order notifications (SMTP)
    ADMIN_NOTIFICATION_EMAIL: str | None = None
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Catalogue Orders"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    # Sweep worker
    REDIS_URL: str = "redis://localhost:6379/0"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
