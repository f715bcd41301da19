from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Supabase settings
    SUPABASE_URL: str
    SUPABASE_JWKS_URL: str | None = None
    SUPABASE_DB_URL: str

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    # =================================================================
    # DIALER CAPACITY ENGINE
    # =================================================================
    DIALER_TIMEZONE: str = "UTC"
    DIALER_PAGE_SIZE: int = 1000  # store row cap per read
    DIALER_ID_CHUNK_SIZE: int = 50  # ids per IN (...) predicate
    DIALER_WINDOW_EXTENSION_DAYS: int = 10
    DIALER_MAX_WINDOW_EXTENSIONS: int = 12
    DIALER_BACKFILL_BATCH_SIZE: int = 500
    DIALER_BACKFILL_MAX_CONTACTS: int = 10000
    DIALER_UNREACHABLE_SAMPLE_LIMIT: int = 100
    DIALER_AUTO_FIX_ENABLED: bool = False
    DIALER_LOCK_TIMEOUT_SECONDS: float = 30.0  # wait for another pass on the same user
    DIALER_LOCK_POLL_INTERVAL_SECONDS: float = 0.2

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # derive sensible defaults if not provided
    def jwks_url(self) -> str:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 2,
                    "max_size": 6,
                    "timeout": 15.0,
                }
            )

        return config

    def get_dialer_config(self) -> dict:
        """Operational knobs for the capacity engine (not per-user settings)."""
        return {
            "timezone": self.DIALER_TIMEZONE,
            "page_size": self.DIALER_PAGE_SIZE,
            "id_chunk_size": self.DIALER_ID_CHUNK_SIZE,
            "window_extension_days": self.DIALER_WINDOW_EXTENSION_DAYS,
            "max_window_extensions": self.DIALER_MAX_WINDOW_EXTENSIONS,
            "backfill_batch_size": self.DIALER_BACKFILL_BATCH_SIZE,
            "backfill_max_contacts": self.DIALER_BACKFILL_MAX_CONTACTS,
            "unreachable_sample_limit": self.DIALER_UNREACHABLE_SAMPLE_LIMIT,
            "auto_fix_enabled": self.DIALER_AUTO_FIX_ENABLED,
            "lock_timeout_seconds": self.DIALER_LOCK_TIMEOUT_SECONDS,
            "lock_poll_interval_seconds": self.DIALER_LOCK_POLL_INTERVAL_SECONDS,
        }


settings = Settings()

# =================================================================
# QUICK CONFIGURATION REFERENCE
# =================================================================
"""
Pool sizing for the Supabase free tier (60 connection limit):

CONSERVATIVE:
    DB_POOL_MIN_SIZE=2
    DB_POOL_MAX_SIZE=6

BALANCED (recommended):
    DB_POOL_MIN_SIZE=3
    DB_POOL_MAX_SIZE=12

Scheduling passes hold one extra pooled connection for the per-user
advisory lock, so keep DB_POOL_MAX_SIZE above the number of concurrent
imports you expect.
"""
