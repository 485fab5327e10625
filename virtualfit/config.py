"""Application settings via pydantic-settings (reads .env)."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VirtualFit configuration: loaded from environment / .env file."""

    # Application
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Google Gemini
    GOOGLE_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash-exp"
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"

    # Persisted outputs: {STORAGE_ROOT}/generated and {STORAGE_ROOT}/metadata
    STORAGE_ROOT: str = "storage"

    # Result cache (0 = entries never expire)
    CACHE_DIR: str = ".cache/images"
    CACHE_TTL_SECONDS: int = 7 * 24 * 60 * 60

    # Outbound timeouts
    DOWNLOAD_TIMEOUT_SECONDS: float = 30.0
    GENERATION_TIMEOUT_SECONDS: float = 120.0

    # Admin endpoints are disabled while this is empty
    ADMIN_TOKEN: str = ""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def cache_ttl(self) -> float | None:
        """Default cache TTL in seconds, or None when entries never expire."""
        return float(self.CACHE_TTL_SECONDS) if self.CACHE_TTL_SECONDS > 0 else None


settings = Settings()
