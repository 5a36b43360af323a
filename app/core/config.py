"""Application configuration via pydantic-settings.

Loads all settings from environment variables with sensible defaults.
A global `settings` singleton is available for import throughout the app.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str

    # Redis work queue
    REDIS_URL: str = "redis://localhost:6379/0"
    QUEUE_KEY_PREFIX: str = "cliplab:"

    # Apify
    APIFY_TOKEN: str = ""
    APIFY_POST_ACTOR_ID: str = "apify/instagram-scraper"
    APIFY_PROFILE_ACTOR_ID: str = "apify/instagram-profile-scraper"
    SCRAPE_TIMEOUT_SECONDS: int = 120
    PEER_SAMPLE_SIZE: int = 30

    # LLM
    LLM_BASE_URL: str = "https://generativelanguage.googleapis.com"
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_API_KEY: str = ""
    LLM_TIMEOUT_SECONDS: float = 600.0
    COMMENT_SAMPLE_SIZE: int = 20
    TARGET_REGION: str = "Global"

    # Ingest
    ANONYMOUS_DAILY_LIMIT: int = 2
    FRESHNESS_WINDOW_HOURS: int = 1200
    RENEW_ESTIMATE_SECONDS: int = 10

    # Dispatcher
    DISPATCHER_ENABLED: bool = True
    QUEUE_POP_TIMEOUT_SECONDS: int = 5

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Scheduler
    REQUEUE_INTERVAL_MINUTES: int = 5
    PENDING_REQUEUE_AFTER_MINUTES: int = 15

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()  # type: ignore[call-arg]
