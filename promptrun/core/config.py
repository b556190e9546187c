"""Configuration settings for the Promptrun sync client."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from environment."""

    # API access
    api_key: str = ""
    base_url: str = "https://api.promptrun.ai/v1"
    request_timeout: float = 30.0  # seconds

    # Polling (milliseconds)
    default_poll_interval_ms: int = 6000
    min_poll_interval_ms: int = 5000  # floor to avoid rate limiting
    max_backoff_ms: int = 300_000  # 5 minutes

    # Push / SSE (milliseconds)
    sse_reconnect_delay_ms: int = 5000

    class Config:
        env_prefix = "PROMPTRUN_"
        env_file = ".env"


settings = Settings()
