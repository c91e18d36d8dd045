from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"
    CORS_ORIGINS: List[str] = ["*"]
    USER_AGENT: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/110.0.0.0 Safari/537.36"
    PORT: int = 10000
    LOG_LEVEL: str = "INFO"

    # Per-link network policy
    REQUEST_TIMEOUT: float = 10.0  # seconds, per attempt
    REQUEST_RETRIES: int = 1  # extra attempts after a timeout
    MAX_REDIRECTS: int = 10

    # Per-scan limits
    WORKER_COUNT: int = 10
    SCAN_TIMEOUT: float = 3000.0  # stays below the Celery soft time limit
    DEFAULT_MAX_LINKS: int = 500
    MAX_LINKS_LIMIT: int = 1000

    # exact | subdomain | registrable
    INTERNAL_SCOPE: str = "exact"

    REPORT_TTL: int = 7 * 24 * 3600  # 7 days
    CANCEL_POLL_INTERVAL: float = 1.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = 'utf-8'

# Load settings from environment
settings = Settings()
