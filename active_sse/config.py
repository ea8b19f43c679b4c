import logging
import sys

from pydantic_settings import BaseSettings
from typing import Optional


def setup_logging(level: int = logging.INFO):
    """Configure logging for command line use."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Set third-party loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class Settings(BaseSettings):
    # Timeout settings (seconds). No read timeout: streams may stay idle for long periods
    connect_timeout: float = 10.0
    read_timeout: Optional[float] = None

    # Reconnection policy for dropped streams
    reconnect: bool = True
    max_retries: Optional[int] = 5
    retry_delay: float = 1.0
    max_retry_delay: float = 30.0

    user_agent: str = "active-sse/0.2.0"

    class Config:
        env_prefix = "ACTIVE_SSE_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
