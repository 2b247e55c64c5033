import logging
from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Process configuration sourced from the environment.

    Variable names match the field names (case-insensitive), e.g.
    ``SPOTIFY_CLIENT_ID`` or ``PORT``.
    """

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    SPOTIFY_CLIENT_ID: str = ""
    SPOTIFY_CLIENT_SECRET: str = ""
    SPOTIFY_REDIRECT_URI: str = ""

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Default HTTP client timeout in seconds for upstream calls
    HTTP_CLIENT_TIMEOUT: float = 10.0

    # Directory holding the presentation page; empty means the bundled one
    STATIC_DIR: str = ""

    LOG_LEVEL: str = "INFO"
    # "text" for human-readable lines, "json" for structured stderr output
    LOG_FORMAT: str = "text"


@lru_cache
def get_settings() -> Settings:
    """Load ``.env`` (without overriding the process env) and build settings once."""
    load_dotenv(override=False)
    s = Settings()
    if not s.SPOTIFY_CLIENT_ID or not s.SPOTIFY_CLIENT_SECRET:
        logger.warning(
            "SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET not configured; login will fail"
        )
    return s
