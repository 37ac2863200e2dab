"""Environment configuration for the feed parser."""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .options import DEFAULT_BASE_URL


class Settings(BaseModel):
    """Runtime settings, read from FEED_PARSER_* environment variables."""
    base_url: str = Field(default=DEFAULT_BASE_URL)
    timeout: float = Field(default=30.0, gt=0)     # Seconds, whole request
    log_level: str = Field(default="INFO")
    user_agent: Optional[str] = None               # Sent only if the request carries none


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from the environment.

    The default .env file is applied once by the runner script at import.
    Pass ``env_file`` to apply a different file first.
    """
    if env_file:
        load_dotenv(env_file)

    return Settings(
        base_url=os.getenv("FEED_PARSER_BASE_URL", DEFAULT_BASE_URL),
        timeout=float(os.getenv("FEED_PARSER_TIMEOUT", "30")),
        log_level=os.getenv("FEED_PARSER_LOG_LEVEL", "INFO"),
        user_agent=os.getenv("FEED_PARSER_USER_AGENT") or None,
    )
