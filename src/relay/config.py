"""Relay configuration: loads environment variables and validates required settings.

Usage:
    from relay.config import config
    print(config.article_model)
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _find_env_file() -> Path | None:
    """Search for .env file starting from the src/ directory, then up."""
    current = Path(__file__).resolve().parent.parent  # src/
    candidates = [
        current / ".env",
        current.parent / ".env",  # repo root
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    # Hosted model API credential (never leaves the relay)
    openai_api_key: str

    # Optional API-compatible endpoint; empty means the SDK default
    openai_base_url: str

    # Model names
    article_model: str
    disambiguation_model: str

    # Language articles and disambiguation choices are written in
    article_language: str


def _load_config() -> Config:
    """Load and validate configuration from environment."""
    env_file = _find_env_file()
    if env_file:
        load_dotenv(env_file, override=False)

    required = ("OPENAI_API_KEY",)

    missing = [var for var in required if not os.environ.get(var)]
    if missing:
        print(
            f"Error: Missing required environment variables: {', '.join(missing)}\n"
            f"Copy .env.sample to .env and fill in values before starting the relay.",
            file=sys.stderr,
        )
        sys.exit(1)

    return Config(
        openai_api_key=os.environ["OPENAI_API_KEY"],
        openai_base_url=os.environ.get("OPENAI_BASE_URL", ""),
        article_model=os.environ.get("ARTICLE_MODEL", "gpt-4.1"),
        disambiguation_model=os.environ.get("DISAMBIGUATION_MODEL", "gpt-4.1-mini"),
        article_language=os.environ.get("ARTICLE_LANGUAGE", "English"),
    )


# Singleton, imported as `from relay.config import config`
config = _load_config()
