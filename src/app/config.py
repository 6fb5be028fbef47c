"""Web app configuration: loads environment variables and validates required settings.

Usage:
    from app.config import config
    print(config.relay_endpoint)
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

    # Relay base URL (local: http://localhost:8088)
    relay_endpoint: str

    # Seconds allowed to open a connection; reads are unbounded
    relay_connect_timeout: float


def _load_config() -> Config:
    """Load and validate configuration from environment."""
    env_file = _find_env_file()
    if env_file:
        load_dotenv(env_file, override=False)

    required = ("RELAY_ENDPOINT",)

    missing = [var for var in required if not os.environ.get(var)]
    if missing:
        print(
            f"Error: Missing required environment variables: {', '.join(missing)}\n"
            f"Copy .env.sample to .env and fill in values, e.g. RELAY_ENDPOINT=http://localhost:8088",
            file=sys.stderr,
        )
        sys.exit(1)

    return Config(
        relay_endpoint=os.environ["RELAY_ENDPOINT"],
        relay_connect_timeout=float(os.environ.get("RELAY_CONNECT_TIMEOUT", "10")),
    )


# Singleton, imported as `from app.config import config`
config = _load_config()
