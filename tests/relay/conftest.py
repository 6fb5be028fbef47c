"""Shared test fixtures for relay tests.

Environment variables MUST be set at module level (before any relay
modules are imported) because ``relay.config`` evaluates ``_load_config()``
at import time.
"""

import os

# Set required env vars before any relay code is imported
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

import pytest  # noqa: E402
