"""Shared test fixtures for web-app tests."""

import os

# Config is loaded at import time, so set required env vars before any app
# modules are imported by the test collector.
os.environ.setdefault("RELAY_ENDPOINT", "http://relay.test")

import pytest  # noqa: E402
