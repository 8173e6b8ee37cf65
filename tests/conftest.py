"""Pytest configuration: deterministic settings for every test run."""

import os

# Settings are read once at import; pin the timezone so "today" is predictable
# and keep strict checks off so no Firestore project is required.
os.environ.setdefault("STRICT_MODE", "false")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("ELEVA_TIMEZONE", "America/Sao_Paulo")
os.environ.setdefault("FIRESTORE_EMULATOR_HOST", "localhost:8080")
