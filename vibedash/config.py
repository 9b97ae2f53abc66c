"""Vibedash Backend Configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default

# Project root (one level up from vibedash/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# Database
DB_PATH = os.getenv("VIBEDASH_DB_PATH", str(DATA_DIR / "vibedash.db"))

# Logging
LOG_LEVEL = os.getenv("VIBEDASH_LOG_LEVEL", "INFO").upper()

# Transcript display and classification
DISPLAY_TIMEZONE = os.getenv("VIBEDASH_DISPLAY_TIMEZONE", "UTC")
MCP_TOOL_PREFIX = os.getenv("VIBEDASH_MCP_TOOL_PREFIX", "mcp__")
SUBAGENT_RULES_PATH = os.getenv("VIBEDASH_SUBAGENT_RULES_PATH", "")

# Upload ingestion
INGEST_BATCH_SIZE = max(1, _env_int("VIBEDASH_INGEST_BATCH_SIZE", 100))
MAX_UPLOAD_BYTES = _env_int("VIBEDASH_MAX_UPLOAD_BYTES", 50 * 1024 * 1024)

# Observability
OTEL_ENABLED = _env_bool("VIBEDASH_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("VIBEDASH_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("VIBEDASH_OTEL_SERVICE_NAME", "vibedash-backend")
PROM_PORT = _env_int("VIBEDASH_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("VIBEDASH_HOST", "0.0.0.0")
PORT = _env_int("VIBEDASH_PORT", 8000)

# CORS
FRONTEND_ORIGIN = os.getenv("VIBEDASH_FRONTEND_ORIGIN", "http://localhost:3000")
