"""Configuration and settings."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "output"
FIXTURE_CONVERSATIONS_PATH = Path(
    os.getenv("FIXTURE_CONVERSATIONS_PATH", str(DATA_DIR / "conversations.json"))
)

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'thread_matcher.sqlite'}")

# Logging
LOG_DIR = OUTPUT_DIR / "logs"
LOG_FILE = LOG_DIR / "app.jsonl"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "false").lower() == "true"

# Ensure log directory exists
LOG_DIR.mkdir(parents=True, exist_ok=True)

# OpenTelemetry
OTEL_ENABLED = os.getenv("OTEL_ENABLED", "false").lower() == "true"
OTEL_EXPORTER_ENDPOINT = os.getenv("OTEL_EXPORTER_ENDPOINT", "http://localhost:4318/v1/traces")
OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "thread-matcher")
DEPLOYMENT_ENVIRONMENT = os.getenv("DEPLOYMENT_ENVIRONMENT", "development")

# Front (communication system)
FRONT_API_BASE = os.getenv("FRONT_API_BASE", "https://api2.frontapp.com").rstrip("/")
FRONT_API_TOKEN = os.getenv("FRONT_API_TOKEN", "")
# "front" uses the live API; "fixture" reads FIXTURE_CONVERSATIONS_PATH
CONVERSATION_SOURCE = os.getenv("CONVERSATION_SOURCE", "front").lower()

# Search calls must not hang a discovery attempt.
SEARCH_TIMEOUT_SECONDS = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "10"))
SEARCH_MAX_ATTEMPTS = int(os.getenv("SEARCH_MAX_ATTEMPTS", "3"))
SEARCH_RESULT_LIMIT = int(os.getenv("SEARCH_RESULT_LIMIT", "25"))

# Matching weights/thresholds live in YAML so they can be tuned without a deploy
MATCHING_CONFIG_PATH = PROJECT_ROOT / "config" / "matching.yaml"

# API server
API_PORT = int(os.getenv("API_PORT", "8000"))

# Batch discovery
DISCOVERY_CONCURRENCY = int(os.getenv("DISCOVERY_CONCURRENCY", "4"))
