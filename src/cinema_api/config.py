"""Configuration from environment variables."""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from project root
project_root = Path(__file__).parent.parent.parent
load_dotenv(project_root / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Generation backend selection
GENERATION_PROVIDER = os.getenv("GENERATION_PROVIDER", "mock")

# HTTP generation backend configuration
GENERATION_API_BASE = os.getenv("GENERATION_API_BASE", "http://localhost:8100")
GENERATION_API_KEY = os.getenv("GENERATION_API_KEY", "")
GENERATION_API_ENDPOINT = os.getenv("GENERATION_API_ENDPOINT", "/v1/videos/generate")
GENERATION_TIMEOUT_SECONDS = int(os.getenv("GENERATION_TIMEOUT_SECONDS", "300"))
GENERATION_POLL_INTERVAL_SECONDS = float(
    os.getenv("GENERATION_POLL_INTERVAL_SECONDS", "2.0")
)

# Batch pipeline: pool size, per-unit retry, whole-batch deadline
PRODUCTION_CONCURRENCY = int(os.getenv("PRODUCTION_CONCURRENCY", "3"))
UNIT_MAX_ATTEMPTS = int(os.getenv("UNIT_MAX_ATTEMPTS", "2"))
UNIT_RETRY_BACKOFF_SECONDS = float(os.getenv("UNIT_RETRY_BACKOFF_SECONDS", "2.0"))
BATCH_TIMEOUT_SECONDS = int(os.getenv("BATCH_TIMEOUT_SECONDS", "1800"))

# Starting balance for users unknown to the in-memory credit store
DEFAULT_USER_CREDITS = int(os.getenv("DEFAULT_USER_CREDITS", "0"))
