"""Configuration and constants for the catalog admin client."""

import os
from pathlib import Path
from typing import Tuple

from dotenv import find_dotenv, load_dotenv

__all__ = [
    "DEFAULT_API_DOMAIN",
    "DEFAULT_ADMIN_API_KEY",
    "APP_DIR",
    "SETTINGS_PATH",
    "ENV_PATH",
    "HEADERS",
    "REQUEST_TIMEOUT",
    "MAX_IMAGE_BYTES",
    "IMAGE_MIME_TYPES",
    "OUTPUT_MIME_TYPE",
    "INITIAL_QUALITY",
    "QUALITY_STEP",
    "QUALITY_FLOOR",
    "DOWNSCALE_FACTOR",
    "DEFAULT_CURRENCY",
    "LOG_DIR",
]

# Per-user state lives here, outside the installed package
APP_DIR = Path.home() / ".catalog_admin"

# .env is looked up from the working directory upwards (empty if none)
ENV_PATH = find_dotenv(usecwd=True)

# Load environment variables from .env file before reading overrides
if ENV_PATH:
    load_dotenv(dotenv_path=ENV_PATH)

# Backend settings (allow env overrides; persisted settings take precedence)
DEFAULT_API_DOMAIN = os.getenv("CATALOG_API_DOMAIN", "https://api.swabcity.shop")
DEFAULT_ADMIN_API_KEY = os.getenv("CATALOG_ADMIN_API_KEY", "")

SETTINGS_PATH = os.getenv(
    "CATALOG_SETTINGS_PATH",
    str(APP_DIR / "settings.json"),
)

# HTTP headers sent with every request
HEADERS = {
    "User-Agent": "catalog-admin/0.1.0",
    "Accept": "application/json",
}

# Request timeout in seconds
REQUEST_TIMEOUT = float(os.getenv("CATALOG_REQUEST_TIMEOUT", "60"))

# =============================================================================
# Image payload settings
# =============================================================================
# Upload ceiling for an encoded image (2MB, decimal)
MAX_IMAGE_BYTES = 2 * 1000 * 1000

# Accepted payload types, in prefix-scan order
IMAGE_MIME_TYPES: Tuple[str, ...] = (
    "image/jpeg",
    "image/png",
    "image/webp",
)

# Compressed output is always JPEG
OUTPUT_MIME_TYPE = "image/jpeg"

# JPEG quality ladder, in percent: 90, 80, ... 10
INITIAL_QUALITY = 90
QUALITY_STEP = 10
QUALITY_FLOOR = 10

# Longest side shrinks to 80% on every compression attempt
DOWNSCALE_FACTOR = 0.8

# Template values for a new product
DEFAULT_CURRENCY = "XMR"

# Log directory for JSONL event logs
LOG_DIR = Path(os.getenv("CATALOG_LOG_DIR", str(APP_DIR / "logs")))
