"""Shared constants for the Flagship CLI."""

import os

PROGRAM_NAME = "flagship"
PROGRAM_VERSION = "0.1.0"

# Process environment inputs
ENV_BASE_URL = "FLAGSHIP_BASE_URL"
ENV_API_KEY = "FLAGSHIP_API_KEY"
ENV_CONFIG_PATH = "FLAGSHIP_CONFIG"

# Persisted config location
CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".flagship")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.yaml")
CONFIG_DIR_MODE = 0o700
CONFIG_FILE_MODE = 0o600

DEFAULT_ENV = "prod"
CONFIG_FIELDS = ("base_url", "api_key")

# Remote API
REQUEST_TIMEOUT = 30.0  # seconds, applies to every request
FLAGS_PATH = "/v1/flags"
SNAPSHOT_PATH = "/v1/flags/snapshot"
USER_AGENT = f"{PROGRAM_NAME}-cli/{PROGRAM_VERSION}"

# Output
OUTPUT_FORMATS = ("table", "json", "yaml")
DEFAULT_OUTPUT_FORMAT = "table"
DESCRIPTION_MAX_WIDTH = 40
