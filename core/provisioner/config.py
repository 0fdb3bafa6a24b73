"""Configuration settings for the provisioner."""

import os
from pathlib import Path

# Paths
DATA_DIR = Path.home() / ".provisioner"
SETTINGS_FILE = "settings.json"

# Local model server
SERVER_NAME = "Ollama"
SERVER_URL = "http://localhost:11434"
PROBE_TIMEOUT = 2.0  # seconds
TAGS_CACHE_TTL = 0.1  # seconds

# Remote model library
REGISTRY_URL = "https://registry.ollama.ai"
MANIFEST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"
METADATA_TIMEOUT = 15.0  # seconds

# Server installation
DOWNLOAD_PAGE_URL = "https://ollama.com/download"
INSTALL_SCRIPT_URL = "https://ollama.com/install.sh"
WINDOWS_INSTALLER_URL = "https://ollama.com/download/OllamaSetup.exe"
DEVSPACES_DOCS_URL = (
    "https://developers.redhat.com/articles/2024/08/12/"
    "integrate-private-ai-coding-assistant-ollama"
)
INSTALLER_TEMP_DIR = "local-ai-provisioner"
HOMEBREW_SETTLE_DELAY = 3.0  # seconds

# Server startup
START_TIMEOUT = 30.0  # seconds
START_POLL_INTERVAL = 0.5  # seconds

# Session
STATUS_DEBOUNCE = 0.05  # seconds

# API
HOST = "127.0.0.1"
PORT = 7879
API_PREFIX = "/api"

# Logging
LOG_LEVEL = os.environ.get("PROVISIONER_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
