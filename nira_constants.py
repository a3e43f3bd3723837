"""Shared constants for the NIRA backend.

Import-safe module with no dependencies; can be imported from anywhere
without risk of circular imports.
"""

import os
from pathlib import Path


def get_nira_home() -> Path:
    """Directory holding .env, config.yaml, the database and logs (``NIRA_HOME``)."""
    return Path(os.getenv("NIRA_HOME", Path.home() / ".nira"))


DEFAULT_OLLAMA_ENDPOINT = "http://localhost:11434"
DEFAULT_MODEL = "HammerAI/mythomax-l2"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

# Model call -> tool execution cycles allowed per user message
MAX_TOOL_ROUNDS = 5

MAX_TOOL_RESULT_CHARS = 100_000
MAX_READ_FILE_BYTES = 2 * 1024 * 1024

DEFAULT_RAG_PATTERNS = ("*.md", "*.txt", "*.json", "*.yaml", "*.yml")

DUCKDUCKGO_API_URL = "https://api.duckduckgo.com/"
