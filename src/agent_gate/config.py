"""Configuration for the agent gate."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from a .env file when present.
load_dotenv()

LOG_DIR = Path(os.getenv("AGENT_GATE_LOG_DIR", "logs"))

# The critic runs on a fast, cheap model; the action generator is expected to use a stronger one.
CRITIC_MODEL = os.getenv("CRITIC_MODEL", "gpt-4o-mini")

CRITIC_PROVIDER = "openai"

CRITIC_TEMPERATURE = float(os.getenv("CRITIC_TEMPERATURE", "0.3"))

CRITIC_MAX_OUTPUT_TOKENS = int(os.getenv("CRITIC_MAX_OUTPUT_TOKENS", "300"))


def get_openai_api_key() -> str | None:
    """Return the OpenAI API key or None when it is not configured."""
    return os.getenv("OPENAI_API_KEY") or None
