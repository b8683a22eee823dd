"""
Configuration constants and Pydantic models for goblln.
"""

import os
from typing import Optional

from pydantic import BaseModel


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS - Overridable via environment or CLI flags
# ─────────────────────────────────────────────────────────────────────

DEFAULT_MODEL: str = "gemma2"
DEFAULT_OLLAMA_HOST: str = "127.0.0.1:11434"
DEFAULT_REQUEST_TIMEOUT_SECONDS: float = 300.0  # 5 minutes
DEFAULT_PROGRAMMING_LANGUAGE: str = "javascript"
DEFAULT_LANGUAGE: str = "en"


# ─────────────────────────────────────────────────────────────────────
# INTERNAL CONSTANTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_MESSAGE: str = "Goblln is unable to process this request."
FENCE: str = "```"


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_ollama_host() -> str:
    """
    Get Ollama host from environment or default.

    Set OLLAMA_HOST in .env (default: 127.0.0.1:11434).
    """
    host = os.environ.get("OLLAMA_HOST", "").strip()
    return host or DEFAULT_OLLAMA_HOST


def get_ollama_proxy() -> Optional[str]:
    """Get proxy URL for the Ollama connection, if any."""
    proxy = os.environ.get("OLLAMA_PROXY", "").strip()
    return proxy or None


def get_default_model() -> str:
    """
    Get model name from environment or default.

    Set GOBLLN_MODEL in .env (default: gemma2).
    """
    model = os.environ.get("GOBLLN_MODEL", "").strip()
    return model or DEFAULT_MODEL


def get_chat_timeout() -> Optional[float]:
    """
    Get total duration limit for a single chat call.

    Set GOBLLN_TIMEOUT_SECONDS in .env. Unset, empty, non-numeric or
    non-positive values mean no limit.
    """
    try:
        value = float(os.environ.get("GOBLLN_TIMEOUT_SECONDS", ""))
    except ValueError:
        return None
    return value if value > 0 else None


def get_request_timeout() -> float:
    """
    Get HTTP timeout for requests to the Ollama server.

    Set GOBLLN_REQUEST_TIMEOUT_SECONDS in .env (default: 300).
    """
    try:
        return float(os.environ.get(
            "GOBLLN_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS)
        ))
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT_SECONDS


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

class AssistantConfig(BaseModel):
    """Connection and call settings for one Assistant instance."""
    model: str = DEFAULT_MODEL
    host: str = DEFAULT_OLLAMA_HOST
    proxy: Optional[str] = None
    timeout_seconds: Optional[float] = None  # Total duration per chat call
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "AssistantConfig":
        return cls(
            model=get_default_model(),
            host=get_ollama_host(),
            proxy=get_ollama_proxy(),
            timeout_seconds=get_chat_timeout(),
            request_timeout_seconds=get_request_timeout(),
        )

    def with_overrides(self, **overrides) -> "AssistantConfig":
        """Return a copy with every non-None override applied."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        return self.model_copy(update=updates)
