"""
Adapters for LLM chat backends.

Protocol defines WHAT, implementations define HOW.
"""

from .base import ChatBackend, ChatStream
from .ollama import OllamaAdapter, OllamaChatStream, OllamaError

__all__ = ["ChatBackend", "ChatStream", "OllamaAdapter", "OllamaChatStream", "OllamaError"]
