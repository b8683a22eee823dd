from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ChatRequest(BaseModel):
    """Body of a POST /api/chat request."""
    model: str
    messages: List[Dict[str, Any]]
    stream: bool = True
    options: Optional[Dict[str, Any]] = None


class ChatMessage(BaseModel):
    role: str = "assistant"
    content: str = ""


class ChatChunk(BaseModel):
    """
    One NDJSON line of a streamed /api/chat response.

    Ollama sends {"message": {...}, "done": false} per token, a final
    {"done": true, ...} with timing stats, or {"error": "..."} on failure.
    """
    model: Optional[str] = None
    message: Optional[ChatMessage] = None
    done: bool = False
    error: Optional[str] = None

    @property
    def content(self) -> str:
        return self.message.content if self.message else ""
