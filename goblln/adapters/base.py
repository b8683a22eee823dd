"""
ChatBackend Protocol - defines the contract for LLM chat backends.

This is the WHAT (interface), not the HOW (implementation).
See ollama.py for the concrete implementation.
"""

from typing import AsyncIterator, Protocol


class ChatStream(Protocol):
    """
    One in-flight streamed chat response.

    Iterating yields text fragments in arrival order. abort() releases the
    underlying connection and must be safe to call any number of times,
    including after the stream finished on its own.
    """

    def __aiter__(self) -> AsyncIterator[str]:
        ...

    async def abort(self) -> None:
        ...


class ChatBackend(Protocol):
    """Contract for LLM chat backends."""

    def stream_chat(self, model_id: str, messages: list[dict]) -> ChatStream:
        """
        Open a streamed chat completion.

        Args:
            model_id: Model name as known to the backend
            messages: Chat messages [{"role": "...", "content": "..."}]

        Returns:
            ChatStream yielding content fragments

        Raises:
            Exception on transport or model error, raised while iterating
        """
        ...
