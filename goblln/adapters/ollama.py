"""
OllamaAdapter - Ollama implementation of ChatBackend.

Streams /api/chat over httpx. Each adapter instance owns its own settings;
each stream owns its own AsyncClient so abort() can drop the connection
without touching other streams.
"""

import json
import logging
from typing import AsyncGenerator, Optional

import httpx
from pydantic import ValidationError

from goblln.adapters.schema import ChatChunk, ChatRequest
from goblln.config import DEFAULT_OLLAMA_HOST, DEFAULT_REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class OllamaError(Exception):
    """Human-readable error from the Ollama server or connection."""
    pass


def normalize_host(host: str) -> str:
    """Turn "127.0.0.1:11434" or "http://box:11434/" into a base URL."""
    host = host.strip()
    if "://" not in host:
        host = f"http://{host}"
    return host.rstrip("/")


def parse_ollama_error(body: bytes) -> str:
    """Extract a user-friendly error message from an Ollama error body."""
    try:
        data = json.loads(body)
        # Ollama returns {"error": "..."}
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, str) and error:
                return error
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
    except (ValueError, UnicodeDecodeError):
        pass
    return body.decode(errors="replace")[:200]


class OllamaChatStream:
    """
    A single streamed /api/chat response.

    The request is sent lazily on first iteration. abort() closes the
    response and client; a read interrupted by abort() ends iteration
    quietly instead of raising.
    """

    def __init__(
        self,
        url: str,
        request: ChatRequest,
        timeout_seconds: float,
        proxy: Optional[str] = None,
    ):
        self._url = url
        self._request = request
        self._timeout_seconds = timeout_seconds
        self._proxy = proxy
        self._client: Optional[httpx.AsyncClient] = None
        self._response: Optional[httpx.Response] = None
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    def __aiter__(self) -> AsyncGenerator[str, None]:
        return self._iterate()

    async def _iterate(self) -> AsyncGenerator[str, None]:
        if self._aborted:
            return

        model_id = self._request.model
        self._client = httpx.AsyncClient(timeout=self._timeout_seconds, proxy=self._proxy)
        try:
            request = self._client.build_request(
                "POST", self._url, json=self._request.model_dump(exclude_none=True)
            )
            logger.debug(f"Opening chat stream to {self._url} for model {model_id}")
            self._response = await self._client.send(request, stream=True)

            if self._response.status_code >= 400:
                # Read the error body for streaming responses
                error_body = await self._response.aread()
                msg = parse_ollama_error(error_body)
                raise OllamaError(f"Ollama error for '{model_id}': {msg}")

            async for line in self._response.aiter_lines():
                if not line.strip():
                    continue
                try:
                    chunk = ChatChunk.model_validate_json(line)
                except ValidationError:
                    logger.debug(f"Skipping malformed chunk: {line[:80]!r}")
                    continue

                if chunk.error:
                    raise OllamaError(f"Ollama error for '{model_id}': {chunk.error}")
                if chunk.content:
                    yield chunk.content
                if chunk.done:
                    break

        except (httpx.HTTPError, httpx.StreamError) as e:
            if self._aborted:
                logger.debug(f"Chat stream for {model_id} ended by abort")
                return
            raise OllamaError(f"Ollama connection error for '{model_id}': {e}") from e
        finally:
            await self.abort()

    async def abort(self) -> None:
        """Close the response and client. Idempotent."""
        if self._aborted:
            return
        self._aborted = True
        if self._response is not None:
            await self._response.aclose()
        if self._client is not None:
            await self._client.aclose()
        logger.debug(f"Chat stream to {self._url} closed")


class OllamaAdapter:
    """
    Ollama implementation of ChatBackend protocol.

    Holds connection settings only; every stream_chat() call opens an
    independent OllamaChatStream.
    """

    def __init__(
        self,
        host: str = DEFAULT_OLLAMA_HOST,
        proxy: Optional[str] = None,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ):
        self._base_url = normalize_host(host)
        self._proxy = proxy
        self._timeout_seconds = timeout_seconds

    @property
    def base_url(self) -> str:
        return self._base_url

    def stream_chat(self, model_id: str, messages: list[dict]) -> OllamaChatStream:
        """Open a streamed chat completion against {host}/api/chat."""
        request = ChatRequest(model=model_id, messages=messages, stream=True)
        return OllamaChatStream(
            url=f"{self._base_url}/api/chat",
            request=request,
            timeout_seconds=self._timeout_seconds,
            proxy=self._proxy,
        )
