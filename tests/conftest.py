"""Shared test fixtures for goblln tests."""

import asyncio
import json
from typing import Optional

import pytest


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_HOST = "http://ollama.test:11434"
MOCK_MODEL = "gemma2"

GO_ANSWER_FRAGMENTS = [
    "Sure", "!", " Here", " is", " the", " function", ":", "\n",
    "```", "go", "\n",
    "func Add(a, b int) int {", "\n",
    "\treturn a + b", "\n",
    "}", "\n",
    "```", "\n",
    "It", " returns", " the", " sum", ".",
]


def ndjson_stream(fragments: list[str], model: str = MOCK_MODEL) -> bytes:
    """Build an Ollama /api/chat NDJSON body for the given fragments."""
    lines = [
        json.dumps({
            "model": model,
            "message": {"role": "assistant", "content": f},
            "done": False,
        })
        for f in fragments
    ]
    lines.append(json.dumps({"model": model, "message": {"role": "assistant", "content": ""}, "done": True}))
    return ("\n".join(lines) + "\n").encode()


# ─────────────────────────────────────────────────────────────────────
# FAKES - Backend boundary
# ─────────────────────────────────────────────────────────────────────

class FakeChatStream:
    """ChatStream over a fixed fragment list, recording reads and aborts."""

    def __init__(self, fragments: list[str], delay: float = 0.0, error: Optional[Exception] = None):
        self.fragments = list(fragments)
        self.delay = delay
        self.error = error
        self.consumed = 0
        self.abort_calls = 0

    @property
    def aborted(self) -> bool:
        return self.abort_calls > 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for fragment in self.fragments:
            if self.aborted:
                return
            if self.delay:
                await asyncio.sleep(self.delay)
            self.consumed += 1
            yield fragment
        if self.error is not None:
            raise self.error

    async def abort(self) -> None:
        self.abort_calls += 1


class FakeBackend:
    """ChatBackend returning one FakeChatStream per call, recording requests."""

    def __init__(self, fragments: list[str], delay: float = 0.0, error: Optional[Exception] = None):
        self.fragments = fragments
        self.delay = delay
        self.error = error
        self.requests: list[tuple[str, list[dict]]] = []
        self.streams: list[FakeChatStream] = []

    @property
    def last_prompt(self) -> str:
        return self.requests[-1][1][-1]["content"]

    def stream_chat(self, model_id: str, messages: list[dict]) -> FakeChatStream:
        self.requests.append((model_id, messages))
        stream = FakeChatStream(self.fragments, delay=self.delay, error=self.error)
        self.streams.append(stream)
        return stream


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_backend():
    """Factory for FakeBackend instances."""
    return FakeBackend


@pytest.fixture
def make_assistant():
    """Factory: Assistant wired to a FakeBackend streaming the given fragments."""
    from goblln.assistant import Assistant
    from goblln.config import AssistantConfig

    def _make(fragments: list[str], **backend_kwargs):
        backend = FakeBackend(fragments, **backend_kwargs)
        return Assistant(AssistantConfig(model=MOCK_MODEL), backend=backend), backend

    return _make


@pytest.fixture
def collected_tokens():
    """Async on_token callback that records tokens in order."""
    tokens: list[str] = []

    async def on_token(event):
        tokens.append(event.token)

    on_token.tokens = tokens
    return on_token


@pytest.fixture
def tmp_source_file(tmp_path):
    """Create a temporary JavaScript source file."""
    source_file = tmp_path / "broken.js"
    source_file.write_text("function add(a, b) {\n  return a - b;\n}\n")
    return source_file
