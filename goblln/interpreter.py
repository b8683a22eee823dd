"""
Streaming chat interpreter.

Consumes a backend ChatStream fragment by fragment, tracks line/sentence
context, detects stop phrases and (in code mode) fenced-code boundaries, and
emits the fragments worth showing. Two consumption styles share one classifier:

    # Pull
    interpreter = StreamInterpreter(InterpreterMode.CODE)
    async for event in interpreter.events(stream):
        show(event.token)
    answer = interpreter.result

    # Push
    answer = await interpret(stream, InterpreterMode.CODE, on_token=show)

State lives on the StreamInterpreter instance and is never shared between
calls.
"""

import asyncio
import inspect
import logging
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import AsyncGenerator, Awaitable, Callable, Optional, Union

from goblln.adapters.base import ChatStream
from goblln.config import DEFAULT_MESSAGE, FENCE

logger = logging.getLogger(__name__)


SENTENCE_DELIMITERS: tuple[str, ...] = (".", "?", "!")
EXAMPLE_MARKER: str = "// example"


class InterpreterMode(str, Enum):
    """How emitted output is selected from the stream."""
    TEXT = "text"  # Pass everything through
    CODE = "code"  # Only the body of the first fenced block


class FenceState(str, Enum):
    """Position relative to the fenced block, code mode only."""
    AWAITING_FENCE = "awaiting_fence"
    SKIPPING_LANGUAGE_TAG = "skipping_language_tag"
    INSIDE_CODE = "inside_code"
    CLOSED = "closed"


class StopReason(str, Enum):
    """Why an interpretation ended with DEFAULT_MESSAGE."""
    ALREADY_CORRECT = "already_correct"
    REFUSAL = "refusal"
    TIMEOUT = "timeout"


STOP_PHRASES: dict[str, StopReason] = {
    "actually correct": StopReason.ALREADY_CORRECT,
    "already correct": StopReason.ALREADY_CORRECT,
    "cannot provide": StopReason.REFUSAL,
    "can't provide": StopReason.REFUSAL,
    "unable to provide": StopReason.REFUSAL,
}


@dataclass
class TokenEvent:
    """One emitted fragment with the line context at the time it arrived."""
    token: str
    line: str  # Last completed line, trailing whitespace trimmed
    line_lower: str  # Lowercased line or in-progress accumulation
    is_new_line: bool


@dataclass
class InterpretResult:
    """Final answer of one interpretation."""
    text: str
    stop_reason: Optional[StopReason] = None

    @property
    def stopped(self) -> bool:
        return self.stop_reason is not None


TokenCallback = Callable[[TokenEvent], Union[None, Awaitable[None]]]


def find_stop_phrase(text_lower: str) -> Optional[str]:
    """Return the first stop phrase contained in text_lower, if any."""
    for phrase in STOP_PHRASES:
        if phrase in text_lower:
            return phrase
    return None


def completes_line(fragment: str) -> bool:
    """A fragment ends the current line on a newline or sentence delimiter."""
    return "\n" in fragment or any(d in fragment for d in SENTENCE_DELIMITERS)


def is_startup_noise(fragment: str) -> bool:
    """Leading newline-only fragments are an artifact of stream startup."""
    return "\n" in fragment and not fragment.strip()


class StreamInterpreter:
    """
    Classifies one stream's fragments into emitted TokenEvents.

    Create one per call. After events() is exhausted, result holds the
    trimmed answer, or DEFAULT_MESSAGE with a stop_reason when a stop phrase
    ended the stream.
    """

    def __init__(self, mode: Union[InterpreterMode, str] = InterpreterMode.TEXT):
        self.mode = InterpreterMode(mode)
        self.fence_state = FenceState.AWAITING_FENCE
        self.current_line = ""
        self.line = ""
        self.line_lower = ""
        self.message = ""
        self.stop_reason: Optional[StopReason] = None
        self._started = False
        self._line_completed = False
        self._scan_lower = ""  # Text this fragment touched, for stop phrases
        self._completed_lower = ""  # Lines this fragment completed

    @property
    def result(self) -> InterpretResult:
        if self.stop_reason is not None:
            return InterpretResult(text=DEFAULT_MESSAGE, stop_reason=self.stop_reason)
        return InterpretResult(text=self.message.strip())

    async def events(self, stream: ChatStream) -> AsyncGenerator[TokenEvent, None]:
        """
        Consume the stream and yield emitted fragments in arrival order.

        The stream is aborted on every exit path: exhaustion, stop phrase,
        fence closure, example marker, consumer exit or error.
        """
        fragments = stream.__aiter__()
        try:
            async for fragment in fragments:
                if not self._started and is_startup_noise(fragment):
                    continue
                self._started = True
                self._track_line(fragment)

                phrase = find_stop_phrase(self._scan_lower)
                if phrase is not None:
                    self.stop_reason = STOP_PHRASES[phrase]
                    logger.debug(f"Stop phrase '{phrase}' matched in: {self._scan_lower!r}")
                    break

                emitted, finished = self._classify(fragment)
                if emitted:
                    self.message += emitted
                    yield TokenEvent(
                        token=emitted,
                        line=self.line,
                        line_lower=self.line_lower,
                        is_new_line="\n" in emitted,
                    )
                if finished:
                    break
        finally:
            await stream.abort()
            if hasattr(fragments, "aclose"):
                await fragments.aclose()

    # ─────────────────────────────────────────────────────────────────
    # Line tracking
    # ─────────────────────────────────────────────────────────────────

    def _track_line(self, fragment: str) -> None:
        text = self.current_line + fragment
        self._scan_lower = text.lower()
        self._line_completed = completes_line(fragment)
        if self._line_completed:
            # Text after the last delimiter starts the next line
            end = max(text.rfind(d) for d in ("\n",) + SENTENCE_DELIMITERS)
            completed, self.current_line = text[:end + 1], text[end + 1:]
            self._completed_lower = completed.lower()
            self.line = completed.rstrip().rsplit("\n", 1)[-1]
            self.line_lower = self.line.lower()
        else:
            self._completed_lower = ""
            self.current_line = text

        if self.current_line:
            self.line_lower = self.current_line.lower()

    # ─────────────────────────────────────────────────────────────────
    # Classification
    # ─────────────────────────────────────────────────────────────────

    def _classify(self, fragment: str) -> tuple[str, bool]:
        """Return (text to emit, whether the stream is finished)."""
        if self.mode is InterpreterMode.TEXT:
            return fragment, False

        if self.fence_state is FenceState.AWAITING_FENCE:
            if FENCE not in fragment:
                return "", False
            logger.debug("Code fence opened")
            self.fence_state = FenceState.SKIPPING_LANGUAGE_TAG
            return self._skip_language_tag(fragment.split(FENCE, 1)[1])

        if self.fence_state is FenceState.SKIPPING_LANGUAGE_TAG:
            return self._skip_language_tag(fragment)

        return self._inside_code(fragment)

    def _skip_language_tag(self, text: str) -> tuple[str, bool]:
        # The tag runs up to and including the first newline after the fence
        if "\n" not in text:
            return "", False
        self.fence_state = FenceState.INSIDE_CODE
        remainder = text.split("\n", 1)[1]
        if not remainder:
            return "", False
        return self._inside_code(remainder)

    def _inside_code(self, fragment: str) -> tuple[str, bool]:
        if FENCE in fragment:
            logger.debug("Code fence closed")
            self.fence_state = FenceState.CLOSED
            return fragment.split(FENCE, 1)[0], True

        if EXAMPLE_MARKER in self._completed_lower:
            # Cut at the start of the physical line holding the marker; code
            # before it in this fragment is still emitted
            answer = self.message + fragment
            marker = answer.lower().find(EXAMPLE_MARKER)
            cut = answer.rfind("\n", 0, marker) + 1 if marker >= 0 else len(self.message)
            emitted = answer[len(self.message):cut]
            self.message = self.message[:cut]
            logger.debug(f"Example marker found, truncating at: {self.line!r}")
            self.fence_state = FenceState.CLOSED
            return emitted, True

        return fragment, False


async def interpret_stream(
    stream: ChatStream,
    mode: Union[InterpreterMode, str] = InterpreterMode.TEXT,
    on_token: Optional[TokenCallback] = None,
    timeout_seconds: Optional[float] = None,
) -> InterpretResult:
    """
    Interpret a stream, pushing each emitted fragment to on_token.

    on_token may be sync or async; it is awaited before the next fragment is
    read. With timeout_seconds set, an unfinished stream is aborted and the
    call resolves with DEFAULT_MESSAGE (StopReason.TIMEOUT). Tokens already
    delivered to on_token stay delivered.

    Raises:
        Whatever the stream raises on transport failure
    """
    interpreter = StreamInterpreter(mode)

    async def consume() -> InterpretResult:
        async with aclosing(interpreter.events(stream)) as events:
            async for event in events:
                if on_token is not None:
                    outcome = on_token(event)
                    if inspect.isawaitable(outcome):
                        await outcome
        return interpreter.result

    if not timeout_seconds or timeout_seconds <= 0:
        return await consume()

    try:
        return await asyncio.wait_for(consume(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(f"Chat did not finish within {timeout_seconds}s")
        await stream.abort()
        return InterpretResult(text=DEFAULT_MESSAGE, stop_reason=StopReason.TIMEOUT)


async def interpret(
    stream: ChatStream,
    mode: Union[InterpreterMode, str] = InterpreterMode.TEXT,
    on_token: Optional[TokenCallback] = None,
    timeout_seconds: Optional[float] = None,
) -> str:
    """Like interpret_stream(), returning only the answer text."""
    result = await interpret_stream(stream, mode, on_token, timeout_seconds)
    return result.text
