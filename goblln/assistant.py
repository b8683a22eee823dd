"""
Assistant - task façade over the streaming interpreter.

Each operation builds a single-turn prompt, picks an interpreter mode, and
post-processes the answer:

    operation       mode  post-processing   on DEFAULT_MESSAGE
    chat            text  -                 returned as-is
    generate        code  extract code      returned as-is
    debug           text  -                 original input
    fix             code  extract code      original input
    analyze         text  -                 original input
    summarize       text  -                 original input
    translate       code  extract code      original input
    translate_text  text  -                 original input

One call at a time per instance: concurrent calls on the same Assistant are
not supported. Create one Assistant per concurrent conversation.
"""

import logging
from typing import Optional

from goblln.adapters.base import ChatBackend, ChatStream
from goblln.adapters.ollama import OllamaAdapter
from goblln.answer_parser import extract_code
from goblln.config import FENCE, AssistantConfig
from goblln.interpreter import (
    InterpreterMode,
    InterpretResult,
    StopReason,
    TokenCallback,
    interpret_stream,
)
from goblln.languages import (
    language_fence_tag,
    prettify_language,
    prettify_programming_language,
)

logger = logging.getLogger(__name__)


def fenced(content: str, tag: str = "") -> str:
    """Wrap content in a fenced block with an optional language tag."""
    return f"{FENCE}{tag}\n{content}\n{FENCE}"


class Assistant:
    """
    Owns one backend connection handle and runs task prompts through it.

    Usage:
        assistant = Assistant(AssistantConfig(model="codellama"))
        code = await assistant.generate("a function that adds two numbers", language="go")
    """

    def __init__(
        self,
        config: Optional[AssistantConfig] = None,
        backend: Optional[ChatBackend] = None,
    ):
        """
        Args:
            config: Model and connection settings (defaults if omitted)
            backend: Chat backend; an OllamaAdapter built from config if omitted
        """
        self.config = config or AssistantConfig()
        self.backend = backend or OllamaAdapter(
            host=self.config.host,
            proxy=self.config.proxy,
            timeout_seconds=self.config.request_timeout_seconds,
        )
        self.last_stop_reason: Optional[StopReason] = None
        self._stream: Optional[ChatStream] = None

    async def abort(self) -> None:
        """Cancel the in-flight backend stream, if any. Safe to repeat."""
        stream = self._stream
        if stream is not None:
            logger.debug("Aborting in-flight chat stream")
            await stream.abort()

    async def _run(
        self,
        prompt: str,
        mode: InterpreterMode,
        on_token: Optional[TokenCallback],
        timeout_seconds: Optional[float],
    ) -> InterpretResult:
        if timeout_seconds is None:
            timeout_seconds = self.config.timeout_seconds

        messages = [{"role": "user", "content": prompt}]
        logger.debug(f"Sending {mode.value}-mode prompt to {self.config.model} ({len(prompt)} chars)")

        self._stream = self.backend.stream_chat(self.config.model, messages)
        try:
            result = await interpret_stream(
                self._stream, mode, on_token=on_token, timeout_seconds=timeout_seconds
            )
        finally:
            self._stream = None

        self.last_stop_reason = result.stop_reason
        if result.stopped:
            logger.info(f"Chat ended without an answer: {result.stop_reason.value}")
        return result

    # ─────────────────────────────────────────────────────────────────
    # NARRATIVE TASKS
    # ─────────────────────────────────────────────────────────────────

    async def chat(
        self,
        prompt: str,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Send the prompt as-is and return the answer text."""
        result = await self._run(prompt, InterpreterMode.TEXT, on_token, timeout_seconds)
        return result.text

    async def debug(
        self,
        source_code: str,
        language: Optional[str] = None,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """
        Ask for a review of source code.

        Returns the model's explanation, or source_code unchanged when the
        model finds nothing to report.
        """
        pretty = prettify_programming_language(language)
        prompt = (
            f"Please debug the following {pretty} source code:\n\n"
            + fenced(source_code.strip(), language_fence_tag(pretty))
        )
        result = await self._run(prompt, InterpreterMode.TEXT, on_token, timeout_seconds)
        return source_code if result.stopped else result.text

    async def analyze(
        self,
        content: str,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Ask for an analysis of arbitrary content."""
        prompt = "Please analyze the following:\n\n" + fenced(content.strip())
        result = await self._run(prompt, InterpreterMode.TEXT, on_token, timeout_seconds)
        return content if result.stopped else result.text

    async def summarize(
        self,
        content: str,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Ask for a summary of a (markdown) document."""
        prompt = "Please summarize the following:\n\n" + fenced(content.strip(), "md")
        result = await self._run(prompt, InterpreterMode.TEXT, on_token, timeout_seconds)
        return content if result.stopped else result.text

    async def translate_text(
        self,
        content: str,
        language: Optional[str] = None,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Rewrite a document in another natural language ("es", "en-uk", ...)."""
        pretty = prettify_language(language)
        prompt = (
            f"Please rewrite the following document in {pretty}.\n\n"
            + fenced(content.strip(), "md")
        )
        result = await self._run(prompt, InterpreterMode.TEXT, on_token, timeout_seconds)
        return content if result.stopped else result.text

    # ─────────────────────────────────────────────────────────────────
    # CODE-EXTRACTION TASKS
    # ─────────────────────────────────────────────────────────────────

    async def generate(
        self,
        description: str,
        language: Optional[str] = None,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Generate source code from a description."""
        pretty = prettify_programming_language(language)
        prompt = (
            f"Please write {pretty} source code.\n\n"
            "Here is a description of what the source code should achieve:\n\n"
            + description.strip()
        )
        result = await self._run(prompt, InterpreterMode.CODE, on_token, timeout_seconds)
        return result.text if result.stopped else extract_code(result.text)

    async def fix(
        self,
        source_code: str,
        language: Optional[str] = None,
        error: Optional[str] = None,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """
        Return a corrected version of source code.

        Args:
            source_code: Code to correct
            language: Programming language token ("py", "c++", ...)
            error: Optional error output to include as context
        """
        pretty = prettify_programming_language(language)
        prompt = (
            f"Please correct the following {pretty} source code:\n\n"
            + fenced(source_code.strip(), language_fence_tag(pretty))
        )
        if error and error.strip():
            prompt += "\n\nHere is the error:\n\n" + error.strip()

        result = await self._run(prompt, InterpreterMode.CODE, on_token, timeout_seconds)
        return source_code if result.stopped else extract_code(result.text)

    async def translate(
        self,
        source_code: str,
        language: Optional[str] = None,
        input_language: Optional[str] = None,
        on_token: Optional[TokenCallback] = None,
        timeout_seconds: Optional[float] = None,
    ) -> str:
        """Rewrite source code from input_language into language."""
        pretty = prettify_programming_language(language)
        input_pretty = prettify_programming_language(input_language)
        prompt = (
            f"Please rewrite the following {input_pretty} source code in {pretty}:\n\n"
            + fenced(source_code.strip(), language_fence_tag(input_pretty))
        )
        result = await self._run(prompt, InterpreterMode.CODE, on_token, timeout_seconds)
        return source_code if result.stopped else extract_code(result.text)
