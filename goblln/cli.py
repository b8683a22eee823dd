"""CLI entry point for goblln.

Streams answers from a local Ollama model to the terminal, or writes the
final answer to a file.

Entry point:
    goblln "a function that adds two numbers" -c -l go
    goblln -f -i broken.py -o fixed.py --error "NameError: x"
    goblln --translate -i util.js -o util.py
    goblln                                  # interactive chat
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from dotenv import load_dotenv

from goblln.adapters.ollama import OllamaError
from goblln.assistant import Assistant
from goblln.config import DEFAULT_MESSAGE, AssistantConfig
from goblln.interpreter import StopReason, TokenEvent
from goblln.languages import language_from_path

logger = logging.getLogger(__name__)

TASKS: tuple[str, ...] = ("code", "debug", "fix", "analyze", "summarize", "translate")
EXIT_COMMANDS: frozenset[str] = frozenset({"exit", "quit"})
PROMPT_MARKER: str = "> "

STOP_NOTICES: dict[StopReason, str] = {
    StopReason.ALREADY_CORRECT: "No errors were detected in the provided source code.",
    StopReason.REFUSAL: DEFAULT_MESSAGE,
    StopReason.TIMEOUT: f"{DEFAULT_MESSAGE} (timed out)",
}


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goblln",
        description="Ask a local Ollama model to write, debug, fix or translate code.",
    )
    parser.add_argument("prompt", nargs="*", help="Prompt text (default: --input or stdin)")

    tasks = parser.add_argument_group("tasks (default: chat)")
    tasks.add_argument("-c", "--code", action="store_true", help="Generate source code from a description")
    tasks.add_argument("-d", "--debug", action="store_true", help="Explain bugs in source code")
    tasks.add_argument("-f", "--fix", action="store_true", help="Return corrected source code")
    tasks.add_argument("-a", "--analyze", action="store_true", help="Analyze content")
    tasks.add_argument("-s", "--summarize", action="store_true", help="Summarize a document")
    tasks.add_argument("--translate", action="store_true", help="Rewrite source code in --language")

    parser.add_argument("-i", "--input", default=None, help="Read the prompt from this file")
    parser.add_argument("-o", "--output", default=None, help="Write the final answer to this file")
    parser.add_argument("-l", "--language", default=None, help="Programming language (default: javascript)")
    parser.add_argument("-m", "--model", default=None, help="Ollama model name (default: $GOBLLN_MODEL or gemma2)")
    parser.add_argument("--ollama-host", default=None, help="Ollama host (default: $OLLAMA_HOST or 127.0.0.1:11434)")
    parser.add_argument("--ollama-proxy", default=None, help="Proxy URL for the Ollama connection")
    parser.add_argument("--error", default=None, help="Error output to include when fixing code")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    return parser


def _select_task(args: argparse.Namespace) -> str:
    for task in TASKS:
        if getattr(args, task):
            return task
    return "chat"


def _resolve_languages(args: argparse.Namespace) -> tuple[Optional[str], Optional[str]]:
    """Return (target language, input language) from flags and file extensions."""
    language = args.language
    if args.output and (language is None or args.translate):
        language = language_from_path(args.output) or language
    input_language = language_from_path(args.input) if args.translate else None
    return language, input_language


def _read_prompt(args: argparse.Namespace, stdin: TextIO) -> str:
    """Positionals first, then --input, then piped stdin."""
    prompt = " ".join(args.prompt).strip()
    if not prompt and args.input:
        prompt = Path(args.input).read_text(encoding="utf-8")
    if not prompt and not stdin.isatty():
        prompt = stdin.read()
    return prompt


# ─────────────────────────────────────────────────────────────────────
# OUTPUT
# ─────────────────────────────────────────────────────────────────────


class LineWriter:
    """
    Writes streamed tokens a whole line at a time.

    Holding back the unfinished line means a stop phrase that ends the
    stream mid-line never reaches the terminal.
    """

    def __init__(self, out: TextIO):
        self._out = out
        self._pending = ""

    def __call__(self, event: TokenEvent) -> None:
        self._pending += event.token
        if "\n" in self._pending:
            complete, _, self._pending = self._pending.rpartition("\n")
            self._out.write(complete + "\n")
            self._out.flush()

    def finish(self) -> None:
        if self._pending.strip():
            self._out.write(self._pending.rstrip() + "\n")
        self._pending = ""
        self._out.flush()

    def discard(self) -> None:
        self._pending = ""


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


async def _run_task(
    assistant: Assistant,
    task: str,
    prompt: str,
    language: Optional[str] = None,
    input_language: Optional[str] = None,
    error: Optional[str] = None,
    on_token=None,
) -> str:
    if task == "code":
        return await assistant.generate(prompt, language=language, on_token=on_token)
    elif task == "debug":
        return await assistant.debug(prompt, language=language, on_token=on_token)
    elif task == "fix":
        return await assistant.fix(prompt, language=language, error=error, on_token=on_token)
    elif task == "analyze":
        return await assistant.analyze(prompt, on_token=on_token)
    elif task == "summarize":
        return await assistant.summarize(prompt, on_token=on_token)
    elif task == "translate":
        return await assistant.translate(
            prompt, language=language, input_language=input_language, on_token=on_token
        )
    return await assistant.chat(prompt, on_token=on_token)


async def _answer(
    assistant: Assistant,
    task: str,
    prompt: str,
    output: Optional[str] = None,
    **task_kwargs,
) -> int:
    """Run one task, streaming to stdout or writing to output. Returns exit code."""
    writer = None if output else LineWriter(sys.stdout)

    try:
        answer = await _run_task(assistant, task, prompt, on_token=writer, **task_kwargs)
    except OllamaError as e:
        if writer:
            writer.finish()
        print(f"Error: {e}", file=sys.stderr)
        return 1

    stop_reason = assistant.last_stop_reason
    if writer:
        if stop_reason is None:
            writer.finish()
        else:
            writer.discard()
    if stop_reason is not None:
        print(STOP_NOTICES[stop_reason], file=sys.stderr)

    if output and answer:
        Path(output).write_text(answer, encoding="utf-8")
        print(f"Answer written to {output}", file=sys.stderr)

    return 0


async def _cmd_interactive(assistant: Assistant, stdin: TextIO) -> int:
    """Answer one prompt per line until exit/quit or EOF. Returns exit code."""
    while True:
        sys.stderr.write(PROMPT_MARKER)
        sys.stderr.flush()
        line = stdin.readline()
        if not line:
            break
        prompt = line.strip()
        if prompt.lower() in EXIT_COMMANDS:
            break
        if not prompt:
            continue
        await _answer(assistant, "chat", prompt)
    return 0


async def _cmd_run(args: argparse.Namespace, stdin: TextIO, assistant: Optional[Assistant] = None) -> int:
    """Execute the command line. Returns exit code."""
    if assistant is None:
        config = AssistantConfig.from_env().with_overrides(
            model=args.model,
            host=args.ollama_host,
            proxy=args.ollama_proxy,
            timeout_seconds=args.timeout,
        )
        assistant = Assistant(config)

    task = _select_task(args)

    try:
        prompt = _read_prompt(args, stdin)
    except OSError as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 1

    if not prompt.strip():
        if task != "chat":
            print(
                f"goblln: error: --{task} needs a prompt (arguments, --input or piped stdin)",
                file=sys.stderr,
            )
            return 2
        if stdin.isatty():
            return await _cmd_interactive(assistant, stdin)
        return 0

    language, input_language = _resolve_languages(args)
    logger.debug(f"Task {task}, language {language}, input language {input_language}")

    return await _answer(
        assistant,
        task,
        prompt,
        output=args.output,
        language=language,
        input_language=input_language,
        error=args.error,
    )


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main(argv: Optional[list[str]] = None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    load_dotenv()

    try:
        code = asyncio.run(_cmd_run(args, sys.stdin))
    except KeyboardInterrupt:
        # asyncio.run cancelled the task; the stream was aborted on unwind
        print("\nInterrupted", file=sys.stderr)
        code = 130

    sys.exit(code)


if __name__ == "__main__":
    main()
