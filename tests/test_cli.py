"""Tests for goblln.cli module.

CLI tests inject an Assistant wired to FakeBackend, so no server is needed.
stdout/stderr are captured with StringIO.
"""

from io import StringIO
from unittest.mock import AsyncMock, patch

import pytest

from goblln.adapters.ollama import OllamaError
from goblln.cli import (
    LineWriter,
    _build_parser,
    _cmd_run,
    _read_prompt,
    _resolve_languages,
    _select_task,
    main,
)
from goblln.interpreter import TokenEvent
from tests.conftest import GO_ANSWER_FRAGMENTS


class TtyStringIO(StringIO):
    """StringIO that claims to be an interactive terminal."""

    def isatty(self) -> bool:
        return True


def parse_args(*argv):
    return _build_parser().parse_args(list(argv))


def event(token: str) -> TokenEvent:
    return TokenEvent(token=token, line="", line_lower="", is_new_line="\n" in token)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENTS
# ─────────────────────────────────────────────────────────────────────


class TestArguments:

    def test_defaults_to_chat(self):
        args = parse_args("hello", "there")
        assert _select_task(args) == "chat"
        assert args.prompt == ["hello", "there"]

    @pytest.mark.parametrize("flag,task", [
        ("-c", "code"),
        ("-d", "debug"),
        ("-f", "fix"),
        ("-a", "analyze"),
        ("-s", "summarize"),
        ("--translate", "translate"),
    ])
    def test_task_flags(self, flag, task):
        assert _select_task(parse_args(flag, "x")) == task

    def test_explicit_language_wins_over_output_extension(self):
        args = parse_args("-c", "-l", "rust", "-o", "main.go", "x")
        assert _resolve_languages(args) == ("rust", None)

    def test_output_extension_supplies_language(self):
        args = parse_args("-c", "-o", "main.go", "x")
        assert _resolve_languages(args) == ("go", None)

    def test_translate_uses_both_extensions(self):
        args = parse_args("--translate", "-i", "util.js", "-o", "util.py")
        assert _resolve_languages(args) == ("py", "js")

    def test_no_language_anywhere(self):
        assert _resolve_languages(parse_args("-c", "x")) == (None, None)


class TestReadPrompt:

    def test_positionals_first(self, tmp_source_file):
        args = parse_args("-i", str(tmp_source_file), "inline", "prompt")
        assert _read_prompt(args, StringIO("piped")) == "inline prompt"

    def test_input_file(self, tmp_source_file):
        args = parse_args("-f", "-i", str(tmp_source_file))
        assert _read_prompt(args, StringIO("piped")) == tmp_source_file.read_text()

    def test_piped_stdin(self):
        assert _read_prompt(parse_args(), StringIO("from pipe\n")) == "from pipe\n"

    def test_tty_stdin_not_read(self):
        assert _read_prompt(parse_args(), TtyStringIO("typed")) == ""


# ─────────────────────────────────────────────────────────────────────
# OUTPUT
# ─────────────────────────────────────────────────────────────────────


class TestLineWriter:

    def test_writes_whole_lines_only(self):
        out = StringIO()
        writer = LineWriter(out)

        for token in ["Hel", "lo", "\nwor", "ld"]:
            writer(event(token))

        assert out.getvalue() == "Hello\n"
        writer.finish()
        assert out.getvalue() == "Hello\nworld\n"

    def test_discard_drops_pending_line(self):
        out = StringIO()
        writer = LineWriter(out)
        writer(event("shown\nThis is already"))
        writer.discard()
        writer.finish()
        assert out.getvalue() == "shown\n"


# ─────────────────────────────────────────────────────────────────────
# RUN COMMAND
# ─────────────────────────────────────────────────────────────────────


class TestRunCommand:

    @pytest.mark.asyncio
    async def test_code_streams_only_code(self, make_assistant):
        assistant, backend = make_assistant(GO_ANSWER_FRAGMENTS)
        args = parse_args("-c", "-l", "go", "add", "two", "ints")

        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            code = await _cmd_run(args, StringIO(), assistant=assistant)

        assert code == 0
        assert mock_stdout.getvalue() == "func Add(a, b int) int {\n\treturn a + b\n}\n"
        assert backend.last_prompt.startswith("Please write Go source code.")

    @pytest.mark.asyncio
    async def test_output_file_written(self, make_assistant, tmp_path, tmp_source_file):
        assistant, backend = make_assistant(["```js\n", "function add(a, b) {\n  return a + b;\n}\n", "```"])
        output = tmp_path / "fixed.js"
        args = parse_args("-f", "-i", str(tmp_source_file), "-o", str(output), "--error", "wrong sum")

        with patch("sys.stdout", new_callable=StringIO) as mock_stdout, \
             patch("sys.stderr", new_callable=StringIO) as mock_stderr:
            code = await _cmd_run(args, StringIO(), assistant=assistant)

        assert code == 0
        assert output.read_text() == "function add(a, b) {\n  return a + b;\n}"
        assert mock_stdout.getvalue() == ""
        assert f"Answer written to {output}" in mock_stderr.getvalue()
        assert "Here is the error:\n\nwrong sum" in backend.last_prompt

    @pytest.mark.asyncio
    async def test_already_correct_notice(self, make_assistant, tmp_source_file):
        assistant, _ = make_assistant(["This", " is", " already", " correct", "."])
        args = parse_args("-d", "-i", str(tmp_source_file))

        with patch("sys.stdout", new_callable=StringIO) as mock_stdout, \
             patch("sys.stderr", new_callable=StringIO) as mock_stderr:
            code = await _cmd_run(args, StringIO(), assistant=assistant)

        assert code == 0
        assert mock_stdout.getvalue() == ""
        assert "No errors were detected" in mock_stderr.getvalue()

    @pytest.mark.asyncio
    async def test_backend_error_exit_code(self, make_assistant):
        assistant, _ = make_assistant([], error=OllamaError("Ollama error for 'gemma2': model not found"))
        args = parse_args("hello")

        with patch("sys.stdout", new_callable=StringIO), \
             patch("sys.stderr", new_callable=StringIO) as mock_stderr:
            code = await _cmd_run(args, StringIO(), assistant=assistant)

        assert code == 1
        assert "Error: Ollama error for 'gemma2': model not found" in mock_stderr.getvalue()

    @pytest.mark.asyncio
    async def test_missing_input_file(self, make_assistant, tmp_path):
        assistant, backend = make_assistant(["x"])
        args = parse_args("-d", "-i", str(tmp_path / "missing.js"))

        with patch("sys.stderr", new_callable=StringIO) as mock_stderr:
            code = await _cmd_run(args, StringIO(), assistant=assistant)

        assert code == 1
        assert "Error reading input" in mock_stderr.getvalue()
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_empty_piped_prompt_does_nothing(self, make_assistant):
        assistant, backend = make_assistant(["x"])

        code = await _cmd_run(parse_args(), StringIO(""), assistant=assistant)

        assert code == 0
        assert backend.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stdin", [StringIO(""), TtyStringIO("")])
    async def test_task_without_prompt_is_usage_error(self, make_assistant, stdin):
        assistant, backend = make_assistant(["x"])

        with patch("sys.stdout", new_callable=StringIO) as mock_stdout, \
             patch("sys.stderr", new_callable=StringIO) as mock_stderr:
            code = await _cmd_run(parse_args("-f"), stdin, assistant=assistant)

        assert code == 2
        assert "goblln: error: --fix needs a prompt" in mock_stderr.getvalue()
        assert mock_stdout.getvalue() == ""
        assert backend.requests == []


class TestInteractive:

    @pytest.mark.asyncio
    async def test_answers_each_line_until_exit(self, make_assistant):
        assistant, backend = make_assistant(["Hi", " there", "."])
        stdin = TtyStringIO("hello\n\nhow are you\nexit\nnever sent\n")

        with patch("sys.stdout", new_callable=StringIO) as mock_stdout, \
             patch("sys.stderr", new_callable=StringIO):
            code = await _cmd_run(parse_args(), stdin, assistant=assistant)

        assert code == 0
        assert [messages[0]["content"] for _, messages in backend.requests] == ["hello", "how are you"]
        assert mock_stdout.getvalue() == "Hi there.\nHi there.\n"

    @pytest.mark.asyncio
    async def test_eof_ends_session(self, make_assistant):
        assistant, backend = make_assistant(["ok"])

        with patch("sys.stdout", new_callable=StringIO), \
             patch("sys.stderr", new_callable=StringIO):
            code = await _cmd_run(parse_args(), TtyStringIO("one question\n"), assistant=assistant)

        assert code == 0
        assert len(backend.requests) == 1


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


class TestMain:

    def test_main_exits_with_command_code(self):
        with patch("goblln.cli._cmd_run", new_callable=AsyncMock, return_value=0), \
             patch("goblln.cli.load_dotenv"):
            with pytest.raises(SystemExit) as exc:
                main(["-c", "hello"])

        assert exc.value.code == 0

    def test_help_exits_cleanly(self):
        with patch("sys.stdout", new_callable=StringIO):
            with pytest.raises(SystemExit) as exc:
                main(["--help"])
        assert exc.value.code == 0
