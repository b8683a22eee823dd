"""goblln - stream answers from a local Ollama model and extract code from them."""

from goblln.answer_parser import CodeBlock, ParsedAnswer, TextBlock, extract_code, parse
from goblln.assistant import Assistant
from goblln.config import DEFAULT_MESSAGE, AssistantConfig
from goblln.interpreter import (
    InterpreterMode,
    InterpretResult,
    StopReason,
    StreamInterpreter,
    TokenEvent,
    interpret,
    interpret_stream,
)

__all__ = [
    "Assistant",
    "AssistantConfig",
    "CodeBlock",
    "DEFAULT_MESSAGE",
    "InterpreterMode",
    "InterpretResult",
    "ParsedAnswer",
    "StopReason",
    "StreamInterpreter",
    "TextBlock",
    "TokenEvent",
    "extract_code",
    "interpret",
    "interpret_stream",
    "parse",
]
