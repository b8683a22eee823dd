"""
Answer parser: splits a completed model answer into text and fenced-code blocks.

Parsing is total. Unbalanced fences degrade to trailing text, never raise.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel

from goblln.config import FENCE


class TextBlock(BaseModel):
    """Prose between (or around) fenced code blocks."""
    type: Literal["TextBlock"] = "TextBlock"
    value: str


class CodeBlock(BaseModel):
    """Contents of one fenced code block."""
    type: Literal["CodeBlock"] = "CodeBlock"
    programming_language: Optional[str] = None  # Tag after the opening fence
    value: str


Block = Union[TextBlock, CodeBlock]


class ParsedAnswer(BaseModel):
    """Blocks of an answer in source order, plus joined views."""
    string: str
    blocks: list[Block] = []

    @property
    def code_blocks(self) -> list[CodeBlock]:
        return [b for b in self.blocks if isinstance(b, CodeBlock)]

    @property
    def text_blocks(self) -> list[TextBlock]:
        return [b for b in self.blocks if isinstance(b, TextBlock)]

    @property
    def code(self) -> str:
        return "\n\n".join(b.value for b in self.code_blocks)

    @property
    def text(self) -> str:
        return "\n\n".join(b.value for b in self.text_blocks)


def _split_language_tag(segment: str) -> tuple[Optional[str], str]:
    """
    Separate the language tag from a raw code segment.

    The first line is a tag only when it is a single whitespace-free token
    followed by a newline ("python\\nprint(1)"). A segment that opens with a
    newline, or whose first line contains spaces, has no tag.
    """
    first_line, newline, rest = segment.partition("\n")
    tag = first_line.strip()
    if newline and tag and len(tag.split()) == 1:
        return tag, rest.strip()
    return None, segment.strip()


def parse(answer: str) -> ParsedAnswer:
    """
    Parse an answer into alternating TextBlock / CodeBlock entries.

    Args:
        answer: Full answer text, possibly containing ``` fences

    Returns:
        ParsedAnswer with blocks in discovery order
    """
    answer = answer.strip()
    blocks: list[Block] = []
    remaining = answer

    while FENCE in remaining:
        before, _, after = remaining.partition(FENCE)

        text = before.strip()
        if text:
            blocks.append(TextBlock(value=text))

        if FENCE not in after:
            # Lone fence: no complete code block left
            remaining = remaining[len(before):]
            break

        segment, _, remaining = after.partition(FENCE)
        language, code = _split_language_tag(segment)
        blocks.append(CodeBlock(programming_language=language, value=code))
        remaining = remaining.strip()

    if remaining.startswith(FENCE):
        remaining = remaining[len(FENCE):]
    remaining = remaining.strip()
    if remaining:
        blocks.append(TextBlock(value=remaining))

    return ParsedAnswer(string=answer, blocks=blocks)


def extract_code(answer: str) -> str:
    """
    Return the code portion of an answer.

    Fenced answers yield their joined code blocks. An answer with no code
    blocks (already unfenced, e.g. code-mode interpreter output) is returned
    as its trimmed text.
    """
    parsed = parse(answer)
    if parsed.code_blocks:
        return parsed.code
    return parsed.text
