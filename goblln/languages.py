"""
Language name normalization.

Prompts read more naturally with display names ("C++", "Go") than with the
tokens users type or file extensions carry ("cpp", "go").
"""

from pathlib import Path
from typing import Optional

from goblln.config import DEFAULT_LANGUAGE, DEFAULT_PROGRAMMING_LANGUAGE


PROGRAMMING_LANGUAGE_NAMES: dict[str, str] = {
    "bash": "Bash",
    "sh": "Bash",
    "c": "C",
    "c++": "C++",
    "cpp": "C++",
    "cplusplus": "C++",
    "c-plus-plus": "C++",
    "c#": "C#",
    "cs": "C#",
    "csharp": "C#",
    "cr": "Crystal",
    "crystal": "Crystal",
    "ecmascript": "ES6",
    "es6": "ES6",
    "go": "Go",
    "golang": "Go",
    "java": "Java",
    "js": "JavaScript",
    "javascript": "JavaScript",
    "kotlin": "Kotlin",
    "kt": "Kotlin",
    "lua": "Lua",
    "node": "Node.js",
    "nodejs": "Node.js",
    "node.js": "Node.js",
    "php": "PHP",
    "py": "Python",
    "python": "Python",
    "rb": "Ruby",
    "ruby": "Ruby",
    "rs": "Rust",
    "rust": "Rust",
    "sql": "SQL",
    "swift": "Swift",
    "ts": "TypeScript",
    "typescript": "TypeScript",
}

LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "en-us": "United States English",
    "en-uk": "United Kingdom English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "ru": "Russian",
    "jp": "Japanese",
    "ck": "Chinese",
}


def _prettify(name: str, table: dict[str, str], default: str) -> str:
    fallback = table[default]
    tokens = name.strip().lower().split()
    if not tokens:
        return fallback
    return " ".join(table.get(token, fallback) for token in tokens)


def prettify_programming_language(name: Optional[str]) -> str:
    """Map "cpp", "go", "node js" etc. to display names, token by token."""
    return _prettify(
        name or DEFAULT_PROGRAMMING_LANGUAGE,
        PROGRAMMING_LANGUAGE_NAMES,
        DEFAULT_PROGRAMMING_LANGUAGE,
    )


def prettify_language(name: Optional[str]) -> str:
    """Map natural-language codes ("es", "en-us") to display names."""
    return _prettify(name or DEFAULT_LANGUAGE, LANGUAGE_NAMES, DEFAULT_LANGUAGE)


def language_fence_tag(pretty_name: str) -> str:
    """Fence tag for a display name: first word, lowercased ("C++" -> "c++")."""
    return pretty_name.lower().split(" ")[0]


def language_from_path(path: Optional[str]) -> Optional[str]:
    """Return the file extension without the dot, or None."""
    if not path:
        return None
    return Path(path).suffix[1:] or None
