"""
Utility functions for the SCHEMAHINTS toolchain.
"""

import json
import re
from typing import Any

# Matches a value wrapped in matching single or double quotes
_QUOTED_PATTERN = re.compile(r"""^(["'])(.*)\1$""", re.DOTALL)


def strip_quotes(text: str) -> str:
    """Remove one pair of surrounding matching quotes, if present."""
    match = _QUOTED_PATTERN.match(text)
    return match.group(2) if match else text


def is_quoted(text: str) -> bool:
    """Check whether text is wrapped in matching quotes."""
    return bool(_QUOTED_PATTERN.match(text))


def normalize_rel_path(path: str) -> list[str]:
    """Collapse "." and ".." parts of a slash-separated relative path.

    Examples:
        "a/./b" -> ["a", "b"]
        "a/b/../c" -> ["a", "c"]

    Args:
        path: Slash-separated path

    Returns:
        List of path parts

    Raises:
        ValueError: If the path climbs above its starting point
    """
    parts: list[str] = []
    for part in path.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            if not parts:
                raise ValueError(f"Path escapes its root: {path}")
            parts.pop()
        else:
            parts.append(part)
    return parts


def escape_pointer_token(token: str) -> str:
    """Escape a JSON Pointer reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def unescape_pointer_token(token: str) -> str:
    """Unescape a JSON Pointer reference token (RFC 6901)."""
    return token.replace("~1", "/").replace("~0", "~")


def pointer_tokens(fragment: str) -> list[str]:
    """Split a JSON Pointer fragment ("/a/b", without the leading "#") into tokens."""
    if not fragment:
        return []
    return [unescape_pointer_token(token) for token in fragment.lstrip("/").split("/")]


def resolve_pointer(document: Any, fragment: str) -> Any:
    """
    Resolve a JSON Pointer fragment against a document.

    Args:
        document: The JSON document
        fragment: Pointer without the leading "#" (e.g. "/properties/name")

    Returns:
        The addressed value

    Raises:
        KeyError: If the pointer does not address a value
    """
    current = document
    for token in pointer_tokens(fragment):
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            raise KeyError(f"Pointer #{fragment} does not resolve at '{token}'")
    return current


def split_reference(ref: str) -> tuple[str, str]:
    """Split a $ref into its document part and its fragment (without "#")."""
    base, _, fragment = ref.partition("#")
    return base, fragment


def sort_keys_deep(value: Any) -> Any:
    """Return a copy of a JSON value with all object keys sorted."""
    if isinstance(value, list):
        return [sort_keys_deep(item) for item in value]
    if isinstance(value, dict):
        return {key: sort_keys_deep(value[key]) for key in sorted(value)}
    return value


def dump_json(document: Any, sort_keys: bool = False) -> str:
    """Serialize a document the same way every time: 2-space indent, trailing newline."""
    return json.dumps(document, indent=2, ensure_ascii=False, sort_keys=sort_keys) + "\n"
