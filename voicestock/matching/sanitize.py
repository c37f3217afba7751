"""
Cleanup of JSON payloads returned by text-generation backends.

Models asked for "pure JSON" still wrap it in markdown fences, prepend
"Here is the result:", append notes, or leave // comments inside the
object. The steps here strip those artifacts in a fixed order:

1. Remove ``` / ```json fence markers
2. Keep the outermost {...} span, dropping surrounding prose
3. Remove // line comments and /* block */ comments outside strings
4. Remove trailing commas before } or ] outside strings
"""

from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger

from ..errors import RemoteParseError

_FENCE = re.compile(r"```[a-zA-Z]*")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def extract_outer_object(text: str) -> str:
    """Substring from the first '{' to the last '}', or the text unchanged."""
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text


def strip_comments(text: str) -> str:
    """
    Drop // and /* */ comments while leaving string literals alone.

    URLs or ids such as "a//b" inside quoted strings survive.
    """
    out: list[str] = []
    i = 0
    length = len(text)
    in_string = False

    while i < length:
        char = text[i]

        if in_string:
            out.append(char)
            if char == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
            continue

        if char == '"':
            in_string = True
            out.append(char)
            i += 1
            continue

        if text.startswith("//", i):
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
            continue

        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = length if close == -1 else close + 2
            continue

        out.append(char)
        i += 1

    return "".join(out)


def _split_strings(text: str) -> list[tuple[str, bool]]:
    """Split text into (segment, is_string_literal) pieces, honouring escapes."""
    pieces: list[tuple[str, bool]] = []
    i = 0
    start = 0
    length = len(text)

    while i < length:
        if text[i] != '"':
            i += 1
            continue
        if i > start:
            pieces.append((text[start:i], False))
        j = i + 1
        while j < length and text[j] != '"':
            j += 2 if text[j] == "\\" else 1
        end = min(j + 1, length)
        pieces.append((text[i:end], True))
        i = start = end

    if start < length:
        pieces.append((text[start:], False))
    return pieces


def strip_trailing_commas(text: str) -> str:
    """Remove commas directly before } or ], leaving string literals alone."""
    return "".join(
        segment if is_string else _TRAILING_COMMA.sub(r"\1", segment)
        for segment, is_string in _split_strings(text)
    )


def clean_json_text(raw: str) -> str:
    """Apply every cleanup step; the result may still be invalid JSON."""
    text = strip_code_fences(raw or "")
    text = extract_outer_object(text)
    text = strip_comments(text)
    text = strip_trailing_commas(text)
    return text.strip()


def parse_json_object(raw: str, backend: str = "") -> dict[str, Any]:
    """
    Clean `raw` and parse it as a JSON object.

    Raises:
        RemoteParseError: if the cleaned text is not a JSON object
    """
    cleaned = clean_json_text(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.warning("JSON parse failed for {}: {}", backend or "backend", exc)
        logger.warning("Raw content: {!r}", raw)
        logger.warning("Cleaned content: {!r}", cleaned)
        raise RemoteParseError(f"Unparseable JSON from {backend or 'backend'}: {exc}", backend) from exc

    if not isinstance(data, dict):
        logger.warning("Expected a JSON object from {}, got {}", backend or "backend", type(data).__name__)
        logger.warning("Raw content: {!r}", raw)
        raise RemoteParseError(f"Expected a JSON object from {backend or 'backend'}", backend)

    return data
