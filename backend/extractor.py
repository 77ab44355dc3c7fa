"""
Extract [FUNCTION: name {json}] markers from a model reply.

The payload is located by brace matching that skips over JSON string
literals, so parameters may contain nested objects, arrays and braces
inside strings. A marker whose payload is not valid JSON is removed
from the reply and skipped. An incomplete marker, such as one with
an unterminated string, is removed the same way and never reaches the user.
"""
import json
import logging
import re
from typing import Optional

from pydantic import BaseModel, Field

from models import ExtractedCall

logger = logging.getLogger(__name__)

MARKER = "[FUNCTION:"
IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
DEFAULT_REPLY = "Como posso ajudar você hoje?"


class ExtractionResult(BaseModel):
    calls: list[ExtractedCall] = Field(default_factory=list)
    clean_text: str


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _match_braces(text: str, start: int, track_strings: bool = True) -> Optional[int]:
    """
    Index just past the brace closing the one at text[start], or None if unbalanced.
    With track_strings off, quotes are ignored and every brace counts.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"' and track_strings:
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def _scan_marker(text: str, start: int) -> Optional[tuple[int, str, str]]:
    """
    Parse the marker beginning at text[start].
    Returns (end, name, payload), or None when the text there is not a complete marker.
    """
    pos = _skip_whitespace(text, start + len(MARKER))
    match = IDENTIFIER.match(text, pos)
    if not match:
        return None
    name = match.group()

    pos = _skip_whitespace(text, match.end())
    if pos >= len(text) or text[pos] != "{":
        return None
    payload_end = _match_braces(text, pos)
    if payload_end is None:
        return None
    payload = text[pos:payload_end]

    pos = _skip_whitespace(text, payload_end)
    if pos >= len(text) or text[pos] != "]":
        return None
    return pos + 1, name, payload


def _malformed_end(text: str, start: int) -> int:
    """
    End of the markup left by an incomplete marker at text[start]: the name,
    a brace-counted payload and the closing bracket, whichever are present.
    Never runs past the next marker.
    """
    limit = text.find(MARKER, start + 1)
    if limit == -1:
        limit = len(text)

    pos = _skip_whitespace(text, start + len(MARKER))
    match = IDENTIFIER.match(text, pos)
    if match:
        pos = _skip_whitespace(text, match.end())

    if pos < limit and text[pos] == "{":
        payload_end = _match_braces(text, pos, track_strings=False)
        if payload_end is None or payload_end > limit:
            return limit
        pos = _skip_whitespace(text, payload_end)
        if pos < limit and text[pos] == "]":
            return pos + 1
        return payload_end
    if pos < limit and text[pos] == "]":
        return pos + 1
    return min(pos, limit)


def extract_function_calls(raw_text: str) -> ExtractionResult:
    """
    Find every call marker in raw_text, left to right.

    Returns the parsed calls in source order and the reply with all
    markers removed. An empty reply is replaced by DEFAULT_REPLY.
    """
    calls: list[ExtractedCall] = []
    kept: list[str] = []
    cursor = 0
    search_from = 0

    while True:
        start = raw_text.find(MARKER, search_from)
        if start == -1:
            break
        scanned = _scan_marker(raw_text, start)
        if scanned is None:
            end = _malformed_end(raw_text, start)
            logger.warning("Removing incomplete call markup: %r", raw_text[start:end])
            kept.append(raw_text[cursor:start])
            cursor = search_from = end
            continue

        end, name, payload = scanned
        kept.append(raw_text[cursor:start])
        cursor = search_from = end

        try:
            parameters = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning("Skipping malformed call to %s: %s", name, e)
            continue

        logger.info("Function call detected: %s %s", name, parameters)
        calls.append(ExtractedCall(name=name, parameters=parameters))

    kept.append(raw_text[cursor:])
    clean_text = "".join(kept).strip()

    return ExtractionResult(calls=calls, clean_text=clean_text or DEFAULT_REPLY)
