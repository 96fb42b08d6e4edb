"""Recover a flat slot-id -> text object from unreliable model output.

Model responses arrive fenced, with raw newlines inside strings, or cut off
mid-value when the token budget runs out. :func:`parse_slot_response` tries
four strategies in order and reports which one produced the data:

1. ``direct``: strip a Markdown fence and ``json.loads``.
2. ``sanitized``: escape raw control characters inside string literals.
3. ``repaired``: additionally close a truncated string and the open brackets.
4. ``regex``: pull ``"key": "value"`` pairs out of whatever is left.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pagecopy.errors import ResponseParseError
from pagecopy.generation.markup import strip_markup

logger = logging.getLogger(__name__)


class ParseStrategy(str, Enum):
    DIRECT = "direct"
    SANITIZED = "sanitized"
    REPAIRED = "repaired"
    REGEX = "regex"


@dataclass(frozen=True)
class ParseOutcome:
    data: Dict[str, Any]
    strategy: ParseStrategy


class ScanState(Enum):
    OUTSIDE = "outside"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\r?\n?```\s*$")
_PARTIAL_UNICODE_ESCAPE = re.compile(r"\\u[0-9a-fA-F]{0,3}$")
_TRAILING_BAREWORD = re.compile(r"[A-Za-z0-9.+\-]+$")
_COMPLETE_LITERAL = re.compile(r"true|false|null|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")

_PAIR = re.compile(r'"([^"]+)":\s*"((?:[^"\\]|\\.|[\r\n])*?)"(?=\s*[,}])', re.DOTALL)
_LOOSE_PAIR = re.compile(r'"([^"]+)":\s*"([^"]*)"?')
_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", '"': '"', "\\": "\\", "/": "/"}


def strip_code_fence(text: str) -> str:
    """Drop a leading ``` or ```json fence and its closing fence if present."""

    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def _candidate(raw: str) -> str:
    text = strip_code_fence(raw)
    if not text.startswith("{"):
        start = text.find("{")
        if start != -1:
            text = text[start:]
    return text


def _escape_control(ch: str) -> str:
    return _CONTROL_ESCAPES.get(ch) or "\\u%04x" % ord(ch)


def sanitize_control_characters(text: str) -> str:
    """Rewrite raw control characters inside string literals as JSON escapes.

    Characters outside strings are left alone. A backslash followed by a raw
    control character (``\\`` + newline) becomes the matching escape letter.
    """

    out: List[str] = []
    state = ScanState.OUTSIDE
    for ch in text:
        if state is ScanState.OUTSIDE:
            out.append(ch)
            if ch == '"':
                state = ScanState.IN_STRING
        elif state is ScanState.IN_STRING:
            if ch == "\\":
                out.append(ch)
                state = ScanState.ESCAPED
            elif ch == '"':
                out.append(ch)
                state = ScanState.OUTSIDE
            elif ord(ch) < 0x20:
                out.append(_escape_control(ch))
            else:
                out.append(ch)
        else:
            if ord(ch) < 0x20:
                out.append(_escape_control(ch)[1:])
            else:
                out.append(ch)
            state = ScanState.IN_STRING
    return "".join(out)


def _trim_dangling(body: str) -> str:
    body = body.rstrip()
    bareword = _TRAILING_BAREWORD.search(body)
    if bareword and not _COMPLETE_LITERAL.fullmatch(bareword.group(0)):
        body = body[: bareword.start()].rstrip()
    if body.endswith(","):
        body = body[:-1].rstrip()
    if body.endswith(":"):
        body += " null"
    return body


def repair_truncated_json(text: str) -> str:
    """Close whatever a truncated JSON document left open.

    A string cut off in value position is closed and keeps its partial text;
    a string cut off in key position is dropped together with its separator.
    Dangling ``,`` are removed, a dangling ``:`` gets ``null``, and the open
    brackets are closed in reverse order.
    """

    text = sanitize_control_characters(text)
    state = ScanState.OUTSIDE
    stack: List[str] = []
    previous = ""
    string_start = -1
    string_is_value = False

    for index, ch in enumerate(text):
        if state is ScanState.IN_STRING:
            if ch == "\\":
                state = ScanState.ESCAPED
            elif ch == '"':
                state = ScanState.OUTSIDE
            continue
        if state is ScanState.ESCAPED:
            state = ScanState.IN_STRING
            continue

        if ch == '"':
            in_array = bool(stack) and stack[-1] == "]"
            string_is_value = previous == ":" or (in_array and previous in "[,")
            string_start = index
            state = ScanState.IN_STRING
        elif ch == "{":
            stack.append("}")
        elif ch == "[":
            stack.append("]")
        elif ch in "}]":
            if stack and stack[-1] == ch:
                stack.pop()
        if not ch.isspace():
            previous = ch

    if state is ScanState.OUTSIDE:
        body = _trim_dangling(text)
    elif string_is_value:
        body = text
        if state is ScanState.ESCAPED:
            body = body[:-1]
        body = _PARTIAL_UNICODE_ESCAPE.sub("", body) + '"'
    else:
        body = _trim_dangling(text[:string_start])

    return body + "".join(reversed(stack))


def _unescape(value: str) -> str:
    def _replace(match: "re.Match[str]") -> str:
        token = match.group(1)
        if token.startswith("u") and len(token) == 5:
            return chr(int(token[1:], 16))
        return _SIMPLE_ESCAPES.get(token, token)

    return _ESCAPE.sub(_replace, value)


def extract_pairs(text: str) -> Dict[str, str]:
    """Regex fallback: ``"key": "value"`` pairs, plus a trailing truncated value."""

    pairs: Dict[str, str] = {}
    end = 0
    for match in _PAIR.finditer(text):
        pairs[match.group(1)] = _unescape(match.group(2))
        end = match.end()

    for match in _LOOSE_PAIR.finditer(text, end):
        key = match.group(1)
        if key not in pairs:
            pairs[key] = _unescape(match.group(2))
    return pairs


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_slot_response(raw: str) -> ParseOutcome:
    """Parse ``raw`` with the first strategy that yields a JSON object.

    Raises :class:`ResponseParseError` when every strategy fails.
    """

    if not raw or not raw.strip():
        raise ResponseParseError("AI returned an empty response")

    text = _candidate(raw)
    attempts = (
        (ParseStrategy.DIRECT, lambda: _load_object(text)),
        (ParseStrategy.SANITIZED, lambda: _load_object(sanitize_control_characters(text))),
        (ParseStrategy.REPAIRED, lambda: _load_object(repair_truncated_json(text))),
        (ParseStrategy.REGEX, lambda: extract_pairs(text) or None),
    )
    for strategy, attempt in attempts:
        data = attempt()
        if data is not None:
            logger.debug("Parsed model response via %s strategy (%d keys)", strategy.value, len(data))
            return ParseOutcome(data=data, strategy=strategy)

    logger.warning("Model response could not be parsed (%d chars)", len(raw))
    raise ResponseParseError("Failed to parse AI response as JSON")


def normalize_slot_value(value: Any) -> Optional[str]:
    """Coerce a parsed slot value to plain text; ``None`` means the slot is absent."""

    if value is None:
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (int, float)):
        text = str(value)
    elif isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = strip_markup(str(value))
    return text.strip()


__all__ = [
    "ParseOutcome",
    "ParseStrategy",
    "ScanState",
    "extract_pairs",
    "normalize_slot_value",
    "parse_slot_response",
    "repair_truncated_json",
    "sanitize_control_characters",
    "strip_code_fence",
]
