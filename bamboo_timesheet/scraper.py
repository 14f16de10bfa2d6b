"""
Extraction of values embedded in HTML and inline JavaScript.

BambooHR renders the data the client needs (CSRF token, session user,
time tracking metadata) as JavaScript literals inside its pages. This
module locates a marker string and reads exactly one balanced value that
follows it.
"""

import json
from typing import Any, Tuple

from .errors import ScrapeError


QUOTES = ('"', "'")
OPENERS = {'{': '}', '[': ']'}
CLOSERS = {'}', ']'}
# Characters that end a bare literal such as `true`, `42` or `null`
LITERAL_TERMINATORS = set(',;)}]<')


def _scan_string(body: str, start: int) -> int:
    """
    Scan a quoted string starting at body[start].

    Returns:
        Index just past the closing quote

    Raises:
        ScrapeError: If the string is not terminated
    """
    quote = body[start]
    pos = start + 1
    while pos < len(body):
        char = body[pos]
        if char == '\\':
            pos += 2
            continue
        if char == quote:
            return pos + 1
        pos += 1
    raise ScrapeError(f"Unterminated string starting at offset {start}")


def _scan_structure(body: str, start: int) -> int:
    """Scan a {...} or [...] structure, honoring nesting and strings."""
    stack = [OPENERS[body[start]]]
    pos = start + 1
    while pos < len(body):
        char = body[pos]
        if char in QUOTES:
            pos = _scan_string(body, pos)
            continue
        if char in OPENERS:
            stack.append(OPENERS[char])
        elif char in CLOSERS:
            expected = stack.pop()
            if char != expected:
                raise ScrapeError(
                    f"Mismatched '{char}' at offset {pos} (expected '{expected}')"
                )
            if not stack:
                return pos + 1
        pos += 1
    raise ScrapeError(f"Unbalanced structure starting at offset {start}")


def _scan_literal(body: str, start: int) -> int:
    pos = start
    while pos < len(body) and not body[pos].isspace() and body[pos] not in LITERAL_TERMINATORS:
        pos += 1
    return pos


def _locate(marker: str, body: str) -> int:
    index = body.find(marker)
    if index < 0:
        raise ScrapeError(f"Marker not found: {marker!r}")
    return index + len(marker)


def _balanced_span(body: str, start: int) -> Tuple[int, int]:
    # Leading whitespace is not part of the value
    while start < len(body) and body[start] in ' \t\r\n':
        start += 1

    if start >= len(body):
        return start, start

    char = body[start]
    if char in QUOTES:
        return start, _scan_string(body, start)
    if char in OPENERS:
        return start, _scan_structure(body, start)
    if char in CLOSERS:
        raise ScrapeError(f"Unexpected '{char}' at offset {start}")
    return start, _scan_literal(body, start)


def find_balanced_value(marker: str, body: str) -> str:
    """
    Return the single balanced value that follows `marker` in `body`.

    The value may be a quoted string, a brace or bracket delimited
    structure (nested delimiters and quoted strings are respected), or a
    bare literal. The exact substring is returned, quotes included.

    Args:
        marker: Text immediately preceding the value
        body: Page or script text to search

    Returns:
        The raw value text (possibly empty for a missing literal)

    Raises:
        ScrapeError: If the marker is absent or the value is incomplete

    Examples:
        >>> find_balanced_value("x = ", 'var x = {"a": [1, 2]};')
        '{"a": [1, 2]}'
    """
    start, end = _balanced_span(body, _locate(marker, body))
    return body[start:end]


def find_json(marker: str, body: str) -> Any:
    """
    Return the JSON value that follows `marker`, decoded.

    An empty value decodes to None.

    Raises:
        ScrapeError: If the marker is absent or the value is not valid JSON
    """
    raw = find_balanced_value(marker, body)
    if raw == "":
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ScrapeError(f"Value after {marker!r} is not valid JSON: {e}") from e


def find_string(marker: str, body: str) -> str:
    """
    Return the quoted string that follows `marker`, without its quotes.

    When the marker itself ends with the opening quote (for example
    ``CSRF_TOKEN = "``), the string is read starting at that quote.

    Raises:
        ScrapeError: If the marker is absent or not followed by a string
    """
    start = _locate(marker, body)
    if marker and marker[-1] in QUOTES:
        start -= 1

    start, end = _balanced_span(body, start)
    raw = body[start:end]
    if len(raw) < 2 or raw[0] not in QUOTES:
        raise ScrapeError(f"Expected a quoted string after {marker!r}")

    if raw[0] == '"':
        try:
            return json.loads(raw)
        except ValueError:
            pass
    return raw[1:-1]
