"""
Safety filter for non-JSON chart descriptions.

A string that failed strict JSON parsing must pass every check here before the
literal parser looks at it:

- none of the denylisted constructs appear anywhere in the text
- the text starts like an object literal, optionally parenthesised
- curly braces balance, ignoring braces inside quoted strings

The denylist is incomplete by construction. It is a first gate only; the
literal parser never evaluates anything, so a construct that slips past the
denylist still fails to parse.
"""

from __future__ import annotations

import re

DENYLIST: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        # Code execution primitives
        r"\beval\s*\(",
        r"\bFunction\s*\(",
        r"\bsetTimeout\s*\(",
        r"\bsetInterval\s*\(",
        r"\brequire\s*\(",
        r"\bimport\s*\(",
        # Process and module globals
        r"\bprocess\b",
        r"\bglobal\b",
        r"\b__dirname\b",
        r"\b__filename\b",
        # Prototype manipulation
        r"\bconstructor\b.*\bprototype\b",
        r"\bObject\s*\.\s*([gs]et)?[pP]rototype[oO]f\b",
        # Browser globals
        r"\bdocument\b",
        r"\bwindow\b",
        r"\blocation\b",
        r"\bnavigator\b",
        r"\bfetch\b",
        r"\bXMLHttpRequest\b",
        r"\bWebSocket\b",
        r"\balert\b",
        r"\bconfirm\b",
        r"\bprompt\b",
        r"\blocalStorage\b",
        r"\bsessionStorage\b",
        r"\bindexedDB\b",
        # Filesystem, network and system modules
        r"\bfs\b",
        r"\bhttps?\b",
        r"\bnet\b",
        r"\bchild_process\b",
        r"\bcrypto\b",
        r"\bzlib\b",
        r"\bdgram\b",
        # Markup and function syntax
        r"<(\w+)>",
        r"\(\s*\)\s*=>",
        r"\bfunction\s*\(",
        r"\bnew\s+",
        r"\bdelete\b",
    )
)

VALID_STARTS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*\{"),
    re.compile(r"^\s*\(\s*\{"),
)


def find_denied_construct(text: str) -> str | None:
    """Return the first denylisted substring found in text, if any."""
    for pattern in DENYLIST:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def has_object_prefix(text: str) -> bool:
    return any(pattern.match(text) for pattern in VALID_STARTS)


def braces_balanced(text: str) -> bool:
    """
    Check that curly braces balance outside of quoted strings.

    Tracks whether the scan is inside a single- or double-quoted string and
    honours backslash escapes within it.
    """
    depth = 0
    in_string = False
    quote = ""
    escaped = False

    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                in_string = False
        elif char in ("'", '"'):
            in_string = True
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return False

    return depth == 0 and not in_string


def is_safe_chart_literal(text: str) -> bool:
    """Run every safety check against a candidate object literal."""
    if find_denied_construct(text) is not None:
        return False
    if not has_object_prefix(text):
        return False
    return braces_balanced(text)
