"""
Input resolver - turns an untrusted chart description into a chart dict.

Resolution order:
1. Already-parsed dicts pass through untouched.
2. Strings are tried as strict JSON.
3. Strings that are not JSON must pass the safety filter, then are parsed by
   the object-literal grammar. Nothing is evaluated.

Every failure surfaces as InvalidSpecification; parser errors are attached as
the exception cause for diagnostics.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any

from chartserver.domain.errors import InvalidSpecification

from ._literal import CanvasGeometry, LiteralSyntaxError, parse_literal
from ._safety import is_safe_chart_literal

logger = logging.getLogger(__name__)

UNSAFE_MESSAGE = "Invalid chart configuration. Must be valid JSON or a safe chart object literal."
NESTING_MESSAGE = "Chart configuration is nested too deeply"


def decode_chart_input(raw: Any, encoding: str | None) -> Any:
    """Undo the transport encoding of a chart parameter (`url` or `base64`)."""
    if encoding != "base64" or not isinstance(raw, str):
        return raw
    # Accept the URL-safe alphabet, form-decoded pluses and missing padding.
    text = raw.strip().replace(" ", "+").replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text, validate=False).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        logger.warning("base64 malformed: %s", e)
        raise InvalidSpecification(f"Invalid base64 chart: {e}") from e


def resolve_chart(raw: Any, *, width: int, height: int) -> dict[str, Any]:
    """
    Resolve a raw chart description into a chart specification dict.

    Args:
        raw: Parsed dict or description string.
        width: Canvas width, used for gradient coordinates.
        height: Canvas height, used for gradient coordinates.

    Returns:
        The chart specification.

    Raises:
        InvalidSpecification: If the input is neither JSON nor a safe literal.
    """
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        raise InvalidSpecification("Chart must be an object or a string")

    try:
        parsed = json.loads(raw)
    except ValueError as json_err:
        return _resolve_literal(raw, width, height, json_err)
    except RecursionError as e:
        raise InvalidSpecification(NESTING_MESSAGE) from e

    if not isinstance(parsed, dict):
        raise InvalidSpecification("Chart configuration must be an object")
    return parsed


def _resolve_literal(
    text: str, width: int, height: int, json_err: ValueError
) -> dict[str, Any]:
    if not is_safe_chart_literal(text):
        logger.error("Invalid chart configuration format: %s", json_err)
        raise InvalidSpecification(UNSAFE_MESSAGE)

    try:
        parsed = parse_literal(text, CanvasGeometry(width=width, height=height))
    except LiteralSyntaxError as e:
        logger.error("Input error: %s", e)
        raise InvalidSpecification(f"Invalid input\n{e}") from e
    except RecursionError as e:
        raise InvalidSpecification(NESTING_MESSAGE) from e

    if not isinstance(parsed, dict):
        raise InvalidSpecification("Chart configuration must be an object")
    return parsed
