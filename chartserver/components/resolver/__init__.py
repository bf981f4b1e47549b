"""
Resolver component - parses untrusted chart descriptions.
"""

from ._literal import CanvasGeometry, LiteralSyntaxError, parse_literal
from ._safety import braces_balanced, find_denied_construct, is_safe_chart_literal
from .component import decode_chart_input, resolve_chart

__all__ = [
    "CanvasGeometry",
    "LiteralSyntaxError",
    "braces_balanced",
    "decode_chart_input",
    "find_denied_construct",
    "is_safe_chart_literal",
    "parse_literal",
    "resolve_chart",
]
