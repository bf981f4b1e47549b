"""
Parser for chart object literals.

Accepts the object-literal subset people actually write in chart
descriptions: unquoted keys, single-quoted strings, trailing commas, comments,
hex numbers and `undefined`. Nothing is ever evaluated. The only calls the
grammar knows are the three fill helpers, and each one produces a plain
descriptor dict that the renderer knows how to paint:

    getGradientFill(stops, [x0, y0, x1, y1]?)
    getGradientFillHelper(direction, colors, {width, height}?)
    pattern.draw(shape, backgroundColor, patternColor?, size?)

Any other identifier or call is a syntax error.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any


class LiteralSyntaxError(ValueError):
    """Raised when the text is outside the accepted literal grammar."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} at position {position}")
        self.position = position


@dataclass(frozen=True)
class Token:
    kind: str  # punct, string, number, ident, eof
    value: Any
    position: int


@dataclass(frozen=True)
class CanvasGeometry:
    """Canvas size used to resolve gradient coordinates."""

    width: int
    height: int


PUNCTUATION = frozenset("{}[](),:.;+-")

_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?",
)
_IDENT_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_KEYWORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "NaN": math.nan,
    "Infinity": math.inf,
}

MAX_PATTERN_SIZE = 200
DEFAULT_PATTERN_SIZE = 20


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]

        if char.isspace():
            i += 1
            continue

        if text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end + 1
            continue

        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise LiteralSyntaxError("Unterminated comment", i)
            i = end + 2
            continue

        if char in ("'", '"'):
            value, i_next = _read_string(text, i)
            tokens.append(Token("string", value, i))
            i = i_next
            continue

        if char.isdigit() or (char == "." and i + 1 < length and text[i + 1].isdigit()):
            match = _NUMBER_RE.match(text, i)
            assert match is not None
            raw = match.group(0)
            number: int | float
            if raw[:2] in ("0x", "0X"):
                number = int(raw, 16)
            elif any(c in raw for c in ".eE"):
                number = float(raw)
            else:
                number = int(raw)
            tokens.append(Token("number", number, i))
            i = match.end()
            continue

        if char in PUNCTUATION:
            tokens.append(Token("punct", char, i))
            i += 1
            continue

        match = _IDENT_RE.match(text, i)
        if match:
            tokens.append(Token("ident", match.group(0), i))
            i = match.end()
            continue

        raise LiteralSyntaxError(f"Unexpected character {char!r}", i)

    tokens.append(Token("eof", None, length))
    return tokens


def _read_string(text: str, start: int) -> tuple[str, int]:
    quote = text[start]
    i = start + 1
    parts: list[str] = []

    while i < len(text):
        char = text[i]
        if char == quote:
            return "".join(parts), i + 1
        if char == "\n":
            raise LiteralSyntaxError("Unterminated string", start)
        if char == "\\":
            i += 1
            if i >= len(text):
                break
            esc = text[i]
            if esc in _SIMPLE_ESCAPES:
                parts.append(_SIMPLE_ESCAPES[esc])
            elif esc == "u":
                parts.append(_read_hex(text, i + 1, 4))
                i += 4
            elif esc == "x":
                parts.append(_read_hex(text, i + 1, 2))
                i += 2
            elif esc == "\n":
                pass  # line continuation
            else:
                parts.append(esc)
            i += 1
            continue
        parts.append(char)
        i += 1

    raise LiteralSyntaxError("Unterminated string", start)


def _read_hex(text: str, start: int, width: int) -> str:
    digits = text[start : start + width]
    if len(digits) != width or not all(c in "0123456789abcdefABCDEF" for c in digits):
        raise LiteralSyntaxError("Invalid escape sequence", start)
    return chr(int(digits, 16))


class LiteralParser:
    def __init__(self, text: str, geometry: CanvasGeometry) -> None:
        self._tokens = tokenize(text)
        self._pos = 0
        self._geometry = geometry

    # --- Token helpers ---

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _next(self) -> Token:
        token = self._tokens[self._pos]
        if token.kind != "eof":
            self._pos += 1
        return token

    def _is(self, value: str) -> bool:
        token = self._peek()
        return token.kind == "punct" and token.value == value

    def _expect(self, value: str) -> Token:
        token = self._next()
        if token.kind != "punct" or token.value != value:
            raise LiteralSyntaxError(f"Expected {value!r}", token.position)
        return token

    # --- Grammar ---

    def parse(self) -> Any:
        value = self._value()
        while self._is(";"):
            self._next()
        token = self._peek()
        if token.kind != "eof":
            raise LiteralSyntaxError("Unexpected trailing content", token.position)
        return value

    def _value(self) -> Any:
        token = self._peek()

        if token.kind == "punct":
            if token.value == "{":
                return self._object()
            if token.value == "[":
                return self._array()
            if token.value == "(":
                self._next()
                value = self._value()
                self._expect(")")
                return value
            if token.value in ("-", "+"):
                self._next()
                operand = self._value()
                if isinstance(operand, bool) or not isinstance(operand, (int, float)):
                    raise LiteralSyntaxError("Unary sign applies to numbers only", token.position)
                return -operand if token.value == "-" else operand
            raise LiteralSyntaxError(f"Unexpected {token.value!r}", token.position)

        if token.kind in ("string", "number"):
            self._next()
            return token.value

        if token.kind == "ident":
            return self._identifier()

        raise LiteralSyntaxError("Unexpected end of input", token.position)

    def _object(self) -> dict[str, Any]:
        self._expect("{")
        result: dict[str, Any] = {}
        while not self._is("}"):
            key_token = self._next()
            if key_token.kind in ("ident", "string"):
                key = key_token.value
            elif key_token.kind == "number":
                key = str(key_token.value)
            else:
                raise LiteralSyntaxError("Expected property name", key_token.position)
            self._expect(":")
            result[key] = self._value()
            if not self._is(","):
                break
            self._next()
        self._expect("}")
        return result

    def _array(self) -> list[Any]:
        self._expect("[")
        result: list[Any] = []
        while not self._is("]"):
            result.append(self._value())
            if not self._is(","):
                break
            self._next()
        self._expect("]")
        return result

    def _arguments(self) -> list[Any]:
        self._expect("(")
        args: list[Any] = []
        while not self._is(")"):
            args.append(self._value())
            if not self._is(","):
                break
            self._next()
        self._expect(")")
        return args

    def _identifier(self) -> Any:
        token = self._next()
        name = token.value

        if name in _KEYWORDS:
            return _KEYWORDS[name]

        if name == "getGradientFill":
            return self._gradient_fill(self._arguments(), token.position)
        if name == "getGradientFillHelper":
            return self._gradient_fill_helper(self._arguments(), token.position)
        if name == "pattern":
            self._expect(".")
            member = self._next()
            if member.kind != "ident" or member.value != "draw":
                raise LiteralSyntaxError("Only pattern.draw() is supported", member.position)
            return self._pattern(self._arguments(), token.position)

        raise LiteralSyntaxError(f"Unsupported identifier {name!r}", token.position)

    # --- Fill descriptors ---

    def _gradient_fill(self, args: list[Any], position: int) -> dict[str, Any]:
        if not args or not isinstance(args[0], list):
            raise LiteralSyntaxError("getGradientFill expects a list of color stops", position)
        stops = []
        for stop in args[0]:
            if not isinstance(stop, dict) or "color" not in stop:
                raise LiteralSyntaxError("Gradient stop needs offset and color", position)
            stops.append([_coerce_float(stop.get("offset"), 0.0), stop["color"]])

        coords = [0, 0, self._geometry.width, 0]
        if len(args) > 1 and args[1] is not None:
            if not isinstance(args[1], list) or len(args[1]) != 4:
                raise LiteralSyntaxError("Gradient coordinates must be [x0, y0, x1, y1]", position)
            coords = [_coerce_float(c, 0.0) for c in args[1]]
        return {"kind": "linearGradient", "stops": stops, "coords": coords}

    def _gradient_fill_helper(self, args: list[Any], position: int) -> dict[str, Any]:
        if len(args) < 2 or not isinstance(args[1], list) or not args[1]:
            raise LiteralSyntaxError(
                "getGradientFillHelper expects a direction and a list of colors", position
            )
        direction, colors = args[0], args[1]
        dimensions = args[2] if len(args) > 2 and isinstance(args[2], dict) else {}
        width = dimensions.get("width") or self._geometry.width
        height = dimensions.get("height") or self._geometry.height

        steps = (len(colors) - 1) or 1
        stops = [[idx / steps, color] for idx, color in enumerate(colors)]

        if direction == "vertical":
            coords = [0, 0, 0, height]
        elif direction == "both":
            coords = [0, 0, width, height]
        else:
            coords = [0, 0, width, 0]
        return {"kind": "linearGradient", "stops": stops, "coords": coords}

    def _pattern(self, args: list[Any], position: int) -> dict[str, Any]:
        if not args or not isinstance(args[0], str):
            raise LiteralSyntaxError("pattern.draw expects a shape name", position)
        shape = args[0]
        background = args[1] if len(args) > 1 else None
        foreground = args[2] if len(args) > 2 else None
        requested = args[3] if len(args) > 3 else None
        size = DEFAULT_PATTERN_SIZE
        if isinstance(requested, (int, float)) and not isinstance(requested, bool):
            size = min(MAX_PATTERN_SIZE, requested) or DEFAULT_PATTERN_SIZE
        return {
            "kind": "pattern",
            "shape": shape,
            "backgroundColor": background,
            "patternColor": foreground,
            "size": size,
        }


def _coerce_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_literal(text: str, geometry: CanvasGeometry) -> Any:
    """Parse an object-literal chart description into plain Python values."""
    return LiteralParser(text, geometry).parse()
