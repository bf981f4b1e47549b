"""
Decoders for the legacy `chd` data parameter.

    t:1,2,3|4,5,6     text, `_` or negative values are gaps
    a:1,2,3           text with automatic scaling
    s:ABC,xyz         simple encoding, one character per value (0-61)
    e:AAgA,..         extended encoding, two characters per value (0-4095)

Series are separated by `|` in text encodings and by `,` in the character
encodings.
"""

from __future__ import annotations

import re

SIMPLE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
EXTENDED_ALPHABET = SIMPLE_ALPHABET + "-."

Series = list[float | None]

_TEXT_PREFIX = re.compile(r"^t\d*$")


def _text_value(token: str) -> float | None:
    token = token.strip()
    if token in ("", "_"):
        return None
    value = float(token)
    if value < 0:
        return None
    return value


def _decode_text(body: str) -> list[Series]:
    return [[_text_value(t) for t in series.split(",")] for series in body.split("|")]


def _decode_simple(body: str) -> list[Series]:
    result: list[Series] = []
    for series in body.split(","):
        values: Series = []
        for char in series:
            if char == "_":
                values.append(None)
                continue
            index = SIMPLE_ALPHABET.find(char)
            if index < 0:
                raise ValueError(f"Invalid simple-encoded value {char!r}")
            values.append(float(index))
        result.append(values)
    return result


def _decode_extended(body: str) -> list[Series]:
    result: list[Series] = []
    for series in body.split(","):
        if len(series) % 2:
            raise ValueError("Extended-encoded series must have an even length")
        values: Series = []
        for i in range(0, len(series), 2):
            pair = series[i : i + 2]
            if pair == "__":
                values.append(None)
                continue
            high = EXTENDED_ALPHABET.find(pair[0])
            low = EXTENDED_ALPHABET.find(pair[1])
            if high < 0 or low < 0:
                raise ValueError(f"Invalid extended-encoded value {pair!r}")
            values.append(float(high * len(EXTENDED_ALPHABET) + low))
        result.append(values)
    return result


def decode_data(chd: str) -> tuple[list[Series], bool]:
    """
    Decode a `chd` value.

    Returns:
        The series and whether the encoding asks for automatic scaling.

    Raises:
        ValueError: On an unknown encoding or malformed values.
    """
    prefix, sep, body = chd.partition(":")
    if not sep:
        raise ValueError("Chart data must start with an encoding prefix")
    if prefix == "a":
        return _decode_text(body), True
    if _TEXT_PREFIX.match(prefix):
        return _decode_text(body), False
    if prefix == "s":
        return _decode_simple(body), False
    if prefix == "e":
        return _decode_extended(body), False
    raise ValueError(f"Unknown data encoding {prefix!r}")


def parse_scaling(chds: str | None) -> tuple[float, float] | None:
    """Parse `chds`; `a` or absent means no fixed bounds."""
    if not chds or chds == "a":
        return None
    parts = [p for p in chds.split(",") if p.strip()]
    if len(parts) < 2:
        return None
    return float(parts[0]), float(parts[1])
