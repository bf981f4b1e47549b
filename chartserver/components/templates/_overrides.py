"""
Per-request overrides for stored templates.

Supported query parameters:
- `title`: sets the chart title and turns it on
- `labels`: comma-separated category labels
- `data<N>`: comma-separated numbers for dataset N (1-based)
- `backgroundColor<N>` / `borderColor<N>`: comma-separated colour lists;
  commas inside rgb()/rgba()/hsl()/hsla() stay with their colour

Indices beyond the stored dataset count are ignored.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from chartserver.domain.engines import select_generation

_INDEXED_RE = re.compile(r"^(data|backgroundColor|borderColor)(\d+)$")


def split_colors(value: str) -> list[str]:
    """Split a colour list on commas that are not inside parentheses."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in value:
        if ch == "(":
            depth += 1
        elif ch == ")" and depth > 0:
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return parts


def _number(token: str) -> float | int | None:
    token = token.strip()
    if not token:
        return 0
    try:
        number = float(token)
    except ValueError:
        return None
    return int(number) if number.is_integer() else number


def split_numbers(value: str) -> list[float | int | None]:
    return [_number(token) for token in value.split(",")]


_INDEXED_SETTERS: dict[str, tuple[str, Callable[[str], list[Any]]]] = {
    "data": ("data", split_numbers),
    "backgroundColor": ("backgroundColor", split_colors),
    "borderColor": ("borderColor", split_colors),
}


def apply_chart_overrides(
    chart: dict[str, Any], params: Mapping[str, str], version: str | None = None
) -> dict[str, Any]:
    """Apply overrides to a resolved chart dict in place."""
    title = params.get("title")
    if title:
        options = chart.get("options")
        if not isinstance(options, dict):
            options = chart["options"] = {}
        select_generation(version).set_title(options, title)

    data = chart.get("data")
    if not isinstance(data, dict):
        data = chart["data"] = {}

    labels = params.get("labels")
    if labels:
        data["labels"] = labels.split(",")

    datasets = data.get("datasets")
    if not isinstance(datasets, list):
        return chart

    for key, value in params.items():
        match = _INDEXED_RE.match(key)
        if not match:
            continue
        index = int(match.group(2)) - 1
        if index < 0 or index >= len(datasets) or not isinstance(datasets[index], dict):
            continue
        field, parse = _INDEXED_SETTERS[match.group(1)]
        datasets[index][field] = parse(value)
    return chart
