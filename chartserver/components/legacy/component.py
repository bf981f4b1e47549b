"""
Legacy dialect translator - Google Image Charts parameters to native charts.

Key behaviors:
- `cht` picks the chart kind; `gv[:engine]` and `qr` are handed to the
  graph-layout and QR adapters instead of the chart pipeline.
- Translated charts are written in the generation 2 option dialect and are
  rendered at device pixel ratio 1.
- Anything the translator cannot interpret raises
  UnsupportedLegacyChartType; there is no partial rendering.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from chartserver.domain.entities import (
    DEFAULT_HEIGHT,
    DEFAULT_QR_SIZE,
    DEFAULT_WIDTH,
    clamp_qr_size,
)
from chartserver.domain.errors import UnsupportedLegacyChartType

from ._encoding import Series, decode_data, parse_scaling
from .models import GraphvizDelegation, LegacyChart, LegacyResult, QrDelegation

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "Sorry, this chart configuration is not supported right now"

LEGEND_POSITIONS = {"t": "top", "b": "bottom", "l": "left", "r": "right"}


def parse_size(chs: str | None) -> tuple[int, int]:
    """Parse `chs` (`WxH`); malformed or missing sizes use the defaults."""
    if not chs:
        return DEFAULT_WIDTH, DEFAULT_HEIGHT
    width, _, height = chs.lower().partition("x")
    try:
        return int(width), int(height or width)
    except ValueError:
        return DEFAULT_WIDTH, DEFAULT_HEIGHT


def legacy_color(value: str) -> str:
    """Convert `RRGGBB` or `RRGGBBAA` into a CSS colour."""
    value = value.strip().lstrip("#")
    if len(value) == 8:
        r, g, b, a = (int(value[i : i + 2], 16) for i in range(0, 8, 2))
        return f"rgba({r},{g},{b},{round(a / 255, 3)})"
    return f"#{value}"


def _split(value: str | None, sep: str = "|") -> list[str]:
    if not value:
        return []
    return value.split(sep)


def _axis(display: bool) -> dict[str, Any]:
    return {"display": display, "ticks": {}, "gridLines": {"display": False}}


# --- Chart kinds ---


def _series_datasets(series: list[Series]) -> list[dict[str, Any]]:
    return [{"data": values} for values in series]


def _bar(horizontal: bool, stacked: bool, overlap: bool = False):
    def build(series: list[Series]) -> dict[str, Any]:
        category, value = (_axis(True), _axis(True))
        category["stacked"] = stacked or overlap
        value["stacked"] = stacked
        scales = (
            {"xAxes": [value], "yAxes": [category]}
            if horizontal
            else {"xAxes": [category], "yAxes": [value]}
        )
        return {
            "type": "horizontalBar" if horizontal else "bar",
            "data": {"datasets": _series_datasets(series)},
            "options": {"scales": scales},
        }

    return build


def _line(series: list[Series]) -> dict[str, Any]:
    datasets = _series_datasets(series)
    for dataset in datasets:
        dataset["fill"] = False
        dataset["pointRadius"] = 0
    return {
        "type": "line",
        "data": {"datasets": datasets},
        "options": {"scales": {"xAxes": [_axis(True)], "yAxes": [_axis(True)]}},
    }


def _xy_line(series: list[Series]) -> dict[str, Any]:
    datasets = []
    for i in range(0, len(series) - 1, 2):
        xs, ys = series[i], series[i + 1]
        points = [{"x": x, "y": y} for x, y in zip(xs, ys) if x is not None and y is not None]
        datasets.append({"data": points, "showLine": True, "fill": False, "pointRadius": 0})
    return {
        "type": "scatter",
        "data": {"datasets": datasets},
        "options": {"scales": {"xAxes": [_axis(True)], "yAxes": [_axis(True)]}},
    }


def _scatter(series: list[Series]) -> dict[str, Any]:
    if len(series) < 2:
        raise ValueError("Scatter charts need x and y series")
    xs, ys = series[0], series[1]
    points = [{"x": x, "y": y} for x, y in zip(xs, ys) if x is not None and y is not None]
    return {
        "type": "scatter",
        "data": {"datasets": [{"data": points}]},
        "options": {"scales": {"xAxes": [_axis(True)], "yAxes": [_axis(True)]}},
    }


def _round(chart_type: str):
    def build(series: list[Series]) -> dict[str, Any]:
        return {
            "type": chart_type,
            "data": {"datasets": _series_datasets(series)},
            "options": {},
        }

    return build


def _radar(filled: bool):
    def build(series: list[Series]) -> dict[str, Any]:
        datasets = _series_datasets(series)
        for dataset in datasets:
            dataset["fill"] = filled
        return {"type": "radar", "data": {"datasets": datasets}, "options": {}}

    return build


CHART_BUILDERS: dict[str, Callable[[list[Series]], dict[str, Any]]] = {
    "bvs": _bar(horizontal=False, stacked=True),
    "bvg": _bar(horizontal=False, stacked=False),
    "bvo": _bar(horizontal=False, stacked=False, overlap=True),
    "bhs": _bar(horizontal=True, stacked=True),
    "bhg": _bar(horizontal=True, stacked=False),
    "lc": _line,
    "ls": _line,
    "lxy": _xy_line,
    "p": _round("pie"),
    "p3": _round("pie"),
    "pc": _round("pie"),
    "pd": _round("doughnut"),
    "r": _radar(filled=False),
    "rs": _radar(filled=True),
    "s": _scatter,
}


# --- Decorations ---


def _apply_colors(chart: dict[str, Any], chco: str | None) -> None:
    if not chco:
        return
    datasets = chart["data"]["datasets"]
    round_chart = chart["type"] in ("pie", "doughnut")
    for index, spec in enumerate(chco.split(",")):
        colors = [legacy_color(c) for c in spec.split("|") if c]
        if not colors:
            continue
        if round_chart and len(colors) == 1 and index > 0 and datasets:
            # Pie colours are listed per slice.
            datasets[0].setdefault("backgroundColor", [])
            if isinstance(datasets[0]["backgroundColor"], list):
                datasets[0]["backgroundColor"].append(colors[0])
            continue
        if index >= len(datasets):
            break
        value: Any = colors if len(colors) > 1 or round_chart else colors[0]
        datasets[index]["backgroundColor"] = value
        datasets[index]["borderColor"] = value


def _apply_axes(chart: dict[str, Any], params: Mapping[str, str]) -> None:
    scales = chart["options"].get("scales")
    if not scales:
        return
    horizontal = chart["type"] == "horizontalBar"
    visible = _split(params.get("chxt"), ",")
    axis_cfgs = {"x": scales["xAxes"][0], "y": scales["yAxes"][0]}
    for name, cfg in axis_cfgs.items():
        cfg["display"] = name in visible
        if name not in visible:
            cfg["ticks"]["display"] = False

    labels_by_axis: dict[int, list[str]] = {}
    current: int | None = None
    for token in _split(params.get("chxl"), "|"):
        if token.endswith(":") and token[:-1].isdigit():
            current = int(token[:-1])
            labels_by_axis[current] = []
        elif current is not None:
            labels_by_axis[current].append(token)

    for index, labels in labels_by_axis.items():
        if index < len(visible):
            name = visible[index]
            category_axis = "y" if horizontal else "x"
            if name == category_axis:
                chart["data"]["labels"] = labels

    for spec in _split(params.get("chxr"), "|"):
        parts = spec.split(",")
        if len(parts) < 3 or not parts[0].isdigit():
            continue
        index = int(parts[0])
        if index >= len(visible) or visible[index] not in axis_cfgs:
            continue
        ticks = axis_cfgs[visible[index]]["ticks"]
        ticks["min"] = float(parts[1])
        ticks["max"] = float(parts[2])
        if len(parts) > 3:
            ticks["stepSize"] = float(parts[3])

    grid = _split(params.get("chg"), ",")
    if grid:
        if float(grid[0] or 0) > 0:
            axis_cfgs["x"]["gridLines"]["display"] = True
        if len(grid) > 1 and float(grid[1] or 0) > 0:
            axis_cfgs["y"]["gridLines"]["display"] = True


def _apply_scaling(chart: dict[str, Any], chds: str | None, auto: bool) -> None:
    scales = chart["options"].get("scales")
    if not scales:
        return
    horizontal = chart["type"] == "horizontalBar"
    value_axis = scales["xAxes"][0] if horizontal else scales["yAxes"][0]
    bounds = parse_scaling(chds)
    if bounds is not None:
        value_axis["ticks"]["min"], value_axis["ticks"]["max"] = bounds
    elif not auto:
        value_axis["ticks"]["beginAtZero"] = True


def _apply_labels(chart: dict[str, Any], params: Mapping[str, str], longest: int) -> None:
    labels = _split(params.get("chl"))
    if labels and not chart["data"].get("labels"):
        chart["data"]["labels"] = labels
    if not chart["data"].get("labels"):
        chart["data"]["labels"] = [""] * longest

    legend_labels = _split(params.get("chdl"))
    for dataset, label in zip(chart["data"]["datasets"], legend_labels):
        dataset["label"] = label
    position = LEGEND_POSITIONS.get((params.get("chdlp") or "t")[:1], "top")
    chart["options"]["legend"] = {"display": bool(legend_labels), "position": position}


def _apply_title(chart: dict[str, Any], params: Mapping[str, str]) -> None:
    text = params.get("chtt")
    if not text:
        return
    title: dict[str, Any] = {"display": True, "text": text.replace("+", " ").split("|")}
    style = _split(params.get("chts"), ",")
    if style and style[0]:
        title["fontColor"] = legacy_color(style[0])
    if len(style) > 1 and style[1]:
        title["fontSize"] = float(style[1])
    chart["options"]["title"] = title


def _apply_line_styles(chart: dict[str, Any], chls: str | None) -> None:
    for dataset, spec in zip(chart["data"]["datasets"], _split(chls)):
        parts = spec.split(",")
        if parts[0]:
            dataset["borderWidth"] = float(parts[0])
        if len(parts) > 2:
            dataset["borderDash"] = [float(parts[1]), float(parts[2])]


def _apply_margins(chart: dict[str, Any], chma: str | None) -> None:
    parts = _split(chma, ",")
    if len(parts) < 4:
        return
    left, right, top, bottom = (float(p or 0) for p in parts[:4])
    chart["options"]["layout"] = {
        "padding": {"left": left, "right": right, "top": top, "bottom": bottom}
    }


def _background(chf: str | None) -> str | None:
    for fill in _split(chf):
        parts = fill.split(",")
        if len(parts) >= 3 and parts[0] == "bg" and parts[1] == "s":
            return legacy_color(parts[2])
    return None


# --- Entry point ---


def _graphviz(params: Mapping[str, str]) -> GraphvizDelegation:
    cht = params.get("cht") or ""
    engine = cht.split(":", 1)[1] if ":" in cht else "dot"
    width = height = None
    if params.get("chs"):
        width, height = parse_size(params.get("chs"))
    return GraphvizDelegation(
        source=params.get("chl") or "",
        engine=engine or "dot",
        output_format=params.get("chof") or "svg",
        width=width,
        height=height,
    )


def _qr(params: Mapping[str, str]) -> QrDelegation:
    size, _ = parse_size(params.get("chs") or f"{DEFAULT_QR_SIZE}x{DEFAULT_QR_SIZE}")
    size = clamp_qr_size(size)
    chld = (params.get("chld") or "").split("|")
    margin = chld[1] if len(chld) > 1 and chld[1].isdigit() else "4"
    return QrDelegation(
        data=params.get("chl") or "",
        size=size,
        error_correction=(chld[0] or "L").upper(),
        margin=int(margin),
    )


def translate(params: Mapping[str, str]) -> LegacyResult:
    """
    Translate legacy query parameters.

    Raises:
        UnsupportedLegacyChartType: If the type code or its data cannot be interpreted.
    """
    cht = params.get("cht") or ""
    if cht.startswith("gv"):
        return _graphviz(params)
    if cht == "qr":
        return _qr(params)

    builder = CHART_BUILDERS.get(cht)
    if builder is None:
        logger.error("Unsupported legacy chart type: %s", cht)
        raise UnsupportedLegacyChartType(UNSUPPORTED_MESSAGE)

    try:
        series, auto = decode_data(params.get("chd") or "t:")
        chart = builder(series)
        longest = max((len(s) for s in series), default=0)
        _apply_colors(chart, params.get("chco"))
        _apply_labels(chart, params, longest)
        _apply_axes(chart, params)
        _apply_scaling(chart, params.get("chds"), auto)
        _apply_title(chart, params)
        _apply_line_styles(chart, params.get("chls"))
        _apply_margins(chart, params.get("chma"))
        background = _background(params.get("chf"))
    except (ValueError, IndexError) as e:
        logger.error("Could not interpret legacy chart: %s", e)
        raise UnsupportedLegacyChartType(UNSUPPORTED_MESSAGE) from e

    width, height = parse_size(params.get("chs"))
    return LegacyChart(chart=chart, width=width, height=height, background_color=background)


def describe(chart: dict[str, Any]) -> str:
    """Human-readable rendering of a translated chart."""
    return json.dumps(chart, indent=2, default=repr)
