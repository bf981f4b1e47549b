"""
Round and radial drawers: pie and doughnut (plain and out-labelled), polar
area, radar, and radial gauge.

Angles follow the canvas convention: the first slice starts at 12 o'clock and
slices run clockwise. Multiple pie datasets are drawn as concentric rings with
dataset 0 outermost.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np
from matplotlib.axes import Axes
from matplotlib.patches import Wedge

from chartserver.components.normalizer import format_number
from chartserver.domain.charts import ChartKind, DataLabelContext

from ._cartesian import GRID_COLOR
from ._frame import (
    DEFAULT_FONT_SIZE,
    PX,
    Frame,
    as_float,
    font_color,
    font_size,
    line_style,
    padded,
    raw_point,
    to_number,
)
from ._paint import DEFAULT_FONT_COLOR, apply_fill, parse_color, per_point

START_ANGLE = 90.0
ARC_BORDER_COLOR = "#fff"
ARC_BORDER_WIDTH = 2.0
DEFAULT_TRACK_COLOR = "rgb(204, 221, 238)"
DEFAULT_CENTER_PERCENTAGE = 80.0
OUTLABEL_TEXT = "%l %p"


def _round_axes(ax: Axes, extent: float = 1.05) -> None:
    ax.set_aspect("equal")
    ax.set_axis_off()
    ax.set_xlim(-extent, extent)
    ax.set_ylim(-extent, extent)


def _cutout(frame: Frame) -> float:
    options = frame.options
    doughnut = frame.kind in (ChartKind.DOUGHNUT, ChartKind.OUTLABELED_DOUGHNUT)
    value = options.get("cutoutPercentage")
    if value is None:
        value = options.get("cutout")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            # Pixel cutout, relative to the largest radius that fits.
            value = value / (min(frame.width, frame.height) / 2) * 100
    if value is None:
        return 0.5 if doughnut else 0.0
    if isinstance(value, str):
        value = value.rstrip("%")
    return min(max(as_float(value, 50.0) / 100.0, 0.0), 0.95)


# --- Pie and doughnut ---


def _outlabel_config(frame: Frame, dataset: dict[str, Any]) -> dict[str, Any] | None:
    config = dict(frame.plugin_options("outlabels"))
    if isinstance(dataset.get("outlabels"), dict):
        config.update(dataset["outlabels"])
    if not config or config.get("display", True) is False:
        return None
    return config


def _outlabel_text(template: str, label: Any, value: float, total: float) -> str:
    percentage = value / total * 100 if total else 0.0
    return (
        template.replace("%l", "" if label is None else str(label))
        .replace("%v", format_number(value))
        .replace("%p", f"{percentage:.0f}%")
    )


def _draw_outlabels(
    frame: Frame,
    ax: Axes,
    wedges: list[Wedge],
    values: list[float],
    fills: list[Any],
    config: dict[str, Any],
) -> None:
    total = sum(values)
    template = config.get("text") if isinstance(config.get("text"), str) else OUTLABEL_TEXT
    for j, wedge in enumerate(wedges):
        if values[j] <= 0:
            continue
        angle = math.radians((wedge.theta1 + wedge.theta2) / 2)
        edge = (wedge.r * math.cos(angle), wedge.r * math.sin(angle))
        anchor = (1.3 * math.cos(angle), 1.25 * math.sin(angle))
        label = frame.labels[j] if j < len(frame.labels) else None
        color = parse_color(per_point(config.get("backgroundColor"), j), None)
        if color is None:
            color = parse_color(fills[j])
        ax.annotate(
            _outlabel_text(template, label, values[j], total),
            xy=edge,
            xytext=anchor,
            ha="left" if anchor[0] >= 0 else "right",
            va="center",
            fontsize=font_size(config),
            color=font_color(config, "#ffffff"),
            bbox={"boxstyle": "round,pad=0.3", "facecolor": color, "edgecolor": "none"},
            arrowprops={"arrowstyle": "-", "color": color, "linewidth": PX},
            zorder=10,
            annotation_clip=False,
        )


def draw_pie(frame: Frame, ax: Axes) -> None:
    visible = frame.visible_datasets()
    cutout = _cutout(frame)
    ring_width = (1.0 - cutout) / max(len(visible), 1)
    outlabels = False
    legend_fills: list[Any] | None = None

    for ring, (i, ds) in enumerate(visible):
        raw_values = frame.values(ds)
        values = [v if math.isfinite(v) and v > 0 else 0.0 for v in raw_values]
        fills = frame.point_fills(ds, len(values))
        if legend_fills is None:
            legend_fills = fills
        if sum(values) <= 0:
            continue

        wedges, _ = ax.pie(
            values,
            radius=1.0 - ring * ring_width,
            startangle=START_ANGLE,
            counterclock=False,
            wedgeprops={"width": ring_width},
        )
        for j, wedge in enumerate(wedges):
            frame.style_border(
                wedge,
                per_point(ds.get("borderColor", ARC_BORDER_COLOR), j),
                per_point(ds.get("borderWidth"), j),
                ARC_BORDER_WIDTH,
            )
            apply_fill(frame.fig, ax, wedge, fills[j], frame.width, frame.height)

        for j, wedge in enumerate(wedges):
            if values[j] <= 0:
                continue
            angle = math.radians((wedge.theta1 + wedge.theta2) / 2)
            middle = wedge.r - ring_width / 2
            raw = (ds.get("data") or [None])[j]
            frame.data_label(
                ax, middle * math.cos(angle), middle * math.sin(angle), raw, i, j
            )

        config = _outlabel_config(frame, ds) if ring == 0 else None
        if config is not None:
            outlabels = True
            _draw_outlabels(frame, ax, wedges, values, fills, config)

    _round_axes(ax, 1.6 if outlabels else 1.05)
    frame.add_label_legend(legend_fills or [])


# --- Polar area ---


def _style_polar(frame: Frame, ax: Axes, scale: dict[str, Any]) -> None:
    ax.set_facecolor("none")
    ax.set_theta_zero_location("N")
    ax.set_theta_direction(-1)
    ax.spines["polar"].set_color(GRID_COLOR)
    ax.grid(True, color=GRID_COLOR, linewidth=PX)
    ax.tick_params(labelsize=DEFAULT_FONT_SIZE * PX * 0.8, labelcolor=DEFAULT_FONT_COLOR)
    if scale.get("display") is False:
        ax.set_axis_off()


def _radial_scale(frame: Frame) -> dict[str, Any]:
    options = frame.options
    if isinstance(options.get("scale"), dict):
        return options["scale"]
    scales = options.get("scales")
    if isinstance(scales, dict) and isinstance(scales.get("r"), dict):
        return scales["r"]
    return {}


def _radial_limits(scale: dict[str, Any], values: list[float]) -> tuple[float, float]:
    ticks = scale.get("ticks") if isinstance(scale.get("ticks"), dict) else {}
    finite = [v for v in values if math.isfinite(v)]
    low = min(finite, default=0.0)
    high = max(finite, default=1.0)
    if ticks.get("beginAtZero") or scale.get("beginAtZero"):
        low = min(low, 0.0)
    low = as_float(ticks.get("min", scale.get("min")), low)
    high = as_float(ticks.get("max", scale.get("max")), high)
    if high <= low:
        high = low + 1.0
    return low, high


def draw_polar_area(frame: Frame, ax: Axes) -> None:
    scale = _radial_scale(frame)
    _style_polar(frame, ax, scale)
    count = frame.category_count
    width = 2 * math.pi / max(count, 1)
    thetas = (np.arange(count) + 0.5) * width
    legend_fills: list[Any] | None = None
    all_values: list[float] = []

    for order, (i, ds) in enumerate(reversed(frame.visible_datasets())):
        values = padded(frame.values(ds), count)
        all_values.extend(values.tolist())
        fills = frame.point_fills(ds, count)
        legend_fills = fills
        bars = ax.bar(thetas, np.nan_to_num(values), width=width, bottom=0.0, zorder=2 + order)
        for j, bar in enumerate(bars):
            frame.style_border(
                bar,
                per_point(ds.get("borderColor", ARC_BORDER_COLOR), j),
                per_point(ds.get("borderWidth"), j),
                ARC_BORDER_WIDTH,
            )
            apply_fill(frame.fig, ax, bar, fills[j], frame.width, frame.height)
            if math.isfinite(values[j]):
                frame.data_label(ax, thetas[j], values[j] / 2, raw_point(ds, j), i, j)

    ax.set_xticks([])
    top = _radial_limits(scale, all_values + [0.0])[1]
    ax.set_ylim(0.0, top if top > 0 else 1.0)
    frame.add_label_legend(legend_fills or [])


# --- Radar ---


def draw_radar(frame: Frame, ax: Axes) -> None:
    scale = _radial_scale(frame)
    _style_polar(frame, ax, scale)
    count = max(len(frame.labels), frame.category_count)
    thetas = np.arange(count) * 2 * math.pi / max(count, 1)
    closed_thetas = np.append(thetas, thetas[:1])
    point_cfg = frame.element("point")
    line_cfg = frame.element("line")
    fill_default = line_cfg.get("fill", frame.generation.fills_lines_by_default)
    all_values: list[float] = []

    for order, (i, ds) in enumerate(reversed(frame.visible_datasets())):
        values = padded(frame.values(ds), count)
        all_values.extend(values.tolist())
        closed = np.append(values, values[:1])
        fill = frame.dataset_fill(ds, i)
        border = parse_color(per_point(frame.dataset_border(ds, i), 0))
        zorder = 2 + order * 0.01

        if ds.get("fill", fill_default) not in (False, None, "false"):
            (polygon,) = ax.fill(closed_thetas, np.nan_to_num(closed), zorder=zorder, linewidth=0)
            apply_fill(frame.fig, ax, polygon, per_point(fill, 0), frame.width, frame.height)
        width = as_float(ds.get("borderWidth"), as_float(line_cfg.get("borderWidth"), 3.0))
        if width > 0:
            ax.plot(
                closed_thetas,
                closed,
                color=border,
                linewidth=width * PX,
                linestyle=line_style(ds.get("borderDash")),
                zorder=zorder + 0.001,
            )
        radius = as_float(ds.get("pointRadius"), as_float(point_cfg.get("radius"), 3.0))
        finite = np.isfinite(values)
        if radius > 0 and finite.any():
            ax.scatter(
                thetas[finite],
                values[finite],
                s=(2 * radius * PX) ** 2,
                c=[parse_color(per_point(ds.get("pointBackgroundColor", fill), 0))],
                edgecolors=[border],
                linewidths=PX,
                zorder=zorder + 0.002,
            )
        for j in range(count):
            if finite[j]:
                frame.data_label(ax, thetas[j], values[j], raw_point(ds, j), i, j)

    labels = [str(label) if label is not None else "" for label in frame.labels]
    ax.set_xticks(thetas)
    ax.set_xticklabels((labels + [""] * count)[:count])
    ax.set_ylim(*_radial_limits(scale, all_values))

    frame.add_dataset_legend()


# --- Radial gauge ---


def draw_radial_gauge(frame: Frame, ax: Axes) -> None:
    _round_axes(ax)
    options = frame.options
    datasets = frame.datasets
    dataset = datasets[0] if datasets else {}
    data = dataset.get("data") or [0]
    value = to_number(data[0])
    value = 0.0 if math.isnan(value) else value

    domain = options.get("domain") if isinstance(options.get("domain"), list) else [0, 100]
    low = as_float(domain[0] if domain else 0, 0.0)
    high = as_float(domain[1] if len(domain) > 1 else 100, 100.0)
    span = (high - low) or 1.0
    fraction = min(max((value - low) / span, 0.0), 1.0)

    center = as_float(options.get("centerPercentage"), DEFAULT_CENTER_PERCENTAGE) / 100.0
    width = 1.0 - min(max(center, 0.0), 0.99)

    track = Wedge((0.0, 0.0), 1.0, 0.0, 360.0, width=width)
    track.set_facecolor(parse_color(options.get("trackColor") or DEFAULT_TRACK_COLOR))
    track.set_edgecolor("none")
    ax.add_patch(track)

    if fraction > 0:
        arc = Wedge((0.0, 0.0), 1.0, START_ANGLE - fraction * 360.0, START_ANGLE, width=width)
        arc.set_zorder(2)
        arc.set_edgecolor("none")
        ax.add_patch(arc)
        apply_fill(
            frame.fig,
            ax,
            arc,
            per_point(frame.dataset_fill(dataset, 0), 0),
            frame.width,
            frame.height,
        )

    area = options.get("centerArea") if isinstance(options.get("centerArea"), dict) else {}
    if area.get("displayText", True) is False:
        return
    text = area.get("text")
    if callable(text):
        text = text(value, DataLabelContext(0, 0, frame.kind.value))
    if text is None:
        text = format_number(value)
    inner_radius_px = min(frame.width, frame.height) / 2 * center
    size = area.get("fontSize") or inner_radius_px * 0.5
    ax.text(
        0.0,
        0.0,
        str(text),
        ha="center",
        va="center",
        fontsize=as_float(size, DEFAULT_FONT_SIZE) * PX,
        color=font_color(area),
        zorder=5,
    )
