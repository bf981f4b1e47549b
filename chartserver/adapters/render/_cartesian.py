"""
Cartesian drawers: bars, lines, scatter, bubbles, box plots and violins.

Datasets are drawn back to front so dataset 0 ends up on top. Stacking
follows the value axis; a stacked category axis on its own overlays bars in
the same slot instead of grouping them side by side.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator
from functools import partial
from typing import Any

import numpy as np
from matplotlib.axes import Axes
from matplotlib.cbook import boxplot_stats
from matplotlib.mlab import GaussianKDE
from matplotlib.patches import Rectangle
from matplotlib.ticker import MaxNLocator

from chartserver.domain.charts import ChartKind

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
)
from ._paint import DEFAULT_FONT_COLOR, apply_fill, parse_color, per_point

logger = logging.getLogger(__name__)

GRID_COLOR = (0.0, 0.0, 0.0, 0.1)
AXIS_COLOR = (0.0, 0.0, 0.0, 0.25)
LABEL_BACKGROUND = (0.0, 0.0, 0.0, 0.8)
CATEGORY_PERCENTAGE = 0.8
BAR_PERCENTAGE = 0.9
DEFAULT_POINT_RADIUS = 3.0
DEFAULT_LINE_WIDTH = 3.0
SMOOTH_STEPS = 12


# --- Bars ---


def draw_bars(frame: Frame, ax: Axes) -> None:
    horizontal = frame.horizontal
    category_axis, value_axis = ("y", "x") if horizontal else ("x", "y")
    value_key = "x" if horizontal else "y"
    value_stacked = frame.axis(value_axis).stacked
    overlay = frame.axis(category_axis).stacked and not value_stacked

    count = frame.category_count
    visible = frame.visible_datasets()
    groups = 1 if value_stacked or overlay else max(len(visible), 1)
    slot = CATEGORY_PERCENTAGE / groups
    thickness = slot * BAR_PERCENTAGE

    positive = np.zeros(count)
    negative = np.zeros(count)
    layouts = []
    for slot_index, (i, ds) in enumerate(visible):
        values = padded(frame.values(ds, value_key), count)
        base = np.zeros(count)
        if value_stacked:
            clean = np.nan_to_num(values)
            base = np.where(clean >= 0, positive, negative)
            positive = positive + np.clip(clean, 0, None)
            negative = negative + np.clip(clean, None, 0)
        offset = 0.0 if groups == 1 else (slot_index - (groups - 1) / 2) * slot
        layouts.append((i, ds, values, base, offset))

    labels = []
    for order, (i, ds, values, base, offset) in enumerate(reversed(layouts)):
        fill = frame.dataset_fill(ds, i)
        border = frame.dataset_border(ds, i)
        for j in range(count):
            value = values[j]
            if math.isnan(value):
                continue
            position = j + offset
            if horizontal:
                rect = Rectangle((base[j], position - thickness / 2), value, thickness)
                centre = (base[j] + value / 2, position)
            else:
                rect = Rectangle((position - thickness / 2, base[j]), thickness, value)
                centre = (position, base[j] + value / 2)
            rect.set_zorder(2 + order * 0.01)
            ax.add_patch(rect)
            frame.style_border(rect, per_point(border, j), per_point(ds.get("borderWidth"), j))
            apply_fill(frame.fig, ax, rect, per_point(fill, j), frame.width, frame.height)
            labels.append((centre, raw_point(ds, j), i, j))

    for (x, y), raw, i, j in labels:
        frame.data_label(ax, x, y, raw, i, j)


# --- Lines and points ---


def _runs(
    xs: np.ndarray, ys: np.ndarray, span_gaps: bool
) -> Iterator[tuple[np.ndarray, np.ndarray]]:
    """Split a series into contiguous finite runs; gaps break the line."""
    finite = np.isfinite(xs) & np.isfinite(ys)
    if span_gaps:
        if finite.any():
            yield xs[finite], ys[finite]
        return
    start = None
    for k, ok in enumerate(finite):
        if ok and start is None:
            start = k
        elif not ok and start is not None:
            yield xs[start:k], ys[start:k]
            start = None
    if start is not None:
        yield xs[start:], ys[start:]


def _smooth(
    xs: np.ndarray, ys: np.ndarray, tension: float, aspect: tuple[float, float]
) -> tuple[np.ndarray, np.ndarray]:
    """Cubic Bezier interpolation with control points scaled by tension."""
    if tension <= 0 or len(xs) < 3:
        return xs, ys
    span_x = float(np.ptp(xs)) or 1.0
    span_y = float(np.ptp(ys)) or 1.0
    scale = np.array([aspect[0] / span_x, aspect[1] / span_y])

    points = np.column_stack([xs, ys])
    previous = np.vstack([points[:1], points[:-1]])
    following = np.vstack([points[1:], points[-1:]])
    # Distances in approximate canvas space.
    d01 = np.hypot(*((points - previous) * scale).T)
    d12 = np.hypot(*((following - points) * scale).T)
    total = d01 + d12
    total[total == 0] = 1.0
    delta = following - previous
    control_before = points - (tension * d01 / total)[:, None] * delta
    control_after = points + (tension * d12 / total)[:, None] * delta

    t = np.linspace(0.0, 1.0, SMOOTH_STEPS, endpoint=False)[:, None]
    segments = []
    for k in range(len(points) - 1):
        p0, p1, p2, p3 = points[k], control_after[k], control_before[k + 1], points[k + 1]
        segments.append(
            (1 - t) ** 3 * p0 + 3 * (1 - t) ** 2 * t * p1 + 3 * (1 - t) * t**2 * p2 + t**3 * p3
        )
    segments.append(points[-1:])
    curve = np.vstack(segments)
    return curve[:, 0], curve[:, 1]


def _draw_points(
    frame: Frame,
    ax: Axes,
    ds: dict[str, Any],
    index: int,
    xs: np.ndarray,
    ys: np.ndarray,
    zorder: float,
    radius_default: float,
) -> None:
    fill = ds.get("pointBackgroundColor", frame.dataset_fill(ds, index))
    border = ds.get("pointBorderColor", frame.dataset_border(ds, index))
    radius = ds.get("pointRadius", radius_default)
    mask = np.isfinite(xs) & np.isfinite(ys)
    indices = [j for j in range(len(xs)) if mask[j]]
    radii = [as_float(per_point(radius, j), radius_default) for j in indices]
    if not indices or max(radii, default=0) <= 0:
        return
    ax.scatter(
        xs[indices],
        ys[indices],
        s=[(2 * r * PX) ** 2 for r in radii],
        c=[parse_color(per_point(fill, j)) for j in indices],
        edgecolors=[parse_color(per_point(border, j)) for j in indices],
        linewidths=as_float(ds.get("pointBorderWidth"), 1.0) * PX,
        zorder=zorder + 0.002,
        clip_on=False,
    )


def _draw_series(
    frame: Frame,
    ax: Axes,
    ds: dict[str, Any],
    index: int,
    xs: np.ndarray,
    ys: np.ndarray,
    zorder: float,
    *,
    show_line: bool,
    fill_default: Any,
) -> None:
    line_cfg = frame.element("line")
    point_cfg = frame.element("point")
    default_width = as_float(line_cfg.get("borderWidth"), DEFAULT_LINE_WIDTH)
    width = as_float(ds.get("borderWidth"), default_width)
    border = parse_color(per_point(frame.dataset_border(ds, index, line_cfg.get("borderColor")), 0))
    fill = frame.dataset_fill(ds, index, line_cfg.get("backgroundColor"))
    tension = frame.generation.line_tension(ds)
    stepped = bool(ds.get("steppedLine") or ds.get("stepped"))
    fill_mode = ds.get("fill", line_cfg.get("fill", fill_default))
    filled = fill_mode not in (False, None, "false")

    for run_x, run_y in _runs(xs, ys, bool(ds.get("spanGaps"))):
        if not stepped:
            run_x, run_y = _smooth(run_x, run_y, tension, (frame.width, frame.height))
        if filled:
            area = ax.fill_between(
                run_x, run_y, 0, step="post" if stepped else None, linewidth=0, zorder=zorder
            )
            apply_fill(frame.fig, ax, area, per_point(fill, 0), frame.width, frame.height)
        if show_line and width > 0:
            ax.plot(
                run_x,
                run_y,
                color=border,
                linewidth=width * PX,
                linestyle=line_style(ds.get("borderDash")),
                drawstyle="steps-post" if stepped else "default",
                solid_joinstyle="round",
                zorder=zorder + 0.001,
            )

    _draw_points(
        frame,
        ax,
        ds,
        index,
        xs,
        ys,
        zorder,
        as_float(point_cfg.get("radius"), DEFAULT_POINT_RADIUS),
    )
    for j in range(len(xs)):
        if np.isfinite(xs[j]) and np.isfinite(ys[j]):
            frame.data_label(ax, xs[j], ys[j], raw_point(ds, j), index, j)


def draw_lines(frame: Frame, ax: Axes) -> None:
    visible = frame.visible_datasets()
    for order, (i, ds) in enumerate(reversed(visible)):
        ys = np.array(frame.values(ds), dtype=float)
        xs = np.arange(len(ys), dtype=float)
        _draw_series(
            frame,
            ax,
            ds,
            i,
            xs,
            ys,
            2 + order * 0.01,
            show_line=ds.get("showLine", True) is not False,
            fill_default=frame.generation.fills_lines_by_default,
        )


def draw_scatter(frame: Frame, ax: Axes) -> None:
    visible = frame.visible_datasets()
    for order, (i, ds) in enumerate(reversed(visible)):
        xs = np.array(frame.values(ds, "x"), dtype=float)
        ys = np.array(frame.values(ds, "y"), dtype=float)
        _draw_series(
            frame,
            ax,
            ds,
            i,
            xs,
            ys,
            2 + order * 0.01,
            show_line=ds.get("showLine") is True,
            fill_default=False,
        )


def draw_bubbles(frame: Frame, ax: Axes) -> None:
    visible = frame.visible_datasets()
    for order, (i, ds) in enumerate(reversed(visible)):
        xs = np.array(frame.values(ds, "x"), dtype=float)
        ys = np.array(frame.values(ds, "y"), dtype=float)
        radii = np.array(frame.values(ds, "r"), dtype=float)
        mask = np.isfinite(xs) & np.isfinite(ys) & np.isfinite(radii)
        indices = [j for j in range(len(xs)) if mask[j]]
        if not indices:
            continue
        fill = frame.dataset_fill(ds, i)
        border = frame.dataset_border(ds, i)
        ax.scatter(
            xs[indices],
            ys[indices],
            s=[(2 * max(radii[j], 0.0) * PX) ** 2 for j in indices],
            c=[parse_color(per_point(fill, j)) for j in indices],
            edgecolors=[parse_color(per_point(border, j)) for j in indices],
            linewidths=as_float(ds.get("borderWidth"), 1.0) * PX,
            zorder=2 + order * 0.01,
            clip_on=False,
        )
        for j in indices:
            frame.data_label(ax, xs[j], ys[j], raw_point(ds, j), i, j)


# --- Box plots and violins ---


def _box_stats(point: Any) -> dict[str, Any] | None:
    if isinstance(point, dict):
        keys = ("min", "q1", "median", "q3", "max")
        if not all(isinstance(point.get(k), (int, float)) for k in keys):
            return None
        return {
            "whislo": float(point["min"]),
            "q1": float(point["q1"]),
            "med": float(point["median"]),
            "q3": float(point["q3"]),
            "whishi": float(point["max"]),
            "fliers": [float(v) for v in point.get("outliers") or []],
            "samples": None,
        }
    if isinstance(point, (int, float)) and not isinstance(point, bool):
        point = [point]
    if not isinstance(point, list):
        return None
    samples = np.array(
        [float(v) for v in point if isinstance(v, (int, float)) and not isinstance(v, bool)]
    )
    samples = samples[np.isfinite(samples)]
    if not samples.size:
        return None
    stats = dict(boxplot_stats(samples, whis=1.5)[0])
    stats["fliers"] = list(stats["fliers"])
    stats["samples"] = samples
    return stats


def _segment(
    ax: Axes, a0: float, b0: float, a1: float, b1: float, horizontal: bool, **kwargs: Any
) -> None:
    """Line between (category, value) pairs, in either orientation."""
    if horizontal:
        ax.plot([b0, b1], [a0, a1], **kwargs)
    else:
        ax.plot([a0, a1], [b0, b1], **kwargs)


def _draw_box(
    frame: Frame,
    ax: Axes,
    position: float,
    size: float,
    stats: dict[str, Any],
    horizontal: bool,
    fill: Any,
    edge: Any,
    zorder: float,
) -> None:
    q1, q3 = stats["q1"], stats["q3"]
    if horizontal:
        rect = Rectangle((q1, position - size / 2), q3 - q1, size)
    else:
        rect = Rectangle((position - size / 2, q1), size, q3 - q1)
    rect.set_zorder(zorder)
    ax.add_patch(rect)
    frame.style_border(rect, edge, 1)
    apply_fill(frame.fig, ax, rect, fill, frame.width, frame.height)

    line = {"color": parse_color(edge), "linewidth": PX, "zorder": zorder + 0.001}
    half = size / 2
    _segment(ax, position - half, stats["med"], position + half, stats["med"], horizontal, **line)
    _segment(ax, position, stats["whislo"], position, q1, horizontal, **line)
    _segment(ax, position, q3, position, stats["whishi"], horizontal, **line)
    for whisker in (stats["whislo"], stats["whishi"]):
        _segment(ax, position - half / 2, whisker, position + half / 2, whisker, horizontal, **line)

    fliers = stats["fliers"]
    if fliers:
        coords = ([position] * len(fliers), fliers)
        x, y = (coords[1], coords[0]) if horizontal else coords
        ax.scatter(x, y, s=(2 * 2 * PX) ** 2, c=[parse_color(edge)], zorder=zorder + 0.002)


def _draw_violin(
    frame: Frame,
    ax: Axes,
    position: float,
    size: float,
    stats: dict[str, Any],
    horizontal: bool,
    fill: Any,
    edge: Any,
    zorder: float,
) -> None:
    samples = stats["samples"]
    coords = np.linspace(samples.min(), samples.max(), 100)
    density = GaussianKDE(samples, "scott").evaluate(coords)
    half = density / density.max() * size / 2
    if horizontal:
        area = ax.fill_between(coords, position - half, position + half, zorder=zorder)
    else:
        area = ax.fill_betweenx(coords, position - half, position + half, zorder=zorder)
    area.set_edgecolor(parse_color(edge))
    area.set_linewidth(PX)
    apply_fill(frame.fig, ax, area, fill, frame.width, frame.height)
    line = {"color": parse_color(edge), "linewidth": PX, "zorder": zorder + 0.001}
    _segment(
        ax, position - size / 4, stats["med"], position + size / 4, stats["med"], horizontal, **line
    )


def draw_boxes(frame: Frame, ax: Axes, violin: bool) -> None:
    horizontal = frame.horizontal
    visible = frame.visible_datasets()
    groups = max(len(visible), 1)
    slot = CATEGORY_PERCENTAGE / groups
    size = slot * BAR_PERCENTAGE

    for slot_index, (i, ds) in enumerate(visible):
        offset = (slot_index - (groups - 1) / 2) * slot
        fill = frame.dataset_fill(ds, i)
        edge = frame.dataset_border(ds, i)
        for j, point in enumerate(ds.get("data") or []):
            stats = _box_stats(point)
            if stats is None:
                continue
            samples = stats["samples"]
            zorder = 2 + slot_index * 0.01
            args = (
                frame,
                ax,
                j + offset,
                size,
                stats,
                horizontal,
                per_point(fill, j),
                per_point(edge, j),
                zorder,
            )
            if violin and samples is not None and len(np.unique(samples)) > 1:
                _draw_violin(*args)
            else:
                _draw_box(*args)


# --- Axes ---


def style_axes(ax: Axes) -> None:
    ax.set_facecolor("none")
    ax.set_axisbelow(True)
    for side in ("top", "right"):
        ax.spines[side].set_visible(False)
    for side in ("left", "bottom"):
        ax.spines[side].set_color(AXIS_COLOR)
        ax.spines[side].set_linewidth(PX)
    ax.tick_params(
        labelsize=DEFAULT_FONT_SIZE * PX,
        labelcolor=DEFAULT_FONT_COLOR,
        color=GRID_COLOR,
        length=10 * PX,
        width=PX,
    )


def configure_axis(
    frame: Frame,
    ax: Axes,
    name: str,
    *,
    category: bool,
    offset: bool = True,
) -> None:
    view = frame.axis(name)
    axis = ax.xaxis if name == "x" else ax.yaxis
    set_limits = ax.set_xlim if name == "x" else ax.set_ylim

    if category:
        count = frame.category_count
        labels = [str(label) if label is not None else "" for label in frame.labels]
        labels = (labels + [""] * count)[:count]
        axis.set_ticks(list(range(count)))
        axis.set_ticklabels(labels)
        if offset or count < 2:
            low, high = -0.5, count - 0.5
        else:
            low, high = 0.0, float(count - 1)
        if name == "y":
            # First category at the top.
            low, high = high, low
        set_limits(low, high)
    else:
        low, high = ax.get_xlim() if name == "x" else ax.get_ylim()
        if view.begin_at_zero:
            low, high = min(low, 0.0), max(high, 0.0)
        if view.min is not None:
            low = view.min
        if view.max is not None:
            high = view.max
        if low == high:
            high = low + 1.0
        set_limits(low, high)
        axis.set_major_locator(MaxNLocator(nbins="auto", steps=[1, 2, 2.5, 5, 10]))

    if view.grid and view.display:
        ax.grid(True, axis=name, color=GRID_COLOR, linewidth=PX)
    else:
        ax.grid(False, axis=name)

    if not view.ticks:
        if name == "x":
            ax.tick_params(axis="x", labelbottom=False, length=0)
        else:
            ax.tick_params(axis="y", labelleft=False, length=0)

    if view.title:
        set_label = ax.set_xlabel if name == "x" else ax.set_ylabel
        set_label(view.title, fontsize=DEFAULT_FONT_SIZE * PX, color=DEFAULT_FONT_COLOR)

    if not view.display:
        axis.set_visible(False)
        ax.spines["bottom" if name == "x" else "left"].set_visible(False)


# --- Annotations ---


def _annotation_value(frame: Frame, value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if value in frame.labels:
        return float(frame.labels.index(value))
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def draw_annotations(frame: Frame, ax: Axes) -> None:
    config = frame.options.get("annotation")
    if not isinstance(config, dict):
        return
    annotations = config.get("annotations") or []
    if isinstance(annotations, dict):
        annotations = list(annotations.values())

    for annotation in annotations:
        if not isinstance(annotation, dict):
            continue
        color = parse_color(annotation.get("borderColor"), (1.0, 0.0, 0.0, 1.0))
        width = as_float(annotation.get("borderWidth"), 2.0) * PX
        kind = annotation.get("type", "line")

        if kind == "line":
            value = _annotation_value(frame, annotation.get("value"))
            if value is None:
                continue
            scale_id = str(annotation.get("scaleID") or "")
            vertical = annotation.get("mode") == "vertical" or scale_id.startswith("x")
            style = {
                "color": color,
                "linewidth": width,
                "linestyle": line_style(annotation.get("borderDash")),
                "zorder": 5,
            }
            if vertical:
                ax.axvline(value, **style)
            else:
                ax.axhline(value, **style)
            label = annotation.get("label")
            if isinstance(label, dict) and label.get("enabled") and label.get("content"):
                x_low, x_high = ax.get_xlim()
                y_low, y_high = ax.get_ylim()
                if vertical:
                    x, y = value, (y_low + y_high) / 2
                else:
                    x, y = (x_low + x_high) / 2, value
                ax.text(
                    x,
                    y,
                    str(label["content"]),
                    ha="center",
                    va="center",
                    fontsize=font_size(label),
                    color=font_color(label, "#ffffff"),
                    bbox={
                        "boxstyle": "round",
                        "facecolor": parse_color(label.get("backgroundColor"), LABEL_BACKGROUND),
                        "edgecolor": "none",
                    },
                    zorder=6,
                )
        elif kind == "box":
            x_low, x_high = ax.get_xlim()
            y_low, y_high = ax.get_ylim()
            x0 = _annotation_value(frame, annotation.get("xMin"))
            x1 = _annotation_value(frame, annotation.get("xMax"))
            y0 = _annotation_value(frame, annotation.get("yMin"))
            y1 = _annotation_value(frame, annotation.get("yMax"))
            x0 = x_low if x0 is None else x0
            x1 = x_high if x1 is None else x1
            y0 = y_low if y0 is None else y0
            y1 = y_high if y1 is None else y1
            rect = Rectangle((x0, y0), x1 - x0, y1 - y0, zorder=1.5)
            rect.set_facecolor(parse_color(annotation.get("backgroundColor"), (0.0, 0.0, 0.0, 0.1)))
            frame.style_border(rect, annotation.get("borderColor"), annotation.get("borderWidth"))
            ax.add_patch(rect)
        else:
            logger.debug("Skipping unsupported annotation type %s", kind)


# --- Entry point ---

CARTESIAN_DRAWERS: dict[ChartKind, Callable[[Frame, Axes], None]] = {
    ChartKind.BAR: draw_bars,
    ChartKind.HORIZONTAL_BAR: draw_bars,
    ChartKind.LINE: draw_lines,
    ChartKind.SCATTER: draw_scatter,
    ChartKind.BUBBLE: draw_bubbles,
    ChartKind.BOXPLOT: partial(draw_boxes, violin=False),
    ChartKind.HORIZONTAL_BOXPLOT: partial(draw_boxes, violin=False),
    ChartKind.VIOLIN: partial(draw_boxes, violin=True),
    ChartKind.HORIZONTAL_VIOLIN: partial(draw_boxes, violin=True),
}

POINT_KINDS = frozenset({ChartKind.SCATTER, ChartKind.BUBBLE})


def draw_cartesian(frame: Frame, ax: Axes) -> None:
    style_axes(ax)
    CARTESIAN_DRAWERS[frame.kind](frame, ax)
    ax.autoscale_view()

    if frame.kind in POINT_KINDS:
        configure_axis(frame, ax, "x", category=False)
        configure_axis(frame, ax, "y", category=False)
    else:
        category_axis, value_axis = ("y", "x") if frame.horizontal else ("x", "y")
        configure_axis(
            frame, ax, category_axis, category=True, offset=frame.kind != ChartKind.LINE
        )
        configure_axis(frame, ax, value_axis, category=False)

    if "annotation" in frame.plugin_ids:
        draw_annotations(frame, ax)

    frame.add_dataset_legend()
