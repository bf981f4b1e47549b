"""
Shared drawing state for one render.

A Frame wraps the figure, the normalized chart, and the engine generation,
and answers the questions every drawer asks: which colour does dataset N
use, what are its numeric values, should point M carry a data label. Sizes in
chart configurations are CSS pixels; the figure is laid out at 100 CSS pixels
per inch, so one CSS pixel is PX points at any device pixel ratio.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from chartserver.components.normalizer import format_number
from chartserver.domain.charts import ChartKind, DataLabelContext
from chartserver.domain.engines import AxisView, EngineGeneration

from ._paint import (
    DEFAULT_ELEMENT_COLOR,
    DEFAULT_FONT_COLOR,
    RGBA,
    SCHEME_FILL_ALPHA,
    parse_color,
    per_point,
    scheme_palette,
    with_alpha,
)

PX = 0.72
DEFAULT_FONT_SIZE = 12.0
DEFAULT_LABEL_COLOR = "#666666"


def to_number(point: Any, key: str = "y") -> float:
    """Plotted value of a data point; NaN marks a gap."""
    if isinstance(point, dict):
        point = point.get(key)
    if isinstance(point, bool) or point is None:
        return math.nan
    if isinstance(point, (int, float)):
        return float(point)
    if isinstance(point, str):
        try:
            return float(point)
        except ValueError:
            return math.nan
    return math.nan


def font_size(config: dict[str, Any], default: float = DEFAULT_FONT_SIZE) -> float:
    """Font size in points from either option dialect."""
    size = config.get("fontSize")
    if size is None and isinstance(config.get("font"), dict):
        size = config["font"].get("size")
    try:
        return float(size) * PX if size is not None else default * PX
    except (TypeError, ValueError):
        return default * PX


def font_color(config: dict[str, Any], default: str = DEFAULT_FONT_COLOR) -> RGBA:
    color = parse_color(config.get("fontColor") or config.get("color"), None)
    return color if color is not None else parse_color(default)  # type: ignore[return-value]


@dataclass
class LegendEntry:
    label: str
    fill: Any
    border: Any = None


@dataclass
class Frame:
    fig: Figure
    chart: dict[str, Any]
    kind: ChartKind
    generation: EngineGeneration
    width: int
    height: int
    plugin_ids: frozenset[str]
    legend_entries: list[LegendEntry] = field(default_factory=list)

    # --- Chart accessors ---

    @property
    def options(self) -> dict[str, Any]:
        return self.chart.get("options") or {}

    @property
    def datasets(self) -> list[dict[str, Any]]:
        return self.chart.get("data", {}).get("datasets") or []

    @property
    def labels(self) -> list[Any]:
        labels = self.chart.get("data", {}).get("labels")
        return labels if isinstance(labels, list) else []

    @property
    def category_count(self) -> int:
        longest = max((len(ds.get("data") or []) for ds in self.datasets), default=0)
        return max(len(self.labels), longest)

    @property
    def horizontal(self) -> bool:
        return self.generation.is_horizontal(self.kind, self.options)

    def axis(self, name: str) -> AxisView:
        return self.generation.axis(self.options, name)

    def element(self, name: str) -> dict[str, Any]:
        elements = self.options.get("elements")
        if isinstance(elements, dict) and isinstance(elements.get(name), dict):
            return elements[name]
        return {}

    def plugin_options(self, name: str) -> dict[str, Any]:
        plugins = self.options.get("plugins")
        if isinstance(plugins, dict) and isinstance(plugins.get(name), dict):
            return plugins[name]
        return {}

    def values(self, dataset: dict[str, Any], key: str = "y") -> list[float]:
        return [to_number(p, key) for p in dataset.get("data") or []]

    # --- Colours ---

    def _scheme_color(self, index: int) -> RGBA | None:
        palette = scheme_palette(self.plugin_options("colorschemes").get("scheme"))
        if not palette:
            return None
        return parse_color(palette[index % len(palette)])

    def dataset_fill(self, dataset: dict[str, Any], index: int, fallback: Any = None) -> Any:
        """
        Dataset-level background: a colour, a list of colours, or a descriptor.

        The colour scheme only fills in what the dataset leaves unset; element
        defaults apply after it.
        """
        if dataset.get("backgroundColor") is not None:
            return dataset["backgroundColor"]
        scheme = self._scheme_color(index)
        if scheme is not None:
            return with_alpha(scheme, SCHEME_FILL_ALPHA)
        return fallback if fallback is not None else DEFAULT_ELEMENT_COLOR

    def dataset_border(self, dataset: dict[str, Any], index: int, fallback: Any = None) -> Any:
        if dataset.get("borderColor") is not None:
            return dataset["borderColor"]
        scheme = self._scheme_color(index)
        if scheme is not None:
            return scheme
        return fallback if fallback is not None else DEFAULT_ELEMENT_COLOR

    def point_fills(self, dataset: dict[str, Any], count: int) -> list[Any]:
        """Per-slice backgrounds for round charts."""
        if dataset.get("backgroundColor") is not None:
            return [per_point(dataset["backgroundColor"], i) for i in range(count)]
        fills = []
        for i in range(count):
            scheme = self._scheme_color(i)
            fills.append(scheme if scheme is not None else DEFAULT_ELEMENT_COLOR)
        return fills

    # --- Data labels ---

    def _label_options(self, dataset: dict[str, Any]) -> dict[str, Any] | None:
        if "datalabels" not in self.plugin_ids:
            return None
        merged = dict(self.plugin_options("datalabels"))
        if isinstance(dataset.get("datalabels"), dict):
            merged.update(dataset["datalabels"])
        return merged

    def data_label(
        self,
        ax: Axes,
        x: float,
        y: float,
        value: Any,
        dataset_index: int,
        data_index: int,
    ) -> None:
        """Draw one data label if the data-label step is attached and allows it."""
        dataset = self.datasets[dataset_index]
        config = self._label_options(dataset)
        if config is None:
            return
        context = DataLabelContext(
            dataset_index=dataset_index,
            data_index=data_index,
            chart_type=self.kind.value,
        )
        display = config.get("display", True)
        if callable(display):
            display = display(context)
        if display is False or display is None:
            return

        formatter: Callable[[Any, DataLabelContext], Any] | None = config.get("formatter")
        if isinstance(value, dict):
            value = value.get("y", value.get("x"))
        text = formatter(value, context) if callable(formatter) else format_number(value)
        if text is None or text == "":
            return
        color = parse_color(per_point(config.get("color"), data_index), None)
        ax.text(
            x,
            y,
            str(text),
            ha="center",
            va="center",
            fontsize=font_size(config),
            color=color if color is not None else DEFAULT_LABEL_COLOR,
            zorder=10,
            clip_on=False,
        )

    # --- Border styling ---

    def style_border(
        self, patch: Patch, color: Any, width: Any, default_width: float = 0.0
    ) -> None:
        try:
            line_width = float(width) if width is not None else default_width
        except (TypeError, ValueError):
            line_width = default_width
        patch.set_linewidth(line_width * PX)
        edge = parse_color(color, None)
        patch.set_edgecolor(edge if edge is not None and line_width > 0 else "none")

    # --- Legend ---

    def add_dataset_legend(self) -> None:
        for i, ds in enumerate(self.datasets):
            if ds.get("label") is None:
                continue
            fill = per_point(self.dataset_fill(ds, i), 0)
            border = per_point(self.dataset_border(ds, i), 0)
            self.legend_entries.append(LegendEntry(str(ds["label"]), fill, border))

    def add_label_legend(self, fills: list[Any]) -> None:
        for j, label in enumerate(self.labels):
            if label is None:
                continue
            fill = fills[j] if j < len(fills) else None
            self.legend_entries.append(LegendEntry(str(label), fill, None))

    def visible_datasets(self) -> list[tuple[int, dict[str, Any]]]:
        return [(i, ds) for i, ds in enumerate(self.datasets) if not ds.get("hidden")]


def as_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def padded(values: list[float], count: int) -> np.ndarray:
    return np.array((values + [math.nan] * count)[:count], dtype=float)


def raw_point(dataset: dict[str, Any], index: int) -> Any:
    data = dataset.get("data") or []
    return data[index] if index < len(data) else None


def line_style(dash: Any) -> Any:
    """Matplotlib dash pattern for a `borderDash` list of CSS pixels."""
    if isinstance(dash, list) and dash and all(isinstance(d, (int, float)) for d in dash):
        if sum(dash) > 0:
            return (0, tuple(max(float(d), 0.1) * PX for d in dash))
    return "solid"
