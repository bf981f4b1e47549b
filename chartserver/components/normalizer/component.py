"""
Chart type normalizer - fills a parsed chart with per-type defaults.

Rules, applied in order:
1. Type aliases are rewritten (`donut` -> `doughnut`).
2. `sparkline` becomes a bare `line` chart with hidden legend and axes and
   Y bounds padded by 5% of the extremes.
3. `progressBar` becomes a horizontal bar chart over a 100-valued track
   dataset (synthesised when only one dataset is given).
4. Device pixel ratio defaults to 2.
5. Cartesian kinds get a begin-at-zero Y axis when no scales are set; they,
   radar and round kinds get the default colour scheme.
6. Line datasets default to straight segments.
7. Data labels default on for pie/doughnut, off elsewhere.
8. Round kinds and radial gauges get per-dataset out-label defaults, and
   suppress default data labels when out-labels are enabled.
9. A background fill step is always appended to the plugin list.
10. `padBelowLegend` adds a legend padding step.

Structural violations raise InvalidSpecification; everything else defaults.
Defaults are written in the option dialect of the engine generation.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from chartserver.domain.charts import ChartKind, DataLabelContext
from chartserver.domain.engines import EngineGeneration
from chartserver.domain.errors import InvalidSpecification

from ._merge import deep_merge

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_PIXEL_RATIO = 2.0
DEFAULT_COLOR_SCHEME = "tableau.Tableau10"

PROGRESS_TRACK_BACKGROUND = "#fff"
# First Tableau 10 colour.
PROGRESS_TRACK_BORDER = "#4e78a7"


def numeric_value(point: Any) -> float | None:
    """Extract the plotted value from a number or an {x, y} point."""
    if isinstance(point, dict):
        point = point.get("y")
    if isinstance(point, bool) or not isinstance(point, (int, float)):
        return None
    return float(point)


def format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _configured(value: Any) -> bool:
    """Whether a plugin option counts as set; empty objects and lists do."""
    return isinstance(value, (dict, list)) or bool(value)


def _series(dataset: dict[str, Any]) -> list[Any]:
    data = dataset.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        raise InvalidSpecification("Dataset data must be a list")
    return data


# --- Derived chart kinds ---


def _rewrite_sparkline(chart: dict[str, Any], generation: EngineGeneration) -> ChartKind:
    datasets = chart["data"]["datasets"]
    if len(datasets) < 1:
        raise InvalidSpecification('"sparkline" requires 1 dataset')

    chart["type"] = ChartKind.LINE.value
    series = _series(datasets[0])
    if not chart["data"].get("labels"):
        chart["data"]["labels"] = [""] * len(series)

    options = chart["options"]
    generation.hide_legend(options)
    if not isinstance(options.get("elements"), dict):
        options["elements"] = {}
    elements = options["elements"]
    elements["line"] = elements.get("line") or {"borderColor": "#000", "borderWidth": 1}
    elements["point"] = elements.get("point") or {"radius": 0}

    values = [v for v in (numeric_value(p) for p in series) if v is not None]
    low, high = (min(values), max(values)) if values else (0.0, 0.0)
    # Pad the bounds so extreme points are not shaved off.
    generation.sparkline_scales(options, low - low * 0.05, high + high * 0.05)
    return ChartKind.LINE


def _progress_formatter(use_percentage: bool) -> Callable[[Any, DataLabelContext], str]:
    def formatter(value: Any, context: DataLabelContext) -> str:
        if use_percentage:
            return f"{format_number(value)}%"
        return format_number(value)

    return formatter


def _foreground_only(context: DataLabelContext) -> bool:
    return context.dataset_index == 0


def _rewrite_progress_bar(chart: dict[str, Any], generation: EngineGeneration) -> ChartKind:
    data = chart["data"]
    datasets = data["datasets"]
    if len(datasets) < 1 or len(datasets) > 2:
        raise InvalidSpecification("progressBar chart requires 1 or 2 datasets")

    foreground = _series(datasets[0])
    use_percentage = False
    if len(datasets) == 1:
        # Implicit denominator, always out of 100.
        use_percentage = True
        datasets.append({"data": [100] * len(foreground)})

    track = datasets[1]
    if len(foreground) != len(_series(track)):
        raise InvalidSpecification("progressBar datasets must have the same size of data")

    data["labels"] = data.get("labels") or chart.get("labels") or list(range(len(foreground)))
    track["backgroundColor"] = track.get("backgroundColor") or PROGRESS_TRACK_BACKGROUND
    track["borderColor"] = track.get("borderColor") or PROGRESS_TRACK_BORDER
    track["borderWidth"] = track.get("borderWidth") or 1

    chart_type, defaults = generation.progress_bar()
    defaults = deep_merge(
        defaults,
        {
            "plugins": {
                "datalabels": {
                    "color": "#fff",
                    "formatter": _progress_formatter(use_percentage),
                    "display": _foreground_only,
                }
            }
        },
    )
    chart["type"] = chart_type
    chart["options"] = deep_merge(defaults, chart["options"])
    return ChartKind.parse(chart_type)


DERIVED_REWRITES: dict[ChartKind, Callable[[dict[str, Any], EngineGeneration], ChartKind]] = {
    ChartKind.SPARKLINE: _rewrite_sparkline,
    ChartKind.PROGRESS_BAR: _rewrite_progress_bar,
}


# --- Per-kind defaults ---


def _add_color_scheme(chart: dict[str, Any], generation: EngineGeneration) -> None:
    options = chart["options"]
    plugins = options.get("plugins")
    if isinstance(plugins, dict) and _configured(plugins.get("colorschemes")):
        return
    chart["options"] = deep_merge(
        options, {"plugins": {"colorschemes": {"scheme": DEFAULT_COLOR_SCHEME}}}
    )


def _cartesian_defaults(chart: dict[str, Any], generation: EngineGeneration) -> None:
    if not generation.has_scales(chart["options"]):
        chart["options"]["scales"] = generation.begin_at_zero_scales()
    _add_color_scheme(chart, generation)


def _line_defaults(chart: dict[str, Any], generation: EngineGeneration) -> None:
    _cartesian_defaults(chart, generation)
    key = generation.tension_key
    for dataset in chart["data"]["datasets"]:
        # Straight segments unless the dataset asks otherwise.
        dataset[key] = dataset.get(key) or 0


def _no_defaults(chart: dict[str, Any], generation: EngineGeneration) -> None:
    return None


def _derived_kind(chart: dict[str, Any], generation: EngineGeneration) -> None:
    raise InvalidSpecification(f'Chart type "{chart.get("type")}" was not rewritten')


KIND_DEFAULTS: dict[ChartKind, Callable[[dict[str, Any], EngineGeneration], None]] = {
    ChartKind.BAR: _cartesian_defaults,
    ChartKind.HORIZONTAL_BAR: _cartesian_defaults,
    ChartKind.LINE: _line_defaults,
    ChartKind.SCATTER: _cartesian_defaults,
    ChartKind.BUBBLE: _cartesian_defaults,
    ChartKind.RADAR: _add_color_scheme,
    ChartKind.PIE: _add_color_scheme,
    ChartKind.DOUGHNUT: _add_color_scheme,
    ChartKind.POLAR_AREA: _add_color_scheme,
    ChartKind.OUTLABELED_PIE: _add_color_scheme,
    ChartKind.OUTLABELED_DOUGHNUT: _add_color_scheme,
    ChartKind.RADIAL_GAUGE: _no_defaults,
    ChartKind.BOXPLOT: _no_defaults,
    ChartKind.HORIZONTAL_BOXPLOT: _no_defaults,
    ChartKind.VIOLIN: _no_defaults,
    ChartKind.HORIZONTAL_VIOLIN: _no_defaults,
    ChartKind.SPARKLINE: _derived_kind,
    ChartKind.PROGRESS_BAR: _derived_kind,
}


# --- Label plugins ---


def _plugin_options(chart: dict[str, Any]) -> dict[str, Any]:
    options = chart["options"]
    if not isinstance(options.get("plugins"), dict):
        options["plugins"] = {}
    return options["plugins"]


def _apply_datalabel_defaults(chart: dict[str, Any], kind: ChartKind) -> bool:
    """Set data-label visibility unless configured; True if defaults were used."""
    plugins = _plugin_options(chart)
    if _configured(plugins.get("datalabels")):
        return False
    plugins["datalabels"] = {"display": kind in (ChartKind.PIE, ChartKind.DOUGHNUT)}
    return True


def _apply_outlabel_defaults(chart: dict[str, Any], using_label_defaults: bool) -> None:
    plugins = _plugin_options(chart)
    user_outlabels = False
    for dataset in chart["data"]["datasets"]:
        if _configured(dataset.get("outlabels")) or _configured(plugins.get("outlabels")):
            user_outlabels = True
        else:
            dataset["outlabels"] = {"display": False}

    if user_outlabels and using_label_defaults:
        # Out-labels replace data labels rather than doubling them up.
        plugins["datalabels"] = {"display": False}


def _plugin_ref(plugin: Any) -> dict[str, Any]:
    if isinstance(plugin, str):
        return {"id": plugin}
    if isinstance(plugin, dict):
        return plugin
    raise InvalidSpecification("Chart plugins must be objects or plugin names")


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _attach_plugins(
    chart: dict[str, Any],
    kind: ChartKind,
    generation: EngineGeneration,
    background_color: str | None,
) -> None:
    plugins = chart.get("plugins")
    if not isinstance(plugins, list):
        plugins = generation.default_plugins(kind)
    plugins = [_plugin_ref(p) for p in plugins]

    plugins.append({"id": "background", "color": background_color})

    pad = _plugin_options(chart).get("padBelowLegend")
    if pad:
        plugins.append({"id": "padBelowLegend", "offset": _to_float(pad)})

    chart["plugins"] = plugins


# --- Entry point ---


def normalize_chart(
    chart: dict[str, Any],
    *,
    generation: EngineGeneration,
    device_pixel_ratio: float | None = None,
    background_color: str | None = None,
) -> dict[str, Any]:
    """
    Normalize a parsed chart in place.

    Args:
        chart: Chart specification from the resolver or the legacy translator.
        generation: Engine generation whose option dialect is used.
        device_pixel_ratio: Requested ratio; 2.0 when falsy.
        background_color: Canvas fill painted before the chart, if any.

    Returns:
        The same chart dict, now fully specified.

    Raises:
        InvalidSpecification: On structural violations.
    """
    if not isinstance(chart, dict):
        raise InvalidSpecification("Chart configuration must be an object")

    kind = ChartKind.parse(chart.get("type"))
    chart["type"] = kind.value

    if not isinstance(chart.get("options"), dict):
        chart["options"] = {}
    if chart.get("data") is None:
        chart["data"] = {}
    if not isinstance(chart["data"], dict):
        raise InvalidSpecification("Chart data must be an object")
    datasets = chart["data"].get("datasets")
    if datasets is None:
        datasets = chart["data"]["datasets"] = []
    if not isinstance(datasets, list) or not all(isinstance(d, dict) for d in datasets):
        raise InvalidSpecification("Chart datasets must be a list of objects")

    rewrite = DERIVED_REWRITES.get(kind)
    if rewrite is not None:
        kind = rewrite(chart, generation)

    chart["options"]["devicePixelRatio"] = device_pixel_ratio or DEFAULT_DEVICE_PIXEL_RATIO

    KIND_DEFAULTS[kind](chart, generation)

    using_label_defaults = _apply_datalabel_defaults(chart, kind)
    if kind.is_round or kind == ChartKind.RADIAL_GAUGE:
        _apply_outlabel_defaults(chart, using_label_defaults)

    _attach_plugins(chart, kind, generation, background_color)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Chart: %s", json.dumps(chart, default=repr))
    return chart
