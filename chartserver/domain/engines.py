"""
Rendering engine generations and their option dialects.

Chart.js-style configurations come in two dialects. Generation 2 keeps the
legend and title at the top of `options`, lists axes under
`scales.xAxes`/`scales.yAxes` with `ticks` and `gridLines`, and calls the
line curvature `lineTension`. Generations 3 and 4 move legend and title under
`options.plugins`, key axes by id (`scales.x`, `scales.y`), express horizontal
bars through `indexAxis`, and call the curvature `tension`.

The normalizer writes defaults through these objects and the renderer reads
options back through them, so neither needs to know which dialect it holds.
Option sections of the wrong shape read as empty and are replaced on write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from chartserver.domain.charts import BOXPLOT_KINDS, ChartKind


@dataclass(frozen=True)
class AxisView:
    """Dialect-independent view of one axis configuration."""

    display: bool = True
    min: float | None = None
    max: float | None = None
    begin_at_zero: bool = False
    stacked: bool = False
    grid: bool = True
    ticks: bool = True
    title: str | None = None


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _first(value: Any) -> dict[str, Any]:
    if isinstance(value, list) and value:
        return _mapping(value[0])
    return _mapping(value)


def _section(options: dict[str, Any], key: str) -> dict[str, Any]:
    value = options.get(key)
    if not isinstance(value, dict):
        value = {}
        options[key] = value
    return value


@dataclass(frozen=True)
class EngineGeneration(ABC):
    major: int
    default_version: str

    # --- Writers used by the normalizer ---

    def has_scales(self, options: dict[str, Any]) -> bool:
        return bool(options.get("scales"))

    @abstractmethod
    def begin_at_zero_scales(self) -> dict[str, Any]: ...

    @abstractmethod
    def hide_legend(self, options: dict[str, Any]) -> None: ...

    @abstractmethod
    def sparkline_scales(self, options: dict[str, Any], low: float, high: float) -> None: ...

    @abstractmethod
    def progress_bar(self) -> tuple[str, dict[str, Any]]:
        """Return the rewritten chart type and its option defaults."""

    @abstractmethod
    def set_title(self, options: dict[str, Any], text: str) -> None: ...

    @property
    @abstractmethod
    def tension_key(self) -> str: ...

    def default_plugins(self, kind: ChartKind) -> list[dict[str, Any]]:
        return []

    # --- Readers used by the renderer ---

    @abstractmethod
    def legend(self, options: dict[str, Any]) -> dict[str, Any]: ...

    @abstractmethod
    def title(self, options: dict[str, Any]) -> dict[str, Any]: ...

    @abstractmethod
    def axis(self, options: dict[str, Any], axis: str) -> AxisView: ...

    def is_horizontal(self, kind: ChartKind, options: dict[str, Any]) -> bool:
        return kind in (
            ChartKind.HORIZONTAL_BAR,
            ChartKind.HORIZONTAL_BOXPLOT,
            ChartKind.HORIZONTAL_VIOLIN,
        )

    def line_tension(self, dataset: dict[str, Any]) -> float:
        return _number(dataset.get(self.tension_key)) or 0.0

    @property
    def fills_lines_by_default(self) -> bool:
        return False


class _ClassicGeneration(EngineGeneration):
    """Generation 2 dialect."""

    def begin_at_zero_scales(self) -> dict[str, Any]:
        return {"yAxes": [{"ticks": {"beginAtZero": True}}]}

    def hide_legend(self, options: dict[str, Any]) -> None:
        if not isinstance(options.get("legend"), dict) or not options["legend"]:
            options["legend"] = {"display": False}

    def sparkline_scales(self, options: dict[str, Any], low: float, high: float) -> None:
        scales = _section(options, "scales")
        if not scales.get("xAxes"):
            scales["xAxes"] = [{"display": False}]
        if not scales.get("yAxes"):
            scales["yAxes"] = [{"display": False, "ticks": {"min": low, "max": high}}]

    def progress_bar(self) -> tuple[str, dict[str, Any]]:
        return "horizontalBar", {
            "legend": {"display": False},
            "scales": {
                "xAxes": [
                    {
                        "ticks": {"display": False, "beginAtZero": True},
                        "gridLines": {"display": False, "drawTicks": False},
                    }
                ],
                "yAxes": [
                    {
                        "stacked": True,
                        "ticks": {"display": False},
                        "gridLines": {"display": False, "drawTicks": False, "mirror": True},
                    }
                ],
            },
        }

    def set_title(self, options: dict[str, Any], text: str) -> None:
        title = _section(options, "title")
        title["text"] = text
        title["display"] = True

    @property
    def tension_key(self) -> str:
        return "lineTension"

    def default_plugins(self, kind: ChartKind) -> list[dict[str, Any]]:
        plugins: list[dict[str, Any]] = [{"id": "datalabels"}, {"id": "annotation"}]
        if kind == ChartKind.RADIAL_GAUGE:
            plugins.append({"id": "radialGauge"})
        if kind in BOXPLOT_KINDS:
            plugins.append({"id": "boxplot"})
        return plugins

    def legend(self, options: dict[str, Any]) -> dict[str, Any]:
        return _mapping(options.get("legend"))

    def title(self, options: dict[str, Any]) -> dict[str, Any]:
        return _mapping(options.get("title"))

    def axis(self, options: dict[str, Any], axis: str) -> AxisView:
        scales = _mapping(options.get("scales"))
        cfg = _first(scales.get(f"{axis}Axes"))
        ticks = _mapping(cfg.get("ticks"))
        grid = _mapping(cfg.get("gridLines"))
        label = _mapping(cfg.get("scaleLabel"))
        low = _number(ticks.get("min"))
        high = _number(ticks.get("max"))
        return AxisView(
            display=cfg.get("display", True) is not False,
            min=low if low is not None else _number(ticks.get("suggestedMin")),
            max=high if high is not None else _number(ticks.get("suggestedMax")),
            begin_at_zero=bool(ticks.get("beginAtZero")),
            stacked=bool(cfg.get("stacked")),
            grid=grid.get("display", True) is not False,
            ticks=ticks.get("display", True) is not False,
            title=label.get("labelString") if label.get("display") else None,
        )

    @property
    def fills_lines_by_default(self) -> bool:
        return True


class _ModernGeneration(EngineGeneration):
    """Generation 3 and 4 dialect."""

    def begin_at_zero_scales(self) -> dict[str, Any]:
        return {"y": {"beginAtZero": True}}

    def hide_legend(self, options: dict[str, Any]) -> None:
        plugins = _section(options, "plugins")
        if not isinstance(plugins.get("legend"), dict) or not plugins["legend"]:
            plugins["legend"] = {"display": False}

    def sparkline_scales(self, options: dict[str, Any], low: float, high: float) -> None:
        scales = _section(options, "scales")
        if not scales.get("x"):
            scales["x"] = {"display": False}
        if not scales.get("y"):
            scales["y"] = {"display": False, "min": low, "max": high}

    def progress_bar(self) -> tuple[str, dict[str, Any]]:
        return "bar", {
            "indexAxis": "y",
            "plugins": {"legend": {"display": False}},
            "scales": {
                "x": {
                    "beginAtZero": True,
                    "ticks": {"display": False},
                    "grid": {"display": False, "drawTicks": False},
                },
                "y": {
                    "stacked": True,
                    "ticks": {"display": False},
                    "grid": {"display": False, "drawTicks": False},
                },
            },
        }

    def set_title(self, options: dict[str, Any], text: str) -> None:
        title = _section(_section(options, "plugins"), "title")
        title["text"] = text
        title["display"] = True

    @property
    def tension_key(self) -> str:
        return "tension"

    def legend(self, options: dict[str, Any]) -> dict[str, Any]:
        return _mapping(_mapping(options.get("plugins")).get("legend"))

    def title(self, options: dict[str, Any]) -> dict[str, Any]:
        return _mapping(_mapping(options.get("plugins")).get("title"))

    def axis(self, options: dict[str, Any], axis: str) -> AxisView:
        scales = _mapping(options.get("scales"))
        cfg = _mapping(scales.get(axis))
        ticks = _mapping(cfg.get("ticks"))
        grid = _mapping(cfg.get("grid"))
        title = _mapping(cfg.get("title"))
        low = _number(cfg.get("min"))
        high = _number(cfg.get("max"))
        return AxisView(
            display=cfg.get("display", True) is not False,
            min=low if low is not None else _number(cfg.get("suggestedMin")),
            max=high if high is not None else _number(cfg.get("suggestedMax")),
            begin_at_zero=bool(cfg.get("beginAtZero")),
            stacked=bool(cfg.get("stacked")),
            grid=grid.get("display", True) is not False,
            ticks=ticks.get("display", True) is not False,
            title=title.get("text") if title.get("display") else None,
        )

    def is_horizontal(self, kind: ChartKind, options: dict[str, Any]) -> bool:
        vertical_kinds = (ChartKind.BAR, ChartKind.BOXPLOT, ChartKind.VIOLIN)
        if options.get("indexAxis") == "y" and kind in vertical_kinds:
            return True
        return super().is_horizontal(kind, options)


V2 = _ClassicGeneration(major=2, default_version="2.9.4")
V3 = _ModernGeneration(major=3, default_version="3.9.1")
V4 = _ModernGeneration(major=4, default_version="4.4.0")


def select_generation(version: str | None) -> EngineGeneration:
    """Pick the engine generation by version prefix; generation 2 is the default."""
    if version and version.startswith("4"):
        return V4
    if version and version.startswith("3"):
        return V3
    return V2
