"""
Tests for the matplotlib rendering engine.

Charts go through the normalizer first, the same way the service feeds them.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

import pytest
from matplotlib.colors import to_rgba

from chartserver.adapters.render._frame import PX, line_style
from chartserver.adapters.render._paint import (
    DEFAULT_ELEMENT_COLOR,
    TRANSPARENT,
    parse_color,
    per_point,
)
from chartserver.adapters.render.mpl_renderer import MatplotlibChartRenderer
from chartserver.components.normalizer import normalize_chart
from chartserver.components.renderers import EngineConfig
from chartserver.domain.entities import OutputFormat
from chartserver.domain.errors import RenderFailure

PngSize = Callable[[bytes], tuple[int, int]]


def prepared(
    chart: dict[str, Any],
    version: str | None = None,
    ratio: float = 1.0,
    background: str | None = None,
) -> dict[str, Any]:
    generation = EngineConfig.for_version(version).generation
    return normalize_chart(
        copy.deepcopy(chart),
        generation=generation,
        device_pixel_ratio=ratio,
        background_color=background,
    )


def renderer(
    width: int = 200,
    height: int = 100,
    fmt: OutputFormat = OutputFormat.PNG,
    version: str | None = None,
) -> MatplotlibChartRenderer:
    return MatplotlibChartRenderer(width, height, fmt, EngineConfig.for_version(version))


def bar_chart(**dataset: Any) -> dict[str, Any]:
    return {
        "type": "bar",
        "data": {"labels": ["a", "b", "c"], "datasets": [{"data": [10, 20, 30], **dataset}]},
    }


SAMPLES: dict[str, dict[str, Any]] = {
    "bar": bar_chart(label="Sales"),
    "horizontalBar": {"type": "horizontalBar", "data": {"datasets": [{"data": [1, -2, 3]}]}},
    "stacked": {
        "type": "bar",
        "data": {"labels": [1, 2], "datasets": [{"data": [1, 2]}, {"data": [3, 4]}]},
        "options": {"scales": {"xAxes": [{"stacked": True}], "yAxes": [{"stacked": True}]}},
    },
    "line": {
        "type": "line",
        "data": {
            "labels": ["a", "b", "c", "d"],
            "datasets": [{"data": [1, None, 3, 2], "lineTension": 0.4, "borderDash": [5, 5]}],
        },
    },
    "scatter": {"type": "scatter", "data": {"datasets": [{"data": [{"x": 1, "y": 2}]}]}},
    "bubble": {"type": "bubble", "data": {"datasets": [{"data": [{"x": 1, "y": 2, "r": 5}]}]}},
    "radar": {
        "type": "radar",
        "data": {"labels": ["a", "b", "c"], "datasets": [{"data": [1, 2, 3]}]},
    },
    "pie": {"type": "pie", "data": {"labels": ["a", "b"], "datasets": [{"data": [1, 2]}]}},
    "doughnut": {"type": "doughnut", "data": {"datasets": [{"data": [3, 4]}]}},
    "polarArea": {"type": "polarArea", "data": {"datasets": [{"data": [3, 4, 5]}]}},
    "outlabeledPie": {
        "type": "outlabeledPie",
        "data": {"labels": ["x", "y"], "datasets": [{"data": [1, 3]}]},
    },
    "radialGauge": {"type": "radialGauge", "data": {"datasets": [{"data": [70]}]}},
    "boxplot": {
        "type": "boxplot",
        "data": {"labels": ["a"], "datasets": [{"data": [[1, 2, 3, 4, 5, 20]]}]},
    },
    "violin": {
        "type": "violin",
        "data": {"labels": ["a"], "datasets": [{"data": [[1, 2, 2, 3, 4]]}]},
    },
    "sparkline": {"type": "sparkline", "data": {"datasets": [{"data": [5, 1, 8, 3]}]}},
    "progressBar": {"type": "progressBar", "data": {"datasets": [{"data": [40]}]}},
    "empty": {"type": "bar"},
}


class TestOutputSize:
    """Canvas pixels follow the device pixel ratio exactly."""

    def test_png_at_ratio_one(self, png_size: PngSize) -> None:
        data = renderer(200, 100).render(prepared(bar_chart()))
        assert png_size(data) == (200, 100)

    def test_png_at_ratio_two(self, png_size: PngSize) -> None:
        data = renderer(200, 100).render(prepared(bar_chart(), ratio=2.0))
        assert png_size(data) == (400, 200)

    def test_odd_size(self, png_size: PngSize) -> None:
        data = renderer(333, 77).render(prepared(bar_chart(), ratio=1.5))
        assert png_size(data) == (500, 116)

    def test_svg_document(self) -> None:
        data = renderer(fmt=OutputFormat.SVG).render(prepared(bar_chart()))
        assert b"<svg" in data
        assert b"<dc:date>" not in data


class TestChartKinds:
    """Every kind renders through the engine."""

    @pytest.mark.parametrize("name", sorted(SAMPLES))
    def test_renders(self, name: str, png_size: PngSize) -> None:
        chart = prepared(SAMPLES[name])
        assert png_size(renderer().render(chart)) == (200, 100)

    @pytest.mark.parametrize("kind", ["radialGauge", "boxplot"])
    def test_plugin_kinds_need_plugin(self, kind: str) -> None:
        chart = prepared(SAMPLES[kind], version="3")
        with pytest.raises(RenderFailure, match="is not a chart type"):
            renderer(version="3").render(chart)

    def test_plugin_kind_with_explicit_reference(self, png_size: PngSize) -> None:
        chart = dict(SAMPLES["radialGauge"], plugins=["radialGauge"])
        data = renderer(version="4").render(prepared(chart, version="4"))
        assert png_size(data) == (200, 100)


class TestFigure:
    """Figure contents for common options."""

    def test_transparent_background_by_default(self) -> None:
        fig = renderer().build_figure(prepared(bar_chart()))
        assert fig.patch.get_facecolor() == TRANSPARENT

    def test_background_color(self) -> None:
        fig = renderer().build_figure(prepared(bar_chart(), background="#ff0000"))
        assert fig.patch.get_facecolor() == (1.0, 0.0, 0.0, 1.0)

    def test_title_classic(self) -> None:
        chart = bar_chart()
        chart["options"] = {"title": {"display": True, "text": ["Two", "Lines"]}}
        fig = renderer().build_figure(prepared(chart))
        assert fig.get_suptitle() == "Two\nLines"

    def test_title_modern(self) -> None:
        chart = bar_chart()
        chart["options"] = {"plugins": {"title": {"display": True, "text": "Hello"}}}
        fig = renderer(version="4").build_figure(prepared(chart, version="4"))
        assert fig.get_suptitle() == "Hello"

    def test_hidden_title(self) -> None:
        chart = bar_chart()
        chart["options"] = {"title": {"display": False, "text": "Hidden"}}
        assert renderer().build_figure(prepared(chart)).get_suptitle() == ""

    def test_legend_from_dataset_labels(self) -> None:
        fig = renderer().build_figure(prepared(bar_chart(label="Sales")))
        assert [t.get_text() for t in fig.legends[0].get_texts()] == ["Sales"]

    def test_legend_hidden(self) -> None:
        chart = bar_chart(label="Sales")
        chart["options"] = {"legend": {"display": False}}
        assert renderer().build_figure(prepared(chart)).legends == []

    def test_data_labels(self) -> None:
        chart = bar_chart()
        chart["options"] = {"plugins": {"datalabels": {"display": True}}}
        fig = renderer().build_figure(prepared(chart))
        assert "20" in [t.get_text() for t in fig.axes[0].texts]

    def test_no_data_labels_by_default_for_bars(self) -> None:
        fig = renderer().build_figure(prepared(bar_chart()))
        assert len(fig.axes[0].texts) == 0

    def test_solid_bar_colour(self) -> None:
        fig = renderer().build_figure(prepared(bar_chart(backgroundColor="rgba(255,0,0,0.5)")))
        bars = fig.axes[0].patches
        assert len(bars) == 3
        assert bars[0].get_facecolor() == (1.0, 0.0, 0.0, 0.5)

    def test_gradient_fill(self) -> None:
        fill = {
            "kind": "linearGradient",
            "stops": [[0, "red"], [1, "blue"]],
            "coords": [0, 0, 200, 0],
        }
        fig = renderer().build_figure(prepared(bar_chart(backgroundColor=fill)))
        assert len(fig.axes[0].images) == 3

    def test_pattern_fill(self) -> None:
        fill = {
            "kind": "pattern",
            "shape": "diagonal",
            "backgroundColor": "#00ff00",
            "patternColor": None,
            "size": 20,
        }
        fig = renderer().build_figure(prepared(bar_chart(backgroundColor=fill)))
        bar = fig.axes[0].patches[0]
        assert bar.get_hatch() == "//"
        assert bar.get_facecolor() == (0.0, 1.0, 0.0, 1.0)


class TestColors:
    """CSS colour parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("#f00", (1.0, 0.0, 0.0, 1.0)),
            ("#ff000000", (1.0, 0.0, 0.0, 0.0)),
            ("00ff00", (0.0, 1.0, 0.0, 1.0)),
            ("rgb(0, 0, 255)", (0.0, 0.0, 1.0, 1.0)),
            ("rgba(255,0,0,0.5)", (1.0, 0.0, 0.0, 0.5)),
            ("Red", (1.0, 0.0, 0.0, 1.0)),
            ("transparent", TRANSPARENT),
        ],
    )
    def test_parse(self, value: str, expected: tuple[float, ...]) -> None:
        assert parse_color(value) == pytest.approx(expected)

    def test_hsl(self) -> None:
        assert parse_color("hsl(120, 100%, 50%)") == pytest.approx((0.0, 1.0, 0.0, 1.0))

    @pytest.mark.parametrize("value", ["notacolor", "", None, 12, "rgb(1,2)"])
    def test_invalid_falls_back(self, value: Any) -> None:
        assert parse_color(value) == DEFAULT_ELEMENT_COLOR
        assert parse_color(value, None) is None

    def test_descriptor_solid(self) -> None:
        gradient = {"kind": "linearGradient", "stops": [[0, "#0000ff"], [1, "red"]]}
        assert parse_color(gradient) == to_rgba("#0000ff")

    def test_per_point(self) -> None:
        assert per_point(["a", "b"], 3) == "b"
        assert per_point("a", 7) == "a"
        assert per_point([], 0) is None

    def test_line_style(self) -> None:
        assert line_style([5, 5]) == (0, (5 * PX, 5 * PX))
        assert line_style([]) == "solid"
        assert line_style(None) == "solid"
        assert line_style([0, 0]) == "solid"
