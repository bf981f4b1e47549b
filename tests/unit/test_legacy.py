"""
Tests for the legacy image-charts translator and its data decoders.
"""

from __future__ import annotations

import json

import pytest

from chartserver.components.legacy import (
    GraphvizDelegation,
    LegacyChart,
    QrDelegation,
    describe,
    parse_size,
    translate,
)
from chartserver.components.legacy._encoding import decode_data, parse_scaling
from chartserver.components.legacy.component import UNSUPPORTED_MESSAGE, legacy_color
from chartserver.domain.errors import UnsupportedLegacyChartType


def chart_for(**params: str) -> LegacyChart:
    result = translate(params)
    assert isinstance(result, LegacyChart)
    return result


class TestParseSize:
    """`chs` parsing."""

    def test_width_by_height(self) -> None:
        assert parse_size("300x200") == (300, 200)

    def test_square(self) -> None:
        assert parse_size("400") == (400, 400)

    @pytest.mark.parametrize("value", [None, "", "abc", "10xfoo"])
    def test_defaults(self, value: str | None) -> None:
        assert parse_size(value) == (500, 300)


class TestDecodeData:
    """`chd` encodings."""

    def test_text(self) -> None:
        assert decode_data("t:1,2.5|3,4") == ([[1.0, 2.5], [3.0, 4.0]], False)

    def test_text_gaps(self) -> None:
        assert decode_data("t:1,_,-1") == ([[1.0, None, None]], False)

    def test_text_with_series_count(self) -> None:
        assert decode_data("t2:1|2") == ([[1.0], [2.0]], False)

    def test_auto_scaled_text(self) -> None:
        assert decode_data("a:5,6") == ([[5.0, 6.0]], True)

    def test_simple(self) -> None:
        series, auto = decode_data("s:AZaz09_")
        assert series == [[0.0, 25.0, 26.0, 51.0, 52.0, 61.0, None]]
        assert auto is False

    def test_extended(self) -> None:
        series, _ = decode_data("e:AAAB..__,BA")
        assert series == [[0.0, 1.0, 4095.0, None], [64.0]]

    def test_extended_odd_length(self) -> None:
        with pytest.raises(ValueError):
            decode_data("e:AAA")

    def test_simple_invalid_character(self) -> None:
        with pytest.raises(ValueError):
            decode_data("s:A!")

    @pytest.mark.parametrize("value", ["1,2,3", "x:1,2"])
    def test_unknown_encoding(self, value: str) -> None:
        with pytest.raises(ValueError):
            decode_data(value)

    def test_scaling(self) -> None:
        assert parse_scaling("0,100") == (0.0, 100.0)
        assert parse_scaling("a") is None
        assert parse_scaling(None) is None
        assert parse_scaling("5") is None


class TestLegacyColor:
    """RRGGBB[AA] colours."""

    def test_rgb(self) -> None:
        assert legacy_color("FF0000") == "#FF0000"

    def test_rgba(self) -> None:
        assert legacy_color("FF000080") == "rgba(255,0,0,0.502)"


class TestTranslateBars:
    """Bar chart codes."""

    def test_stacked_vertical(self) -> None:
        result = chart_for(cht="bvs", chd="t:10,20,30", chs="400x250")
        chart = result.chart

        assert chart["type"] == "bar"
        assert chart["data"]["datasets"] == [{"data": [10.0, 20.0, 30.0]}]
        assert chart["data"]["labels"] == ["", "", ""]
        assert chart["options"]["scales"]["xAxes"][0]["stacked"] is True
        assert chart["options"]["scales"]["yAxes"][0]["stacked"] is True
        assert chart["options"]["scales"]["yAxes"][0]["ticks"]["beginAtZero"] is True
        assert chart["options"]["legend"] == {"display": False, "position": "top"}
        assert (result.width, result.height) == (400, 250)
        assert result.device_pixel_ratio == 1.0
        assert result.engine_version == "2.9.4"

    def test_grouped_horizontal(self) -> None:
        chart = chart_for(cht="bhg", chd="t:1,2|3,4").chart
        assert chart["type"] == "horizontalBar"
        assert chart["options"]["scales"]["yAxes"][0]["stacked"] is False
        assert len(chart["data"]["datasets"]) == 2

    def test_overlapped(self) -> None:
        scales = chart_for(cht="bvo", chd="t:1|2").chart["options"]["scales"]
        assert scales["xAxes"][0]["stacked"] is True
        assert scales["yAxes"][0]["stacked"] is False

    def test_axes_hidden_unless_listed(self) -> None:
        scales = chart_for(cht="bvg", chd="t:1").chart["options"]["scales"]
        assert scales["xAxes"][0]["display"] is False
        assert scales["yAxes"][0]["ticks"]["display"] is False

    def test_axis_labels_and_range(self) -> None:
        chart = chart_for(
            cht="bvg",
            chd="t:1,2,3",
            chxt="x,y",
            chxl="0:|Jan|Feb|Mar",
            chxr="1,0,100,25",
        ).chart
        y_ticks = chart["options"]["scales"]["yAxes"][0]["ticks"]
        assert chart["data"]["labels"] == ["Jan", "Feb", "Mar"]
        assert chart["options"]["scales"]["xAxes"][0]["display"] is True
        assert y_ticks["max"] == 100.0
        assert y_ticks["stepSize"] == 25.0

    def test_fixed_scaling(self) -> None:
        scales = chart_for(cht="bvg", chd="t:1", chds="0,50").chart["options"]["scales"]
        ticks = scales["yAxes"][0]["ticks"]
        assert (ticks["min"], ticks["max"]) == (0.0, 50.0)

    def test_auto_scaling_skips_zero_baseline(self) -> None:
        ticks = chart_for(cht="bvg", chd="a:1,2").chart["options"]["scales"]["yAxes"][0]["ticks"]
        assert "beginAtZero" not in ticks

    def test_grid_lines(self) -> None:
        scales = chart_for(cht="bvg", chd="t:1", chg="10,20").chart["options"]["scales"]
        assert scales["xAxes"][0]["gridLines"]["display"] is True
        assert scales["yAxes"][0]["gridLines"]["display"] is True


class TestTranslateDecorations:
    """Colours, titles, legends, line styles and fills."""

    def test_series_colors(self) -> None:
        chart = chart_for(cht="bvg", chd="t:1|2", chco="FF0000,00FF00").chart
        datasets = chart["data"]["datasets"]
        assert datasets[0]["backgroundColor"] == "#FF0000"
        assert datasets[1]["borderColor"] == "#00FF00"

    def test_pie_slice_colors(self) -> None:
        chart = chart_for(cht="p", chd="t:1,2,3", chl="a|b|c", chco="FF0000|00FF00|0000FF").chart
        assert chart["type"] == "pie"
        assert chart["data"]["labels"] == ["a", "b", "c"]
        assert chart["data"]["datasets"][0]["backgroundColor"] == ["#FF0000", "#00FF00", "#0000FF"]

    def test_pie_comma_separated_slice_colors(self) -> None:
        chart = chart_for(cht="pc", chd="t:1,2", chco="FF0000,00FF00").chart
        assert chart["data"]["datasets"][0]["backgroundColor"] == ["#FF0000", "#00FF00"]

    def test_title(self) -> None:
        chart = chart_for(cht="bvg", chd="t:1", chtt="Hello+World|Line2", chts="FF0000,18").chart
        title = chart["options"]["title"]
        assert title == {
            "display": True,
            "text": ["Hello World", "Line2"],
            "fontColor": "#FF0000",
            "fontSize": 18.0,
        }

    def test_legend(self) -> None:
        chart = chart_for(cht="lc", chd="t:1|2", chdl="One|Two", chdlp="b").chart
        assert [ds["label"] for ds in chart["data"]["datasets"]] == ["One", "Two"]
        assert chart["options"]["legend"] == {"display": True, "position": "bottom"}

    def test_line_defaults_and_styles(self) -> None:
        dataset = chart_for(cht="lc", chd="t:1,2", chls="3,6,3").chart["data"]["datasets"][0]
        assert dataset["fill"] is False
        assert dataset["pointRadius"] == 0
        assert dataset["borderWidth"] == 3.0
        assert dataset["borderDash"] == [6.0, 3.0]

    def test_margins(self) -> None:
        layout = chart_for(cht="bvg", chd="t:1", chma="1,2,3,4").chart["options"]["layout"]
        assert layout == {"padding": {"left": 1.0, "right": 2.0, "top": 3.0, "bottom": 4.0}}

    def test_background_fill(self) -> None:
        assert chart_for(cht="bvg", chd="t:1", chf="bg,s,EFEFEF").background_color == "#EFEFEF"

    def test_xy_line(self) -> None:
        dataset = chart_for(cht="lxy", chd="t:1,2|4,5").chart["data"]["datasets"][0]
        assert dataset["data"] == [{"x": 1.0, "y": 4.0}, {"x": 2.0, "y": 5.0}]
        assert dataset["showLine"] is True

    def test_scatter(self) -> None:
        chart = chart_for(cht="s", chd="t:1,2|3,_").chart
        assert chart["type"] == "scatter"
        assert chart["data"]["datasets"][0]["data"] == [{"x": 1.0, "y": 3.0}]

    def test_radar_fill(self) -> None:
        assert chart_for(cht="rs", chd="t:1,2,3").chart["data"]["datasets"][0]["fill"] is True
        assert chart_for(cht="r", chd="t:1,2,3").chart["data"]["datasets"][0]["fill"] is False

    def test_doughnut(self) -> None:
        assert chart_for(cht="pd", chd="t:1,2").chart["type"] == "doughnut"


class TestTranslateFailures:
    """Anything untranslatable is unsupported."""

    def test_unknown_code(self) -> None:
        with pytest.raises(UnsupportedLegacyChartType) as exc:
            translate({"cht": "zz", "chd": "t:1"})
        assert str(exc.value) == UNSUPPORTED_MESSAGE

    @pytest.mark.parametrize("chd", ["t:abc", "nonsense", "e:A"])
    def test_malformed_data(self, chd: str) -> None:
        with pytest.raises(UnsupportedLegacyChartType):
            translate({"cht": "bvs", "chd": chd})

    def test_scatter_needs_two_series(self) -> None:
        with pytest.raises(UnsupportedLegacyChartType):
            translate({"cht": "s", "chd": "t:1,2"})


class TestDelegations:
    """Graph and QR codes are handed off."""

    def test_graphviz_defaults(self) -> None:
        result = translate({"cht": "gv", "chl": "digraph{a->b}"})
        assert result == GraphvizDelegation(source="digraph{a->b}", engine="dot")
        assert result.output_format == "svg"
        assert result.width is None

    def test_graphviz_engine_and_size(self) -> None:
        params = {"cht": "gv:neato", "chl": "graph{a--b}", "chs": "200x100", "chof": "png"}
        result = translate(params)
        assert result == GraphvizDelegation(
            source="graph{a--b}", engine="neato", output_format="png", width=200, height=100
        )

    def test_qr(self) -> None:
        result = translate({"cht": "qr", "chl": "hello", "chs": "200x200", "chld": "h|2"})
        assert result == QrDelegation(data="hello", size=200, error_correction="H", margin=2)

    def test_qr_defaults(self) -> None:
        result = translate({"cht": "qr", "chl": "hello"})
        assert result == QrDelegation(data="hello", size=150, error_correction="L", margin=4)


class TestDescribe:
    """Introspection output."""

    def test_json_text(self) -> None:
        chart = chart_for(cht="bvs", chd="t:1,2").chart
        assert json.loads(describe(chart))["type"] == "bar"
