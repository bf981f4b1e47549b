"""
Matplotlib rendering engine for Chart.js-style chart configurations.

A renderer is bound to one canvas size, engine generation and output format
and is shared between threads. Every render builds its own Figure on an Agg
canvas, so concurrent renders never share matplotlib state and pyplot is
never touched.

Canvas sizes are CSS pixels. The figure is laid out at 100 CSS pixels per
inch and rasterised at 100 * devicePixelRatio dpi, so a 500x300 chart at
ratio 2 produces exactly 1000x600 pixels.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from io import BytesIO
from typing import Any

from matplotlib.axes import Axes
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from chartserver.components.renderers.models import EngineConfig
from chartserver.domain.charts import BOXPLOT_KINDS, ChartKind
from chartserver.domain.engines import EngineGeneration
from chartserver.domain.entities import OutputFormat
from chartserver.domain.errors import ChartError, RenderFailure

from ._cartesian import draw_cartesian
from ._frame import PX, Frame, as_float, font_color, font_size
from ._paint import DEFAULT_ELEMENT_COLOR, TRANSPARENT, parse_color
from ._radial import draw_pie, draw_polar_area, draw_radar, draw_radial_gauge

logger = logging.getLogger(__name__)

CSS_PIXELS_PER_INCH = 100.0
LEGEND_BOX_WIDTH = 40.0

LEGEND_LOCATIONS = {
    "top": "outside upper center",
    "bottom": "outside lower center",
    "left": "outside center left",
    "right": "outside center right",
}

DRAWERS: dict[ChartKind, Callable[[Frame, Axes], None]] = {
    ChartKind.BAR: draw_cartesian,
    ChartKind.HORIZONTAL_BAR: draw_cartesian,
    ChartKind.LINE: draw_cartesian,
    ChartKind.SCATTER: draw_cartesian,
    ChartKind.BUBBLE: draw_cartesian,
    ChartKind.BOXPLOT: draw_cartesian,
    ChartKind.HORIZONTAL_BOXPLOT: draw_cartesian,
    ChartKind.VIOLIN: draw_cartesian,
    ChartKind.HORIZONTAL_VIOLIN: draw_cartesian,
    ChartKind.PIE: draw_pie,
    ChartKind.DOUGHNUT: draw_pie,
    ChartKind.OUTLABELED_PIE: draw_pie,
    ChartKind.OUTLABELED_DOUGHNUT: draw_pie,
    ChartKind.POLAR_AREA: draw_polar_area,
    ChartKind.RADAR: draw_radar,
    ChartKind.RADIAL_GAUGE: draw_radial_gauge,
}

POLAR_KINDS = frozenset({ChartKind.RADAR, ChartKind.POLAR_AREA})

# Chart kinds supplied by a plugin; without it the engine does not know the type.
REQUIRED_PLUGINS = {
    ChartKind.RADIAL_GAUGE: "radialGauge",
    **{kind: "boxplot" for kind in BOXPLOT_KINDS},
}

RENDER_ERRORS = (
    AttributeError,
    TypeError,
    ValueError,
    KeyError,
    IndexError,
    ZeroDivisionError,
    RecursionError,
)


def _plugin_refs(chart: dict[str, Any]) -> list[dict[str, Any]]:
    return [p for p in chart.get("plugins") or [] if isinstance(p, dict)]


def canvas_pixels(css: int, ratio: float) -> int:
    return max(int(round(css * ratio)), 1)


class MatplotlibChartRenderer:
    def __init__(
        self, width: int, height: int, output_format: OutputFormat, config: EngineConfig
    ) -> None:
        self.width = width
        self.height = height
        self.output_format = output_format
        self.config = config

    @property
    def generation(self) -> EngineGeneration:
        return self.config.generation

    def render(self, chart: dict[str, Any]) -> bytes:
        """
        Render a normalized chart.

        Returns SVG bytes for SVG handles and PNG bytes otherwise (PDF output
        wraps the PNG).

        Raises:
            RenderFailure: If the engine cannot draw the chart.
        """
        try:
            fig = self.build_figure(chart)
            return self._save(fig)
        except ChartError:
            raise
        except RENDER_ERRORS as e:
            logger.warning("Chart render failed: %s", e)
            raise RenderFailure(f"Unable to render chart: {e}") from e

    # --- Figure construction ---

    def build_figure(self, chart: dict[str, Any]) -> Figure:
        kind = ChartKind.parse(chart.get("type"))
        drawer = DRAWERS.get(kind)
        if drawer is None:
            raise RenderFailure(f'"{kind.value}" is not a chart type.')

        refs = _plugin_refs(chart)
        plugin_ids = frozenset(str(p.get("id")) for p in refs) & self.config.features
        required = REQUIRED_PLUGINS.get(kind)
        if required is not None and required not in plugin_ids:
            raise RenderFailure(f'"{kind.value}" is not a chart type.')

        options = chart.get("options") or {}
        ratio = as_float(options.get("devicePixelRatio"), 1.0)
        if ratio <= 0:
            ratio = 1.0
        dpi = CSS_PIXELS_PER_INCH * ratio
        # Agg truncates the canvas size, so aim half a pixel past the target.
        fig = Figure(
            figsize=(
                (canvas_pixels(self.width, ratio) + 0.5) / dpi,
                (canvas_pixels(self.height, ratio) + 0.5) / dpi,
            ),
            dpi=dpi,
            layout="constrained",
        )
        FigureCanvasAgg(fig)
        fig.patch.set_facecolor(self._background(refs, plugin_ids))

        ax = fig.add_subplot(projection="polar" if kind in POLAR_KINDS else None)
        frame = Frame(
            fig=fig,
            chart=chart,
            kind=kind,
            generation=self.generation,
            width=self.width,
            height=self.height,
            plugin_ids=plugin_ids,
        )
        drawer(frame, ax)

        self._title(frame)
        self._legend(frame)
        self._layout(frame, refs)
        return fig

    def _background(self, refs: list[dict[str, Any]], plugin_ids: frozenset[str]) -> Any:
        if "background" not in plugin_ids:
            return TRANSPARENT
        for ref in refs:
            if ref.get("id") == "background" and ref.get("color"):
                return parse_color(ref["color"], TRANSPARENT)
        return TRANSPARENT

    def _title(self, frame: Frame) -> None:
        title = frame.generation.title(frame.options)
        text = title.get("text")
        if not title.get("display") or not text:
            return
        if isinstance(text, list):
            text = "\n".join(str(line) for line in text)
        frame.fig.suptitle(
            str(text),
            fontsize=font_size(title),
            color=font_color(title),
            fontweight="bold",
        )

    def _legend(self, frame: Frame) -> None:
        legend = frame.generation.legend(frame.options)
        if legend.get("display", True) is False or not frame.legend_entries:
            return
        position = legend.get("position", "top")
        labels = legend.get("labels") if isinstance(legend.get("labels"), dict) else {}
        size = font_size(labels)
        handles = [
            Patch(
                facecolor=parse_color(entry.fill, DEFAULT_ELEMENT_COLOR),
                edgecolor=parse_color(entry.border, None) or "none",
                linewidth=PX,
            )
            for entry in frame.legend_entries
        ]
        box_width = as_float(labels.get("boxWidth"), LEGEND_BOX_WIDTH) * PX
        frame.fig.legend(
            handles=handles,
            labels=[entry.label for entry in frame.legend_entries],
            loc=LEGEND_LOCATIONS.get(position, LEGEND_LOCATIONS["top"]),
            ncols=len(handles) if position in ("top", "bottom") else 1,
            frameon=False,
            fontsize=size,
            labelcolor=font_color(labels),
            handlelength=box_width / size if size else 2.0,
        )

    def _layout(self, frame: Frame, refs: list[dict[str, Any]]) -> None:
        engine = frame.fig.get_layout_engine()
        if engine is None:
            return
        if "padBelowLegend" in frame.plugin_ids:
            for ref in refs:
                if ref.get("id") == "padBelowLegend":
                    offset = max(as_float(ref.get("offset"), 0.0), 0.0)
                    engine.set(h_pad=offset / CSS_PIXELS_PER_INCH)

        layout = frame.options.get("layout")
        padding = layout.get("padding") if isinstance(layout, dict) else None
        if padding is None:
            return
        if isinstance(padding, dict):
            left, right, top, bottom = (
                as_float(padding.get(side), 0.0) for side in ("left", "right", "top", "bottom")
            )
        else:
            left = right = top = bottom = as_float(padding, 0.0)
        width = 1.0 - (left + right) / frame.width
        height = 1.0 - (top + bottom) / frame.height
        if width > 0 and height > 0:
            engine.set(rect=(left / frame.width, bottom / frame.height, width, height))

    # --- Output ---

    def _save(self, fig: Figure) -> bytes:
        buf = BytesIO()
        if self.output_format == OutputFormat.SVG:
            fig.savefig(buf, format="svg", facecolor=fig.get_facecolor(), metadata={"Date": None})
        else:
            fig.savefig(buf, format="png", dpi=fig.dpi, facecolor=fig.get_facecolor())
        data = buf.getvalue()
        buf.close()
        return data
