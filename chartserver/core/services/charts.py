"""
ChartService - the chart rendering pipeline.

Ties the components together for one request:
resolve (JSON or safe literal) -> normalize (per-kind defaults) -> pick a
renderer handle (size limits, engine generation) -> encode (png/svg/pdf).

Key behaviors:
- The output format is parsed first, so an unknown format never renders
- Native requests read `c|chart`, `w|width`, `h|height`, `backgroundColor|bkg`,
  `devicePixelRatio`, `v|version`, `encoding` and `f|format`
- Legacy requests render at device pixel ratio 1.0 with the default engine
- Graph (DOT) and QR legacy types are delegated to their adapters
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from starlette.concurrency import run_in_threadpool

from chartserver.components.legacy import (
    GraphvizDelegation,
    LegacyChart,
    QrDelegation,
    describe,
    translate,
)
from chartserver.components.normalizer import DEFAULT_DEVICE_PIXEL_RATIO, normalize_chart
from chartserver.components.output import EncodedImage, OutputEncoder
from chartserver.components.renderers import RendererRegistry
from chartserver.components.resolver import decode_chart_input, resolve_chart
from chartserver.domain.engines import select_generation
from chartserver.domain.entities import (
    DEFAULT_ENGINE_VERSION,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    OutputFormat,
    RenderRequest,
)
from chartserver.domain.errors import InvalidSpecification
from chartserver.ports.graphviz import GraphRendererPort
from chartserver.ports.qr import QrEncoderPort

logger = logging.getLogger(__name__)

MISSING_CHART_MESSAGE = "You are missing variable `c` or `chart`"
INTROSPECTION_FORMAT = "chartjs-config"


def _first(params: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = params.get(name)
        if value is not None and value != "":
            return value
    return None


def _int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number or default


def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


@dataclass(frozen=True)
class NativeChartInput:
    """Raw native render fields, as sent by a client or kept in a template."""

    chart: Any = None
    width: Any = None
    height: Any = None
    background_color: str | None = None
    device_pixel_ratio: Any = None
    version: str | None = None
    encoding: str | None = None
    format: str | None = None

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> NativeChartInput:
        return cls(
            chart=_first(params, "c", "chart"),
            width=_first(params, "w", "width"),
            height=_first(params, "h", "height"),
            background_color=_first(params, "backgroundColor", "bkg"),
            device_pixel_ratio=_first(params, "devicePixelRatio"),
            version=_first(params, "v", "version"),
            encoding=_first(params, "encoding"),
            format=_first(params, "f", "format"),
        )

    def output_format(self) -> OutputFormat:
        """
        Raises:
            UnsupportedFormat: If the format is not png, svg or pdf.
        """
        return OutputFormat.parse(str(self.format) if self.format is not None else None)


@dataclass(frozen=True)
class LegacyOutcome:
    """Legacy render result: an image, or the translated chart as text."""

    image: EncodedImage | None = None
    text: str | None = None


class ChartService:
    def __init__(
        self,
        registry: RendererRegistry,
        encoder: OutputEncoder,
        graph_renderer: GraphRendererPort,
        qr_encoder: QrEncoderPort,
        default_width: int = DEFAULT_WIDTH,
        default_height: int = DEFAULT_HEIGHT,
        default_version: str = DEFAULT_ENGINE_VERSION,
        default_device_pixel_ratio: float | None = None,
    ) -> None:
        self.registry = registry
        self.encoder = encoder
        self.graph_renderer = graph_renderer
        self.qr_encoder = qr_encoder
        self.default_width = default_width
        self.default_height = default_height
        self.default_version = default_version
        self.default_device_pixel_ratio = default_device_pixel_ratio

    def build_request(self, data: NativeChartInput) -> RenderRequest:
        return RenderRequest(
            width=_int(data.width, self.default_width),
            height=_int(data.height, self.default_height),
            background_color=data.background_color,
            device_pixel_ratio=_float(data.device_pixel_ratio) or self.default_device_pixel_ratio,
            engine_version=str(data.version) if data.version else self.default_version,
            output_format=data.output_format(),
        )

    async def render(self, chart: Any, request: RenderRequest) -> EncodedImage:
        """
        Render a resolved or raw chart for a render request.

        Raises:
            InvalidSpecification: If the chart is missing, unsafe or malformed.
            SizeLimitExceeded: If the canvas is above the configured maximum.
            RenderFailure: If the engine cannot draw the chart.
        """
        if chart is None or chart == "":
            raise InvalidSpecification(MISSING_CHART_MESSAGE)

        renderer = self.registry.get_renderer(
            request.width,
            request.height,
            request.engine_version,
            request.output_format,
            request.device_pixel_ratio or DEFAULT_DEVICE_PIXEL_RATIO,
        )
        resolved = resolve_chart(chart, width=request.width, height=request.height)
        normalize_chart(
            resolved,
            generation=select_generation(request.engine_version),
            device_pixel_ratio=request.device_pixel_ratio,
            background_color=request.background_color,
        )
        return await self.encoder.encode(renderer, resolved, request.output_format)

    async def render_native(self, data: NativeChartInput) -> EncodedImage:
        request = self.build_request(data)
        if data.chart is None or data.chart == "":
            raise InvalidSpecification(MISSING_CHART_MESSAGE)
        chart = decode_chart_input(data.chart, data.encoding)
        return await self.render(chart, request)

    async def render_legacy(self, params: Mapping[str, str]) -> LegacyOutcome:
        """
        Render a legacy image-charts request.

        Raises:
            UnsupportedLegacyChartType: If the type code cannot be translated.
            RenderFailure: If a delegated graph cannot be laid out.
        """
        result = translate(params)
        if isinstance(result, GraphvizDelegation):
            return LegacyOutcome(image=await self._render_graph(result))
        if isinstance(result, QrDelegation):
            return LegacyOutcome(image=await self._render_qr(result))
        assert isinstance(result, LegacyChart)

        if params.get("format") == INTROSPECTION_FORMAT:
            return LegacyOutcome(text=describe(result.chart))

        request = RenderRequest(
            width=result.width,
            height=result.height,
            background_color=result.background_color,
            device_pixel_ratio=result.device_pixel_ratio,
            engine_version=result.engine_version,
            output_format=OutputFormat.PNG,
        )
        return LegacyOutcome(image=await self.render(result.chart, request))

    async def _render_graph(self, graph: GraphvizDelegation) -> EncodedImage:
        fmt = OutputFormat.SVG if graph.output_format == "svg" else OutputFormat.PNG
        content = await run_in_threadpool(
            lambda: self.graph_renderer.render(
                graph.source,
                engine=graph.engine,
                output_format=fmt.value,
                width=graph.width,
                height=graph.height,
            )
        )
        return EncodedImage(content, fmt.content_type)

    async def _render_qr(self, qr: QrDelegation) -> EncodedImage:
        content = await run_in_threadpool(
            lambda: self.qr_encoder.render(
                qr.data,
                output_format="png",
                size=qr.size,
                margin=qr.margin,
                error_correction=qr.error_correction,
            )
        )
        return EncodedImage(content, OutputFormat.PNG.content_type)

    async def render_qr(
        self,
        text: str,
        *,
        output_format: str = "png",
        size: int = 150,
        margin: int = 4,
        error_correction: str = "M",
        dark: str = "000",
        light: str = "fff",
    ) -> EncodedImage:
        fmt = OutputFormat.SVG if output_format == "svg" else OutputFormat.PNG
        content = await run_in_threadpool(
            lambda: self.qr_encoder.render(
                text,
                output_format=fmt.value,
                size=size,
                margin=margin,
                error_correction=error_correction,
                dark=dark,
                light=light,
            )
        )
        return EncodedImage(content, fmt.content_type)

    async def error_image(self, message: str, fmt: OutputFormat) -> EncodedImage:
        return await self.encoder.encode_error(message, fmt)
