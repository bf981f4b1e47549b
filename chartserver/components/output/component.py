"""
Output encoder - renders a normalized chart into the requested image format.

Key behaviors:
- PNG renders are offloaded to the worker thread pool
- SVG renders run on the calling thread; element ids are made unique per render
- PDF output is a PNG render wrapped onto one page, both steps off the loop
- Error images use the same format rules so failures show up where the chart would
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.concurrency import run_in_threadpool

from chartserver.adapters.render.error_image import error_png, error_svg
from chartserver.adapters.render.svg import unique_svg
from chartserver.domain.entities import OutputFormat
from chartserver.ports.pdf import PdfWriterPort
from chartserver.ports.renderer import ChartRendererPort

from .models import EncodedImage

logger = logging.getLogger(__name__)


class OutputEncoder:
    def __init__(self, pdf_writer: PdfWriterPort) -> None:
        self._pdf = pdf_writer

    async def encode(
        self,
        renderer: ChartRendererPort,
        chart: dict[str, Any],
        fmt: OutputFormat,
    ) -> EncodedImage:
        """
        Render `chart` with `renderer` and encode it as `fmt`.

        Raises:
            RenderFailure: If the engine cannot draw the chart.
        """
        if fmt == OutputFormat.SVG:
            svg = unique_svg(renderer.render(chart))
            return EncodedImage(svg.encode("utf-8"), fmt.content_type)

        png = await run_in_threadpool(renderer.render, chart)
        if fmt == OutputFormat.PDF:
            pdf = await run_in_threadpool(self._pdf.wrap_png, png)
            return EncodedImage(pdf, fmt.content_type)
        return EncodedImage(png, OutputFormat.PNG.content_type)

    async def encode_error(self, message: str, fmt: OutputFormat) -> EncodedImage:
        """In-band error image for `message` in the requested format."""
        if fmt == OutputFormat.SVG:
            return EncodedImage(error_svg(message).encode("utf-8"), fmt.content_type)
        if fmt == OutputFormat.PDF:
            pdf = await run_in_threadpool(self._pdf.text_page, message)
            return EncodedImage(pdf, fmt.content_type)
        png = await run_in_threadpool(error_png, message)
        return EncodedImage(png, OutputFormat.PNG.content_type)
