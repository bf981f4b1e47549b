"""
Graph layout adapter backed by the Graphviz binaries.

DOT source is laid out by the requested engine and piped straight to the
requested output format. Failures from the layout program are reported as
RenderFailure with the Graphviz message attached.
"""

from __future__ import annotations

import logging
import re

import graphviz

from chartserver.domain.errors import RenderFailure

logger = logging.getLogger(__name__)

ENGINES = frozenset(graphviz.ENGINES)
FORMATS = frozenset({"png", "svg"})
POINTS_PER_INCH = 72.0

_SVG_SIZE_RE = re.compile(r'(<svg[^>]*?)\swidth="[^"]*"\sheight="[^"]*"')


class GraphvizRenderer:
    def render(
        self,
        source: str,
        *,
        engine: str = "dot",
        output_format: str = "svg",
        width: int | None = None,
        height: int | None = None,
    ) -> bytes:
        if engine not in ENGINES:
            raise RenderFailure(f"Graph Error: unknown layout engine {engine}")
        if output_format not in FORMATS:
            raise RenderFailure(f"Graph Error: unsupported output format {output_format}")

        graph = graphviz.Source(source, engine=engine)
        try:
            data = graph.pipe(format=output_format)
        except graphviz.ExecutableNotFound as e:
            logger.error("Graphviz executable missing: %s", e)
            raise RenderFailure(f"Graph Error: {e}") from e
        except graphviz.CalledProcessError as e:
            stderr = e.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", "replace")
            message = (stderr or str(e)).strip()
            logger.warning("Graphviz layout failed: %s", message)
            raise RenderFailure(f"Graph Error: {message}") from e

        if output_format == "svg" and width and height:
            return _resize_svg(data.decode("utf-8"), width, height).encode("utf-8")
        return data


def _resize_svg(svg: str, width: int, height: int) -> str:
    """Set the outer SVG size; the viewBox keeps the drawing scaled."""
    return _SVG_SIZE_RE.sub(rf'\1 width="{width}px" height="{height}px"', svg, count=1)
