from typing import Any, Protocol

from chartserver.domain.entities import OutputFormat


class ChartRendererPort(Protocol):
    width: int
    height: int
    output_format: OutputFormat

    def render(self, chart: dict[str, Any]) -> bytes:
        """Render a normalized chart to PNG or SVG bytes."""
        ...
