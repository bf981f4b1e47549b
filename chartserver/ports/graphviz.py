from typing import Protocol


class GraphRendererPort(Protocol):
    def render(
        self,
        source: str,
        *,
        engine: str = "dot",
        output_format: str = "svg",
        width: int | None = None,
        height: int | None = None,
    ) -> bytes:
        """Lay out and render a DOT graph."""
        ...
