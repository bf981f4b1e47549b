from __future__ import annotations

from typing import Protocol

from chartserver.domain.entities import OutputFormat
from chartserver.ports.renderer import ChartRendererPort

from .models import EngineConfig


class RendererFactory(Protocol):
    def __call__(
        self, width: int, height: int, output_format: OutputFormat, config: EngineConfig
    ) -> ChartRendererPort:
        """Build a renderer handle bound to one canvas and engine."""
        ...
