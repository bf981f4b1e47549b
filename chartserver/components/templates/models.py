"""
Templates component - input and output models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CreateTemplateInput:
    """Native render fields submitted to the create endpoint."""

    chart: Any
    width: Any = None
    height: Any = None
    background_color: str | None = None
    device_pixel_ratio: Any = None
    version: str | None = None
    encoding: str = "url"
    format: str = "png"
    never_expire: bool = False

    def to_config(self) -> dict[str, Any]:
        return {
            "chart": self.chart,
            "width": self.width,
            "height": self.height,
            "backgroundColor": self.background_color,
            "devicePixelRatio": self.device_pixel_ratio,
            "version": self.version,
            "encoding": self.encoding,
            "format": (self.format or "png").lower(),
        }
