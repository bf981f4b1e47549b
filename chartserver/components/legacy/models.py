from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from chartserver.domain.entities import DEFAULT_ENGINE_VERSION


@dataclass(frozen=True)
class LegacyChart:
    """A legacy request translated into a native chart plus canvas options."""

    chart: dict[str, Any]
    width: int
    height: int
    background_color: str | None = None
    device_pixel_ratio: float = 1.0
    engine_version: str = DEFAULT_ENGINE_VERSION


@dataclass(frozen=True)
class GraphvizDelegation:
    """Legacy `gv` request, rendered by the graph-layout adapter."""

    source: str
    engine: str = "dot"
    output_format: str = "svg"
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class QrDelegation:
    """Legacy `qr` request, rendered by the QR adapter."""

    data: str
    size: int
    error_correction: str = "L"
    margin: int = 4


LegacyResult = LegacyChart | GraphvizDelegation | QrDelegation
