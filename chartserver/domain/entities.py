from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from chartserver.domain.errors import UnsupportedFormat

DEFAULT_ENGINE_VERSION = "2.9.4"
DEFAULT_WIDTH = 500
DEFAULT_HEIGHT = 300
DEFAULT_QR_SIZE = 150
MAX_QR_SIZE = 3000


def clamp_qr_size(size: int) -> int:
    """Cap a requested QR edge length; non-positive sizes use the default."""
    if size <= 0:
        return DEFAULT_QR_SIZE
    return min(size, MAX_QR_SIZE)


class OutputFormat(str, Enum):
    PNG = "png"
    SVG = "svg"
    PDF = "pdf"

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]

    @classmethod
    def parse(cls, value: str | None) -> OutputFormat:
        """Parse a user-supplied format name, defaulting to PNG."""
        if not value:
            return cls.PNG
        try:
            return cls(value.lower())
        except ValueError:
            raise UnsupportedFormat(f"Unsupported format {value}") from None


_CONTENT_TYPES = {
    OutputFormat.PNG: "image/png",
    OutputFormat.SVG: "image/svg+xml",
    OutputFormat.PDF: "application/pdf",
}


@dataclass(frozen=True)
class RenderRequest:
    """Canvas geometry and output options for one render."""

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    background_color: str | None = None
    device_pixel_ratio: float | None = None
    engine_version: str = DEFAULT_ENGINE_VERSION
    output_format: OutputFormat = OutputFormat.PNG


@dataclass(frozen=True)
class Template:
    """A stored chart configuration, rendered later by identifier."""

    id: UUID
    config: dict[str, Any]
    created_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now
