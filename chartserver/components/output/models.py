from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EncodedImage:
    """Final response body and its media type."""

    content: bytes
    content_type: str
