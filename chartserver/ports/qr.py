from typing import Protocol


class QrEncoderPort(Protocol):
    def render(
        self,
        text: str,
        *,
        output_format: str = "png",
        size: int = 150,
        margin: int = 4,
        error_correction: str = "M",
        dark: str = "#000000",
        light: str = "#ffffff",
    ) -> bytes:
        """Encode text as a QR code image (PNG or SVG bytes)."""
        ...
