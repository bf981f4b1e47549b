from typing import Protocol


class PdfWriterPort(Protocol):
    def wrap_png(self, png: bytes) -> bytes:
        """Place a PNG image on a single PDF page."""
        ...

    def text_page(self, message: str) -> bytes:
        """Single PDF page showing a message."""
        ...
