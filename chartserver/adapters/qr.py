"""
QR code adapter.

The module matrix comes from the `qrcode` package; drawing is done here so PNG
output is exactly `size` pixels square and SVG output is a single path.
"""

from __future__ import annotations

import logging
import re
from io import BytesIO

import numpy as np
import qrcode
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.colors import ListedColormap, to_hex
from matplotlib.figure import Figure
from qrcode.exceptions import DataOverflowError

from chartserver.domain.errors import InvalidSpecification

logger = logging.getLogger(__name__)

ERROR_CORRECTION = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}

MAX_MARGIN = 100

_BARE_HEX = re.compile(r"[0-9a-fA-F]{3,8}")


def _color(value: str) -> str:
    text = value.strip()
    if _BARE_HEX.fullmatch(text):
        text = "#" + text
    if re.fullmatch(r"#[0-9a-fA-F]{3,4}", text):
        text = "#" + "".join(c * 2 for c in text[1:])
    try:
        return to_hex(text.lower(), keep_alpha=len(text) == 9)
    except ValueError:
        raise InvalidSpecification(f"Invalid QR colour {value}") from None


class QrCodeEncoder:
    def _matrix(self, text: str, margin: int, error_correction: str) -> np.ndarray:
        level = ERROR_CORRECTION.get((error_correction or "M").upper())
        if level is None:
            raise InvalidSpecification(f"Invalid error correction level {error_correction}")
        border = min(max(margin, 0), MAX_MARGIN)
        qr = qrcode.QRCode(error_correction=level, box_size=1, border=border)
        qr.add_data(text)
        try:
            qr.make(fit=True)
        except DataOverflowError as e:
            raise InvalidSpecification("QR data is too long") from e
        return np.array(qr.get_matrix(), dtype=float)

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
        if size <= 0:
            raise InvalidSpecification("QR size must be positive")
        matrix = self._matrix(text, margin, error_correction)
        dark_hex, light_hex = _color(dark), _color(light)
        logger.debug("QR matrix %dx%d for %d chars", len(matrix), len(matrix), len(text))
        if output_format == "svg":
            return self._svg(matrix, size, dark_hex, light_hex).encode("utf-8")
        return self._png(matrix, size, dark_hex, light_hex)

    def _png(self, matrix: np.ndarray, size: int, dark: str, light: str) -> bytes:
        fig = Figure(figsize=((size + 0.5) / 100, (size + 0.5) / 100), dpi=100)
        FigureCanvasAgg(fig)
        ax = fig.add_axes((0, 0, 1, 1))
        ax.imshow(
            matrix,
            cmap=ListedColormap([light, dark]),
            vmin=0,
            vmax=1,
            interpolation="nearest",
            aspect="auto",
        )
        ax.set_axis_off()
        buf = BytesIO()
        fig.savefig(buf, format="png")
        data = buf.getvalue()
        buf.close()
        return data

    def _svg(self, matrix: np.ndarray, size: int, dark: str, light: str) -> str:
        count = len(matrix)
        path = "".join(
            f"M{x} {y}h1v1h-1z"
            for y, row in enumerate(matrix)
            for x, cell in enumerate(row)
            if cell
        )
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
            f'viewBox="0 0 {count} {count}" shape-rendering="crispEdges">'
            f'<rect width="100%" height="100%" fill="{light}"/>'
            f'<path fill="{dark}" d="{path}"/>'
            f"</svg>"
        )
