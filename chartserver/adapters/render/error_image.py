"""
In-band error images.

Chart failures are answered with an image in the requested format so that an
<img> tag shows the problem instead of a broken icon.
"""

from __future__ import annotations

import textwrap
from html import escape
from io import BytesIO

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from chartserver.domain.entities import DEFAULT_HEIGHT, DEFAULT_WIDTH

WRAP_COLUMNS = 60
ERROR_FONT_SIZE = 9


def _lines(message: str) -> list[str]:
    lines: list[str] = []
    for paragraph in message.splitlines() or [""]:
        lines.extend(textwrap.wrap(paragraph, WRAP_COLUMNS) or [""])
    return lines


def error_png(message: str, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT) -> bytes:
    fig = Figure(figsize=((width + 0.5) / 100, (height + 0.5) / 100), dpi=100)
    FigureCanvasAgg(fig)
    fig.patch.set_facecolor("white")
    fig.text(
        0.02,
        0.96,
        "\n".join(_lines(f"Chart Error: {message}")),
        ha="left",
        va="top",
        fontsize=ERROR_FONT_SIZE,
        color="#c00",
        family="monospace",
    )
    buf = BytesIO()
    fig.savefig(buf, format="png")
    data = buf.getvalue()
    buf.close()
    return data


def error_svg(message: str, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT) -> str:
    rows = "".join(
        f'<tspan x="10" dy="1.3em">{escape(line)}</tspan>'
        for line in _lines(f"Chart Error: {message}")
    )
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}">'
        f'<rect width="100%" height="100%" fill="#fff"/>'
        f'<text y="10" font-family="monospace" font-size="12" fill="#c00">{rows}</text>'
        f"</svg>"
    )
