"""PDF wrapping of rendered images, one page per document."""

from __future__ import annotations

import textwrap
from io import BytesIO

import matplotlib.image as mpimg
from matplotlib.backends.backend_pdf import FigureCanvasPdf
from matplotlib.figure import Figure

# A4 portrait in inches.
PAGE_SIZE = (8.27, 11.69)
PAGE_MARGIN = 0.5


class MatplotlibPdfWriter:
    def _save(self, fig: Figure) -> bytes:
        buf = BytesIO()
        fig.savefig(buf, format="pdf", metadata={"CreationDate": None})
        data = buf.getvalue()
        buf.close()
        return data

    def wrap_png(self, png: bytes) -> bytes:
        """Place the image at the top of an A4 page, scaled to fit the margins."""
        image = mpimg.imread(BytesIO(png), format="png")
        pixel_height, pixel_width = image.shape[:2]
        fig = Figure(figsize=PAGE_SIZE)
        FigureCanvasPdf(fig)

        page_w, page_h = PAGE_SIZE
        usable = page_w - 2 * PAGE_MARGIN
        scale = min(usable / pixel_width, (page_h - 2 * PAGE_MARGIN) / pixel_height)
        width, height = pixel_width * scale, pixel_height * scale
        ax = fig.add_axes(
            (
                PAGE_MARGIN / page_w,
                (page_h - PAGE_MARGIN - height) / page_h,
                width / page_w,
                height / page_h,
            )
        )
        ax.imshow(image, interpolation="none", aspect="auto")
        ax.set_axis_off()
        return self._save(fig)

    def text_page(self, message: str) -> bytes:
        fig = Figure(figsize=PAGE_SIZE)
        FigureCanvasPdf(fig)
        fig.text(
            PAGE_MARGIN / PAGE_SIZE[0],
            1 - PAGE_MARGIN / PAGE_SIZE[1],
            "\n".join(textwrap.wrap(message, 80) or [""]),
            ha="left",
            va="top",
            fontsize=10,
            family="monospace",
            color="#c00",
        )
        return self._save(fig)
