"""
SVG document post-processing.

Several SVG charts embedded in one page must not share element ids, so every
id defined in a rendered document, and every reference to it, gets a suffix
unique to the render.
"""

from __future__ import annotations

import re
import uuid

_ID_RE = re.compile(r'\bid="([^"]+)"')
_URL_RE = re.compile(r"url\(#([^)]+)\)")
_HREF_RE = re.compile(r'((?:xlink:)?href)="#([^"]+)"')


def unique_svg(svg: bytes | str, suffix: str | None = None) -> str:
    """Rewrite ids and their references with a per-render suffix."""
    text = svg.decode("utf-8") if isinstance(svg, bytes) else svg
    ids = set(_ID_RE.findall(text))
    if not ids:
        return text
    suffix = suffix or uuid.uuid4().hex[:12]

    def rename(name: str) -> str:
        return f"{name}-{suffix}" if name in ids else name

    text = _ID_RE.sub(lambda m: f'id="{rename(m.group(1))}"', text)
    text = _URL_RE.sub(lambda m: f"url(#{rename(m.group(1))})", text)
    return _HREF_RE.sub(lambda m: f'{m.group(1)}="#{rename(m.group(2))}"', text)
