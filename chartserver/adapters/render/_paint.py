"""
Colour parsing, palettes, and fill painting for the matplotlib renderer.

Chart colours arrive as CSS strings (`#rgb`, `#rrggbbaa`, `rgb()`, `rgba()`,
`hsl()`, `hsla()`, named colours), as per-point lists of those, or as fill
descriptors produced by the literal parser:

    {"kind": "linearGradient", "stops": [[offset, color], ...], "coords": [x0, y0, x1, y1]}
    {"kind": "pattern", "shape": str, "backgroundColor": ..., "patternColor": ..., "size": n}

Gradient coordinates are in canvas pixels, so gradients are painted across the
whole canvas and clipped to each patch, the same way a canvas fill style works.
Patterns map onto matplotlib hatches.
"""

from __future__ import annotations

import colorsys
import re
from typing import Any

import matplotlib
import numpy as np
from matplotlib.axes import Axes
from matplotlib.collections import Collection
from matplotlib.colors import LinearSegmentedColormap, to_hex, to_rgba
from matplotlib.figure import Figure
from matplotlib.image import AxesImage
from matplotlib.patches import Patch
from matplotlib.path import Path

RGBA = tuple[float, float, float, float]

TRANSPARENT: RGBA = (0.0, 0.0, 0.0, 0.0)
# Neutral colour used when no colour scheme applies.
DEFAULT_ELEMENT_COLOR: RGBA = (0.0, 0.0, 0.0, 0.1)
DEFAULT_FONT_COLOR = "#666666"
SCHEME_FILL_ALPHA = 0.5

TABLEAU_10 = (
    "#4E79A7",
    "#F28E2B",
    "#E15759",
    "#76B7B2",
    "#59A14F",
    "#EDC948",
    "#B07AA1",
    "#FF9DA7",
    "#9C755F",
    "#BAB0AC",
)

_FUNC_RE = re.compile(r"^(rgba?|hsla?)\s*\((.*)\)$", re.IGNORECASE)

PATTERN_HATCHES = {
    "plus": "+",
    "cross": "x",
    "dash": "-",
    "cross-dash": "+-",
    "dot": ".",
    "dot-dash": ".-",
    "disc": "o",
    "ring": "O",
    "line": "-",
    "line-vertical": "|",
    "weave": "x",
    "zigzag": "/\\",
    "zigzag-vertical": "|\\",
    "diagonal": "/",
    "diagonal-right-left": "\\",
    "square": "+",
    "box": "+",
    "triangle": "*",
    "triangle-inverted": "*",
    "diamond": "x",
    "diamond-box": "x+",
}

GRADIENT_RESOLUTION = 128


def is_descriptor(value: Any) -> bool:
    return isinstance(value, dict) and value.get("kind") in ("linearGradient", "pattern")


def _channel(token: str, scale: float) -> float:
    token = token.strip()
    if token.endswith("%"):
        return float(token[:-1]) / 100.0
    return float(token) / scale


def _parse_function(name: str, body: str) -> RGBA:
    parts = [p for p in re.split(r"[\s,/]+", body.strip()) if p]
    if len(parts) < 3:
        raise ValueError(f"Not enough components in {name}()")
    alpha = _channel(parts[3], 1.0) if len(parts) > 3 else 1.0
    if name.startswith("rgb"):
        r, g, b = (_channel(p, 255.0) for p in parts[:3])
    else:
        hue = float(parts[0].rstrip("deg")) / 360.0
        sat = _channel(parts[1], 100.0)
        light = _channel(parts[2], 100.0)
        r, g, b = colorsys.hls_to_rgb(hue % 1.0, light, sat)
    clamp = lambda v: min(1.0, max(0.0, v))  # noqa: E731
    return (clamp(r), clamp(g), clamp(b), clamp(alpha))


def parse_color(value: Any, default: RGBA | None = DEFAULT_ELEMENT_COLOR) -> RGBA | None:
    """
    Convert a CSS colour string to an RGBA tuple.

    Invalid colours fall back to `default`, as a canvas ignores an invalid
    fill style. Descriptors resolve to their dominant solid colour.
    """
    if value is None:
        return default
    if is_descriptor(value):
        return descriptor_solid(value, default)
    if isinstance(value, tuple) and len(value) in (3, 4):
        # Already resolved, as produced by the palette helpers.
        return tuple(to_rgba(value))  # type: ignore[return-value]
    if not isinstance(value, str):
        return default

    text = value.strip()
    if not text:
        return default
    if text.lower() == "transparent":
        return TRANSPARENT

    match = _FUNC_RE.match(text)
    try:
        if match:
            return _parse_function(match.group(1).lower(), match.group(2))
        if text.startswith("#") and len(text) in (4, 5):
            text = "#" + "".join(c * 2 for c in text[1:])
        elif re.fullmatch(r"[0-9a-fA-F]{6}([0-9a-fA-F]{2})?", text):
            text = "#" + text
        rgba = to_rgba(text.lower() if not text.startswith("#") else text)
        return tuple(rgba)  # type: ignore[return-value]
    except ValueError:
        return default


def descriptor_solid(descriptor: dict[str, Any], default: RGBA | None) -> RGBA | None:
    """Solid colour standing in for a descriptor where only a stroke is possible."""
    if descriptor.get("kind") == "linearGradient":
        stops = descriptor.get("stops") or []
        if stops:
            return parse_color(stops[0][1], default)
        return default
    return parse_color(descriptor.get("backgroundColor"), default)


def with_alpha(color: RGBA, alpha: float) -> RGBA:
    return (color[0], color[1], color[2], alpha)


# --- Palettes ---


def scheme_palette(scheme: Any) -> tuple[str, ...] | None:
    """Resolve a `colorschemes` scheme name to a list of colours."""
    if not isinstance(scheme, str):
        return None
    if scheme.startswith("tableau."):
        return TABLEAU_10
    if scheme.startswith("brewer."):
        name = scheme.split(".", 1)[1].rstrip("0123456789")
        if name in matplotlib.colormaps:
            cmap = matplotlib.colormaps[name]
            colors = getattr(cmap, "colors", None)
            if colors is not None:
                return tuple(to_hex(c) for c in colors)
            return tuple(to_hex(cmap(i / 9)) for i in range(10))
    return TABLEAU_10


def per_point(value: Any, index: int) -> Any:
    """Pick the entry for one data point from a scalar-or-list style value."""
    if isinstance(value, list):
        if not value:
            return None
        return value[index % len(value)]
    return value


# --- Fill painting ---


def _gradient_cmap(stops: list[Any]) -> LinearSegmentedColormap:
    points: list[tuple[float, RGBA]] = []
    for stop in stops:
        if not isinstance(stop, (list, tuple)) or len(stop) != 2:
            continue
        offset = min(1.0, max(0.0, float(stop[0])))
        color = parse_color(stop[1], TRANSPARENT)
        assert color is not None
        points.append((offset, color))
    if not points:
        points = [(0.0, TRANSPARENT)]
    points.sort(key=lambda p: p[0])
    if points[0][0] > 0.0:
        points.insert(0, (0.0, points[0][1]))
    if points[-1][0] < 1.0:
        points.append((1.0, points[-1][1]))
    return LinearSegmentedColormap.from_list("gradient", points)


def _gradient_field(coords: list[float], width: int, height: int) -> np.ndarray:
    x0, y0, x1, y1 = (float(c) for c in coords)
    dx, dy = x1 - x0, y1 - y0
    span = dx * dx + dy * dy
    xs = np.linspace(0.0, float(width), GRADIENT_RESOLUTION)
    ys = np.linspace(0.0, float(height), GRADIENT_RESOLUTION)
    grid_x, grid_y = np.meshgrid(xs, ys)
    if span == 0:
        return np.zeros_like(grid_x)
    field = ((grid_x - x0) * dx + (grid_y - y0) * dy) / span
    return np.clip(field, 0.0, 1.0)


def paint_gradient(
    fig: Figure,
    ax: Axes,
    artist: Patch | Collection,
    descriptor: dict[str, Any],
    width: int,
    height: int,
) -> AxesImage:
    """Paint a canvas-space linear gradient clipped to one patch or polygon set."""
    coords = descriptor.get("coords") or [0, 0, width, 0]
    image = AxesImage(
        ax,
        cmap=_gradient_cmap(descriptor.get("stops") or []),
        interpolation="bilinear",
        origin="upper",
        extent=(0.0, 1.0, 0.0, 1.0),
    )
    image.set_transform(fig.transFigure)
    image.set_data(_gradient_field(coords, width, height))
    image.set_clim(0.0, 1.0)
    if isinstance(artist, Patch):
        image.set_clip_path(artist)
    else:
        compound = Path.make_compound_path(*artist.get_paths())
        image.set_clip_path(compound, artist.get_transform())
    image.set_zorder(artist.get_zorder())
    ax.add_image(image)
    artist.set_facecolor("none")
    return image


def apply_fill(
    fig: Figure,
    ax: Axes,
    artist: Patch | Collection,
    fill: Any,
    width: int,
    height: int,
    default: RGBA = DEFAULT_ELEMENT_COLOR,
) -> None:
    """Apply a colour string or fill descriptor to an artist's face."""
    if isinstance(fill, dict) and fill.get("kind") == "linearGradient":
        paint_gradient(fig, ax, artist, fill, width, height)
        return
    if isinstance(fill, dict) and fill.get("kind") == "pattern":
        hatch = PATTERN_HATCHES.get(str(fill.get("shape")), "/")
        size = fill.get("size") or 20
        density = 3 if size <= 10 else 2 if size <= 20 else 1
        artist.set_facecolor(parse_color(fill.get("backgroundColor"), default))
        artist.set_hatch(hatch * density)
        artist.set_edgecolor(parse_color(fill.get("patternColor"), (1.0, 1.0, 1.0, 0.8)))
        return
    artist.set_facecolor(parse_color(fill, default))
