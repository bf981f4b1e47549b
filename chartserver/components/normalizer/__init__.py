"""
Normalizer component - per-chart-type defaults and structural fixes.
"""

from ._merge import deep_merge
from .component import (
    DEFAULT_COLOR_SCHEME,
    DEFAULT_DEVICE_PIXEL_RATIO,
    DERIVED_REWRITES,
    KIND_DEFAULTS,
    format_number,
    normalize_chart,
    numeric_value,
)

__all__ = [
    "DEFAULT_COLOR_SCHEME",
    "DEFAULT_DEVICE_PIXEL_RATIO",
    "DERIVED_REWRITES",
    "KIND_DEFAULTS",
    "deep_merge",
    "format_number",
    "normalize_chart",
    "numeric_value",
]
