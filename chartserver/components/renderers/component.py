"""
Renderer registry - canvas-bound renderer handles.

Key behaviors:
- Size limits are checked before any handle is looked up or built
- The device canvas (CSS size times pixel ratio) is bounded by the area of the
  largest CSS canvas at the largest default ratio
- Engine generation is chosen by version prefix (4, 3, otherwise 2)
- Handles are cached per (width, height, version, format) in a cachetools LRU
- One lock guards lookup and insert, so a key is never built twice even when
  PNG renders run on several worker threads
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from cachetools import LRUCache

from chartserver.domain.entities import OutputFormat
from chartserver.domain.errors import InvalidSpecification, SizeLimitExceeded
from chartserver.ports.renderer import ChartRendererPort

from .models import EngineConfig
from .ports import RendererFactory

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 64
MAX_AREA_RATIO = 2.0

CacheKey = tuple[int, int, str, OutputFormat]


class _RendererCache(LRUCache):  # type: ignore[type-arg]
    def popitem(self) -> tuple[Any, Any]:
        key, handle = super().popitem()
        logger.debug("Evicted renderer %s", key)
        return key, handle


class RendererRegistry:
    def __init__(
        self,
        factory: RendererFactory,
        max_width: int,
        max_height: int,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        self._factory = factory
        self.max_width = max_width
        self.max_height = max_height
        self.max_pixels = int(max_width * max_height * MAX_AREA_RATIO**2)
        self.cache_size = max(cache_size, 1)
        self._cache = _RendererCache(maxsize=self.cache_size)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def check_size(self, width: int, height: int, device_pixel_ratio: float = 1.0) -> None:
        if width > self.max_width:
            raise SizeLimitExceeded(f"Requested width exceeds maximum of {self.max_width}")
        if height > self.max_height:
            raise SizeLimitExceeded(f"Requested height exceeds maximum of {self.max_height}")
        if width <= 0 or height <= 0:
            raise InvalidSpecification("Width and height must be positive")
        if width * height * device_pixel_ratio**2 > self.max_pixels:
            raise SizeLimitExceeded(
                f"Requested canvas exceeds maximum of {self.max_pixels} pixels"
            )

    def get_renderer(
        self,
        width: int,
        height: int,
        version: str | None,
        fmt: OutputFormat,
        device_pixel_ratio: float = 1.0,
    ) -> ChartRendererPort:
        """
        Return the renderer handle for a canvas size, engine version and format.

        Raises:
            SizeLimitExceeded: If width, height or the device canvas is above the maximum.
            InvalidSpecification: If width or height is not positive.
        """
        self.check_size(width, height, device_pixel_ratio)
        config = EngineConfig.for_version(version)
        key: CacheKey = (width, height, config.version, fmt)

        with self._lock:
            handle: ChartRendererPort | None = self._cache.get(key)
            if handle is None:
                handle = self._factory(width, height, fmt, config)
                self._cache[key] = handle
            return handle
