"""
Renderers component - renderer handle registry.
"""

from .component import DEFAULT_CACHE_SIZE, RendererRegistry
from .models import ENGINE_FEATURES, EngineConfig
from .ports import RendererFactory

__all__ = [
    "RendererRegistry",
    "DEFAULT_CACHE_SIZE",
    "EngineConfig",
    "ENGINE_FEATURES",
    "RendererFactory",
]
