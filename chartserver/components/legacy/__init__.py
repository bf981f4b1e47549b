from .component import describe, parse_size, translate
from .models import GraphvizDelegation, LegacyChart, LegacyResult, QrDelegation

__all__ = [
    "GraphvizDelegation",
    "LegacyChart",
    "LegacyResult",
    "QrDelegation",
    "describe",
    "parse_size",
    "translate",
]
