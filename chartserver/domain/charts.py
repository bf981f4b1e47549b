"""
Closed set of chart kinds understood by the pipeline.

The `type` field of a chart specification is parsed into a ChartKind once, so
normalization and rendering dispatch on enum members instead of comparing
strings all over the code base.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chartserver.domain.errors import InvalidSpecification


class ChartKind(str, Enum):
    BAR = "bar"
    HORIZONTAL_BAR = "horizontalBar"
    LINE = "line"
    SCATTER = "scatter"
    BUBBLE = "bubble"
    RADAR = "radar"
    PIE = "pie"
    DOUGHNUT = "doughnut"
    POLAR_AREA = "polarArea"
    OUTLABELED_PIE = "outlabeledPie"
    OUTLABELED_DOUGHNUT = "outlabeledDoughnut"
    RADIAL_GAUGE = "radialGauge"
    BOXPLOT = "boxplot"
    HORIZONTAL_BOXPLOT = "horizontalBoxplot"
    VIOLIN = "violin"
    HORIZONTAL_VIOLIN = "horizontalViolin"
    # Derived kinds, rewritten by the normalizer before rendering.
    SPARKLINE = "sparkline"
    PROGRESS_BAR = "progressBar"

    @classmethod
    def parse(cls, value: object) -> ChartKind:
        """Parse a chart `type` value, resolving known aliases."""
        if not isinstance(value, str) or not value:
            raise InvalidSpecification("Chart type is required")
        name = TYPE_ALIASES.get(value, value)
        try:
            return cls(name)
        except ValueError:
            raise InvalidSpecification(f'Unsupported chart type "{value}"') from None

    @property
    def is_round(self) -> bool:
        return self in ROUND_KINDS


TYPE_ALIASES = {
    "donut": "doughnut",
}

ROUND_KINDS = frozenset(
    {
        ChartKind.PIE,
        ChartKind.DOUGHNUT,
        ChartKind.POLAR_AREA,
        ChartKind.OUTLABELED_PIE,
        ChartKind.OUTLABELED_DOUGHNUT,
    }
)

BOXPLOT_KINDS = frozenset(
    {
        ChartKind.BOXPLOT,
        ChartKind.HORIZONTAL_BOXPLOT,
        ChartKind.VIOLIN,
        ChartKind.HORIZONTAL_VIOLIN,
    }
)


@dataclass(frozen=True)
class DataLabelContext:
    """Passed to data-label `display` and `formatter` callables."""

    dataset_index: int
    data_index: int
    chart_type: str
