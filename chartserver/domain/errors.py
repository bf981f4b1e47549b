"""
Chart service error taxonomy.

Every failure the rendering pipeline can raise derives from ChartError so the
HTTP boundary can decide, per class, whether to answer with an in-band error
image, plain text, or a JSON body.
"""

from __future__ import annotations


class ChartError(Exception):
    """Base class for chart pipeline failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidSpecification(ChartError):
    """Chart description is malformed, unsafe, or structurally invalid."""


class SizeLimitExceeded(ChartError):
    """Requested canvas is larger than the configured maximum."""


class UnsupportedFormat(ChartError):
    """Requested output format is not png, svg or pdf."""


class UnsupportedLegacyChartType(ChartError):
    """Legacy chart type code cannot be translated."""


class TemplateNotFound(ChartError):
    """No stored template exists for the identifier."""


class PersistenceFailure(ChartError):
    """Template store read or write failed."""


class RenderFailure(ChartError):
    """The rendering engine rejected a structurally valid chart."""
