"""
Response builders shared by the chart routes.

Key behaviors:
- Successful images carry a one-week public cache header (no-cache in dev/test)
- Chart errors become an error image in the requested format with status 500
  and an `X-Chart-Error` header holding the ASCII-only, single-line message
- Unsupported formats and legacy types are answered as plain text
"""

from __future__ import annotations

import logging
import re
from html import escape

from fastapi.responses import PlainTextResponse, Response

from chartserver.api.deps import Settings
from chartserver.components.output import EncodedImage
from chartserver.core.services.charts import ChartService, NativeChartInput
from chartserver.domain.entities import OutputFormat
from chartserver.domain.errors import (
    ChartError,
    InvalidSpecification,
    RenderFailure,
    SizeLimitExceeded,
    UnsupportedFormat,
    UnsupportedLegacyChartType,
)

logger = logging.getLogger(__name__)

ERROR_HEADER = "X-Chart-Error"
IMAGE_ERRORS = (InvalidSpecification, SizeLimitExceeded, RenderFailure)

_NEWLINES_RE = re.compile(r"\r?\n|\r")


def error_header_value(message: str) -> str:
    return _NEWLINES_RE.sub("", message).encode("ascii", "ignore").decode("ascii")


def cache_control(settings: Settings, max_age: int) -> str:
    return "no-cache" if settings.is_dev else f"public, max-age={max_age}"


def image_response(image: EncodedImage, settings: Settings, max_age: int) -> Response:
    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Cache-Control": cache_control(settings, max_age)},
    )


async def error_image_response(
    service: ChartService, message: str, fmt: OutputFormat
) -> Response:
    image = await service.error_image(message, fmt)
    return Response(
        content=image.content,
        status_code=500,
        media_type=image.content_type,
        headers={ERROR_HEADER: error_header_value(message)},
    )


def text_error(message: str) -> PlainTextResponse:
    return PlainTextResponse(escape(message), status_code=500)


async def respond_native(
    data: NativeChartInput, service: ChartService, settings: Settings, max_age: int
) -> Response:
    """Render native fields, mapping chart errors to their response kind."""
    try:
        fmt = data.output_format()
    except UnsupportedFormat as e:
        logger.error("Request for unsupported format %s", data.format)
        return text_error(str(e))

    try:
        image = await service.render_native(data)
    except IMAGE_ERRORS as e:
        logger.warning("Chart error: %s", e)
        return await error_image_response(service, str(e), fmt)
    return image_response(image, settings, max_age)


async def respond_legacy(
    params: dict[str, str], service: ChartService, settings: Settings, max_age: int
) -> Response:
    try:
        outcome = await service.render_legacy(params)
    except UnsupportedLegacyChartType as e:
        return text_error(str(e))
    except ChartError as e:
        logger.warning("Chart error: %s", e)
        fmt = OutputFormat.PNG
        if (params.get("cht") or "").startswith("gv") and params.get("chof") == "svg":
            fmt = OutputFormat.SVG
        return await error_image_response(service, str(e), fmt)

    if outcome.text is not None:
        return Response(content=outcome.text, media_type="application/json")
    assert outcome.image is not None
    return image_response(outcome.image, settings, max_age)
