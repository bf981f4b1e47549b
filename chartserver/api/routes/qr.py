"""QR code endpoint."""

from fastapi import APIRouter, Depends, Request, Response

from chartserver.api.deps import Settings, get_chart_service, get_rules, get_settings
from chartserver.api.query import raw_query_params
from chartserver.api.responses import error_image_response, image_response
from chartserver.core.services.charts import ChartService
from chartserver.domain.entities import DEFAULT_QR_SIZE, OutputFormat, clamp_qr_size
from chartserver.domain.errors import ChartError
from chartserver.rules.models import Rules

router = APIRouter()

DEFAULT_MARGIN = 4


def _int(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@router.get("/qr")
async def get_qr(
    request: Request,
    service: ChartService = Depends(get_chart_service),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Response:
    """
    Render `text` as a QR code.

    Query: format (png|svg), margin, ecLevel (L|M|Q|H), size, dark, light.
    """
    params = raw_query_params(request)
    text = params.get("text")
    if not text:
        return await error_image_response(
            service, "You are missing variable `text`", OutputFormat.PNG
        )

    fmt = "svg" if params.get("format") == "svg" else "png"
    size = clamp_qr_size(_int(params.get("size"), DEFAULT_QR_SIZE))
    try:
        image = await service.render_qr(
            text,
            output_format=fmt,
            size=size,
            margin=_int(params.get("margin"), DEFAULT_MARGIN),
            error_correction=params.get("ecLevel") or "M",
            dark=params.get("dark") or "000",
            light=params.get("light") or "fff",
        )
    except ChartError as e:
        return await error_image_response(service, str(e), OutputFormat.PNG)
    return image_response(image, settings, rules.http.cache_max_age)
