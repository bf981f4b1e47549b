"""Stored chart templates: create once, render by identifier."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from chartserver.api.deps import (
    Settings,
    enforce_rate_limit,
    get_chart_service,
    get_rules,
    get_settings,
    get_template_service,
)
from chartserver.api.query import raw_query_params
from chartserver.api.responses import error_image_response, respond_native
from chartserver.api.routes.chart import read_body
from chartserver.api.schemas import CreateChartResponse
from chartserver.components.templates import (
    CreateTemplateInput,
    TemplateService,
    apply_overrides,
)
from chartserver.core.services.charts import ChartService, NativeChartInput
from chartserver.domain.entities import OutputFormat
from chartserver.domain.errors import (
    InvalidSpecification,
    PersistenceFailure,
    TemplateNotFound,
    UnsupportedFormat,
)
from chartserver.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


def _truthy(value: object) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes", "on")
    return bool(value)


@router.post("/chart/create", response_model=CreateChartResponse)
async def create_chart(
    request: Request,
    templates: TemplateService = Depends(get_template_service),
    rules: Rules = Depends(get_rules),
) -> Response | CreateChartResponse:
    body = await read_body(request, rules.http.json_limit_bytes)
    fields = NativeChartInput.from_mapping(body)
    if fields.chart is None:
        return JSONResponse(status_code=400, content={"error": "Chart config is required"})

    data = CreateTemplateInput(
        chart=fields.chart,
        width=fields.width,
        height=fields.height,
        background_color=fields.background_color,
        device_pixel_ratio=fields.device_pixel_ratio,
        version=fields.version,
        encoding=fields.encoding or "url",
        format=str(fields.format or "png"),
        never_expire=_truthy(body.get("neverExpire", False)),
    )
    try:
        template = templates.create_from_input(data)
    except PersistenceFailure as e:
        logger.error("Failed to store chart: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to store chart"})

    url = str(request.url_for("render_template", key=str(template.id)))
    return CreateChartResponse(success=True, url=url)


@router.get("/chart/render/{key}", name="render_template")
async def render_template(
    key: str,
    request: Request,
    templates: TemplateService = Depends(get_template_service),
    service: ChartService = Depends(get_chart_service),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Response:
    """Render a stored template, applying title/labels/data/colour overrides."""
    try:
        template = templates.get(key)
    except TemplateNotFound:
        return JSONResponse(status_code=404, content={"error": "Template not found"})
    except PersistenceFailure as e:
        return JSONResponse(status_code=500, content={"error": str(e)})

    try:
        config = apply_overrides(template.config, raw_query_params(request))
    except InvalidSpecification as e:
        try:
            fmt = OutputFormat.parse(template.config.get("format"))
        except UnsupportedFormat:
            fmt = OutputFormat.PNG
        logger.warning("Chart error: %s", e)
        return await error_image_response(service, str(e), fmt)

    return await respond_native(
        NativeChartInput.from_mapping(config), service, settings, rules.http.cache_max_age
    )
