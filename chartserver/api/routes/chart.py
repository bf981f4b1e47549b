"""Native and legacy chart rendering endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from chartserver.api.deps import (
    Settings,
    enforce_rate_limit,
    get_chart_service,
    get_rules,
    get_settings,
)
from chartserver.api.query import raw_query_params
from chartserver.api.responses import respond_legacy, respond_native
from chartserver.core.services.charts import ChartService, NativeChartInput
from chartserver.rules.models import Rules

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


async def read_body(request: Request, limit: int) -> dict[str, Any]:
    """Parse a JSON or form body into a flat dict of fields."""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        raw = await request.body()
        if len(raw) > limit:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Request body is too large",
            )
        if not raw:
            return {}
        try:
            body = await request.json()
        except (ValueError, RecursionError):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed JSON body"
            ) from None
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


@router.get("/chart")
async def get_chart(
    request: Request,
    service: ChartService = Depends(get_chart_service),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Response:
    """
    Render a chart from query parameters.

    A `cht` parameter marks a legacy image-charts request.
    """
    params = raw_query_params(request)
    if params.get("cht"):
        return await respond_legacy(params, service, settings, rules.http.cache_max_age)
    return await respond_native(
        NativeChartInput.from_mapping(params), service, settings, rules.http.cache_max_age
    )


@router.post("/chart")
async def post_chart(
    request: Request,
    service: ChartService = Depends(get_chart_service),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Response:
    body = await read_body(request, rules.http.json_limit_bytes)
    return await respond_native(
        NativeChartInput.from_mapping(body), service, settings, rules.http.cache_max_age
    )


@router.get("/gchart")
async def get_gchart(
    request: Request,
    service: ChartService = Depends(get_chart_service),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Response:
    return await respond_legacy(
        raw_query_params(request), service, settings, rules.http.cache_max_age
    )
