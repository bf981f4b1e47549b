"""
End-to-end tests for the native and legacy chart endpoints.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from chartserver.components.legacy.component import UNSUPPORTED_MESSAGE
from chartserver.core.services.charts import MISSING_CHART_MESSAGE

PngSize = Callable[[bytes], tuple[int, int]]

BAR = {"type": "bar", "data": {"labels": ["a", "b"], "datasets": [{"data": [1, 2]}]}}


def chart_url(chart: Any, **params: str) -> str:
    text = chart if isinstance(chart, str) else json.dumps(chart)
    query = "&".join(f"{key}={quote(value)}" for key, value in params.items())
    return f"/chart?c={quote(text)}" + (f"&{query}" if query else "")


class TestGetChart:
    def test_default_size_at_ratio_two(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get(chart_url(BAR))
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "no-cache"
        assert png_size(response.content) == (1000, 600)

    def test_explicit_size(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get(chart_url(BAR, w="200", h="100", devicePixelRatio="1"))
        assert png_size(response.content) == (200, 100)

    def test_object_literal_with_plus(self, client: TestClient, png_size: PngSize) -> None:
        chart = "{type:'bar',data:{labels:['a+b','c'],datasets:[{data:[1,2]}]}}"
        response = client.get(chart_url(chart, width="300", height="200", devicePixelRatio="1"))
        assert response.status_code == 200
        assert png_size(response.content) == (300, 200)

    def test_svg(self, client: TestClient) -> None:
        response = client.get(chart_url(BAR, f="svg"))
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert b"<svg" in response.content

    def test_pdf(self, client: TestClient) -> None:
        response = client.get(chart_url(BAR, format="pdf"))
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_unsupported_format_is_text(self, client: TestClient) -> None:
        response = client.get(chart_url(BAR, format="<gif>"))
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Unsupported format &lt;gif&gt;"

    def test_missing_chart(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/chart")
        assert response.status_code == 500
        assert response.headers["x-chart-error"] == MISSING_CHART_MESSAGE
        assert png_size(response.content) == (500, 300)

    def test_too_wide(self, client: TestClient) -> None:
        response = client.get(chart_url(BAR, width="5000"))
        assert response.status_code == 500
        assert response.headers["x-chart-error"] == "Requested width exceeds maximum of 3000"

    def test_unsafe_chart_svg_error(self, client: TestClient) -> None:
        response = client.get(chart_url("{type: process.env}", format="svg"))
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert "x-chart-error" in response.headers

    def test_base64(self, client: TestClient) -> None:
        encoded = base64.b64encode(json.dumps(BAR).encode()).decode()
        response = client.get(chart_url(encoded, encoding="base64"))
        assert response.status_code == 200

    def test_width_limit_from_environment(
        self, make_client: Callable[..., TestClient]
    ) -> None:
        client = make_client(CHART_MAX_WIDTH="100")
        response = client.get(chart_url(BAR, width="200"))
        assert response.headers["x-chart-error"] == "Requested width exceeds maximum of 100"


class TestPostChart:
    def test_json_body(self, client: TestClient, png_size: PngSize) -> None:
        body = {"chart": BAR, "width": 200, "height": 100, "devicePixelRatio": 1}
        response = client.post("/chart", json=body)
        assert response.status_code == 200
        assert png_size(response.content) == (200, 100)

    def test_json_string_chart(self, client: TestClient) -> None:
        response = client.post("/chart", json={"chart": "{type: 'pie'}", "format": "svg"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")

    def test_form_body(self, client: TestClient, png_size: PngSize) -> None:
        data = {"c": json.dumps(BAR), "w": "120", "h": "80", "devicePixelRatio": "1"}
        response = client.post("/chart", data=data)
        assert response.status_code == 200
        assert png_size(response.content) == (120, 80)

    def test_malformed_json(self, client: TestClient) -> None:
        response = client.post(
            "/chart", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400

    def test_body_too_large(self, client: TestClient) -> None:
        body = {"chart": BAR, "padding": "x" * 110_000}
        response = client.post("/chart", json=body)
        assert response.status_code == 413

    def test_missing_chart(self, client: TestClient) -> None:
        response = client.post("/chart", json={"width": 100})
        assert response.status_code == 500
        assert response.headers["x-chart-error"] == MISSING_CHART_MESSAGE


class TestLegacy:
    def test_bar_on_chart_route(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/chart?cht=bvs&chd=t:10,20,30&chs=200x100")
        assert response.status_code == 200
        assert png_size(response.content) == (200, 100)

    def test_gchart_route(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/gchart?cht=p&chd=t:1,2,3&chs=150x150&chl=a|b|c")
        assert response.status_code == 200
        assert png_size(response.content) == (150, 150)

    def test_introspection(self, client: TestClient) -> None:
        response = client.get("/chart?cht=lc&chd=t:1,2&format=chartjs-config")
        assert response.status_code == 200
        assert response.json()["type"] == "line"

    def test_unsupported_type(self, client: TestClient) -> None:
        response = client.get("/chart?cht=zz&chd=t:1")
        assert response.status_code == 500
        assert response.text == UNSUPPORTED_MESSAGE

    def test_qr_delegation(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/chart?cht=qr&chl=hello&chs=120x120")
        assert response.status_code == 200
        assert png_size(response.content) == (120, 120)


class TestInputForms:
    def test_json_and_literal_render_identically(self, client: TestClient) -> None:
        literal = "{type: 'bar', data: {labels: ['a', 'b'], datasets: [{data: [1, 2]}]}}"
        from_json = client.get(chart_url(json.dumps(BAR, separators=(",", ":"))))
        from_literal = client.get(chart_url(literal))

        assert from_json.status_code == from_literal.status_code == 200
        assert from_json.content == from_literal.content


DATA = {"labels": ["a", "b"], "datasets": [{"data": [1, 2]}]}


class TestMalformedShapes:
    """Charts that parse but carry the wrong shapes never escape as bare errors."""

    @pytest.mark.parametrize(
        "chart",
        [
            {"type": "bar", "data": DATA, "options": {"legend": "x"}},
            {"type": "bar", "data": DATA, "options": {"title": "x"}},
            {"type": "bar", "data": DATA, "options": {"scales": "x"}},
            {"type": "bar", "data": DATA, "options": {"scales": {"yAxes": ["x"]}}},
            {"type": "line", "data": DATA, "options": {"plugins": "x"}},
            {"type": "pie", "data": DATA, "options": {"legend": 3, "title": [1]}},
        ],
    )
    def test_odd_option_sections_are_ignored(
        self, client: TestClient, chart: dict[str, Any]
    ) -> None:
        response = client.post("/chart", json={"chart": chart, "w": 100, "h": 80})
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"

    def test_modern_option_sections_are_ignored(self, client: TestClient) -> None:
        chart = {"type": "bar", "data": DATA, "options": {"plugins": {"legend": "x"}}}
        response = client.post("/chart", json={"chart": chart, "v": "4", "w": 100, "h": 80})
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "chart",
        [
            {"type": "sparkline", "data": {"datasets": [{"data": 5}]}},
            {"type": "progressBar", "data": {"datasets": [{"data": "abc"}]}},
            {"type": "bar", "data": []},
            {"type": "bar", "data": {"datasets": ["x"]}},
            "[" * 20_000 + "]" * 20_000,
            "{a:" * 5_000 + "1" + "}" * 5_000,
        ],
    )
    @pytest.mark.parametrize(("fmt", "content_type"), [("png", "image/png"), ("svg", "image/svg")])
    def test_invalid_shapes_give_error_image(
        self, client: TestClient, chart: Any, fmt: str, content_type: str
    ) -> None:
        response = client.post("/chart", json={"chart": chart, "format": fmt})
        assert response.status_code == 500
        assert response.headers["content-type"].startswith(content_type)
        assert response.headers["x-chart-error"]

    def test_deeply_nested_body(self, client: TestClient) -> None:
        body = '{"chart": ' + "[" * 20_000 + "]" * 20_000 + "}"
        response = client.post(
            "/chart", content=body, headers={"content-type": "application/json"}
        )
        assert response.status_code == 400


class TestLegacyQrSize:
    @pytest.mark.parametrize(("chs", "size"), [("0x0", 150), ("70000x70000", 3000)])
    def test_size_is_clamped(
        self, client: TestClient, png_size: PngSize, chs: str, size: int
    ) -> None:
        response = client.get(f"/chart?cht=qr&chl=hi&chs={chs}")
        assert response.status_code == 200
        assert png_size(response.content) == (size, size)


class TestRateLimit:
    def test_third_request_rejected(self, make_client: Callable[..., TestClient]) -> None:
        client = make_client(RATE_LIMIT_PER_MIN="2")
        url = chart_url(BAR, w="50", h="50", devicePixelRatio="1")

        assert client.get(url).status_code == 200
        assert client.get(url).status_code == 200
        response = client.get(url)

        assert response.status_code == 429
        assert "slow down" in response.json()["detail"]


@pytest.mark.parametrize("env", ["production", "staging"])
def test_public_cache_header(make_client: Callable[..., TestClient], env: str) -> None:
    client = make_client(CHART_ENV=env)
    response = client.get(chart_url(BAR, w="50", h="50"))
    assert response.headers["cache-control"] == "public, max-age=604800"
