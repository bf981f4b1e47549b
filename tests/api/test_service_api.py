import shutil
from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from chartserver import __version__

PngSize = Callable[[bytes], tuple[int, int]]


class TestHealth:
    def test_banner(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert "running" in response.text

    def test_healthcheck(self, client: TestClient) -> None:
        response = client.get("/healthcheck")
        assert response.status_code == 200
        assert response.json() == {"success": True, "version": __version__}

    def test_chart_healthcheck_redirects(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/healthcheck/chart")
        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("/chart?c=")

        rendered = client.get(location)
        assert rendered.status_code == 200
        assert png_size(rendered.content) == (1000, 600)


class TestQr:
    def test_png_size(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/qr?text=hello&size=200")
        assert response.status_code == 200
        assert png_size(response.content) == (200, 200)

    def test_default_size(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/qr?text=hello")
        assert png_size(response.content) == (150, 150)

    def test_svg(self, client: TestClient) -> None:
        response = client.get("/qr?text=hello&format=svg&margin=0&dark=f00")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert 'viewBox="0 0 21 21"' in response.text
        assert 'fill="#ff0000"' in response.text

    def test_missing_text(self, client: TestClient, png_size: PngSize) -> None:
        response = client.get("/qr")
        assert response.status_code == 500
        assert response.headers["x-chart-error"] == "You are missing variable `text`"
        assert png_size(response.content) == (500, 300)

    def test_bad_error_correction(self, client: TestClient) -> None:
        response = client.get("/qr?text=hello&ecLevel=Z")
        assert response.status_code == 500
        assert "x-chart-error" in response.headers


@pytest.mark.skipif(shutil.which("dot") is None, reason="Graphviz not installed")
class TestGraphviz:
    def test_svg_graph(self, client: TestClient) -> None:
        response = client.get("/chart?cht=gv&chl=digraph{a->b}&chs=300x200")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert 'width="300px"' in response.text

    def test_png_graph(self, client: TestClient) -> None:
        response = client.get("/gchart?cht=gv:neato&chl=graph{a--b}&chof=png")
        assert response.status_code == 200
        assert response.content.startswith(b"\x89PNG")

    def test_layout_error(self, client: TestClient) -> None:
        response = client.get("/chart?cht=gv&chl=digraph{a->}&chof=svg")
        assert response.status_code == 500
        assert response.headers["x-chart-error"].startswith("Graph Error")
