"""
Tests for stored templates: override parsing and the template service.
"""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import pytest

from chartserver.components.templates import (
    CreateTemplateInput,
    TemplateService,
    apply_chart_overrides,
    apply_overrides,
    split_colors,
    split_numbers,
)
from chartserver.domain.entities import Template
from chartserver.domain.errors import InvalidSpecification, TemplateNotFound


class InMemoryTemplateRepo:
    def __init__(self) -> None:
        self.rows: dict[UUID, Template] = {}
        self.expired_cutoffs: list[datetime] = []

    def save(self, template: Template) -> Template:
        self.rows[template.id] = template
        return template

    def get_by_id(self, template_id: UUID) -> Template | None:
        return self.rows.get(template_id)

    def delete(self, template_id: UUID) -> bool:
        return self.rows.pop(template_id, None) is not None

    def delete_expired(self, now: datetime) -> int:
        self.expired_cutoffs.append(now)
        expired = [t.id for t in self.rows.values() if t.is_expired(now)]
        for template_id in expired:
            del self.rows[template_id]
        return len(expired)


class StaticClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current


NOW = datetime(2025, 6, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def repo() -> InMemoryTemplateRepo:
    return InMemoryTemplateRepo()


@pytest.fixture
def clock() -> StaticClock:
    return StaticClock(NOW)


@pytest.fixture
def service(repo: InMemoryTemplateRepo, clock: StaticClock) -> TemplateService:
    return TemplateService(repo=repo, clock=clock, expiry_days=180)


def two_series_chart() -> dict[str, Any]:
    return {
        "type": "bar",
        "data": {
            "labels": ["a", "b"],
            "datasets": [{"data": [1, 2]}, {"data": [3, 4]}],
        },
    }


class TestSplitting:
    """Override value parsing."""

    def test_colors_keep_function_commas(self) -> None:
        assert split_colors("red, rgba(0, 0, 0, 0.5),#fff,hsl(1,2%,3%)") == [
            "red",
            "rgba(0, 0, 0, 0.5)",
            "#fff",
            "hsl(1,2%,3%)",
        ]

    def test_single_color(self) -> None:
        assert split_colors("blue") == ["blue"]

    def test_numbers(self) -> None:
        assert split_numbers("1,2.5,,x,-3") == [1, 2.5, 0, None, -3]


class TestChartOverrides:
    """Title, labels and per-dataset overrides."""

    def test_title_classic(self) -> None:
        chart = apply_chart_overrides(two_series_chart(), {"title": "Sales"})
        assert chart["options"]["title"] == {"text": "Sales", "display": True}

    def test_title_modern(self) -> None:
        chart = apply_chart_overrides(two_series_chart(), {"title": "Sales"}, "4.4.0")
        assert chart["options"]["plugins"]["title"] == {"text": "Sales", "display": True}

    def test_title_keeps_existing_style(self) -> None:
        chart = two_series_chart()
        chart["options"] = {"title": {"fontSize": 20, "text": "old"}}
        apply_chart_overrides(chart, {"title": "new"})
        assert chart["options"]["title"] == {"fontSize": 20, "text": "new", "display": True}

    def test_labels(self) -> None:
        chart = apply_chart_overrides(two_series_chart(), {"labels": "x,y,z"})
        assert chart["data"]["labels"] == ["x", "y", "z"]

    def test_indexed_fields(self) -> None:
        chart = apply_chart_overrides(
            two_series_chart(),
            {"data2": "7,8", "backgroundColor1": "red,rgb(0,0,255)", "borderColor2": "#000"},
        )
        datasets = chart["data"]["datasets"]
        assert datasets[0]["data"] == [1, 2]
        assert datasets[1]["data"] == [7, 8]
        assert datasets[0]["backgroundColor"] == ["red", "rgb(0,0,255)"]
        assert datasets[1]["borderColor"] == ["#000"]

    @pytest.mark.parametrize("key", ["data0", "data3", "backgroundColor9"])
    def test_out_of_range_ignored(self, key: str) -> None:
        chart = apply_chart_overrides(two_series_chart(), {key: "5"})
        assert chart == two_series_chart()

    def test_unrelated_params_ignored(self) -> None:
        chart = apply_chart_overrides(two_series_chart(), {"width": "100", "dataX": "1"})
        assert chart == two_series_chart()


class TestApplyOverrides:
    """Overrides on a stored config."""

    def test_stored_config_unchanged(self) -> None:
        config = {"chart": two_series_chart(), "width": 500, "format": "png"}
        result = apply_overrides(config, {"title": "T", "data1": "9,9"})
        assert config["chart"] == two_series_chart()
        assert result["chart"]["data"]["datasets"][0]["data"] == [9, 9]
        assert result["width"] == 500

    def test_literal_string_is_resolved(self) -> None:
        config = {
            "chart": "{type: 'bar', data: {datasets: [{data: [1, 2]}]}}",
            "encoding": "url",
        }
        result = apply_overrides(config, {"data1": "3,4"})
        assert result["chart"]["data"]["datasets"][0]["data"] == [3, 4]
        assert result["encoding"] == "url"

    def test_base64_string_is_decoded_once(self) -> None:
        raw = json.dumps(two_series_chart())
        config = {"chart": base64.b64encode(raw.encode()).decode(), "encoding": "base64"}
        result = apply_overrides(config, {"labels": "p,q"})
        assert result["chart"]["data"]["labels"] == ["p", "q"]
        assert result["encoding"] == "url"

    def test_unresolvable_string(self) -> None:
        with pytest.raises(InvalidSpecification):
            apply_overrides({"chart": "{x: process}"}, {})


class TestTemplateService:
    """Creation, lookup and expiry."""

    def test_create_sets_expiry(self, service: TemplateService, repo: InMemoryTemplateRepo) -> None:
        template = service.create({"chart": {"type": "bar"}})
        assert template.created_at == NOW
        assert template.expires_at == NOW + timedelta(days=180)
        assert repo.rows[template.id] is template

    def test_create_never_expire(self, service: TemplateService) -> None:
        template = service.create({"chart": {"type": "bar"}}, never_expire=True)
        assert template.expires_at is None

    def test_create_from_input(self, service: TemplateService) -> None:
        data = CreateTemplateInput(chart={"type": "pie"}, width=300, format="SVG")
        template = service.create_from_input(data)
        assert template.config == {
            "chart": {"type": "pie"},
            "width": 300,
            "height": None,
            "backgroundColor": None,
            "devicePixelRatio": None,
            "version": None,
            "encoding": "url",
            "format": "svg",
        }

    def test_ids_are_unique(self, service: TemplateService) -> None:
        first = service.create({"chart": {}})
        second = service.create({"chart": {}})
        assert first.id != second.id

    def test_get_by_string_id(self, service: TemplateService) -> None:
        template = service.create({"chart": {"type": "bar"}})
        assert service.get(str(template.id)) is template

    def test_get_missing(self, service: TemplateService) -> None:
        with pytest.raises(TemplateNotFound):
            service.get(uuid4())

    def test_get_malformed_id(self, service: TemplateService) -> None:
        with pytest.raises(TemplateNotFound):
            service.get("not-a-uuid")

    def test_expired_template_still_readable(
        self, service: TemplateService, clock: StaticClock
    ) -> None:
        template = service.create({"chart": {}})
        clock.current = NOW + timedelta(days=365)
        assert service.get(template.id) is template

    def test_delete_expired_uses_clock(
        self, service: TemplateService, repo: InMemoryTemplateRepo, clock: StaticClock
    ) -> None:
        old = service.create({"chart": {}})
        kept = service.create({"chart": {}}, never_expire=True)
        clock.current = NOW + timedelta(days=181)

        assert service.delete_expired() == 1
        assert repo.expired_cutoffs == [clock.current]
        assert old.id not in repo.rows
        assert kept.id in repo.rows

    def test_delete(self, service: TemplateService) -> None:
        template = service.create({"chart": {}})
        assert service.delete(template.id) is True
        assert service.delete(template.id) is False
