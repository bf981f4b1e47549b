"""
Templates component - stored chart configurations.

A template is the full set of native render fields (chart, size, format, ...)
saved under a random identifier and rendered later, optionally with per-request
overrides.

Key behaviors:
- Templates expire after the configured number of days unless never_expire
- Expired templates stay readable until the sweep deletes them
- Overrides are applied to a deep copy; the stored row is never changed
- A chart stored as a string is resolved to an object before overrides
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any
from uuid import UUID, uuid4

from chartserver.components.resolver import decode_chart_input, resolve_chart
from chartserver.domain.entities import DEFAULT_HEIGHT, DEFAULT_WIDTH, Template
from chartserver.domain.errors import TemplateNotFound
from chartserver.ports.clock import ClockPort

from ._overrides import apply_chart_overrides
from .models import CreateTemplateInput
from .ports import TemplateRepoPort

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 180


def _dimension(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def apply_overrides(config: dict[str, Any], params: Mapping[str, str]) -> dict[str, Any]:
    """
    Return a copy of a stored config with request overrides applied.

    Raises:
        InvalidSpecification: If the stored chart string cannot be resolved.
    """
    result = copy.deepcopy(config)
    chart = result.get("chart")
    if isinstance(chart, str):
        chart = decode_chart_input(chart, result.get("encoding"))
        chart = resolve_chart(
            chart,
            width=_dimension(result.get("width"), DEFAULT_WIDTH),
            height=_dimension(result.get("height"), DEFAULT_HEIGHT),
        )
        # Already decoded; the render path must not decode it again.
        result["encoding"] = "url"
    if isinstance(chart, dict):
        result["chart"] = apply_chart_overrides(chart, params, result.get("version"))
    return result


class TemplateService:
    def __init__(
        self,
        repo: TemplateRepoPort,
        clock: ClockPort,
        expiry_days: int = DEFAULT_EXPIRY_DAYS,
    ) -> None:
        self.repo = repo
        self.clock = clock
        self.expiry_days = expiry_days

    def create(self, config: dict[str, Any], never_expire: bool = False) -> Template:
        """
        Store a config under a new identifier.

        Raises:
            PersistenceFailure: If the row cannot be written.
        """
        now = self.clock.now()
        template = Template(
            id=uuid4(),
            config=config,
            created_at=now,
            expires_at=None if never_expire else now + timedelta(days=self.expiry_days),
        )
        self.repo.save(template)
        logger.info("Stored chart template %s", template.id)
        return template

    def create_from_input(self, data: CreateTemplateInput) -> Template:
        return self.create(data.to_config(), never_expire=data.never_expire)

    def get(self, template_id: UUID | str) -> Template:
        """
        Fetch a stored template.

        Raises:
            TemplateNotFound: If no template has this identifier.
            PersistenceFailure: If the store cannot be read.
        """
        if isinstance(template_id, str):
            try:
                template_id = UUID(template_id)
            except ValueError:
                raise TemplateNotFound("Template not found") from None
        template = self.repo.get_by_id(template_id)
        if template is None:
            raise TemplateNotFound("Template not found")
        return template

    def delete(self, template_id: UUID) -> bool:
        return self.repo.delete(template_id)

    def delete_expired(self) -> int:
        return self.repo.delete_expired(self.clock.now())
