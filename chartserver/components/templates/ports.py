"""
Templates component - port interfaces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chartserver.domain.entities import Template


class TemplateRepoPort(Protocol):
    """Repository interface for stored chart templates."""

    def save(self, template: Template) -> Template:
        """Insert a new template."""
        ...

    def get_by_id(self, template_id: UUID) -> Template | None:
        """Fetch a template, or None if absent."""
        ...

    def delete(self, template_id: UUID) -> bool:
        """Delete a template; returns whether a row was removed."""
        ...

    def delete_expired(self, now: datetime) -> int:
        """Delete templates whose expiry is before `now`; returns the count."""
        ...
