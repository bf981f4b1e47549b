"""
Templates component - stored chart configurations and overrides.
"""

from ._overrides import apply_chart_overrides, split_colors, split_numbers
from .component import DEFAULT_EXPIRY_DAYS, TemplateService, apply_overrides
from .models import CreateTemplateInput
from .ports import TemplateRepoPort

__all__ = [
    "TemplateService",
    "apply_overrides",
    "apply_chart_overrides",
    "split_colors",
    "split_numbers",
    "CreateTemplateInput",
    "DEFAULT_EXPIRY_DAYS",
    "TemplateRepoPort",
]
