import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from chartserver.rules.models import Rules

# Environment variables that override individual rules, kept for
# compatibility with existing deployments.
ENV_OVERRIDES = {
    "CHART_MAX_WIDTH": ("limits", "max_width"),
    "CHART_MAX_HEIGHT": ("limits", "max_height"),
    "RATE_LIMIT_PER_MIN": ("http", "rate_limit", "per_minute"),
}


def _apply_env(data: dict, env: Mapping[str, str]) -> dict:
    for var, path in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        node = data
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
    return data


def load_rules(path: Path | None, env: Mapping[str, str] | None = None) -> Rules:
    """
    Load and validate the rules file.
    A missing path yields the built-in defaults.
    Raises ValueError if the YAML or the schema is invalid.
    """
    data: dict = {}
    if path is not None:
        if not path.exists():
            raise FileNotFoundError(f"Rules file not found at: {path}")
        with open(path) as f:
            content = f.read()
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e
        if not isinstance(data, dict):
            raise ValueError("Rules file must contain a mapping at the top level")

    data = _apply_env(data, os.environ if env is None else env)

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e
