from pathlib import Path

import pytest

from chartserver.rules.loader import load_rules

PROJECT_RULES = Path(__file__).resolve().parents[2] / "rules.yaml"


def test_project_rules_load() -> None:
    rules = load_rules(PROJECT_RULES, env={})
    assert rules.limits.max_width == 3000
    assert rules.renderer.default_version == "2.9.4"
    assert rules.templates.expiry_days == 180
    assert rules.http.json_limit_bytes == 102400
    assert rules.http.rate_limit.per_minute is None


def test_no_path_gives_defaults() -> None:
    rules = load_rules(None, env={})
    assert rules.limits.max_height == 3000
    assert rules.renderer.default_device_pixel_ratio == 2.0
    assert rules.http.cache_max_age == 604800


def test_env_overrides(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("limits:\n  max_width: 800\n")
    env = {"CHART_MAX_HEIGHT": "400", "RATE_LIMIT_PER_MIN": "5", "CHART_MAX_WIDTH": ""}

    rules = load_rules(path, env=env)

    assert rules.limits.max_width == 800
    assert rules.limits.max_height == 400
    assert rules.http.rate_limit.per_minute == 5


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "nope.yaml", env={})


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("limits: [unclosed\n")
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_rules(path, env={})


def test_top_level_must_be_mapping(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        load_rules(path, env={})


def test_schema_violation(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("limits:\n  max_width: -1\n")
    with pytest.raises(ValueError, match="validation failed"):
        load_rules(path, env={})


def test_bad_env_value_is_validation_error() -> None:
    with pytest.raises(ValueError, match="validation failed"):
        load_rules(None, env={"CHART_MAX_WIDTH": "wide"})
