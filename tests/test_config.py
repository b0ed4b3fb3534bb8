"""Tests for config.py: .cloverpr.yml parsing and validation."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from cloverpr.config import (
    CONFIG_FILENAME,
    DEFAULT_FAILURE_MESSAGE,
    DEFAULT_SUCCESS_MESSAGE,
    CloverprConfig,
    GitHubConfig,
    ThresholdConfig,
    _resolve_dict,
    _resolve_env_vars,
    apply_overrides,
    load_config,
    validate_config,
)

if TYPE_CHECKING:
    import pytest


def _write_cloverpr_yml(root: Path, data: dict[str, Any]) -> None:
    """Write .cloverpr.yml with given data."""
    (root / CONFIG_FILENAME).write_text(yaml.dump(data), encoding="utf-8")


# ── _resolve_env_vars / _resolve_dict ─────────────────────────────────


class TestResolveEnvVars:
    def test_resolves_existing_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _resolve_env_vars("${MY_VAR}") == "hello"

    def test_missing_var_returns_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MISSING_VAR", raising=False)
        assert _resolve_env_vars("${MISSING_VAR}") == ""

    def test_no_vars_unchanged(self) -> None:
        assert _resolve_env_vars("plain text") == "plain text"


class TestResolveDict:
    def test_resolves_nested_dicts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOKEN", "secret")
        assert _resolve_dict({"github": {"token": "${TOKEN}"}}) == {
            "github": {"token": "secret"}
        }

    def test_resolves_list_items(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ITEM", "x")
        assert _resolve_dict({"items": ["${ITEM}", 2]}) == {"items": ["x", 2]}

    def test_passes_non_string_values(self) -> None:
        assert _resolve_dict({"max_rows": 3, "show_all_files": True}) == {
            "max_rows": 3,
            "show_all_files": True,
        }


# ── load_config ───────────────────────────────────────────────────────


class TestLoadConfig:
    def test_load_missing_yml(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)

        assert config.root == str(tmp_path.resolve())
        assert config.report_path == "coverage/clover.xml"
        assert config.success_message == DEFAULT_SUCCESS_MESSAGE
        assert config.failure_message == DEFAULT_FAILURE_MESSAGE
        assert config.threshold == ThresholdConfig(80.0, 80.0, 80.0, 80.0)
        assert config.max_rows == 3
        assert config.max_chars == 100
        assert config.show_all_files is False
        assert config.warn_on_no_report is True
        assert config.github == GitHubConfig()
        assert config.report_file == tmp_path.resolve() / "coverage" / "clover.xml"

    def test_load_empty_yml(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("", encoding="utf-8")
        assert load_config(tmp_path).max_rows == 3

    def test_load_full_yml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLOVERPR_TEST_TOKEN", "ghp_secret")
        _write_cloverpr_yml(
            tmp_path,
            {
                "report_path": "build/clover.xml",
                "success_message": "All good",
                "failure_message": "Not good",
                "threshold": {"statements": 90, "branches": 70, "functions": 85, "lines": 95},
                "max_rows": 5,
                "max_chars": 40,
                "show_all_files": True,
                "warn_on_no_report": False,
                "github": {"post_comment": True, "token": "${CLOVERPR_TEST_TOKEN}"},
            },
        )

        config = load_config(tmp_path)

        assert config.report_path == "build/clover.xml"
        assert config.success_message == "All good"
        assert config.failure_message == "Not good"
        assert config.threshold == ThresholdConfig(90.0, 70.0, 85.0, 95.0)
        assert config.max_rows == 5
        assert config.max_chars == 40
        assert config.show_all_files is True
        assert config.warn_on_no_report is False
        assert config.github == GitHubConfig(post_comment=True, token="ghp_secret")  # noqa: S106
        assert config.raw["max_rows"] == 5

    def test_root_key_ignored(self, tmp_path: Path) -> None:
        _write_cloverpr_yml(tmp_path, {"root": "."})

        config = load_config(tmp_path)

        assert config.root == str(tmp_path.resolve())
        assert config.report_file.is_absolute()

    def test_partial_threshold(self, tmp_path: Path) -> None:
        _write_cloverpr_yml(tmp_path, {"threshold": {"lines": 50}})
        assert load_config(tmp_path).threshold == ThresholdConfig(lines=50.0)

    def test_load_non_dict_sections(self, tmp_path: Path) -> None:
        _write_cloverpr_yml(tmp_path, {"threshold": "high", "github": ["x"]})

        config = load_config(tmp_path)

        assert config.threshold == ThresholdConfig()
        assert config.github == GitHubConfig()

    def test_non_mapping_document(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- a\n- b\n", encoding="utf-8")
        assert load_config(tmp_path).report_path == "coverage/clover.xml"


# ── apply_overrides ───────────────────────────────────────────────────


class TestApplyOverrides:
    def test_none_values_ignored(self) -> None:
        config = CloverprConfig(root="/app", max_rows=5)
        assert apply_overrides(config, max_rows=None, show_all_files=None) == config

    def test_values_applied(self) -> None:
        config = apply_overrides(
            CloverprConfig(root="/app"), max_rows=2, show_all_files=True, report_path="x.xml"
        )

        assert config.max_rows == 2
        assert config.show_all_files is True
        assert config.report_path == "x.xml"

    def test_threshold_overrides(self) -> None:
        config = apply_overrides(
            CloverprConfig(root="/app", threshold=ThresholdConfig(branches=60)),
            threshold_lines=50,
            threshold_statements=None,
        )

        assert config.threshold == ThresholdConfig(
            statements=80.0, branches=60.0, functions=80.0, lines=50.0
        )


# ── validate_config ───────────────────────────────────────────────────


class TestValidateConfig:
    def test_defaults_are_valid(self) -> None:
        assert validate_config(CloverprConfig(root="/app")) == []

    def test_empty_report_path(self) -> None:
        errors = validate_config(CloverprConfig(root="/app", report_path=""))
        assert errors == ["report_path is required"]

    def test_limits(self) -> None:
        errors = validate_config(CloverprConfig(root="/app", max_rows=0, max_chars=-1))
        assert errors == [
            "max_rows must be at least 1 (got: 0)",
            "max_chars must be at least 1 (got: -1)",
        ]

    def test_threshold_range(self) -> None:
        config = CloverprConfig(
            root="/app", threshold=ThresholdConfig(statements=101, lines=-5)
        )

        errors = validate_config(config)

        assert errors == [
            "threshold.statements must be between 0 and 100 (got: 101)",
            "threshold.lines must be between 0 and 100 (got: -5)",
        ]

    def test_threshold_bounds_inclusive(self) -> None:
        config = CloverprConfig(root="/app", threshold=ThresholdConfig(0, 100, 0, 100))
        assert validate_config(config) == []
