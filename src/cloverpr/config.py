"""Configuration parsing from ``.cloverpr.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from cloverpr.adapters.coverage.clover import DEFAULT_CLOVER_PATH

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".cloverpr.yml"

DEFAULT_SUCCESS_MESSAGE = ":+1: Test coverage is looking good."
DEFAULT_FAILURE_MESSAGE = (
    "Test coverage is looking a little low for the files created or modified in this PR, "
    "perhaps we need to improve this."
)
DEFAULT_THRESHOLD = 80.0
DEFAULT_MAX_ROWS = 3
DEFAULT_MAX_CHARS = 100

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_MAX_PERCENTAGE = 100.0


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass(frozen=True)
class ThresholdConfig:
    """Minimum coverage percentage per metric."""

    statements: float = DEFAULT_THRESHOLD
    branches: float = DEFAULT_THRESHOLD
    functions: float = DEFAULT_THRESHOLD
    lines: float = DEFAULT_THRESHOLD


@dataclass(frozen=True)
class GitHubConfig:
    """Pull request comment configuration."""

    post_comment: bool = False
    """Create or update a PR comment with the report (GitHub Actions only)."""

    token: str = ""
    """GitHub token (supports ${ENV_VAR} expansion; falls back to GITHUB_TOKEN)."""


@dataclass(frozen=True)
class CloverprConfig:
    """Complete cloverpr configuration from ``.cloverpr.yml``."""

    root: str
    """Project root; absolute report paths are made relative to it."""

    report_path: str = DEFAULT_CLOVER_PATH
    """Clover report location, relative to ``root`` unless absolute."""

    success_message: str = DEFAULT_SUCCESS_MESSAGE
    """Banner shown when every file meets its thresholds."""

    failure_message: str = DEFAULT_FAILURE_MESSAGE
    """Banner shown when any file misses a threshold."""

    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)
    """Per-metric thresholds."""

    max_rows: int = DEFAULT_MAX_ROWS
    """Rows shown in the table before the rest are collapsed."""

    max_chars: int = DEFAULT_MAX_CHARS
    """Path length above which paths are shortened."""

    show_all_files: bool = False
    """Report every file in the coverage report, not just changed ones."""

    warn_on_no_report: bool = True
    """Emit a warning when no coverage report is found."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    """GitHub integration."""

    raw: dict[str, Any] = field(default_factory=dict, compare=False)
    """Raw parsed YAML for extension/debugging."""

    @property
    def report_file(self) -> Path:
        """Return the absolute path of the coverage report."""
        return Path(self.root) / self.report_path


def _parse_threshold_config(raw: dict[str, Any]) -> ThresholdConfig:
    """Parse threshold configuration from raw YAML."""
    threshold_raw = raw.get("threshold", {})
    if not isinstance(threshold_raw, dict):
        threshold_raw = {}

    return ThresholdConfig(
        statements=float(threshold_raw.get("statements", DEFAULT_THRESHOLD)),
        branches=float(threshold_raw.get("branches", DEFAULT_THRESHOLD)),
        functions=float(threshold_raw.get("functions", DEFAULT_THRESHOLD)),
        lines=float(threshold_raw.get("lines", DEFAULT_THRESHOLD)),
    )


def _parse_github_config(raw: dict[str, Any]) -> GitHubConfig:
    """Parse GitHub configuration from raw YAML."""
    github_raw = raw.get("github", {})
    if not isinstance(github_raw, dict):
        github_raw = {}

    return GitHubConfig(
        post_comment=bool(github_raw.get("post_comment", False)),
        token=str(github_raw.get("token", "")),
    )


def load_config(root: str | Path) -> CloverprConfig:
    """Load and parse ``.cloverpr.yml`` from ``root``.

    Falls back to defaults when the file is missing or incomplete.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        text = config_file.read_text(encoding="utf-8")
        parsed = yaml.safe_load(text)
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        logger.debug("Loaded configuration from %s", config_file)

    return CloverprConfig(
        root=str(root_path),
        report_path=str(raw.get("report_path", DEFAULT_CLOVER_PATH)),
        success_message=str(raw.get("success_message", DEFAULT_SUCCESS_MESSAGE)),
        failure_message=str(raw.get("failure_message", DEFAULT_FAILURE_MESSAGE)),
        threshold=_parse_threshold_config(raw),
        max_rows=int(raw.get("max_rows", DEFAULT_MAX_ROWS)),
        max_chars=int(raw.get("max_chars", DEFAULT_MAX_CHARS)),
        show_all_files=bool(raw.get("show_all_files", False)),
        warn_on_no_report=bool(raw.get("warn_on_no_report", True)),
        github=_parse_github_config(raw),
        raw=raw,
    )


def apply_overrides(config: CloverprConfig, **overrides: Any) -> CloverprConfig:
    """Return a copy of ``config`` with non-None overrides applied.

    Threshold overrides are given as ``threshold_<metric>`` keys.
    """
    threshold_updates = {
        key.removeprefix("threshold_"): float(value)
        for key, value in overrides.items()
        if key.startswith("threshold_") and value is not None
    }
    updates = {
        key: value
        for key, value in overrides.items()
        if not key.startswith("threshold_") and value is not None
    }
    if threshold_updates:
        updates["threshold"] = replace(config.threshold, **threshold_updates)
    return replace(config, **updates)


def _validate_threshold_config(threshold: ThresholdConfig) -> list[str]:
    """Validate coverage threshold settings."""
    errors: list[str] = []

    for metric in ("statements", "branches", "functions", "lines"):
        value = getattr(threshold, metric)
        if not 0.0 <= value <= _MAX_PERCENTAGE:
            errors.append(f"threshold.{metric} must be between 0 and 100 (got: {value})")

    return errors


def validate_config(config: CloverprConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.report_path:
        errors.append("report_path is required")

    if config.max_rows < 1:
        errors.append(f"max_rows must be at least 1 (got: {config.max_rows})")

    if config.max_chars < 1:
        errors.append(f"max_chars must be at least 1 (got: {config.max_chars})")

    errors.extend(_validate_threshold_config(config.threshold))

    return errors
