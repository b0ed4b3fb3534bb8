"""cloverpr CLI: top-level command group."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from cloverpr import __version__
from cloverpr.adapters.coverage.base import MalformedReportError
from cloverpr.agents.reporters.github_comment import post_report_from_env
from cloverpr.agents.reporters.terminal import CLIReporter, reporter
from cloverpr.config import CloverprConfig, apply_overrides, load_config, validate_config
from cloverpr.models.changeset import ChangeSet
from cloverpr.orchestrator import ReviewStatus, run_coverage_review
from cloverpr.utils.ci_context import detect_ci_context
from cloverpr.utils.git import (
    GitHubAPIError,
    GitOperationError,
    get_default_branch,
    get_head_sha,
    load_change_set,
)

logger = logging.getLogger(__name__)
console = Console(stderr=True)

# Masking threshold for secrets shown by `config show`
_MIN_MASKED_VALUE_LENGTH = 8


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _config_to_dict(config: CloverprConfig) -> dict[str, Any]:
    """Convert the configuration to a dictionary for display."""
    result = asdict(config)
    result.pop("raw", None)
    return result


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask the GitHub token in a configuration dict."""
    github = dict(config_dict.get("github", {}))
    token = github.get("token")
    if isinstance(token, str) and token:
        if len(token) > _MIN_MASKED_VALUE_LENGTH:
            github["token"] = f"{token[:4]}...{token[-4:]}"
        else:
            github["token"] = "***"
    return {**config_dict, "github": github}


def _load_config_or_abort(path: str) -> CloverprConfig:
    try:
        return load_config(path)
    except (yaml.YAMLError, ValueError, TypeError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


def _resolve_commit_sha(root: Path, sha: str | None) -> str | None:
    """Pick the commit report links point at: explicit, CI-provided, then local HEAD."""
    if sha:
        return sha
    ci_sha = detect_ci_context().commit_sha
    if ci_sha:
        return ci_sha
    try:
        return get_head_sha(root)
    except GitOperationError as exc:
        logger.debug("No commit to link against: %s", exc)
        return None


def _resolve_base_ref(root: Path, base: str | None) -> str:
    if base:
        return base
    ci_base = detect_ci_context().base_branch
    return f"origin/{ci_base or get_default_branch(root)}"


def _resolve_change_set(
    root: Path,
    *,
    created: tuple[str, ...],
    modified: tuple[str, ...],
    base: str | None,
    head: str,
    sha: str | None,
    show_all_files: bool,
) -> ChangeSet:
    """Build the change-set from explicit file lists or from git history."""
    if created or modified:
        commit = _resolve_commit_sha(root, sha)
        return ChangeSet(
            created_files=created,
            modified_files=modified,
            commits=(commit,) if commit else (),
        )

    try:
        change_set = load_change_set(root, _resolve_base_ref(root, base), head)
    except GitOperationError:
        if not show_all_files:
            raise
        logger.debug("No git change-set available; reporting all files", exc_info=True)
        change_set = ChangeSet()

    ci_sha = sha or detect_ci_context().commit_sha
    if ci_sha:
        change_set = replace(change_set, commits=(*change_set.commits, ci_sha))
    return change_set


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="cloverpr")
def cli(*, verbose: bool) -> None:
    """cloverpr: Clover coverage summaries for pull requests."""
    _configure_logging(verbose=verbose)


@cli.command()
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--report", "report_path", default=None, help="Clover report, relative to --path.")
@click.option("--base", default=None, help="Base ref to diff against (default: origin/<base>).")
@click.option("--head", default="HEAD", show_default=True, help="Head ref to diff.")
@click.option("--created", multiple=True, help="Created file (repeatable); skips git.")
@click.option("--modified", multiple=True, help="Modified file (repeatable); skips git.")
@click.option("--sha", default=None, help="Commit to link files and lines against.")
@click.option("--show-all-files/--changed-files-only", default=None, help="Report every file.")
@click.option("--max-rows", type=click.IntRange(min=1), default=None, help="Rows shown inline.")
@click.option("--max-chars", type=click.IntRange(min=1), default=None, help="Path width.")
@click.option("--threshold-statements", type=float, default=None)
@click.option("--threshold-branches", type=float, default=None)
@click.option("--threshold-functions", type=float, default=None)
@click.option("--threshold-lines", type=float, default=None)
@click.option("--success-message", default=None, help="Banner when thresholds are met.")
@click.option("--failure-message", default=None, help="Banner when thresholds are missed.")
@click.option("--warn-on-no-report/--no-warn-on-no-report", default=None)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["markdown", "table"]),
    default="markdown",
    show_default=True,
    help="Markdown report or a terminal table.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the markdown report to a file instead of stdout.",
)
@click.option("--post-comment", is_flag=True, help="Upsert the report as a GitHub PR comment.")
@click.option("--strict", is_flag=True, help="Exit 1 when any threshold is missed.")
def report(
    path: str,
    report_path: str | None,
    base: str | None,
    head: str,
    created: tuple[str, ...],
    modified: tuple[str, ...],
    sha: str | None,
    show_all_files: bool | None,
    max_rows: int | None,
    max_chars: int | None,
    threshold_statements: float | None,
    threshold_branches: float | None,
    threshold_functions: float | None,
    threshold_lines: float | None,
    success_message: str | None,
    failure_message: str | None,
    warn_on_no_report: bool | None,
    output_format: str,
    output: str | None,
    *,
    post_comment: bool,
    strict: bool,
) -> None:
    """Report coverage of the files changed in a pull request.

    Example:
      cloverpr report --base origin/main
      cloverpr report --created src/new.js --modified src/old.js --sha abc123
    """
    root = Path(path)
    config = apply_overrides(
        _load_config_or_abort(path),
        report_path=report_path,
        show_all_files=show_all_files,
        max_rows=max_rows,
        max_chars=max_chars,
        success_message=success_message,
        failure_message=failure_message,
        warn_on_no_report=warn_on_no_report,
        threshold_statements=threshold_statements,
        threshold_branches=threshold_branches,
        threshold_functions=threshold_functions,
        threshold_lines=threshold_lines,
    )

    errors = validate_config(config)
    if errors:
        for error in errors:
            reporter.print_error(error)
        raise click.Abort

    try:
        change_set = _resolve_change_set(
            root,
            created=created,
            modified=modified,
            base=base,
            head=head,
            sha=sha,
            show_all_files=config.show_all_files,
        )
    except GitOperationError as e:
        reporter.print_error(f"Could not determine changed files: {e}")
        raise click.Abort from e

    try:
        outcome = run_coverage_review(config, change_set, warn=reporter.print_warning)
    except (MalformedReportError, OSError) as e:
        reporter.print_error(f"Could not read coverage report: {e}")
        raise click.Abort from e

    if outcome.status is ReviewStatus.NO_CHANGES:
        reporter.print_info("No coverage reported for the changed files.")
        return
    if outcome.status is not ReviewStatus.REPORTED or outcome.markdown is None:
        return

    if output_format == "table":
        CLIReporter(Console()).print_coverage_table(outcome.files, config.threshold)
    elif output:
        Path(output).write_text(outcome.markdown + "\n", encoding="utf-8")
        reporter.print_success(f"Wrote coverage report to {output}")
    else:
        click.echo(outcome.markdown)

    if post_comment or config.github.post_comment:
        try:
            posted = post_report_from_env(
                outcome.markdown, github_token=config.github.token or None
            )
        except GitHubAPIError as e:
            reporter.print_error(f"Failed to post PR comment: {e}")
            raise click.Abort from e
        if posted:
            reporter.print_success(f"Posted coverage comment: {posted['comment_url']}")
        else:
            reporter.print_warning("Not running for a GitHub pull request; comment not posted.")

    if strict and not outcome.passed:
        raise SystemExit(1)


@cli.group("config")
def config_group() -> None:
    """Inspect `.cloverpr.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
@click.option("--no-mask", is_flag=True, help="Show the GitHub token unmasked.")
def config_show(path: str, *, as_json: bool, no_mask: bool) -> None:
    """Display the resolved configuration."""
    config_dict = _config_to_dict(_load_config_or_abort(path))
    if not no_mask:
        config_dict = _mask_sensitive_values(config_dict)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate `.cloverpr.yml`."""
    errors = validate_config(_load_config_or_abort(path))

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    raise click.Abort
