"""prcov CLI: top-level command group."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import yaml
from rich.console import Console

from prcov import __version__
from prcov.adapters.coverage.base import CoverageError
from prcov.agents.analyzers.diff import DiffParseError
from prcov.agents.pipelines import CheckPipeline, CheckPipelineConfig
from prcov.agents.reporters import (
    GitHubCommentReporter,
    GitHubOutputWriter,
    HtmlReportGenerator,
    JSONReporter,
    reporter,
)
from prcov.agents.sources import DiffFileChangeSource, GitDiffChangeSource, GitHubChangeSource
from prcov.config import CONFIG_FILENAME, ConfigError, load_config, validate_config
from prcov.utils.git import (
    GitHubAPI,
    GitHubAPIError,
    GitHubPRInfo,
    GitOperationError,
    get_pr_info_from_env,
    parse_repo_slug,
)

if TYPE_CHECKING:
    from prcov.agents.reporters.base import ReportSink
    from prcov.agents.sources import PullRequestChangeSource
    from prcov.config import PrcovConfig

logger = logging.getLogger(__name__)
console = Console()

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Masking thresholds
_MIN_MASKED_VALUE_LENGTH = 8
_SENSITIVE_KEYS = frozenset({"token"})


def _config_to_dict(config: PrcovConfig) -> dict[str, Any]:
    """Convert PrcovConfig to dictionary for display."""
    result = asdict(config)
    # Remove the raw field as it's redundant
    result.pop("raw", None)
    return result


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Recursively mask sensitive values in configuration dict."""
    result = copy.deepcopy(config_dict)

    def _mask_dict(data: dict[str, Any]) -> None:
        for key, value in data.items():
            if key in _SENSITIVE_KEYS and isinstance(value, str) and value:
                if len(value) > _MIN_MASKED_VALUE_LENGTH:
                    data[key] = f"{value[:4]}...{value[-4:]}"
                else:
                    data[key] = "***"
            elif isinstance(value, dict):
                _mask_dict(value)

    _mask_dict(result)
    return result


def _load_config_or_abort(path: str) -> PrcovConfig:
    try:
        return load_config(path)
    except (ConfigError, yaml.YAMLError, OSError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


# ── check helpers ────────────────────────────────────────────────


def _resolve_pr_info(repo: str | None, pr_number: int | None) -> GitHubPRInfo | None:
    """PR from ``--repo``/``--pr`` when both are given, else from the Actions environment."""
    if repo and pr_number is not None:
        slug = parse_repo_slug(repo)
        if slug is None:
            raise click.BadParameter(f"expected OWNER/NAME, got {repo!r}", param_hint="--repo")
        return GitHubPRInfo(owner=slug[0], repo=slug[1], pr_number=pr_number)
    if repo or pr_number is not None:
        raise click.UsageError("--repo and --pr must be given together.")
    return get_pr_info_from_env()


def _make_api(config: PrcovConfig) -> GitHubAPI:
    return GitHubAPI(token=config.github.token or None, api_url=config.github.api_url)


def _select_change_source(
    root: Path,
    *,
    diff_file: str | None,
    base: str | None,
    head: str | None,
    api: GitHubAPI | None,
    pr_info: GitHubPRInfo | None,
) -> PullRequestChangeSource:
    """Pick the change source: a diff file, then local git, then the GitHub API."""
    if diff_file:
        return DiffFileChangeSource(Path(diff_file))
    if base:
        return GitDiffChangeSource(root, base, head)
    if head:
        raise click.UsageError("--head requires --base.")
    if pr_info is None:
        raise click.UsageError(
            "No pull request found. Pass --diff-file, --base, or --repo with --pr "
            "(or run inside a GitHub Actions pull_request workflow)."
        )
    if api is None:
        raise click.UsageError("A GitHub token is required to read pull request files.")
    return GitHubChangeSource(api, pr_info)


def _fetch_pr_title(api: GitHubAPI | None, pr_info: GitHubPRInfo | None) -> str | None:
    if api is None or pr_info is None:
        return None
    try:
        title = api.get_pull_request(pr_info).get("title")
    except GitHubAPIError as exc:
        logger.debug("Could not fetch PR title: %s", exc)
        return None
    return str(title) if title else None


# ── Commands ─────────────────────────────────────────────────────


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--ci", is_flag=True, help="CI mode: no step-by-step progress output.")
@click.version_option(version=__version__, prog_name="prcov")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool, ci: bool) -> None:
    """prcov: test coverage of the lines a pull request changes."""
    ctx.ensure_object(dict)
    ctx.obj["ci"] = ci
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
    )


@cli.command()
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option(
    "--coverage-file",
    default=None,
    help="Coverage artifact (lcov .info or Istanbul/Jest .json), relative to --path.",
)
@click.option(
    "--minimum-coverage",
    type=click.FloatRange(0.0, 100.0),
    default=None,
    help="Minimum diff coverage percentage.",
)
@click.option(
    "--fail-below/--no-fail-below",
    "fail_below",
    default=None,
    help="Exit with status 1 when diff coverage is below the minimum.",
)
@click.option(
    "--comment/--no-comment",
    "comment",
    default=None,
    help="Post or update a coverage comment on the pull request.",
)
@click.option("--html-dir", default=None, help="HTML report directory (empty to disable).")
@click.option("--json-output", default=None, help="Write a JSON report to this path.")
@click.option("--base", default=None, help="Base git ref for a local diff.")
@click.option("--head", default=None, help="Head git ref for a local diff (default: working tree).")
@click.option(
    "--diff-file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Read changes from a saved unified diff.",
)
@click.option("--repo", default=None, help="GitHub repository as OWNER/NAME.")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request number.")
@click.pass_context
def check(
    ctx: click.Context,
    path: str,
    coverage_file: str | None,
    minimum_coverage: float | None,
    fail_below: bool | None,
    comment: bool | None,
    html_dir: str | None,
    json_output: str | None,
    base: str | None,
    head: str | None,
    diff_file: str | None,
    repo: str | None,
    pr_number: int | None,
) -> None:
    """Check test coverage of the lines changed by a pull request.

    Examples:
      prcov check --base origin/main
      prcov check --diff-file pr.diff --coverage-file coverage/coverage-final.json
      prcov check --repo octo/app --pr 42 --minimum-coverage 90
    """
    ci_mode = bool(ctx.obj.get("ci"))
    root = Path(path)
    config = _load_config_or_abort(path)
    errors = validate_config(config)
    if errors:
        for error in errors:
            reporter.print_error(f"Invalid configuration: {error}")
        raise SystemExit(1)

    minimum = config.coverage.minimum if minimum_coverage is None else minimum_coverage
    fail_below_threshold = (
        config.coverage.fail_below_threshold if fail_below is None else fail_below
    )
    comment_on_pr = config.report.comment_on_pr if comment is None else comment
    report_dir = config.report.html_output_dir if html_dir is None else html_dir
    json_path = config.report.json_output if json_output is None else json_output

    pr_info = _resolve_pr_info(repo, pr_number)
    needs_api = pr_info is not None and (comment_on_pr or not (diff_file or base))
    api: GitHubAPI | None = None
    if needs_api:
        try:
            api = _make_api(config)
        except GitHubAPIError as e:
            if not (diff_file or base):
                reporter.print_error(str(e))
                raise SystemExit(1) from e
            reporter.print_warning(f"Skipping PR comment: {e}")

    source = _select_change_source(
        root, diff_file=diff_file, base=base, head=head, api=api, pr_info=pr_info
    )

    sinks: list[ReportSink] = [reporter]
    if comment_on_pr and api is not None and pr_info is not None:
        sinks.append(GitHubCommentReporter(api, pr_info))
    if report_dir:
        sinks.append(HtmlReportGenerator(root / report_dir))
    if json_path:
        sinks.append(JSONReporter(root / json_path))
    output_writer = GitHubOutputWriter()
    if output_writer.enabled:
        sinks.append(output_writer)

    pipeline = CheckPipeline(
        CheckPipelineConfig(
            project_root=root,
            coverage_file=root / (coverage_file or config.coverage.file),
            change_source=source,
            minimum_coverage=minimum,
            fail_below_threshold=fail_below_threshold,
            sinks=sinks,
            ci_mode=ci_mode,
            pr_number=pr_info.pr_number if pr_info else None,
            pr_title=_fetch_pr_title(api, pr_info),
        )
    )

    try:
        outcome = pipeline.run()
    except CoverageError as e:
        reporter.print_error(str(e))
        raise SystemExit(1) from e
    except (GitHubAPIError, GitOperationError, DiffParseError) as e:
        reporter.print_error(f"Could not list changed files: {e}")
        raise SystemExit(1) from e
    except OSError as e:
        reporter.print_error(f"I/O error: {e}")
        raise SystemExit(1) from e

    console.print()
    if report_dir:
        reporter.print_info(f"HTML report: {root / report_dir / 'index.html'}")
    if json_path:
        reporter.print_info(f"JSON report: {root / json_path}")
    if outcome.failed:
        reporter.print_error(
            f"Diff coverage {outcome.result.coverage_percent:.2f}% is below the required "
            f"{minimum:g}%"
        )
        raise SystemExit(1)
    if outcome.meets_threshold:
        reporter.print_success("Diff coverage check passed")
    else:
        reporter.print_warning("Diff coverage is below the minimum (not failing)")


@cli.group("config")
def config_group() -> None:
    """Inspect `.prcov.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option(
    "--json-output",
    "as_json",
    is_flag=True,
    help="Output as JSON instead of YAML.",
)
def config_show(path: str, *, as_json: bool) -> None:
    """Display resolved configuration with the token masked.

    Example:
      prcov config show
      prcov config show --json-output
    """
    config = _load_config_or_abort(path)
    config_dict = _mask_sensitive_values(_config_to_dict(config))

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print()
        console.print("[bold cyan]Configuration:[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate `.prcov.yml` configuration.

    Example:
      prcov config validate
    """
    config = _load_config_or_abort(path)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    console.print(
        f"[dim]Fix these errors in {CONFIG_FILENAME} and run 'prcov config validate' again.[/dim]"
    )
    raise click.Abort
