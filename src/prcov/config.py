"""Configuration parsing from ``.prcov.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from prcov.utils.git import GITHUB_API_BASE

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".prcov.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TRUTHY = frozenset({True, "true", "1", "yes"})
_FALSY = frozenset({False, "false", "0", "no"})

DEFAULT_COVERAGE_FILE = "coverage/lcov.info"
DEFAULT_MINIMUM_COVERAGE = 80.0
DEFAULT_HTML_OUTPUT_DIR = "coverage-report"


class ConfigError(ValueError):
    """Raised when a configuration value cannot be interpreted."""


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


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {})
    return section if isinstance(section, dict) else {}


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number (got: {value!r})") from exc


def _as_bool(value: Any, key: str) -> bool:
    normalized = value.strip().lower() if isinstance(value, str) else value
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ConfigError(f"{key} must be true or false (got: {value!r})")


@dataclass
class CoverageConfig:
    """Coverage artifact and threshold configuration."""

    file: str = DEFAULT_COVERAGE_FILE
    """Coverage artifact, relative to the project root (lcov ``.info`` or Istanbul ``.json``)."""

    minimum: float = DEFAULT_MINIMUM_COVERAGE
    """Minimum acceptable diff coverage percentage (default: 80%)."""

    fail_below_threshold: bool = True
    """Fail the check when diff coverage is below ``minimum``."""


@dataclass
class ReportConfig:
    """Reporting and output configuration."""

    comment_on_pr: bool = True
    """Post (or update) a coverage comment on the pull request."""

    html_output_dir: str = DEFAULT_HTML_OUTPUT_DIR
    """Directory for the HTML report; empty disables it."""

    json_output: str = ""
    """Path of the JSON report; empty disables it."""


@dataclass
class GitHubConfig:
    """GitHub API configuration."""

    token: str = ""
    """API token (supports ${ENV_VAR} expansion; falls back to GITHUB_TOKEN)."""

    api_url: str = GITHUB_API_BASE
    """API root, for GitHub Enterprise Server installs."""


@dataclass
class PrcovConfig:
    """Complete prcov configuration from ``.prcov.yml``."""

    root: str
    """Project root directory."""

    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    """Coverage configuration."""

    report: ReportConfig = field(default_factory=ReportConfig)
    """Reporting configuration."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    """GitHub configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""


def _parse_coverage_config(raw: dict[str, Any]) -> CoverageConfig:
    """Parse coverage configuration from raw YAML."""
    coverage_raw = _section(raw, "coverage")

    return CoverageConfig(
        file=str(
            coverage_raw.get("file", os.environ.get("PRCOV_COVERAGE_FILE", DEFAULT_COVERAGE_FILE))
        ),
        minimum=_as_float(
            coverage_raw.get(
                "minimum", os.environ.get("PRCOV_MINIMUM_COVERAGE", DEFAULT_MINIMUM_COVERAGE)
            ),
            "coverage.minimum",
        ),
        fail_below_threshold=_as_bool(
            coverage_raw.get("fail_below_threshold", True), "coverage.fail_below_threshold"
        ),
    )


def _parse_report_config(raw: dict[str, Any]) -> ReportConfig:
    """Parse report configuration from raw YAML."""
    report_raw = _section(raw, "report")
    html_output_dir = report_raw.get("html_output_dir", DEFAULT_HTML_OUTPUT_DIR)

    return ReportConfig(
        comment_on_pr=_as_bool(report_raw.get("comment_on_pr", True), "report.comment_on_pr"),
        html_output_dir="" if html_output_dir is None else str(html_output_dir),
        json_output=str(report_raw.get("json_output") or ""),
    )


def _parse_github_config(raw: dict[str, Any]) -> GitHubConfig:
    """Parse GitHub configuration from raw YAML."""
    github_raw = _section(raw, "github")

    return GitHubConfig(
        token=str(github_raw.get("token") or ""),
        api_url=str(github_raw.get("api_url") or GITHUB_API_BASE),
    )


def load_config(root: str | Path) -> PrcovConfig:
    """Load and parse the ``.prcov.yml`` configuration.

    Falls back to defaults and ``PRCOV_*`` environment variables when the
    YAML file is missing or incomplete.

    Raises:
        ConfigError: If a value has the wrong type.
        yaml.YAMLError: If the file is not valid YAML.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        text = config_file.read_text(encoding="utf-8")
        parsed = yaml.safe_load(text)
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: top level is not a mapping", config_file)

    return PrcovConfig(
        root=str(root_path),
        coverage=_parse_coverage_config(raw),
        report=_parse_report_config(raw),
        github=_parse_github_config(raw),
        raw=raw,
    )


def _validate_coverage_config(coverage: CoverageConfig) -> list[str]:
    """Validate coverage artifact and threshold settings."""
    max_percentage = 100.0
    errors: list[str] = []

    if not coverage.file.strip():
        errors.append("coverage.file must not be empty")

    if not 0.0 <= coverage.minimum <= max_percentage:
        errors.append(f"coverage.minimum must be between 0 and 100 (got: {coverage.minimum})")

    return errors


def _validate_github_config(github: GitHubConfig) -> list[str]:
    """Validate GitHub settings."""
    errors: list[str] = []

    if not github.api_url.startswith(("http://", "https://")):
        errors.append(f"github.api_url must be an http(s) URL (got: {github.api_url})")

    return errors


def validate_config(config: PrcovConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.root:
        errors.append("root is required")

    errors.extend(_validate_coverage_config(config.coverage))
    errors.extend(_validate_github_config(config.github))

    return errors
