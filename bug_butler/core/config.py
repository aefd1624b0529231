"""Central configuration: constants, defaults, and YAML config loading."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .models import SLARule

VERSION = "0.1.0"

# =============================================================================
# Jira Connection Settings
# =============================================================================
DEFAULT_CONFIG_PATH = "config.yaml"
ENV_PREFIX = "JIRA_"
SEARCH_PAGE_SIZE = 100

# =============================================================================
# Jira Custom Field IDs
# =============================================================================
FIELD_IDS = {
    "sprint": "customfield_10020",
    "story_points": "customfield_10016",
}

UNKNOWN = "Unknown"

# Fields requested per query; custom fields are appended at fetch time
OPEN_BUG_FIELDS: Sequence[str] = ("summary", "priority", "status", "issuetype", "created", "updated")
TREND_BUG_FIELDS: Sequence[str] = (
    "summary",
    "priority",
    "status",
    "issuetype",
    "created",
    "updated",
    "resolution",
    "resolutiondate",
)
SPRINT_ISSUE_FIELDS: Sequence[str] = ("summary", "issuetype", "status", "resolution", "resolutiondate")

# =============================================================================
# Stats Defaults
# =============================================================================
DEFAULT_MONTHS_TO_ANALYZE: int = 24
DEFAULT_REDUCTION_GOAL_PERCENT: float = 20.0
HISTORY_YEARS: int = 3  # Backlog reconstruction needs issues older than the display window

# =============================================================================
# Display Defaults
# =============================================================================
MONTHLY_TABLE_MONTHS: int = 12
PRIORITY_BREAKDOWN_MONTHS: int = 6
TREND_ARROW_THRESHOLD: float = 5.0
SUMMARY_MAX_LEN: int = 40
PRIORITY_DISPLAY_ORDER: Sequence[str] = ("Critical", "High", "Medium", "Low")

_ENV_REF = re.compile(r"\$\{([^}]+)\}")


class ConfigError(ValueError):
    """Raised when the configuration file is missing, unreadable, or invalid."""


@dataclass(slots=True)
class JiraSettings:
    base_url: str = ""
    email: str = ""
    api_token: str = ""
    project_keys: list[str] = field(default_factory=list)
    additional_jql: str = ""
    sprint_field: str = FIELD_IDS["sprint"]
    story_points_field: str = FIELD_IDS["story_points"]


@dataclass(slots=True)
class StatsSettings:
    months_to_analyze: int = DEFAULT_MONTHS_TO_ANALYZE
    reduction_goal_percent: float = DEFAULT_REDUCTION_GOAL_PERCENT
    show_sprints: bool = False
    sprint_name_begins_with: str = ""
    sprint_name_pattern: str = ""
    sprint_board_filter: str = ""


@dataclass(slots=True)
class AppConfig:
    jira: JiraSettings
    sla_rules: list[SLARule] = field(default_factory=list)
    stats: StatsSettings = field(default_factory=StatsSettings)


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> AppConfig:
    """Load, interpolate, and validate the YAML configuration at ``path``.

    Parameters
    ----------
    path : str or Path
        Location of the YAML file.
    env : Mapping, optional
        Environment used for ``JIRA_*`` overrides and ``${VAR}``
        interpolation. Defaults to ``os.environ``.

    Returns
    -------
    AppConfig
        Fully validated configuration.

    Raises
    ------
    ConfigError
        If the file cannot be read or any setting is invalid.
    """
    env = os.environ if env is None else env
    config_path = Path(path)
    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except OSError as exc:
        raise ConfigError(f"failed to load config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config file {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a mapping")

    cfg = parse_config(data, env)
    validate_config(cfg)
    return cfg


def parse_config(data: Mapping[str, Any], env: Mapping[str, str]) -> AppConfig:
    jira_raw = dict(data.get("jira") or {})
    for key in ("base_url", "email", "api_token"):
        override = env.get(f"{ENV_PREFIX}{key.upper()}")
        if override:
            jira_raw[key] = override

    custom_fields = jira_raw.get("custom_field_ids") or {}
    project_keys = [str(k) for k in (jira_raw.get("project_keys") or []) if k]
    legacy_key = jira_raw.get("project_key")
    if legacy_key and not project_keys:
        project_keys = [str(legacy_key)]

    jira = JiraSettings(
        base_url=_interpolate(str(jira_raw.get("base_url") or ""), env, "jira.base_url").rstrip("/"),
        email=_interpolate(str(jira_raw.get("email") or ""), env, "jira.email"),
        api_token=_interpolate(str(jira_raw.get("api_token") or ""), env, "jira.api_token"),
        project_keys=project_keys,
        additional_jql=str(jira_raw.get("additional_jql") or "").strip(),
        sprint_field=str(custom_fields.get("sprint") or FIELD_IDS["sprint"]),
        story_points_field=str(custom_fields.get("story_points") or FIELD_IDS["story_points"]),
    )

    rules = [_parse_rule(idx, raw) for idx, raw in enumerate(data.get("sla_rules") or [])]

    stats_raw = data.get("stats") or {}
    try:
        stats = StatsSettings(
            months_to_analyze=int(stats_raw.get("months_to_analyze", DEFAULT_MONTHS_TO_ANALYZE)),
            reduction_goal_percent=float(
                stats_raw.get("reduction_goal_percent", DEFAULT_REDUCTION_GOAL_PERCENT)
            ),
            show_sprints=bool(stats_raw.get("show_sprints", False)),
            sprint_name_begins_with=str(stats_raw.get("sprint_name_begins_with") or ""),
            sprint_name_pattern=str(stats_raw.get("sprint_name_pattern") or ""),
            sprint_board_filter=str(stats_raw.get("sprint_board_filter") or ""),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid stats settings: {exc}") from exc

    return AppConfig(jira=jira, sla_rules=rules, stats=stats)


def _parse_rule(idx: int, raw: Any) -> SLARule:
    if not isinstance(raw, dict):
        raise ConfigError(f"sla_rules[{idx}] must be a mapping")
    status = raw.get("status")
    # A single status string is shorthand for a one-element list
    if isinstance(status, str):
        statuses: tuple[str, ...] = (status,)
    else:
        statuses = tuple(str(s) for s in (status or []))
    try:
        max_age = float(raw.get("max_age_days", 0))
        severity = int(raw.get("severity", 0))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"sla_rules[{idx}] has a non-numeric field: {exc}") from exc
    return SLARule(
        name=str(raw.get("name") or ""),
        priority=str(raw.get("priority") or ""),
        statuses=statuses,
        max_age_days=max_age,
        bucket=str(raw.get("bucket") or ""),
        severity=severity,
    )


def _interpolate(value: str, env: Mapping[str, str], key: str) -> str:
    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        resolved = env.get(name)
        if not resolved:
            raise ConfigError(f"environment variable {name} referenced by {key} is not set")
        return resolved

    return _ENV_REF.sub(replace, value)


def validate_config(cfg: AppConfig) -> None:
    jira = cfg.jira
    if not jira.base_url:
        raise ConfigError("jira.base_url is required")
    if not jira.email:
        raise ConfigError("jira.email is required")
    if not jira.api_token:
        raise ConfigError("jira.api_token is required")
    if not jira.project_keys:
        raise ConfigError("either jira.project_keys or jira.project_key is required")

    if not cfg.sla_rules:
        raise ConfigError("at least one SLA rule is required")
    for idx, rule in enumerate(cfg.sla_rules):
        if not rule.name:
            raise ConfigError(f"sla_rules[{idx}].name is required")
        if rule.max_age_days < 0:
            raise ConfigError(f"sla_rules[{idx}].max_age_days must be non-negative")
        if not rule.bucket:
            raise ConfigError(f"sla_rules[{idx}].bucket is required")
        if rule.severity < 1:
            raise ConfigError(f"sla_rules[{idx}].severity must be >= 1")

    if cfg.stats.months_to_analyze < 1:
        raise ConfigError("stats.months_to_analyze must be >= 1")
    if not 0 <= cfg.stats.reduction_goal_percent <= 100:
        raise ConfigError("stats.reduction_goal_percent must be between 0 and 100")
