"""
Configuration loader for scoped_commit.

Two JSON files are read:

* ``~/.scoped_commit/llm_config.json`` holds the connection settings of
  the Ollama server. It is user specific and shared across
  repositories.
* ``.scoped_commit.json`` in the repository root holds the project
  settings: how scopes are derived, which message transforms run, the
  diff size limit and the changelog locations.

If a file is missing, malformed, or has fields of the wrong type, a
:class:`ConfigLoadError` is raised. Configuration errors are fatal for a
run and are raised before any scope is processed.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

from scoped_commit.config.models import (
    ChangelogConfig,
    DiffConfig,
    IssueConfig,
    IssueMode,
    ProjectConfig,
    TransformConfig,
)
from scoped_commit.grouping.group_model import ScopeConfig, ScopeMode


logger = logging.getLogger(__name__)

LLM_CONFIG_FILENAME = "llm_config.json"
PROJECT_CONFIG_FILENAME = ".scoped_commit.json"


class ConfigLoadError(Exception):
    """Raised when a configuration or manifest file is missing or invalid."""

    pass


def _get_config_directory() -> Path:
    """Return the user-level configuration directory ``~/.scoped_commit``."""
    return Path.home() / ".scoped_commit"


def _read_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.error("Configuration file '%s' does not exist", path)
        raise ConfigLoadError(f"Missing configuration file: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigLoadError(f"Invalid JSON in {path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{path.name} must contain a JSON object")
    return data


def load_llm_config() -> Dict[str, Any]:
    """Load the Ollama connection settings from the user's home directory.

    Returns
    -------
    Dict[str, Any]
        The validated configuration with keys:
        - base_url (str): The base URL of the Ollama server
        - port (int): The port number
        - model (str): The model name
        - request_timeout (int|float, optional): Request timeout in seconds
        - max_tokens (int, optional): Maximum tokens for generation
        - temperature (int|float, optional): Sampling temperature
        - top_p (int|float, optional): Nucleus sampling threshold

    Raises
    ------
    ConfigLoadError
        If the file is missing, malformed, or invalid.
    """
    config_path = _get_config_directory() / LLM_CONFIG_FILENAME
    data = _read_json(config_path)

    required_keys = ["base_url", "port", "model"]
    missing = [key for key in required_keys if key not in data]
    if missing:
        logger.error("LLM configuration missing required keys: %s", missing)
        raise ConfigLoadError(
            f"Missing required configuration keys: {', '.join(missing)}"
        )

    if not isinstance(data.get("base_url"), str):
        raise ConfigLoadError("'base_url' must be a string")
    if not isinstance(data.get("port"), int) or isinstance(data.get("port"), bool):
        raise ConfigLoadError("'port' must be an integer")
    if not isinstance(data.get("model"), str):
        raise ConfigLoadError("'model' must be a string")

    for key in ("request_timeout", "temperature", "top_p"):
        if key in data and not isinstance(data[key], (int, float)):
            raise ConfigLoadError(f"'{key}' must be a number")
    if "max_tokens" in data and not isinstance(data["max_tokens"], int):
        raise ConfigLoadError("'max_tokens' must be an integer")

    logger.debug("Loaded LLM configuration from: %s", config_path)
    return data


# ----------------------------------------------------------------------
# Project configuration
# ----------------------------------------------------------------------
def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigLoadError(f"'{key}' must be an object")
    return value


def _optional_str(section: Dict[str, Any], key: str, name: str) -> Optional[str]:
    value = section.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigLoadError(f"'{name}' must be a string")
    return value


def _bool(section: Dict[str, Any], key: str, name: str) -> bool:
    value = section.get(key, False)
    if not isinstance(value, bool):
        raise ConfigLoadError(f"'{name}' must be a boolean")
    return value


def _string_list(section: Dict[str, Any], key: str, name: str, default=()):
    value = section.get(key)
    if value is None:
        return tuple(default)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigLoadError(f"'{name}' must be a list of strings")
    return tuple(value)


def _parse_scope(commit: Dict[str, Any]) -> ScopeConfig:
    scope = _section(commit, "scope")
    defaults = ScopeConfig()
    try:
        mode = ScopeMode(scope.get("mode", defaults.mode.value))
    except ValueError as exc:
        raise ConfigLoadError(
            f"'commit.scope.mode' must be one of: {', '.join(m.value for m in ScopeMode)}"
        ) from exc
    return ScopeConfig(
        mode=mode,
        source_root=_optional_str(scope, "source_root", "commit.scope.source_root")
        or defaults.source_root,
        monorepo_directories=_string_list(
            scope,
            "monorepo_directories",
            "commit.scope.monorepo_directories",
            default=defaults.monorepo_directories,
        ),
        entry_point=_optional_str(scope, "entry_point", "commit.scope.entry_point")
        or defaults.entry_point,
    )


def _parse_transforms(commit: Dict[str, Any]) -> TransformConfig:
    issue = _section(commit, "issue")
    fmt = _section(commit, "format")
    try:
        issue_mode = IssueMode(issue.get("mode", IssueMode.OFF.value))
    except ValueError as exc:
        raise ConfigLoadError(
            f"'commit.issue.mode' must be one of: {', '.join(m.value for m in IssueMode)}"
        ) from exc
    key_regex = _optional_str(issue, "key_regex", "commit.issue.key_regex") or IssueConfig().key_regex
    try:
        re.compile(key_regex)
    except re.error as exc:
        raise ConfigLoadError(f"'commit.issue.key_regex' is not a valid pattern: {exc}") from exc
    return TransformConfig(
        issue=IssueConfig(
            mode=issue_mode,
            key_regex=key_regex,
            fallback_key=_optional_str(issue, "fallback_key", "commit.issue.fallback_key"),
        ),
        sentence_case=_bool(fmt, "sentence_case", "commit.format.sentence_case"),
        use_emoji=_bool(fmt, "use_emoji", "commit.format.use_emoji"),
        scope_trim=_optional_str(commit, "scope_trim", "commit.scope_trim") or None,
    )


def _parse_diff(data: Dict[str, Any]) -> DiffConfig:
    diff = _section(data, "diff")
    max_size = diff.get("max_size", DiffConfig().max_size)
    if not isinstance(max_size, int) or isinstance(max_size, bool) or max_size <= 0:
        raise ConfigLoadError("'diff.max_size' must be a positive integer")
    return DiffConfig(
        max_size=max_size,
        exclude=_string_list(diff, "exclude", "diff.exclude"),
    )


def _parse_changelog(data: Dict[str, Any]) -> ChangelogConfig:
    changelog = _section(data, "changelog")
    defaults = ChangelogConfig()
    return ChangelogConfig(
        destination=_optional_str(changelog, "destination", "changelog.destination")
        or defaults.destination,
        app_name=_optional_str(changelog, "app_name", "changelog.app_name"),
        path=_optional_str(changelog, "path", "changelog.path") or defaults.path,
        manifest=_optional_str(changelog, "manifest", "changelog.manifest") or defaults.manifest,
    )


def load_project_config(repo_root: Path) -> ProjectConfig:
    """Load ``.scoped_commit.json`` from ``repo_root``.

    All sections are optional; missing values take the defaults of the
    records in :mod:`scoped_commit.config.models`.

    Raises
    ------
    ConfigLoadError
        If the file is missing, malformed, or has invalid values.
    """
    config_path = Path(repo_root) / PROJECT_CONFIG_FILENAME
    data = _read_json(config_path)
    commit = _section(data, "commit")

    max_attempts = commit.get("max_attempts")
    if max_attempts is not None and (
        not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1
    ):
        raise ConfigLoadError("'commit.max_attempts' must be a positive integer or null")

    config = ProjectConfig(
        scope=_parse_scope(commit),
        transforms=_parse_transforms(commit),
        diff=_parse_diff(data),
        changelog=_parse_changelog(data),
        max_attempts=max_attempts,
    )
    logger.debug("Loaded project configuration from %s: %s", config_path, config)
    return config
