"""
Typed configuration records for scoped_commit.

These dataclasses hold the subset of the project configuration the
commit engine reads. They are built by
:func:`scoped_commit.config.loader.load_project_config` and treated as
read-only for the duration of a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from scoped_commit.grouping.group_model import ScopeConfig, ScopeMode


DEFAULT_ISSUE_KEY_REGEX = r"[A-Za-z]+-[0-9]+"
DEFAULT_MAX_DIFF_SIZE = 10000
DEFAULT_DESTINATION_BRANCH = "main"


class IssueMode(str, Enum):
    """How the issue key for a commit message is obtained."""

    OFF = "off"
    BRANCH = "branch"
    PROMPT = "prompt"


@dataclass(frozen=True)
class IssueConfig:
    mode: IssueMode = IssueMode.OFF
    key_regex: str = DEFAULT_ISSUE_KEY_REGEX
    fallback_key: Optional[str] = None


@dataclass(frozen=True)
class TransformConfig:
    """Switches for the message transform pipeline.

    Each field gates exactly one stage. ``scope_trim`` is the literal
    text removed from the scope; an empty or missing value disables
    the stage.
    """

    issue: IssueConfig = field(default_factory=IssueConfig)
    sentence_case: bool = False
    use_emoji: bool = False
    scope_trim: Optional[str] = None


@dataclass(frozen=True)
class DiffConfig:
    max_size: int = DEFAULT_MAX_DIFF_SIZE
    exclude: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ChangelogConfig:
    destination: str = DEFAULT_DESTINATION_BRANCH
    app_name: Optional[str] = None
    path: str = "CHANGELOG.md"
    manifest: str = "package.json"


@dataclass(frozen=True)
class ProjectConfig:
    """Everything read from the repository's ``.scoped_commit.json``."""

    scope: ScopeConfig = field(default_factory=ScopeConfig)
    transforms: TransformConfig = field(default_factory=TransformConfig)
    diff: DiffConfig = field(default_factory=DiffConfig)
    changelog: ChangelogConfig = field(default_factory=ChangelogConfig)
    max_attempts: Optional[int] = None

    @property
    def scope_mode(self) -> ScopeMode:
        return self.scope.mode
