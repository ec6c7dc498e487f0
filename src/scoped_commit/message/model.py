"""
Structured representation of a commit message.

Generated messages are kept as a :class:`CommitMessage` record while the
transform pipeline runs and are only turned into text by
:meth:`CommitMessage.render` when shown to the user or committed. The
rendered text has the shape::

    type(scope): [emoji ]summary[ BREAKING][ [ISSUE-1]]

    description

The scope segment is left out for the root scope ``"."`` and the
description block is left out when there is no description.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from scoped_commit.grouping.group_model import ROOT_SCOPE


COMMIT_TYPES: Tuple[str, ...] = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "perf",
    "test",
    "chore",
    "ci",
    "build",
    "revert",
)

COMMIT_TYPE_EMOJIS: Dict[str, str] = {
    "feat": "🎉",
    "fix": "🐛",
    "docs": "📚",
    "style": "💄",
    "refactor": "🧹",
    "perf": "🚀",
    "test": "🧪",
    "chore": "🧹",
    "ci": "🤖",
    "build": "🏗️",
    "revert": "⏪",
}

BREAKING_MARKER = "BREAKING"

_HEADER_RE = re.compile(r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?:[ ]?(?P<subject>.*)$")
_ISSUE_SUFFIX_RE = re.compile(r"\s\[(?P<key>[^\]\s]+)\]$")


@dataclass(frozen=True)
class CommitMessage:
    """A commit message split into its fields.

    Attributes
    ----------
    type : str
        Conventional Commit type, e.g. ``feat``.
    summary : str
        The subject text after the colon (without emoji, breaking marker
        or issue key).
    scope : Optional[str]
        Scope key; ``None``, empty or ``"."`` means no scope segment.
    description : str
        Body text placed after a blank line.
    breaking : bool
        Whether ``BREAKING`` is appended to the subject.
    issue_key : Optional[str]
        Issue key appended to the subject as ``[KEY]``.
    emoji : Optional[str]
        Emoji placed right after the colon.
    """

    type: str
    summary: str
    scope: Optional[str] = None
    description: str = ""
    breaking: bool = False
    issue_key: Optional[str] = None
    emoji: Optional[str] = None

    @property
    def has_scope(self) -> bool:
        return bool(self.scope) and self.scope != ROOT_SCOPE

    def header(self) -> str:
        """Return the first line of the rendered message."""
        prefix = f"{self.type}({self.scope})" if self.has_scope else self.type
        subject = self.summary
        if self.emoji:
            subject = f"{self.emoji} {subject}" if subject else self.emoji
        if self.breaking:
            subject = f"{subject} {BREAKING_MARKER}"
        if self.issue_key:
            subject = f"{subject} [{self.issue_key}]"
        return f"{prefix}: {subject}"

    def render(self) -> str:
        """Serialize the record to commit message text."""
        if self.description:
            return f"{self.header()}\n\n{self.description}"
        return self.header()

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def parse(cls, text: str) -> "CommitMessage":
        """Parse rendered commit message text back into a record.

        A ``!`` before the colon, as in ``feat!: drop api``, marks the
        message as breaking like the ``BREAKING`` suffix does.

        Raises
        ------
        ValueError
            If the first line does not start with a ``type[(scope)]:``
            prefix.
        """
        first_line, _, rest = text.partition("\n")
        match = _HEADER_RE.match(first_line.strip())
        if not match:
            raise ValueError(f"Not a commit message header: {first_line!r}")

        subject = match.group("subject").rstrip()
        issue_key = None
        issue_match = _ISSUE_SUFFIX_RE.search(subject)
        if issue_match:
            issue_key = issue_match.group("key")
            subject = subject[: issue_match.start()].rstrip()

        breaking = bool(match.group("bang"))
        if subject.endswith(f" {BREAKING_MARKER}"):
            breaking = True
            subject = subject[: -len(BREAKING_MARKER) - 1].rstrip()

        emoji = None
        for candidate in set(COMMIT_TYPE_EMOJIS.values()):
            if subject == candidate or subject.startswith(f"{candidate} "):
                emoji = candidate
                subject = subject[len(candidate):].lstrip()
                break

        return cls(
            type=match.group("type"),
            scope=match.group("scope"),
            summary=subject,
            description=rest.strip("\n"),
            breaking=breaking,
            issue_key=issue_key,
            emoji=emoji,
        )
