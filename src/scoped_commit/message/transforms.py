"""
Deterministic transforms applied to generated commit messages.

The pipeline is built from :class:`TransformConfig`. Only the stages
that are switched on are included, always in this order:

1. issue key injection
2. sentence case
3. scope trim
4. emoji

Each stage takes a :class:`CommitMessage` and returns a new one; none of
them mutate their input.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Callable, List, Optional, Sequence

from scoped_commit.config.models import IssueMode, TransformConfig
from scoped_commit.message.model import COMMIT_TYPE_EMOJIS, CommitMessage
from scoped_commit.vcs.git_client import GitError


logger = logging.getLogger(__name__)

Stage = Callable[[CommitMessage], CommitMessage]
IssueKeySource = Callable[[], Optional[str]]


# ----------------------------------------------------------------------
# Issue key sources
# ----------------------------------------------------------------------
class BranchIssueKeySource:
    """Read the issue key from the name of the current branch.

    ``feature/ABC-123-login`` yields ``ABC-123`` with the default
    pattern. Failures to read the branch are logged and treated as "no
    key" so that the fallback key applies.
    """

    def __init__(self, client, key_regex: str) -> None:
        self.client = client
        self.pattern = re.compile(key_regex)

    def __call__(self) -> Optional[str]:
        try:
            branch = self.client.get_current_branch()
        except GitError as exc:
            logger.error("Could not read the current branch for the issue key: %s", exc)
            return None
        match = self.pattern.search(branch or "")
        if not match:
            logger.debug("No issue key found in branch name %r", branch)
            return None
        return match.group(0)


class FixedIssueKeySource:
    """Always return the same key, e.g. one given on the command line."""

    def __init__(self, key: str) -> None:
        self.key = key

    def __call__(self) -> Optional[str]:
        return self.key


# ----------------------------------------------------------------------
# Stages
# ----------------------------------------------------------------------
class IssueKeyStage:
    """Append ``[KEY]`` to the subject line."""

    def __init__(self, source: IssueKeySource, fallback_key: Optional[str] = None) -> None:
        self.source = source
        self.fallback_key = fallback_key

    def __call__(self, message: CommitMessage) -> CommitMessage:
        key = (self.source() or "").strip() or self.fallback_key
        if not key:
            logger.warning("No issue key found and no fallback key configured; leaving message unchanged")
            return message
        return dataclasses.replace(message, issue_key=key)


def sentence_case(message: CommitMessage) -> CommitMessage:
    """Lowercase the first letter of the summary."""
    summary = message.summary
    if not summary or not summary[0].isupper():
        return message
    return dataclasses.replace(message, summary=summary[0].lower() + summary[1:])


class ScopeTrimStage:
    """Remove a literal substring from the scope, e.g. a shared package prefix."""

    def __init__(self, text: str) -> None:
        self.text = text

    def __call__(self, message: CommitMessage) -> CommitMessage:
        if not message.has_scope or self.text not in message.scope:
            return message
        return dataclasses.replace(message, scope=message.scope.replace(self.text, ""))


def add_emoji(message: CommitMessage) -> CommitMessage:
    """Put the emoji of the commit type right after the colon."""
    emoji = COMMIT_TYPE_EMOJIS.get(message.type)
    if emoji is None:
        logger.debug("No emoji known for commit type %r", message.type)
        return message
    return dataclasses.replace(message, emoji=emoji)


# ----------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------
class TransformPipeline:
    """Ordered list of message transforms."""

    def __init__(self, stages: Sequence[Stage] = ()) -> None:
        self.stages: List[Stage] = list(stages)

    def __len__(self) -> int:
        return len(self.stages)

    def apply(self, message: CommitMessage) -> CommitMessage:
        for stage in self.stages:
            message = stage(message)
        return message

    def apply_text(self, text: str) -> str:
        """Parse ``text``, run the stages and render the result.

        Text without a ``type:`` prefix cannot be transformed and is
        returned unchanged.
        """
        try:
            message = CommitMessage.parse(text)
        except ValueError:
            logger.warning("Message has no commit type prefix; transforms skipped")
            return text
        return self.apply(message).render()


def build_pipeline(
    config: TransformConfig,
    issue_key_source: Optional[IssueKeySource] = None,
) -> TransformPipeline:
    """Build the pipeline for ``config``.

    Parameters
    ----------
    config : TransformConfig
        Selects the stages.
    issue_key_source : callable, optional
        Supplies the issue key. The issue stage is included when the
        configured issue mode is not ``off`` and a source is given. A
        :class:`FixedIssueKeySource` is always honoured, even when the
        configured mode is ``off``.
    """
    stages: List[Stage] = []
    if issue_key_source is not None and (
        config.issue.mode != IssueMode.OFF or isinstance(issue_key_source, FixedIssueKeySource)
    ):
        stages.append(IssueKeyStage(issue_key_source, config.issue.fallback_key))
    if config.sentence_case:
        stages.append(sentence_case)
    if config.scope_trim:
        stages.append(ScopeTrimStage(config.scope_trim))
    if config.use_emoji:
        stages.append(add_emoji)
    return TransformPipeline(stages)
