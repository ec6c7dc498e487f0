"""
Per-scope commit orchestration.

:class:`CommitOrchestrator` takes one snapshot of the working tree,
groups the changed files by scope and then handles the scopes one after
the other: confirm, stage, diff, generate a message, let the user
accept it, commit. Scopes are independent; a failure in one scope is
logged and recorded in the :class:`RunReport` and the run goes on with
the next scope.

The interactive parts are injected as callables so the engine can be
driven by the CLI or by tests:

``scope_confirm(scope) -> bool``
    Whether the scope should be committed.
``message_confirm(message) -> (text, accepted)``
    Applies the transform pipeline, shows the message and returns the
    final text and whether it was accepted. Returning ``accepted=False``
    regenerates the message; raising :class:`ScopeSkipped` leaves the
    scope without committing.
``diff_reducer(diff, files) -> diff``
    Shrinks the diff sent to the model.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from scoped_commit.grouping.group_model import ScopeConfig
from scoped_commit.grouping.scope_grouper import group_files
from scoped_commit.llm.commit_message_generator import MessageGenerationError
from scoped_commit.message.model import CommitMessage
from scoped_commit.vcs.git_client import FileChange, GitError


logger = logging.getLogger(__name__)

ScopeConfirm = Callable[[str], bool]
MessageConfirm = Callable[[CommitMessage], Tuple[str, bool]]
DiffReducerFn = Callable[[str, Sequence[str]], str]


class ScopeSkipped(Exception):
    """Raised by a confirmation callback to leave a scope uncommitted."""

    pass


@dataclass(frozen=True)
class CommitArgs:
    """Per-invocation overrides from the command line."""

    breaking: bool = False
    scope: Optional[str] = None
    type: Optional[str] = None
    issue: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class RetryPolicy:
    """How often a rejected message is regenerated.

    ``max_attempts=None`` regenerates until the user accepts a message.
    """

    max_attempts: Optional[int] = None

    def allows(self, attempt: int) -> bool:
        return self.max_attempts is None or attempt <= self.max_attempts


class ScopeStatus(str, Enum):
    COMMITTED = "committed"
    DECLINED = "declined"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ScopeOutcome:
    scope: str
    status: ScopeStatus
    files: List[str] = field(default_factory=list)
    message: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0


@dataclass
class RunReport:
    outcomes: List[ScopeOutcome] = field(default_factory=list)

    def _with_status(self, status: ScopeStatus) -> List[ScopeOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == status]

    @property
    def committed(self) -> List[ScopeOutcome]:
        return self._with_status(ScopeStatus.COMMITTED)

    @property
    def failed(self) -> List[ScopeOutcome]:
        return self._with_status(ScopeStatus.FAILED)

    @property
    def declined(self) -> List[ScopeOutcome]:
        return self._with_status(ScopeStatus.DECLINED)


class _ScopeFailure(Exception):
    def __init__(self, operation: str, error: Exception) -> None:
        super().__init__(f"{operation} failed: {error}")
        self.operation = operation


class CommitOrchestrator:
    """Commit pending changes scope by scope.

    Parameters
    ----------
    client : GitClient
        Handle on the repository. All version control calls go through
        it.
    generator : CommitMessageGenerator
        Produces candidate messages.
    scope_config : ScopeConfig
        Selects how files are grouped into scopes.
    retry_policy : RetryPolicy, optional
        Bounds the regenerate-until-accepted loop. Unbounded by default.
    """

    def __init__(self, client, generator, scope_config: ScopeConfig, retry_policy: Optional[RetryPolicy] = None) -> None:
        self.client = client
        self.generator = generator
        self.scope_config = scope_config
        self.retry_policy = retry_policy or RetryPolicy()
        self._rename_sources: Dict[str, str] = {}

    def snapshot(self, changes: Optional[Sequence[FileChange]] = None) -> Tuple[List[str], List[str]]:
        """Return ``(non_deleted_paths, deleted_paths)`` of the working tree.

        ``changes`` may hold a status the caller already read; otherwise
        the client is asked.

        Raises
        ------
        GitError
            If the status cannot be read.
        """
        if changes is None:
            changes = self.client.get_changes()
        present = [change.path for change in changes if not change.is_deleted]
        deleted = [change.path for change in changes if change.is_deleted]
        # A staged rename removes the source path; commit it with the target.
        self._rename_sources = {
            change.path: change.orig_path for change in changes if change.orig_path
        }
        return present, deleted

    def run_all(
        self,
        scope_confirm: ScopeConfirm,
        message_confirm: MessageConfirm,
        diff_reducer: DiffReducerFn,
        args: Optional[CommitArgs] = None,
        changes: Optional[Sequence[FileChange]] = None,
    ) -> RunReport:
        """Process every scope of the current changes.

        Raises
        ------
        GitError
            Only when the initial status snapshot fails; later version
            control failures are confined to their scope.
        """
        args = args or CommitArgs()
        present, deleted = self.snapshot(changes)
        groups = group_files(present + deleted, self.scope_config)
        present_set, deleted_set = set(present), set(deleted)
        report = RunReport()

        if args.scope and args.scope not in groups:
            logger.warning("No changes found in scope '%s'", args.scope)

        for scope, files in groups.items():
            if args.scope and args.scope != scope:
                continue

            if args.scope == scope:
                confirmed = True
            else:
                confirmed = bool(scope_confirm(scope))
            if not confirmed:
                logger.info("Scope '%s' declined", scope)
                report.outcomes.append(ScopeOutcome(scope, ScopeStatus.DECLINED, list(files)))
                continue

            to_add = [path for path in files if path in present_set]
            to_remove = [path for path in files if path in deleted_set and path not in present_set]
            report.outcomes.append(
                self._commit_scope(scope, to_add, to_remove, message_confirm, diff_reducer, args)
            )

        logger.info(
            "Run finished: %d committed, %d failed, %d declined",
            len(report.committed),
            len(report.failed),
            len(report.declined),
        )
        return report

    # ------------------------------------------------------------------
    # Single scope
    # ------------------------------------------------------------------
    def _commit_scope(
        self,
        scope: str,
        to_add: List[str],
        to_remove: List[str],
        message_confirm: MessageConfirm,
        diff_reducer: DiffReducerFn,
        args: CommitArgs,
    ) -> ScopeOutcome:
        files = to_add + to_remove
        outcome = ScopeOutcome(scope, ScopeStatus.FAILED, files)
        commit_paths = files + [
            self._rename_sources[path]
            for path in to_add
            if path in self._rename_sources and self._rename_sources[path] not in files
        ]
        try:
            self._vcs("stage", self.client.add, to_add)
            self._vcs("remove", self.client.remove, to_remove)

            diff = self._vcs("diff", self.client.diff, to_add or to_remove)
            diff = self._vcs("diff", diff_reducer, diff, to_add or to_remove)

            text = self._confirmed_message(scope, diff, message_confirm, args, outcome)
            outcome.message = text

            self._vcs("commit", self.client.commit, text, commit_paths)
        except ScopeSkipped:
            logger.info("Scope '%s' skipped", scope)
            outcome.status = ScopeStatus.SKIPPED
        except _ScopeFailure as exc:
            logger.error("Scope '%s': %s", scope, exc)
            outcome.error = str(exc)
        except MessageGenerationError as exc:
            logger.error("Scope '%s': message generation failed: %s", scope, exc)
            outcome.error = f"message generation failed: {exc}"
        else:
            logger.info("Committed scope '%s' (%d file(s))", scope, len(files))
            outcome.status = ScopeStatus.COMMITTED
            return outcome

        self._unstage(scope, files)
        return outcome

    def _confirmed_message(
        self,
        scope: str,
        diff: str,
        message_confirm: MessageConfirm,
        args: CommitArgs,
        outcome: ScopeOutcome,
    ) -> str:
        attempt = 0
        while True:
            attempt += 1
            if not self.retry_policy.allows(attempt):
                raise MessageGenerationError(
                    f"no message accepted after {self.retry_policy.max_attempts} attempt(s)"
                )
            outcome.attempts = attempt
            candidate = self.generator.generate_commit_message(diff, scope, args.type, args.reason)
            if not candidate:
                raise MessageGenerationError("generator returned no message")
            if args.breaking:
                candidate = dataclasses.replace(candidate, breaking=True)

            text, accepted = message_confirm(candidate)
            if accepted and text and text.strip():
                return text
            logger.debug("Message for scope '%s' rejected (attempt %d); regenerating", scope, attempt)

    def _vcs(self, operation: str, func, *call_args):
        try:
            return func(*call_args)
        except GitError as exc:
            raise _ScopeFailure(operation, exc) from exc

    def _unstage(self, scope: str, paths: List[str]) -> None:
        try:
            self.client.unstage(paths)
        except GitError as exc:
            logger.error("Scope '%s': could not unstage files after failure: %s", scope, exc)
