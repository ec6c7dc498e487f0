"""
Git client implementation for scoped_commit.

This module wraps the Git operations needed by the commit orchestrator
and the changelog assembler. All subprocess calls go through
:meth:`GitClient._run` so that unit tests can mock them easily. Every
failure is raised as :class:`GitError`; callers decide whether a
failure is fatal.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence


logger = logging.getLogger(__name__)


class ChangeStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNTRACKED = "untracked"


@dataclass(frozen=True)
class FileChange:
    """Representation of a single file change in the repository."""

    path: str
    status: ChangeStatus
    orig_path: Optional[str] = None  # source path of a rename

    @property
    def is_deleted(self) -> bool:
        return self.status == ChangeStatus.DELETED


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


def _status_from_code(code: str) -> ChangeStatus:
    """Translate a two letter porcelain status code."""
    if code == "??":
        return ChangeStatus.UNTRACKED
    if "D" in code:
        return ChangeStatus.DELETED
    if "R" in code:
        return ChangeStatus.RENAMED
    if "A" in code:
        return ChangeStatus.ADDED
    return ChangeStatus.MODIFIED


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command cannot be started, or exits with a non-zero
            status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            logger.error("Could not execute git: %s", exc)
            raise GitError(f"Could not execute git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Status and change detection
    # ------------------------------------------------------------------
    def get_changes(self) -> List[FileChange]:
        """Get the list of changed files in the repository.

        Parses ``git status --porcelain -z`` so that paths with spaces or
        non-ASCII characters come through unquoted. Untracked files are
        included. For renames the new path is reported and the old one is
        kept in ``orig_path``.

        Raises
        ------
        GitError
            If the git status command fails.
        """
        result = self._run(["status", "--porcelain", "-z", "--untracked-files=all"], check=True)
        entries = result.stdout.split("\0")
        changes: List[FileChange] = []

        index = 0
        while index < len(entries):
            entry = entries[index]
            index += 1
            # XY + space + path
            if len(entry) < 4:
                continue
            code, path = entry[:2], entry[3:]
            status = _status_from_code(code)
            orig_path = None
            if "R" in code or "C" in code:
                # The source path follows as its own NUL terminated field
                if index < len(entries):
                    orig_path = entries[index]
                index += 1
            changes.append(FileChange(path=path, status=status, orig_path=orig_path))

        logger.debug("Detected %d changed file(s)", len(changes))
        return changes

    # ------------------------------------------------------------------
    # Branches and history
    # ------------------------------------------------------------------
    def get_current_branch(self) -> str:
        """Get the name of the current branch.

        Raises
        ------
        GitError
            If unable to determine the current branch.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=True)
        return result.stdout.strip()

    def get_commit_logs(self, destination: str) -> str:
        """Return the messages of the commits on HEAD that are not on ``destination``.

        Messages are separated by blank lines, oldest first, merge
        commits excluded.
        """
        result = self._run(
            ["log", "--no-merges", "--reverse", "--format=%B%x00", f"{destination}..HEAD"],
            check=True,
        )
        blocks = [block.strip() for block in result.stdout.split("\0")]
        return "\n\n".join(block for block in blocks if block)

    # ------------------------------------------------------------------
    # Staging, diffing, committing
    # ------------------------------------------------------------------
    def add(self, paths: Sequence[str]) -> None:
        """Stage new or modified files."""
        if not paths:
            return
        self._run(["add", "--"] + list(paths), check=True)

    def remove(self, paths: Sequence[str]) -> None:
        """Stage the removal of deleted files.

        Paths already removed from the index are ignored.
        """
        if not paths:
            return
        self._run(["rm", "--quiet", "--ignore-unmatch", "--"] + list(paths), check=True)

    def unstage(self, paths: Sequence[str]) -> None:
        """Reset the index entries of ``paths`` to HEAD, keeping the working tree."""
        if not paths:
            return
        self._run(["reset", "--quiet", "--"] + list(paths), check=True)

    def diff(self, paths: Sequence[str]) -> str:
        """Return the staged diff restricted to ``paths``."""
        result = self._run(["diff", "--cached", "--"] + list(paths), check=True)
        return result.stdout

    def commit(self, message: str, paths: Optional[Sequence[str]] = None) -> None:
        """Create a commit with the given message.

        Multi-line commit messages are supported. When ``paths`` is given
        only those paths are committed, whatever else is staged.
        """
        args = ["commit", "-m", message]
        if paths:
            args += ["--"] + list(paths)
        self._run(args, check=True)
