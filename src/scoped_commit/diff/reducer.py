"""
Keep the diff sent to the language model within a size limit.

The reducer first drops excluded paths (lock files, generated code) and,
if the remaining diff is still too large, asks a selection callback
which files to describe. Only the text handed to the model changes;
all files of the scope are still committed.
"""

from __future__ import annotations

import logging
from fnmatch import fnmatch
from typing import Callable, List, Optional, Sequence

from scoped_commit.config.models import DiffConfig


logger = logging.getLogger(__name__)

# (files, diff length) -> files to keep
FileSelector = Callable[[List[str], int], Sequence[str]]


def is_excluded(path: str, patterns: Sequence[str]) -> bool:
    """Return True if ``path`` equals or matches one of the exclusion patterns."""
    return any(path == pattern or fnmatch(path, pattern) for pattern in patterns)


class DiffReducer:
    """Callable used by the orchestrator to shrink a scope's diff.

    Parameters
    ----------
    client : GitClient
        Used to recompute the staged diff for a smaller file set.
    config : DiffConfig
        Exclusion patterns and the size threshold in characters.
    select_files : callable, optional
        Picks the files to keep when the diff is too large. Without a
        selector an oversize diff is passed on unchanged.
    """

    def __init__(self, client, config: DiffConfig, select_files: Optional[FileSelector] = None) -> None:
        self.client = client
        self.config = config
        self.select_files = select_files

    def __call__(self, diff: str, files: Sequence[str]) -> str:
        files = list(files)
        if self.config.exclude:
            kept = [path for path in files if not is_excluded(path, self.config.exclude)]
            if len(kept) != len(files):
                logger.debug("Excluded %d file(s) from the diff", len(files) - len(kept))
                files = kept
                diff = self.client.diff(files) if files else ""

        if len(diff) < self.config.max_size:
            return diff

        logger.warning(
            "Diff is too large (%d characters, limit %d)", len(diff), self.config.max_size
        )
        if self.select_files is None:
            return diff
        selected = [path for path in self.select_files(files, len(diff)) if path in files]
        if not selected:
            logger.warning("No files selected; using the full diff")
            return diff
        return self.client.diff(selected)
