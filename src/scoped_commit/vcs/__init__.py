"""
Version control integration.

:class:`GitClient` wraps the Git commands the commit engine needs:
listing changes, staging and removing files, diffing the index,
committing and reading history.
"""

from .git_client import ChangeStatus, FileChange, GitClient, GitError  # noqa: F401
