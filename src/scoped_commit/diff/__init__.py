"""
Diff size management.

See :class:`scoped_commit.diff.reducer.DiffReducer`.
"""

from .reducer import DiffReducer, is_excluded  # noqa: F401
