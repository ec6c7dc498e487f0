"""
Scope grouping for changed files.

Changed paths are mapped to scopes by :mod:`scoped_commit.grouping.scope_resolver`
and partitioned by :mod:`scoped_commit.grouping.scope_grouper`.
"""

from .group_model import ROOT_SCOPE, ScopeConfig, ScopeGroup, ScopeMode  # noqa: F401
from .scope_grouper import group_files  # noqa: F401
from .scope_resolver import resolve_scope  # noqa: F401
