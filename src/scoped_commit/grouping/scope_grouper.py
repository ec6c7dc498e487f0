"""
Partition changed paths into scope groups.
"""

from __future__ import annotations

import logging
from typing import Iterable

from scoped_commit.grouping.group_model import ROOT_SCOPE, ScopeConfig, ScopeGroup
from scoped_commit.grouping.scope_resolver import resolve_scope


logger = logging.getLogger(__name__)


def group_files(paths: Iterable[str], config: ScopeConfig) -> ScopeGroup:
    """Group ``paths`` by scope.

    Every path ends up in exactly one group. Paths the resolver cannot
    place go to the root scope ``"."``. Groups and the paths inside them
    keep the order in which they were first seen, so the same input
    always yields the same partition. A path listed twice is kept once.
    """
    groups: ScopeGroup = {}
    seen = set()
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        scope = resolve_scope(path, config) or ROOT_SCOPE
        groups.setdefault(scope, []).append(path)
    logger.debug("Grouped %d path(s) into scopes: %s", len(seen), list(groups))
    return groups
