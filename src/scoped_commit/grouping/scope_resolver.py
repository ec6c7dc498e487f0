"""
Map a changed file path to the scope it belongs to.

Two strategies exist, selected by :class:`ScopeMode`:

* monorepo: ``apps/billing/index.ts`` belongs to ``billing`` when
  ``apps`` is one of the configured monorepo directories;
* traditional: ``src/utils/git.py`` belongs to ``utils`` when ``src``
  is the configured source root.

The resolvers are pure functions so they can be tested without a
repository.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable, Dict, Optional, Pattern, Tuple

from scoped_commit.grouping.group_model import ROOT_SCOPE, ScopeConfig, ScopeMode


@lru_cache(maxsize=16)
def _monorepo_pattern(directories: Tuple[str, ...]) -> Pattern[str]:
    alternatives = "|".join(f"{re.escape(directory)}/([^/]+)" for directory in directories)
    return re.compile(f"^(?:{alternatives})")


def resolve_monorepo_scope(path: str, config: ScopeConfig) -> Optional[str]:
    """Return the package name for ``path`` or ``None`` outside all packages."""
    if not config.monorepo_directories:
        return None
    match = _monorepo_pattern(tuple(config.monorepo_directories)).match(path)
    if not match:
        return None
    for group in match.groups():
        if group:
            return group
    return None


def resolve_traditional_scope(path: str, config: ScopeConfig) -> str:
    """Return the folder below the source root, or the root scope."""
    segments = path.split("/")
    try:
        index = segments.index(config.source_root)
    except ValueError:
        return ROOT_SCOPE
    if index + 1 >= len(segments):
        return ROOT_SCOPE
    candidate = segments[index + 1]
    if not candidate or candidate == config.entry_point:
        return ROOT_SCOPE
    return candidate


_RESOLVERS: Dict[ScopeMode, Callable[[str, ScopeConfig], Optional[str]]] = {
    ScopeMode.MONOREPO: resolve_monorepo_scope,
    ScopeMode.TRADITIONAL: resolve_traditional_scope,
}


def resolve_scope(path: str, config: ScopeConfig) -> Optional[str]:
    """Resolve the scope key of ``path`` using the strategy in ``config``.

    Parameters
    ----------
    path : str
        Path relative to the repository root, using ``/`` separators.
    config : ScopeConfig
        Selects the strategy and its parameters.

    Returns
    -------
    Optional[str]
        The scope key. Monorepo mode returns ``None`` for paths outside
        every configured directory; traditional mode always returns a
        key and uses ``"."`` for the root.
    """
    return _RESOLVERS[ScopeMode(config.mode)](path, config)
