"""
Data models for scope grouping.

A *scope* is a logical unit of change, such as a package of a monorepo
or a top-level folder below the source root. :class:`ScopeConfig`
selects how file paths are mapped to scopes and ``ScopeGroup`` is the
resulting partition of changed paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple


ROOT_SCOPE = "."

DEFAULT_MONOREPO_DIRECTORIES: Tuple[str, ...] = ("apps", "packages", "functions")

# Mapping of scope key to the paths in that scope, in discovery order.
ScopeGroup = Dict[str, List[str]]


class ScopeMode(str, Enum):
    """Addressing strategy used to derive scope keys from paths."""

    MONOREPO = "monorepo"
    TRADITIONAL = "traditional"


@dataclass(frozen=True)
class ScopeConfig:
    """Configuration of the scope resolver.

    Attributes
    ----------
    mode : ScopeMode
        Which resolver strategy runs.
    source_root : str
        Directory name whose children are scopes in traditional mode.
    monorepo_directories : Tuple[str, ...]
        Directories whose children are scopes in monorepo mode. Order
        matters: the first matching directory wins.
    entry_point : str
        File name directly under ``source_root`` that belongs to the
        root scope rather than forming a scope of its own.
    """

    mode: ScopeMode = ScopeMode.TRADITIONAL
    source_root: str = "src"
    monorepo_directories: Tuple[str, ...] = DEFAULT_MONOREPO_DIRECTORIES
    entry_point: str = "index.ts"
