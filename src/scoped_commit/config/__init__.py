"""
Configuration loading for scoped_commit.

Provides loaders for the user-level LLM connection file and the
repository-level project file. See :mod:`scoped_commit.config.loader`
for details.
"""

from .loader import ConfigLoadError, load_llm_config, load_project_config  # noqa: F401
from .models import (  # noqa: F401
    ChangelogConfig,
    DiffConfig,
    IssueConfig,
    IssueMode,
    ProjectConfig,
    TransformConfig,
)
