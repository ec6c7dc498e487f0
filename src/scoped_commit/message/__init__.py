"""
Commit message model and transforms.

:class:`CommitMessage` holds a message as fields; the pipeline in
:mod:`scoped_commit.message.transforms` rewrites those fields before the
message is rendered.
"""

from .model import COMMIT_TYPE_EMOJIS, COMMIT_TYPES, CommitMessage  # noqa: F401
from .transforms import (  # noqa: F401
    BranchIssueKeySource,
    FixedIssueKeySource,
    TransformPipeline,
    build_pipeline,
)
