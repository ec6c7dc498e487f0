"""
Top-level package for scoped_commit.

The package exposes the command line interface via the
``scoped_commit.cli`` module. The commit orchestration engine lives in
:mod:`scoped_commit.orchestrator` and the changelog generation in
:mod:`scoped_commit.changelog`.
"""

import logging

__all__ = ["__version__"]

__version__ = "0.3.0"

# Library modules log through child loggers of this one. A null handler
# keeps them quiet until the CLI configures logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())
