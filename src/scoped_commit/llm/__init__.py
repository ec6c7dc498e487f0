"""
Language model integration for scoped_commit.

This package contains the :class:`OllamaClient` for communicating with
an Ollama LLM server and the :class:`CommitMessageGenerator` which uses
the model to write commit messages and changelog sections.
"""

from .ollama_client import LLMError, OllamaClient  # noqa: F401
from .commit_message_generator import CommitMessageGenerator, MessageGenerationError  # noqa: F401
