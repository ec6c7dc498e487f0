"""
Commit message and changelog generation using an LLM.

:class:`CommitMessageGenerator` asks the Ollama model for a structured
commit message (``type``, ``summary``, ``description``) for the diff
of one scope and turns the reply into a
:class:`~scoped_commit.message.model.CommitMessage`. It also produces
the changelog text from a list of commit messages.

The model is asked for JSON. Models that ignore the format request and
answer with a conventional ``type(scope): summary`` message are still
understood; anything else is a :class:`MessageGenerationError`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from scoped_commit.grouping.group_model import ScopeMode
from scoped_commit.llm.ollama_client import LLMError, OllamaClient
from scoped_commit.llm.prompts import (
    COMMIT_SYSTEM_PROMPT,
    build_commit_prompt,
    changelog_system_prompt,
)
from scoped_commit.message.model import COMMIT_TYPES, CommitMessage


logger = logging.getLogger(__name__)

DEFAULT_COMMIT_TYPE = "chore"

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class MessageGenerationError(Exception):
    """Raised when no usable message could be generated."""

    pass


def _normalize_type(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip().strip("[]").lower()
    return value if value in COMMIT_TYPES else None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(str(item).strip() for item in value if str(item).strip())
    return str(value).strip()


class CommitMessageGenerator:
    """Generate commit messages and changelogs with an LLM."""

    def __init__(self, ollama_client: OllamaClient) -> None:
        self.ollama_client = ollama_client

    # ------------------------------------------------------------------
    # Reply parsing
    # ------------------------------------------------------------------
    def _parse_json_reply(self, raw: str) -> Optional[Dict[str, Any]]:
        match = _JSON_OBJECT_RE.search(raw)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    def _parse_text_reply(self, raw: str) -> Optional[CommitMessage]:
        """Find the first line that looks like a conventional commit header."""
        lines = raw.splitlines()
        for index, line in enumerate(lines):
            candidate = "\n".join(lines[index:]).strip()
            if not candidate:
                continue
            try:
                message = CommitMessage.parse(candidate)
            except ValueError:
                continue
            if _normalize_type(message.type):
                return message
        return None

    def _build_message(
        self,
        raw: str,
        scope: str,
        commit_type: Optional[str],
    ) -> CommitMessage:
        data = self._parse_json_reply(raw)
        if data is not None:
            summary = _as_text(data.get("summary"))
            description = _as_text(data.get("description"))
            reply_type = _normalize_type(data.get("type"))
            breaking = False
        else:
            parsed = self._parse_text_reply(raw)
            if parsed is None:
                raise MessageGenerationError("LLM reply is neither JSON nor a commit message")
            logger.warning("LLM ignored the JSON format; using the plain text commit message")
            summary, description, reply_type = parsed.summary, parsed.description, _normalize_type(parsed.type)
            breaking = parsed.breaking

        summary = summary.splitlines()[0].strip().rstrip(".") if summary else ""
        if not summary:
            raise MessageGenerationError("LLM reply contains no summary")

        final_type = commit_type or reply_type
        if not final_type:
            logger.warning("LLM reply has no valid commit type; using '%s'", DEFAULT_COMMIT_TYPE)
            final_type = DEFAULT_COMMIT_TYPE

        return CommitMessage(
            type=final_type, scope=scope, summary=summary, description=description, breaking=breaking
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def generate_commit_message(
        self,
        diff: str,
        scope: str,
        commit_type: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> CommitMessage:
        """Generate a commit message for the diff of one scope.

        Parameters
        ----------
        diff : str
            Staged diff of the scope.
        scope : str
            Scope key; ``"."`` produces a message without scope segment.
        commit_type : str, optional
            Forces the commit type instead of letting the model choose.
        reason : str, optional
            Why the change was made, passed on to the model.

        Raises
        ------
        MessageGenerationError
            If the LLM call fails or the reply cannot be used.
        """
        prompt = build_commit_prompt(diff, scope, commit_type, reason)
        try:
            raw = self.ollama_client.generate(prompt, system=COMMIT_SYSTEM_PROMPT, json_format=True)
        except LLMError as exc:
            logger.error("LLM failed to generate a commit message for scope '%s': %s", scope, exc)
            raise MessageGenerationError(str(exc)) from exc
        if not raw or not raw.strip():
            raise MessageGenerationError("LLM returned an empty response")
        logger.debug("Raw commit message reply for scope '%s': %s", scope, raw)
        return self._build_message(raw, scope, commit_type)

    def generate_changelog_text(
        self,
        commit_logs: str,
        mode: ScopeMode,
        app_name: Optional[str] = None,
    ) -> str:
        """Generate a changelog section from commit messages.

        Raises
        ------
        MessageGenerationError
            If the LLM call fails or returns nothing.
        """
        system = changelog_system_prompt(mode, app_name)
        try:
            text = self.ollama_client.generate(commit_logs, system=system)
        except LLMError as exc:
            logger.error("LLM failed to generate the changelog: %s", exc)
            raise MessageGenerationError(str(exc)) from exc
        if not text or not text.strip():
            raise MessageGenerationError("LLM returned an empty changelog")
        return text.strip()
