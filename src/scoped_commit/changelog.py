"""
Changelog generation and version bumping.

The commit messages since a baseline branch are summarised by the
language model into a changelog section. The model marks the suggested
semantic version increment with a heading of the form ``## +x.y.z``;
the first non-zero component selects a major, minor or patch bump of
the manifest version. The marker is then replaced by the new version
and the section is spliced into the changelog document below its
header.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from scoped_commit.config.loader import ConfigLoadError
from scoped_commit.grouping.group_model import ScopeMode


logger = logging.getLogger(__name__)

INCREMENT_RE = re.compile(r"##\s+\+(\d+\.\d+\.\d+)")

# Number of header lines kept above newly inserted sections.
CHANGELOG_HEADER_LINES = 4


def parse_increment(text: str) -> Optional[str]:
    """Return the ``x.y.z`` of the first ``## +x.y.z`` marker in ``text``."""
    match = INCREMENT_RE.search(text)
    return match.group(1) if match else None


def increment_category(increment: Optional[str]) -> Optional[str]:
    """Return ``"major"``, ``"minor"`` or ``"patch"`` for an increment directive.

    The first non-zero component wins; ``0.0.0`` and ``None`` give
    ``None``.
    """
    if not increment:
        return None
    major, minor, patch = (int(part) for part in increment.split("."))
    if major:
        return "major"
    if minor:
        return "minor"
    if patch:
        return "patch"
    return None


def increment_version(version: str, increment: Optional[str]) -> str:
    """Bump ``version`` by the category of ``increment``.

    >>> increment_version("1.2.3", "0.1.0")
    '1.3.0'
    """
    category = increment_category(increment)
    if category is None:
        return version
    try:
        major, minor, patch = (int(part) for part in version.split("."))
    except ValueError as exc:
        raise ValueError(f"Version {version!r} is not of the form MAJOR.MINOR.PATCH") from exc
    if category == "major":
        return f"{major + 1}.0.0"
    if category == "minor":
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def inject_changelog(changelog: str, section: str, new_version: str) -> str:
    """Insert ``section`` into ``changelog`` below the header lines.

    The ``## +x.y.z`` marker of the section becomes ``## <new_version>``
    and a blank line separates the section from what follows.
    """
    section = INCREMENT_RE.sub(f"## {new_version}", section, count=1)
    lines = changelog.split("\n")
    lines.insert(CHANGELOG_HEADER_LINES, f"{section}\n")
    return "\n".join(lines)


@dataclass
class ChangelogResult:
    previous_version: str
    new_version: str
    increment: Optional[str]
    section: str


class ChangelogAssembler:
    """Write a changelog section for the commits since a branch.

    Parameters
    ----------
    client : GitClient
        Reads the commit log.
    generator : CommitMessageGenerator
        Writes the changelog text.
    scope_mode : ScopeMode
        Selects the monorepo or single repository prompt.
    changelog_path, manifest_path : Path
        The changelog document and the JSON manifest holding ``version``.
    app_name : str, optional
        Name used in the single repository prompt.
    """

    def __init__(
        self,
        client,
        generator,
        scope_mode: ScopeMode,
        changelog_path: Path,
        manifest_path: Path,
        app_name: Optional[str] = None,
    ) -> None:
        self.client = client
        self.generator = generator
        self.scope_mode = scope_mode
        self.changelog_path = Path(changelog_path)
        self.manifest_path = Path(manifest_path)
        self.app_name = app_name

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------
    def load_changelog(self) -> str:
        try:
            return self.changelog_path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to read changelog %s: %s", self.changelog_path, exc)
            raise ConfigLoadError(f"Error loading changelog file: {exc}") from exc

    def load_manifest(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read manifest %s: %s", self.manifest_path, exc)
            raise ConfigLoadError(f"Error loading manifest file: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("version"), str):
            raise ConfigLoadError(f"{self.manifest_path.name} has no 'version' string")
        return data

    def write_changelog(self, text: str) -> None:
        try:
            self.changelog_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to write changelog %s: %s", self.changelog_path, exc)
            raise ConfigLoadError(f"Error writing changelog file: {exc}") from exc

    def write_manifest(self, manifest: Dict[str, Any]) -> None:
        text = json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"
        try:
            self.manifest_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to write manifest %s: %s", self.manifest_path, exc)
            raise ConfigLoadError(f"Error writing manifest file: {exc}") from exc

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generate(self, destination_branch: str) -> ChangelogResult:
        """Generate the changelog section for ``destination_branch..HEAD``.

        The manifest and changelog are read before the model is called
        so that a missing file fails fast.

        Raises
        ------
        ConfigLoadError
            If the manifest or changelog cannot be read or written.
        GitError
            If the commit log cannot be read.
        MessageGenerationError
            If the model produces no changelog.
        """
        manifest = self.load_manifest()
        changelog = self.load_changelog()

        commits = self.client.get_commit_logs(destination_branch)
        if not commits.strip():
            logger.warning("No commits found since '%s'", destination_branch)

        section = self.generator.generate_changelog_text(commits, self.scope_mode, self.app_name)
        increment = parse_increment(section)
        current_version = manifest["version"]
        if increment is None:
            logger.warning("Changelog has no '## +x.y.z' increment marker; version unchanged")
        try:
            new_version = increment_version(current_version, increment)
        except ValueError as exc:
            raise ConfigLoadError(str(exc)) from exc
        logger.info("Version %s -> %s (increment %s)", current_version, new_version, increment)

        updated = inject_changelog(changelog, section, new_version)
        previous_manifest = dict(manifest)
        manifest["version"] = new_version

        # Manifest first; restore it if the changelog cannot be written.
        self.write_manifest(manifest)
        try:
            self.write_changelog(updated)
        except ConfigLoadError:
            self.write_manifest(previous_manifest)
            raise
        return ChangelogResult(current_version, new_version, increment, section)
