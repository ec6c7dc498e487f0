"""
Command line interface for scoped_commit.

The ``scoped-commit`` command has two subcommands:

``commit-all``
    Groups the pending changes by scope and commits each scope with a
    generated message after the user has reviewed it.
``changelog``
    Summarises the commits since a branch into the changelog and bumps
    the manifest version.

Exit codes: a completed ``commit-all`` run exits with ``EXIT_SUCCESS``
even when single scopes failed; configuration problems exit with
``EXIT_CONFIG_ERROR`` before any scope is touched.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Tuple

import click

from scoped_commit import __version__
from scoped_commit.changelog import ChangelogAssembler
from scoped_commit.config.loader import ConfigLoadError, load_llm_config, load_project_config
from scoped_commit.config.models import IssueMode, ProjectConfig
from scoped_commit.diff.reducer import DiffReducer
from scoped_commit.llm.commit_message_generator import CommitMessageGenerator, MessageGenerationError
from scoped_commit.llm.ollama_client import OllamaClient
from scoped_commit.message.model import COMMIT_TYPES, CommitMessage
from scoped_commit.message.transforms import (
    BranchIssueKeySource,
    FixedIssueKeySource,
    IssueKeySource,
    TransformPipeline,
    build_pipeline,
)
from scoped_commit.orchestrator import (
    CommitArgs,
    CommitOrchestrator,
    RetryPolicy,
    RunReport,
    ScopeSkipped,
    ScopeStatus,
)
from scoped_commit.vcs.git_client import GitClient, GitError


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str, show_spinner: bool = True):
        self.message = message
        self.show_spinner = show_spinner
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        if self.show_spinner:
            click.echo(f"⠋ {self.message}...", nl=False)
        else:
            click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        mark = "✓" if exc_type is None else "✗"
        if self.show_spinner:
            click.echo(f"\r{mark} {self.message} (took {elapsed:.1f}s)")
        else:
            click.echo(f"  {mark} Done ({elapsed:.1f}s)")
        return False


def print_step(step_num: int, total_steps: int, message: str):
    """Print a step indicator."""
    click.echo(f"\n{'=' * 60}")
    click.echo(f"Step {step_num}/{total_steps}: {message}")
    click.echo(f"{'=' * 60}")


def print_info(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}ℹ {message}")


def print_success(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✓ {message}")


def print_warning(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}⚠ {message}")


def print_error(message: str, indent: int = 0):
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


def print_summary_box(title: str, items: List[str]):
    """Print a formatted summary box."""
    max_width = max(len(title), max(len(item) for item in items) if items else 0)
    box_width = min(max_width + 4, 60)

    click.echo(f"\n┌{'─' * box_width}┐")
    click.echo(f"│ {title.ljust(box_width - 2)}│")
    click.echo(f"├{'─' * box_width}┤")
    for item in items:
        click.echo(f"│ {item.ljust(box_width - 2)}│")
    click.echo(f"└{'─' * box_width}┘")


# ---------------------------------------------------------------------------
# Interactive collaborators
# ---------------------------------------------------------------------------

def confirm_scope(scope: str) -> bool:
    """Ask whether all changes of ``scope`` should be committed."""
    click.echo(f"\n{'─' * 60}")
    label = "root" if scope == "." else scope
    return click.confirm(f"📦 Would you like to commit all changes in {click.style(label, fg='cyan', bold=True)}?", default=True)


def prompt_issue_key() -> Optional[str]:
    """Ask the user for the issue key of the current commit."""
    if not click.confirm("   Does this commit have an issue key?", default=True):
        return None
    key = click.prompt("   Please enter the issue key", default="", show_default=False).strip()
    return key or None


def select_diff_files(files: List[str], diff_length: int) -> List[str]:
    """Let the user pick the files whose diff is sent to the model."""
    print_error(
        f"The diff is too large to generate a commit message (length {diff_length}). "
        "Please select the files you want to use in the commit message."
    )
    for idx, path in enumerate(files, start=1):
        click.echo(f"   {idx:>3}. {path}")
    while True:
        answer = click.prompt("   Files to use (comma separated numbers)", default="", show_default=False)
        if not answer.strip():
            return []
        try:
            indexes = [int(part) for part in answer.replace(" ", "").split(",") if part]
        except ValueError:
            print_warning("Please enter numbers separated by commas")
            continue
        if all(1 <= idx <= len(files) for idx in indexes):
            return [files[idx - 1] for idx in indexes]
        print_warning(f"Numbers must be between 1 and {len(files)}")


def edit_message(message: str) -> str:
    """Let the user edit ``message`` in ``$EDITOR`` or inline.

    Returns the original message when the edit is empty or fails.
    """
    editor = os.environ.get("EDITOR")
    if editor:
        print_info("Opening editor...")
        with tempfile.NamedTemporaryFile(mode="w+", delete=False, suffix=".txt", encoding="utf-8") as tmp:
            tmp.write(message)
            tmp_path = tmp.name
        try:
            subprocess.run([editor, tmp_path], check=True)
            with open(tmp_path, "r", encoding="utf-8") as f:
                edited = f.read().strip()
        except (OSError, subprocess.CalledProcessError) as e:
            print_error(f"Editor failed: {e}")
            edited = ""
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
    else:
        click.echo("\n   💡 No EDITOR environment variable set.")
        click.echo("   Enter your commit message below.")
        click.echo("   End with a line containing only a period (.)\n")
        lines: List[str] = []
        while True:
            line = click.prompt("   ", default="", show_default=False)
            if line.strip() == ".":
                break
            lines.append(line)
        edited = "\n".join(lines).strip()

    if not edited:
        print_warning("Empty message, using original")
        return message
    print_success("Message edited successfully")
    return edited


def display_message(message: str) -> None:
    click.echo("\n💬 Proposed commit message:")
    click.echo("   ┌" + "─" * 56 + "┐")
    for line in message.splitlines():
        display_line = line[:54] if len(line) > 54 else line
        click.echo(f"   │ {display_line.ljust(54)} │")
    click.echo("   └" + "─" * 56 + "┘")


def make_message_confirm(pipeline: TransformPipeline):
    """Return the ``message_confirm`` callback used by the orchestrator.

    The callback runs the transform pipeline, shows the result and asks
    the user to Accept, Edit, Regenerate or Skip.
    """

    def message_confirm(candidate: CommitMessage) -> Tuple[str, bool]:
        message = pipeline.apply(candidate).render()
        print_success("Successfully generated")
        display_message(message)

        choice = click.prompt(
            "   Choose action",
            type=click.Choice(["A", "E", "R", "S", "a", "e", "r", "s"], case_sensitive=False),
            default="A",
            show_choices=True,
            show_default=True,
        ).strip().lower()

        if choice == "a":
            return message, True
        if choice == "e":
            return edit_message(message), True
        if choice == "s":
            raise ScopeSkipped()
        print_info("Regenerating...")
        return message, False

    return message_confirm


# ---------------------------------------------------------------------------
# Setup helpers
# ---------------------------------------------------------------------------

def find_repository() -> Path:
    with ProgressIndicator("Detecting Git repository"):
        repo_root = GitClient.find_repo_root(Path.cwd())
    if repo_root is None:
        print_error("No Git repository found in current directory or parent directories.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    print_success(f"Found Git repository at: {repo_root}")
    return repo_root


def load_configuration(repo_root: Path) -> Tuple[ProjectConfig, CommitMessageGenerator]:
    try:
        with ProgressIndicator("Reading configuration"):
            project_config = load_project_config(repo_root)
            llm_config = load_llm_config()
    except ConfigLoadError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

    print_success("Configuration loaded successfully")
    print_info(f"LLM Server: {llm_config['base_url']}:{llm_config['port']}", indent=1)
    print_info(f"Model: {llm_config['model']}", indent=1)
    print_info(f"Scope mode: {project_config.scope_mode.value}", indent=1)
    generator = CommitMessageGenerator(OllamaClient.from_config(llm_config))
    return project_config, generator


def issue_key_source(client: GitClient, config: ProjectConfig, issue: Optional[str]) -> Optional[IssueKeySource]:
    if issue:
        return FixedIssueKeySource(issue)
    mode = config.transforms.issue.mode
    if mode == IssueMode.BRANCH:
        return BranchIssueKeySource(client, config.transforms.issue.key_regex)
    if mode == IssueMode.PROMPT:
        return prompt_issue_key
    return None


def print_report(report: RunReport) -> None:
    items = []
    for outcome in report.outcomes:
        label = "root" if outcome.scope == "." else outcome.scope
        if outcome.status == ScopeStatus.COMMITTED:
            items.append(f"✓ {label}: committed {len(outcome.files)} file(s)")
        elif outcome.status == ScopeStatus.FAILED:
            items.append(f"✗ {label}: {outcome.error}")
        else:
            items.append(f"⚠ {label}: {outcome.status.value}")
    print_summary_box("Summary", items)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="scoped-commit")
def main(verbose: bool) -> None:
    """🚀 AI-powered, scope-aware commit assistant for Git repositories."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )


@main.command("commit-all")
@click.option("-b", "--breaking", is_flag=True, help="Mark the commit as a breaking change.")
@click.option("-s", "--scope", help="Only commit this scope, without asking.")
@click.option("-t", "--type", "commit_type", type=click.Choice(COMMIT_TYPES), help="Force the commit type.")
@click.option("-i", "--issue", help="Issue key to append to every message.")
@click.option("-r", "--reason", help="The reason for the change, passed to the model.")
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    help="Give up on a scope after this many rejected messages.",
)
def commit_all(
    breaking: bool,
    scope: Optional[str],
    commit_type: Optional[str],
    issue: Optional[str],
    reason: Optional[str],
    max_attempts: Optional[int],
) -> None:
    """Generate a message for each scope and commit the scopes one by one."""
    click.echo("\n" + "=" * 60)
    click.echo("🤖 Scoped Commit Assistant".center(60))
    click.echo("=" * 60)

    total_steps = 4
    try:
        print_step(1, total_steps, "Detecting Repository")
        repo_root = find_repository()

        print_step(2, total_steps, "Loading Configuration")
        project_config, generator = load_configuration(repo_root)
        client = GitClient(repo_root)

        print_step(3, total_steps, "Analyzing Changes")
        try:
            with ProgressIndicator("Scanning for changed files"):
                changes = client.get_changes()
        except GitError as exc:
            print_error(f"VCS error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        if not changes:
            print_warning("No changes detected to commit.")
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        print_success(f"Found {len(changes)} changed file{'s' if len(changes) != 1 else ''}")
        for change in changes[:5]:
            print_info(f"{change.status.value} {change.path}", indent=1)
        if len(changes) > 5:
            print_info(f"... and {len(changes) - 5} more", indent=1)

        print_step(4, total_steps, "Review and Commit")
        pipeline = build_pipeline(project_config.transforms, issue_key_source(client, project_config, issue))
        reducer = DiffReducer(client, project_config.diff, select_diff_files)
        orchestrator = CommitOrchestrator(
            client,
            generator,
            project_config.scope,
            RetryPolicy(max_attempts or project_config.max_attempts),
        )
        args = CommitArgs(breaking=breaking, scope=scope, type=commit_type, issue=issue, reason=reason)
        report = orchestrator.run_all(
            confirm_scope,
            make_message_confirm(pipeline),
            reducer,
            args,
            changes=changes,
        )

        if not report.outcomes:
            print_warning(f"No changes found in scope '{scope}'." if scope else "No scopes to commit.")
        else:
            print_report(report)
        click.echo(f"\n🎉 Done: {len(report.committed)} commit{'s' if len(report.committed) != 1 else ''} created.\n")
        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except click.Abort:
        raise
    except Exception as exc:
        logger.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)


@main.command("changelog")
@click.option("-d", "--destination", help="Branch to compare against (default from configuration, else 'main').")
def changelog(destination: Optional[str]) -> None:
    """Write a changelog section for the commits since a branch and bump the version."""
    try:
        repo_root = find_repository()
        project_config, generator = load_configuration(repo_root)
        settings = project_config.changelog
        branch = destination or settings.destination

        assembler = ChangelogAssembler(
            GitClient(repo_root),
            generator,
            project_config.scope_mode,
            repo_root / settings.path,
            repo_root / settings.manifest,
            app_name=settings.app_name,
        )
        with ProgressIndicator(f"Generating changelog since '{branch}' (this may take a moment)"):
            result = assembler.generate(branch)
    except ConfigLoadError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    except GitError as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    except MessageGenerationError as exc:
        print_error(f"LLM error: {exc}")
        print_info("Make sure Ollama is running and accessible", indent=1)
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)

    print_info(f"📦 Current Version: {result.previous_version}")
    print_info(f"📦 Increment: {result.increment or 'none'}")
    print_info(f"📦 New Version: {result.new_version}")
    print_success("Successfully generated changelog")
