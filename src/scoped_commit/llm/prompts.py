"""
Prompt text sent to the language model.
"""

from __future__ import annotations

from textwrap import dedent
from typing import Optional

from scoped_commit.grouping.group_model import ROOT_SCOPE, ScopeMode


COMMIT_TYPE_DESCRIPTIONS = {
    "docs": "You're updating documentation or code comments.",
    "refactor": "You're making a code change that neither fixes a bug nor adds a feature.",
    "fix": "You're fixing a bug.",
    "feat": "You're adding a new feature.",
    "style": (
        "You're making changes that do not affect the meaning of the code "
        "(white-space, formatting, missing semi-colons, etc)."
    ),
    "test": "You're adding missing tests or correcting existing tests.",
    "chore": (
        "You're making changes to the build process or auxiliary tools and "
        "libraries such as documentation generation."
    ),
    "perf": "You're making a code change that improves performance.",
    "ci": "You're making changes to your CI configuration files and scripts.",
    "build": "You're making changes that affect the build system or external dependencies.",
    "revert": "You're reverting a previous commit.",
}

COMMIT_SYSTEM_PROMPT = dedent(
    """
    You are an expert software engineer writing commit messages.
    Reply with a single JSON object and nothing else, using these keys:
      "type": one of feat, fix, docs, style, refactor, test, chore, perf, ci, build, revert
      "summary": a concise summary of the change, at most 100 characters, no trailing period
      "description": a more detailed description of the change as dot points ("- "), at most 200 words
    Focus on what the change does and why, not on which files were touched.
    """
).strip()


def build_commit_prompt(
    diff: str,
    scope: str,
    commit_type: Optional[str] = None,
    reason: Optional[str] = None,
) -> str:
    """Build the user prompt asking for a commit message for ``diff``."""
    lines = ["Here are my changes:", f"`{diff}`", ""]

    if commit_type:
        lines.append(f' - The type of commit is "{commit_type}".')
    else:
        lines.append(" - I need to determine the type of commit.")
    if scope and scope != ROOT_SCOPE:
        lines.append(f' - The scope of the changes is "{scope}".')
    else:
        lines.append(" - This commit affects more than one scope.")
    lines.append("")

    if reason:
        lines.append(f"The changes were made because {reason}.")
    if commit_type:
        guideline = COMMIT_TYPE_DESCRIPTIONS.get(commit_type, "")
        lines.append(
            f'The commit is of type "{commit_type}", so the summary should clearly indicate '
            f"what changes were made under this type. {guideline} The description should "
            "provide a brief explanation of the changes, highlighting the main points and "
            "reasoning behind the changes made."
        )
    else:
        lines.append("Commit Types:")
        for name, description in COMMIT_TYPE_DESCRIPTIONS.items():
            lines.append(f"- {name}: {description}")
    return "\n".join(lines).strip()


_CHANGELOG_RULES = (
    "organizing them under the scope with suggested version increments (+x.y.z). "
    "Include explanations for the suggested increments and organize the commits into "
    '"Major", "Minor", and "Revisions" categories. Omit any \'chore\' commits. If a commit '
    "contains 'BREAKING' (placed after the commit message and before the issue key), "
    "suggest a major version increment. Include emojis if present in the commit messages."
)

_MONOREPO_EXAMPLE = dedent(
    """
    Given the following sample commit messages:

    feat(ui): 🎉 added usePrevious hook to the exports in acme-ui [IN-889]

    - A new hook 'usePrevious' has been added to the exports in the hooks index file of the acme-ui package.

    refactor(api): 🧹 updated API endpoints BREAKING [IN-900]

    - The API endpoints were updated to improve performance and security. This change is not backward compatible.

    The expected output would be:

    ## ui +0.1.0

    The version increment is suggested due to the addition of new features that do not break backward compatibility.

    ### Minor
    - 🎉 Added `usePrevious` hook to the exports in acme-ui ([IN-889](link-to-issue-IN-889))
      - A new hook 'usePrevious' has been added to the exports in the hooks index file of the acme-ui package.

    ## api +1.0.0

    The introduction of breaking changes to the API warrants a major version increment.

    ### Major
    - 🧹 Updated API endpoints (BREAKING CHANGE) ([IN-900](link-to-issue-IN-900))
      - The API endpoints were updated to improve performance and security. This change is not backward compatible.
    """
).strip()

_SINGLE_REPO_EXAMPLE = dedent(
    """
    Given the following sample commit messages:

    feat: added changelog command [no-key]

    - Added a changelog command with an option for the destination branch

    feat(utils): added commit log helpers [no-key]

    - Added a function that reads the commit logs since a branch.

    The expected output would be:

    ## +0.1.0

    The version increment is suggested due to the addition of new features that do not break backward compatibility.

    ### Minor
    - 🎉 Added changelog command ([no-key](#))
      - Added a changelog command with an option for the destination branch

    - 🎉 (utils) Added commit log helpers ([no-key](#))
      - Added a function that reads the commit logs since a branch.
    """
).strip()


def changelog_system_prompt(mode: ScopeMode, app_name: Optional[str] = None) -> str:
    """Return the system prompt for changelog generation.

    Monorepos get one section per scope; single repositories get one
    section for the whole application with a single ``## +x.y.z``
    increment marker.
    """
    if ScopeMode(mode) == ScopeMode.MONOREPO:
        return (
            f"Generate a changelog from the provided commit messages, {_CHANGELOG_RULES}\n\n"
            f"{_MONOREPO_EXAMPLE}"
        )
    name = app_name or "the project"
    return (
        f"For the app called {name}, generate a changelog from the provided commit messages, "
        f"{_CHANGELOG_RULES} Start with a single '## +x.y.z' heading for the whole app.\n\n"
        f"{_SINGLE_REPO_EXAMPLE}"
    )
