import unittest

from scoped_commit.config.models import DiffConfig
from scoped_commit.diff.reducer import DiffReducer
from scoped_commit.grouping.group_model import ScopeConfig, ScopeMode
from scoped_commit.llm.commit_message_generator import MessageGenerationError
from scoped_commit.message.model import CommitMessage
from scoped_commit.orchestrator import (
    CommitArgs,
    CommitOrchestrator,
    RetryPolicy,
    ScopeSkipped,
    ScopeStatus,
)
from scoped_commit.vcs.git_client import ChangeStatus, FileChange, GitError


MONOREPO = ScopeConfig(mode=ScopeMode.MONOREPO)


class FakeGitClient:
    """Records git operations; ``fail`` maps an operation to the scope path that makes it fail."""

    def __init__(self, changes, fail=None):
        self.changes = changes
        self.fail = fail or {}
        self.calls = []
        self.commits = []

    def _record(self, operation, paths):
        self.calls.append((operation, list(paths)))
        trigger = self.fail.get(operation)
        if trigger and trigger in paths:
            raise GitError(f"{operation} exploded")

    def get_changes(self):
        return list(self.changes)

    def add(self, paths):
        if paths:
            self._record("add", paths)

    def remove(self, paths):
        if paths:
            self._record("remove", paths)

    def unstage(self, paths):
        self._record("unstage", paths)

    def diff(self, paths):
        self._record("diff", paths)
        return "diff of " + " ".join(paths)

    def commit(self, message, paths=None):
        self._record("commit", paths or [])
        self.commits.append((message, list(paths or [])))


class FakeGenerator:
    def __init__(self, fail_scopes=()):
        self.fail_scopes = set(fail_scopes)
        self.calls = []

    def generate_commit_message(self, diff, scope, commit_type=None, reason=None):
        self.calls.append((diff, scope, commit_type, reason))
        if scope in self.fail_scopes:
            raise MessageGenerationError("model offline")
        return CommitMessage(type=commit_type or "feat", scope=scope, summary=f"change {len(self.calls)}")


def modified(*paths):
    return [FileChange(path, ChangeStatus.MODIFIED) for path in paths]


def accept(message):
    return message.render(), True


def always(value):
    return lambda *_args: value


def passthrough(diff, files):
    return diff


class TestCommitOrchestrator(unittest.TestCase):
    def run_orchestrator(self, client, generator=None, scope_confirm=always(True), message_confirm=accept, **kwargs):
        orchestrator = CommitOrchestrator(
            client, generator or FakeGenerator(), MONOREPO, kwargs.pop("retry_policy", None)
        )
        return orchestrator.run_all(scope_confirm, message_confirm, passthrough, **kwargs)

    def test_one_commit_per_confirmed_scope(self) -> None:
        client = FakeGitClient(modified("apps/billing/a.ts", "apps/ui/b.tsx", "README.md", "apps/billing/c.ts"))
        report = self.run_orchestrator(client)

        self.assertEqual([o.scope for o in report.committed], ["billing", "ui", "."])
        self.assertEqual(
            client.commits,
            [
                ("feat(billing): change 1", ["apps/billing/a.ts", "apps/billing/c.ts"]),
                ("feat(ui): change 2", ["apps/ui/b.tsx"]),
                ("feat: change 3", ["README.md"]),
            ],
        )

    def test_failing_scope_does_not_stop_the_next(self) -> None:
        client = FakeGitClient(modified("apps/billing/a.ts", "apps/ui/b.tsx"), fail={"commit": "apps/billing/a.ts"})
        report = self.run_orchestrator(client)

        statuses = {o.scope: o.status for o in report.outcomes}
        self.assertEqual(statuses, {"billing": ScopeStatus.FAILED, "ui": ScopeStatus.COMMITTED})
        self.assertIn("commit failed", report.failed[0].error)
        self.assertIn(("unstage", ["apps/billing/a.ts"]), client.calls)
        self.assertEqual([paths for _, paths in client.commits], [["apps/ui/b.tsx"]])

    def test_staging_failure_is_confined_to_scope(self) -> None:
        client = FakeGitClient(modified("apps/billing/a.ts", "apps/ui/b.tsx"), fail={"add": "apps/billing/a.ts"})
        report = self.run_orchestrator(client)
        self.assertEqual([o.scope for o in report.failed], ["billing"])
        self.assertEqual([o.scope for o in report.committed], ["ui"])

    def test_generation_failure_continues(self) -> None:
        client = FakeGitClient(modified("apps/billing/a.ts", "apps/ui/b.tsx"))
        report = self.run_orchestrator(client, generator=FakeGenerator(fail_scopes={"billing"}))
        self.assertEqual([o.scope for o in report.failed], ["billing"])
        self.assertEqual([o.scope for o in report.committed], ["ui"])
        self.assertIn("model offline", report.failed[0].error)

    def test_declined_scope_is_untouched(self) -> None:
        client = FakeGitClient(modified("apps/billing/a.ts", "apps/ui/b.tsx"))
        report = self.run_orchestrator(client, scope_confirm=lambda scope: scope == "ui")

        self.assertEqual([o.scope for o in report.declined], ["billing"])
        touched = [path for _, paths in client.calls for path in paths]
        self.assertNotIn("apps/billing/a.ts", touched)

    def test_scope_override_auto_confirms_and_filters(self) -> None:
        client = FakeGitClient(modified("apps/billing/a.ts", "apps/ui/b.tsx"))
        asked = []

        def scope_confirm(scope):
            asked.append(scope)
            return False

        report = self.run_orchestrator(client, scope_confirm=scope_confirm, args=CommitArgs(scope="ui"))
        self.assertEqual(asked, [])
        self.assertEqual([o.scope for o in report.outcomes], ["ui"])
        self.assertEqual(report.committed[0].status, ScopeStatus.COMMITTED)

    def test_unknown_scope_override_commits_nothing(self) -> None:
        client = FakeGitClient(modified("apps/billing/a.ts"))
        with self.assertLogs("scoped_commit.orchestrator", level="WARNING"):
            report = self.run_orchestrator(client, args=CommitArgs(scope="nope"))
        self.assertEqual(report.outcomes, [])
        self.assertEqual(client.commits, [])

    def test_args_reach_generator_and_breaking_flag(self) -> None:
        client = FakeGitClient(modified("apps/ui/b.tsx"))
        generator = FakeGenerator()
        self.run_orchestrator(
            client, generator=generator, args=CommitArgs(breaking=True, type="refactor", reason="cleanup")
        )
        self.assertEqual(generator.calls, [("diff of apps/ui/b.tsx", "ui", "refactor", "cleanup")])
        self.assertEqual(client.commits[0][0], "refactor(ui): change 1 BREAKING")

    def test_rejected_message_is_regenerated(self) -> None:
        answers = iter([False, False, True])

        def message_confirm(message):
            return message.render(), next(answers)

        client = FakeGitClient(modified("apps/ui/b.tsx"))
        report = self.run_orchestrator(client, message_confirm=message_confirm)
        self.assertEqual(report.committed[0].attempts, 3)
        self.assertEqual(client.commits[0][0], "feat(ui): change 3")

    def test_retry_policy_bounds_attempts(self) -> None:
        client = FakeGitClient(modified("apps/ui/b.tsx"))
        report = self.run_orchestrator(
            client,
            message_confirm=lambda message: (message.render(), False),
            retry_policy=RetryPolicy(max_attempts=2),
        )
        self.assertEqual(report.failed[0].attempts, 2)
        self.assertIn("2 attempt(s)", report.failed[0].error)
        self.assertEqual(client.commits, [])
        self.assertIn(("unstage", ["apps/ui/b.tsx"]), client.calls)

    def test_blank_edited_message_is_not_committed(self) -> None:
        answers = iter([("   ", True), ("feat(ui): edited", True)])
        client = FakeGitClient(modified("apps/ui/b.tsx"))
        self.run_orchestrator(client, message_confirm=lambda message: next(answers))
        self.assertEqual(client.commits, [("feat(ui): edited", ["apps/ui/b.tsx"])])

    def test_skipped_scope(self) -> None:
        def message_confirm(message):
            if message.scope == "billing":
                raise ScopeSkipped()
            return accept(message)

        client = FakeGitClient(modified("apps/billing/a.ts", "apps/ui/b.tsx"))
        report = self.run_orchestrator(client, message_confirm=message_confirm)
        statuses = {o.scope: o.status for o in report.outcomes}
        self.assertEqual(statuses, {"billing": ScopeStatus.SKIPPED, "ui": ScopeStatus.COMMITTED})
        self.assertIn(("unstage", ["apps/billing/a.ts"]), client.calls)

    def test_deleted_files_are_removed_not_added(self) -> None:
        changes = [
            FileChange("apps/ui/new.tsx", ChangeStatus.UNTRACKED),
            FileChange("apps/ui/old.tsx", ChangeStatus.DELETED),
        ]
        client = FakeGitClient(changes)
        self.run_orchestrator(client)
        self.assertIn(("add", ["apps/ui/new.tsx"]), client.calls)
        self.assertIn(("remove", ["apps/ui/old.tsx"]), client.calls)
        self.assertIn(("diff", ["apps/ui/new.tsx"]), client.calls)
        self.assertEqual(client.commits[0][1], ["apps/ui/new.tsx", "apps/ui/old.tsx"])

    def test_deleted_only_scope_diffs_removed_files(self) -> None:
        client = FakeGitClient([FileChange("apps/ui/old.tsx", ChangeStatus.DELETED)])
        self.run_orchestrator(client)
        self.assertEqual(client.calls[:2], [("remove", ["apps/ui/old.tsx"]), ("diff", ["apps/ui/old.tsx"])])

    def test_rename_source_is_committed_with_target(self) -> None:
        changes = [FileChange("apps/ui/new.tsx", ChangeStatus.RENAMED, orig_path="apps/ui/old.tsx")]
        client = FakeGitClient(changes)
        self.run_orchestrator(client)
        self.assertEqual(client.commits[0][1], ["apps/ui/new.tsx", "apps/ui/old.tsx"])

    def test_snapshot_uses_given_changes(self) -> None:
        client = FakeGitClient([])
        orchestrator = CommitOrchestrator(client, FakeGenerator(), MONOREPO)
        present, deleted = orchestrator.snapshot(
            [FileChange("a", ChangeStatus.ADDED), FileChange("b", ChangeStatus.DELETED)]
        )
        self.assertEqual((present, deleted), (["a"], ["b"]))

    def test_reducer_rediff_failure_is_confined_to_scope(self) -> None:
        changes = modified("apps/billing/a.ts", "apps/billing/yarn.lock", "apps/ui/b.tsx")
        client = FakeGitClient(changes)
        reducer = DiffReducer(client, DiffConfig(exclude=("*.lock",)))
        orchestrator = CommitOrchestrator(client, FakeGenerator(), MONOREPO)

        def diff(paths):
            client.calls.append(("diff", list(paths)))
            if paths == ["apps/billing/a.ts"]:
                raise GitError("index.lock exists")
            return "diff of " + " ".join(paths)

        client.diff = diff
        report = orchestrator.run_all(always(True), accept, reducer)

        statuses = {o.scope: o.status for o in report.outcomes}
        self.assertEqual(statuses, {"billing": ScopeStatus.FAILED, "ui": ScopeStatus.COMMITTED})
        self.assertIn("diff failed", report.failed[0].error)
        self.assertIn(("unstage", ["apps/billing/a.ts", "apps/billing/yarn.lock"]), client.calls)
        self.assertEqual([paths for _, paths in client.commits], [["apps/ui/b.tsx"]])

    def test_status_failure_propagates(self) -> None:
        class BrokenClient(FakeGitClient):
            def get_changes(self):
                raise GitError("not a git repository")

        with self.assertRaises(GitError):
            self.run_orchestrator(BrokenClient([]))


class TestRetryPolicy(unittest.TestCase):
    def test_unbounded_by_default(self) -> None:
        self.assertTrue(RetryPolicy().allows(10_000))

    def test_bounded(self) -> None:
        policy = RetryPolicy(max_attempts=3)
        self.assertTrue(policy.allows(3))
        self.assertFalse(policy.allows(4))


if __name__ == "__main__":
    unittest.main()
