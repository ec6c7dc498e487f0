import subprocess
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from scoped_commit.vcs.git_client import ChangeStatus, FileChange, GitClient, GitError


class DummyProc(SimpleNamespace):
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


def recording_run(calls, stdout=""):
    def fake_run(self, args, check=True):
        calls.append(args)
        return DummyProc(returncode=0, stdout=stdout, stderr="")

    return fake_run


class TestGetChanges(unittest.TestCase):
    def test_parses_nul_separated_status(self) -> None:
        output = (
            " M src/app.py\0"
            "A  src/new file.py\0"
            "D  old.py\0"
            "R  src/renamed.py\0src/original.py\0"
            "?? notes/ünïcode.txt\0"
        )
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run(calls, output)
            changes = GitClient(Path("/repo")).get_changes()

        self.assertEqual(calls, [["status", "--porcelain", "-z", "--untracked-files=all"]])
        self.assertEqual(
            changes,
            [
                FileChange("src/app.py", ChangeStatus.MODIFIED),
                FileChange("src/new file.py", ChangeStatus.ADDED),
                FileChange("old.py", ChangeStatus.DELETED),
                FileChange("src/renamed.py", ChangeStatus.RENAMED, orig_path="src/original.py"),
                FileChange("notes/ünïcode.txt", ChangeStatus.UNTRACKED),
            ],
        )
        self.assertTrue(changes[2].is_deleted)
        self.assertFalse(changes[3].is_deleted)

    def test_worktree_deletion(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run([], " D gone.txt\0")
            changes = GitClient(Path("/repo")).get_changes()
        self.assertEqual(changes, [FileChange("gone.txt", ChangeStatus.DELETED)])

    def test_clean_tree(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run([], "")
            self.assertEqual(GitClient(Path("/repo")).get_changes(), [])


class TestHistory(unittest.TestCase):
    def test_current_branch(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run([], "feature/IN-12-x\n")
            self.assertEqual(GitClient(Path("/repo")).get_current_branch(), "feature/IN-12-x")

    def test_commit_logs_oldest_first_without_merges(self) -> None:
        calls = []
        output = "feat: one\n\n- detail\n\0\nfix(ui): two\n\0\n"
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run(calls, output)
            logs = GitClient(Path("/repo")).get_commit_logs("main")

        self.assertEqual(calls, [["log", "--no-merges", "--reverse", "--format=%B%x00", "main..HEAD"]])
        self.assertEqual(logs, "feat: one\n\n- detail\n\nfix(ui): two")

    def test_no_commits(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run([], "")
            self.assertEqual(GitClient(Path("/repo")).get_commit_logs("main"), "")


class TestStagingAndCommit(unittest.TestCase):
    def test_add_remove_unstage_diff_commit_arguments(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run(calls, "diff text")
            client = GitClient(Path("/repo"))
            client.add(["a.py", "b c.py"])
            client.remove(["gone.py"])
            client.unstage(["a.py"])
            diff = client.diff(["a.py"])
            client.commit("feat(ui): add x\n\n- body", ["a.py", "gone.py"])

        self.assertEqual(diff, "diff text")
        self.assertEqual(
            calls,
            [
                ["add", "--", "a.py", "b c.py"],
                ["rm", "--quiet", "--ignore-unmatch", "--", "gone.py"],
                ["reset", "--quiet", "--", "a.py"],
                ["diff", "--cached", "--", "a.py"],
                ["commit", "-m", "feat(ui): add x\n\n- body", "--", "a.py", "gone.py"],
            ],
        )

    def test_empty_path_lists_are_noops(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run(calls)
            client = GitClient(Path("/repo"))
            client.add([])
            client.remove([])
            client.unstage([])
        self.assertEqual(calls, [])

    def test_commit_without_paths(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = recording_run(calls)
            GitClient(Path("/repo")).commit("chore: x")
        self.assertEqual(calls, [["commit", "-m", "chore: x"]])


class TestRun(unittest.TestCase):
    def test_nonzero_exit_raises_git_error(self) -> None:
        proc = subprocess.CompletedProcess(["git"], 1, stdout="", stderr="fatal: bad revision\n")
        with patch("subprocess.run", return_value=proc):
            with self.assertRaises(GitError) as ctx:
                GitClient(Path("/repo")).get_commit_logs("nope")
        self.assertIn("bad revision", str(ctx.exception))

    def test_unchecked_failure_returns_result(self) -> None:
        proc = subprocess.CompletedProcess(["git"], 1, stdout="", stderr="x")
        with patch("subprocess.run", return_value=proc):
            result = GitClient(Path("/repo"))._run(["status"], check=False)
        self.assertEqual(result.returncode, 1)

    def test_missing_git_binary(self) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError("git")):
            with self.assertRaises(GitError):
                GitClient(Path("/repo")).get_current_branch()


class TestFindRepoRoot(unittest.TestCase):
    def test_walks_up_to_git_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".git").mkdir()
            nested = root / "apps" / "billing"
            nested.mkdir(parents=True)
            self.assertEqual(GitClient.find_repo_root(nested), root)

    def test_no_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with patch("pathlib.Path.exists", return_value=False):
                self.assertIsNone(GitClient.find_repo_root(Path(tmp)))


if __name__ == "__main__":
    unittest.main()
