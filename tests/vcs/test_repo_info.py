import unittest
from pathlib import Path
from unittest.mock import MagicMock

from vc_change_grouper.errors import GitError, InputError
from vc_change_grouper.vcs import repo_info
from vc_change_grouper.vcs.repo_info import (
    FileStatus,
    parse_commit_metadata,
    parse_log_output,
    parse_name_status,
    parse_porcelain,
    status_label,
)


SHA = "0123456789abcdef0123456789abcdef01234567"
PARENT = "fedcba9876543210fedcba9876543210fedcba98"


def _metadata(body: str = "Longer body\n", parents: str = PARENT) -> str:
    return "\x00".join(
        [
            SHA,
            SHA[:7],
            "Add feature",
            body,
            "Ada",
            "ada@example.com",
            "2024-01-02T03:04:05+00:00",
            "Bob",
            "bob@example.com",
            "2024-01-03T03:04:05+00:00",
            parents,
        ]
    )


class TestParsers(unittest.TestCase):
    def test_status_label(self) -> None:
        self.assertEqual(status_label("M"), "modified")
        self.assertEqual(status_label("R100"), "renamed")
        self.assertEqual(status_label("X"), "X")

    def test_parse_porcelain(self) -> None:
        output = (
            "## main...origin/main [ahead 2, behind 1]\n"
            "M  staged.py\n"
            " M unstaged.py\n"
            "MM both.py\n"
            "R  old.py -> new.py\n"
            "?? untracked.txt\n"
        )
        parsed = parse_porcelain(output)
        self.assertEqual(parsed["upstream"], "origin/main")
        self.assertEqual(parsed["ahead_by"], 2)
        self.assertEqual(parsed["behind_by"], 1)
        self.assertEqual(
            parsed["staged"],
            [
                FileStatus("staged.py", "modified"),
                FileStatus("both.py", "modified"),
                FileStatus("new.py", "renamed"),
            ],
        )
        self.assertEqual(parsed["unstaged"], [FileStatus("unstaged.py", "modified"), FileStatus("both.py", "modified")])
        self.assertEqual(parsed["untracked"], ["untracked.txt"])

    def test_parse_porcelain_without_upstream(self) -> None:
        parsed = parse_porcelain("## No commits yet on main\n")
        self.assertIsNone(parsed["upstream"])
        self.assertIsNone(parsed["ahead_by"])

    def test_parse_log_output(self) -> None:
        raw = (
            f"{SHA}\x00{SHA[:7]}\x00First\x00Ada\x00ada@example.com\x002024-01-01T00:00:00+00:00\x00{PARENT}\x1e\n"
            f"{PARENT}\x00{PARENT[:7]}\x00Root\x00Ada\x00ada@example.com\x002023-12-31T00:00:00+00:00\x00\x1e"
        )
        commits = parse_log_output(raw)
        self.assertEqual([c.subject for c in commits], ["First", "Root"])
        self.assertEqual(commits[0].parents, [PARENT])
        self.assertEqual(commits[1].parents, [])

    def test_parse_commit_metadata(self) -> None:
        meta = parse_commit_metadata(_metadata())
        self.assertEqual(meta["sha"], SHA)
        self.assertEqual(meta["subject"], "Add feature")
        self.assertEqual(meta["body"], "Longer body")
        self.assertEqual(meta["committer_name"], "Bob")
        self.assertEqual(meta["parents"], [PARENT])

    def test_parse_commit_metadata_empty_body_root_commit(self) -> None:
        meta = parse_commit_metadata(_metadata(body="", parents=""))
        self.assertEqual(meta["body"], "")
        self.assertEqual(meta["parents"], [])

    def test_parse_commit_metadata_rejects_garbage(self) -> None:
        with self.assertRaises(GitError):
            parse_commit_metadata("not metadata")

    def test_parse_name_status(self) -> None:
        raw = "M\tsrc/a.py\nA\tnew.py\nR087\told.py\trenamed.py\n\n"
        self.assertEqual(
            parse_name_status(raw),
            [
                FileStatus("src/a.py", "modified"),
                FileStatus("new.py", "added"),
                FileStatus("renamed.py", "renamed"),
            ],
        )


class TestQueries(unittest.TestCase):
    def test_get_log_clamps_limit(self) -> None:
        client = MagicMock()
        client.get_log.return_value = ""
        repo_info.get_log(client, limit=5000)
        self.assertEqual(client.get_log.call_args.kwargs["limit"], 200)
        repo_info.get_log(client, limit=0)
        self.assertEqual(client.get_log.call_args.kwargs["limit"], 1)

    def test_get_diff_between_refs_clamps_context(self) -> None:
        client = MagicMock()
        client.diff_between_refs.return_value = ""
        self.assertEqual(repo_info.get_diff_between_refs(client, "a", "b", unified=99), [])
        self.assertEqual(client.diff_between_refs.call_args.kwargs["unified"], 20)

    def test_get_commit(self) -> None:
        client = MagicMock()
        client.show_commit_metadata.return_value = _metadata()
        client.show_name_status.return_value = "M\ta.py\n"
        client.show_commit_diff.return_value = (
            "diff --git a/a.py b/a.py\n--- a/a.py\n+++ b/a.py\n@@ -1 +1 @@\n-x\n+y\n"
        )
        detail = repo_info.get_commit(client, "HEAD")
        client.show_commit_diff.assert_called_once_with(SHA, has_parents=True)
        data = detail.to_dict()
        self.assertEqual(data["files"], [{"path": "a.py", "status": "modified"}])
        self.assertEqual(data["diff"]["changes"][0]["id"], "change-1")
        self.assertEqual(data["diff"]["changes"][0]["hunks"][0]["lines"], ["-x", "+y"])

    def test_get_repo_status_detached(self) -> None:
        client = MagicMock()
        client.get_toplevel.return_value = Path("/repo")
        client.get_current_branch.return_value = None
        client.try_head_sha.return_value = SHA
        client.get_status_with_branch.return_value = "## HEAD (no branch)\n M a.py\n"
        client.get_git_dir.return_value = Path("/nonexistent/.git")
        status = repo_info.get_repo_status(client)
        self.assertEqual(status.head.type, "detached")
        self.assertEqual(status.head.sha, SHA)
        data = status.to_dict()
        self.assertEqual(data["root_path"], "/repo")
        self.assertNotIn("upstream", data)
        self.assertFalse(data["merge_in_progress"])
        self.assertEqual(data["unstaged"], [{"path": "a.py", "status": "modified"}])


BLAME = (
    f"{SHA} 1 1 2\n"
    "author Ada\n"
    "author-mail <ada@example.com>\n"
    "author-time 1700000000\n"
    "author-tz +0100\n"
    "committer Ada\n"
    "committer-mail <ada@example.com>\n"
    "committer-time 1700000000\n"
    "committer-tz +0100\n"
    "summary Add feature\n"
    "filename a.py\n"
    "\timport os\n"
    f"{SHA} 2 2\n"
    "\timport sys\n"
    f"{PARENT} 1 3 1\n"
    "author Grace\n"
    "author-mail <grace@example.com>\n"
    "author-time 1600000000\n"
    "author-tz -0500\n"
    "summary Initial commit\n"
    "boundary\n"
    "filename a.py\n"
    "\t\n"
)


class TestBlame(unittest.TestCase):
    def test_parse_blame_porcelain(self) -> None:
        lines = repo_info.parse_blame_porcelain(BLAME)
        self.assertEqual([line.line_number for line in lines], [1, 2, 3])
        self.assertEqual([line.content for line in lines], ["import os", "import sys", ""])
        first = lines[0].commit
        self.assertEqual(first.sha, SHA)
        self.assertEqual(first.short_sha, SHA[:7])
        self.assertEqual(first.author_email, "ada@example.com")
        self.assertEqual(first.author_time, "2023-11-14T23:13:20+01:00")
        self.assertEqual(first.summary, "Add feature")
        self.assertIs(lines[1].commit, first)
        self.assertEqual(lines[2].commit.author_name, "Grace")
        self.assertEqual(lines[2].commit.author_time, "2020-09-13T07:26:40-05:00")

    def test_get_blame_passes_options(self) -> None:
        client = MagicMock()
        client.blame.return_value = BLAME
        result = repo_info.get_blame(client, "a.py", ref="v1", start_line=1, end_line=3, ignore_whitespace=True)
        client.blame.assert_called_once_with(
            "a.py", ref="v1", start_line=1, end_line=3, ignore_whitespace=True, detect_moves=False
        )
        data = result.to_dict()
        self.assertEqual(data["path"], "a.py")
        self.assertEqual(data["ref"], "v1")
        self.assertEqual(data["lines"][0]["commit"]["author_name"], "Ada")

    def test_get_blame_rejects_bad_range(self) -> None:
        client = MagicMock()
        for start, end in ((0, 3), (5, 2), (None, 0)):
            with self.assertRaises(InputError):
                repo_info.get_blame(client, "a.py", start_line=start, end_line=end)
        client.blame.assert_not_called()


if __name__ == "__main__":
    unittest.main()
