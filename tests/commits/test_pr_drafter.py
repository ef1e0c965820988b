import unittest
from unittest.mock import MagicMock

from vc_change_grouper.commits.pr_drafter import generate_pr
from vc_change_grouper.errors import GitError, InputError, UnknownIdError


COMMITS = {
    "aaaa1111": ("a" * 40, "Add parser", "Parses things.", "M\tsrc/parser.py\nA\ttests/test_parser.py\n"),
    "bbbb2222": ("b" * 40, "Fix typo", "", "M\tREADME.md\nM\tsrc/parser.py\n"),
}


def _metadata(sha: str, subject: str, body: str) -> str:
    fields = [sha, sha[:7], subject, body, "Ada", "a@x", "d", "Ada", "a@x", "d", ""]
    return "\x00".join(fields)


def _client() -> MagicMock:
    client = MagicMock()

    def show_metadata(ref):
        if ref not in COMMITS:
            raise GitError(f"fatal: bad revision '{ref}'")
        sha, subject, body, _ = COMMITS[ref]
        return _metadata(sha, subject, body)

    def show_name_status(ref):
        for sha, _, _, files in COMMITS.values():
            if sha == ref:
                return files
        raise AssertionError(ref)

    client.show_commit_metadata.side_effect = show_metadata
    client.show_name_status.side_effect = show_name_status
    return client


class TestGeneratePr(unittest.TestCase):
    def test_single_commit(self) -> None:
        draft = generate_pr(_client(), ["aaaa1111"])
        self.assertEqual(draft.title, "Add parser")
        self.assertEqual(len(draft.commits), 1)
        self.assertEqual(draft.commits[0].id, "a" * 40)
        self.assertEqual(draft.commits[0].description, "Parses things.")
        self.assertEqual(draft.commits[0].change_group_ids, [])

    def test_multiple_commits(self) -> None:
        draft = generate_pr(_client(), ["aaaa1111", "bbbb2222"])
        self.assertEqual(draft.title, "Add parser (+1 more)")
        self.assertEqual(
            draft.description,
            "\n".join(
                [
                    "## Summary",
                    "- Add parser",
                    "- Fix typo",
                    "",
                    "## Commits",
                    "- `aaaaaaa` Add parser",
                    "- `bbbbbbb` Fix typo",
                    "",
                    "## Files changed",
                    "- README.md",
                    "- src/parser.py",
                    "- tests/test_parser.py",
                ]
            ),
        )

    def test_requires_at_least_one_sha(self) -> None:
        with self.assertRaises(InputError) as ctx:
            generate_pr(_client(), [])
        self.assertEqual(str(ctx.exception), "At least one commit SHA is required")

    def test_rejects_symbolic_refs(self) -> None:
        client = _client()
        for ref in ("HEAD~1", "main", "abc"):
            with self.assertRaises(InputError):
                generate_pr(client, [ref])
        client.show_commit_metadata.assert_not_called()

    def test_accepts_uppercase_hex(self) -> None:
        client = _client()
        with self.assertRaises(UnknownIdError):
            generate_pr(client, ["ABCD1234"])

    def test_unknown_sha(self) -> None:
        with self.assertRaises(UnknownIdError) as ctx:
            generate_pr(_client(), ["aaaa1111", "cccc3333"])
        self.assertEqual(str(ctx.exception), "Unknown commit SHA: cccc3333")
        self.assertNotIsInstance(ctx.exception, GitError)


if __name__ == "__main__":
    unittest.main()
