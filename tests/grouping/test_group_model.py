import dataclasses
import unittest

from vc_change_grouper.grouping.group_model import (
    ApplyResult,
    Change,
    ChangeGroup,
    CommitPlan,
    Hunk,
    PullRequestDraft,
)


class TestGroupModel(unittest.TestCase):
    def test_change_is_immutable(self) -> None:
        change = Change(id="change-1", file_path="a.py")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            change.file_path = "b.py"  # type: ignore[misc]

    def test_change_to_dict(self) -> None:
        hunk = Hunk(1, 2, 1, 3, "@@ -1,2 +1,3 @@", (" a", "+b"))
        change = Change(id="change-1", file_path="a.py", hunks=(hunk,))
        self.assertEqual(
            change.to_dict(),
            {
                "id": "change-1",
                "file_path": "a.py",
                "hunks": [
                    {
                        "old_start": 1,
                        "old_lines": 2,
                        "new_start": 1,
                        "new_lines": 3,
                        "header": "@@ -1,2 +1,3 @@",
                        "lines": [" a", "+b"],
                    }
                ],
            },
        )

    def test_commit_plan_defaults(self) -> None:
        plan = CommitPlan(id="commit-1", title="t", description="d")
        self.assertEqual(plan.change_group_ids, [])
        self.assertEqual(plan.to_dict()["change_group_ids"], [])

    def test_group_to_dict_copies_ids(self) -> None:
        group = ChangeGroup(id="group-1", change_ids=["change-1"], summary="Changes in a.py")
        data = group.to_dict()
        data["change_ids"].append("change-2")
        self.assertEqual(group.change_ids, ["change-1"])

    def test_apply_result_omits_missing_sha(self) -> None:
        preview = ApplyResult(success=True, dry_run=True, committed_paths=["a.py"], message="Update a.py")
        self.assertNotIn("commit_sha", preview.to_dict())
        done = ApplyResult(True, False, ["a.py"], "Update a.py", commit_sha="abc123")
        self.assertEqual(done.to_dict()["commit_sha"], "abc123")

    def test_pull_request_draft_to_dict(self) -> None:
        draft = PullRequestDraft(
            title="Add x",
            description="## Summary",
            commits=[CommitPlan(id="deadbeef", title="Add x", description="")],
        )
        data = draft.to_dict()
        self.assertEqual(data["commits"][0]["id"], "deadbeef")
        self.assertEqual(data["title"], "Add x")


if __name__ == "__main__":
    unittest.main()
