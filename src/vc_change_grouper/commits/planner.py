"""
Deterministic commit planning.

Turns a :class:`ChangeGroup` into a :class:`CommitPlan` with a title
derived from file basenames and a description listing every file with
its hunk count. Planning is a pure function of the group and the
change set it was computed from; :func:`propose_commits` recomputes the
groups from the repository before planning.
"""

from __future__ import annotations

from typing import List, Sequence

from vc_change_grouper.embeddings.provider import EmbeddingProvider
from vc_change_grouper.errors import UnknownIdError
from vc_change_grouper.grouping.cluster import DEFAULT_THRESHOLD
from vc_change_grouper.grouping.group_model import Change, ChangeGroup, CommitPlan
from vc_change_grouper.grouping.pipeline import compute_groups, content_hash
from vc_change_grouper.vcs.git_client import GitClient


def _basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]


def heuristic_title(file_paths: Sequence[str]) -> str:
    """Build a commit title from file basenames.

    >>> heuristic_title(["src/a.py"])
    'Update a.py'
    >>> heuristic_title(["a.py", "b.py", "c.py", "d.py"])
    'Update a.py, b.py, and 2 more'
    """
    names = [_basename(path) for path in file_paths]
    if len(names) <= 3:
        return f"Update {', '.join(names)}"
    return f"Update {names[0]}, {names[1]}, and {len(names) - 2} more"


def build_description(changes: Sequence[Change]) -> str:
    lines = [f"Changes across {len(changes)} file(s):"]
    for change in changes:
        count = len(change.hunks)
        lines.append(f"- {change.file_path} ({count} hunk{'' if count == 1 else 's'})")
    return "\n".join(lines)


def build_commit_plan(group: ChangeGroup, all_changes: Sequence[Change]) -> CommitPlan:
    """Map a group to its commit plan.

    Member IDs that do not resolve in ``all_changes`` are skipped.
    """
    by_id = {change.id: change for change in all_changes}
    members = [by_id[change_id] for change_id in group.change_ids if change_id in by_id]
    return CommitPlan(
        id=f"commit-{content_hash([group.id])}",
        title=heuristic_title([change.file_path for change in members]),
        description=build_description(members),
        change_group_ids=[group.id],
    )


def propose_commits(
    group_ids: Sequence[str],
    client: GitClient,
    provider: EmbeddingProvider,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[CommitPlan]:
    """Propose one commit per requested group, in request order.

    Raises
    ------
    UnknownIdError
        If any group ID does not match a group of the current changes.
    """
    changes, groups = compute_groups(client, provider, threshold)
    by_id = {group.id: group for group in groups}
    unknown = [group_id for group_id in group_ids if group_id not in by_id]
    if unknown:
        raise UnknownIdError(f"Unknown group IDs: {', '.join(unknown)}")
    return [build_commit_plan(by_id[group_id], changes) for group_id in group_ids]
