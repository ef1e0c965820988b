"""
Pull request drafting from real commits.

Composes a pull request title and a markdown description from the
metadata of commits that already exist. Only hex SHAs are accepted;
symbolic refs such as ``HEAD~1`` or branch names are rejected.
"""

from __future__ import annotations

import re
from typing import List, Sequence

from vc_change_grouper.errors import GitError, InputError, UnknownIdError
from vc_change_grouper.grouping.group_model import CommitPlan, PullRequestDraft
from vc_change_grouper.vcs.git_client import GitClient
from vc_change_grouper.vcs.repo_info import parse_commit_metadata, parse_name_status


SHA_PATTERN = re.compile(r"^[0-9a-f]{4,}$", re.IGNORECASE)


def generate_pr(client: GitClient, commit_shas: Sequence[str]) -> PullRequestDraft:
    """Build a :class:`PullRequestDraft` for ``commit_shas``.

    Raises
    ------
    InputError
        If no SHA is given or a SHA is not 4+ hex characters.
    UnknownIdError
        If a SHA does not resolve to a commit.
    """
    if not commit_shas:
        raise InputError("At least one commit SHA is required")
    for sha in commit_shas:
        if not SHA_PATTERN.match(sha):
            raise InputError(f"Invalid commit SHA format: {sha}")

    metadatas = []
    files = set()
    for sha in commit_shas:
        try:
            raw = client.show_commit_metadata(sha)
        except GitError as exc:
            raise UnknownIdError(f"Unknown commit SHA: {sha}") from exc
        meta = parse_commit_metadata(raw)
        metadatas.append(meta)
        files.update(entry.path for entry in parse_name_status(client.show_name_status(meta["sha"])))

    first = metadatas[0]["subject"]
    title = first if len(metadatas) == 1 else f"{first} (+{len(metadatas) - 1} more)"

    description: List[str] = ["## Summary"]
    description.extend(f"- {meta['subject']}" for meta in metadatas)
    description.extend(["", "## Commits"])
    description.extend(f"- `{meta['short_sha']}` {meta['subject']}" for meta in metadatas)
    description.extend(["", "## Files changed"])
    description.extend(f"- {path}" for path in sorted(files))

    commits = [
        CommitPlan(id=meta["sha"], title=meta["subject"], description=meta["body"])
        for meta in metadatas
    ]
    return PullRequestDraft(title=title, description="\n".join(description), commits=commits)
