"""
Application of a commit plan to the repository.

This is the only place that mutates the repository. A request passes
through ordered gates and the first failing gate raises; nothing is
staged or committed before every gate has passed:

1. confirmation: ``confirm`` must be exactly ``True``;
2. conflicts: no path may be unmerged on both sides;
3. resolution: the commit ID must match a plan recomputed from the
   current repository state;
4. optimistic concurrency: if the caller passed ``expected_head_sha``,
   HEAD must still point there;
5. scope: unless ``allow_staged`` is set, nothing outside the plan's
   file set may already be staged. With ``allow_staged`` those paths are
   committed along with the plan and listed in ``committed_paths``.

Gates 4 and 5 detect concurrent writers; they do not exclude them.
Another process can move HEAD or change the index after gate 4 has run
and before the commit is created. No repository lock is taken, so this
window is a known limitation rather than a bug.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from vc_change_grouper.commits.planner import build_commit_plan
from vc_change_grouper.embeddings.provider import EmbeddingProvider
from vc_change_grouper.errors import (
    ConfirmationError,
    ConflictError,
    HeadMovedError,
    StagedOutsideScopeError,
    UnknownIdError,
)
from vc_change_grouper.grouping.cluster import DEFAULT_THRESHOLD
from vc_change_grouper.grouping.group_model import ApplyResult, Change, ChangeGroup, CommitPlan
from vc_change_grouper.grouping.pipeline import compute_groups
from vc_change_grouper.vcs.git_client import GitClient


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


def _plan_file_paths(
    plan: CommitPlan,
    groups: List[ChangeGroup],
    changes: List[Change],
) -> List[str]:
    """Resolve plan -> groups -> changes -> file paths, without duplicates."""
    groups_by_id: Dict[str, ChangeGroup] = {group.id: group for group in groups}
    changes_by_id: Dict[str, Change] = {change.id: change for change in changes}
    paths: List[str] = []
    for group_id in plan.change_group_ids:
        group = groups_by_id.get(group_id)
        if group is None:
            continue
        for change_id in group.change_ids:
            change = changes_by_id.get(change_id)
            if change is not None and change.file_path not in paths:
                paths.append(change.file_path)
    return paths


def apply_commit(
    client: GitClient,
    provider: EmbeddingProvider,
    commit_id: str,
    confirm: bool,
    dry_run: bool = True,
    expected_head_sha: Optional[str] = None,
    message_override: Optional[str] = None,
    allow_staged: bool = False,
    threshold: float = DEFAULT_THRESHOLD,
) -> ApplyResult:
    """Validate and execute (or preview) the commit plan ``commit_id``.

    Parameters
    ----------
    client : GitClient
        Client for the repository to commit to.
    provider : EmbeddingProvider
        Provider used to recompute the groups.
    commit_id : str
        ID of a plan returned by ``propose_commits``.
    confirm : bool
        Must be ``True``; any other value fails the first gate.
    dry_run : bool, optional
        When True (the default) nothing is staged or committed.
    expected_head_sha : str, optional
        HEAD SHA the caller based its decision on.
    message_override : str, optional
        Replaces the generated title; the description is then dropped.
    allow_staged : bool, optional
        Skip the staged-outside-scope gate.
    threshold : float, optional
        Clustering threshold; must match the one used to propose the plan.

    Returns
    -------
    ApplyResult
        The committed (or would-be committed) paths and message, plus the
        new commit SHA when not a dry run.
    """
    if confirm is not True:
        raise ConfirmationError(
            "confirm must be true to apply a commit. "
            "Set confirm: true and dry_run: false to create a real commit."
        )

    if client.has_unresolved_conflicts():
        raise ConflictError(
            "Cannot commit during merge/rebase with unresolved conflicts. Resolve conflicts first."
        )

    changes, groups = compute_groups(client, provider, threshold)
    plan = next(
        (p for p in (build_commit_plan(group, changes) for group in groups) if p.id == commit_id),
        None,
    )
    if plan is None:
        raise UnknownIdError(f"Unknown commit ID: {commit_id}")
    file_paths = _plan_file_paths(plan, groups, changes)

    if expected_head_sha is not None:
        head_sha = client.get_head_sha()
        if head_sha != expected_head_sha:
            raise HeadMovedError(f"HEAD has moved: expected {expected_head_sha}, got {head_sha}")

    scope = set(file_paths)
    outside = [path for path in client.get_staged_files() if path not in scope]
    if outside and not allow_staged:
        logger.debug("Staged paths outside commit scope: %s", outside)
        raise StagedOutsideScopeError(
            "Repository has staged changes outside this commit's scope "
            f"({', '.join(outside)}). Unstage them first or pass allow_staged: true."
        )

    if message_override is not None:
        title, description = message_override, ""
    else:
        title, description = plan.title, plan.description
    message = f"{title}\n\n{description}" if description else title

    # ``git commit`` takes the whole index, so already-staged paths outside
    # the plan are part of the commit too.
    committed_paths = file_paths + outside

    if dry_run:
        logger.info("Dry run: would commit %d file(s) for %s", len(committed_paths), commit_id)
        return ApplyResult(success=True, dry_run=True, committed_paths=committed_paths, message=message)

    client.stage_files(file_paths)
    new_sha = client.commit(title, description or None)
    logger.info("Created commit %s for %s (%d file(s))", new_sha, commit_id, len(committed_paths))
    return ApplyResult(
        success=True,
        dry_run=False,
        committed_paths=committed_paths,
        message=message,
        commit_sha=new_sha,
    )
