"""
Loading of the current uncommitted changes.

This is the single source of truth for change IDs: every operation that
refers to a change by ID reloads the repository through
:func:`load_changes`, so the same working tree always yields the same
``change-N`` numbering.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Sequence, Tuple

from vc_change_grouper.diff.diff_parser import FileDiff, parse_diff
from vc_change_grouper.grouping.group_model import Change, Hunk
from vc_change_grouper.vcs.git_client import GitClient


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


def number_changes(entries: Iterable[FileDiff]) -> List[Change]:
    """Sort parsed file diffs by path and assign ``change-N`` IDs.

    Sorting compares plain code points so the order does not depend on
    the locale.
    """
    ordered = sorted(entries, key=lambda entry: entry.file_path)
    return [
        Change(id=f"change-{idx}", file_path=entry.file_path, hunks=tuple(entry.hunks))
        for idx, entry in enumerate(ordered, start=1)
    ]


def load_changes(client: GitClient) -> List[Change]:
    """Return all uncommitted changes, sorted by path, with deterministic IDs.

    Staged and unstaged edits of the same file are merged into one
    change, staged hunks first. Untracked files are not included.
    """
    merged: "OrderedDict[str, List[Hunk]]" = OrderedDict()
    for staged in (True, False):
        for entry in parse_diff(client.get_uncommitted_diff(staged=staged)):
            merged.setdefault(entry.file_path, []).extend(entry.hunks)

    changes = number_changes(FileDiff(file_path=path, hunks=hunks) for path, hunks in merged.items())
    logger.debug("Loaded %d uncommitted change(s)", len(changes))
    return changes


def resolve_change_ids(
    requested_ids: Sequence[str],
    client: GitClient,
) -> Tuple[List[Change], List[str]]:
    """Resolve change IDs against the current repository state.

    Returns
    -------
    Tuple[List[Change], List[str]]
        The matching changes in path order (duplicates collapse) and the
        requested IDs that did not resolve, in request order.
    """
    all_changes = load_changes(client)
    known: Dict[str, Change] = {change.id: change for change in all_changes}
    unknown = [change_id for change_id in requested_ids if change_id not in known]
    wanted = set(requested_ids)
    changes = [change for change in all_changes if change.id in wanted]
    return changes, unknown
