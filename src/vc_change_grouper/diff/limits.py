"""
Output size caps for tool results.

Large repositories can produce diffs far bigger than a caller wants in
one response. These helpers truncate lists at fixed limits and report
how many entries were left out. They are applied at the tool boundary
only; the grouping pipeline always works on the full change set.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence, Tuple, TypeVar

from vc_change_grouper.grouping.group_model import Change


MAX_PATH_ENTRIES = 200
MAX_CHANGE_ENTRIES = 200
MAX_HUNKS_PER_CHANGE = 200
MAX_DIFF_LINES_PER_HUNK = 200
MAX_BLAME_LINES = 200

T = TypeVar("T")


def truncate_list(values: Sequence[T], limit: int) -> Tuple[List[T], int]:
    """Return the first ``limit`` values and the number omitted."""
    if len(values) <= limit:
        return list(values), 0
    return list(values[:limit]), len(values) - limit


def cap_changes(changes: Sequence[Change]) -> Tuple[List[Change], int]:
    """Cap the number of changes, hunks per change and lines per hunk.

    Returns
    -------
    Tuple[List[Change], int]
        The capped changes and the total count of omitted changes,
        hunks and lines.
    """
    kept, omitted = truncate_list(changes, MAX_CHANGE_ENTRIES)
    capped: List[Change] = []
    for change in kept:
        hunks, dropped = truncate_list(change.hunks, MAX_HUNKS_PER_CHANGE)
        omitted += dropped
        new_hunks = []
        for hunk in hunks:
            lines, dropped = truncate_list(hunk.lines, MAX_DIFF_LINES_PER_HUNK)
            omitted += dropped
            new_hunks.append(replace(hunk, lines=tuple(lines)))
        capped.append(replace(change, hunks=tuple(new_hunks)))
    return capped, omitted
