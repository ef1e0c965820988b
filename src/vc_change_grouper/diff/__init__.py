"""
Diff parsing and change loading.

:mod:`vc_change_grouper.diff.diff_parser` turns unified diff text into
per-file hunks and :mod:`vc_change_grouper.diff.change_loader` turns the
repository's uncommitted edits into numbered :class:`Change` records.
"""

from .diff_parser import FileDiff, parse_diff  # noqa: F401
