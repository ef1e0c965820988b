"""
Commit planning, application and pull request drafting.

See :mod:`vc_change_grouper.commits.planner`,
:mod:`vc_change_grouper.commits.applier` and
:mod:`vc_change_grouper.commits.pr_drafter`.
"""

from .applier import apply_commit  # noqa: F401
from .planner import build_commit_plan, propose_commits  # noqa: F401
from .pr_drafter import generate_pr  # noqa: F401
