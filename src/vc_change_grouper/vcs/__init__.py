"""
Version control system (VCS) integration.

This package contains the :class:`GitClient` used for reading diffs,
status and history and for staging and committing, plus structured
read-only views over that output in :mod:`vc_change_grouper.vcs.repo_info`.
"""

from .git_client import GitClient  # noqa: F401
