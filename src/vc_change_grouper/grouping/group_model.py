"""
Data models for change grouping and commit planning.

A :class:`Change` is one file's uncommitted modification, made up of
:class:`Hunk` objects. Changes are clustered into :class:`ChangeGroup`
objects, each of which becomes a :class:`CommitPlan`. Applying a plan
yields an :class:`ApplyResult`. None of these objects outlive the call
that produced them; identity across calls comes only from recomputing
the same IDs from the same repository content.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Hunk:
    """A contiguous diff region.

    Attributes
    ----------
    old_start, old_lines : int
        Line range in the pre-image.
    new_start, new_lines : int
        Line range in the post-image.
    header : str
        The ``@@ ... @@`` header line, including any section heading.
    lines : Tuple[str, ...]
        Diff lines with their ``' '``, ``'+'`` or ``'-'`` prefix.
    """

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str
    lines: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["lines"] = list(self.lines)
        return data


@dataclass(frozen=True)
class Change:
    """One file's uncommitted modification."""

    id: str
    file_path: str
    hunks: Tuple[Hunk, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "file_path": self.file_path,
            "hunks": [hunk.to_dict() for hunk in self.hunks],
        }


@dataclass
class ChangeGroup:
    """A content-addressed set of changes believed to share intent.

    ``change_ids`` is semantically a set; its order is kept only for
    display and never feeds into ``id``.
    """

    id: str
    change_ids: List[str]
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "change_ids": list(self.change_ids), "summary": self.summary}


@dataclass
class CommitPlan:
    """A proposed commit covering one or more change groups."""

    id: str
    title: str
    description: str
    change_group_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "change_group_ids": list(self.change_group_ids),
        }


@dataclass
class ApplyResult:
    """Outcome of applying (or previewing) a commit plan."""

    success: bool
    dry_run: bool
    committed_paths: List[str]
    message: str
    commit_sha: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "dry_run": self.dry_run,
            "committed_paths": list(self.committed_paths),
            "message": self.message,
        }
        if self.commit_sha is not None:
            data["commit_sha"] = self.commit_sha
        return data


@dataclass
class PullRequestDraft:
    """A pull request title and description composed from real commits."""

    title: str
    description: str
    commits: List[CommitPlan] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "commits": [commit.to_dict() for commit in self.commits],
        }
