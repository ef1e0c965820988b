"""
Git client implementation for vc_change_grouper.

This module wraps the Git operations the grouping pipeline and the
commit applier rely on: reading uncommitted diffs, inspecting status and
HEAD, staging a file set and creating a commit, plus the read-only
commit/log queries used by the PR drafter and the inspection tools.
Every subprocess call goes through :meth:`GitClient._run` so that error
handling and logging stay in one place and unit tests can patch a single
method.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from vc_change_grouper.errors import GitError, GitNotFoundError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Porcelain status codes that mark an unresolved merge/rebase conflict
# where both sides touched the path.
CONFLICT_CODES = ("UU", "AA", "DD")


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = Path(repo_root)

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @classmethod
    def resolve_repo_root(cls, path: Path) -> Path:
        """Resolve any directory inside a repository to its top level.

        Raises
        ------
        GitError
            If ``path`` is not inside a Git repository.
        """
        path = Path(path)
        if not path.is_dir():
            raise GitError(f"Not a directory: {path}")
        return cls(path).get_toplevel()

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitNotFoundError
            If the ``git`` executable cannot be found.
        GitError
            If the command exits with a non-zero status when ``check`` is True.
        """
        # Paths come back verbatim (UTF-8) instead of C-quoted octal escapes.
        full_cmd = ["git", "-c", "core.quotePath=false"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            logger.error("git executable not found: %s", exc)
            raise GitNotFoundError("git command not found. Please install git.") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            message = result.stderr.strip() or result.stdout.strip()
            if "not a git repository" in message.lower():
                raise GitError("Not a git repository")
            raise GitError(message or f"git {' '.join(args)} failed")
        return result

    # ------------------------------------------------------------------
    # Uncommitted state
    # ------------------------------------------------------------------
    def get_uncommitted_diff(self, staged: bool) -> str:
        """Return the unified diff of staged (index) or unstaged (worktree) edits."""
        args = ["diff", "--no-color", "--no-ext-diff"]
        if staged:
            args.append("--cached")
        return self._run(args).stdout

    def get_status_porcelain(self) -> List[str]:
        """Return the non-empty lines of ``git status --porcelain``."""
        result = self._run(["status", "--porcelain"])
        return [line for line in result.stdout.splitlines() if line.strip()]

    def has_unresolved_conflicts(self) -> bool:
        """Return True if any path is unmerged on both sides."""
        return any(line[:2] in CONFLICT_CODES for line in self.get_status_porcelain())

    def get_head_sha(self) -> str:
        """Return the full SHA of HEAD."""
        return self._run(["rev-parse", "HEAD"]).stdout.strip()

    def get_staged_files(self) -> List[str]:
        """Return the paths currently staged in the index."""
        result = self._run(["diff", "--cached", "--name-only"], check=False)
        if result.returncode != 0:
            logger.debug("Could not list staged files: %s", result.stderr.strip())
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------
    def stage_files(self, files: Sequence[str]) -> None:
        """Stage exactly the given paths.

        Paths still present in the working tree are staged with ``git add``.
        A path missing from the working tree is a deletion, which may
        already be staged (``git rm``); ``git add`` rejects such a path
        because it matches neither the index nor the working tree, so
        deletions are staged with ``git rm --cached --ignore-unmatch``.
        """
        present = [path for path in files if os.path.lexists(self.repo_root / path)]
        missing = [path for path in files if path not in present]
        if present:
            self._run(["add", "--", *present])
        if missing:
            self._run(["rm", "--cached", "-q", "--ignore-unmatch", "--", *missing])

    def commit(self, title: str, description: Optional[str] = None) -> str:
        """Create a commit and return the new HEAD SHA.

        The title and the description are passed as separate ``-m``
        arguments so Git joins them as paragraphs; no shell is involved.
        """
        args = ["commit", "-m", title]
        if description:
            args.extend(["-m", description])
        self._run(args)
        return self.get_head_sha()

    # ------------------------------------------------------------------
    # Read-only history queries
    # ------------------------------------------------------------------
    def show_commit_metadata(self, ref: str) -> str:
        """Return NUL-separated metadata for ``ref``.

        Fields: sha, short sha, subject, body, author name, author email,
        author date, committer name, committer email, committer date,
        parents.
        """
        fmt = "%x00".join(
            ["%H", "%h", "%s", "%b", "%an", "%ae", "%ad", "%cn", "%ce", "%cd", "%P"]
        )
        return self._run(
            ["show", "-s", "--date=iso-strict", f"--pretty=format:{fmt}", ref, "--"]
        ).stdout

    def show_name_status(self, ref: str) -> str:
        """Return ``git show --name-status`` output for ``ref`` without the header."""
        return self._run(["show", "--name-status", "--pretty=format:", ref, "--"]).stdout

    def show_commit_diff(self, ref: str, has_parents: bool) -> str:
        """Return the unified diff introduced by ``ref``."""
        if has_parents:
            return self._run(["diff", f"{ref}^!", "--no-color", "--unified=3"]).stdout
        return self._run(
            ["show", ref, "--no-color", "--unified=3", "--pretty=format:"]
        ).stdout

    def get_log(
        self,
        ref: str = "HEAD",
        limit: int = 20,
        path: Optional[str] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        include_merges: bool = False,
    ) -> str:
        """Return raw, record-separated ``git log`` output."""
        args = [
            "log",
            ref,
            "-n",
            str(limit),
            "--date=iso-strict",
            "--pretty=format:%H%x00%h%x00%s%x00%an%x00%ae%x00%ad%x00%P%x1e",
        ]
        if not include_merges:
            args.append("--no-merges")
        if since is not None:
            args.append(f"--since={since}")
        if until is not None:
            args.append(f"--until={until}")
        args.append("--")
        if path is not None:
            args.append(path)
        return self._run(args).stdout

    def diff_between_refs(
        self,
        base: str,
        head: str,
        path: Optional[str] = None,
        unified: int = 3,
    ) -> str:
        """Return the unified diff between two refs."""
        args = ["diff", base, head, "--no-color", f"--unified={unified}", "--"]
        if path is not None:
            args.append(path)
        return self._run(args).stdout

    def blame(
        self,
        path: str,
        ref: str = "HEAD",
        start_line: Optional[int] = None,
        end_line: Optional[int] = None,
        ignore_whitespace: bool = False,
        detect_moves: bool = False,
    ) -> str:
        """Return ``git blame --porcelain`` output for ``path`` at ``ref``."""
        args = ["blame", "--porcelain"]
        if ignore_whitespace:
            args.append("-w")
        if detect_moves:
            args.extend(["-M", "-C"])
        if start_line is not None or end_line is not None:
            end = "" if end_line is None else str(end_line)
            args.extend(["-L", f"{start_line or 1},{end}"])
        args.extend([ref, "--", path])
        return self._run(args).stdout

    # ------------------------------------------------------------------
    # Repository status
    # ------------------------------------------------------------------
    def get_status_with_branch(self) -> str:
        """Return ``git status --porcelain=v1 -b`` output."""
        return self._run(
            ["status", "--porcelain=v1", "-b", "--untracked-files=normal"]
        ).stdout

    def get_current_branch(self) -> Optional[str]:
        """Return the checked-out branch name, or None when HEAD is detached."""
        result = self._run(["symbolic-ref", "--short", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def try_head_sha(self) -> Optional[str]:
        """Return the HEAD SHA, or None in a repository without commits."""
        result = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def get_toplevel(self) -> Path:
        """Return the top-level directory of the working tree."""
        return Path(self._run(["rev-parse", "--show-toplevel"]).stdout.strip())

    def get_git_dir(self) -> Path:
        """Return the absolute path of the ``.git`` directory."""
        git_dir = Path(self._run(["rev-parse", "--git-dir"]).stdout.strip())
        if not git_dir.is_absolute():
            git_dir = self.repo_root / git_dir
        return git_dir
