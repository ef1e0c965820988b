"""
Named tool operations.

Every operation the package exposes to an automated caller is a named
tool with a fixed input schema. :func:`dispatch` validates the
arguments, runs the core operation against the repository and converts
any failure into an error result whose text is the original exception
message. This module is the only place where failures become
user-facing output; the core only raises.

:func:`serve` runs the same dispatch over a JSON-lines stream, one
request per line, with all requests sharing one :class:`ToolSession`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, IO, List, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from vc_change_grouper.commits.applier import apply_commit
from vc_change_grouper.commits.planner import propose_commits
from vc_change_grouper.commits.pr_drafter import generate_pr
from vc_change_grouper.config.loader import load_config
from vc_change_grouper.diff.change_loader import load_changes
from vc_change_grouper.diff.limits import (
    MAX_BLAME_LINES,
    MAX_PATH_ENTRIES,
    cap_changes,
    truncate_list,
)
from vc_change_grouper.embeddings.provider import EmbeddingProvider, get_embedding_provider
from vc_change_grouper.errors import ChangeGrouperError, InputError, NoRepositoryError
from vc_change_grouper.grouping.pipeline import group_changes
from vc_change_grouper.vcs.git_client import GitClient
from vc_change_grouper.vcs import repo_info


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Input schemas
# ---------------------------------------------------------------------------
class ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ListChangesInput(ToolInput):
    pass


class GroupChangesInput(ToolInput):
    change_ids: List[str] = Field(description="IDs of changes to group (from list_changes)")


class ProposeCommitsInput(ToolInput):
    group_ids: List[str] = Field(description="IDs of change groups to create commits for")


class ApplyCommitInput(ToolInput):
    commit_id: str = Field(min_length=1, description="ID of the commit plan to apply")
    confirm: Any = Field(default=None, description="Must be exactly true to proceed")
    dry_run: StrictBool = Field(default=True, description="Preview without mutating")
    expected_head_sha: Optional[str] = Field(
        default=None, description="Fail if HEAD is no longer this SHA"
    )
    message_override: Optional[str] = Field(
        default=None, min_length=1, description="Custom commit title replacing the generated message"
    )
    allow_staged: StrictBool = Field(
        default=False, description="Allow staged changes outside this commit's scope"
    )


class GeneratePrInput(ToolInput):
    commit_shas: List[str] = Field(description="Commit SHAs (hex, 4+ characters)")


class RepoStatusInput(ToolInput):
    pass


class LogInput(ToolInput):
    limit: int = Field(default=20, description="Max commits (clamped 1..200)")
    ref: str = Field(default="HEAD", min_length=1)
    path: Optional[str] = None
    since: Optional[str] = None
    until: Optional[str] = None
    include_merges: StrictBool = False


class SetRepoRootInput(ToolInput):
    path: str = Field(
        min_length=1, description="Path to a git repository root or any subdirectory inside it"
    )


class GetRepoRootInput(ToolInput):
    pass


class BlameInput(ToolInput):
    path: str = Field(min_length=1, description="Repo-relative file path to blame")
    ref: str = Field(default="HEAD", min_length=1, description="Git ref to blame at")
    start_line: Optional[int] = Field(default=None, description="Start line (1-indexed, inclusive)")
    end_line: Optional[int] = Field(default=None, description="End line (1-indexed, inclusive)")
    ignore_whitespace: StrictBool = False
    detect_moves: StrictBool = Field(
        default=False, description="Detect moved or copied lines across files"
    )


class ShowCommitInput(ToolInput):
    sha: str = Field(min_length=1, description="Commit SHA or ref to inspect")


class DiffBetweenRefsInput(ToolInput):
    base: str = Field(min_length=1)
    head: str = Field(min_length=1)
    path: Optional[str] = None
    unified: int = Field(default=3, description="Context lines (clamped 0..20)")


# ---------------------------------------------------------------------------
# Output schemas
# ---------------------------------------------------------------------------
class ChangeGroupOutput(BaseModel):
    id: str
    change_ids: List[str]
    summary: str


class GroupChangesOutput(BaseModel):
    groups: List[ChangeGroupOutput]


class CommitPlanOutput(BaseModel):
    id: str
    title: str
    description: str
    change_group_ids: List[str]


class ProposeCommitsOutput(BaseModel):
    commits: List[CommitPlanOutput]


class ApplyCommitOutput(BaseModel):
    success: bool
    dry_run: bool
    commit_sha: Optional[str] = None
    committed_paths: List[str]
    message: str


class PullRequestDraftOutput(BaseModel):
    title: str
    description: str
    commits: List[CommitPlanOutput]


# ---------------------------------------------------------------------------
# Tool session
# ---------------------------------------------------------------------------
NO_REPO_MESSAGE = (
    "No repository selected. Call set_repo_root first, "
    "or start from inside a git repository."
)


class ToolSession:
    """Repository selection and configuration shared by tool calls.

    A session outlives a single call in :func:`serve`, where
    ``set_repo_root`` re-targets every later request. The embedding
    provider is only built when a tool needs it, so read-only tools work
    without an API key.
    """

    def __init__(
        self,
        repo_root: Optional[Path] = None,
        config: Optional[Mapping[str, Any]] = None,
        provider: Optional[EmbeddingProvider] = None,
    ) -> None:
        self.repo_root = Path(repo_root) if repo_root is not None else None
        self._config = config
        self._provider = provider

    @property
    def client(self) -> GitClient:
        if self.repo_root is None:
            raise NoRepositoryError(NO_REPO_MESSAGE)
        return GitClient(self.repo_root)

    @property
    def config(self) -> Mapping[str, Any]:
        if self._config is None:
            self._config = load_config()
        return self._config

    @property
    def provider(self) -> EmbeddingProvider:
        if self._provider is None:
            self._provider = get_embedding_provider(self.config)
        return self._provider

    @property
    def threshold(self) -> float:
        return float(self.config.get("similarity_threshold", 0.80))

    def run(self, name: str, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Validate ``arguments`` and run tool ``name``, returning its content.

        Raises
        ------
        InputError
            If the tool name is unknown or the arguments fail validation.
        ChangeGrouperError
            Whatever the underlying operation raises.
        """
        entry = TOOLS.get(name)
        if entry is None:
            raise InputError(f"Unknown tool: {name}")
        schema, handler = entry
        try:
            args = schema.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            raise InputError(f"Invalid arguments for {name}: {exc}") from exc

        logger.debug("Running tool %s in %s", name, self.repo_root)
        return handler(self, args)

    def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Run tool ``name`` and return ``{"content": ...}`` or an error result.

        Error results have the form ``{"isError": True, "content": message}``
        where ``message`` is the raised exception's text, unchanged.
        """
        try:
            content = self.run(name, arguments)
        except ChangeGrouperError as exc:
            logger.debug("Tool %s failed: %s", name, exc)
            return _error(str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled error in tool %s", name)
            return _error(str(exc) or exc.__class__.__name__)
        return {"content": content}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
def _set_repo_root(session: ToolSession, args: SetRepoRootInput) -> Dict[str, Any]:
    session.repo_root = GitClient.resolve_repo_root(Path(args.path))
    logger.info("Repository root set to %s", session.repo_root)
    return {"repo_root": str(session.repo_root)}


def _get_repo_root(session: ToolSession, args: GetRepoRootInput) -> Dict[str, Any]:
    if session.repo_root is None:
        return {}
    return {"repo_root": str(session.repo_root)}


def _list_changes(session: ToolSession, args: ListChangesInput) -> Dict[str, Any]:
    changes, omitted = cap_changes(load_changes(session.client))
    return {
        "changes": [change.to_dict() for change in changes],
        "truncated": omitted > 0,
        "omitted_count": omitted,
    }


def _group_changes(session: ToolSession, args: GroupChangesInput) -> Dict[str, Any]:
    groups = group_changes(args.change_ids, session.client, session.provider, session.threshold)
    return _checked(GroupChangesOutput, {"groups": [group.to_dict() for group in groups]})


def _propose_commits(session: ToolSession, args: ProposeCommitsInput) -> Dict[str, Any]:
    plans = propose_commits(args.group_ids, session.client, session.provider, session.threshold)
    return _checked(ProposeCommitsOutput, {"commits": [plan.to_dict() for plan in plans]})


def _apply_commit(session: ToolSession, args: ApplyCommitInput) -> Dict[str, Any]:
    result = apply_commit(
        session.client,
        session.provider,
        commit_id=args.commit_id,
        confirm=args.confirm,
        dry_run=args.dry_run,
        expected_head_sha=args.expected_head_sha,
        message_override=args.message_override,
        allow_staged=args.allow_staged,
        threshold=session.threshold,
    )
    return _checked(ApplyCommitOutput, result.to_dict())


def _generate_pr(session: ToolSession, args: GeneratePrInput) -> Dict[str, Any]:
    draft = generate_pr(session.client, args.commit_shas)
    return _checked(PullRequestDraftOutput, draft.to_dict())


def _repo_status(session: ToolSession, args: RepoStatusInput) -> Dict[str, Any]:
    status = repo_info.get_repo_status(session.client)
    omitted = 0
    for attr in ("staged", "unstaged", "untracked"):
        kept, dropped = truncate_list(getattr(status, attr), MAX_PATH_ENTRIES)
        setattr(status, attr, kept)
        omitted += dropped
    data = status.to_dict()
    data.update(truncated=omitted > 0, omitted_count=omitted)
    return data


def _log(session: ToolSession, args: LogInput) -> Dict[str, Any]:
    commits = repo_info.get_log(
        session.client,
        ref=args.ref,
        limit=args.limit,
        path=args.path,
        since=args.since,
        until=args.until,
        include_merges=args.include_merges,
    )
    kept, omitted = truncate_list(commits, MAX_PATH_ENTRIES)
    return {
        "commits": [asdict(commit) for commit in kept],
        "truncated": omitted > 0,
        "omitted_count": omitted,
    }


def _show_commit(session: ToolSession, args: ShowCommitInput) -> Dict[str, Any]:
    detail = repo_info.get_commit(session.client, args.sha)
    detail.files, omitted_files = truncate_list(detail.files, MAX_PATH_ENTRIES)
    detail.changes, omitted_changes = cap_changes(detail.changes)
    omitted = omitted_files + omitted_changes
    return {"commit": detail.to_dict(), "truncated": omitted > 0, "omitted_count": omitted}


def _diff_between_refs(session: ToolSession, args: DiffBetweenRefsInput) -> Dict[str, Any]:
    changes = repo_info.get_diff_between_refs(
        session.client, args.base, args.head, path=args.path, unified=args.unified
    )
    capped, omitted = cap_changes(changes)
    return {
        "base": args.base,
        "head": args.head,
        "changes": [change.to_dict() for change in capped],
        "truncated": omitted > 0,
        "omitted_count": omitted,
    }


def _blame(session: ToolSession, args: BlameInput) -> Dict[str, Any]:
    result = repo_info.get_blame(
        session.client,
        args.path,
        ref=args.ref,
        start_line=args.start_line,
        end_line=args.end_line,
        ignore_whitespace=args.ignore_whitespace,
        detect_moves=args.detect_moves,
    )
    result.lines, omitted = truncate_list(result.lines, MAX_BLAME_LINES)
    data = result.to_dict()
    data.update(truncated=omitted > 0, omitted_count=omitted)
    return data


def _checked(schema: Type[BaseModel], data: Dict[str, Any]) -> Dict[str, Any]:
    return schema.model_validate(data).model_dump(exclude_none=True)


TOOLS: Dict[str, tuple] = {
    "set_repo_root": (SetRepoRootInput, _set_repo_root),
    "get_repo_root": (GetRepoRootInput, _get_repo_root),
    "list_changes": (ListChangesInput, _list_changes),
    "group_changes": (GroupChangesInput, _group_changes),
    "propose_commits": (ProposeCommitsInput, _propose_commits),
    "apply_commit": (ApplyCommitInput, _apply_commit),
    "generate_pr": (GeneratePrInput, _generate_pr),
    "repo_status": (RepoStatusInput, _repo_status),
    "log": (LogInput, _log),
    "show_commit": (ShowCommitInput, _show_commit),
    "diff_between_refs": (DiffBetweenRefsInput, _diff_between_refs),
    "blame": (BlameInput, _blame),
}


def _error(message: str) -> Dict[str, Any]:
    return {"isError": True, "content": message}


def run_tool(
    name: str,
    arguments: Optional[Mapping[str, Any]],
    repo_root: Optional[Path],
    config: Optional[Mapping[str, Any]] = None,
    provider: Optional[EmbeddingProvider] = None,
) -> Dict[str, Any]:
    """Run one tool call in a fresh session; see :meth:`ToolSession.run`."""
    return ToolSession(repo_root, config, provider).run(name, arguments)


def dispatch(
    name: str,
    arguments: Optional[Mapping[str, Any]],
    repo_root: Optional[Path],
    config: Optional[Mapping[str, Any]] = None,
    provider: Optional[EmbeddingProvider] = None,
) -> Dict[str, Any]:
    """Run one tool call in a fresh session; see :meth:`ToolSession.dispatch`."""
    return ToolSession(repo_root, config, provider).dispatch(name, arguments)


def serve(
    stream_in: IO[str],
    stream_out: IO[str],
    repo_root: Optional[Path],
    config: Optional[Mapping[str, Any]] = None,
    provider: Optional[EmbeddingProvider] = None,
) -> int:
    """Answer JSON-lines tool requests until ``stream_in`` is exhausted.

    Each request line is ``{"tool": name, "arguments": {...}}`` with an
    optional ``"id"`` echoed back in the response. All requests share one
    :class:`ToolSession`, so ``set_repo_root`` applies to the requests
    after it. ``repo_root`` may be None when the server starts outside a
    repository. Returns the number of requests handled.
    """
    session = ToolSession(repo_root, config, provider)
    handled = 0
    for line in stream_in:
        line = line.strip()
        if not line:
            continue
        request_id = None
        try:
            request = json.loads(line)
        except json.JSONDecodeError as exc:
            result = _error(f"Malformed request: {exc}")
        else:
            if not isinstance(request, dict) or not isinstance(request.get("tool"), str):
                result = _error("Malformed request: expected an object with a 'tool' name")
            else:
                request_id = request.get("id")
                result = session.dispatch(request["tool"], request.get("arguments"))
        if request_id is not None:
            result = {"id": request_id, **result}
        stream_out.write(json.dumps(result) + "\n")
        stream_out.flush()
        handled += 1
    return handled
