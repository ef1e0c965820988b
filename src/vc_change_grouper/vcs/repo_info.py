"""
Read-only repository inspection.

Structured views over ``git status``, ``git log``, ``git show``,
``git diff <base> <head>`` and ``git blame``. These are thin parsers over
Git output; they never mutate the repository.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from vc_change_grouper.diff.change_loader import number_changes
from vc_change_grouper.diff.diff_parser import parse_diff
from vc_change_grouper.errors import GitError, InputError
from vc_change_grouper.grouping.group_model import Change
from vc_change_grouper.vcs.git_client import GitClient


STATUS_LABELS = {
    "M": "modified",
    "A": "added",
    "D": "deleted",
    "R": "renamed",
    "C": "copied",
    "U": "unmerged",
    "T": "typechange",
}

_TRACKING_RE = re.compile(r"^.+?\.\.\.(\S+)")
_AHEAD_RE = re.compile(r"ahead (\d+)")
_BEHIND_RE = re.compile(r"behind (\d+)")
_BLAME_HEADER_RE = re.compile(r"^([0-9a-f]{40}|[0-9a-f]{64}) \d+ (\d+)(?: \d+)?$")
_TZ_RE = re.compile(r"^([+-])(\d{2})(\d{2})$")


@dataclass
class FileStatus:
    path: str
    status: str


@dataclass
class HeadInfo:
    """Where HEAD points: ``branch`` (possibly unborn) or ``detached``."""

    type: str
    name: Optional[str] = None
    sha: Optional[str] = None


@dataclass
class RepoStatus:
    root_path: str
    head: HeadInfo
    staged: List[FileStatus] = field(default_factory=list)
    unstaged: List[FileStatus] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    merge_in_progress: bool = False
    rebase_in_progress: bool = False
    upstream: Optional[str] = None
    ahead_by: Optional[int] = None
    behind_by: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class LogCommit:
    sha: str
    short_sha: str
    subject: str
    author_name: str
    author_email: str
    author_date: str
    parents: List[str] = field(default_factory=list)


@dataclass
class CommitDetail:
    sha: str
    short_sha: str
    subject: str
    body: str
    author_name: str
    author_email: str
    author_date: str
    committer_name: str
    committer_email: str
    committer_date: str
    parents: List[str] = field(default_factory=list)
    files: List[FileStatus] = field(default_factory=list)
    changes: List[Change] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {key: value for key, value in asdict(self).items() if key not in ("files", "changes")}
        data["files"] = [asdict(f) for f in self.files]
        data["diff"] = {"changes": [change.to_dict() for change in self.changes]}
        return data


def status_label(code: str) -> str:
    """Map a porcelain/name-status code (``M``, ``R100`` ...) to a label."""
    return STATUS_LABELS.get(code[:1], code)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------
def parse_porcelain(output: str) -> Dict[str, Any]:
    """Parse ``git status --porcelain=v1 -b`` output."""
    staged: List[FileStatus] = []
    unstaged: List[FileStatus] = []
    untracked: List[str] = []
    parsed: Dict[str, Any] = {"upstream": None, "ahead_by": None, "behind_by": None}

    for line in output.splitlines():
        if not line:
            continue
        if line.startswith("## "):
            header = line[3:]
            tracking = _TRACKING_RE.match(header)
            if tracking:
                parsed["upstream"] = tracking.group(1)
            ahead = _AHEAD_RE.search(header)
            if ahead:
                parsed["ahead_by"] = int(ahead.group(1))
            behind = _BEHIND_RE.search(header)
            if behind:
                parsed["behind_by"] = int(behind.group(1))
            continue
        if len(line) < 4:
            continue
        x, y, path = line[0], line[1], line[3:]
        # Renames are reported as "old -> new"
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        if x == "?" and y == "?":
            untracked.append(path)
            continue
        if x not in " ?!":
            staged.append(FileStatus(path=path, status=status_label(x)))
        if y not in " ?!":
            unstaged.append(FileStatus(path=path, status=status_label(y)))

    parsed.update(staged=staged, unstaged=unstaged, untracked=untracked)
    return parsed


def get_repo_status(client: GitClient) -> RepoStatus:
    """Gather HEAD, file states, tracking info and merge/rebase state."""
    root = str(client.get_toplevel())
    branch = client.get_current_branch()
    sha = client.try_head_sha()
    if branch is not None:
        head = HeadInfo(type="branch", name=branch, sha=sha)
    elif sha is not None:
        head = HeadInfo(type="detached", sha=sha)
    else:
        head = HeadInfo(type="branch")

    parsed = parse_porcelain(client.get_status_with_branch())
    git_dir = client.get_git_dir()
    return RepoStatus(
        root_path=root,
        head=head,
        staged=parsed["staged"],
        unstaged=parsed["unstaged"],
        untracked=parsed["untracked"],
        merge_in_progress=(git_dir / "MERGE_HEAD").exists(),
        rebase_in_progress=(git_dir / "rebase-apply").exists() or (git_dir / "rebase-merge").exists(),
        upstream=parsed["upstream"],
        ahead_by=parsed["ahead_by"],
        behind_by=parsed["behind_by"],
    )


# ---------------------------------------------------------------------------
# Log
# ---------------------------------------------------------------------------
def _split_parents(raw: str) -> List[str]:
    raw = raw.strip()
    return raw.split(" ") if raw else []


def parse_log_output(raw: str) -> List[LogCommit]:
    """Parse log records of NUL-separated fields, each ending in ``\\x1e``."""
    commits: List[LogCommit] = []
    for record in raw.split("\x1e"):
        record = record.strip("\n")
        if not record:
            continue
        fields = record.split("\x00")
        if len(fields) < 7:
            continue
        sha, short_sha, subject, name, email, date, parents = fields[:7]
        commits.append(
            LogCommit(
                sha=sha,
                short_sha=short_sha,
                subject=subject,
                author_name=name,
                author_email=email,
                author_date=date,
                parents=_split_parents(parents),
            )
        )
    return commits


def get_log(
    client: GitClient,
    ref: str = "HEAD",
    limit: int = 20,
    path: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    include_merges: bool = False,
) -> List[LogCommit]:
    """Return commit history; ``limit`` is clamped to 1..200."""
    raw = client.get_log(
        ref=ref,
        limit=_clamp(limit, 1, 200),
        path=path,
        since=since,
        until=until,
        include_merges=include_merges,
    )
    return parse_log_output(raw)


# ---------------------------------------------------------------------------
# Show
# ---------------------------------------------------------------------------
def parse_commit_metadata(raw: str) -> Dict[str, Any]:
    """Parse the eleven NUL-separated fields of
    :meth:`GitClient.show_commit_metadata`.

    The body may itself be empty, so the first three fields are taken
    from the left, the last seven from the right, and whatever sits in
    between is the body.
    """
    parts = raw.split("\x00")
    if len(parts) < 10:
        raise GitError("Unexpected git show output format")
    if len(parts) == 10:
        parts = parts[:3] + [""] + parts[3:]
    head, tail = parts[:3], parts[-7:]
    body = "\x00".join(parts[3:-7]).strip()
    return {
        "sha": head[0],
        "short_sha": head[1],
        "subject": head[2],
        "body": body,
        "author_name": tail[0],
        "author_email": tail[1],
        "author_date": tail[2],
        "committer_name": tail[3],
        "committer_email": tail[4],
        "committer_date": tail[5],
        "parents": _split_parents(tail[6]),
    }


def parse_name_status(raw: str) -> List[FileStatus]:
    """Parse ``<status>\\t<path>`` lines; renames and copies use the new path."""
    files: List[FileStatus] = []
    for line in raw.splitlines():
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        path = parts[2] if len(parts) >= 3 else parts[1]
        files.append(FileStatus(path=path, status=status_label(parts[0].strip())))
    return files


def get_commit(client: GitClient, ref: str) -> CommitDetail:
    """Return metadata, touched files and the parsed diff of one commit."""
    meta = parse_commit_metadata(client.show_commit_metadata(ref))
    files = parse_name_status(client.show_name_status(ref))
    diff_raw = client.show_commit_diff(meta["sha"], has_parents=bool(meta["parents"]))
    return CommitDetail(files=files, changes=number_changes(parse_diff(diff_raw)), **meta)


# ---------------------------------------------------------------------------
# Diff between refs
# ---------------------------------------------------------------------------
def get_diff_between_refs(
    client: GitClient,
    base: str,
    head: str,
    path: Optional[str] = None,
    unified: int = 3,
) -> List[Change]:
    """Return the structured diff between two refs; ``unified`` is clamped to 0..20."""
    raw = client.diff_between_refs(base, head, path=path, unified=_clamp(unified, 0, 20))
    return number_changes(parse_diff(raw))


# ---------------------------------------------------------------------------
# Blame
# ---------------------------------------------------------------------------
@dataclass
class BlameCommit:
    sha: str
    short_sha: str
    author_name: str
    author_email: str
    author_time: str
    summary: str


@dataclass
class BlameLine:
    line_number: int
    content: str
    commit: BlameCommit


@dataclass
class BlameResult:
    path: str
    ref: str
    lines: List[BlameLine] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _format_author_time(epoch: str, tz: str) -> str:
    """Render ``author-time``/``author-tz`` as an ISO 8601 timestamp."""
    try:
        seconds = int(epoch)
    except ValueError:
        return epoch
    match = _TZ_RE.match(tz)
    offset = timezone.utc
    if match:
        sign = -1 if match.group(1) == "-" else 1
        offset = timezone(sign * timedelta(hours=int(match.group(2)), minutes=int(match.group(3))))
    return datetime.fromtimestamp(seconds, tz=offset).isoformat()


def parse_blame_porcelain(raw: str) -> List[BlameLine]:
    """Parse ``git blame --porcelain`` output.

    Each line group starts with ``<sha> <orig> <final> [<count>]``.
    Commit headers (``author``, ``summary`` ...) follow only the first
    time a commit appears, so they are collected per SHA and attached to
    every line once parsing is done. Content lines start with a tab.
    """
    headers: Dict[str, Dict[str, str]] = {}
    entries: List[tuple] = []
    current_sha: Optional[str] = None
    final_line = 0

    for line in raw.split("\n"):
        if line.startswith("\t"):
            if current_sha is not None:
                entries.append((final_line, line[1:], current_sha))
            continue
        match = _BLAME_HEADER_RE.match(line)
        if match:
            current_sha = match.group(1)
            final_line = int(match.group(2))
            headers.setdefault(current_sha, {})
            continue
        if current_sha is not None and line:
            key, _, value = line.partition(" ")
            headers[current_sha].setdefault(key, value)

    commits: Dict[str, BlameCommit] = {}
    for sha, info in headers.items():
        commits[sha] = BlameCommit(
            sha=sha,
            short_sha=sha[:7],
            author_name=info.get("author", ""),
            author_email=info.get("author-mail", "").strip("<>"),
            author_time=_format_author_time(info.get("author-time", ""), info.get("author-tz", "")),
            summary=info.get("summary", ""),
        )
    return [
        BlameLine(line_number=number, content=content, commit=commits[sha])
        for number, content, sha in entries
    ]


def get_blame(
    client: GitClient,
    path: str,
    ref: str = "HEAD",
    start_line: Optional[int] = None,
    end_line: Optional[int] = None,
    ignore_whitespace: bool = False,
    detect_moves: bool = False,
) -> BlameResult:
    """Return line-level attribution for ``path`` at ``ref``.

    Raises
    ------
    InputError
        If the line range is empty or not 1-based.
    GitError
        If Git cannot blame the path (unknown path, unknown ref, range
        past the end of the file).
    """
    if (start_line is not None and start_line < 1) or (end_line is not None and end_line < 1):
        raise InputError("start_line and end_line are 1-based line numbers")
    if start_line is not None and end_line is not None and end_line < start_line:
        raise InputError(f"end_line ({end_line}) is before start_line ({start_line})")
    raw = client.blame(
        path,
        ref=ref,
        start_line=start_line,
        end_line=end_line,
        ignore_whitespace=ignore_whitespace,
        detect_moves=detect_moves,
    )
    return BlameResult(path=path, ref=ref, lines=parse_blame_porcelain(raw))
