"""
Unified diff parsing.

Converts the text produced by ``git diff`` (and ``git show``) into
``(file_path, hunks)`` entries. Only what the grouping pipeline needs is
kept: the post-image path of each file and its hunks. Mode changes,
index lines and binary patches are recognised and skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from vc_change_grouper.grouping.group_model import Hunk


_HUNK_HEADER_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_lines>\d+))?"
    r" \+(?P<new_start>\d+)(?:,(?P<new_lines>\d+))? @@"
)
_QUOTED = r'"(?:[^"\\]|\\.)*"'
_QUOTED_HEADER_RE = re.compile(rf"^(?P<old>{_QUOTED}|\S+) (?P<new>{_QUOTED}|\S+)$")
_OCTAL_RE = re.compile(r"[0-7]{3}")
_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


@dataclass
class FileDiff:
    """Parsed diff of a single file."""

    file_path: str
    hunks: List[Hunk] = field(default_factory=list)


def parse_diff(raw_diff: str) -> List[FileDiff]:
    """Parse a unified diff into one :class:`FileDiff` per file section.

    Parameters
    ----------
    raw_diff : str
        Output of ``git diff``. Any preamble before the first
        ``diff --git`` line (such as commit headers) is ignored.

    Returns
    -------
    List[FileDiff]
        Entries in the order they appear in the diff. Deleted files are
        reported under their old path.
    """
    lines = raw_diff.splitlines()
    entries: List[FileDiff] = []
    i = 0
    while i < len(lines):
        if not lines[i].startswith("diff --git "):
            i += 1
            continue
        entry, i = _parse_file_section(lines, i)
        if entry is not None:
            entries.append(entry)
    return entries


def unquote_path(path: str) -> str:
    """Decode a path Git wrote as a C-style quoted string.

    Git quotes paths containing control characters, quotes or
    backslashes (and, unless ``core.quotePath`` is off, any non-ASCII
    byte) as ``"..."`` with backslash escapes and octal-escaped UTF-8
    bytes. Unquoted paths are returned unchanged.
    """
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    body = path[1:-1]
    raw = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            octal = _OCTAL_RE.match(body, i + 1)
            if octal:
                raw.append(int(octal.group(0), 8))
                i += 4
                continue
            escaped = _C_ESCAPES.get(body[i + 1])
            if escaped is not None:
                raw.append(escaped)
                i += 2
                continue
        raw.extend(char.encode("utf-8"))
        i += 1
    return raw.decode("utf-8", errors="replace")


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def _header_paths(rest: str) -> Tuple[Optional[str], Optional[str]]:
    """Split the ``a/... b/...`` part of a ``diff --git`` line."""
    if rest.startswith('"') or rest.endswith('"'):
        match = _QUOTED_HEADER_RE.match(rest)
        if match:
            old = unquote_path(match.group("old"))
            new = unquote_path(match.group("new"))
            return _strip_prefix(old, "a/"), _strip_prefix(new, "b/")
    if rest.startswith("a/") and " b/" in rest:
        old_part, _, new_part = rest.partition(" b/")
        return old_part[2:], new_part
    return None, None


def _marker_path(line: str, prefix: str) -> Optional[str]:
    marker = unquote_path(line[4:].rstrip("\t"))
    return None if marker == "/dev/null" else _strip_prefix(marker, prefix)


def _parse_file_section(lines: Sequence[str], start: int) -> Tuple[Optional[FileDiff], int]:
    header = lines[start]
    i = start + 1

    # "diff --git a/path b/path"; paths with spaces are refined below from
    # the ---/+++ or rename lines when present.
    old_path, new_path = _header_paths(header[len("diff --git "):])

    # Metadata up to the file headers
    while i < len(lines) and not lines[i].startswith("diff --git "):
        line = lines[i]
        if line.startswith("rename from "):
            old_path = unquote_path(line[len("rename from "):])
        elif line.startswith("rename to "):
            new_path = unquote_path(line[len("rename to "):])
        elif line.startswith("--- ") or line.startswith("@@"):
            break
        i += 1

    if i < len(lines) and lines[i].startswith("--- "):
        old_path = _marker_path(lines[i], "a/")
        i += 1
        if i < len(lines) and lines[i].startswith("+++ "):
            new_path = _marker_path(lines[i], "b/")
            i += 1

    file_path = new_path or old_path
    hunks: List[Hunk] = []
    while i < len(lines) and not lines[i].startswith("diff --git "):
        if lines[i].startswith("@@"):
            hunk, i = _parse_hunk(lines, i)
            if hunk is not None:
                hunks.append(hunk)
        else:
            i += 1

    if file_path is None:
        return None, i
    return FileDiff(file_path=file_path, hunks=hunks), i


def _parse_hunk(lines: Sequence[str], start: int) -> Tuple[Optional[Hunk], int]:
    header = lines[start]
    match = _HUNK_HEADER_RE.match(header)
    i = start + 1
    body: List[str] = []
    while i < len(lines):
        line = lines[i]
        if line.startswith("diff --git ") or line.startswith("@@"):
            break
        if line.startswith("\\"):
            # "\ No newline at end of file"
            i += 1
            continue
        if line == "" or line[0] in " +-":
            body.append(line)
        i += 1

    if match is None:
        return None, i

    def _count(name: str) -> int:
        value = match.group(name)
        return 1 if value is None else int(value)

    hunk = Hunk(
        old_start=int(match.group("old_start")),
        old_lines=_count("old_lines"),
        new_start=int(match.group("new_start")),
        new_lines=_count("new_lines"),
        header=header,
        lines=tuple(body),
    )
    return hunk, i
