"""
Grouping of changes into content-addressed change groups.

Nothing is stored between calls, so groups must be addressable purely
by what they contain. A group's ID is a hash of its sorted member
change IDs; the same membership always yields the same ID, whatever
superset of changes it was computed from and whatever order the
clustering produced.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Iterable, List, Sequence, Tuple

from vc_change_grouper.diff.change_loader import load_changes, resolve_change_ids
from vc_change_grouper.embeddings.provider import EmbeddingProvider
from vc_change_grouper.errors import EmbeddingError, UnknownIdError
from vc_change_grouper.grouping.cluster import DEFAULT_THRESHOLD, cluster_by_threshold
from vc_change_grouper.grouping.group_model import Change, ChangeGroup
from vc_change_grouper.vcs.git_client import GitClient


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Maximum number of hunk headers plus diff lines in one embedding text
MAX_EMBEDDING_LINES = 200


def content_hash(ids: Iterable[str]) -> str:
    """First 8 hex characters of SHA-256 over the sorted, comma-joined IDs."""
    canonical = ",".join(sorted(ids))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:8]


def build_embedding_text(change: Change, max_lines: int = MAX_EMBEDDING_LINES) -> str:
    """Render a change as text for embedding.

    The text starts with ``file: <path>`` followed by each hunk header
    and its diff lines. Headers and diff lines both count toward
    ``max_lines``; output stops at whichever one reaches the budget.
    """
    parts = [f"file: {change.file_path}"]
    count = 0
    for hunk in change.hunks:
        if count >= max_lines:
            break
        parts.append(hunk.header)
        count += 1
        for line in hunk.lines:
            if count >= max_lines:
                break
            parts.append(line)
            count += 1
    return "\n".join(parts)


def _summarize(changes: Sequence[Change]) -> str:
    paths = [change.file_path for change in changes]
    if len(paths) == 1:
        return f"Changes in {paths[0]}"
    return f"Related changes across {', '.join(paths)}"


def make_group(changes: Sequence[Change]) -> ChangeGroup:
    """Build the content-addressed group for a set of member changes."""
    change_ids = [change.id for change in changes]
    return ChangeGroup(
        id=f"group-{content_hash(change_ids)}",
        change_ids=change_ids,
        summary=_summarize(changes),
    )


def embed_and_cluster(
    changes: Sequence[Change],
    provider: EmbeddingProvider,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[ChangeGroup]:
    """Group ``changes`` by embedding similarity.

    Parameters
    ----------
    changes : Sequence[Change]
        Changes in file-path order.
    provider : EmbeddingProvider
        Called once with all texts when there are two or more changes.
    threshold : float, optional
        Cosine similarity needed to join a cluster.

    Returns
    -------
    List[ChangeGroup]
        Groups in cluster creation order.
    """
    if not changes:
        return []
    if len(changes) == 1:
        return [make_group(changes)]

    texts = [build_embedding_text(change) for change in changes]
    embeddings = provider.embed(texts)
    if len(embeddings) != len(changes):
        raise EmbeddingError(
            f"Embedding provider returned {len(embeddings)} vectors for {len(changes)} texts"
        )
    clusters = cluster_by_threshold(embeddings, threshold)
    logger.debug("Clustered %d change(s) into %d group(s)", len(changes), len(clusters))
    return [make_group([changes[i] for i in cluster.indices]) for cluster in clusters]


def compute_groups(
    client: GitClient,
    provider: EmbeddingProvider,
    threshold: float = DEFAULT_THRESHOLD,
) -> Tuple[List[Change], List[ChangeGroup]]:
    """Reload every uncommitted change and group all of them."""
    changes = load_changes(client)
    return changes, embed_and_cluster(changes, provider, threshold)


def group_changes(
    change_ids: Sequence[str],
    client: GitClient,
    provider: EmbeddingProvider,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[ChangeGroup]:
    """Group the requested changes.

    Raises
    ------
    UnknownIdError
        If any requested ID does not match a current change.
    """
    changes, unknown = resolve_change_ids(change_ids, client)
    if unknown:
        raise UnknownIdError(f"Unknown change IDs: {', '.join(unknown)}")
    return embed_and_cluster(changes, provider, threshold)
