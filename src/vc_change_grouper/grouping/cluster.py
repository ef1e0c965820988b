"""
Greedy centroid clustering by cosine similarity.

Embeddings are processed once, in input order. Each one joins the
existing cluster whose centroid is most similar to it, provided that
similarity reaches the threshold; otherwise it starts a new cluster.
The result is deterministic for a given input order and threshold.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Sequence


DEFAULT_THRESHOLD = 0.80


@dataclass
class Cluster:
    """Member indices into the input list plus the running-mean centroid."""

    indices: List[int] = field(default_factory=list)
    centroid: List[float] = field(default_factory=list)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors; 0.0 if either has zero norm."""
    dot = norm_a = norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    denom = math.sqrt(norm_a) * math.sqrt(norm_b)
    if denom == 0:
        return 0.0
    # Rounding can push the ratio just outside [-1, 1]
    return max(-1.0, min(1.0, dot / denom))


def cluster_by_threshold(
    embeddings: Sequence[Sequence[float]],
    threshold: float = DEFAULT_THRESHOLD,
) -> List[Cluster]:
    """Cluster ``embeddings`` with single-pass centroid assignment.

    Parameters
    ----------
    embeddings : Sequence[Sequence[float]]
        Vectors of equal dimension. Callers pass them in file-path order.
    threshold : float, optional
        Minimum cosine similarity to join an existing cluster.

    Returns
    -------
    List[Cluster]
        Clusters in creation order. Their indices partition
        ``range(len(embeddings))``.

    Notes
    -----
    Only a strictly higher similarity replaces the current best cluster,
    so on ties the earliest-created cluster wins. A joining vector
    updates the centroid as the running mean
    ``c[d] = c[d] * (n - 1) / n + v[d] / n``.
    """
    clusters: List[Cluster] = []

    for i, vec in enumerate(embeddings):
        best = -1
        best_sim = -math.inf
        for c, cluster in enumerate(clusters):
            sim = cosine_similarity(vec, cluster.centroid)
            if sim > best_sim:
                best_sim = sim
                best = c

        if best >= 0 and best_sim >= threshold:
            cluster = clusters[best]
            cluster.indices.append(i)
            n = len(cluster.indices)
            cluster.centroid = [
                value * ((n - 1) / n) + vec[d] / n
                for d, value in enumerate(cluster.centroid)
            ]
        else:
            clusters.append(Cluster(indices=[i], centroid=list(vec)))

    return clusters
