"""
Grouping of changes by intent.

:mod:`vc_change_grouper.grouping.group_model` holds the data models,
:mod:`vc_change_grouper.grouping.cluster` the similarity clustering and
:mod:`vc_change_grouper.grouping.pipeline` the content-addressed
grouping of a repository's uncommitted changes.
"""

from .cluster import Cluster, cluster_by_threshold, cosine_similarity  # noqa: F401
from .group_model import ChangeGroup, Change, CommitPlan, Hunk  # noqa: F401
