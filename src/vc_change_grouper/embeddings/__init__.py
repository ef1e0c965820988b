"""
Embedding providers for vc_change_grouper.

This package contains the :class:`EmbeddingProvider` interface, the
offline :class:`LocalEmbeddingProvider` and the remote
:class:`OpenAIEmbeddingProvider`, plus :func:`get_embedding_provider`
which selects one from configuration.
"""

from .provider import (  # noqa: F401
    EmbeddingProvider,
    LocalEmbeddingProvider,
    get_embedding_provider,
)
from .openai_client import OpenAIEmbeddingProvider  # noqa: F401
