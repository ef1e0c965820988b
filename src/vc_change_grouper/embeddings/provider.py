"""
Embedding providers.

An embedding provider maps a sequence of texts to a list of float
vectors of the same length and order. Two providers exist: a local,
deterministic one for tests and offline use, and a remote one in
:mod:`vc_change_grouper.embeddings.openai_client`. Which one is used is
decided by configuration in :func:`get_embedding_provider`.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, List, Mapping, Sequence

from vc_change_grouper.errors import ConfigError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


LOCAL_DIMENSION = 32


class EmbeddingProvider:
    """Maps texts to vectors; ``embed([])`` returns ``[]``."""

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        raise NotImplementedError


class LocalEmbeddingProvider(EmbeddingProvider):
    """Deterministic 32-dimensional vectors from SHA-256 digests.

    Each of the 32 digest bytes is mapped to ``byte / 127.5 - 1`` so
    every component lies in [-1, 1]. Identical texts give identical
    vectors; there is no semantic similarity beyond that.
    """

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        vectors = []
        for text in texts:
            digest = hashlib.sha256(text.encode("utf-8")).digest()
            vectors.append([byte / 127.5 - 1 for byte in digest[:LOCAL_DIMENSION]])
        return vectors


def get_embedding_provider(config: Mapping[str, Any]) -> EmbeddingProvider:
    """Build the provider selected by ``config``.

    Raises
    ------
    ConfigError
        If the remote provider is selected and no API key is configured.
    """
    if config.get("embedding_provider") == "local":
        logger.debug("Using local deterministic embedding provider")
        return LocalEmbeddingProvider()

    api_key = config.get("openai_api_key")
    if not api_key:
        raise ConfigError(
            "OPENAI_API_KEY environment variable is not set. "
            "Set it to group changes, e.g. export OPENAI_API_KEY=sk-..., "
            "or set SEGMINT_EMBEDDING_PROVIDER=local for offline grouping."
        )

    # openai_client subclasses EmbeddingProvider from this module
    from vc_change_grouper.embeddings.openai_client import OpenAIEmbeddingProvider

    logger.debug("Using remote embedding provider (model=%s)", config.get("embedding_model"))
    return OpenAIEmbeddingProvider(
        api_key=api_key,
        model=config.get("embedding_model", "text-embedding-3-small"),
        base_url=config.get("embedding_base_url", "https://api.openai.com"),
        request_timeout=float(config.get("request_timeout", 60.0)),
    )
