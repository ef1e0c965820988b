"""
Client for an OpenAI-compatible embeddings endpoint.

This client wraps HTTP requests to the ``/v1/embeddings`` REST endpoint.
All texts of one call are sent in a single batched request. The
endpoint does not promise to return items in request order, so results
are placed by the ``index`` field of each returned item. On error
conditions (HTTP errors, timeouts, malformed payloads), an
:class:`EmbeddingError` is raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from vc_change_grouper.embeddings.provider import EmbeddingProvider
from vc_change_grouper.errors import EmbeddingError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


@dataclass
class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embedding provider backed by a remote embeddings API.

    Parameters
    ----------
    api_key : str
        Bearer credential sent in the ``Authorization`` header.
    model : str, optional
        Embedding model name. Defaults to ``"text-embedding-3-small"``.
    base_url : str, optional
        Base URL of the API, without the ``/v1/embeddings`` suffix.
    request_timeout : float, optional
        Timeout in seconds for the HTTP request. Defaults to 60 seconds.
    """

    api_key: str = field(repr=False)
    model: str = "text-embedding-3-small"
    base_url: str = "https://api.openai.com"
    request_timeout: float = 60.0

    def _endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/embeddings"

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed ``texts`` in one request.

        Returns
        -------
        List[List[float]]
            One vector per input text, in input order.

        Raises
        ------
        EmbeddingError
            If the request fails, the endpoint returns a non-success
            status, or the response does not cover every input.
        """
        if not texts:
            return []

        payload: Dict[str, Any] = {"model": self.model, "input": list(texts)}
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        url = self._endpoint()
        logger.debug("Requesting %d embedding(s) from %s (model=%s)", len(texts), url, self.model)
        try:
            response = requests.post(
                url,
                json=payload,
                headers=headers,
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to embeddings API: %s", exc)
            raise EmbeddingError(f"Embeddings API request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logger.error(
                "Embeddings API returned status %s: %s", response.status_code, response.text
            )
            raise EmbeddingError(
                f"Embeddings API error ({response.status_code}): {response.text}"
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("Failed to parse embeddings response: %s", exc)
            raise EmbeddingError("Failed to parse embeddings API response") from exc

        return self._order_by_index(data, len(texts))

    @staticmethod
    def _order_by_index(data: Any, expected: int) -> List[List[float]]:
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise EmbeddingError("Unexpected response structure from embeddings API")

        result: List[Optional[List[float]]] = [None] * expected
        for item in items:
            index = item.get("index") if isinstance(item, dict) else None
            vector = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(index, int) or not 0 <= index < expected or not isinstance(vector, list):
                raise EmbeddingError("Unexpected response structure from embeddings API")
            result[index] = [float(value) for value in vector]

        missing = [idx for idx, vector in enumerate(result) if vector is None]
        if missing:
            raise EmbeddingError(
                f"Embeddings API response is missing indices: {', '.join(map(str, missing))}"
            )
        return result  # type: ignore[return-value]
