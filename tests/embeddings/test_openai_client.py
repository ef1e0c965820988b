import json
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import requests

from vc_change_grouper.embeddings.openai_client import OpenAIEmbeddingProvider
from vc_change_grouper.errors import EmbeddingError


class DummyResponse(SimpleNamespace):
    def json(self):
        return json.loads(self.text)


def _payload(*items):
    return json.dumps({"data": [{"index": idx, "embedding": vec} for idx, vec in items]})


class TestOpenAIEmbeddingProvider(unittest.TestCase):
    def test_embed_sends_one_batched_request(self) -> None:
        captured = {}

        def fake_post(url, *_args, **kwargs):
            captured["url"] = url
            captured.update(kwargs)
            return DummyResponse(status_code=200, text=_payload((0, [1, 0]), (1, [0, 1])))

        with patch("requests.post", fake_post):
            provider = OpenAIEmbeddingProvider(api_key="sk-test", request_timeout=7)
            vectors = provider.embed(["a", "b"])

        self.assertEqual(vectors, [[1.0, 0.0], [0.0, 1.0]])
        self.assertEqual(captured["url"], "https://api.openai.com/v1/embeddings")
        self.assertEqual(captured["json"], {"model": "text-embedding-3-small", "input": ["a", "b"]})
        self.assertEqual(captured["headers"]["Authorization"], "Bearer sk-test")
        self.assertEqual(captured["timeout"], 7)

    def test_embed_reorders_by_index(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=_payload((1, [0.5]), (0, [0.25])))

        with patch("requests.post", fake_post):
            vectors = OpenAIEmbeddingProvider(api_key="k").embed(["first", "second"])
        self.assertEqual(vectors, [[0.25], [0.5]])

    def test_empty_input_makes_no_request(self) -> None:
        with patch("requests.post") as mock_post:
            self.assertEqual(OpenAIEmbeddingProvider(api_key="k").embed([]), [])
        mock_post.assert_not_called()

    def test_error_status_carries_status_and_body(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=401, text="Incorrect API key provided")

        with patch("requests.post", fake_post):
            with self.assertRaises(EmbeddingError) as ctx:
                OpenAIEmbeddingProvider(api_key="bad").embed(["a"])
        self.assertEqual(str(ctx.exception), "Embeddings API error (401): Incorrect API key provided")

    def test_connection_failure(self) -> None:
        def fake_post(url, *_args, **kwargs):
            raise requests.ConnectionError("refused")

        with patch("requests.post", fake_post):
            with self.assertRaises(EmbeddingError):
                OpenAIEmbeddingProvider(api_key="k").embed(["a"])

    def test_invalid_json(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text="not json")

        with patch("requests.post", fake_post):
            with self.assertRaises(EmbeddingError):
                OpenAIEmbeddingProvider(api_key="k").embed(["a"])

    def test_missing_index(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=_payload((0, [1.0])))

        with patch("requests.post", fake_post):
            with self.assertRaises(EmbeddingError) as ctx:
                OpenAIEmbeddingProvider(api_key="k").embed(["a", "b"])
        self.assertIn("missing indices: 1", str(ctx.exception))

    def test_malformed_structure(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=json.dumps({"data": [{"index": 5, "embedding": [1]}]}))

        with patch("requests.post", fake_post):
            with self.assertRaises(EmbeddingError):
                OpenAIEmbeddingProvider(api_key="k").embed(["a"])


if __name__ == "__main__":
    unittest.main()
