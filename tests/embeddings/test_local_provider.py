import hashlib
import unittest

from vc_change_grouper.embeddings.openai_client import OpenAIEmbeddingProvider
from vc_change_grouper.embeddings.provider import (
    LOCAL_DIMENSION,
    LocalEmbeddingProvider,
    get_embedding_provider,
)
from vc_change_grouper.errors import ConfigError


class TestLocalEmbeddingProvider(unittest.TestCase):
    def test_empty_input(self) -> None:
        self.assertEqual(LocalEmbeddingProvider().embed([]), [])

    def test_dimension_and_range(self) -> None:
        vectors = LocalEmbeddingProvider().embed(["alpha", "beta"])
        self.assertEqual(len(vectors), 2)
        for vec in vectors:
            self.assertEqual(len(vec), LOCAL_DIMENSION)
            self.assertTrue(all(-1.0 <= value <= 1.0 for value in vec))

    def test_maps_digest_bytes(self) -> None:
        digest = hashlib.sha256("hello".encode("utf-8")).digest()
        vec = LocalEmbeddingProvider().embed(["hello"])[0]
        self.assertAlmostEqual(vec[0], digest[0] / 127.5 - 1)
        self.assertAlmostEqual(vec[31], digest[31] / 127.5 - 1)

    def test_deterministic(self) -> None:
        provider = LocalEmbeddingProvider()
        self.assertEqual(provider.embed(["same"]), provider.embed(["same"]))
        self.assertNotEqual(provider.embed(["one"]), provider.embed(["two"]))


class TestGetEmbeddingProvider(unittest.TestCase):
    def test_local_selected(self) -> None:
        provider = get_embedding_provider({"embedding_provider": "local"})
        self.assertIsInstance(provider, LocalEmbeddingProvider)

    def test_remote_requires_api_key(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            get_embedding_provider({"embedding_provider": "openai", "openai_api_key": None})
        self.assertIn("OPENAI_API_KEY", str(ctx.exception))

    def test_remote_built_from_config(self) -> None:
        provider = get_embedding_provider(
            {
                "embedding_provider": "openai",
                "openai_api_key": "sk-test",
                "embedding_model": "m",
                "embedding_base_url": "http://localhost:8080/",
                "request_timeout": 5,
            }
        )
        self.assertIsInstance(provider, OpenAIEmbeddingProvider)
        self.assertEqual(provider.model, "m")
        self.assertEqual(provider.request_timeout, 5.0)
        self.assertEqual(provider._endpoint(), "http://localhost:8080/v1/embeddings")

    def test_api_key_not_in_repr(self) -> None:
        provider = OpenAIEmbeddingProvider(api_key="sk-secret")
        self.assertNotIn("sk-secret", repr(provider))


if __name__ == "__main__":
    unittest.main()
