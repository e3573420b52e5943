"""
Tests for embedding provider selection and the OpenAI-compatible provider (fake client, no network).
"""

from types import SimpleNamespace

import numpy as np
import pytest

from creator_search.config import Settings
from creator_search.embeddings import OpenAIEmbeddingGenerator, build_embedding_provider
from creator_search.exceptions import ProviderError, ProviderUnavailableError


class FakeEmbeddingsClient:
	def __init__(self, vector=None, error=None):
		self.vector = vector
		self.error = error
		self.embeddings = SimpleNamespace(create=self._create)

	def _create(self, model, input):
		if self.error is not None:
			raise self.error
		return SimpleNamespace(data=[SimpleNamespace(embedding=self.vector)])


def test_backend_selection():
	assert build_embedding_provider(Settings(_env_file=None, EMBEDDING_BACKEND="none")) is None

	provider = build_embedding_provider(Settings(_env_file=None, EMBEDDING_BACKEND="openai", OPENAI_API_KEY=None))
	assert isinstance(provider, OpenAIEmbeddingGenerator)
	assert not provider.is_available

	with pytest.raises(ValueError):
		build_embedding_provider(Settings(_env_file=None, EMBEDDING_BACKEND="word2vec"))


def test_openai_provider_without_key():
	provider = OpenAIEmbeddingGenerator(api_key=None)
	with pytest.raises(ProviderUnavailableError):
		provider.generate_query_embedding("fitness creators")


def test_openai_provider_normalizes():
	provider = OpenAIEmbeddingGenerator(api_key=None, client=FakeEmbeddingsClient(vector=[3.0, 4.0]))
	vec = provider.generate_query_embedding("fitness creators")
	assert vec.dtype == np.float32
	assert np.allclose(vec, [0.6, 0.8])
	assert provider.get_embedding_dimension() == 2


def test_openai_provider_errors():
	provider = OpenAIEmbeddingGenerator(api_key=None, client=FakeEmbeddingsClient(error=ConnectionError("down")))
	with pytest.raises(ProviderError):
		provider.generate_query_embedding("fitness creators")
	with pytest.raises(ValueError):
		provider.generate_query_embedding("  ")
