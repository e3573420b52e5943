"""
Shared fixtures: deterministic embedding provider, scripted chat client, settings without credentials.
No test touches the network or downloads a model.
"""

import sys
import zlib
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))

from creator_search.config import Settings
from creator_search.data_loader import CreatorLoader
from creator_search.llm_extractor import LLMFilterExtractor
from creator_search.models import Creator, CreatorRates
from creator_search.query_parser import FallbackParser
from creator_search.repository import SearchRepository
from creator_search.retrieval import SemanticRetriever
from creator_search.search_engine import SearchEngine


class HashingEmbedder:
	"""Bag-of-words hashing embedder: identical texts map to identical unit vectors."""

	def __init__(self, dimension: int = 64, fail: bool = False):
		self.dimension = dimension
		self.fail = fail
		self.calls = []

	@property
	def is_available(self) -> bool:
		return True

	def generate_query_embedding(self, query: str) -> np.ndarray:
		self.calls.append(query)
		if self.fail:
			from creator_search.exceptions import ProviderError
			raise ProviderError("embedding backend down")
		vec = np.zeros(self.dimension, dtype="float32")
		for word in query.lower().split():
			vec[zlib.crc32(word.encode("utf-8")) % self.dimension] += 1.0
		norm = np.linalg.norm(vec)
		return vec / norm if norm else vec

	def generate_query_embeddings(self, queries):
		return np.vstack([self.generate_query_embedding(q) for q in queries])

	def get_embedding_dimension(self) -> int:
		return self.dimension


class FakeChatClient:
	"""Stands in for openai.OpenAI: client.chat.completions.create(...) returns scripted content."""

	def __init__(self, content: str = "", error: Exception = None):
		self.content = content
		self.error = error
		self.requests = []
		self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

	def _create(self, **kwargs):
		self.requests.append(kwargs)
		if self.error is not None:
			raise self.error
		message = SimpleNamespace(content=self.content)
		return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_creator(creator_id: str, niche, platforms=("Instagram",), followers=50000, engagement=4.0,
	location="United States", post_rate=500, verified=False, name=None) -> Creator:
	return Creator(
		id=creator_id,
		name=name or f"Creator {creator_id}",
		username=f"creator{creator_id}",
		location=location,
		niche=list(niche),
		platforms=list(platforms),
		followers=followers,
		engagement_rate=engagement,
		rates=CreatorRates(post=post_rate, story=post_rate // 3),
		verified=verified,
	)


@pytest.fixture
def settings():
	return Settings(
		_env_file=None,
		LLM_API_KEY=None,
		DEEPSEEK_API_KEY=None,
		OPENAI_API_KEY=None,
		EMBEDDING_BACKEND="none",
	)


@pytest.fixture
def parser():
	return FallbackParser()


@pytest.fixture
def creators():
	return CreatorLoader().load_creators_from_jsonl(str(ROOT / 'data' / 'creators.jsonl'))


@pytest.fixture
def embedder():
	return HashingEmbedder()


@pytest.fixture
def repository():
	return SearchRepository()


@pytest.fixture
def make_engine(settings, repository, embedder, parser):
	"""Build an engine around the shared repository; pass a FakeChatClient to enable the LLM step."""
	def _make(client=None, embedder_override=None):
		retriever = SemanticRetriever(repository, embedder=embedder_override or embedder, settings=settings)
		extractor = LLMFilterExtractor(settings=settings, client=client, parser=parser)
		return SearchEngine(repository, retriever=retriever, extractor=extractor, parser=parser, settings=settings)
	return _make
