"""
Embedding generation module.
Turns search queries into normalized vectors, either with a local sentence-transformers
model or through an OpenAI-compatible embeddings endpoint.
"""

# Import NumPy for numerical arrays that store embeddings
import numpy as np  # efficient numeric arrays
# Import typing helpers for clear API contracts
from typing import List, Optional  # list types

# OpenAI client for hosted embeddings
from openai import OpenAI  # OpenAI-compatible API client
# Import the SentenceTransformer model to convert text into embeddings
from sentence_transformers import SentenceTransformer  # pre-trained embedding model

# Import loguru for consistent console logging (friendlier than print)
from loguru import logger  # console logger

from .config import Settings  # provider selection and credentials
from .exceptions import ProviderError, ProviderUnavailableError  # degrade signals


def _normalize(vector) -> np.ndarray:
	# L2-normalize so cosine similarity == inner product
	vec = np.asarray(vector, dtype="float32").reshape(-1)
	norm = float(np.linalg.norm(vec))
	if norm > 0:
		vec = vec / norm
	return vec


class EmbeddingGenerator:
	"""
	Generates query embeddings with a local sentence-transformers model.
	"""

	def __init__(self, model_name: str = 'all-MiniLM-L6-v2'):
		"""Load a sentence-transformers model; weights download on first use and are cached."""
		logger.info(f"[Embeddings] Loading embedding model: {model_name}")  # log model selection
		self.model = SentenceTransformer(model_name)  # load model weights
		self.model_name = model_name  # save model id
		self.embedding_dimension = self.model.get_sentence_embedding_dimension()  # vector size
		logger.info(f"[Embeddings] Model ready. Embedding dimension: {self.embedding_dimension}")  # confirm

	@property
	def is_available(self) -> bool:
		return True  # a loaded local model needs no credential

	def generate_query_embedding(self, query: str) -> np.ndarray:
		"""
		Embed one search query as a unit-length float32 vector.
		"""
		if not query or not query.strip():  # empty or whitespace only
			raise ValueError("Query cannot be empty")  # clear feedback

		try:
			# Feed the cleaned query into the model to obtain a normalized vector
			embedding = self.model.encode(
				query.strip(),  # trim surrounding spaces
				convert_to_numpy=True,  # NumPy vector
				normalize_embeddings=True  # normalized for cosine similarity
			)
		except Exception as e:
			raise ProviderError(f"local embedding model failed: {e}") from e

		return embedding.astype("float32")  # single vector

	def generate_query_embeddings(self, queries: List[str]) -> np.ndarray:
		"""
		Embed stored queries in one batch when a store is re-indexed.
		Rows line up with the input order.
		"""
		if not queries:
			raise ValueError("No queries provided")  # inform caller

		embeddings = self.model.encode(
			queries,  # list of strings
			convert_to_numpy=True,  # NumPy matrix
			normalize_embeddings=True  # normalized rows
		)

		return embeddings.astype("float32")  # matrix of vectors

	def get_embedding_dimension(self) -> int:
		return self.embedding_dimension  # cached value


class OpenAIEmbeddingGenerator:
	"""
	Generates query embeddings through an OpenAI-compatible /embeddings endpoint.
	Without an API key the provider reports itself unavailable and never calls out.
	"""

	def __init__(
		self,
		api_key: Optional[str],
		model_name: str = "text-embedding-3-small",
		base_url: Optional[str] = None,
		timeout: float = 20.0,
		client=None,
	):
		self.model_name = model_name
		self.embedding_dimension: Optional[int] = None  # learned from the first response
		self._client = client
		if self._client is None and api_key:
			self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
		logger.info(
			f"[Embeddings] OpenAI embeddings {'ready' if self._client else 'disabled (no API key)'} | model={model_name}"
		)

	@property
	def is_available(self) -> bool:
		return self._client is not None

	def generate_query_embedding(self, query: str) -> np.ndarray:
		if not query or not query.strip():
			raise ValueError("Query cannot be empty")
		if self._client is None:
			raise ProviderUnavailableError("openai-embeddings", "no API key configured")

		try:
			response = self._client.embeddings.create(model=self.model_name, input=query.strip())
			vector = _normalize(response.data[0].embedding)
		except Exception as e:
			raise ProviderError(f"embedding request failed: {e}") from e

		self.embedding_dimension = int(vector.shape[0])
		return vector

	def generate_query_embeddings(self, queries: List[str]) -> np.ndarray:
		if not queries:
			raise ValueError("No queries provided")
		return np.vstack([self.generate_query_embedding(q) for q in queries])

	def get_embedding_dimension(self) -> Optional[int]:
		return self.embedding_dimension


def build_embedding_provider(settings: Settings):
	"""
	Pick the embedding provider named by EMBEDDING_BACKEND.
	Returns None when semantic retrieval should be skipped entirely.
	"""
	backend = (settings.EMBEDDING_BACKEND or "").strip().lower()
	if backend == "none":
		logger.info("[Embeddings] Embedding backend disabled")
		return None
	if backend == "openai":
		return OpenAIEmbeddingGenerator(
			api_key=settings.OPENAI_API_KEY,
			model_name=settings.OPENAI_EMBED_MODEL,
			base_url=settings.OPENAI_BASE_URL,
			timeout=settings.LLM_TIMEOUT,
		)
	if backend != "local":
		raise ValueError(f"Unknown EMBEDDING_BACKEND: {settings.EMBEDDING_BACKEND}")
	try:
		return EmbeddingGenerator(settings.EMBED_MODEL)
	except Exception as e:
		logger.warning(f"[Embeddings] Could not load '{settings.EMBED_MODEL}', semantic retrieval disabled: {e}")
		return None
