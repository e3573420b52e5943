"""
Vector store module using FAISS.
Holds the embeddings of past search queries and answers nearest-neighbor lookups over them.
"""

# Import NumPy for typed arrays passed to FAISS
import numpy as np  # numeric arrays
# Import FAISS (Facebook AI Similarity Search) for fast nearest-neighbor search
import faiss  # vector index
# Pathlib for robust path handling when saving/loading
from pathlib import Path  # filesystem paths
# Typing hints for clarity of public API
from typing import Dict, List, Optional, Tuple  # type hints
# Pickle for persisting small Python metadata (IDs/mappings)
import pickle  # simple serialization

# Console logging
from loguru import logger  # console logger


class QueryVectorStore:
	"""
	Manages a FAISS inner-product index over normalized query embeddings.
	Each index row maps back to a QueryEmbedding id; the row's success score is
	kept alongside so lookups can skip queries that never proved useful.
	"""

	def __init__(self, embedding_dimension: Optional[int] = None):
		"""
		Initialize the store. The dimension may be left open and is then fixed by the
		first vector added, since hosted embedding models only reveal it on first use.
		"""
		self.embedding_dimension = embedding_dimension  # vector length
		self.index = None  # will hold the FAISS index object
		self.embedding_ids: List[str] = []  # list mapping index row -> embedding id
		self.success_scores: Dict[str, float] = {}  # embedding id -> latest success score

		if embedding_dimension:
			self._create_index(embedding_dimension)

	def _create_index(self, dimension: int):
		# Inner product on normalized vectors equals cosine similarity
		self.index = faiss.IndexFlatIP(dimension)
		self.embedding_dimension = dimension
		logger.info(f"[VectorStore] Initialized FAISS index | dim={dimension} | metric=cosine")

	def _prepare(self, vector: np.ndarray) -> np.ndarray:
		# Convert to float32 as expected by FAISS and ensure 2D shape
		vector = np.asarray(vector, dtype="float32")
		if vector.ndim == 1:
			vector = vector.reshape(1, -1)
		# Validate vector length
		if self.embedding_dimension and vector.shape[1] != self.embedding_dimension:
			raise ValueError(
				f"Embedding dimension ({vector.shape[1]}) doesn't match expected ({self.embedding_dimension})"
			)
		vector = np.ascontiguousarray(vector)
		faiss.normalize_L2(vector)  # normalize in-place for cosine similarity
		return vector

	def add(self, embedding_id: str, vector: np.ndarray, success_score: float = 0.0):
		"""Add one query embedding to the index."""
		if self.index is None:
			self._create_index(int(np.asarray(vector).reshape(-1).shape[0]))
		prepared = self._prepare(vector)
		self.index.add(prepared)
		self.embedding_ids.append(embedding_id)
		self.success_scores[embedding_id] = success_score
		logger.debug(f"[VectorStore] Added embedding {embedding_id} | total in index: {self.index.ntotal}")

	def remove(self, embedding_id: str):
		"""Drop one stored embedding; later rows shift up so row -> id stays aligned."""
		if embedding_id not in self.success_scores:
			raise KeyError(f"Unknown embedding id: {embedding_id}")
		row = self.embedding_ids.index(embedding_id)
		self.index.remove_ids(np.array([row], dtype="int64"))
		del self.embedding_ids[row]
		del self.success_scores[embedding_id]
		logger.debug(f"[VectorStore] Removed embedding {embedding_id} | total in index: {self.index.ntotal}")

	def update_success(self, embedding_id: str, success_score: float):
		if embedding_id not in self.success_scores:
			raise KeyError(f"Unknown embedding id: {embedding_id}")
		self.success_scores[embedding_id] = success_score

	def search(
		self,
		query_embedding: np.ndarray,
		top_k: int = 10
	) -> List[Tuple[str, float]]:
		"""
		Search for the top-k nearest stored queries to the given embedding.
		Returns (embedding_id, cosine similarity) pairs, most similar first.
		An empty store returns an empty list.
		"""
		if self.index is None or self.index.ntotal == 0:
			return []

		prepared = self._prepare(query_embedding)
		similarities, indices = self.index.search(prepared, min(top_k, self.index.ntotal))

		# Translate FAISS row indices back to embedding IDs
		results = []
		for similarity, idx in zip(similarities[0], indices[0]):
			if idx < 0:  # FAISS pads missing hits with -1
				continue
			results.append((self.embedding_ids[idx], float(similarity)))
		return results

	def size(self) -> int:
		"""Number of stored query embeddings."""
		return self.index.ntotal if self.index is not None else 0

	def save_index(self, filepath: str):
		"""Write <base>.index (only once a vector exists) and <base>.pkl with the row ids and scores."""
		filepath = Path(filepath)  # coerce to Path
		filepath.parent.mkdir(parents=True, exist_ok=True)
		index_path = filepath.with_suffix('.index')
		if self.index is not None:
			faiss.write_index(self.index, str(index_path))
		metadata_path = filepath.with_suffix('.pkl')
		metadata = {
			'embedding_ids': self.embedding_ids,  # row -> id mapping
			'success_scores': self.success_scores,  # id -> score
			'embedding_dimension': self.embedding_dimension,  # config
		}
		with open(metadata_path, 'wb') as f:
			pickle.dump(metadata, f)  # serialize metadata
		logger.info(f"[VectorStore] Saved index to {index_path} and metadata to {metadata_path}")

	@classmethod
	def load_index(cls, filepath: str) -> 'QueryVectorStore':
		"""Inverse of save_index. An index file is only required when rows were saved."""
		filepath = Path(filepath)  # coerce to Path
		index_path = filepath.with_suffix('.index')  # FAISS file
		metadata_path = filepath.with_suffix('.pkl')  # Python metadata

		if not metadata_path.exists():
			raise FileNotFoundError(f"Metadata file not found: {metadata_path}")
		with open(metadata_path, 'rb') as f:
			metadata = pickle.load(f)

		store = cls()
		store.embedding_dimension = metadata['embedding_dimension']
		store.embedding_ids = metadata['embedding_ids']
		store.success_scores = metadata['success_scores']
		if store.embedding_ids:
			if not index_path.exists():
				raise FileNotFoundError(f"Index file not found: {index_path}")
			store.index = faiss.read_index(str(index_path))
		elif store.embedding_dimension:
			store._create_index(store.embedding_dimension)

		logger.info(f"[VectorStore] Loaded index from {index_path} | total={store.size()}")
		return store
