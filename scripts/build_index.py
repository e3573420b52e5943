"""
Rebuild the query vector index of a saved search store.

This script:
1) Loads the repository snapshot from settings.STORE_PATH
2) Re-embeds every stored query with the configured embedding provider
3) Builds a fresh FAISS index, keeping each query's success score
4) Saves the snapshot and index back in place

Run it after changing EMBED_MODEL or EMBEDDING_BACKEND, since vectors from
different models are not comparable.

Usage:
    python -m scripts.build_index
"""

import time  # measure step timings

from loguru import logger  # console logging

from creator_search.config import configure_logging, settings  # env-backed settings
from creator_search.embeddings import build_embedding_provider  # embedding provider factory
from creator_search.repository import SearchRepository  # snapshot persistence
from creator_search.vector_store import QueryVectorStore  # FAISS index helper


def rebuild_index(repository: SearchRepository, embedder) -> int:
	"""Replace the repository's vector index with freshly embedded queries. Returns the row count."""
	records = list(repository.embeddings.values())
	store = QueryVectorStore()
	if records:
		vectors = embedder.generate_query_embeddings([r.query_text for r in records])
		for record, vector in zip(records, vectors):
			record.embedding = vector
			store.add(record.id, vector, success_score=record.success_score)
	repository.vector_store = store
	return store.size()


def main():
	configure_logging()

	# Headline banner for visibility in console
	logger.info("=" * 60)
	logger.info("Rebuild Query Vector Index")
	logger.info("=" * 60)

	base_path = settings.STORE_PATH

	# 1) Load snapshot
	logger.info(f"[1/3] Loading store snapshot from {base_path}...")
	if not SearchRepository.exists(base_path):
		logger.error(f"No store snapshot at {base_path}; start the API once to create one.")
		return 1
	repository = SearchRepository.load(base_path)
	logger.info(f"[OK] Loaded {len(repository.embeddings)} query embeddings")

	# 2) Re-embed and index
	logger.info(f"\n[2/3] Re-embedding queries with backend '{settings.EMBEDDING_BACKEND}'...")
	embedder = build_embedding_provider(settings)
	if embedder is None or not embedder.is_available:
		logger.error("No embedding provider available; check EMBEDDING_BACKEND and credentials.")
		return 1
	t0 = time.time()
	total = rebuild_index(repository, embedder)
	logger.info(f"[OK] Index rebuilt with {total} vectors in {time.time() - t0:.2f}s")

	# 3) Save
	logger.info("\n[3/3] Saving snapshot and index...")
	repository.save(base_path)
	logger.info("[OK] Saved.")

	logger.info("=" * 60)
	return 0


if __name__ == '__main__':
	raise SystemExit(main())
