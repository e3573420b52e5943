"""
Semantic retrieval step.
Embeds the incoming query, stores the embedding for later feedback, and surfaces similar
successful past queries plus top learned patterns as few-shot context for the LLM.
Every failure here only shrinks the context; it never stops a search.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from loguru import logger

from .config import Settings, settings as default_settings
from .exceptions import ProviderError
from .models import LearnedPattern, SimilarQuery
from .repository import SearchRepository


@dataclass
class RetrievalContext:
	similar_queries: List[SimilarQuery] = field(default_factory=list)
	learned_patterns: List[LearnedPattern] = field(default_factory=list)


class SemanticRetriever:
	"""Nearest-neighbor lookup over embedded past queries."""

	def __init__(self, repository: SearchRepository, embedder=None, settings: Optional[Settings] = None):
		self.repository = repository
		self.embedder = embedder  # None disables semantic retrieval
		self.settings = settings or default_settings

	def _embed(self, query: str) -> Optional[np.ndarray]:
		if self.embedder is None or not getattr(self.embedder, "is_available", True):
			logger.debug("[Retrieval] No embedding provider available, skipping semantic context")
			return None
		try:
			vector = self.embedder.generate_query_embedding(query)
			logger.debug("[Retrieval] Generated query embedding")
			return vector
		except (ProviderError, ValueError) as e:
			logger.warning(f"[Retrieval] Embedding failed, continuing without semantic context: {e}")
			return None

	def retrieve_similar(self, query: str, session_id: Optional[str] = None) -> List[SimilarQuery]:
		"""
		Return up to MAX_SIMILAR_QUERIES past queries whose similarity exceeds SIMILARITY_THRESHOLD
		and whose sessions scored above EXEMPLAR_MIN_SUCCESS, most similar first.
		When a session id is given the query embedding is stored against it with a zero score.
		"""
		vector = self._embed(query)
		if vector is None:
			return []

		if session_id:
			try:
				self.repository.add_query_embedding(session_id, query, vector)
			except Exception as e:
				logger.warning(f"[Retrieval] Could not store query embedding for session {session_id}: {e}")

		similar: List[SimilarQuery] = []
		try:
			similar = self.repository.match_similar_queries(
				vector,
				match_threshold=self.settings.SIMILARITY_THRESHOLD,
				min_success=self.settings.EXEMPLAR_MIN_SUCCESS,
				match_count=self.settings.MAX_SIMILAR_QUERIES,
				exclude_session_id=session_id,
			)
			logger.debug(f"[Retrieval] Found {len(similar)} similar queries")
		except Exception as e:
			logger.warning(f"[Retrieval] Vector lookup failed, continuing without similar queries: {e}")

		return similar

	def load_learned_patterns(self) -> List[LearnedPattern]:
		"""Top learned patterns by confidence then recency. Usage is recorded separately, see mark_used."""
		try:
			patterns = self.repository.top_learned_patterns(
				limit=self.settings.MAX_LEARNED_PATTERNS,
				min_confidence=self.settings.PATTERN_MIN_CONFIDENCE,
			)
		except Exception as e:
			logger.warning(f"[Retrieval] Could not load learned patterns: {e}")
			return []
		logger.debug(f"[Retrieval] Loaded {len(patterns)} learned patterns")
		return patterns

	def mark_used(self, context: RetrievalContext):
		"""Record that the context's learned patterns were shown to the LLM."""
		if not context.learned_patterns:
			return
		try:
			self.repository.mark_patterns_used(p.id for p in context.learned_patterns)
		except Exception as e:
			logger.warning(f"[Retrieval] Could not record pattern usage: {e}")

	def build_context(self, query: str, session_id: Optional[str] = None) -> RetrievalContext:
		return RetrievalContext(
			similar_queries=self.retrieve_similar(query, session_id=session_id),
			learned_patterns=self.load_learned_patterns(),
		)
