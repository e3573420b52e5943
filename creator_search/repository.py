"""
Search repository.
In-process persistence for search sessions, interactions, query embeddings and learned patterns,
with snapshot save/load next to the FAISS query index.
"""

import pickle  # snapshot serialization
import threading  # guards structural mutation of the stores
from collections import Counter  # top-query tallies
from dataclasses import fields as dataclass_fields, replace
from pathlib import Path  # filesystem paths
from typing import Dict, Iterable, List, Optional

import numpy as np  # embedding vectors
from loguru import logger  # console logging

from .exceptions import SessionNotFoundError
from .models import (
	PATTERN_SUCCESSFUL_QUERY,
	LearnedPattern,
	LearningStats,
	QueryEmbedding,
	SearchInteraction,
	SearchSession,
	SimilarQuery,
	new_id,
	utcnow,
)
from .schemas import FilterModel, OwnerRef
from .vector_store import QueryVectorStore


_SESSION_FIELDS = {f.name for f in dataclass_fields(SearchSession)} - {"id", "created_at"}


class SearchRepository:
	"""
	Stores every record the search pipeline reads or writes.
	Each write touches one record only; updates are field upserts with last-write-wins semantics.
	"""

	def __init__(self, vector_store: Optional[QueryVectorStore] = None):
		self.sessions: Dict[str, SearchSession] = {}
		self.interactions: List[SearchInteraction] = []
		self.embeddings: Dict[str, QueryEmbedding] = {}  # embedding id -> record
		self.embedding_by_session: Dict[str, str] = {}  # session id -> embedding id
		self.patterns: Dict[str, LearnedPattern] = {}
		self.vector_store = vector_store or QueryVectorStore()
		self._lock = threading.Lock()  # keeps FAISS rows and embedding records aligned

	# ------------------------------------------------------------------ sessions

	def create_session(
		self,
		user_query: str,
		owner: Optional[OwnerRef] = None,
		parsed_filters: Optional[FilterModel] = None,
	) -> SearchSession:
		session = SearchSession(
			id=new_id(),
			user_query=user_query,
			parsed_filters=parsed_filters or FilterModel(),
			user_id=owner.user_id if owner else None,
			guest_user_id=owner.guest_user_id if owner else None,
		)
		with self._lock:
			self.sessions[session.id] = session
		logger.debug(f"[Store] Created session {session.id} for query '{user_query}'")
		return session

	def get_session(self, session_id: str) -> Optional[SearchSession]:
		return self.sessions.get(session_id)

	def update_session(self, session_id: str, **updates) -> SearchSession:
		"""Overwrite the given session fields and stamp updated_at."""
		unknown = set(updates) - _SESSION_FIELDS
		if unknown:
			raise ValueError(f"Unknown session fields: {sorted(unknown)}")
		session = self.sessions.get(session_id)
		if session is None:
			raise SessionNotFoundError(session_id)
		updated = replace(session, **updates)
		updated.updated_at = utcnow()
		self.sessions[session_id] = updated
		return updated

	# -------------------------------------------------------------- interactions

	def add_interaction(self, session_id: str, creator_id: str, interaction_type: str) -> SearchInteraction:
		interaction = SearchInteraction(
			id=new_id(),
			session_id=session_id,
			creator_id=creator_id,
			interaction_type=interaction_type,
		)
		with self._lock:
			self.interactions.append(interaction)
		return interaction

	def list_interactions(self, session_id: str) -> List[SearchInteraction]:
		return [i for i in self.interactions if i.session_id == session_id]

	# ---------------------------------------------------------------- embeddings

	def add_query_embedding(self, session_id: str, query_text: str, embedding: np.ndarray) -> QueryEmbedding:
		record = QueryEmbedding(
			id=new_id(),
			session_id=session_id,
			query_text=query_text,
			embedding=np.asarray(embedding, dtype="float32"),
			success_score=0.0,
		)
		with self._lock:
			# One embedding per session: a re-run query replaces the previous row
			previous_id = self.embedding_by_session.get(session_id)
			if previous_id is not None and self.embeddings.pop(previous_id, None) is not None:
				self.vector_store.remove(previous_id)
			self.vector_store.add(record.id, record.embedding, success_score=0.0)
			self.embeddings[record.id] = record
			self.embedding_by_session[session_id] = record.id
		logger.debug(f"[Store] Stored query embedding {record.id} for session {session_id}")
		return record

	def get_embedding_for_session(self, session_id: str) -> Optional[QueryEmbedding]:
		embedding_id = self.embedding_by_session.get(session_id)
		return self.embeddings.get(embedding_id) if embedding_id else None

	def update_embedding_success(self, session_id: str, success_score: float) -> Optional[QueryEmbedding]:
		"""Back-fill the success score of the session's query embedding, if it has one."""
		record = self.get_embedding_for_session(session_id)
		if record is None:
			return None
		record.success_score = success_score
		self.vector_store.update_success(record.id, success_score)
		return record

	def match_similar_queries(
		self,
		query_embedding: np.ndarray,
		match_threshold: float = 0.7,
		min_success: float = 0.3,
		match_count: int = 3,
		exclude_session_id: Optional[str] = None,
	) -> List[SimilarQuery]:
		"""
		Nearest successful past queries: similarity above match_threshold, success above
		min_success, most similar first, at most match_count.
		"""
		candidates = self.vector_store.search(query_embedding, top_k=self.vector_store.size())
		matches: List[SimilarQuery] = []
		for embedding_id, similarity in candidates:
			if similarity <= match_threshold:
				break  # sorted by similarity, nothing further can pass
			record = self.embeddings.get(embedding_id)
			if record is None or record.success_score <= min_success:
				continue
			if exclude_session_id and record.session_id == exclude_session_id:
				continue
			matches.append(
				SimilarQuery(
					query_text=record.query_text,
					output_structure=self._output_structure_for(record),
					success_score=record.success_score,
					similarity=similarity,
				)
			)
			if len(matches) >= match_count:
				break
		return matches

	def _output_structure_for(self, record: QueryEmbedding) -> FilterModel:
		# Prefer a learned pattern for the same text, else the filters the session produced
		same_text = [p for p in self.patterns.values() if p.input_text == record.query_text]
		if same_text:
			best = max(same_text, key=lambda p: (p.confidence_score, p.created_at))
			return best.output_structure
		session = self.sessions.get(record.session_id)
		return session.parsed_filters if session else FilterModel()

	# ---------------------------------------------------------- learned patterns

	def add_learned_pattern(
		self,
		input_text: str,
		output_structure: FilterModel,
		confidence_score: float = 0.8,
		pattern_type: str = PATTERN_SUCCESSFUL_QUERY,
	) -> LearnedPattern:
		pattern = LearnedPattern(
			id=new_id(),
			input_text=input_text,
			output_structure=output_structure,
			pattern_type=pattern_type,
			confidence_score=confidence_score,
			usage_count=1,
		)
		with self._lock:
			self.patterns[pattern.id] = pattern
		logger.debug(f"[Store] Learned pattern {pattern.id} for '{input_text}'")
		return pattern

	def top_learned_patterns(
		self,
		limit: int = 3,
		min_confidence: float = 0.0,
		pattern_type: str = PATTERN_SUCCESSFUL_QUERY,
	) -> List[LearnedPattern]:
		"""Highest-confidence patterns first, newest first among equals."""
		eligible = [
			p for p in self.patterns.values()
			if p.pattern_type == pattern_type and p.confidence_score >= min_confidence
		]
		eligible.sort(key=lambda p: (p.confidence_score, p.created_at), reverse=True)
		return eligible[:limit]

	def mark_patterns_used(self, pattern_ids: Iterable[str]):
		now = utcnow()
		for pattern_id in pattern_ids:
			pattern = self.patterns.get(pattern_id)
			if pattern is None:
				continue
			pattern.usage_count += 1
			pattern.last_used_at = now

	# ------------------------------------------------------------------- stats

	def learning_stats(
		self,
		success_threshold: float = 0.5,
		top_query_threshold: float = 0.7,
		top_n: int = 5,
	) -> LearningStats:
		"""Dashboard figures over all sessions. Top queries are lower-cased before counting, most frequent first."""
		sessions = list(self.sessions.values())
		scores = [s.success_score for s in sessions]
		top = Counter(
			s.user_query.strip().lower() for s in sessions
			if s.success_score > top_query_threshold and s.user_query.strip()
		)
		return LearningStats(
			total_searches=len(sessions),
			successful_searches=sum(1 for score in scores if score > success_threshold),
			learned_patterns=len(self.patterns),
			average_success_score=sum(scores) / len(scores) if scores else 0.0,
			top_queries=top.most_common(top_n),
		)

	# --------------------------------------------------------------- persistence

	@staticmethod
	def _records_path(base_path: str) -> Path:
		base = Path(base_path)
		return base.parent / f"{base.name}_records.pkl"

	def save(self, base_path: str):
		"""Write the records snapshot and the FAISS index (base path without extension)."""
		records_path = self._records_path(base_path)
		records_path.parent.mkdir(parents=True, exist_ok=True)
		with self._lock:
			snapshot = {
				'sessions': self.sessions,
				'interactions': self.interactions,
				'embeddings': self.embeddings,
				'embedding_by_session': self.embedding_by_session,
				'patterns': self.patterns,
			}
			with open(records_path, 'wb') as f:
				pickle.dump(snapshot, f)
			self.vector_store.save_index(base_path)
		logger.info(
			f"[Store] Saved {len(self.sessions)} sessions, {len(self.embeddings)} embeddings, "
			f"{len(self.patterns)} patterns to {records_path}"
		)

	@classmethod
	def load(cls, base_path: str) -> 'SearchRepository':
		records_path = cls._records_path(base_path)
		if not records_path.exists():
			raise FileNotFoundError(f"Store snapshot not found: {records_path}")
		with open(records_path, 'rb') as f:
			snapshot = pickle.load(f)

		repo = cls(vector_store=QueryVectorStore.load_index(base_path))
		repo.sessions = snapshot['sessions']
		repo.interactions = snapshot['interactions']
		repo.embeddings = snapshot['embeddings']
		repo.embedding_by_session = snapshot['embedding_by_session']
		repo.patterns = snapshot['patterns']
		logger.info(f"[Store] Loaded snapshot from {records_path} | sessions={len(repo.sessions)}")
		return repo

	@classmethod
	def exists(cls, base_path: str) -> bool:
		return cls._records_path(base_path).exists() and Path(base_path).with_suffix('.pkl').exists()
