"""
Unit tests for the search repository, the query vector store and semantic retrieval.
"""

import numpy as np
import pytest

from creator_search.exceptions import SessionNotFoundError
from creator_search.repository import SearchRepository
from creator_search.retrieval import SemanticRetriever
from creator_search.schemas import FilterModel, OwnerRef
from creator_search.vector_store import QueryVectorStore

from conftest import HashingEmbedder


def unit(*values):
	vec = np.asarray(values, dtype="float32")
	return vec / np.linalg.norm(vec)


def test_session_lifecycle(repository: SearchRepository):
	session = repository.create_session("tech youtubers", owner=OwnerRef(guestUserId="guest-1"))
	assert session.success_score == 0.0
	assert session.guest_user_id == "guest-1" and session.user_id is None

	updated = repository.update_session(session.id, results_count=7, parsed_filters=FilterModel(niche=["tech"]))
	assert updated.results_count == 7
	assert repository.get_session(session.id).parsed_filters.niche == ["tech"]
	assert updated.updated_at >= session.updated_at


def test_update_session_errors(repository: SearchRepository):
	session = repository.create_session("q")
	with pytest.raises(ValueError):
		repository.update_session(session.id, not_a_field=1)
	with pytest.raises(SessionNotFoundError):
		repository.update_session("missing", results_count=1)
	with pytest.raises(KeyError):
		repository.update_session("missing", results_count=1)


def test_owner_must_be_exactly_one():
	with pytest.raises(ValueError):
		OwnerRef()
	with pytest.raises(ValueError):
		OwnerRef(userId="u", guestUserId="g")


def test_match_similar_queries_thresholds(repository: SearchRepository):
	a = repository.create_session("fitness creators", parsed_filters=FilterModel(niche=["fitness"]))
	b = repository.create_session("tech creators", parsed_filters=FilterModel(niche=["tech"]))
	c = repository.create_session("food creators", parsed_filters=FilterModel(niche=["food"]))

	repository.add_query_embedding(a.id, a.user_query, unit(1, 0, 0))
	repository.add_query_embedding(b.id, b.user_query, unit(1, 1, 0))  # cosine ~0.707 to (1,0,0)
	repository.add_query_embedding(c.id, c.user_query, unit(1, 0.1, 0))

	# Nothing has a success score yet
	assert repository.match_similar_queries(unit(1, 0, 0)) == []

	repository.update_embedding_success(a.id, 0.8)
	repository.update_embedding_success(b.id, 1.0)
	repository.update_embedding_success(c.id, 0.3)  # not strictly above min_success

	matches = repository.match_similar_queries(unit(1, 0, 0), match_threshold=0.75)
	assert [m.query_text for m in matches] == ["fitness creators"]
	assert matches[0].output_structure.niche == ["fitness"]
	assert matches[0].similarity == pytest.approx(1.0, abs=1e-5)

	matches = repository.match_similar_queries(unit(1, 0, 0), match_threshold=0.7)
	assert [m.query_text for m in matches] == ["fitness creators", "tech creators"]

	matches = repository.match_similar_queries(unit(1, 0, 0), match_threshold=0.7, exclude_session_id=a.id)
	assert [m.query_text for m in matches] == ["tech creators"]

	matches = repository.match_similar_queries(unit(1, 0, 0), match_threshold=0.7, match_count=1)
	assert len(matches) == 1


def test_learned_pattern_preferred_as_output_structure(repository: SearchRepository):
	s = repository.create_session("beauty creators", parsed_filters=FilterModel(niche=["beauty"]))
	repository.add_query_embedding(s.id, s.user_query, unit(0, 1))
	repository.update_embedding_success(s.id, 0.9)
	repository.add_learned_pattern("beauty creators", FilterModel(niche=["beauty"], platform=["Instagram"]))

	matches = repository.match_similar_queries(unit(0, 1))
	assert matches[0].output_structure.platform == ["Instagram"]


def test_top_learned_patterns_order_and_usage(repository: SearchRepository):
	low = repository.add_learned_pattern("low", FilterModel(), confidence_score=0.4)
	old = repository.add_learned_pattern("old", FilterModel(), confidence_score=0.8)
	new = repository.add_learned_pattern("new", FilterModel(), confidence_score=0.8)
	best = repository.add_learned_pattern("best", FilterModel(), confidence_score=0.95)

	top = repository.top_learned_patterns(limit=3, min_confidence=0.5)
	assert [p.input_text for p in top][0] == "best"
	assert {p.id for p in top} == {best.id, old.id, new.id}
	assert low.id not in {p.id for p in top}

	repository.mark_patterns_used([best.id])
	assert repository.patterns[best.id].usage_count == 2
	assert repository.patterns[best.id].last_used_at is not None


def test_vector_store_rejects_dimension_mismatch():
	store = QueryVectorStore(embedding_dimension=3)
	store.add("e1", unit(1, 0, 0))
	with pytest.raises(ValueError):
		store.add("e2", unit(1, 0))
	with pytest.raises(KeyError):
		store.update_success("missing", 0.5)
	assert QueryVectorStore().search(unit(1, 0)) == []


def test_vector_store_remove_keeps_rows_aligned():
	store = QueryVectorStore()
	store.add("e1", unit(1, 0, 0))
	store.add("e2", unit(0, 1, 0))
	store.add("e3", unit(0, 0, 1))
	store.remove("e2")
	assert store.size() == 2
	assert store.embedding_ids == ["e1", "e3"]
	assert store.search(unit(0, 0, 1), top_k=1)[0][0] == "e3"
	with pytest.raises(KeyError):
		store.remove("e2")


def test_new_embedding_replaces_session_row(repository: SearchRepository):
	s = repository.create_session("fitness creators")
	first = repository.add_query_embedding(s.id, "fitness creators", unit(1, 0))
	second = repository.add_query_embedding(s.id, "fitness creators on instagram", unit(1, 1))

	assert first.id not in repository.embeddings
	assert list(repository.embeddings) == [second.id]
	assert repository.vector_store.size() == 1
	assert repository.get_embedding_for_session(s.id).query_text == "fitness creators on instagram"

	repository.update_embedding_success(s.id, 0.9)
	matches = repository.match_similar_queries(unit(1, 1))
	assert [m.query_text for m in matches] == ["fitness creators on instagram"]


def test_learning_stats(repository: SearchRepository):
	empty = repository.learning_stats()
	assert empty.total_searches == 0
	assert empty.average_success_score == 0.0
	assert empty.top_queries == []

	for query, score in [
		("Fitness creators", 1.0),
		("fitness creators", 0.8),
		("tech youtubers", 0.7),  # not strictly above the top-query threshold
		("food bloggers", 0.5),  # not strictly above the success threshold
		("gaming", 0.0),
	]:
		s = repository.create_session(query)
		repository.update_session(s.id, success_score=score)
	repository.add_learned_pattern("fitness creators", FilterModel(niche=["fitness"]))

	stats = repository.learning_stats()
	assert stats.total_searches == 5
	assert stats.successful_searches == 3
	assert stats.learned_patterns == 1
	assert stats.average_success_score == pytest.approx(0.6)
	assert stats.top_queries == [("fitness creators", 2)]

	assert repository.learning_stats(top_query_threshold=0.6).top_queries == [("fitness creators", 2), ("tech youtubers", 1)]
	assert repository.learning_stats(top_query_threshold=0.6, top_n=1).top_queries == [("fitness creators", 2)]


def test_snapshot_round_trip(tmp_path, repository: SearchRepository):
	base = str(tmp_path / "store")
	s = repository.create_session("travel vloggers", parsed_filters=FilterModel(niche=["travel"]))
	repository.add_query_embedding(s.id, s.user_query, unit(0.2, 0.9, 0.1))
	repository.update_embedding_success(s.id, 0.9)
	repository.add_learned_pattern("travel vloggers", FilterModel(niche=["travel"]))

	assert not SearchRepository.exists(base)
	repository.save(base)
	assert SearchRepository.exists(base)

	loaded = SearchRepository.load(base)
	assert loaded.get_session(s.id).parsed_filters.niche == ["travel"]
	assert len(loaded.patterns) == 1
	matches = loaded.match_similar_queries(unit(0.2, 0.9, 0.1))
	assert [m.query_text for m in matches] == ["travel vloggers"]


def test_empty_snapshot_round_trip(tmp_path):
	base = str(tmp_path / "empty")
	SearchRepository().save(base)
	loaded = SearchRepository.load(base)
	assert loaded.vector_store.size() == 0


def test_retriever_stores_embedding_and_excludes_own_session(repository, settings):
	embedder = HashingEmbedder()
	retriever = SemanticRetriever(repository, embedder=embedder, settings=settings)

	first = repository.create_session("gaming streamers on twitch")
	assert retriever.retrieve_similar(first.user_query, session_id=first.id) == []
	assert repository.get_embedding_for_session(first.id) is not None
	repository.update_embedding_success(first.id, 1.0)

	second = repository.create_session("gaming streamers on twitch")
	similar = retriever.retrieve_similar(second.user_query, session_id=second.id)
	assert [sq.query_text for sq in similar] == ["gaming streamers on twitch"]
	assert repository.get_embedding_for_session(second.id).success_score == 0.0


def test_retriever_degrades_without_provider(repository, settings):
	assert SemanticRetriever(repository, embedder=None, settings=settings).retrieve_similar("q", "s") == []

	failing = SemanticRetriever(repository, embedder=HashingEmbedder(fail=True), settings=settings)
	assert failing.retrieve_similar("q", "s") == []
	assert repository.embeddings == {}


def test_build_context_leaves_usage_to_caller(repository, settings):
	pattern = repository.add_learned_pattern("vegan food bloggers", FilterModel(niche=["food"]))
	retriever = SemanticRetriever(repository, embedder=None, settings=settings)
	context = retriever.build_context("vegan recipes")
	assert [p.id for p in context.learned_patterns] == [pattern.id]
	assert repository.patterns[pattern.id].usage_count == 1

	retriever.mark_used(context)
	assert repository.patterns[pattern.id].usage_count == 2
	assert repository.patterns[pattern.id].last_used_at is not None
