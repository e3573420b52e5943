"""
Data models for the creator search pipeline.
Defines the records that flow through search, feedback and learning.
"""

# Import dataclass to define simple "record-like" classes without boilerplate
from dataclasses import dataclass, field  # auto-generates __init__, __repr__, etc.
from datetime import datetime, timezone  # UTC timestamps for persisted records
from typing import List, Optional, Tuple  # lists, optional values, pairs
import uuid  # record identifiers

import numpy as np  # embedding vectors

from .schemas import FilterModel  # validated structured query


PATTERN_SUCCESSFUL_QUERY = "successful_query"  # only learned-pattern type in use


def new_id() -> str:
	"""Fresh string id for a stored record."""
	return str(uuid.uuid4())


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass
class CreatorRates:
	post: int = 0  # price per feed post
	story: int = 0  # price per story


@dataclass
class Creator:
	"""
	A discoverable creator profile from the creator directory.
	The search pipeline only reads these.
	"""
	id: str  # unique identifier (string for consistency)
	name: str  # display name
	username: str  # social handle without the leading '@'
	location: str  # country or city as listed in the directory
	niche: List[str]  # content categories, e.g. ["fitness", "lifestyle"]
	platforms: List[str]  # e.g. ["Instagram", "YouTube"]
	followers: int  # total audience size
	engagement_rate: float  # engagement in percentage points (4.2 means 4.2%)
	rates: CreatorRates = field(default_factory=CreatorRates)  # pricing
	verified: bool = False  # platform verification badge
	avatar: Optional[str] = None  # optional image URL for the UI


@dataclass
class SearchSession:
	"""
	One logical search attempt: the query, the filters it produced and the
	user signals observed afterwards. Mutated in place by feedback events.
	"""
	id: str
	user_query: str
	parsed_filters: FilterModel = field(default_factory=FilterModel)
	results_count: int = 0
	user_clicked_results: bool = False
	user_refined_search: bool = False
	session_duration_seconds: Optional[int] = None
	success_score: float = 0.0  # recomputed by the feedback loop, always in [0, 1]
	user_id: Optional[str] = None  # authenticated owner
	guest_user_id: Optional[str] = None  # anonymous browser session owner
	created_at: datetime = field(default_factory=utcnow)
	updated_at: datetime = field(default_factory=utcnow)


@dataclass
class QueryEmbedding:
	id: str
	session_id: str  # session that produced the query
	query_text: str
	embedding: np.ndarray  # normalized query vector
	success_score: float = 0.0  # back-filled by the feedback loop
	created_at: datetime = field(default_factory=utcnow)


@dataclass
class LearnedPattern:
	"""A (query -> filters) pair promoted after a successful session, reused as a few-shot example."""
	id: str
	input_text: str
	output_structure: FilterModel
	pattern_type: str = PATTERN_SUCCESSFUL_QUERY
	confidence_score: float = 0.8
	usage_count: int = 1
	last_used_at: Optional[datetime] = None
	created_at: datetime = field(default_factory=utcnow)


@dataclass
class SearchInteraction:
	id: str
	session_id: str
	creator_id: str
	interaction_type: str  # click / outreach / save / refine_search
	interaction_timestamp: datetime = field(default_factory=utcnow)


@dataclass
class SimilarQuery:
	"""A past successful query surfaced by semantic retrieval."""
	query_text: str
	output_structure: FilterModel
	success_score: float
	similarity: float


@dataclass
class SearchOutcome:
	"""What a search call hands back to its caller, whichever strategy produced it."""
	search_term: str  # free-text term for apply_search
	filters: FilterModel  # structured filters for apply_filters
	session_id: str  # thread into every feedback call for this browsing sequence
	strategy: str  # "llm" or "fallback"
	similar_queries: List[SimilarQuery] = field(default_factory=list)


@dataclass
class LearningStats:
	"""Aggregate view of the learning loop, computed on demand from stored sessions and patterns."""
	total_searches: int = 0
	successful_searches: int = 0
	learned_patterns: int = 0
	average_success_score: float = 0.0
	top_queries: List[Tuple[str, int]] = field(default_factory=list)  # (lower-cased query, count)
