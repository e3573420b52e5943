"""
FastAPI server exposing the creator search API.
Endpoints:
- GET /health: basic health check
- POST /search: natural-language query -> filters, session id and matching creators
- POST /feedback: record a user interaction against a search session
- POST /learn: promote a successful query into a learned pattern
- POST /filter: apply explicit filters and a search term to the creator directory
- GET /stats: learning-loop figures (success counts, learned patterns, top queries)

Startup loads the creator directory and a saved repository snapshot if one exists
(settings.STORE_PATH); shutdown writes the snapshot back.
"""

# Import standard libraries for timing
import time  # measure startup and request latencies
from typing import List, Optional  # precise typing for clarity

# Import FastAPI for building the web API and Pydantic for request/response models
from fastapi import FastAPI, HTTPException  # FastAPI primitives
from pydantic import BaseModel, ConfigDict, Field, ValidationError  # schema definitions

# Import our internal modules for data loading, search and feedback
from creator_search.config import configure_logging, settings  # env-backed settings
from creator_search.data_loader import CreatorLoader  # loads and normalizes creators
from creator_search.feedback import FeedbackAction  # accepted feedback actions
from creator_search.filter_engine import apply_filters, apply_search  # local filtering
from creator_search.models import Creator  # creator record
from creator_search.repository import SearchRepository  # session / pattern store
from creator_search.schemas import FilterModel, OwnerRef  # structured query, owner
from creator_search.search_engine import SearchEngine, build_search_engine  # core engine

# Import loguru for simple, structured console logging
from loguru import logger  # convenient console logger

# Instantiate the FastAPI application with metadata
app = FastAPI(title=settings.APP_NAME, version=settings.VERSION)  # web app

# Globals that hold the search engine, the creator directory and measured startup time
ENGINE: Optional[SearchEngine] = None  # will point to the initialized engine
CREATORS: List[Creator] = []  # creator directory served by /search and /filter
STARTUP_TIME_S: float = 0.0  # measures how long startup took


class CamelModel(BaseModel):
	model_config = ConfigDict(populate_by_name=True)


class SearchRequest(CamelModel):
	query: str  # natural-language query
	session_id: Optional[str] = Field(default=None, alias="sessionId")  # reuse for a browsing sequence
	user_id: Optional[str] = Field(default=None, alias="userId")  # authenticated owner
	guest_user_id: Optional[str] = Field(default=None, alias="guestUserId")  # anonymous owner
	limit: int = Field(default=50, ge=1, le=500)  # max creators returned


class CreatorOut(CamelModel):
	id: str
	name: str
	username: str
	location: str
	niche: List[str]
	platforms: List[str]
	followers: int
	engagement_rate: float = Field(alias="engagementRate")
	post_rate: int = Field(alias="postRate")
	verified: bool
	avatar: Optional[str] = None


class SimilarQueryOut(CamelModel):
	query: str
	similarity: float
	success_score: float = Field(alias="successScore")


class SearchResponse(CamelModel):
	query: str
	search_term: str = Field(alias="searchTerm")
	filters: dict  # camel-cased FilterModel
	session_id: str = Field(alias="sessionId")
	strategy: str  # "llm" or "fallback"
	similar_queries: List[SimilarQueryOut] = Field(alias="similarQueries")
	total: int  # matches before the limit
	elapsed_ms: float = Field(alias="elapsedMs")
	results: List[CreatorOut]


class FeedbackRequest(CamelModel):
	session_id: str = Field(alias="sessionId")
	action: FeedbackAction
	creator_id: Optional[str] = Field(default=None, alias="creatorId")
	results_count: Optional[int] = Field(default=None, alias="resultsCount", ge=0)
	session_duration_seconds: Optional[int] = Field(default=None, alias="sessionDurationSeconds", ge=0)


class LearnRequest(CamelModel):
	session_id: str = Field(alias="sessionId")
	query: str
	filters: FilterModel


class TopQueryOut(CamelModel):
	query: str
	count: int


class StatsResponse(CamelModel):
	total_searches: int = Field(alias="totalSearches")
	successful_searches: int = Field(alias="successfulSearches")
	learned_patterns: int = Field(alias="learnedPatterns")
	average_success_score: float = Field(alias="averageSuccessScore")
	top_queries: List[TopQueryOut] = Field(alias="topQueries")


class FilterRequest(CamelModel):
	search_term: str = Field(default="", alias="searchTerm")
	filters: FilterModel = Field(default_factory=FilterModel)
	limit: int = Field(default=50, ge=1, le=500)


def _creator_out(c: Creator) -> CreatorOut:
	return CreatorOut(
		id=c.id,
		name=c.name,
		username=c.username,
		location=c.location,
		niche=c.niche,
		platforms=c.platforms,
		followers=c.followers,
		engagement_rate=c.engagement_rate,
		post_rate=c.rates.post,
		verified=c.verified,
		avatar=c.avatar,
	)


def _owner(req: SearchRequest) -> Optional[OwnerRef]:
	if not req.user_id and not req.guest_user_id:
		return None
	try:
		return OwnerRef(user_id=req.user_id, guest_user_id=req.guest_user_id)
	except ValidationError:
		raise HTTPException(status_code=422, detail="Provide exactly one of userId or guestUserId")


def _require_engine() -> SearchEngine:
	if ENGINE is None:  # engine must be ready to serve
		logger.warning("[API] Request received but engine not initialized")
		raise HTTPException(status_code=503, detail="Search engine not initialized")
	return ENGINE


# FastAPI startup hook to initialize the search engine once
@app.on_event("startup")
async def startup_event():
	"""Load creators and the saved repository snapshot, then wire the engine."""
	global ENGINE, CREATORS, STARTUP_TIME_S  # refer to module-level globals
	start = time.time()  # start timer for startup latency
	configure_logging()

	logger.info("[API] Startup: loading creators and initializing engine...")

	try:
		CREATORS = CreatorLoader().load_creators_from_jsonl(settings.CREATORS_PATH)
	except FileNotFoundError as e:
		logger.warning(f"[API] {e}; serving filters without a creator directory")
		CREATORS = []

	# Reuse the learned state from the previous run when present
	snapshot_exists = SearchRepository.exists(settings.STORE_PATH)
	repository = SearchRepository.load(settings.STORE_PATH) if snapshot_exists else SearchRepository()

	ENGINE = build_search_engine(settings, repository=repository)

	STARTUP_TIME_S = time.time() - start
	mode = 'Loaded saved snapshot' if snapshot_exists else 'Started with an empty store'
	logger.info(f"[API] Startup complete in {STARTUP_TIME_S:.2f}s. {len(CREATORS)} creators. {mode}.")


@app.on_event("shutdown")
async def shutdown_event():
	"""Persist sessions, embeddings and learned patterns for the next run."""
	if ENGINE is None:
		return
	try:
		ENGINE.repository.save(settings.STORE_PATH)
	except OSError as e:
		logger.warning(f"[API] Could not save store snapshot: {e}")


# Simple health endpoint for readiness checks
@app.get("/health")
async def health():
	"""Return minimal health info for liveness and readiness checks."""
	return {
		"status": "ok",
		"engine_ready": ENGINE is not None,
		"llm_enabled": ENGINE is not None and ENGINE.extractor.is_available,
		"creators": len(CREATORS),
		"startup_seconds": round(STARTUP_TIME_S, 2),
	}


@app.post("/search", response_model=SearchResponse, response_model_by_alias=True)
def search(req: SearchRequest):
	"""Translate a query into filters, record the session and return matching creators."""
	engine = _require_engine()
	if not req.query.strip():
		raise HTTPException(status_code=400, detail="Query cannot be empty")

	start = time.time()
	logger.debug(f"[API] /search q='{req.query}' session={req.session_id}")

	outcome = engine.search(req.query, session_id=req.session_id, owner=_owner(req))
	matches = engine.find_creators(CREATORS, outcome)
	elapsed_ms = (time.time() - start) * 1000
	logger.info(f"[API] /search served {len(matches)} creators in {elapsed_ms:.2f} ms via {outcome.strategy}")

	return SearchResponse(
		query=req.query,
		search_term=outcome.search_term,
		filters=outcome.filters.to_json_dict(),
		session_id=outcome.session_id,
		strategy=outcome.strategy,
		similar_queries=[
			SimilarQueryOut(query=sq.query_text, similarity=round(sq.similarity, 3), success_score=sq.success_score)
			for sq in outcome.similar_queries
		],
		total=len(matches),
		elapsed_ms=round(elapsed_ms, 2),
		results=[_creator_out(c) for c in matches[:req.limit]],
	)


@app.post("/feedback")
def feedback(req: FeedbackRequest):
	"""Record one interaction; returns the session's recomputed success score (null if unknown)."""
	engine = _require_engine()
	score = engine.feedback.record_feedback(
		req.session_id,
		req.action,
		creator_id=req.creator_id,
		results_count=req.results_count,
		session_duration_seconds=req.session_duration_seconds,
	)
	return {"sessionId": req.session_id, "successScore": score}


@app.post("/learn")
def learn(req: LearnRequest):
	"""Store a successful (query -> filters) pair as a learned pattern."""
	engine = _require_engine()
	pattern = engine.feedback.learn_from_success(req.session_id, req.query, req.filters)
	return {"learned": pattern is not None, "patternId": pattern.id if pattern else None}


@app.post("/filter")
def filter_creators(req: FilterRequest):
	"""Apply an explicit term and filters to the creator directory without recording a session."""
	matches = apply_filters(apply_search(CREATORS, req.search_term), req.filters)
	return {
		"total": len(matches),
		"results": [_creator_out(c).model_dump(by_alias=True) for c in matches[:req.limit]],
	}


@app.get("/stats", response_model=StatsResponse, response_model_by_alias=True)
def stats():
	"""Summarize the learning loop over every recorded session."""
	engine = _require_engine()
	s = engine.feedback.learning_stats()
	logger.debug(f"[API] /stats sessions={s.total_searches} patterns={s.learned_patterns}")
	return StatsResponse(
		total_searches=s.total_searches,
		successful_searches=s.successful_searches,
		learned_patterns=s.learned_patterns,
		average_success_score=round(s.average_success_score, 3),
		top_queries=[TopQueryOut(query=q, count=n) for q, n in s.top_queries],
	)
