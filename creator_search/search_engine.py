"""
Search engine module.
Turns a free-text creator query into filters: semantic retrieval for context, then an ordered
list of extraction strategies (LLM, keyword fallback) with a single degrade point.
Every search is recorded as a session so feedback can score it later.
"""

from typing import Callable, List, Optional, Tuple  # type annotations for clarity

# Import loguru for console logging
from loguru import logger  # simple structured logger

# Import project modules for data structures and components
from .config import Settings, settings as default_settings  # thresholds and credentials
from .embeddings import build_embedding_provider  # embedding provider factory
from .exceptions import ExtractionParseError, ProviderError, ProviderUnavailableError  # degrade signals
from .feedback import FeedbackLoop  # feedback / learning loop
from .filter_engine import apply_filters, apply_search  # local creator filtering
from .llm_extractor import ExtractionResult, LLMFilterExtractor  # structured extraction
from .models import Creator, SearchOutcome, new_id  # core data classes
from .query_parser import FallbackParser  # deterministic keyword parser
from .repository import SearchRepository  # session / pattern persistence
from .retrieval import RetrievalContext, SemanticRetriever  # few-shot context
from .schemas import FilterModel, OwnerRef  # structured query, session owner

Strategy = Tuple[str, Callable[[str, RetrievalContext], ExtractionResult]]


class SearchEngine:
	"""
	High-level search API combining retrieval, extraction and session bookkeeping.
	search() always returns usable filters; provider and storage failures only
	make the result weaker, never an error.
	"""
	def __init__(
		self,
		repository: SearchRepository,
		retriever: Optional[SemanticRetriever] = None,
		extractor: Optional[LLMFilterExtractor] = None,
		parser: Optional[FallbackParser] = None,
		settings: Optional[Settings] = None,
	):
		self.settings = settings or default_settings
		self.repository = repository
		self.parser = parser or FallbackParser()
		self.retriever = retriever or SemanticRetriever(repository, embedder=None, settings=self.settings)
		self.extractor = extractor or LLMFilterExtractor(settings=self.settings, parser=self.parser)
		self.feedback = FeedbackLoop(repository, settings=self.settings)

		# Ordered strategies; the last one cannot fail
		self.strategies: List[Strategy] = [
			("llm", self.extractor.try_extract),
			("fallback", self._fallback_strategy),
		]
		logger.info(f"[Engine] Ready | strategies={[name for name, _ in self.strategies]}")

	def _fallback_strategy(self, query: str, context: RetrievalContext) -> ExtractionResult:
		filters = self.parser.parse(query)
		return ExtractionResult(search_term=self.parser.search_term_for(query, filters), filters=filters)

	def _open_session(self, query: str, session_id: Optional[str], owner: Optional[OwnerRef]) -> str:
		"""Reuse the caller's session when it exists, otherwise create one."""
		if session_id and self.repository.get_session(session_id) is not None:
			try:
				self.repository.update_session(session_id, user_query=query)
			except Exception as e:
				logger.warning(f"[Engine] Could not update session {session_id}: {e}")
			return session_id

		if session_id:
			logger.debug(f"[Engine] Session {session_id} not found, starting a new one")
		try:
			return self.repository.create_session(query, owner=owner).id
		except Exception as e:
			# The search still goes ahead; feedback for this id will be ignored
			transient_id = new_id()
			logger.warning(f"[Engine] Could not create session, using transient id {transient_id}: {e}")
			return transient_id

	def resolve_filters(self, query: str, context: RetrievalContext) -> Tuple[str, ExtractionResult]:
		"""Run the strategies in order and return (strategy name, result) of the first that succeeds."""
		for name, strategy in self.strategies:
			try:
				return name, strategy(query, context)
			except ProviderUnavailableError as e:
				logger.debug(f"[Engine] Strategy '{name}' skipped: {e}")
			except (ProviderError, ExtractionParseError) as e:
				logger.warning(f"[Engine] Strategy '{name}' failed, degrading: {e}")
		# Unreachable while the fallback strategy is last; kept total for custom strategy lists
		filters = self.parser.parse(query)
		return "fallback", ExtractionResult(search_term=self.parser.search_term_for(query, filters), filters=filters)

	def search(
		self,
		query: str,
		session_id: Optional[str] = None,
		owner: Optional[OwnerRef] = None,
	) -> SearchOutcome:
		"""Translate a query into filters and record the search session."""
		if not query or not query.strip():  # empty input guard
			raise ValueError("Query cannot be empty")
		query = query.strip()
		logger.info(f"[Engine] Search '{query}' | session={session_id}")

		session_id = self._open_session(query, session_id, owner)

		# Retrieval first; the extraction strategies consume its output
		context = self.retriever.build_context(query, session_id=session_id)
		strategy, result = self.resolve_filters(query, context)
		if strategy == "llm":  # only a prompt that was actually sent counts as pattern usage
			self.retriever.mark_used(context)

		try:
			self.repository.update_session(session_id, parsed_filters=result.filters)
		except Exception as e:
			logger.warning(f"[Engine] Could not store filters on session {session_id}: {e}")

		logger.info(
			f"[Engine] '{query}' -> strategy={strategy} | filters={result.filters.active_dimensions()} "
			f"| term='{result.search_term}' | examples={len(context.similar_queries)}+{len(context.learned_patterns)}"
		)
		return SearchOutcome(
			search_term=result.search_term,
			filters=result.filters,
			session_id=session_id,
			strategy=strategy,
			similar_queries=context.similar_queries,
		)

	def extract_filters(self, query: str, context: Optional[RetrievalContext] = None) -> FilterModel:
		return self.extractor.extract_filters(query, context)

	def find_creators(self, creators: List[Creator], outcome: SearchOutcome) -> List[Creator]:
		"""Apply a search outcome to a local creator list: text search, then filters."""
		return apply_filters(apply_search(creators, outcome.search_term), outcome.filters)


def build_search_engine(
	settings: Optional[Settings] = None,
	repository: Optional[SearchRepository] = None,
) -> SearchEngine:
	"""Wire an engine from settings: embedding provider, LLM extractor and repository."""
	settings = settings or default_settings
	repository = repository or SearchRepository()
	parser = FallbackParser()
	retriever = SemanticRetriever(repository, embedder=build_embedding_provider(settings), settings=settings)
	extractor = LLMFilterExtractor(settings=settings, parser=parser)
	return SearchEngine(repository, retriever=retriever, extractor=extractor, parser=parser, settings=settings)
