"""
Feedback and learning loop.
Records user interactions against a search session, rescores the session, and promotes
successful (query -> filters) pairs into learned patterns for future retrieval.
"""

from dataclasses import replace
from enum import Enum
from typing import Optional, Union

from loguru import logger

from .config import Settings, settings as default_settings
from .models import LearnedPattern, LearningStats, SearchSession
from .repository import SearchRepository
from .schemas import FilterModel
from .scoring import SuccessScorer


class FeedbackAction(str, Enum):
	CLICK = "click"
	OUTREACH = "outreach"
	SAVE = "save"
	REFINE_SEARCH = "refine_search"
	VIEW_RESULTS = "view_results"


_ENGAGEMENT_ACTIONS = {FeedbackAction.CLICK, FeedbackAction.OUTREACH, FeedbackAction.SAVE}


class FeedbackLoop:
	"""Scores search sessions from user behaviour and learns from the successful ones."""

	def __init__(
		self,
		repository: SearchRepository,
		settings: Optional[Settings] = None,
		scorer: Optional[SuccessScorer] = None,
	):
		self.repository = repository
		self.settings = settings or default_settings
		self.scorer = scorer or SuccessScorer(
			click_weight=self.settings.CLICK_WEIGHT,
			no_refine_weight=self.settings.NO_REFINE_WEIGHT,
			results_weight=self.settings.RESULTS_WEIGHT,
		)

	def record_feedback(
		self,
		session_id: str,
		action: Union[FeedbackAction, str],
		creator_id: Optional[str] = None,
		results_count: Optional[int] = None,
		session_duration_seconds: Optional[int] = None,
	) -> Optional[float]:
		"""
		Apply one feedback event to a session and return its recomputed success score.
		Returns None when there is no session to update. Storage failures are logged
		and swallowed; an unknown action raises ValueError.
		"""
		action = FeedbackAction(action)  # ValueError for unknown actions
		if not session_id:
			return None

		session = self.repository.get_session(session_id)
		if session is None:
			logger.warning(f"[Feedback] Unknown session {session_id}, ignoring '{action.value}'")
			return None

		logger.debug(f"[Feedback] Session {session_id} | action={action.value} | creator={creator_id}")

		# Interaction log (view_results is a page view, not a creator interaction)
		if creator_id and action != FeedbackAction.VIEW_RESULTS:
			try:
				self.repository.add_interaction(session_id, creator_id, action.value)
			except Exception as e:
				logger.warning(f"[Feedback] Could not record interaction for session {session_id}: {e}")

		updates = {}
		if action in _ENGAGEMENT_ACTIONS:
			updates["user_clicked_results"] = True
		if action == FeedbackAction.REFINE_SEARCH:
			updates["user_refined_search"] = True
		if results_count is not None:
			updates["results_count"] = max(int(results_count), 0)
		if session_duration_seconds is not None:
			updates["session_duration_seconds"] = max(int(session_duration_seconds), 0)

		# Score the accumulated evidence, not just this event
		success_score = self.scorer.score(replace(session, **updates))
		updates["success_score"] = success_score

		try:
			self.repository.update_session(session_id, **updates)
		except Exception as e:
			logger.warning(f"[Feedback] Could not update session {session_id}: {e}")

		if success_score > self.settings.EMBEDDING_UPDATE_THRESHOLD:
			try:
				self.repository.update_embedding_success(session_id, success_score)
			except Exception as e:
				logger.warning(f"[Feedback] Could not update query embedding for session {session_id}: {e}")

		logger.info(f"[Feedback] Session {session_id} scored {success_score:.2f} after '{action.value}'")
		return success_score

	def should_learn(self, session: SearchSession) -> bool:
		"""Caller rule for promotion: enough results and no refinement."""
		return session.results_count > self.settings.LEARN_MIN_RESULTS and not session.user_refined_search

	def learn_from_success(self, session_id: str, query: str, filters: FilterModel) -> Optional[LearnedPattern]:
		"""
		Store the (query -> filters) pair as a new learned pattern. Always inserts;
		near-duplicates are left to confidence/recency ranking at retrieval time.
		"""
		if not session_id:
			return None
		try:
			pattern = self.repository.add_learned_pattern(
				input_text=query,
				output_structure=filters,
				confidence_score=self.settings.LEARNED_CONFIDENCE,
			)
		except Exception as e:
			logger.warning(f"[Feedback] Failed to learn from session {session_id}: {e}")
			return None
		logger.info(f"[Feedback] Success pattern learned: '{query}'")
		return pattern

	def learning_stats(self) -> LearningStats:
		return self.repository.learning_stats(
			success_threshold=self.settings.STATS_SUCCESS_THRESHOLD,
			top_query_threshold=self.settings.STATS_TOP_QUERY_THRESHOLD,
			top_n=self.settings.STATS_TOP_QUERIES,
		)
