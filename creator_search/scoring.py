"""
Scoring module.
Turns the user signals accumulated on a search session into a single success score.
"""

from .models import SearchSession


class SuccessScorer:
	"""
	Computes a session's success score from its accumulated flags:
	- clicked results (click / outreach / save observed)
	- no refinement needed (the first answer was good enough)
	- at least one result shown
	The score is always recomputed from the full flag set, so repeating a
	feedback event never double-counts.
	"""

	def __init__(
		self,
		click_weight: float = 0.5,
		no_refine_weight: float = 0.3,
		results_weight: float = 0.2,
	):
		self.click_weight = click_weight
		self.no_refine_weight = no_refine_weight
		self.results_weight = results_weight

	def score(self, session: SearchSession) -> float:
		return self.compute(
			clicked=session.user_clicked_results,
			refined=session.user_refined_search,
			results_count=session.results_count,
		)

	def compute(self, clicked: bool, refined: bool, results_count: int) -> float:
		"""
		Combine the signals into a single score (0..1).
		"""
		score = 0.0
		if clicked:
			score += self.click_weight
		if not refined:
			score += self.no_refine_weight
		if (results_count or 0) > 0:
			score += self.results_weight
		# Clamp; round away float noise so 0.5 + 0.3 + 0.2 is exactly 1.0
		return round(max(0.0, min(1.0, score)), 6)
