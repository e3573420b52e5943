"""
Query parsing module.
Deterministic keyword/regex extraction of creator filters from natural language queries.
Used whenever the LLM path is unavailable or fails, so it has no external dependencies and never raises.
"""

import re  # regex for follower-count extraction
from typing import List, Optional, Tuple  # type annotations

from loguru import logger  # console logging

from .schemas import FilterModel, IntRange  # structured query representation


class FallbackParser:
	"""
	Parses natural language queries into a partial FilterModel.
	Scans fixed niche and platform vocabularies by substring and reads one
	follower-count phrase ("150k followers", "2m subs") into a loose range.
	"""

	NICHES: Tuple[str, ...] = (
		"fitness", "tech", "fashion", "food", "travel", "lifestyle", "business", "beauty",
		"gaming", "music", "education", "health", "sports", "comedy", "parenting",
	)
	PLATFORMS: Tuple[str, ...] = (
		"instagram", "youtube", "tiktok", "twitter", "linkedin",
		"facebook", "twitch", "pinterest", "snapchat",
	)

	# "150k followers", "2.5m subs", "50000 subscribers", "150,000 followers"
	RE_FOLLOWERS = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+(?:\.\d+)?)\s*(k|m)?\s+(?:followers|subscribers|subs)\b", re.I)

	# Loose band around the stated count; a heuristic, not an exact bound
	FOLLOWER_BAND_BELOW = 10000
	FOLLOWER_BAND_ABOVE = 50000

	def parse(self, query: Optional[str]) -> FilterModel:
		"""Main entry: produce a FilterModel from a raw string. Never raises."""
		if not query or not query.strip():  # empty input guard
			return FilterModel()

		q = query.strip().lower()  # normalize spaces and casing
		logger.debug(f"[Parser] Input query: '{query}' -> normalized: '{q}'")

		niches = self._extract_terms(q, self.NICHES)
		platforms = self._extract_terms(q, self.PLATFORMS)
		try:
			followers = self._extract_followers(q)
		except (ValueError, OverflowError) as e:  # absurd counts drop only the follower band
			logger.warning(f"[Parser] Ignoring unusable follower count: {e}")
			followers = None
		parsed = FilterModel(niche=niches, platform=platforms, followers=followers or IntRange())

		logger.debug(
			f"[Parser] Parsed result | niche={parsed.niche} | platform={parsed.platform} | followers={parsed.followers}"
		)
		return parsed

	def _extract_terms(self, q: str, vocabulary: Tuple[str, ...]) -> List[str]:
		# Substring containment, so "youtubers" still yields "youtube"
		found = [term for term in vocabulary if term in q]
		if found:
			logger.debug(f"[Parser] Vocabulary hits: {found}")
		return found

	def _extract_followers(self, q: str) -> Optional[IntRange]:
		m = self.RE_FOLLOWERS.search(q)
		if not m:
			logger.debug("[Parser] No follower count found")
			return None

		count = float(m.group(1).replace(",", ""))
		suffix = (m.group(2) or "").lower()
		if suffix == "k":
			count *= 1000
		elif suffix == "m":
			count *= 1000000
		count = int(count)

		res = IntRange(
			min=max(count - self.FOLLOWER_BAND_BELOW, 0),
			max=count + self.FOLLOWER_BAND_ABOVE,
		)
		logger.debug(f"[Parser] Found follower phrase '{m.group(0)}' -> {count} -> range ({res.min}, {res.max})")
		return res

	def search_term_for(self, query: Optional[str], filters: FilterModel) -> str:
		"""
		Free-text term to pair with fallback filters. When the parser recognised anything the
		filters carry the meaning; otherwise keep the raw text so name lookups ("Alex") still work.
		"""
		if not query or not filters.is_empty():
			return ""
		return query.strip()


_default_parser = FallbackParser()


def parse_basic(query: Optional[str]) -> FilterModel:
	"""Module-level shortcut for the deterministic fallback parser."""
	return _default_parser.parse(query)
