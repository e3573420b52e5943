"""
Creator filter engine.
Applies a FilterModel and a free-text search term to an in-memory creator list.
Both functions are pure: they never mutate their inputs and preserve input order.
"""

from typing import Iterable, List

from loguru import logger  # console logging

from .models import Creator  # creator profile
from .schemas import FilterModel  # structured query


def _fuzzy_contains(a: str, b: str) -> bool:
	# Case-insensitive substring match in either direction
	a, b = a.strip().lower(), b.strip().lower()
	if not a or not b:
		return False
	return a in b or b in a


def _matches_any(values: Iterable[str], requested: Iterable[str]) -> bool:
	return any(_fuzzy_contains(v, r) for v in values for r in requested)


def creator_matches(creator: Creator, filters: FilterModel) -> bool:
	"""Return True when a creator satisfies every active filter dimension."""
	# Platform: creator must be on at least one requested platform
	if filters.platform:
		creator_platforms = {p.lower() for p in creator.platforms}
		if not any(p.lower() in creator_platforms for p in filters.platform):
			return False

	# Numeric ranges (0 bound = open)
	if not filters.followers.contains(creator.followers):
		return False
	if not filters.engagement.contains(creator.engagement_rate):
		return False
	if not filters.price_range.contains(creator.rates.post):
		return False

	# Niche: any creator niche fuzzily matches any requested niche
	if filters.niche and not _matches_any(creator.niche, filters.niche):
		return False

	# Location: OR across requested terms
	if filters.location and not _matches_any([creator.location or ""], filters.location):
		return False

	# Verified: only a non-null constraint applies
	if filters.verified is not None and creator.verified != filters.verified:
		return False

	return True


def apply_filters(creators: List[Creator], filters: FilterModel) -> List[Creator]:
	"""Keep the creators that satisfy the structured filters."""
	if filters.is_empty():
		return list(creators)
	filtered = [c for c in creators if creator_matches(c, filters)]
	logger.debug(f"[Filters] Applied {filters.active_dimensions()} | kept {len(filtered)} of {len(creators)}")
	return filtered


def _searchable_fields(creator: Creator) -> List[str]:
	fields = [creator.name or "", creator.username or "", creator.location or ""]
	fields.extend(creator.niche)
	fields.extend(creator.platforms)
	return [f.lower() for f in fields]


def apply_search(creators: List[Creator], term: str) -> List[Creator]:
	"""
	Free-text match across name, username, location, niches and platforms.
	The whole term matching any field is enough. When the term holds two or more
	words longer than two characters, a creator also matches if every such word
	hits at least one field (possibly different fields per word).
	"""
	if not term or not term.strip():
		logger.debug(f"[Filters] No search term, returning all {len(creators)} creators")
		return list(creators)

	needle = term.strip().lower()
	words = [w for w in needle.split() if len(w) > 2]
	multi_word = len(words) >= 2

	filtered: List[Creator] = []
	for creator in creators:
		fields = _searchable_fields(creator)
		if any(needle in f for f in fields):
			filtered.append(creator)
			continue
		if multi_word and all(any(w in f for f in fields) for w in words):
			filtered.append(creator)

	logger.debug(f"[Filters] Search term '{term}' kept {len(filtered)} of {len(creators)}")
	return filtered
