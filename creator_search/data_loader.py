"""
Data loading module.
Loads the creator directory from a JSONL export and normalizes it into Creator records.
"""

# Standard libs for JSON parsing, typing, and paths
import json  # read JSON lines
from typing import Dict, List  # type hints
from pathlib import Path  # filesystem-safe paths

# Import our Creator data classes used across the project
from .models import Creator, CreatorRates  # structured creator record

# Console logging
from loguru import logger  # console logger


class CreatorLoader:
	"""
	Handles loading and normalizing creator profiles.
	Directory exports are not uniform, so a few field spellings are accepted.
	"""

	# Platform spelling mapping: lowercase variants -> display name
	PLATFORM_NAMES = {
		'instagram': 'Instagram',
		'ig': 'Instagram',
		'youtube': 'YouTube',
		'yt': 'YouTube',
		'tiktok': 'TikTok',
		'tik tok': 'TikTok',
		'twitter': 'Twitter',
		'x': 'Twitter',
		'linkedin': 'LinkedIn',
		'facebook': 'Facebook',
		'twitch': 'Twitch',
		'pinterest': 'Pinterest',
		'snapchat': 'Snapchat',
	}

	def load_creators_from_jsonl(self, filepath: str) -> List[Creator]:
		"""
		Load creators from a JSON Lines (JSONL) file where each line is one JSON object.
		Malformed lines are skipped with a warning.
		"""
		creators = []  # accumulator for parsed Creator objects
		filepath = Path(filepath)  # normalize path

		# Validate the file presence early to give clear error messages
		if not filepath.exists():
			raise FileNotFoundError(f"Creator data file not found: {filepath}")

		logger.info(f"[DataLoader] Loading creators from {filepath}...")

		with open(filepath, 'r', encoding='utf-8') as f:
			for line_num, line in enumerate(f, 1):  # line numbers for diagnostics
				if not line.strip():
					continue  # blank line
				try:
					data = json.loads(line.strip())
					creators.append(self._parse_creator_data(data))
				except json.JSONDecodeError as e:
					logger.warning(f"[DataLoader] Skipping invalid JSON at line {line_num}: {e}")
					continue
				except (KeyError, TypeError, ValueError) as e:
					logger.warning(f"[DataLoader] Error parsing creator at line {line_num}: {e}")
					continue

		logger.info(f"[DataLoader] Successfully loaded {len(creators)} creators.")
		return creators

	def _parse_creator_data(self, data: Dict) -> Creator:
		"""
		Convert a raw dictionary (from file) into a Creator.
		Accepts handle/username, country/location and engagement/engagement_rate spellings.
		"""
		if not isinstance(data, dict):
			raise TypeError(f"expected a JSON object, got {type(data).__name__}")

		creator_id = str(data.get('id') or '').strip()
		if not creator_id:
			raise ValueError("creator record has no id")

		username = str(data.get('username') or data.get('handle') or '').strip().lstrip('@')
		location = str(data.get('location') or data.get('country') or '').strip()

		rates = data.get('rates') or {}
		post_rate = rates.get('post', data.get('price', 0)) if isinstance(rates, dict) else 0
		story_rate = rates.get('story', 0) if isinstance(rates, dict) else 0

		engagement = data.get('engagement_rate', data.get('engagement', 0.0))

		return Creator(
			id=creator_id,
			name=str(data.get('name') or '').strip(),
			username=username,
			location=location,
			niche=self._parse_comma_separated(data.get('niche', data.get('niches'))),
			platforms=[self._normalize_platform(p) for p in
				self._parse_comma_separated(data.get('platforms', data.get('platform')))],
			followers=int(data.get('followers') or 0),
			engagement_rate=float(engagement or 0.0),
			rates=CreatorRates(post=int(post_rate or 0), story=int(story_rate or 0)),
			verified=bool(data.get('verified', False)),
			avatar=data.get('avatar') or data.get('avatar_url'),
		)

	def _parse_comma_separated(self, value) -> List[str]:
		"""
		Normalize a value that may be None, a list, or a comma-separated string
		into a list of clean strings.
		"""
		if value is None:
			return []
		if isinstance(value, list):
			return [str(item).strip() for item in value if item and str(item).strip()]
		if isinstance(value, str):
			return [item.strip() for item in value.split(',') if item.strip()]
		return []

	def _normalize_platform(self, platform: str) -> str:
		"""Map a raw platform name to its display form; unknown names are kept as given."""
		return self.PLATFORM_NAMES.get(platform.strip().lower(), platform.strip())
