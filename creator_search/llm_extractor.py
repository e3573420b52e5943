"""LLM structured extraction: natural-language creator query -> validated FilterModel."""

import json
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger
from openai import OpenAI
from pydantic import ValidationError

from .config import Settings, settings as default_settings
from .exceptions import ExtractionParseError, ProviderError, ProviderUnavailableError
from .query_parser import FallbackParser
from .retrieval import RetrievalContext
from .schemas import FilterModel, LLMExtraction


_FENCE = re.compile(r"```(?:json)?\s*", re.I)

SCHEMA_DESCRIPTION = """You are an AI assistant that converts natural language search queries into structured JSON filters for a creator/influencer database.

Available database fields:
- name (text): Creator's full name
- handle (text): Creator's social media handle/username
- platform (text): Social media platform (Instagram, YouTube, TikTok, Twitter, LinkedIn)
- niche (text): Content category/niche (fitness, tech, fashion, food, travel, lifestyle, business, beauty, gaming)
- country (text): Creator's location/country (United States, United Kingdom, Canada, Australia, Germany, France, India)
- followers (bigint): Number of followers
- engagement_rate (float): Engagement rate percentage
- price (bigint): Price per sponsored post
- verified (bool): Platform verification badge"""

RESPONSE_FORMAT = """Return ONLY a JSON object with this exact structure:
{
  "searchTerm": "main search keywords for text matching",
  "filters": {
    "platform": ["Instagram", "YouTube", "TikTok"] (array, only if mentioned),
    "niche": ["fitness", "tech", "fashion"] (array, only if mentioned),
    "country": ["United States", "Canada", "India"] (array, only if mentioned),
    "followers": {"operator": ">", "value": 50000} (only if mentioned, operators: >, <, >=, <=, =),
    "engagement_rate": {"operator": ">", "value": 5.0} (only if mentioned, operators: >, <, >=, <=, =),
    "price": {"operator": "<", "value": 1000} (only if mentioned, operators: >, <, >=, <=, =),
    "verified": true (only if mentioned)
  }
}

Only return the JSON object, no other text."""


@dataclass
class ExtractionResult:
	search_term: str
	filters: FilterModel


def parse_llm_response(content: Optional[str]) -> ExtractionResult:
	"""
	Strictly parse an LLM reply into an ExtractionResult.
	Markdown code fences are tolerated; anything else that is not the expected
	JSON shape raises ExtractionParseError.
	"""
	if not content or not content.strip():
		raise ExtractionParseError("empty LLM response")
	cleaned = _FENCE.sub("", content).replace("```", "").strip()
	try:
		payload = json.loads(cleaned)
	except json.JSONDecodeError as e:
		raise ExtractionParseError(f"LLM response is not JSON: {e}") from e
	if not isinstance(payload, dict):
		raise ExtractionParseError(f"LLM response is a {type(payload).__name__}, expected an object")
	try:
		extraction = LLMExtraction.model_validate(payload)
		filters = extraction.to_filter_model()
	except ValidationError as e:
		raise ExtractionParseError(f"LLM response does not match the filter schema: {e}") from e
	return ExtractionResult(search_term=extraction.search_term.strip(), filters=filters)


class LLMFilterExtractor:
	"""
	Requests structured creator filters from an OpenAI-compatible chat model.
	Learned examples from past successful searches are included as few-shot context.
	"""

	def __init__(self, settings: Optional[Settings] = None, client=None, parser: Optional[FallbackParser] = None):
		self.settings = settings or default_settings
		self.parser = parser or FallbackParser()
		self._client = client
		if self._client is None and self.settings.LLM_API_KEY:
			self._client = OpenAI(
				api_key=self.settings.LLM_API_KEY,
				base_url=self.settings.LLM_BASE_URL,
				timeout=self.settings.LLM_TIMEOUT,
			)
		logger.info(
			f"[LLM] Extractor {'ready' if self._client else 'disabled (no API key)'} | model={self.settings.LLM_MODEL}"
		)

	@property
	def is_available(self) -> bool:
		return self._client is not None

	def build_prompt(self, query: str, context: Optional[RetrievalContext] = None) -> Tuple[str, str]:
		"""Return (system prompt, user prompt)."""
		context = context or RetrievalContext()
		examples: List[str] = []
		for sq in context.similar_queries[: self.settings.MAX_SIMILAR_QUERIES]:
			examples.append(f'"{sq.query_text}" → {json.dumps(sq.output_structure.to_json_dict())}')
		patterns = sorted(context.learned_patterns, key=lambda p: p.confidence_score, reverse=True)
		for p in patterns[: self.settings.MAX_LEARNED_PATTERNS]:
			examples.append(f'"{p.input_text}" → {json.dumps(p.output_structure.to_json_dict())}')

		lines = [SCHEMA_DESCRIPTION]
		if examples:
			lines.append("")
			lines.append("Learned examples from successful searches:")
			for idx, example in enumerate(examples, start=1):
				lines.append(f"{idx}. {example}")
		lines.append("")
		lines.append(RESPONSE_FORMAT)
		return "\n".join(lines), f'Convert this search query: "{query}"'

	def _complete(self, system_prompt: str, user_prompt: str) -> str:
		try:
			response = self._client.chat.completions.create(
				model=self.settings.LLM_MODEL,
				messages=[
					{"role": "system", "content": system_prompt},
					{"role": "user", "content": user_prompt},
				],
				temperature=self.settings.LLM_TEMPERATURE,
				max_tokens=self.settings.LLM_MAX_TOKENS,
			)
			return (response.choices[0].message.content or "").strip()
		except Exception as e:
			raise ProviderError(f"LLM request failed: {e}") from e

	def try_extract(self, query: str, context: Optional[RetrievalContext] = None) -> ExtractionResult:
		"""
		One extraction attempt. Raises ProviderUnavailableError (no key, nothing sent),
		ProviderError (transport/HTTP) or ExtractionParseError (bad output).
		"""
		if self._client is None:
			raise ProviderUnavailableError("llm", "no API key configured")
		system_prompt, user_prompt = self.build_prompt(query, context)
		content = self._complete(system_prompt, user_prompt)
		logger.debug(f"[LLM] Raw response: {content}")
		result = parse_llm_response(content)
		logger.info(f"[LLM] Extracted filters {result.filters.active_dimensions()} for '{query}'")
		return result

	def extract_filters(self, query: str, context: Optional[RetrievalContext] = None) -> FilterModel:
		"""Filters for the query; any provider or parse failure yields parse_basic(query)."""
		try:
			return self.try_extract(query, context).filters
		except (ProviderError, ExtractionParseError) as e:
			logger.warning(f"[LLM] Falling back to keyword parser: {e}")
			return self.parser.parse(query)
