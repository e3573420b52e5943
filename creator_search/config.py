"""
Configuration module.
Reads settings from environment variables (and an optional .env file) and sets up logging.
"""

import sys  # stderr sink for loguru
from typing import Optional  # optional credentials

from loguru import logger  # console logging
from pydantic import model_validator  # cross-field defaults
from pydantic_settings import BaseSettings, SettingsConfigDict  # env-backed settings


class Settings(BaseSettings):
	"""Application settings"""

	model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

	# App settings
	APP_NAME: str = "Creator Search API"
	VERSION: str = "1.0.0"
	DEBUG: bool = False
	LOG_LEVEL: str = "INFO"

	# Data locations
	CREATORS_PATH: str = "data/creators.jsonl"  # creator directory export (JSON Lines)
	STORE_PATH: str = "models/search_store"  # base path for the repository snapshot (no extension)

	# Embedding provider: "local" (sentence-transformers), "openai" or "none"
	EMBEDDING_BACKEND: str = "local"
	EMBED_MODEL: str = "all-MiniLM-L6-v2"
	OPENAI_API_KEY: Optional[str] = None
	OPENAI_BASE_URL: Optional[str] = None
	OPENAI_EMBED_MODEL: str = "text-embedding-3-small"

	# Structured-extraction LLM (any OpenAI-compatible chat endpoint)
	LLM_API_KEY: Optional[str] = None
	DEEPSEEK_API_KEY: Optional[str] = None
	LLM_BASE_URL: str = "https://api.deepseek.com/v1"
	LLM_MODEL: str = "deepseek-chat"
	LLM_TEMPERATURE: float = 0.1
	LLM_MAX_TOKENS: int = 800
	LLM_TIMEOUT: float = 20.0

	# Semantic retrieval
	SIMILARITY_THRESHOLD: float = 0.7
	EXEMPLAR_MIN_SUCCESS: float = 0.3
	MAX_SIMILAR_QUERIES: int = 3
	MAX_LEARNED_PATTERNS: int = 3
	PATTERN_MIN_CONFIDENCE: float = 0.5

	# Feedback scoring and learning
	CLICK_WEIGHT: float = 0.5
	NO_REFINE_WEIGHT: float = 0.3
	RESULTS_WEIGHT: float = 0.2
	EMBEDDING_UPDATE_THRESHOLD: float = 0.5
	LEARNED_CONFIDENCE: float = 0.8
	LEARN_MIN_RESULTS: int = 3

	# Learning statistics
	STATS_SUCCESS_THRESHOLD: float = 0.5  # a session counts as successful above this score
	STATS_TOP_QUERY_THRESHOLD: float = 0.7  # sessions above this score feed the top-query list
	STATS_TOP_QUERIES: int = 5

	@model_validator(mode="after")
	def _default_llm_key(self) -> "Settings":
		"""Accept the provider-specific key name when the generic one is unset."""
		if not self.LLM_API_KEY and self.DEEPSEEK_API_KEY:
			self.LLM_API_KEY = self.DEEPSEEK_API_KEY
		return self


# Global settings instance
settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
	"""Route loguru output to stderr at the configured level."""
	logger.remove()
	logger.add(sys.stderr, level=(level or settings.LOG_LEVEL).upper())
