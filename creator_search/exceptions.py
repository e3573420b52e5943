"""
Creator search exceptions.
Provider and parse failures are recovered inside the search pipeline; they never reach its callers.
"""


class CreatorSearchError(Exception):
	"""Base exception for the creator search package."""

	pass


class ProviderError(CreatorSearchError):
	"""An external provider (embeddings or LLM) failed to answer."""

	pass


class ProviderUnavailableError(ProviderError):
	"""The provider cannot be used at all, e.g. no credential is configured."""

	def __init__(self, provider: str, reason: str = ""):
		self.provider = provider
		self.reason = reason
		msg = f"Provider unavailable: {provider}"
		if reason:
			msg += f" (reason: {reason})"
		super().__init__(msg)


class ExtractionParseError(CreatorSearchError, ValueError):
	"""LLM output did not parse as a valid structured filter object."""

	pass


class SessionNotFoundError(CreatorSearchError, KeyError):
	"""No search session is stored under the given id."""

	def __init__(self, session_id: str):
		self.session_id = session_id
		super().__init__(f"Search session not found: {session_id}")
