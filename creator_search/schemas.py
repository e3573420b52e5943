"""
Validated schemas for the creator search pipeline.
FilterModel is the canonical structured query; LLMExtraction is the shape we accept back from the language model.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _dedupe_terms(values) -> List[str]:
	# Strip, drop blanks and collapse case-insensitive duplicates (first spelling wins)
	if values is None:
		return []
	if isinstance(values, str):
		values = [values]
	if not isinstance(values, (list, tuple, set, frozenset)):
		raise ValueError("expected a list of strings")
	terms: List[str] = []
	seen = set()
	for value in values:
		text = str(value).strip()
		if not text or text.lower() in seen:
			continue
		seen.add(text.lower())
		terms.append(text)
	return terms


class IntRange(BaseModel):
	"""Inclusive integer range; a bound of 0 means open."""

	min: int = Field(default=0, ge=0)
	max: int = Field(default=0, ge=0)

	@model_validator(mode="after")
	def _check_order(self) -> "IntRange":
		if self.max and self.min > self.max:
			raise ValueError(f"range min ({self.min}) exceeds max ({self.max})")
		return self

	def is_open(self) -> bool:
		return self.min == 0 and self.max == 0

	def contains(self, value: float) -> bool:
		if self.min > 0 and value < self.min:
			return False
		if self.max > 0 and value > self.max:
			return False
		return True


class FloatRange(BaseModel):
	"""Inclusive float range in percentage points; a bound of 0 means open."""

	min: float = Field(default=0.0, ge=0.0)
	max: float = Field(default=0.0, ge=0.0)

	@model_validator(mode="after")
	def _check_order(self) -> "FloatRange":
		if self.max and self.min > self.max:
			raise ValueError(f"range min ({self.min}) exceeds max ({self.max})")
		return self

	def is_open(self) -> bool:
		return self.min == 0 and self.max == 0

	def contains(self, value: float) -> bool:
		if self.min > 0 and value < self.min:
			return False
		if self.max > 0 and value > self.max:
			return False
		return True


class FilterModel(BaseModel):
	"""
	Structured creator query. Every field defaults to "no constraint", so a missing key
	is the same as an empty value. List fields carry set semantics: order is irrelevant.
	"""

	model_config = ConfigDict(populate_by_name=True)

	platform: List[str] = Field(default_factory=list)
	followers: IntRange = Field(default_factory=IntRange)
	engagement: FloatRange = Field(default_factory=FloatRange)
	niche: List[str] = Field(default_factory=list)
	location: List[str] = Field(default_factory=list)
	price_range: IntRange = Field(default_factory=IntRange, alias="priceRange")
	verified: Optional[bool] = None

	@field_validator("platform", "niche", "location", mode="before")
	@classmethod
	def _normalize_terms(cls, v):
		return _dedupe_terms(v)

	@field_validator("followers", "engagement", "price_range", mode="before")
	@classmethod
	def _none_is_open(cls, v):
		# JSON null for a range means "no constraint"
		return {} if v is None else v

	def active_dimensions(self) -> List[str]:
		"""Names of the dimensions that actually constrain the result set."""
		active = []
		if self.platform:
			active.append("platform")
		if not self.followers.is_open():
			active.append("followers")
		if not self.engagement.is_open():
			active.append("engagement")
		if self.niche:
			active.append("niche")
		if self.location:
			active.append("location")
		if not self.price_range.is_open():
			active.append("priceRange")
		if self.verified is not None:
			active.append("verified")
		return active

	def is_empty(self) -> bool:
		return not self.active_dimensions()

	def to_json_dict(self) -> dict:
		"""Camel-cased plain dict, the form used in prompts and HTTP payloads."""
		return self.model_dump(mode="json", by_alias=True)


class OwnerRef(BaseModel):
	"""Who owns a search session: an authenticated user or a guest browser session, never both."""

	user_id: Optional[str] = Field(default=None, alias="userId")
	guest_user_id: Optional[str] = Field(default=None, alias="guestUserId")

	model_config = ConfigDict(populate_by_name=True)

	@model_validator(mode="after")
	def _exactly_one(self) -> "OwnerRef":
		if bool(self.user_id) == bool(self.guest_user_id):
			raise ValueError("exactly one of user_id or guest_user_id must be set")
		return self


class Comparison(BaseModel):
	"""Numeric comparison emitted by the LLM, e.g. {"operator": ">", "value": 50000}."""

	operator: Literal[">", "<", ">=", "<=", "="]
	value: float = Field(ge=0)

	def to_bounds(self):
		# Map the comparison onto an open-ended (min, max) pair; 0 means open
		if self.operator in (">", ">="):
			return self.value, 0
		if self.operator in ("<", "<="):
			return 0, self.value
		return self.value, self.value


class LLMFilters(BaseModel):
	"""Filter block of the LLM response. Unknown keys (collab_status etc.) are ignored."""

	model_config = ConfigDict(extra="ignore")

	platform: List[str] = Field(default_factory=list)
	niche: List[str] = Field(default_factory=list)
	country: List[str] = Field(default_factory=list)
	location: List[str] = Field(default_factory=list)
	followers: Optional[Comparison] = None
	engagement_rate: Optional[Comparison] = None
	price: Optional[Comparison] = None
	verified: Optional[bool] = None

	@field_validator("platform", "niche", "country", "location", mode="before")
	@classmethod
	def _normalize_terms(cls, v):
		return _dedupe_terms(v)


class LLMExtraction(BaseModel):
	"""Top-level JSON object the LLM must return."""

	model_config = ConfigDict(extra="ignore", populate_by_name=True)

	search_term: str = Field(default="", alias="searchTerm")
	filters: LLMFilters = Field(default_factory=LLMFilters)

	@field_validator("search_term", mode="before")
	@classmethod
	def _none_is_blank(cls, v):
		return "" if v is None else v

	def to_filter_model(self) -> FilterModel:
		"""Convert comparison operators into the canonical min/max ranges."""
		f = self.filters
		data = {
			"platform": f.platform,
			"niche": f.niche,
			"location": f.location or f.country,
			"verified": f.verified,
		}
		if f.followers is not None:
			lo, hi = f.followers.to_bounds()
			data["followers"] = {"min": int(lo), "max": int(hi)}
		if f.engagement_rate is not None:
			lo, hi = f.engagement_rate.to_bounds()
			data["engagement"] = {"min": float(lo), "max": float(hi)}
		if f.price is not None:
			lo, hi = f.price.to_bounds()
			data["price_range"] = {"min": int(lo), "max": int(hi)}
		return FilterModel(**data)
