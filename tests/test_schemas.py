"""
Tests for the FilterModel schema and the settings object.
"""

import pytest
from pydantic import ValidationError

from creator_search.config import Settings
from creator_search.schemas import FilterModel, IntRange


def test_terms_are_deduplicated():
	f = FilterModel(niche=[" Fitness", "fitness", "", "Tech"], platform="YouTube")
	assert f.niche == ["Fitness", "Tech"]
	assert f.platform == ["YouTube"]


def test_range_validation():
	with pytest.raises(ValidationError):
		IntRange(min=200, max=100)
	with pytest.raises(ValidationError):
		IntRange(min=-1)
	assert IntRange(min=500, max=0).contains(10 ** 9)  # 0 max is open
	assert not IntRange(min=500).contains(499)


def test_json_shape_and_nulls():
	f = FilterModel.model_validate({"priceRange": {"min": 0, "max": 1000}, "followers": None, "verified": None})
	assert f.price_range.max == 1000
	assert f.followers.is_open()
	assert f.active_dimensions() == ["priceRange"]

	data = f.to_json_dict()
	assert set(data) == {"platform", "followers", "engagement", "niche", "location", "priceRange", "verified"}
	assert FilterModel.model_validate(data) == f


def test_missing_keys_equal_empty():
	assert FilterModel.model_validate({}) == FilterModel()
	assert FilterModel().is_empty()
	assert not FilterModel(verified=False).is_empty()


def test_settings_llm_key_fallback():
	s = Settings(_env_file=None, LLM_API_KEY=None, DEEPSEEK_API_KEY="sk-deepseek")
	assert s.LLM_API_KEY == "sk-deepseek"
	s = Settings(_env_file=None, LLM_API_KEY="sk-generic", DEEPSEEK_API_KEY="sk-deepseek")
	assert s.LLM_API_KEY == "sk-generic"
