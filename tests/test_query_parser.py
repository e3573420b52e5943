"""
Unit tests for FallbackParser: vocabularies, follower phrases and totality.
"""

from creator_search.query_parser import FallbackParser, parse_basic
from creator_search.schemas import FilterModel


def assert_equal(actual, expected, msg):
	if actual != expected:
		raise AssertionError(f"{msg} | expected={expected}, actual={actual}")


def test_empty_query(parser: FallbackParser):
	assert_equal(parser.parse(""), FilterModel(), "empty string")
	assert_equal(parser.parse("   "), FilterModel(), "whitespace")
	assert_equal(parser.parse(None), FilterModel(), "None")


def test_youtubers_with_follower_count(parser: FallbackParser):
	pf = parser.parse("YouTubers from US with 150k followers")
	assert_equal(pf.platform, ["youtube"], "platform substring")
	assert_equal((pf.followers.min, pf.followers.max), (140000, 200000), "150k band")
	assert_equal(pf.niche, [], "no niche")


def test_niche_and_platform(parser: FallbackParser):
	pf = parser.parse("Fitness influencers on Instagram")
	assert_equal(pf.niche, ["fitness"], "niche")
	assert_equal(pf.platform, ["instagram"], "platform")
	assert pf.followers.is_open()


def test_follower_suffixes(parser: FallbackParser):
	pf = parser.parse("gaming streamers with 2.5m subs")
	assert_equal((pf.followers.min, pf.followers.max), (2490000, 2550000), "2.5m band")

	pf = parser.parse("creators with 5000 subscribers")
	assert_equal((pf.followers.min, pf.followers.max), (0, 55000), "lower bound clamps at 0")

	pf = parser.parse("creators with lots of followers")
	assert pf.followers.is_open()


def test_multiple_terms(parser: FallbackParser):
	pf = parser.parse("food and travel creators on tiktok or youtube")
	assert_equal(set(pf.niche), {"food", "travel"}, "two niches")
	assert_equal(set(pf.platform), {"tiktok", "youtube"}, "two platforms")


def test_search_term_pairing(parser: FallbackParser):
	pf = parser.parse("fitness creators")
	assert_equal(parser.search_term_for("fitness creators", pf), "", "filters carry the meaning")

	pf = parser.parse("  Sarah Johnson ")
	assert pf.is_empty()
	assert_equal(parser.search_term_for("  Sarah Johnson ", pf), "Sarah Johnson", "raw text kept")


def test_parse_basic_is_total():
	for q in ["", "🔥🔥", "9999999999999999999k followers", "a" * 5000, "subs followers 12 k"]:
		assert isinstance(parse_basic(q), FilterModel)


def test_parse_basic_matches_parser(parser: FallbackParser):
	q = "beauty creators on instagram with 80k followers"
	assert_equal(parse_basic(q), parser.parse(q), "module shortcut")


def test_comma_grouped_follower_count(parser: FallbackParser):
	pf = parser.parse("fitness creators with 150,000 followers")
	assert_equal((pf.followers.min, pf.followers.max), (140000, 200000), "150,000 band")

	pf = parser.parse("youtubers with 1,250,000 subscribers")
	assert_equal((pf.followers.min, pf.followers.max), (1240000, 1300000), "1,250,000 band")


def test_comma_grouped_count_keeps_matching_creator(parser: FallbackParser):
	from creator_search.filter_engine import apply_filters
	from conftest import make_creator

	target = make_creator("1", ["fitness"], followers=150000)
	kept = apply_filters([target], parser.parse("fitness creators with 150,000 followers"))
	assert_equal([c.id for c in kept], ["1"], "creator at the stated count survives")


def test_unusable_follower_count_keeps_vocabulary_hits(parser: FallbackParser):
	pf = parser.parse("fitness creators on instagram with " + "9" * 400 + " followers")
	assert_equal(pf.niche, ["fitness"], "niche survives")
	assert_equal(pf.platform, ["instagram"], "platform survives")
	assert pf.followers.is_open()
