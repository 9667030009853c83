"""Unit tests for the rule primitives and per-field rule tables."""

import pytest

from fieldsync.rules.primitives import (
    Rule,
    clean_and_truncate,
    first_match,
    has_all,
    has_any,
    is_meaningless,
    strip_filler,
)
from fieldsync.rules.registry import (
    FIELD_RULES,
    find_destination,
    find_price,
    format_amount,
    looks_like_timeline,
    mentions_month,
)
from fieldsync.schemas.extraction import SemanticKey


class TestPrimitives:

    def test_first_match_is_ordered(self):
        rules = (
            Rule(has_all("commission", "money"), "Both"),
            Rule(has_any("commission"), "Commission"),
        )
        rule, value = first_match(rules, "Saving commission and money")
        assert value == "Both"
        assert rule is rules[0]

    def test_first_match_direct_only_skips_unflagged_rules(self):
        rules = (
            Rule(has_any("commission"), "Indirect"),
            Rule(has_any("commission"), "Direct", direct=True),
        )
        _, value = first_match(rules, "commission", direct_only=True)
        assert value == "Direct"

    def test_first_match_none(self):
        assert first_match((Rule(has_any("zzz"), "x"),), "nothing here") is None

    def test_strip_filler(self):
        assert strip_filler("Um, well, we are moving") == "we are moving"

    @pytest.mark.parametrize("text", ["Well-maintained home", "Like new condition", "Well kept yard"])
    def test_strip_filler_keeps_descriptive_words(self, text):
        assert strip_filler(text) == text

    def test_clean_and_truncate_prefers_word_boundary(self):
        assert clean_and_truncate("getting enough showings before summer ends", 30) == "getting enough showings"

    def test_clean_and_truncate_strips_edge_punctuation(self):
        assert clean_and_truncate(" , quick sale. ") == "quick sale"

    @pytest.mark.parametrize("value", ["yeah", "OK.", "i don't know", "...", ""])
    def test_meaningless(self, value):
        assert is_meaningless(value)

    def test_allowed_short_token_is_meaningful(self):
        assert not is_meaningless("Maybe.", allowed_short=frozenset({"maybe"}))


class TestPrices:

    @pytest.mark.parametrize("text,expected", [
        ("asking $1.2M for it", "$1.2M"),
        ("about 750 thousand", "$750K"),
        ("listed at $450,000", "$450K"),
        ("hoping for a million 50", "$1.05M"),
        ("2 million dollars", "$2M"),
        ("maybe 500k", "$500K"),
    ])
    def test_find_price(self, text, expected):
        assert find_price(text) == expected

    @pytest.mark.parametrize("text", ["we spoke for 23 m", "call at 5 m", "three bedrooms"])
    def test_bare_figures_are_not_prices(self, text):
        assert find_price(text) is None

    def test_format_amount(self):
        assert format_amount(1_050_000) == "$1.05M"
        assert format_amount(1_500) == "$1.5K"
        assert format_amount(950) == "$950"


class TestPlacesAndTimes:

    def test_find_destination_stops_at_punctuation(self):
        assert find_destination("They are relocating to Austin, Texas.") == "Austin"

    def test_find_destination_titles_lowercase_names(self):
        assert find_destination("we're moving to denver next year") == "Denver"

    def test_find_destination_rejects_verbs(self):
        assert find_destination("they need to move to sell fast") is None

    def test_looks_like_timeline(self):
        assert looks_like_timeline("in 6 months")
        assert looks_like_timeline("early April")
        assert not looks_like_timeline("whenever the house is ready for buyers to see it")

    @pytest.mark.parametrize("text,expected", [
        ("out by may", True),
        ("mid-May", True),
        ("sometime in June", True),
        ("the seller may consider it", False),
        ("maybe later", False),
    ])
    def test_mentions_month(self, text, expected):
        assert mentions_month(text) is expected

    def test_modal_may_is_not_a_timeline(self):
        assert not looks_like_timeline("they may sell")


class TestFieldTables:

    def test_every_question_field_has_rules(self):
        for key in (
            SemanticKey.MOTIVATION,
            SemanticKey.EXPECTATIONS,
            SemanticKey.DISAPPOINTMENTS,
            SemanticKey.CONCERNS,
            SemanticKey.NEXT_DESTINATION,
            SemanticKey.TIMELINE,
            SemanticKey.ASKING_PRICE,
            SemanticKey.OPENNESS_TO_RELIST,
        ):
            assert FIELD_RULES[key].key == key

    def test_commission_and_money_beats_commission_alone(self):
        rules = FIELD_RULES[SemanticKey.MOTIVATION].summary_rules
        _, value = first_match(rules, "saving commission and getting the most money", direct_only=True)
        assert value == "Save commission, get the most money"
        _, value = first_match(rules, "they want to avoid paying commission", direct_only=True)
        assert value == "Save commission"

    def test_conditional_openness(self):
        rules = FIELD_RULES[SemanticKey.OPENNESS_TO_RELIST].summary_rules
        _, value = first_match(rules, "She is open to working with an agent if the buyer pays the commission.")
        assert value == "Yes, if buyer pays commission"

    def test_refusal_is_not_read_as_openness(self):
        rules = FIELD_RULES[SemanticKey.OPENNESS_TO_RELIST].summary_rules
        _, value = first_match(rules, "He is not open to working with an agent.")
        assert value == "No, selling on own"

    @pytest.mark.parametrize("text,expected", [
        ("They want to be out by April.", "By April"),
        ("Hoping to close within 60 days.", "Within 60 days"),
        ("Target is year-end.", "Year-end"),
        ("Probably next spring.", "Next spring"),
        ("They need to sell ASAP.", "ASAP"),
    ])
    def test_timeline_direct_rules(self, text, expected):
        rules = FIELD_RULES[SemanticKey.TIMELINE].summary_rules
        _, value = first_match(rules, text, direct_only=True)
        assert value == expected
