"""Unit tests for heuristic confidence scoring."""

import pytest

from fieldsync.rules.confidence import clamp, score_span
from fieldsync.schemas.extraction import SemanticKey


class TestClamp:

    @pytest.mark.parametrize("raw,expected", [(120, 95), (95, 95), (70, 70), (50, 50), (10, 50)])
    def test_clamps_to_scale(self, raw, expected):
        assert clamp(raw) == expected


class TestScoreSpan:

    def test_plain_span_scores_base(self):
        assert score_span(SemanticKey.MOTIVATION, "save the commission") == 70

    def test_currency_symbol_boosts_price_fields(self):
        assert score_span(SemanticKey.EXPECTATIONS, "$1.2M") == 90

    def test_currency_symbol_ignored_elsewhere(self):
        assert score_span(SemanticKey.CONCERNS, "$1.2M") == 70

    def test_location_match_boosts_destination_only(self):
        assert score_span(SemanticKey.NEXT_DESTINATION, "Texas", location_match=True) == 90
        assert score_span(SemanticKey.MOTIVATION, "Texas", location_match=True) == 70

    def test_numeric_timeline_bonus(self):
        assert score_span(SemanticKey.TIMELINE, "6 months") == 80

    def test_short_span_penalty(self):
        assert score_span(SemanticKey.TIMELINE, "2 mo") == 70
        assert score_span(SemanticKey.EXPECTATIONS, "$1M") == 80

    def test_very_short_span_penalties_stack_and_clamp(self):
        assert score_span(SemanticKey.MOTIVATION, "ab") == 50
        assert score_span(SemanticKey.EXPECTATIONS, "$5") == 60
