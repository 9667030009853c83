"""
Heuristic confidence scoring for extracted spans.

Scores are plain integers on a 50-95 scale. They rank candidates, they are
not probabilities.
"""

from __future__ import annotations

from fieldsync.schemas.extraction import MAX_CONFIDENCE, MIN_CONFIDENCE, SemanticKey

BASE = 70
STRONG_MARKER_BONUS = 20
NUMERIC_TIMELINE_BONUS = 10
SHORT_SPAN_PENALTY = 10      # span shorter than SHORT_SPAN_LENGTH
VERY_SHORT_SPAN_PENALTY = 20  # span shorter than VERY_SHORT_SPAN_LENGTH, on top of the above
SHORT_SPAN_LENGTH = 5
VERY_SHORT_SPAN_LENGTH = 3

QUESTION_MAPPING = 90
BUSINESS_LOGIC = 85
PROPERTY_INTELLIGENCE = 85
SYSTEM = MAX_CONFIDENCE
FALLBACK = MIN_CONFIDENCE

PRICE_KEYS = frozenset({
    SemanticKey.EXPECTATIONS,
    SemanticKey.ASKING_PRICE,
    SemanticKey.PRICE_RANGE,
})


def clamp(score: int) -> int:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, score))


def score_span(key: SemanticKey, span: str, location_match: bool = False) -> int:
    """
    Score a raw pattern hit for ``key``.

    Args:
        key: Semantic field the span was extracted for.
        span: The cleaned span text.
        location_match: True when the span names a known place; only
            counts for the destination field.
    """
    score = BASE

    if key in PRICE_KEYS and "$" in span:
        score += STRONG_MARKER_BONUS
    if key == SemanticKey.NEXT_DESTINATION and location_match:
        score += STRONG_MARKER_BONUS
    if key == SemanticKey.TIMELINE and any(ch.isdigit() for ch in span):
        score += NUMERIC_TIMELINE_BONUS

    length = len(span.strip())
    if length < SHORT_SPAN_LENGTH:
        score -= SHORT_SPAN_PENALTY
    if length < VERY_SHORT_SPAN_LENGTH:
        score -= VERY_SHORT_SPAN_PENALTY

    return clamp(score)
