"""
Conflict Resolver.

Collapses candidates that target the same custom field into one. A value
that looks like transcription debris never wins over a real one, whatever
its confidence.
"""

from __future__ import annotations

import re
from typing import Any

from fieldsync.logging_config import get_logger
from fieldsync.schemas.fields import UpdateCandidate

logger = get_logger(__name__)

GARBAGE_PATTERNS = (
    re.compile(r"^[\W_]+$"),          # punctuation/whitespace only
    re.compile(r"^\d+\s*m$", re.IGNORECASE),   # "23 m"
    re.compile(r"^[a-z]\s*m$", re.IGNORECASE),  # "a m"
)


def is_garbage(value: Any) -> bool:
    """True for empty, punctuation-only, or known debris shapes."""
    if value is None:
        return True
    if isinstance(value, (bool, int, float)):
        return False
    text = str(value).strip()
    if not text:
        return True
    return any(p.match(text) for p in GARBAGE_PATTERNS)


def resolve_conflicts(candidates: list[UpdateCandidate]) -> list[UpdateCandidate]:
    """
    Keep exactly one candidate per target field id.

    Non-garbage beats garbage, then higher confidence wins, and ties keep
    the candidate seen first. Targets whose candidates are all garbage are
    dropped. Output preserves first-seen target order.
    """
    winners: dict[str, UpdateCandidate] = {}

    for candidate in candidates:
        current = winners.get(candidate.field_id)
        if current is None:
            winners[candidate.field_id] = candidate
            continue

        current_garbage = is_garbage(current.value)
        candidate_garbage = is_garbage(candidate.value)

        if current_garbage and not candidate_garbage:
            replace = True
        elif candidate_garbage and not current_garbage:
            replace = False
        else:
            replace = candidate.confidence > current.confidence

        if replace:
            logger.debug(
                "conflict_replaced",
                field=candidate.field_name,
                old_key=current.semantic_key,
                new_key=candidate.semantic_key,
                old_confidence=current.confidence,
                new_confidence=candidate.confidence,
            )
            winners[candidate.field_id] = candidate

    resolved = []
    for winner in winners.values():
        if is_garbage(winner.value):
            logger.debug("garbage_value_rejected", field=winner.field_name, value=winner.value)
            continue
        resolved.append(winner)
    return resolved
