"""
Building blocks for the per-field rule tables.

A rule is a (predicate, canonicalizer) pair evaluated against lowercased
text. Rule lists are ordered most specific first; the first rule whose
predicate holds and whose canonicalizer yields a value wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Pattern, Union

Predicate = Callable[[str], bool]
Canonicalizer = Union[str, Callable[[str], Optional[str]]]

# "well" and "like" are filler only when punctuation follows them.
FILLER_RE = re.compile(
    r"^(?:(?:um+|uh+|er+|so|you know|i mean|oh|okay|ok)[\s,.:]+|(?:well|like)[,.:]+\s*)+",
    re.IGNORECASE,
)
EDGE_PUNCT_RE = re.compile(r"^[\s,.\-:;\"']+|[\s,.\-:;\"']+$")
WHITESPACE_RE = re.compile(r"\s+")

# Bare acknowledgements and filler that never carry a field value.
MEANINGLESS_RESPONSES = frozenset({
    "good", "fine", "okay", "ok", "great", "yeah", "yes", "yep", "no", "nope",
    "sure", "i guess", "maybe", "i don't know", "i dont know", "not sure",
    "and", "um", "uh", "well", "so", "like", "right", "hmm", "the", "it",
})


@dataclass(frozen=True)
class Rule:
    """
    One row of a field's priority-ordered rule table.

    ``direct`` marks rules that the direct-content tier may use on its own;
    the business-logic refiner evaluates every rule.
    """
    predicate: Predicate
    canonical: Canonicalizer
    confidence: int = 85
    direct: bool = False

    def apply(self, text_lower: str, original: str) -> Optional[str]:
        if not self.predicate(text_lower):
            return None
        if callable(self.canonical):
            return self.canonical(original)
        return self.canonical


@dataclass(frozen=True)
class PatternFamily:
    name: str
    patterns: tuple[Pattern[str], ...] = field(default_factory=tuple)


def first_match(rules: tuple[Rule, ...] | list[Rule], text: str, direct_only: bool = False) -> Optional[tuple[Rule, str]]:
    """Evaluate ``rules`` top to bottom and return the first hit."""
    lowered = normalize_quotes(text).lower()
    for rule in rules:
        if direct_only and not rule.direct:
            continue
        value = rule.apply(lowered, text)
        if value:
            return rule, value
    return None


# ── Predicate helpers ────────────────────────────────────────────

def has_all(*needles: str) -> Predicate:
    return lambda text: all(n in text for n in needles)


def has_any(*needles: str) -> Predicate:
    return lambda text: any(n in text for n in needles)


def has_all_any(required: tuple[str, ...], alternatives: tuple[str, ...]) -> Predicate:
    """Every ``required`` needle plus at least one of ``alternatives``."""
    return lambda text: all(n in text for n in required) and any(a in text for a in alternatives)


def matches(pattern: str) -> Predicate:
    compiled = re.compile(pattern, re.IGNORECASE)
    return lambda text: compiled.search(text) is not None


# ── Text cleanup ─────────────────────────────────────────────────

def normalize_quotes(text: str) -> str:
    return (
        text.replace("’", "'")
        .replace("‘", "'")
        .replace("“", '"')
        .replace("”", '"')
    )


def strip_filler(text: str) -> str:
    """Drop leading hesitation tokens ("um", "well", "so", ...)."""
    stripped = text.strip()
    while True:
        cleaned = FILLER_RE.sub("", stripped).strip()
        if cleaned == stripped:
            return cleaned
        stripped = cleaned


def clean_and_truncate(text: str, max_length: int = 50) -> str:
    cleaned = strip_filler(WHITESPACE_RE.sub(" ", text))
    cleaned = EDGE_PUNCT_RE.sub("", cleaned)
    if len(cleaned) > max_length:
        cut = cleaned[:max_length]
        # Prefer a word boundary when one is reasonably close.
        if " " in cut[max_length // 2:]:
            cut = cut[: cut.rfind(" ")]
        cleaned = cut.rstrip(" ,;:-")
    return cleaned


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


def is_meaningless(value: str, allowed_short: frozenset[str] = frozenset()) -> bool:
    lowered = value.strip().lower().rstrip(".!?")
    if lowered in allowed_short:
        return False
    if lowered in MEANINGLESS_RESPONSES:
        return True
    return not any(ch.isalnum() for ch in lowered)
