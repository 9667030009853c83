"""
Extraction Pipeline.

Turns the free text of a completed call into confidence-scored values for
each semantic field. Tiers run from most to least certain, and each tier
only fills keys the earlier ones left empty:

1. Question-anchored mapping: the assistant's scripted question followed by
   the caller's answer.
2. Direct content extraction: the ``direct`` rows of each field's rule table.
3. Context patterns refined by business logic.

Tiers 2 and 3 are skipped once enough meaningful fields are found. A
property sweep and the system fields (last contact, summary, memory log)
run on every pass.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from fieldsync.config import get_settings
from fieldsync.logging_config import get_logger
from fieldsync.rules import confidence
from fieldsync.rules.primitives import (
    capitalize_first,
    clean_and_truncate,
    first_match,
    is_meaningless,
    normalize_quotes,
    strip_filler,
)
from fieldsync.rules.questions import QUESTION_PROMPTS
from fieldsync.rules.registry import (
    BATHROOM_RE,
    BEDROOM_RE,
    FIELD_RULES,
    MEMORY_ORDER,
    PROPERTY_TYPES,
    FieldRules,
    count_from,
    find_price,
    names_place,
)
from fieldsync.schemas.call import CallRecord
from fieldsync.schemas.extraction import (
    ExtractedField,
    ExtractionResult,
    FieldSource,
    SemanticKey,
)
from fieldsync.schemas.fields import ExistingFieldSnapshot
from fieldsync.services.conflict import is_garbage

settings = get_settings()
logger = get_logger(__name__)

MIN_USABLE_TEXT = 10
QUESTION_ANSWER_MAX = 150
MEMORY_EXCERPT_LENGTH = 120
SUMMARY_PLACEHOLDER = "Call summary not available"
MEMORY_SEPARATOR = "\n\n"

SENTENCE_END_RE = re.compile(r"[.!](?=\s|$)")
ANSWER_END_RE = re.compile(r"[.!?](?=\s|$)|\n|\b(?:ai|assistant|bot)\s*:", re.IGNORECASE)
SPEAKER_RE = re.compile(r"^(?:user|customer|caller|seller|human|homeowner)\s*:\s*", re.IGNORECASE)
# A figure followed by a bare "m" with no currency symbol in front of it.
BARE_M_RE = re.compile(r"(?<![\$\d.,])(?<!\$ )\d[\d,.]*\s*m\b", re.IGNORECASE)


def extract_fields(
    record: CallRecord,
    snapshot: Optional[ExistingFieldSnapshot] = None,
    today: Optional[date] = None,
) -> ExtractionResult:
    """
    Run the full extraction pass over a completed call.

    Args:
        record: The completed call.
        snapshot: Prior values of append-style fields; the memory log is
            appended to ``snapshot.voice_memory`` when present.
        today: Date stamp for system fields. Defaults to the current date.

    Returns:
        ExtractionResult keyed by semantic key, system fields included.
    """
    today = today or date.today()
    summary = (record.summary or "").strip()
    transcript = (record.transcript or "").strip()
    result = ExtractionResult()

    if len(summary) >= MIN_USABLE_TEXT:
        primary, result.used_text = summary, "summary"
    elif len(transcript) >= MIN_USABLE_TEXT:
        primary, result.used_text = transcript, "transcript"
    else:
        primary = ""

    if not primary:
        logger.info("extraction_no_input_text", record_id=record.record_id)
        _add_system_fields(result, summary, today, memory=None)
        return result

    secondary = transcript if (
        result.used_text == "summary"
        and len(transcript) >= MIN_USABLE_TEXT
        and transcript != summary
    ) else ""

    _question_tier(primary, result)
    if secondary:
        _question_tier(secondary, result)

    if result.meaningful_count < settings.min_meaningful_fields:
        _direct_tier(primary, result)
    if result.meaningful_count < settings.min_meaningful_fields:
        _context_tier(primary, result)

    if secondary and result.meaningful_count < settings.min_meaningful_fields:
        logger.debug("extraction_transcript_supplement", meaningful=result.meaningful_count)
        result.tiers_run.append("transcript_supplement")
        _direct_tier(secondary, result)
        if result.meaningful_count < settings.min_meaningful_fields:
            _context_tier(secondary, result)

    _property_sweep(record.content, result)

    memory_line = build_memory_line(result, summary or transcript)
    prior = snapshot.voice_memory if snapshot else None
    _add_system_fields(result, summary, today, memory=append_memory(prior, memory_line, today))

    logger.info(
        "extraction_complete",
        record_id=record.record_id,
        used_text=result.used_text,
        tiers_run=result.tiers_run,
        meaningful_fields=result.meaningful_count,
        fields={k.value: f.value for k, f in result.fields.items() if not f.is_system},
    )
    return result


def extract_field(
    key: SemanticKey,
    text: str,
    require_value: bool = False,
) -> Optional[ExtractedField]:
    """
    Context-pattern + business-logic extraction for a single field.

    Returns None when nothing credible is found, unless ``require_value``
    is set, in which case the field's fallback label is returned at the
    minimum confidence.
    """
    rules = FIELD_RULES[key]
    lowered = normalize_quotes(text).lower()

    if rules.gate(lowered):
        hit = _best_pattern_hit(rules, text)
        if hit is not None:
            span, score, family = hit
            refined = _refine(rules, text, span)
            if refined is not None:
                value, replaced = refined
                return ExtractedField(
                    key=key,
                    value=value,
                    confidence=score,
                    source=FieldSource.BUSINESS_LOGIC if replaced else FieldSource.CONTEXT_PATTERN,
                    method=f"pattern:{family}",
                    source_segment=span,
                )
        else:
            rule_hit = first_match(rules.summary_rules, text)
            if rule_hit is not None:
                value = capitalize_first(clean_and_truncate(rule_hit[1], rules.max_length))
                if _acceptable(rules, value):
                    return ExtractedField(
                        key=key,
                        value=value,
                        confidence=confidence.BUSINESS_LOGIC,
                        source=FieldSource.BUSINESS_LOGIC,
                        method="summary_rule",
                    )

    if require_value and rules.fallback:
        return ExtractedField(
            key=key,
            value=rules.fallback,
            confidence=confidence.FALLBACK,
            source=FieldSource.BUSINESS_LOGIC,
            method="fallback",
        )
    return None


# ── Tier 1: question-anchored mapping ────────────────────────────

def _question_tier(text: str, result: ExtractionResult) -> None:
    _mark(result, "question_mapping")
    for key, variants in QUESTION_PROMPTS.items():
        if key in result.fields:
            continue
        rules = FIELD_RULES[key]
        for variant in variants:
            answer = answer_after(text, variant)
            if answer and _acceptable(rules, answer):
                result.fields[key] = ExtractedField(
                    key=key,
                    value=answer,
                    confidence=confidence.QUESTION_MAPPING,
                    source=FieldSource.QUESTION_MAPPING,
                    method="question_anchor",
                    source_segment=variant,
                )
                break


def answer_after(text: str, question: str) -> Optional[str]:
    """
    Return the caller's answer following ``question`` in ``text``.

    The answer runs to the next sentence terminator, which is kept. When
    ``question`` is only a fragment, the rest of the question up to its
    question mark is skipped first.
    """
    normalized = normalize_quotes(text)
    start = normalized.lower().find(normalize_quotes(question).lower())
    if start < 0:
        return None

    rest = normalized[start + len(question):]
    question_mark = rest.find("?")
    terminator = SENTENCE_END_RE.search(rest)
    if question_mark >= 0 and (terminator is None or question_mark < terminator.start()):
        rest = rest[question_mark + 1:]

    rest = SPEAKER_RE.sub("", rest.lstrip())
    end = ANSWER_END_RE.search(rest)
    if end is None:
        answer = rest
    elif end.group(0) in ".!?":
        answer = rest[:end.end()]
    else:
        answer = rest[:end.start()]

    answer = strip_filler(answer.strip())
    if not answer or answer.endswith("?"):
        return None
    if len(answer) > QUESTION_ANSWER_MAX:
        answer = clean_and_truncate(answer, QUESTION_ANSWER_MAX)
    return capitalize_first(answer)


# ── Tier 2: direct content extraction ────────────────────────────

def _direct_tier(text: str, result: ExtractionResult) -> None:
    _mark(result, "direct_extraction")
    for key, rules in FIELD_RULES.items():
        if key in result.fields:
            continue
        hit = first_match(rules.summary_rules, text, direct_only=True)
        if hit is None:
            continue
        rule, raw = hit
        value = capitalize_first(clean_and_truncate(raw, rules.max_length))
        if _acceptable(rules, value):
            result.fields[key] = ExtractedField(
                key=key,
                value=value,
                confidence=rule.confidence,
                source=FieldSource.DIRECT_EXTRACTION,
                method="direct_rule",
            )


# ── Tier 3: context patterns + business logic ────────────────────

def _context_tier(text: str, result: ExtractionResult) -> None:
    _mark(result, "context_pattern")
    for key in FIELD_RULES:
        if key in result.fields:
            continue
        extracted = extract_field(key, text)
        if extracted is not None:
            result.fields[key] = extracted


def _best_pattern_hit(rules: FieldRules, text: str) -> Optional[tuple[str, int, str]]:
    """Highest-scoring non-garbage span across all pattern families."""
    normalized = normalize_quotes(text)
    best: Optional[tuple[str, int, str]] = None
    for family in rules.families:
        for pattern in family.patterns:
            for match in pattern.finditer(normalized):
                span = next((g for g in match.groups() if g), None) or match.group(0)
                span = strip_filler(span.strip())
                if len(span) < 2 or is_garbage(span):
                    continue
                score = confidence.score_span(rules.key, span, location_match=names_place(span))
                if best is None or score > best[1]:
                    best = (span, score, family.name)
    return best


def _refine(rules: FieldRules, text: str, span: str) -> Optional[tuple[str, bool]]:
    """
    Canonicalize a raw span.

    Summary-level rules win over span-level rules, which win over the
    cleaned span itself. The flag is True when a rule replaced the span.
    """
    hit = first_match(rules.summary_rules, text) or first_match(rules.span_rules, span)
    if hit is not None:
        value = capitalize_first(clean_and_truncate(hit[1], rules.max_length))
        if _acceptable(rules, value):
            return value, True

    if not rules.accept_raw(span):
        return None
    value = capitalize_first(clean_and_truncate(span, rules.max_length))
    return (value, False) if _acceptable(rules, value) else None


def _acceptable(rules: FieldRules, value: str) -> bool:
    core = value.strip().rstrip(".!?").strip()
    if core.lower() in rules.allowed_short:
        return True
    if len(core) < rules.min_length or is_garbage(core):
        return False
    if rules.key in confidence.PRICE_KEYS and BARE_M_RE.search(core):
        return False
    return not is_meaningless(core, rules.allowed_short)


# ── Property intelligence ────────────────────────────────────────

def _property_sweep(content: str, result: ExtractionResult) -> None:
    _mark(result, "property_intelligence")
    found: dict[SemanticKey, str] = {}

    price = find_price(content)
    if price:
        found[SemanticKey.PRICE_RANGE] = price

    lowered = content.lower()
    for needle, label in PROPERTY_TYPES:
        if needle in lowered:
            found[SemanticKey.PROPERTY_TYPE] = label
            break

    match = BEDROOM_RE.search(content)
    if match:
        found[SemanticKey.BEDROOMS] = count_from(match.group(1))
    match = BATHROOM_RE.search(content)
    if match:
        found[SemanticKey.BATHROOMS] = count_from(match.group(1))

    for key, value in found.items():
        if key in result.fields:
            continue
        result.fields[key] = ExtractedField(
            key=key,
            value=value,
            confidence=confidence.PROPERTY_INTELLIGENCE,
            source=FieldSource.BUSINESS_LOGIC,
            method="property_sweep",
        )


# ── System fields ────────────────────────────────────────────────

def build_memory_line(result: ExtractionResult, source_text: str) -> str:
    """
    Compose this call's memory log line from the extracted fields.

    Falls back to an excerpt of the call text when no labelled field
    was extracted.
    """
    parts = []
    for key in MEMORY_ORDER:
        extracted = result.fields.get(key)
        label = FIELD_RULES[key].memory_label
        if extracted is None or not label:
            continue
        if extracted.value == FIELD_RULES[key].fallback:
            continue
        parts.append(f"{label}: {extracted.value.rstrip('.')}")

    if parts:
        return " | ".join(parts)
    if len(source_text) > MEMORY_EXCERPT_LENGTH:
        return source_text[:MEMORY_EXCERPT_LENGTH].rstrip() + "..."
    return source_text


def append_memory(
    prior: Optional[str],
    line: str,
    today: date,
    max_length: Optional[int] = None,
) -> str:
    """
    Append a date-stamped line to the prior log, never replacing it.

    When the log outgrows ``max_length`` (default ``settings.text_max_length``)
    the oldest entries are dropped so the newest one always survives.
    """
    max_length = max_length or settings.text_max_length
    entry = f"[{today.isoformat()}] {line}"
    entries = [e for e in (prior or "").strip().split(MEMORY_SEPARATOR) if e.strip()]
    entries.append(entry)

    log = MEMORY_SEPARATOR.join(entries)
    while len(log) > max_length and len(entries) > 1:
        entries.pop(0)
        log = MEMORY_SEPARATOR.join(entries)
    return log[-max_length:]


def _add_system_fields(
    result: ExtractionResult,
    summary: str,
    today: date,
    memory: Optional[str],
) -> None:
    system_values = {
        SemanticKey.LAST_CONTACT: today.isoformat(),
        SemanticKey.LATEST_CALL_SUMMARY: summary or SUMMARY_PLACEHOLDER,
    }
    if memory is not None:
        system_values[SemanticKey.VOICE_MEMORY] = memory

    for key, value in system_values.items():
        result.fields[key] = ExtractedField(
            key=key,
            value=value,
            confidence=confidence.SYSTEM,
            source=FieldSource.SYSTEM,
            method="system",
        )


def _mark(result: ExtractionResult, tier: str) -> None:
    if tier not in result.tiers_run:
        result.tiers_run.append(tier)
