"""
Data models for structured data extraction results.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

MIN_CONFIDENCE = 50
MAX_CONFIDENCE = 95


class SemanticKey(str, Enum):
    """Extraction-side names for the concepts pulled out of a call."""

    MOTIVATION = "motivation"
    EXPECTATIONS = "expectations"
    DISAPPOINTMENTS = "disappointments"
    CONCERNS = "concerns"
    NEXT_DESTINATION = "next_destination"
    TIMELINE = "timeline"
    ASKING_PRICE = "asking_price"
    OPENNESS_TO_RELIST = "openness_to_relist"

    # Property intelligence
    PRICE_RANGE = "price_range"
    PROPERTY_TYPE = "property_type"
    BEDROOMS = "bedrooms"
    BATHROOMS = "bathrooms"

    # System
    LAST_CONTACT = "last_contact"
    LATEST_CALL_SUMMARY = "latest_call_summary"
    VOICE_MEMORY = "voice_memory"

    # Operational
    APPOINTMENT_BOOKED = "appointment_booked"
    CALL_ATTEMPT_COUNTER = "call_attempt_counter"


SYSTEM_KEYS = frozenset({
    SemanticKey.LAST_CONTACT,
    SemanticKey.LATEST_CALL_SUMMARY,
    SemanticKey.VOICE_MEMORY,
})


class FieldSource(str, Enum):
    """Which extraction strategy produced a value."""

    QUESTION_MAPPING = "question_mapping"
    DIRECT_EXTRACTION = "direct_extraction"
    CONTEXT_PATTERN = "context_pattern"
    BUSINESS_LOGIC = "business_logic"
    SYSTEM = "system"


class ExtractedField(BaseModel):
    """A single field extracted from a call."""
    key: SemanticKey
    value: str
    confidence: int = Field(ge=MIN_CONFIDENCE, le=MAX_CONFIDENCE)
    source: FieldSource
    method: str = ""
    source_segment: Optional[str] = None  # Raw span the value was derived from

    @property
    def is_system(self) -> bool:
        return self.key in SYSTEM_KEYS


class ExtractionResult(BaseModel):
    """All fields extracted during one pass, keyed by semantic key."""
    fields: dict[SemanticKey, ExtractedField] = Field(default_factory=dict)
    used_text: Optional[str] = None  # "summary", "transcript" or None
    tiers_run: list[str] = Field(default_factory=list)

    @property
    def meaningful_count(self) -> int:
        return sum(1 for f in self.fields.values() if not f.is_system)
