"""
Update Emitter.

Maps extracted fields onto the record's custom fields, adds the
operational fields (booking flag, call attempt counter), resolves
conflicts and commits everything in one batched write.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from fieldsync.crm_client import CRMClient
from fieldsync.errors import (
    CRMRequestError,
    InvalidCoercion,
    RecordReadFailed,
    UnmappableField,
    WriteFailed,
)
from fieldsync.logging_config import get_logger
from fieldsync.rules import confidence
from fieldsync.schemas.call import CallRecord
from fieldsync.schemas.extraction import ExtractionResult, SemanticKey
from fieldsync.schemas.fields import ExistingFieldSnapshot, UpdateCandidate
from fieldsync.schemas.update import UpdatedFieldReport, UpdateResult
from fieldsync.services.coercion import coerce_value
from fieldsync.services.conflict import is_garbage, resolve_conflicts
from fieldsync.services.field_schema import FieldSchemaResolver

logger = get_logger(__name__)

BOOKING_ACTIONS = frozenset({"create_appointment", "book_appointment", "schedule_appointment"})
BOOKED_STATUSES = frozenset({"booked", "confirmed", "scheduled"})

BOOKING_PHRASE_RE = re.compile(
    r"appointment\s+(?:has\s+been\s+|was\s+|is\s+)?(?:booked|scheduled|confirmed)"
    r"|(?:booked|scheduled|set\s+up|confirmed)\s+(?:a|an|the|their|his|her)\s+"
    r"(?:appointment|walkthrough|walk-through|meeting|consultation|preview|showing|call)"
    r"|(?:you're|you\s+are)\s+all\s+set\s+for",
    re.IGNORECASE,
)
NEGATION_RE = re.compile(r"\b(?:no|not|never|didn't|did\s+not|wasn't|couldn't|unable\s+to)\b", re.IGNORECASE)
NEGATION_WINDOW = 25


def detect_booking(record: CallRecord) -> bool:
    """True when the call shows a completed scheduling action."""
    for action in record.action_records:
        if action.name not in BOOKING_ACTIONS:
            continue
        result = action.result
        appointment = result.get("appointment") if isinstance(result.get("appointment"), dict) else {}
        if result.get("id") or appointment.get("id"):
            return True
        status = str(result.get("status") or appointment.get("status") or "").lower()
        if status in BOOKED_STATUSES:
            return True

    content = record.content
    for match in BOOKING_PHRASE_RE.finditer(content):
        window = content[max(0, match.start() - NEGATION_WINDOW):match.start()]
        if not NEGATION_RE.search(window):
            return True
    return False


def next_attempt_count(stored: Any) -> int:
    """Stored counter plus one; absent or non-numeric counts as zero."""
    if isinstance(stored, bool):
        return 1
    if isinstance(stored, (int, float)):
        return int(stored) + 1
    try:
        return int(float(str(stored).strip())) + 1
    except (TypeError, ValueError):
        return 1


class UpdateEmitter:
    """Builds and commits the batched custom field update for one call."""

    def __init__(self, client: CRMClient, resolver: FieldSchemaResolver) -> None:
        self.client = client
        self.resolver = resolver

    async def read_current_values(self, record_id: str) -> dict[str, Any]:
        """
        Read the record's current custom field values.

        Raises:
            RecordReadFailed: the read failed after retries. Continuing
                would reset the attempt counter, so the pass must stop.
        """
        try:
            return await self.client.get_custom_field_values(record_id)
        except CRMRequestError as e:
            logger.error("record_read_failed", record_id=record_id, error=str(e))
            raise RecordReadFailed(f"Could not read record {record_id}: {e}") from e

    def snapshot_from(self, current_values: dict[str, Any]) -> ExistingFieldSnapshot:
        """Prior memory log taken from the record's current values."""
        try:
            schema = self.resolver.lookup(SemanticKey.VOICE_MEMORY)
        except UnmappableField:
            return ExistingFieldSnapshot()
        prior = current_values.get(schema.id)
        return ExistingFieldSnapshot(voice_memory=str(prior) if prior else None)

    def build_candidates(
        self,
        record: CallRecord,
        extraction: ExtractionResult,
        current_values: dict[str, Any],
    ) -> tuple[list[UpdateCandidate], list[str]]:
        """Coerce every extracted and operational value into a candidate."""
        values: list[tuple[str, Any, int]] = [
            (key.value, field.value, field.confidence) for key, field in extraction.fields.items()
        ]

        if detect_booking(record):
            values.append((SemanticKey.APPOINTMENT_BOOKED.value, True, confidence.SYSTEM))

        counter = self._counter_value(current_values)
        if counter is not None:
            values.append((SemanticKey.CALL_ATTEMPT_COUNTER.value, counter, confidence.SYSTEM))

        candidates: list[UpdateCandidate] = []
        warnings: list[str] = []
        for semantic_key, value, score in values:
            # Coercion can turn "23 m" into a clean-looking 23; judge the raw value.
            if is_garbage(value):
                logger.debug("garbage_value_rejected", key=semantic_key, value=value)
                continue
            try:
                schema = self.resolver.lookup(semantic_key)
                coerced = coerce_value(value, schema)
            except (UnmappableField, InvalidCoercion) as e:
                logger.warning("field_dropped", key=semantic_key, reason=str(e))
                warnings.append(str(e))
                continue
            candidates.append(UpdateCandidate(
                field_id=schema.id,
                field_name=schema.name,
                value=coerced,
                confidence=score,
                semantic_key=semantic_key,
            ))
        return candidates, warnings

    async def emit(
        self,
        record: CallRecord,
        extraction: ExtractionResult,
        current_values: dict[str, Any],
    ) -> UpdateResult:
        """
        Resolve candidates and write them in a single request.

        Raises:
            WriteFailed: the batched write was not committed.
        """
        candidates, warnings = self.build_candidates(record, extraction, current_values)
        resolved = resolve_conflicts(candidates)
        extracted = {key.value: field for key, field in extraction.fields.items()}

        if not resolved:
            logger.info("no_fields_to_update", record_id=record.record_id, warnings=len(warnings))
            return UpdateResult(
                success=True,
                message="No valid fields to update",
                warnings=warnings,
                extracted=extracted,
            )

        payload = [{"id": c.field_id, "value": c.value} for c in resolved]
        try:
            await self.client.update_custom_fields(record.record_id, payload)
        except CRMRequestError as e:
            logger.error("record_write_failed", record_id=record.record_id, error=str(e))
            raise WriteFailed(f"Could not update record {record.record_id}: {e}") from e

        logger.info(
            "update_emitted",
            record_id=record.record_id,
            fields_updated=len(resolved),
            warnings=len(warnings),
        )
        return UpdateResult(
            success=True,
            message=f"Updated {len(resolved)} fields",
            fields_updated=len(resolved),
            updated_fields=[
                UpdatedFieldReport(field_name=c.field_name, value=c.value, confidence=c.confidence)
                for c in resolved
            ],
            warnings=warnings,
            extracted=extracted,
        )

    def _counter_value(self, current_values: dict[str, Any]) -> Optional[int]:
        try:
            schema = self.resolver.lookup(SemanticKey.CALL_ATTEMPT_COUNTER)
        except UnmappableField:
            logger.debug("counter_field_missing")
            return None
        return next_attempt_count(current_values.get(schema.id))
