"""Unit tests for booking detection, the attempt counter and the batched write."""

from datetime import date

import pytest

from fieldsync.errors import CRMRequestError, RecordReadFailed, WriteFailed
from fieldsync.schemas.call import ActionRecord, CallRecord
from fieldsync.schemas.extraction import ExtractedField, ExtractionResult, FieldSource, SemanticKey
from fieldsync.services.extraction import extract_fields
from fieldsync.services.field_schema import FieldSchemaResolver
from fieldsync.services.update_emitter import UpdateEmitter, detect_booking, next_attempt_count


def _record(summary: str, actions=None) -> CallRecord:
    return CallRecord(record_id="contact-1", summary=summary, action_records=actions or [])


class TestDetectBooking:

    def test_action_with_id(self):
        record = _record("Short call.", [ActionRecord(name="create_appointment", result={"id": "apt_1"})])
        assert detect_booking(record)

    def test_action_with_booked_status(self):
        record = _record("Short call.", [ActionRecord(name="book_appointment", result={"status": "Confirmed"})])
        assert detect_booking(record)

    def test_failed_action_is_not_a_booking(self):
        record = _record("Short call.", [ActionRecord(name="create_appointment", result={"error": "slot taken"})])
        assert not detect_booking(record)

    def test_booking_phrase(self):
        assert detect_booking(_record("We scheduled a walkthrough for Tuesday at 3pm."))

    @pytest.mark.parametrize("summary", [
        "No appointment was scheduled during the call.",
        "They did not book an appointment.",
        "The seller wants to save commission.",
    ])
    def test_no_booking(self, summary):
        assert not detect_booking(_record(summary))


class TestNextAttemptCount:

    @pytest.mark.parametrize("stored,expected", [(None, 1), ("", 1), ("abc", 1), ("4", 5), (4, 5), ("4.0", 5)])
    def test_increment(self, stored, expected):
        assert next_attempt_count(stored) == expected


class TestUpdateEmitter:

    @pytest.fixture
    def emitter(self, crm_client, resolver) -> UpdateEmitter:
        return UpdateEmitter(crm_client, resolver)

    @pytest.mark.asyncio
    async def test_counter_increments_stored_value(self, emitter, resolver, crm_client):
        await resolver.initialize()
        record = _record("The seller is saving commission and getting the most money.")
        extraction = extract_fields(record, today=date(2024, 5, 1))

        result = await emitter.emit(record, extraction, {"cf_counter": "4"})

        assert result.success
        contact_id, payload = crm_client.update_custom_fields.await_args.args
        assert contact_id == "contact-1"
        assert {"id": "cf_counter", "value": 5} in payload

    @pytest.mark.asyncio
    async def test_single_batched_write_with_one_entry_per_field(self, emitter, resolver, crm_client):
        await resolver.initialize()
        record = _record(
            "They own a 3 bedroom house listed at $450,000 and want to be out by April.",
            [ActionRecord(name="create_appointment", result={"id": "apt_1"})],
        )
        extraction = extract_fields(record, today=date(2024, 5, 1))

        result = await emitter.emit(record, extraction, {})

        crm_client.update_custom_fields.assert_awaited_once()
        _, payload = crm_client.update_custom_fields.await_args.args
        ids = [entry["id"] for entry in payload]
        assert len(ids) == len(set(ids))
        assert {"id": "cf_booked", "value": True} in payload
        assert {"id": "cf_last_contact", "value": "2024-05-01"} in payload
        assert result.fields_updated == len(payload)

    @pytest.mark.asyncio
    async def test_unmapped_fields_become_warnings(self, emitter, resolver):
        await resolver.initialize()
        record = _record("They own a 3 bedroom house.")
        extraction = extract_fields(record, today=date(2024, 5, 1))

        result = await emitter.emit(record, extraction, {})

        assert "No mapping found for field: bedrooms" in result.warnings

    @pytest.mark.asyncio
    async def test_no_booking_flag_without_booking(self, emitter, resolver, crm_client):
        await resolver.initialize()
        record = _record("The seller is saving commission and getting the most money.")
        extraction = extract_fields(record, today=date(2024, 5, 1))

        await emitter.emit(record, extraction, {})

        _, payload = crm_client.update_custom_fields.await_args.args
        assert all(entry["id"] != "cf_booked" for entry in payload)

    @pytest.mark.asyncio
    async def test_snapshot_from_current_values(self, emitter, resolver):
        await resolver.initialize()
        snapshot = emitter.snapshot_from({"cf_memory": "[2024-04-01] Motivation: Downsizing"})
        assert snapshot.voice_memory == "[2024-04-01] Motivation: Downsizing"
        assert emitter.snapshot_from({}).voice_memory is None

    @pytest.mark.asyncio
    async def test_read_failure_is_fatal(self, emitter, crm_client):
        crm_client.get_custom_field_values.side_effect = CRMRequestError("timeout")
        with pytest.raises(RecordReadFailed):
            await emitter.read_current_values("contact-1")

    @pytest.mark.asyncio
    async def test_write_failure(self, emitter, resolver, crm_client):
        await resolver.initialize()
        crm_client.update_custom_fields.side_effect = CRMRequestError("boom", status_code=500)
        record = _record("The seller is saving commission and getting the most money.")
        extraction = extract_fields(record, today=date(2024, 5, 1))

        with pytest.raises(WriteFailed):
            await emitter.emit(record, extraction, {})

    @pytest.mark.asyncio
    async def test_garbage_rejected_before_number_coercion(self, crm_client, raw_custom_fields):
        crm_client.fetch_custom_fields.return_value = raw_custom_fields + [
            {"id": "cf_bedrooms", "name": "Bedrooms", "dataType": "NUMERICAL"},
        ]
        resolver = FieldSchemaResolver(crm_client)
        await resolver.initialize()
        extraction = ExtractionResult(fields={
            SemanticKey.BEDROOMS: ExtractedField(
                key=SemanticKey.BEDROOMS,
                value="23 m",
                confidence=90,
                source=FieldSource.CONTEXT_PATTERN,
            ),
        })

        candidates, warnings = UpdateEmitter(crm_client, resolver).build_candidates(
            _record("Short call."), extraction, {},
        )

        assert all(c.field_id != "cf_bedrooms" for c in candidates)
        assert warnings == []
