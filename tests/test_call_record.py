"""Tests for normalizing end-of-call webhook payloads."""

import json

import pytest

from fieldsync.schemas.call import CallRecord, message_type


class TestFromWebhookPayload:

    def test_basic_payload(self, call_record):
        assert call_record.record_id == "contact-123"
        assert call_record.summary.startswith("The seller wants to save commission")
        assert call_record.transcript == "AI: Hi there.\nUser: Hello."
        assert call_record.metadata.call_id == "call-001"
        assert call_record.metadata.customer_number == "+15551234567"
        assert call_record.existing_fields is None

    def test_summary_from_analysis(self):
        payload = {
            "contactId": "contact-1",
            "message": {"analysis": {"summary": "  Summary from analysis.  "}},
        }
        record = CallRecord.from_webhook_payload(payload)
        assert record.summary == "Summary from analysis."

    def test_record_id_from_create_contact_result(self):
        payload = {
            "message": {
                "artifact": {
                    "messages": [
                        {"role": "assistant", "message": "Let me add you."},
                        {
                            "role": "tool_call_result",
                            "name": "create_contact",
                            "result": json.dumps({"contact": {"id": "contact-new"}}),
                        },
                    ]
                }
            }
        }
        record = CallRecord.from_webhook_payload(payload)

        assert record.record_id == "contact-new"
        assert record.action_records[0].name == "create_contact"

    def test_unparseable_tool_result_kept_raw(self):
        payload = {
            "contactId": "contact-1",
            "message": {
                "artifact": {
                    "messages": [
                        {"role": "tool_call_result", "name": "book_appointment", "result": "Booked for 3pm"},
                    ]
                }
            },
        }
        record = CallRecord.from_webhook_payload(payload)
        assert record.action_records[0].result == {"raw": "Booked for 3pm"}

    def test_existing_memory_snapshot(self, end_of_call_payload):
        end_of_call_payload["existingFields"] = {"voiceMemory": "[2024-04-01] Motivation: Downsizing"}
        record = CallRecord.from_webhook_payload(end_of_call_payload)
        assert record.existing_fields.voice_memory == "[2024-04-01] Motivation: Downsizing"

    def test_missing_record_id(self):
        with pytest.raises(ValueError, match="record id"):
            CallRecord.from_webhook_payload({"message": {"summary": "No id anywhere in here."}})

    def test_content_joins_texts(self):
        record = CallRecord(record_id="r", summary="Summary.", transcript="Transcript.")
        assert record.content == "Summary. Transcript."


class TestMessageType:

    @pytest.mark.parametrize("payload,expected", [
        ({"message": {"type": "end-of-call-report"}}, "end-of-call-report"),
        ({"type": "status-update"}, "status-update"),
        ({"message": {}}, None),
    ])
    def test_message_type(self, payload, expected):
        assert message_type(payload) == expected
