"""Pytest configuration and shared fixtures."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from fieldsync.crm_client import CRMClient
from fieldsync.schemas.call import CallRecord
from fieldsync.services.field_schema import FieldSchemaResolver


@pytest.fixture
def raw_custom_fields() -> list[dict[str, Any]]:
    """Custom field definitions as the record store returns them.

    Returns:
        list: One entry per custom field of the test location
    """
    return [
        {"id": "cf_motivation", "name": "Motivation", "dataType": "TEXT"},
        {"id": "cf_expectations", "name": "Expectations", "dataType": "LARGE_TEXT"},
        {"id": "cf_timeline", "name": "Timeline", "dataType": "TEXT"},
        {"id": "cf_destination", "name": "Next Destination", "dataType": "TEXT"},
        {
            "id": "cf_openness",
            "name": "Openness to Re-list",
            "dataType": "SINGLE_OPTIONS",
            "picklistOptions": ["Yes", "No", "Maybe"],
        },
        {"id": "cf_last_contact", "name": "Last Contact", "dataType": "DATE"},
        {"id": "cf_summary", "name": "Latest Call Summary", "dataType": "LARGE_TEXT"},
        {"id": "cf_memory", "name": "Voice Memory", "dataType": "LARGE_TEXT"},
        {"id": "cf_booked", "name": "Appointment Booked", "dataType": "CHECKBOX"},
        {"id": "cf_counter", "name": "Call Attempt Counter", "dataType": "NUMERICAL"},
    ]


@pytest.fixture
def crm_client(raw_custom_fields) -> AsyncMock:
    """Record store client with canned responses.

    Returns:
        AsyncMock: Mocked CRMClient
    """
    client = AsyncMock(spec=CRMClient)
    client.fetch_custom_fields.return_value = raw_custom_fields
    client.get_custom_field_values.return_value = {}
    client.update_custom_fields.return_value = {}
    return client


@pytest.fixture
def resolver(crm_client) -> FieldSchemaResolver:
    """Resolver with the default alias table. Call ``initialize()`` before use."""
    return FieldSchemaResolver(crm_client)


@pytest.fixture
def end_of_call_payload() -> dict[str, Any]:
    """A minimal end-of-call report from the voice platform."""
    return {
        "message": {
            "type": "end-of-call-report",
            "summary": (
                "The seller wants to save commission and get the most money. "
                "They want to be moved out by April and are relocating to Austin, Texas."
            ),
            "call": {
                "id": "call-001",
                "customer": {"number": "+15551234567"},
                "transcript": "AI: Hi there.\nUser: Hello.",
                "assistantOverrides": {"variableValues": {"contactId": "contact-123"}},
            },
        }
    }


@pytest.fixture
def call_record(end_of_call_payload) -> CallRecord:
    """CallRecord built from the sample payload."""
    return CallRecord.from_webhook_payload(end_of_call_payload)
