"""
Data models for completed calls and the end-of-call webhook payload.
"""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from fieldsync.schemas.fields import ExistingFieldSnapshot

END_OF_CALL_REPORT = "end-of-call-report"

# Ordered by how reliably the voice platform populates them.
SUMMARY_LOCATIONS = (
    "message.summary",
    "message.analysis.summary",
    "message.call.analysis.summary",
    "call.analysis.summary",
    "summary",
)

TRANSCRIPT_LOCATIONS = (
    "message.call.transcript",
    "call.transcript",
    "message.call.analysis.transcript",
    "message.analysis.transcript",
    "call.analysis.transcript",
    "message.call.artifact.transcript",
    "call.artifact.transcript",
    "message.transcript",
    "transcript",
)

RECORD_ID_LOCATIONS = (
    "recordId",
    "contactId",
    "message.call.assistantOverrides.variableValues.contactId",
    "call.assistantOverrides.variableValues.contactId",
)

ARTIFACT_MESSAGE_LOCATIONS = (
    "message.artifact.messages",
    "message.call.artifact.messages",
    "call.artifact.messages",
)


class CallMetadata(BaseModel):
    call_id: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    customer_number: Optional[str] = None


class ActionRecord(BaseModel):
    """A structured tool-call result recorded during the call."""
    name: str
    result: dict[str, Any] = Field(default_factory=dict)


class CallRecord(BaseModel):
    """A completed call as consumed by the reconciliation pass."""
    record_id: str
    summary: Optional[str] = None
    transcript: Optional[str] = None
    metadata: CallMetadata = Field(default_factory=CallMetadata)
    existing_fields: Optional[ExistingFieldSnapshot] = None
    action_records: list[ActionRecord] = Field(default_factory=list)

    @classmethod
    def from_webhook_payload(cls, payload: dict[str, Any]) -> "CallRecord":
        """
        Normalize an end-of-call report into a CallRecord.

        Raises:
            ValueError: if no target record id can be found.
        """
        messages = _first_list(payload, ARTIFACT_MESSAGE_LOCATIONS)
        actions = [a for a in (_parse_action(m) for m in messages) if a is not None]

        record_id = _first_string(payload, RECORD_ID_LOCATIONS) or _contact_id_from_actions(actions)
        if not record_id:
            raise ValueError("Could not extract record id from call data")

        call = _get_path(payload, "message.call") or _get_path(payload, "call") or {}
        customer = call.get("customer") or {}

        snapshot = None
        existing = payload.get("existingFields")
        if isinstance(existing, dict) and existing.get("voiceMemory"):
            snapshot = ExistingFieldSnapshot(voice_memory=str(existing["voiceMemory"]))

        return cls(
            record_id=record_id,
            summary=_first_string(payload, SUMMARY_LOCATIONS),
            transcript=_first_string(payload, TRANSCRIPT_LOCATIONS),
            metadata=CallMetadata(
                call_id=call.get("id"),
                started_at=call.get("startedAt"),
                ended_at=call.get("endedAt"),
                customer_number=customer.get("number"),
            ),
            existing_fields=snapshot,
            action_records=actions,
        )

    @property
    def content(self) -> str:
        """Summary and transcript joined, for whole-call keyword checks."""
        return " ".join(t for t in (self.summary, self.transcript) if t)


def message_type(payload: dict[str, Any]) -> Optional[str]:
    """The webhook message type, e.g. ``end-of-call-report``."""
    value = _get_path(payload, "message.type") or payload.get("type")
    return value if isinstance(value, str) else None


def _get_path(obj: Any, path: str) -> Any:
    for key in path.split("."):
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _first_string(payload: dict[str, Any], locations: tuple[str, ...]) -> Optional[str]:
    for location in locations:
        value = _get_path(payload, location)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_list(payload: dict[str, Any], locations: tuple[str, ...]) -> list[Any]:
    for location in locations:
        value = _get_path(payload, location)
        if isinstance(value, list) and value:
            return value
    return []


def _parse_action(message: Any) -> Optional[ActionRecord]:
    if not isinstance(message, dict) or message.get("role") != "tool_call_result":
        return None
    name = message.get("name")
    result = message.get("result")
    if not name or result is None:
        return None
    if isinstance(result, str):
        try:
            result = json.loads(result)
        except ValueError:
            return ActionRecord(name=name, result={"raw": result})
    if not isinstance(result, dict):
        return ActionRecord(name=name, result={"raw": result})
    return ActionRecord(name=name, result=result)


def _contact_id_from_actions(actions: list[ActionRecord]) -> Optional[str]:
    """Most recent create_contact result wins."""
    for action in reversed(actions):
        if action.name != "create_contact":
            continue
        contact = action.result.get("contact")
        if isinstance(contact, dict) and contact.get("id"):
            return str(contact["id"])
        if action.result.get("id"):
            return str(action.result["id"])
    return None
