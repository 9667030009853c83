"""
Error taxonomy for the reconciliation pass.

Fatal errors (SchemaUnavailable, RecordReadFailed, WriteFailed) abort a
pass and surface as a failed UpdateResult. UnmappableField and
InvalidCoercion only drop the offending field and become warnings.
"""

from __future__ import annotations


class FieldSyncError(Exception):
    """Base class for all service errors."""


class CRMRequestError(FieldSyncError):
    """A record store call failed after exhausting retries."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SchemaUnavailable(FieldSyncError):
    """The custom field schema could not be fetched."""


class RecordReadFailed(FieldSyncError):
    """Current operational field values could not be read."""


class WriteFailed(FieldSyncError):
    """The batched update was not committed."""


class UnmappableField(FieldSyncError):
    """A semantic key has no schema counterpart, literal or aliased."""

    def __init__(self, semantic_key: str) -> None:
        super().__init__(f"No mapping found for field: {semantic_key}")
        self.semantic_key = semantic_key


class InvalidCoercion(FieldSyncError):
    """A value failed validation for its target field's data type."""

    def __init__(self, field_name: str, value: object, reason: str = "") -> None:
        detail = f"Invalid value for field {field_name}: {value!r}"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)
        self.field_name = field_name
        self.value = value
        self.reason = reason
