"""
Data models for the outcome of a reconciliation pass.
"""

from typing import Any

from pydantic import BaseModel, Field

from fieldsync.schemas.extraction import ExtractedField


class UpdatedFieldReport(BaseModel):
    """One written field, reported for observability."""
    field_name: str
    value: Any
    confidence: int


class UpdateResult(BaseModel):
    """Full result of one pass: what was written and what was dropped."""
    success: bool
    message: str = ""
    fields_updated: int = 0
    updated_fields: list[UpdatedFieldReport] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    extracted: dict[str, ExtractedField] = Field(default_factory=dict)

    @classmethod
    def failed(cls, message: str, warnings: list[str] | None = None) -> "UpdateResult":
        return cls(success=False, message=message, warnings=warnings or [])
