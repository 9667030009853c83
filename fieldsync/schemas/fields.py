"""
Data models for target-system custom fields and schema-targeted updates.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class FieldDataType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    CHECKBOX = "checkbox"
    DATE = "date"
    URL = "url"
    EMAIL = "email"
    PHONE = "phone"


class FieldSchema(BaseModel):
    """A custom field definition as exposed by the record store."""
    id: str
    name: str
    data_type: FieldDataType = FieldDataType.TEXT
    options: list[str] = Field(default_factory=list)
    required: bool = False


class UpdateCandidate(BaseModel):
    """A coerced, schema-targeted value awaiting conflict resolution."""
    field_id: str
    field_name: str
    value: Any
    confidence: int
    semantic_key: str


class ExistingFieldSnapshot(BaseModel):
    """Prior values of append-style fields, read before processing."""
    voice_memory: Optional[str] = None
