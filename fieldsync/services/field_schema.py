"""
Field Schema Resolver.

Loads the location's custom field definitions once and answers "which
custom field does this semantic key land in?". Names are compared in a
normalized form (lowercase, alphanumerics only); keys with no literal
counterpart fall back to an alias table.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Optional, Protocol

from fieldsync.config import get_settings
from fieldsync.errors import CRMRequestError, SchemaUnavailable, UnmappableField
from fieldsync.logging_config import get_logger
from fieldsync.schemas.extraction import SemanticKey
from fieldsync.schemas.fields import FieldDataType, FieldSchema

logger = get_logger(__name__)

NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

PLATFORM_DATA_TYPES: dict[str, FieldDataType] = {
    "TEXT": FieldDataType.TEXT,
    "LARGE_TEXT": FieldDataType.TEXT,
    "TEXTBOX_LIST": FieldDataType.TEXT,
    "FILE_UPLOAD": FieldDataType.TEXT,
    "NUMERICAL": FieldDataType.NUMBER,
    "MONETORY": FieldDataType.NUMBER,
    "MONETARY": FieldDataType.NUMBER,
    "SINGLE_OPTIONS": FieldDataType.SELECT,
    "MULTIPLE_OPTIONS": FieldDataType.SELECT,
    "RADIO": FieldDataType.SELECT,
    "DROPDOWN": FieldDataType.SELECT,
    "CHECKBOX": FieldDataType.CHECKBOX,
    "DATE": FieldDataType.DATE,
    "PHONE": FieldDataType.PHONE,
    "EMAIL": FieldDataType.EMAIL,
    "URL": FieldDataType.URL,
}


class CustomFieldSource(Protocol):
    async def fetch_custom_fields(self) -> list[dict[str, Any]]: ...


def normalize_field_name(name: str) -> str:
    return NON_ALNUM_RE.sub("", name.lower())


def map_data_type(platform_type: Optional[str]) -> FieldDataType:
    if not platform_type:
        return FieldDataType.TEXT
    return PLATFORM_DATA_TYPES.get(platform_type.upper(), FieldDataType.TEXT)


def default_aliases() -> dict[str, str]:
    """Semantic key -> schema display name for keys with no literal field."""
    settings = get_settings()
    aliases = {
        SemanticKey.ASKING_PRICE.value: "Expectations",
        SemanticKey.PRICE_RANGE.value: "Expectations",
        SemanticKey.VOICE_MEMORY.value: settings.memory_field_name,
        SemanticKey.APPOINTMENT_BOOKED.value: settings.booking_field_name,
        SemanticKey.CALL_ATTEMPT_COUNTER.value: settings.counter_field_name,
    }
    aliases.update(settings.field_aliases)
    return aliases


def _option_labels(raw: dict[str, Any]) -> list[str]:
    options = raw.get("picklistOptions") or raw.get("options") or []
    labels = []
    for option in options:
        if isinstance(option, str):
            labels.append(option)
        elif isinstance(option, dict):
            label = option.get("name") or option.get("label") or option.get("value")
            if label:
                labels.append(str(label))
    return labels


class SchemaCache:
    """Custom field definitions keyed by normalized display name."""

    def __init__(self) -> None:
        self._fields: dict[str, FieldSchema] = {}

    @property
    def populated(self) -> bool:
        return bool(self._fields)

    def load(self, fields: list[FieldSchema]) -> None:
        self._fields = {normalize_field_name(f.name): f for f in fields}

    def get(self, normalized_name: str) -> Optional[FieldSchema]:
        return self._fields.get(normalized_name)

    def __len__(self) -> int:
        return len(self._fields)


class FieldSchemaResolver:
    """Resolves semantic keys to custom field definitions."""

    def __init__(self, client: CustomFieldSource, aliases: Optional[dict[str, str]] = None) -> None:
        self.client = client
        self.cache = SchemaCache()
        source = default_aliases() if aliases is None else aliases
        self.aliases = {normalize_field_name(k): v for k, v in source.items()}
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """
        Fetch the schema if it has not been loaded yet.

        Raises:
            SchemaUnavailable: the fetch failed; the cache stays empty so
                the next pass tries again.
        """
        if self.cache.populated:
            return

        async with self._lock:
            if self.cache.populated:
                return
            try:
                raw_fields = await self.client.fetch_custom_fields()
            except CRMRequestError as e:
                logger.error("schema_fetch_failed", error=str(e))
                raise SchemaUnavailable(f"Custom field schema unavailable: {e}") from e

            fields = [
                FieldSchema(
                    id=str(raw["id"]),
                    name=raw["name"],
                    data_type=map_data_type(raw.get("dataType")),
                    options=_option_labels(raw),
                    required=bool(raw.get("isRequired", False)),
                )
                for raw in raw_fields
                if raw.get("id") and raw.get("name")
            ]
            if not fields:
                raise SchemaUnavailable("Custom field schema is empty")

            self.cache.load(fields)
            logger.info("schema_loaded", fields=len(self.cache))

    def lookup(self, semantic_key: SemanticKey | str) -> FieldSchema:
        """
        Find the custom field for ``semantic_key``.

        Raises:
            UnmappableField: no literal or aliased field exists.
        """
        key = semantic_key.value if isinstance(semantic_key, SemanticKey) else semantic_key
        normalized = normalize_field_name(key)

        schema = self.cache.get(normalized)
        if schema is not None:
            return schema

        alias = self.aliases.get(normalized)
        if alias:
            schema = self.cache.get(normalize_field_name(alias))
            if schema is not None:
                logger.debug("field_alias_used", key=key, alias=alias)
                return schema

        raise UnmappableField(key)
