"""
Value Coercion & Validation.

Converts an extracted value into the shape its target custom field
accepts, or raises InvalidCoercion so the caller can drop the field with a
warning.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Callable, Optional

from dateutil import parser as date_parser

from fieldsync.config import get_settings
from fieldsync.errors import InvalidCoercion
from fieldsync.schemas.fields import FieldDataType, FieldSchema

settings = get_settings()

NUMBER_RE = re.compile(r"-?\d[\d,]*(?:\.\d+)?")
UNIT_MULTIPLIERS = (
    (re.compile(r"^\s*(?:million|mil|m)\b", re.IGNORECASE), 1_000_000),
    (re.compile(r"^\s*(?:thousand|k)\b", re.IGNORECASE), 1_000),
)
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[a-z]{2,}$")
PHONE_ALLOWED_RE = re.compile(r"^[\d\s()+.\-]+$")
MIN_PHONE_DIGITS = 7

TRUE_TOKENS = frozenset({"true", "yes", "y", "1", "on", "checked", "booked", "confirmed"})
FALSE_TOKENS = frozenset({"false", "no", "n", "0", "off", "unchecked"})


def coerce_value(value: Any, schema: FieldSchema) -> Any:
    """
    Coerce ``value`` for the field described by ``schema``.

    Raises:
        InvalidCoercion: if the value cannot be represented in the
            field's data type.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidCoercion(schema.name, value, "empty value")

    coercer = _COERCERS.get(schema.data_type, _to_text)
    return coercer(value, schema)


def _to_text(value: Any, schema: FieldSchema) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value).strip()[: settings.text_max_length].strip()


def _to_number(value: Any, schema: FieldSchema) -> int | float:
    if isinstance(value, bool):
        raise InvalidCoercion(schema.name, value, "boolean is not a number")
    if isinstance(value, (int, float)):
        return value

    text = str(value)
    match = NUMBER_RE.search(text)
    if not match:
        raise InvalidCoercion(schema.name, value, "no numeric token")

    number = float(match.group(0).replace(",", ""))
    # Unit suffixes only count on currency amounts; a bare "23 m" stays 23.
    if "$" in text:
        tail = text[match.end():]
        for pattern, multiplier in UNIT_MULTIPLIERS:
            if pattern.match(tail):
                number *= multiplier
                break
    return int(number) if number.is_integer() else number


def _to_select(value: Any, schema: FieldSchema) -> str:
    text = str(value).strip()
    if not schema.options:
        return text
    option = find_matching_option(text, schema.options)
    if option is None:
        raise InvalidCoercion(schema.name, value, "no matching option")
    return option


def find_matching_option(value: str, options: list[str]) -> Optional[str]:
    """Exact (case-insensitive) match first, then containment either way."""
    lowered = value.strip().lower()
    for option in options:
        if option.strip().lower() == lowered:
            return option
    for option in options:
        candidate = option.strip().lower()
        if candidate and (candidate in lowered or lowered in candidate):
            return option
    return None


def _to_checkbox(value: Any, schema: FieldSchema) -> bool:
    if isinstance(value, bool):
        return value
    token = str(value).strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise InvalidCoercion(schema.name, value, "not a boolean token")


def _to_date(value: Any, schema: FieldSchema) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date_parser.parse(str(value)).date().isoformat()
    except (ValueError, OverflowError) as e:
        raise InvalidCoercion(schema.name, value, "unparseable date") from e


def _to_url(value: Any, schema: FieldSchema) -> str:
    text = str(value).strip()
    if any(ch.isspace() for ch in text):
        raise InvalidCoercion(schema.name, value, "url contains whitespace")
    if not text.lower().startswith(("http://", "https://")):
        text = f"https://{text}"
    host = text.split("://", 1)[1].split("/", 1)[0]
    if "." not in host:
        raise InvalidCoercion(schema.name, value, "url host has no dot")
    return text


def _to_email(value: Any, schema: FieldSchema) -> str:
    text = str(value).strip().lower()
    if not EMAIL_RE.match(text):
        raise InvalidCoercion(schema.name, value, "not an email address")
    return text


def _to_phone(value: Any, schema: FieldSchema) -> str:
    text = str(value).strip()
    if not PHONE_ALLOWED_RE.match(text):
        raise InvalidCoercion(schema.name, value, "unexpected characters in phone")
    if sum(ch.isdigit() for ch in text) < MIN_PHONE_DIGITS:
        raise InvalidCoercion(schema.name, value, "too few digits")
    return text


_COERCERS: dict[FieldDataType, Callable[[Any, FieldSchema], Any]] = {
    FieldDataType.TEXT: _to_text,
    FieldDataType.NUMBER: _to_number,
    FieldDataType.SELECT: _to_select,
    FieldDataType.CHECKBOX: _to_checkbox,
    FieldDataType.DATE: _to_date,
    FieldDataType.URL: _to_url,
    FieldDataType.EMAIL: _to_email,
    FieldDataType.PHONE: _to_phone,
}
