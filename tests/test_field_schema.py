"""Unit tests for the field schema resolver."""

import pytest

from fieldsync.errors import CRMRequestError, SchemaUnavailable, UnmappableField
from fieldsync.schemas.extraction import SemanticKey
from fieldsync.schemas.fields import FieldDataType
from fieldsync.services.field_schema import (
    FieldSchemaResolver,
    map_data_type,
    normalize_field_name,
)


class TestHelpers:

    @pytest.mark.parametrize("name,expected", [
        ("Openness to Re-list", "opennesstorelist"),
        ("openness_to_relist", "opennesstorelist"),
        ("Voice Memory", "voicememory"),
    ])
    def test_normalize(self, name, expected):
        assert normalize_field_name(name) == expected

    @pytest.mark.parametrize("platform,expected", [
        ("MONETORY", FieldDataType.NUMBER),
        ("NUMERICAL", FieldDataType.NUMBER),
        ("SINGLE_OPTIONS", FieldDataType.SELECT),
        ("RADIO", FieldDataType.SELECT),
        ("CHECKBOX", FieldDataType.CHECKBOX),
        ("DATE", FieldDataType.DATE),
        ("LARGE_TEXT", FieldDataType.TEXT),
        ("SOMETHING_NEW", FieldDataType.TEXT),
        (None, FieldDataType.TEXT),
    ])
    def test_map_data_type(self, platform, expected):
        assert map_data_type(platform) == expected


class TestResolver:

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, resolver, crm_client):
        await resolver.initialize()
        await resolver.initialize()

        crm_client.fetch_custom_fields.assert_awaited_once()
        assert resolver.cache.populated

    @pytest.mark.asyncio
    async def test_failed_fetch_leaves_cache_empty(self, resolver, crm_client, raw_custom_fields):
        crm_client.fetch_custom_fields.side_effect = CRMRequestError("down", status_code=503)

        with pytest.raises(SchemaUnavailable):
            await resolver.initialize()
        assert not resolver.cache.populated

        crm_client.fetch_custom_fields.side_effect = None
        crm_client.fetch_custom_fields.return_value = raw_custom_fields
        await resolver.initialize()
        assert resolver.cache.populated

    @pytest.mark.asyncio
    async def test_empty_schema_is_unavailable(self, resolver, crm_client):
        crm_client.fetch_custom_fields.return_value = []
        with pytest.raises(SchemaUnavailable):
            await resolver.initialize()

    @pytest.mark.asyncio
    async def test_literal_lookup(self, resolver):
        await resolver.initialize()

        schema = resolver.lookup(SemanticKey.OPENNESS_TO_RELIST)
        assert schema.id == "cf_openness"
        assert schema.data_type == FieldDataType.SELECT
        assert schema.options == ["Yes", "No", "Maybe"]

    @pytest.mark.asyncio
    async def test_alias_lookup(self, resolver):
        await resolver.initialize()

        assert resolver.lookup(SemanticKey.ASKING_PRICE).id == "cf_expectations"
        assert resolver.lookup(SemanticKey.PRICE_RANGE).id == "cf_expectations"
        assert resolver.lookup("call_attempt_counter").id == "cf_counter"

    @pytest.mark.asyncio
    async def test_unmappable(self, resolver):
        await resolver.initialize()

        with pytest.raises(UnmappableField) as exc:
            resolver.lookup(SemanticKey.BEDROOMS)
        assert exc.value.semantic_key == "bedrooms"

    @pytest.mark.asyncio
    async def test_custom_aliases(self, crm_client):
        resolver = FieldSchemaResolver(crm_client, aliases={"property_type": "Latest Call Summary"})
        await resolver.initialize()

        assert resolver.lookup(SemanticKey.PROPERTY_TYPE).id == "cf_summary"
        with pytest.raises(UnmappableField):
            resolver.lookup(SemanticKey.ASKING_PRICE)

    @pytest.mark.asyncio
    async def test_option_dicts(self, crm_client):
        crm_client.fetch_custom_fields.return_value = [
            {"id": "cf_1", "name": "Stage", "dataType": "RADIO", "options": [{"name": "Hot"}, {"name": "Cold"}]},
        ]
        resolver = FieldSchemaResolver(crm_client)
        await resolver.initialize()

        assert resolver.lookup("stage").options == ["Hot", "Cold"]
