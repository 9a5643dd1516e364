"""Tests for filter value validation."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from tableau_agent.client.tableau_client import TableauApiError
from tableau_agent.models.query import Query
from tableau_agent.tools.filter_validation import (
    ValidationFinding,
    VizqlValueLookup,
    validate_filter_values,
)


class FakeLookup:
    """Lookup backed by an in-memory field -> values mapping."""

    def __init__(self, domains, delays=None):
        self.domains = domains
        self.delays = delays or {}
        self.calls = []

    async def value_exists(self, field_caption, value, match_kind=None):
        self.calls.append((field_caption, value, match_kind))
        await asyncio.sleep(self.delays.get(value, 0))
        values = [str(v) for v in self.domains.get(field_caption, [])]
        if match_kind is None:
            return str(value) in values
        if match_kind == "startsWith":
            return any(v.startswith(value) for v in values)
        if match_kind == "endsWith":
            return any(v.endswith(value) for v in values)
        return any(value in v for v in values)

    async def sample_values(self, field_caption):
        return [str(v) for v in self.domains.get(field_caption, [])]


DOMAINS = {
    "Region": ["East", "West", "Central", "South"],
    "Category": ["Furniture", "Technology", "Office Supplies"],
}


def set_filter(field, values):
    return {"field": {"fieldCaption": field}, "filterType": "SET", "values": values}


class TestValidateFilterValues:
    """Tests for validate_filter_values."""

    @pytest.mark.asyncio
    async def test_query_without_filters(self):
        lookup = FakeLookup(DOMAINS)
        query = Query.model_validate({"fields": [{"fieldCaption": "Sales", "function": "SUM"}]})

        assert await validate_filter_values(query, lookup) == []
        assert lookup.calls == []

    @pytest.mark.asyncio
    async def test_one_missing_value_yields_one_finding(self):
        query = Query.model_validate({
            "fields": [{"fieldCaption": "Sales", "function": "SUM"}],
            "filters": [set_filter("Region", ["East"]), set_filter("Category", ["Furnture"])],
        })

        findings = await validate_filter_values(query, FakeLookup(DOMAINS))

        assert len(findings) == 1
        assert findings[0].field_name == "Category"
        assert findings[0].value == "Furnture"
        assert findings[0].suggestions == ["Furniture"]
        assert 'Did you mean: "Furniture"?' in findings[0].message

    @pytest.mark.asyncio
    async def test_all_failures_reported_in_input_order(self):
        query = Query.model_validate({
            "fields": [{"fieldCaption": "Sales"}],
            "filters": [set_filter("Region", ["North", "East", "Nowhere"]), set_filter("Category", ["Toys"])],
        })
        # Later lookups finish first; order must still follow the input.
        lookup = FakeLookup(DOMAINS, delays={"North": 0.03, "Nowhere": 0.01})

        findings = await validate_filter_values(query, lookup)

        assert [(f.field_name, f.value) for f in findings] == [
            ("Region", "North"),
            ("Region", "Nowhere"),
            ("Category", "Toys"),
        ]

    @pytest.mark.asyncio
    async def test_match_patterns_validated(self):
        query = Query.model_validate({
            "fields": [{"fieldCaption": "Sales"}],
            "filters": [{
                "field": {"fieldCaption": "Category"},
                "filterType": "MATCH",
                "startsWith": "Tech",
                "contains": "zzz",
            }],
        })
        lookup = FakeLookup(DOMAINS)

        findings = await validate_filter_values(query, lookup)

        assert ("Category", "Tech", "startsWith") in lookup.calls
        assert len(findings) == 1
        assert findings[0].value == "zzz"
        assert "contains" in findings[0].reason

    @pytest.mark.asyncio
    async def test_range_and_date_filters_exempt(self):
        query = Query.model_validate({
            "fields": [{"fieldCaption": "Sales"}],
            "filters": [
                {
                    "field": {"fieldCaption": "Profit"},
                    "filterType": "QUANTITATIVE_NUMERICAL",
                    "quantitativeFilterType": "MIN",
                    "min": 0,
                },
                {
                    "field": {"fieldCaption": "Order Date"},
                    "filterType": "DATE",
                    "periodType": "YEARS",
                    "dateRangeType": "LAST",
                },
            ],
        })
        lookup = FakeLookup(DOMAINS)

        assert await validate_filter_values(query, lookup) == []
        assert lookup.calls == []

    @pytest.mark.asyncio
    async def test_lookup_remote_error_does_not_produce_finding(self):
        query = Query.model_validate({
            "fields": [{"fieldCaption": "Sales"}],
            "filters": [set_filter("Region", ["East"])],
        })
        lookup = MagicMock()
        lookup.value_exists = AsyncMock(side_effect=TableauApiError({"errorCode": "500000", "message": "x"}))

        assert await validate_filter_values(query, lookup) == []


class TestValidationFinding:
    """Tests for ValidationFinding messages."""

    def test_message_without_suggestions(self):
        finding = ValidationFinding("Region", "North", 'The value "North" does not exist in the field.')
        assert finding.message == (
            'Filter validation failed for field "Region". The value "North" does not exist in the field.'
        )


class TestVizqlValueLookup:
    """Tests for VizqlValueLookup."""

    @pytest.mark.asyncio
    async def test_value_exists_issues_single_value_set_query(self):
        client = MagicMock()
        client.query_datasource = AsyncMock(return_value={"data": [{"Region": "East"}]})
        lookup = VizqlValueLookup(client, {"datasourceLuid": "ds1"})

        assert await lookup.value_exists("Region", "East")

        request = client.query_datasource.await_args.args[0]
        assert request["datasource"] == {"datasourceLuid": "ds1"}
        assert request["query"]["limit"] == 1
        assert request["query"]["filters"] == [
            {"field": {"fieldCaption": "Region"}, "filterType": "SET", "values": ["East"]}
        ]

    @pytest.mark.asyncio
    async def test_match_lookup_and_empty_result(self):
        client = MagicMock()
        client.query_datasource = AsyncMock(return_value={"data": []})
        lookup = VizqlValueLookup(client, {"datasourceLuid": "ds1"})

        assert not await lookup.value_exists("Region", "Ea", "startsWith")

        query_filter = client.query_datasource.await_args.args[0]["query"]["filters"][0]
        assert query_filter == {"field": {"fieldCaption": "Region"}, "filterType": "MATCH", "startsWith": "Ea"}

    @pytest.mark.asyncio
    async def test_sample_values(self):
        client = MagicMock()
        client.query_datasource = AsyncMock(return_value={"data": [{"Region": "East"}, {"Region": None}]})
        lookup = VizqlValueLookup(client, {"datasourceLuid": "ds1"}, sample_size=50)

        assert await lookup.sample_values("Region") == ["East"]
        assert client.query_datasource.await_args.args[0]["query"]["limit"] == 50
