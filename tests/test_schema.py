"""
Tests for payload and response shape validation.
"""

import pytest

from themecrawler.schema import (
    validate_extension,
    validate_fetch_page_payload,
    validate_query_results,
)

from conftest import make_extension


class TestFetchPagePayload:
    """Test fetchThemes payload validation."""

    def test_valid_payload(self):
        assert validate_fetch_page_payload({"page": 1}) == []

    def test_extra_fields_allowed(self):
        assert validate_fetch_page_payload({"page": 12, "source": "seed"}) == []

    def test_missing_page(self):
        errors = validate_fetch_page_payload({})
        assert any("page" in err for err in errors)

    @pytest.mark.parametrize("page", ["1", 1.0, None, True, [1]])
    def test_page_must_be_integer(self, page):
        assert validate_fetch_page_payload({"page": page}) != []

    @pytest.mark.parametrize("page", [0, -3])
    def test_page_is_one_indexed(self, page):
        errors = validate_fetch_page_payload({"page": page})
        assert any(">= 1" in err for err in errors)

    @pytest.mark.parametrize("payload", [None, "page=1", 1, [{"page": 1}]])
    def test_payload_must_be_object(self, payload):
        assert validate_fetch_page_payload(payload) == ["Payload must be an object"]


class TestExtension:
    """Test extension record validation."""

    def test_valid_extension(self):
        assert validate_extension(make_extension(repository="https://github.com/a/b")) == []
        assert validate_extension(make_extension()) == []

    def test_unknown_fields_allowed(self):
        theme = make_extension()
        theme["tags"] = ["theme", "dark"]
        theme["versions"][0]["files"] = [{"assetType": "icon"}]
        assert validate_extension(theme) == []

    def test_missing_name(self):
        theme = make_extension()
        del theme["extensionName"]
        assert any("extensionName" in err for err in validate_extension(theme))

    def test_publisher_name_required(self):
        theme = make_extension()
        theme["publisher"] = {"displayName": "Someone"}
        assert any("publisherName" in err for err in validate_extension(theme))

    def test_publisher_must_be_object(self):
        theme = make_extension()
        theme["publisher"] = "sdras"
        assert any("publisher" in err for err in validate_extension(theme))

    def test_version_needs_timestamp(self):
        theme = make_extension()
        theme["versions"][0]["lastUpdated"] = 20190301
        assert any("lastUpdated" in err for err in validate_extension(theme))

    def test_property_values_must_be_strings(self):
        theme = make_extension()
        theme["versions"][0]["properties"].append({"key": "x", "value": None})
        assert any("properties[1].value" in err for err in validate_extension(theme))

    def test_empty_versions_rejected(self):
        assert validate_extension(make_extension(versions=[])) != []

    def test_statistic_value_must_be_number(self):
        theme = make_extension()
        theme["statistics"][0]["value"] = "1500"
        assert any("statistics[0].value" in err for err in validate_extension(theme))

    def test_integer_statistic_values_allowed(self):
        theme = make_extension()
        theme["statistics"][0]["value"] = 1500
        assert validate_extension(theme) == []

    def test_missing_statistics(self):
        theme = make_extension()
        del theme["statistics"]
        assert any("statistics" in err for err in validate_extension(theme))

    def test_not_an_object(self):
        assert validate_extension("night-owl") == ["Extension must be an object"]


class TestQueryResults:
    """Test catalog response envelope validation."""

    def test_valid_envelope(self):
        assert validate_query_results({"results": [{"extensions": []}]}) == []

    def test_bad_extensions_do_not_reject_envelope(self):
        data = {"results": [{"extensions": [{"broken": True}]}]}
        assert validate_query_results(data) == []

    @pytest.mark.parametrize("data", [
        None,
        {},
        {"results": []},
        {"results": [None]},
        {"results": [{"extensions": {}}]},
    ])
    def test_invalid_envelopes(self, data):
        assert validate_query_results(data) != []
