"""Tests for listing response normalization."""

import pytest

from image_api.connectors.github.schema import (
    BareListing,
    EmptyListing,
    WrappedListing,
    parse_listing,
    version_tags,
)


class TestParseListing:
    def test_bare_array(self):
        listing = parse_listing([{"id": 1}, {"id": 2}])
        assert isinstance(listing, BareListing)
        assert listing.items == [{"id": 1}, {"id": 2}]

    def test_empty_array_is_bare(self):
        listing = parse_listing([])
        assert isinstance(listing, BareListing)
        assert listing.items == []

    @pytest.mark.parametrize("body", [None, {}, "", 0])
    def test_absent_body(self, body):
        listing = parse_listing(body)
        assert isinstance(listing, EmptyListing)
        assert listing.items == []

    def test_wrapped_object_strips_metadata(self):
        body = {
            "total_count": 2,
            "incomplete_results": False,
            "repositories": [{"name": "a"}, {"name": "b"}],
        }
        listing = parse_listing(body)
        assert isinstance(listing, WrappedListing)
        assert listing.namespace == "repositories"
        assert listing.items == [{"name": "a"}, {"name": "b"}]
        assert listing.metadata == {"total_count": 2, "incomplete_results": False}

    def test_wrapped_takes_first_remaining_key(self):
        body = {"repository_selection": "all", "items": [1], "other": [2]}
        listing = parse_listing(body)
        assert listing.namespace == "items"
        assert listing.items == [1]

    def test_metadata_only_object(self):
        listing = parse_listing({"total_count": 0, "incomplete_results": False})
        assert isinstance(listing, EmptyListing)

    def test_wrapped_non_list_value(self):
        listing = parse_listing({"message": "Not Found"})
        assert isinstance(listing, EmptyListing)

    def test_input_not_mutated(self):
        body = {"total_count": 1, "items": [1]}
        parse_listing(body)
        assert body == {"total_count": 1, "items": [1]}


class TestVersionTags:
    def test_reads_container_tags(self):
        element = {"id": 7, "metadata": {"container": {"tags": ["latest", "v1"]}}}
        assert version_tags(element) == ["latest", "v1"]

    def test_untagged_version(self):
        element = {"metadata": {"package_type": "container", "container": {"tags": []}}}
        assert version_tags(element) is None

    @pytest.mark.parametrize(
        "element",
        [{}, {"metadata": None}, {"metadata": {}}, {"metadata": {"container": {}}}, "x"],
    )
    def test_missing_metadata(self, element):
        assert version_tags(element) is None
