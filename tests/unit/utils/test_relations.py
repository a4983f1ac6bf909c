"""
Unit Tests for Strapi Payload Helpers
Tests for: positive-int parsing, v4/v5 record flattening, relation ids, de-duplication
"""
import pytest

from learnhub.utils.relations import (
    dedupe_records,
    is_numeric_identifier,
    parse_positive_int,
    record_key,
    relation_document_id,
    relation_id,
    relation_ids,
    unwrap_record,
    unwrap_relation,
)


class TestParsePositiveInt:
    """Test numeric identifier parsing"""

    @pytest.mark.parametrize("value,expected", [
        (7, 7),
        ("42", 42),
        (" 9 ", 9),
        (3.0, 3),
    ])
    def test_accepts_positive_numbers(self, value, expected):
        """Test ints, numeric strings and whole floats are accepted"""
        assert parse_positive_int(value) == expected

    @pytest.mark.parametrize("value", [None, True, False, 0, -5, "-5", "1.5", "", "abc", 2.5, [], {}])
    def test_rejects_everything_else(self, value):
        """Test zero, negatives, booleans and non-numbers are rejected"""
        assert parse_positive_int(value) is None

    def test_is_numeric_identifier(self):
        """Test numeric identifier detection"""
        assert is_numeric_identifier("12") is True
        assert is_numeric_identifier("k3j9d0s8f7") is False


class TestUnwrapRecord:
    """Test record flattening"""

    def test_v5_record_unchanged(self):
        """Test flat records pass through"""
        record = {"id": 1, "documentId": "abc", "name": "Algebra"}
        assert unwrap_record(record) == record

    def test_v4_attributes_flattened(self):
        """Test v4 attributes are merged into the top level"""
        record = {"id": 1, "attributes": {"name": "Algebra", "documentId": "abc"}}
        assert unwrap_record(record) == {"id": 1, "name": "Algebra", "documentId": "abc"}

    def test_data_envelope_unwrapped(self):
        """Test {data, meta} envelopes are removed"""
        body = {"data": {"id": 3, "attributes": {"name": "x"}}, "meta": {}}
        assert unwrap_record(body) == {"id": 3, "name": "x"}

    def test_non_dict_returns_none(self):
        """Test scalars are not records"""
        assert unwrap_record(None) is None
        assert unwrap_record(5) is None


class TestRelations:
    """Test relation extraction"""

    def test_relation_id_from_shapes(self):
        """Test ids from bare ids, embedded records and v4 envelopes"""
        assert relation_id(4) == 4
        assert relation_id("4") == 4
        assert relation_id({"id": 4, "documentId": "d4"}) == 4
        assert relation_id({"data": {"id": 4, "attributes": {}}}) == 4
        assert relation_id({"data": None}) is None

    def test_relation_document_id(self):
        """Test document ids from embedded records and strings"""
        assert relation_document_id({"id": 1, "documentId": "doc1"}) == "doc1"
        assert relation_document_id("doc1") == "doc1"
        assert relation_document_id("12") is None
        assert relation_document_id(None) is None

    def test_relation_ids_dedupes_in_order(self):
        """Test to-many relations keep first-seen order without duplicates"""
        members = [{"id": 3}, 1, "3", {"id": 2}, None]
        assert relation_ids(members) == [3, 1, 2]

    def test_relation_ids_v4_envelope(self):
        """Test to-many v4 relations"""
        members = {"data": [{"id": 5, "attributes": {"name": "a"}}, {"id": 6, "attributes": {}}]}
        assert relation_ids(members) == [5, 6]

    def test_unwrap_relation_list(self):
        """Test lists of envelopes are unwrapped element-wise"""
        assert unwrap_relation([{"id": 1, "attributes": {"x": 1}}]) == [{"id": 1, "x": 1}]


class TestDedupe:
    """Test record de-duplication"""

    def test_record_key_prefers_document_id(self):
        """Test documentId wins over numeric id"""
        assert record_key({"id": 1, "documentId": "a"}) == "a"
        assert record_key({"id": 1}) == "1"

    def test_dedupe_keeps_first(self):
        """Test the first record per key is kept"""
        records = [
            {"id": 1, "documentId": "a", "v": 1},
            {"id": 2, "documentId": "b"},
            {"id": 1, "documentId": "a", "v": 2},
            None,
        ]
        result = dedupe_records(records)
        assert [r["documentId"] for r in result] == ["a", "b"]
        assert result[0]["v"] == 1
