"""
Unit Tests for Strapi Query Builder
"""
import pytest

from learnhub.integrations.strapi.query import StrapiQuery, by_document_id, by_id, normalize_params


class TestStrapiQuery:
    """Test query-string generation"""

    def test_nested_filter(self):
        """Test relation filters nest the path"""
        params = StrapiQuery().where("to_instructor", "id", value=12).to_params()
        assert params == {"filters[to_instructor][id][$eq]": "12"}

    def test_operator_and_booleans(self):
        """Test custom operators and boolean formatting"""
        params = StrapiQuery().where("is_active", value=False, op="$ne").to_params()
        assert params == {"filters[is_active][$ne]": "false"}

    def test_where_in(self):
        """Test $in lists are indexed"""
        params = StrapiQuery().where_in("invitation_status", values=["pending", "accepted"]).to_params()
        assert params["filters[invitation_status][$in][0]"] == "pending"
        assert params["filters[invitation_status][$in][1]"] == "accepted"

    def test_where_any_groups(self):
        """Test each OR group gets its own $and slot"""
        params = (
            StrapiQuery()
            .where_any((("name",), "$containsi", "ada"), (("user", "username"), "$containsi", "ada"))
            .where_any((("bio",), "$containsi", "math"),)
            .to_params()
        )
        assert params["filters[$and][0][$or][0][name][$containsi]"] == "ada"
        assert params["filters[$and][0][$or][1][user][username][$containsi]"] == "ada"
        assert params["filters[$and][1][$or][0][bio][$containsi]"] == "math"

    def test_populate_sort_fields_pagination(self):
        """Test populate, sort, fields and pagination keys"""
        params = (
            StrapiQuery()
            .populate("owner", "instructors", "owner")
            .fields("updatedAt")
            .sort("invited_at", descending=True)
            .paginate(2, 50)
            .to_params()
        )
        assert params["populate[0]"] == "owner"
        assert params["populate[1]"] == "instructors"
        assert "populate[2]" not in params
        assert params["fields[0]"] == "updatedAt"
        assert params["sort[0]"] == "invited_at:desc"
        assert params["pagination[page]"] == "2"
        assert params["pagination[pageSize]"] == "50"

    def test_populate_all(self):
        """Test wildcard populate"""
        assert StrapiQuery().populate_all().to_params() == {"populate": "*"}

    def test_empty_path_rejected(self):
        """Test a filter needs a path"""
        with pytest.raises(ValueError):
            StrapiQuery().where(value=1)

    def test_copy_is_independent(self):
        """Test copies do not share state"""
        base = StrapiQuery().where("id", value=1)
        clone = base.copy().populate("owner")
        assert "populate[0]" not in base.to_params()
        assert clone.to_params()["filters[id][$eq]"] == "1"


class TestHelpers:
    """Test shortcut builders"""

    def test_by_id_and_document_id(self):
        """Test identity filters"""
        assert by_id(5).to_params() == {"filters[id][$eq]": "5"}
        assert by_document_id("abc").to_params() == {"filters[documentId][$eq]": "abc"}

    def test_normalize_params(self):
        """Test dict and None params are normalized"""
        assert normalize_params(None) == {}
        assert normalize_params({"read": True, "page": 2}) == {"read": "true", "page": "2"}
