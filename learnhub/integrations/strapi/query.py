"""
Strapi query-string builder.

Strapi list endpoints take bracketed parameters:

    filters[to_instructor][id][$eq]=12
    filters[$or][0][name][$containsi]=ada
    filters[invitation_status][$in][0]=pending
    populate[0]=owner
    sort[0]=invited_at:desc
    pagination[page]=1&pagination[pageSize]=25

Usage:
    query = (
        StrapiQuery()
        .where("to_instructor", "id", value=12)
        .where_in("invitation_status", values=["pending", "accepted"])
        .populate("from_user", "to_instructor", "instructor_group")
        .sort("invited_at", descending=True)
    )
    params = query.to_params()
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

Condition = Tuple[Sequence[str], str, Any]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _filter_key(prefix: str, path: Sequence[str], operator: str) -> str:
    segments = "".join(f"[{segment}]" for segment in path)
    return f"{prefix}{segments}[{operator}]"


class StrapiQuery:
    """Fluent builder for Strapi REST query parameters"""

    def __init__(self):
        self._params: Dict[str, str] = {}
        self._or_groups = 0
        self._populate: List[str] = []
        self._sort: List[str] = []
        self._fields: List[str] = []

    def where(self, *path: str, value: Any, op: str = "$eq") -> "StrapiQuery":
        """Add an AND-ed filter on a (possibly nested) field path."""
        if not path:
            raise ValueError("Filter path is required")
        self._params[_filter_key("filters", path, op)] = _format_value(value)
        return self

    def where_in(self, *path: str, values: Iterable[Any]) -> "StrapiQuery":
        for index, value in enumerate(values):
            key = _filter_key("filters", path, "$in") + f"[{index}]"
            self._params[key] = _format_value(value)
        return self

    def where_any(self, *conditions: Condition) -> "StrapiQuery":
        """
        Add an OR group. Each condition is ``(path, operator, value)``.

        Several calls produce several OR groups combined with AND, using
        ``$and`` to keep the groups apart.
        """
        if not conditions:
            return self
        group = self._or_groups
        self._or_groups += 1
        for index, (path, operator, value) in enumerate(conditions):
            prefix = f"filters[$and][{group}][$or][{index}]"
            self._params[_filter_key(prefix, path, operator)] = _format_value(value)
        return self

    def populate(self, *relations: str) -> "StrapiQuery":
        for relation in relations:
            if relation not in self._populate:
                self._populate.append(relation)
        return self

    def populate_all(self) -> "StrapiQuery":
        self._populate = ["*"]
        return self

    def fields(self, *names: str) -> "StrapiQuery":
        for name in names:
            if name not in self._fields:
                self._fields.append(name)
        return self

    def sort(self, field: str, descending: bool = False) -> "StrapiQuery":
        self._sort.append(f"{field}:{'desc' if descending else 'asc'}")
        return self

    def paginate(self, page: int = 1, page_size: int = 25) -> "StrapiQuery":
        self._params["pagination[page]"] = str(max(1, page))
        self._params["pagination[pageSize]"] = str(max(1, page_size))
        return self

    def to_params(self) -> Dict[str, str]:
        params = dict(self._params)
        if self._populate == ["*"]:
            params["populate"] = "*"
        else:
            for index, relation in enumerate(self._populate):
                params[f"populate[{index}]"] = relation
        for index, name in enumerate(self._fields):
            params[f"fields[{index}]"] = name
        for index, entry in enumerate(self._sort):
            params[f"sort[{index}]"] = entry
        return params

    def copy(self) -> "StrapiQuery":
        clone = StrapiQuery()
        clone._params = dict(self._params)
        clone._or_groups = self._or_groups
        clone._populate = list(self._populate)
        clone._sort = list(self._sort)
        clone._fields = list(self._fields)
        return clone

    def __repr__(self) -> str:
        return f"<StrapiQuery {self.to_params()}>"


def by_id(numeric_id: int) -> StrapiQuery:
    return StrapiQuery().where("id", value=numeric_id)


def by_document_id(document_id: str) -> StrapiQuery:
    return StrapiQuery().where("documentId", value=document_id)


def normalize_params(query: Optional[Any]) -> Dict[str, str]:
    if query is None:
        return {}
    if isinstance(query, StrapiQuery):
        return query.to_params()
    return {key: _format_value(value) for key, value in dict(query).items()}
