"""
Strapi payload helpers.

Strapi v4 wraps records as ``{"id": 1, "attributes": {...}}`` and relations as
``{"data": ...}``; v5 returns flat records. These helpers flatten either shape
so the rest of the package only sees plain dicts.
"""
import re
from typing import Any, Dict, Iterable, List, Optional

_NUMERIC_RE = re.compile(r"^\d+$")


def parse_positive_int(value: Any) -> Optional[int]:
    """Return value as a positive int, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else None
    if isinstance(value, str):
        stripped = value.strip()
        if _NUMERIC_RE.match(stripped):
            number = int(stripped)
            return number if number > 0 else None
    return None


def is_numeric_identifier(value: Any) -> bool:
    return parse_positive_int(value) is not None


def unwrap_record(item: Any) -> Optional[Dict[str, Any]]:
    """Flatten a single Strapi record (v4 or v5) into a plain dict."""
    if item is None:
        return None
    if isinstance(item, dict) and "data" in item and set(item.keys()) <= {"data", "meta"}:
        return unwrap_record(item["data"])
    if not isinstance(item, dict):
        return None
    attributes = item.get("attributes")
    if isinstance(attributes, dict):
        flat = {k: v for k, v in item.items() if k != "attributes"}
        for key, value in attributes.items():
            flat.setdefault(key, value)
        return flat
    return item


def unwrap_relation(value: Any) -> Any:
    """
    Normalize a relation value.

    Returns a dict for an embedded record, a list for to-many relations,
    or the raw scalar (bare id / documentId) when the relation was not populated.
    """
    if isinstance(value, dict) and "data" in value and set(value.keys()) <= {"data", "meta"}:
        value = value["data"]
    if isinstance(value, list):
        return [unwrap_relation(entry) for entry in value]
    if isinstance(value, dict):
        return unwrap_record(value)
    return value


def relation_id(value: Any) -> Optional[int]:
    """Extract a numeric id from a bare id or an embedded record."""
    value = unwrap_relation(value)
    if isinstance(value, dict):
        return parse_positive_int(value.get("id"))
    return parse_positive_int(value)


def relation_document_id(value: Any) -> Optional[str]:
    """Extract a documentId from an embedded record or a non-numeric string."""
    value = unwrap_relation(value)
    if isinstance(value, dict):
        document_id = value.get("documentId")
        return str(document_id) if document_id else None
    if isinstance(value, str) and value.strip() and not is_numeric_identifier(value):
        return value.strip()
    return None


def relation_ids(values: Any) -> List[int]:
    """Numeric ids from a to-many relation, de-duplicated in first-seen order."""
    values = unwrap_relation(values)
    if values is None:
        return []
    if not isinstance(values, list):
        values = [values]
    seen: Dict[int, None] = {}
    for entry in values:
        numeric = relation_id(entry)
        if numeric is not None:
            seen.setdefault(numeric, None)
    return list(seen)


def record_key(record: Dict[str, Any]) -> str:
    """Identity key for de-duplication: documentId when present, else the numeric id."""
    document_id = record.get("documentId")
    if document_id:
        return str(document_id)
    return str(record.get("id"))


def dedupe_records(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    unique: Dict[str, Dict[str, Any]] = {}
    for record in records:
        if record is None:
            continue
        unique.setdefault(record_key(record), record)
    return list(unique.values())
