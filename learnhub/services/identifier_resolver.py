"""
Identifier Resolver
===================
Every entity in Strapi has two identities: a numeric ``id`` (needed by
``filters[...]`` queries and relation writes) and an opaque ``documentId``
(needed for ``/{collection}/{documentId}`` paths). Callers hand us whichever
one they have, sometimes wrapped in an embedded object.

``EntityRef.parse`` is the one place that looks at the raw shape. After that,
business logic only sees ``EntityRef`` / ``int``.

Usage:
    resolver = IdentifierResolver(client)
    group_id = await resolver.resolve_id(EntityType.GROUP, "k3j9d0s8f7")
    ref = await resolver.resolve(EntityType.GROUP, 42)   # fills in document_id
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from learnhub.core.config import settings
from learnhub.core.exceptions import IdentifierResolutionError
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import by_document_id, by_id
from learnhub.utils.relations import parse_positive_int, unwrap_relation


class EntityType(str, Enum):
    USER = "user"
    INSTRUCTOR = "instructor"
    GROUP = "group"
    INVITATION = "invitation"
    USER_GROUP = "user_group"
    GROUP_REQUEST = "group_request"

    @property
    def endpoint(self) -> str:
        return {
            EntityType.USER: settings.USERS_ENDPOINT,
            EntityType.INSTRUCTOR: settings.INSTRUCTORS_ENDPOINT,
            EntityType.GROUP: settings.INSTRUCTOR_GROUPS_ENDPOINT,
            EntityType.INVITATION: settings.INSTRUCTOR_INVITATIONS_ENDPOINT,
            EntityType.USER_GROUP: settings.USER_GROUPS_ENDPOINT,
            EntityType.GROUP_REQUEST: settings.GROUP_REQUESTS_ENDPOINT,
        }[self]


@dataclass(frozen=True)
class EntityRef:
    """Canonical identifier: numeric id and/or documentId"""
    id: Optional[int] = None
    document_id: Optional[str] = None

    @classmethod
    def parse(cls, raw: Any) -> Optional["EntityRef"]:
        """
        Normalize any identifier shape into an EntityRef.

        Accepts ints, numeric strings, document-id strings, embedded records
        (``{"id": .., "documentId": ..}``), v4 ``{"data": {...}}`` envelopes,
        existing EntityRefs and projected models such as User or Instructor.
        Returns None for anything unusable: None, booleans, zero, negative
        numbers, empty strings.
        """
        if isinstance(raw, EntityRef):
            return raw if raw.id or raw.document_id else None
        if isinstance(raw, BaseModel):
            raw = {"id": getattr(raw, "id", None), "documentId": getattr(raw, "document_id", None)}

        value = unwrap_relation(raw)
        if isinstance(value, list):
            return None

        if isinstance(value, dict):
            numeric = parse_positive_int(value.get("id"))
            document_id = value.get("documentId")
            document_id = str(document_id).strip() if document_id else None
            if numeric is None and not document_id:
                return None
            return cls(id=numeric, document_id=document_id or None)

        numeric = parse_positive_int(value)
        if numeric is not None:
            return cls(id=numeric)

        if isinstance(value, str) and value.strip():
            candidate = value.strip()
            # Negative / fractional numbers are not document ids either
            if candidate.lstrip("-").replace(".", "", 1).isdigit():
                return None
            return cls(document_id=candidate)
        return None

    @property
    def key(self) -> str:
        return self.document_id or str(self.id)

    @property
    def is_complete(self) -> bool:
        return self.id is not None and bool(self.document_id)

    def __str__(self) -> str:
        return self.key


class IdentifierResolver:
    """
    Maps identifiers onto numeric ids (and document ids) for one logical
    operation. Results are memoized, so create a fresh resolver per operation.
    """

    def __init__(self, client: StrapiClient):
        self.client = client
        self._cache: Dict[Tuple[EntityType, str], EntityRef] = {}

    def _remember(self, entity_type: EntityType, ref: EntityRef) -> EntityRef:
        if ref.id is not None:
            self._cache[(entity_type, f"id:{ref.id}")] = ref
        if ref.document_id:
            self._cache[(entity_type, f"doc:{ref.document_id}")] = ref
        return ref

    def _cached(self, entity_type: EntityType, ref: EntityRef) -> Optional[EntityRef]:
        if ref.id is not None:
            hit = self._cache.get((entity_type, f"id:{ref.id}"))
            if hit:
                return hit
        if ref.document_id:
            return self._cache.get((entity_type, f"doc:{ref.document_id}"))
        return None

    def remember_record(self, entity_type: EntityType, record: Optional[Dict[str, Any]]) -> Optional[EntityRef]:
        """Seed the cache from a record that was fetched anyway"""
        ref = EntityRef.parse(record)
        if ref is None:
            return None
        return self._remember(entity_type, ref)

    async def _lookup(self, entity_type: EntityType, ref: EntityRef) -> Optional[EntityRef]:
        query = by_id(ref.id) if ref.id is not None else by_document_id(ref.document_id)
        record = await self.client.find_first(entity_type.endpoint, query)
        if not record:
            return None
        found = EntityRef.parse(record)
        if found is None or found.id is None:
            return None
        return found

    async def resolve_id(self, entity_type: EntityType, raw: Any) -> int:
        """Numeric id for raw; numeric input is returned without a lookup"""
        ref = EntityRef.parse(raw)
        if ref is None:
            raise IdentifierResolutionError(entity_type.value, raw)
        if ref.id is not None:
            return ref.id

        cached = self._cached(entity_type, ref)
        if cached and cached.id is not None:
            return cached.id

        found = await self._lookup(entity_type, ref)
        if found is None:
            logger.warning(f"Could not resolve {entity_type.value} identifier '{ref.document_id}'")
            raise IdentifierResolutionError(entity_type.value, ref.document_id)
        return self._remember(entity_type, found).id

    async def resolve(self, entity_type: EntityType, raw: Any) -> EntityRef:
        """Complete ref (id and documentId when the record has one)"""
        ref = EntityRef.parse(raw)
        if ref is None:
            raise IdentifierResolutionError(entity_type.value, raw)
        if ref.is_complete:
            return self._remember(entity_type, ref)

        cached = self._cached(entity_type, ref)
        if cached and (cached.is_complete or entity_type == EntityType.USER):
            return cached

        found = await self._lookup(entity_type, ref)
        if found is None:
            raise IdentifierResolutionError(entity_type.value, ref.key)
        return self._remember(entity_type, found)

    async def resolve_many(
        self,
        entity_type: EntityType,
        raws: Iterable[Any],
        skip_unresolved: bool = False,
    ) -> List[int]:
        """
        Resolve several identifiers concurrently, preserving input order.

        With skip_unresolved, identifiers that cannot be found are logged and
        dropped; transport failures still propagate.
        """
        raws = list(raws)
        results = await asyncio.gather(
            *(self.resolve_id(entity_type, raw) for raw in raws),
            return_exceptions=True,
        )

        resolved: List[int] = []
        for raw, result in zip(raws, results):
            if isinstance(result, IdentifierResolutionError):
                if not skip_unresolved:
                    raise result
                logger.warning(f"Skipping unresolvable {entity_type.value} identifier '{raw}'")
                continue
            if isinstance(result, BaseException):
                raise result
            if result not in resolved:
                resolved.append(result)
        return resolved
