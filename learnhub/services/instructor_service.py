"""
Instructor Service
==================
Instructor profile lookup, search and CRUD.
"""

import asyncio
from typing import Any, List, Optional

from learnhub.core.config import settings
from learnhub.core.exceptions import InstructorNotFoundError, ValidationError
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import StrapiQuery, by_document_id, by_id
from learnhub.schemas.instructor import (
    Instructor,
    InstructorCreate,
    InstructorUpdate,
    instructor_payload,
)
from learnhub.schemas.group import InstructorGroup
from learnhub.schemas.user import User
from learnhub.services.capacity_service import CapacityEnforcer
from learnhub.services.identifier_resolver import EntityRef
from learnhub.services.user_service import UserService
from learnhub.utils.relations import dedupe_records

DEFAULT_SEARCH_LIMIT = 20


def _matches(instructor: Instructor, term: str) -> bool:
    haystack = " ".join(
        part for part in (instructor.name, instructor.username, instructor.bio) if part
    ).lower()
    return all(word in haystack for word in term.lower().split())


class InstructorService:
    def __init__(self, client: StrapiClient, users: UserService, capacity: CapacityEnforcer):
        self.client = client
        self.users = users
        self.capacity = capacity
        self.endpoint = settings.INSTRUCTORS_ENDPOINT

    def _query(self, base: Optional[StrapiQuery] = None) -> StrapiQuery:
        return (base or StrapiQuery()).populate("user")

    async def find_instructor(self, ref: Any) -> Optional[Instructor]:
        """
        Numeric ids go through a filter query; document ids use the path,
        falling back to a documentId filter when the path lookup 404s.
        """
        if isinstance(ref, Instructor):
            return ref
        parsed = EntityRef.parse(ref)
        if parsed is None:
            return None

        if parsed.id is not None:
            record = await self.client.find_first(self.endpoint, self._query(by_id(parsed.id)))
            return Instructor.from_strapi(record)

        record = await self.client.find_one(self.endpoint, parsed.document_id, self._query())
        if record is None:
            record = await self.client.find_first(
                self.endpoint, self._query(by_document_id(parsed.document_id))
            )
        return Instructor.from_strapi(record)

    async def get_instructor(self, ref: Any) -> Instructor:
        instructor = await self.find_instructor(ref)
        if instructor is None:
            raise InstructorNotFoundError(ref)
        return instructor

    async def list_instructors_for_user(self, user: Any) -> List[Instructor]:
        user_id = user.id if isinstance(user, User) else (await self.users.get_user(user)).id
        page = await self.client.find(
            self.endpoint,
            self._query(StrapiQuery().where("user", "id", value=user_id).paginate(1, settings.MAX_PAGE_SIZE)),
        )
        return [i for i in (Instructor.from_strapi(r) for r in page.data) if i is not None]

    async def search_instructors(self, term: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Instructor]:
        """
        Case-insensitive search on name, owner username and bio.

        Strapi narrows by name / username; bio matches and multi-word terms
        are refined here.
        """
        term = (term or "").strip()
        if not term:
            return []

        first_word = term.split()[0]
        query = (
            self._query()
            .where_any(
                (("name",), "$containsi", first_word),
                (("user", "username"), "$containsi", first_word),
                (("bio",), "$containsi", first_word),
            )
            .where("is_active", value=False, op="$ne")
            .sort("name")
            .paginate(1, settings.MAX_PAGE_SIZE)
        )
        page = await self.client.find(self.endpoint, query)
        matches = [
            instructor
            for instructor in (Instructor.from_strapi(r) for r in page.data)
            if instructor is not None and _matches(instructor, term)
        ]
        return matches[:max(1, limit)]

    async def create_instructor(self, user: User, data: InstructorCreate) -> Instructor:
        existing = await self.list_instructors_for_user(user)
        await self.capacity.ensure_instructor_capacity(user, len(existing))

        payload = instructor_payload(data)
        payload["name"] = payload["name"].strip()
        if not payload["name"]:
            raise ValidationError("Instructor name is required", field="name")
        payload["user"] = user.id

        record = await self.client.create(self.endpoint, payload)
        logger.info(f"Instructor created: {record.get('id')} for user {user.id}")
        return await self.get_instructor(record.get("documentId") or record.get("id"))

    async def update_instructor(self, ref: Any, data: InstructorUpdate) -> Instructor:
        instructor = await self.get_instructor(ref)
        payload = instructor_payload(data)
        if not payload:
            return instructor
        await self.client.update(self.endpoint, instructor.document_id or instructor.id, payload)
        return await self.get_instructor(instructor.document_id or instructor.id)

    async def delete_instructor(self, ref: Any) -> None:
        instructor = await self.get_instructor(ref)
        await self.client.delete(self.endpoint, instructor.document_id or instructor.id)
        logger.info(f"Instructor deleted: {instructor.id}")

    async def list_collaborating_instructors(self, ref: Any) -> List[Instructor]:
        """Other members of every group the instructor belongs to"""
        instructor = await self.get_instructor(ref)
        query = (
            StrapiQuery()
            .where("instructors", "id", value=instructor.id)
            .populate("instructors")
            .paginate(1, settings.MAX_PAGE_SIZE)
        )
        page = await self.client.find(settings.INSTRUCTOR_GROUPS_ENDPOINT, query)

        collaborator_ids: List[int] = []
        for record in dedupe_records(page.data):
            group = InstructorGroup.from_strapi(record)
            if group is None:
                continue
            for member_id in group.instructor_ids:
                if member_id != instructor.id and member_id not in collaborator_ids:
                    collaborator_ids.append(member_id)

        found = await asyncio.gather(*(self.find_instructor(cid) for cid in collaborator_ids))
        return [member for member in found if member is not None]

    async def uncollaborate(self, ref: Any, collaborator_ref: Any) -> None:
        """Remove each instructor from the other's ``collaborated_instructors``"""
        instructor, collaborator = await asyncio.gather(
            self._with_collaborators(ref),
            self._with_collaborators(collaborator_ref),
        )
        for source, target in ((instructor, collaborator), (collaborator, instructor)):
            if target.id not in source.collaborated_instructor_ids:
                continue
            remaining = [cid for cid in source.collaborated_instructor_ids if cid != target.id]
            await self.client.update(
                self.endpoint,
                source.document_id or source.id,
                {"collaborated_instructors": remaining},
            )
        logger.info(f"Instructors {instructor.id} and {collaborator.id} no longer collaborate")

    async def _with_collaborators(self, ref: Any) -> Instructor:
        base = await self.get_instructor(ref)
        record = await self.client.find_first(
            self.endpoint,
            StrapiQuery().where("id", value=base.id).populate("user", "collaborated_instructors"),
        )
        instructor = Instructor.from_strapi(record)
        if instructor is None:
            raise InstructorNotFoundError(ref)
        return instructor
