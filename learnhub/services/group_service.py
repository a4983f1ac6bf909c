"""
Instructor Group Service
========================
CRUD and listings for instructor groups.

Groups are addressed like every Strapi record: numeric ids through a filter
query, document ids through the path. Relations ``owner`` and
``instructors`` are always populated so capacity checks can read the
owner's limits without a second round trip.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    AuthorizationError,
    GroupNotFoundError,
    ValidationError,
)
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import StrapiQuery, by_document_id, by_id
from learnhub.schemas.group import InstructorGroup, normalize_group_name
from learnhub.schemas.instructor import Instructor
from learnhub.schemas.user import User
from learnhub.services.capacity_service import CapacityCheck, CapacityEnforcer, UserLimits
from learnhub.services.identifier_resolver import EntityRef
from learnhub.services.instructor_service import InstructorService
from learnhub.services.user_service import UserService
from learnhub.utils.pagination import paginate_sequence

GROUP_RELATIONS = ("owner", "instructors")


def _sort_key(group: InstructorGroup) -> str:
    return group.updated_at or group.created_at or ""


def merge_groups(*collections: List[InstructorGroup]) -> List[InstructorGroup]:
    """Union of group lists, de-duplicated by document id (or id)"""
    unique: Dict[str, InstructorGroup] = {}
    for collection in collections:
        for group in collection:
            unique.setdefault(group.path_key, group)
    return list(unique.values())


class InstructorGroupService:
    def __init__(
        self,
        client: StrapiClient,
        users: UserService,
        instructors: InstructorService,
        capacity: CapacityEnforcer,
    ):
        self.client = client
        self.users = users
        self.instructors = instructors
        self.capacity = capacity
        self.endpoint = settings.INSTRUCTOR_GROUPS_ENDPOINT

    def _query(self, base: Optional[StrapiQuery] = None) -> StrapiQuery:
        return (base or StrapiQuery()).populate(*GROUP_RELATIONS)

    async def _find_many(self, query: StrapiQuery) -> List[InstructorGroup]:
        page = await self.client.find(self.endpoint, self._query(query).paginate(1, settings.MAX_PAGE_SIZE))
        return [g for g in (InstructorGroup.from_strapi(r) for r in page.data) if g is not None]

    # ==================== Lookup ====================

    async def find_group(self, ref: Any) -> Optional[InstructorGroup]:
        if isinstance(ref, InstructorGroup):
            ref = ref.document_id or ref.id
        parsed = EntityRef.parse(ref)
        if parsed is None:
            return None

        if parsed.id is not None:
            record = await self.client.find_first(self.endpoint, self._query(by_id(parsed.id)))
            return InstructorGroup.from_strapi(record)

        record = await self.client.find_one(self.endpoint, parsed.document_id, self._query())
        if record is None:
            record = await self.client.find_first(
                self.endpoint, self._query(by_document_id(parsed.document_id))
            )
        return InstructorGroup.from_strapi(record)

    async def get_group(self, ref: Any) -> InstructorGroup:
        group = await self.find_group(ref)
        if group is None:
            raise GroupNotFoundError(ref)
        return group

    # ==================== Create / update / delete ====================

    async def create_group(self, name: str, owner: Any) -> InstructorGroup:
        """
        Create an empty group owned by ``owner``.

        Raises:
            ValidationError: blank or over-long name
            GroupLimitExceededError: owner is at their group limit
        """
        try:
            clean_name = normalize_group_name(name)
        except ValueError as e:
            raise ValidationError(str(e), field="name") from e

        owner_user = owner if isinstance(owner, User) else await self.users.get_user(owner)

        current_groups = await self.list_all_groups_for_user(owner_user)
        await self.capacity.ensure_group_capacity(owner_user, current_groups)

        record = await self.client.create(
            self.endpoint,
            {"name": clean_name, "owner": owner_user.id, "instructors": []},
        )
        logger.info(f"Instructor group created: '{clean_name}' ({record.get('id')}) by user {owner_user.id}")
        return await self.get_group(record.get("documentId") or record.get("id"))

    async def _update(self, ref: Any, data: Dict[str, Any]) -> InstructorGroup:
        group = await self.get_group(ref)
        await self.client.update(self.endpoint, group.path_key, data)
        return await self.get_group(group.path_key)

    async def rename_group(self, ref: Any, name: str) -> InstructorGroup:
        try:
            clean_name = normalize_group_name(name)
        except ValueError as e:
            raise ValidationError(str(e), field="name") from e
        return await self._update(ref, {"name": clean_name})

    async def set_privacy(self, ref: Any, is_private: bool) -> InstructorGroup:
        return await self._update(ref, {"is_private": bool(is_private)})

    def ensure_owner(self, group: InstructorGroup, acting_user: Optional[User]) -> None:
        if acting_user is not None and group.owner_id != acting_user.id:
            raise AuthorizationError("Only the group owner can change this group")

    async def delete_group(self, ref: Any, acting_user: Optional[User] = None) -> None:
        group = await self.get_group(ref)
        self.ensure_owner(group, acting_user)
        await self.client.delete(self.endpoint, group.path_key)
        logger.info(f"Instructor group deleted: {group.id} ('{group.name}')")

    # ==================== Listings ====================

    async def list_owned_groups(self, user: Any) -> List[InstructorGroup]:
        user_id = user.id if isinstance(user, User) else (await self.users.get_user(user)).id
        return await self._find_many(StrapiQuery().where("owner", "id", value=user_id))

    async def list_groups_for_instructor(self, instructor: Any) -> List[InstructorGroup]:
        if isinstance(instructor, Instructor):
            instructor_id = instructor.id
        else:
            parsed = EntityRef.parse(instructor)
            instructor_id = parsed.id if parsed and parsed.id else (
                await self.instructors.get_instructor(instructor)
            ).id
        return await self._find_many(StrapiQuery().where("instructors", "id", value=instructor_id))

    async def list_all_groups_for_user(self, user: Any) -> List[InstructorGroup]:
        """Groups the user owns plus groups any of their instructors belong to"""
        user_obj = user if isinstance(user, User) else await self.users.get_user(user)
        owned, instructors = await asyncio.gather(
            self.list_owned_groups(user_obj),
            self.instructors.list_instructors_for_user(user_obj),
        )
        member_lists = await asyncio.gather(
            *(self.list_groups_for_instructor(instructor) for instructor in instructors)
        )
        return merge_groups(owned, *member_lists)

    async def list_groups_for_user_paginated(
        self,
        user: Any,
        page: int = 1,
        page_size: int = 10,
    ) -> Dict[str, Any]:
        groups = await self.list_all_groups_for_user(user)
        groups.sort(key=_sort_key, reverse=True)
        return paginate_sequence(groups, page=page, page_size=page_size)

    async def get_group_capacity(self, user: User) -> Tuple[CapacityCheck, UserLimits]:
        """Group-count usage plus the limits it was measured against"""
        groups, limits = await asyncio.gather(
            self.list_all_groups_for_user(user),
            self.capacity.get_user_limits(user),
        )
        check = await self.capacity.check_group_capacity(user, groups, limits=limits)
        return check, limits
