"""
User Group Service
==================
Groups of users ("circles") stored in the same Strapi collection style as
instructor groups, told apart by ``group_types``. A user belongs to a user
group by owning it or by appearing in its ``users`` relation.
"""

import asyncio
from typing import Any, Dict, List, Optional

from learnhub.core.config import settings
from learnhub.core.exceptions import AuthorizationError, UserGroupNotFoundError, ValidationError
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import StrapiQuery, by_document_id, by_id
from learnhub.schemas.group import normalize_group_name
from learnhub.schemas.user import User
from learnhub.schemas.user_group import USER_GROUP_TYPE, USER_GROUP_TYPES, UserGroup
from learnhub.services.capacity_service import CapacityCheck, CapacityEnforcer
from learnhub.services.identifier_resolver import EntityRef
from learnhub.services.user_service import UserService
from learnhub.utils.pagination import paginate_sequence

USER_GROUP_RELATIONS = ("owner", "users")


def _sort_key(group: UserGroup) -> str:
    return group.updated_at or group.created_at or ""


class UserGroupService:
    def __init__(self, client: StrapiClient, users: UserService, capacity: CapacityEnforcer):
        self.client = client
        self.users = users
        self.capacity = capacity
        self.endpoint = settings.USER_GROUPS_ENDPOINT

    def _query(self, base: Optional[StrapiQuery] = None) -> StrapiQuery:
        return (base or StrapiQuery()).populate(*USER_GROUP_RELATIONS)

    def _typed(self, base: StrapiQuery) -> StrapiQuery:
        return base.where_in("group_types", values=USER_GROUP_TYPES)

    async def _find_many(self, query: StrapiQuery) -> List[UserGroup]:
        page = await self.client.find(
            self.endpoint,
            self._query(self._typed(query)).sort("updatedAt", descending=True).paginate(1, settings.MAX_PAGE_SIZE),
        )
        return [g for g in (UserGroup.from_strapi(r) for r in page.data) if g is not None]

    # ==================== Lookup ====================

    async def find_group(self, ref: Any) -> Optional[UserGroup]:
        """User group by numeric id or document id; instructor groups are not returned"""
        if isinstance(ref, UserGroup):
            ref = ref.document_id or ref.id
        parsed = EntityRef.parse(ref)
        if parsed is None:
            return None

        if parsed.id is not None:
            record = await self.client.find_first(self.endpoint, self._query(by_id(parsed.id)))
        else:
            record = await self.client.find_one(self.endpoint, parsed.document_id, self._query())
            if record is None:
                record = await self.client.find_first(
                    self.endpoint, self._query(by_document_id(parsed.document_id))
                )

        group = UserGroup.from_strapi(record)
        if group is not None and not group.is_user_group:
            return None
        return group

    async def get_group(self, ref: Any) -> UserGroup:
        group = await self.find_group(ref)
        if group is None:
            raise UserGroupNotFoundError(ref)
        return group

    # ==================== Create / update / delete ====================

    async def create_group(self, name: str, owner: Any, is_private: bool = False) -> UserGroup:
        """
        Create an empty user group owned by ``owner``.

        Raises:
            ValidationError: blank or over-long name
            UserGroupLimitExceededError: owner is at their user_group_limit
        """
        try:
            clean_name = normalize_group_name(name)
        except ValueError as e:
            raise ValidationError(str(e), field="name") from e

        owner_user = owner if isinstance(owner, User) else await self.users.get_user(owner)
        current_groups = await self.list_groups_for_user(owner_user)
        self.capacity.ensure_user_group_capacity(owner_user, current_groups)

        record = await self.client.create(
            self.endpoint,
            {
                "name": clean_name,
                "owner": owner_user.id,
                "group_types": USER_GROUP_TYPE,
                "users": [],
                "private": bool(is_private),
            },
        )
        logger.info(f"User group created: '{clean_name}' ({record.get('id')}) by user {owner_user.id}")
        return await self.get_group(record.get("documentId") or record.get("id"))

    async def _update(self, ref: Any, data: Dict[str, Any]) -> UserGroup:
        group = await self.get_group(ref)
        await self.client.update(self.endpoint, group.path_key, data)
        return await self.get_group(group.path_key)

    async def rename_group(self, ref: Any, name: str) -> UserGroup:
        try:
            clean_name = normalize_group_name(name)
        except ValueError as e:
            raise ValidationError(str(e), field="name") from e
        return await self._update(ref, {"name": clean_name})

    async def set_privacy(self, ref: Any, is_private: bool) -> UserGroup:
        return await self._update(ref, {"private": bool(is_private)})

    def ensure_owner(self, group: UserGroup, acting_user: Optional[User]) -> None:
        if acting_user is not None and not group.is_owner(acting_user.id):
            raise AuthorizationError("Only the group owner can change this group")

    async def delete_group(self, ref: Any, acting_user: Optional[User] = None) -> None:
        group = await self.get_group(ref)
        self.ensure_owner(group, acting_user)
        await self.client.delete(self.endpoint, group.path_key)
        logger.info(f"User group deleted: {group.id} ('{group.name}')")

    # ==================== Listings ====================

    async def list_groups_for_user(self, user: Any) -> List[UserGroup]:
        """
        Groups the user owns or is a member of, newest first.

        Owner and member lookups run by numeric id and, when known, by
        document id. A lookup that fails is logged and skipped; only if all
        of them fail is the error raised.
        """
        user_obj = user if isinstance(user, User) else await self.users.get_user(user)

        queries = [
            StrapiQuery().where("owner", "id", value=user_obj.id),
            StrapiQuery().where("users", "id", value=user_obj.id),
        ]
        if user_obj.document_id:
            queries.append(StrapiQuery().where("owner", "documentId", value=user_obj.document_id))
            queries.append(StrapiQuery().where("users", "documentId", value=user_obj.document_id))

        results = await asyncio.gather(*(self._find_many(q) for q in queries), return_exceptions=True)

        unique: Dict[str, UserGroup] = {}
        failures: List[BaseException] = []
        for result in results:
            if isinstance(result, BaseException):
                failures.append(result)
                logger.warning(f"User-group lookup failed: {type(result).__name__}: {result}")
                continue
            for group in result:
                unique.setdefault(group.path_key, group)

        if failures and len(failures) == len(results):
            raise failures[0]

        return sorted(unique.values(), key=_sort_key, reverse=True)

    async def list_groups_for_user_paginated(
        self,
        user: Any,
        page: int = 1,
        page_size: int = 10,
    ) -> Dict[str, Any]:
        groups = await self.list_groups_for_user(user)
        return paginate_sequence(groups, page=page, page_size=page_size)

    async def get_user_group_capacity(self, user: Any) -> CapacityCheck:
        """Whether the user can join one more user group, with current usage"""
        user_obj = user if isinstance(user, User) else await self.users.get_user(user)
        groups = await self.list_groups_for_user(user_obj)
        return self.capacity.check_user_group_capacity(user_obj, groups)
