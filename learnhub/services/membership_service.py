"""
Membership Mutator
==================
Maintains a group's member relation (``instructors`` on instructor groups,
``users`` on user groups) as a set of numeric ids.

Strapi has no add/remove-member endpoint, so every change is
read current array -> compute new array -> PUT the whole array.
Before the PUT the group's ``updatedAt`` is read again; if another write
landed in between, ConcurrentModificationError is raised rather than
overwriting it (MEMBERSHIP_VERSION_CHECK). A write can still slip in between
that re-read and the PUT.
"""

from typing import Any, Iterable, List, Optional

from learnhub.core.config import settings
from learnhub.core.exceptions import ConcurrentModificationError, ValidationError
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import by_id
from learnhub.schemas.group import InstructorGroup
from learnhub.schemas.user_group import UserGroup
from learnhub.services.capacity_service import AnyGroup, CapacityEnforcer
from learnhub.services.group_service import InstructorGroupService
from learnhub.services.identifier_resolver import EntityType, IdentifierResolver
from learnhub.services.user_group_service import UserGroupService


class GroupMembershipMutator:
    """Set-semantics updates of one to-many member relation"""

    relation = "instructors"
    member_type = EntityType.INSTRUCTOR

    def __init__(self, client: StrapiClient, groups: Any, capacity: Optional[CapacityEnforcer] = None):
        self.client = client
        self.groups = groups
        self.capacity = capacity
        self.endpoint = groups.endpoint

    async def _assert_unchanged(self, group: AnyGroup) -> None:
        if not settings.MEMBERSHIP_VERSION_CHECK or not group.updated_at:
            return
        current = await self.client.find_first(self.endpoint, by_id(group.id).fields("updatedAt"))
        if current is None or current.get("updatedAt") != group.updated_at:
            logger.warning(
                f"Group {group.id} changed during membership update "
                f"({group.updated_at} -> {(current or {}).get('updatedAt')})"
            )
            raise ConcurrentModificationError(group.path_key)

    async def _write(self, group: AnyGroup, member_ids: List[int]) -> AnyGroup:
        await self._assert_unchanged(group)
        await self.client.update(self.endpoint, group.path_key, {self.relation: member_ids})
        return await self.groups.get_group(group.path_key)

    async def add_members(
        self,
        group: Any,
        member_refs: Iterable[Any],
        resolver: Optional[IdentifierResolver] = None,
        enforce_capacity: bool = False,
    ) -> AnyGroup:
        """
        Add members to a group (set union).

        Unresolvable identifiers are skipped with a warning. When every id is
        already a member nothing is written. With enforce_capacity the owner's
        member limit is checked first (MemberLimitExceededError).
        """
        resolver = resolver or IdentifierResolver(self.client)
        target = await self.groups.get_group(group)
        member_ids = await resolver.resolve_many(self.member_type, member_refs, skip_unresolved=True)
        return await self._add_resolved(target, member_ids, enforce_capacity)

    async def add_member(
        self,
        group: Any,
        member_ref: Any,
        resolver: Optional[IdentifierResolver] = None,
        enforce_capacity: bool = False,
    ) -> AnyGroup:
        """Add a single member; an unresolvable id raises IdentifierResolutionError"""
        resolver = resolver or IdentifierResolver(self.client)
        target = await self.groups.get_group(group)
        member_id = await resolver.resolve_id(self.member_type, member_ref)
        return await self._add_resolved(target, [member_id], enforce_capacity)

    async def _add_resolved(
        self,
        group: AnyGroup,
        member_ids: List[int],
        enforce_capacity: bool = False,
    ) -> AnyGroup:
        if enforce_capacity and self.capacity is not None:
            await self.capacity.ensure_member_capacity(group, member_ids)

        merged = list(group.member_ids)
        for member_id in member_ids:
            if member_id not in merged:
                merged.append(member_id)

        if len(merged) == len(group.member_ids):
            logger.debug(f"Group {group.id}: no membership change")
            return group

        updated = await self._write(group, merged)
        logger.info(
            f"Group {group.id}: added {self.relation} {[i for i in merged if i not in group.member_ids]}"
        )
        return updated

    async def remove_member(
        self,
        group: Any,
        member_ref: Any,
        resolver: Optional[IdentifierResolver] = None,
    ) -> AnyGroup:
        """Remove a member (set difference); removing a non-member writes nothing"""
        resolver = resolver or IdentifierResolver(self.client)
        target = await self.groups.get_group(group)
        member_id = await resolver.resolve_id(self.member_type, member_ref)

        if not target.has_member(member_id):
            return target

        remaining = [i for i in target.member_ids if i != member_id]
        updated = await self._write(target, remaining)
        logger.info(f"Group {target.id}: removed {self.member_type.value} {member_id}")
        return updated


class MembershipMutator(GroupMembershipMutator):
    """Instructor membership of instructor groups"""

    relation = "instructors"
    member_type = EntityType.INSTRUCTOR

    def __init__(
        self,
        client: StrapiClient,
        groups: InstructorGroupService,
        capacity: Optional[CapacityEnforcer] = None,
    ):
        super().__init__(client, groups, capacity)

    async def add_instructors(
        self,
        group: Any,
        instructor_refs: Iterable[Any],
        resolver: Optional[IdentifierResolver] = None,
        enforce_capacity: bool = False,
    ) -> InstructorGroup:
        return await self.add_members(group, instructor_refs, resolver, enforce_capacity)

    async def add_instructor(
        self,
        group: Any,
        instructor_ref: Any,
        resolver: Optional[IdentifierResolver] = None,
        enforce_capacity: bool = False,
    ) -> InstructorGroup:
        return await self.add_member(group, instructor_ref, resolver, enforce_capacity)

    async def remove_instructor(
        self,
        group: Any,
        instructor_ref: Any,
        resolver: Optional[IdentifierResolver] = None,
    ) -> InstructorGroup:
        return await self.remove_member(group, instructor_ref, resolver)


class UserGroupMembershipMutator(GroupMembershipMutator):
    """User membership of user groups"""

    relation = "users"
    member_type = EntityType.USER

    def __init__(
        self,
        client: StrapiClient,
        groups: UserGroupService,
        capacity: Optional[CapacityEnforcer] = None,
    ):
        super().__init__(client, groups, capacity)

    async def add_users(
        self,
        group: Any,
        user_refs: Iterable[Any],
        resolver: Optional[IdentifierResolver] = None,
        enforce_capacity: bool = False,
    ) -> UserGroup:
        return await self.add_members(group, user_refs, resolver, enforce_capacity)

    async def add_user(
        self,
        group: Any,
        user_ref: Any,
        resolver: Optional[IdentifierResolver] = None,
        enforce_capacity: bool = False,
    ) -> UserGroup:
        return await self.add_member(group, user_ref, resolver, enforce_capacity)

    async def remove_user(
        self,
        group: Any,
        user_ref: Any,
        resolver: Optional[IdentifierResolver] = None,
    ) -> UserGroup:
        return await self.remove_member(group, user_ref, resolver)

    async def leave_group(self, group: Any, user: Any) -> UserGroup:
        """The user removes themself. The owner has to delete the group instead."""
        resolver = IdentifierResolver(self.client)
        target = await self.groups.get_group(group)
        user_id = await resolver.resolve_id(EntityType.USER, user)
        if target.is_owner(user_id):
            raise ValidationError("The owner cannot leave the group; delete it instead")
        return await self.remove_member(target, user_id, resolver)
