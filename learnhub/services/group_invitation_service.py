"""
Group Invitation Service
========================
Invitations from one user to another to join a user group, stored as
``request_type=group`` rows of the user request collection.

Same state machine as instructor invitations:
    pending -> accepted | rejected | cancelled
and every transition deletes the record afterwards.

Accept order:
    fetch -> still pending? -> invitee is the acting user -> invitee's
    user_group_limit -> owner's user_group_member_limit -> add user ->
    mark accepted -> delete
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    AlreadyUserGroupMemberError,
    AuthorizationError,
    DuplicateInvitationError,
    InvitationNotFoundError,
    InvitationStateError,
    ValidationError,
)
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import StrapiQuery, by_document_id, by_id
from learnhub.schemas.invitation import ACTIVE_STATUSES, InvitationStatusEnum
from learnhub.schemas.user import User
from learnhub.schemas.user_group import GROUP_REQUEST_TYPE, GroupInvitation, UserGroup
from learnhub.services.capacity_service import CapacityEnforcer
from learnhub.services.identifier_resolver import EntityRef, EntityType, IdentifierResolver
from learnhub.services.invitation_service import sort_newest_first, utc_now_iso
from learnhub.services.membership_service import UserGroupMembershipMutator
from learnhub.services.user_group_service import UserGroupService
from learnhub.services.user_service import UserService
from learnhub.utils.relations import dedupe_records

GROUP_INVITATION_RELATIONS = ("from_user", "to_user", "user_group_group")


class GroupInvitationService:
    def __init__(
        self,
        client: StrapiClient,
        users: UserService,
        user_groups: UserGroupService,
        capacity: CapacityEnforcer,
        membership: UserGroupMembershipMutator,
    ):
        self.client = client
        self.users = users
        self.user_groups = user_groups
        self.capacity = capacity
        self.membership = membership
        self.endpoint = settings.GROUP_REQUESTS_ENDPOINT

    def _query(self, base: Optional[StrapiQuery] = None) -> StrapiQuery:
        return (base or StrapiQuery()).where("request_type", value=GROUP_REQUEST_TYPE).populate(
            *GROUP_INVITATION_RELATIONS
        )

    def _to_models(self, records: Iterable[Dict[str, Any]]) -> List[GroupInvitation]:
        return [inv for inv in (GroupInvitation.from_strapi(r) for r in records) if inv is not None]

    # ==================== Lookup ====================

    async def _fetch(self, ref: Any) -> GroupInvitation:
        parsed = EntityRef.parse(ref)
        if parsed is None:
            raise InvitationNotFoundError(ref)

        if parsed.id is not None:
            record = await self.client.find_first(self.endpoint, self._query(by_id(parsed.id)))
        else:
            record = await self.client.find_first(
                self.endpoint, self._query(by_document_id(parsed.document_id))
            )

        invitation = GroupInvitation.from_strapi(record)
        if invitation is None:
            raise InvitationNotFoundError(ref)
        return invitation

    async def get_invitation(self, ref: Any) -> GroupInvitation:
        return await self._fetch(ref)

    async def find_existing(self, from_user: Any, to_user: Any, group: Any) -> Optional[GroupInvitation]:
        """Pending or accepted invitation on the (sender, invitee, group) triple"""
        resolver = IdentifierResolver(self.client)
        from_user_id, to_user_id, group_id = await asyncio.gather(
            resolver.resolve_id(EntityType.USER, from_user),
            resolver.resolve_id(EntityType.USER, to_user),
            resolver.resolve_id(EntityType.USER_GROUP, group),
        )
        return await self._find_existing_ids(from_user_id, to_user_id, group_id)

    async def _find_existing_ids(self, from_user_id: int, to_user_id: int, group_id: int) -> Optional[GroupInvitation]:
        query = (
            StrapiQuery()
            .where("from_user", "id", value=from_user_id)
            .where("to_user", "id", value=to_user_id)
            .where("user_group_group", "id", value=group_id)
            .where_in("request_status", values=ACTIVE_STATUSES)
            .paginate(1, 1)
        )
        return GroupInvitation.from_strapi(await self.client.find_first(self.endpoint, self._query(query)))

    # ==================== Create ====================

    async def send_invitation(
        self,
        from_user: Any,
        to_user: Any,
        group: Any,
        message: Optional[str] = None,
    ) -> GroupInvitation:
        """
        Invite a user into a user group.

        Raises:
            IdentifierResolutionError: sender, invitee or group not found
            ValidationError: the sender invited themself
            DuplicateInvitationError: a pending/accepted invitation exists
            AlreadyUserGroupMemberError: the invitee already belongs to the group
            MemberLimitExceededError: the group is already full
        """
        resolver = IdentifierResolver(self.client)
        from_user_id, to_user_id, group_id = await asyncio.gather(
            resolver.resolve_id(EntityType.USER, from_user),
            resolver.resolve_id(EntityType.USER, to_user),
            resolver.resolve_id(EntityType.USER_GROUP, group),
        )
        if from_user_id == to_user_id:
            raise ValidationError("You cannot invite yourself", field="user")

        existing = await self._find_existing_ids(from_user_id, to_user_id, group_id)
        if existing is not None:
            raise DuplicateInvitationError(existing.request_status.value, existing.path_key)

        target_group = await self.user_groups.get_group(group_id)
        if target_group.has_member(to_user_id) or target_group.is_owner(to_user_id):
            raise AlreadyUserGroupMemberError(to_user_id, group_id)
        await self.capacity.ensure_member_capacity(target_group, [to_user_id])

        payload: Dict[str, Any] = {
            "request_type": GROUP_REQUEST_TYPE,
            "request_status": InvitationStatusEnum.PENDING.value,
            "from_user": from_user_id,
            "to_user": to_user_id,
            "user_group_group": group_id,
            "message": message.strip() if message and message.strip() else None,
            "invited_at": utc_now_iso(),
            "read": False,
        }
        record = await self.client.create(self.endpoint, payload, query=self._query())
        invitation = GroupInvitation.from_strapi(record)

        logger.log_invitation_event(
            "group_sent",
            invitation.path_key,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            group_id=group_id,
        )
        return invitation

    # ==================== Listings ====================

    async def _list_for(self, relation: str, user: Any) -> List[GroupInvitation]:
        user_id = await IdentifierResolver(self.client).resolve_id(EntityType.USER, user)
        page = await self.client.find(
            self.endpoint,
            self._query(StrapiQuery().where(relation, "id", value=user_id))
            .sort("invited_at", descending=True)
            .paginate(1, settings.MAX_PAGE_SIZE),
        )
        return sort_newest_first(self._to_models(dedupe_records(page.data)))

    async def list_received(self, user: Any) -> List[GroupInvitation]:
        return await self._list_for("to_user", user)

    async def list_sent(self, user: Any) -> List[GroupInvitation]:
        return await self._list_for("from_user", user)

    async def count_pending(self, user: Any) -> int:
        """Unread pending group invitations addressed to the user"""
        user_id = await IdentifierResolver(self.client).resolve_id(EntityType.USER, user)
        query = (
            StrapiQuery()
            .where("request_type", value=GROUP_REQUEST_TYPE)
            .where("to_user", "id", value=user_id)
            .where("request_status", value=InvitationStatusEnum.PENDING.value)
            .where("read", value=False)
            .paginate(1, 1)
        )
        page = await self.client.find(self.endpoint, query)
        return page.total

    # ==================== Transitions ====================

    def _ensure_invitee(self, invitation: GroupInvitation, acting_user: Optional[User]) -> None:
        if acting_user is not None and invitation.to_user_id != acting_user.id:
            raise AuthorizationError("This invitation was sent to someone else")

    async def accept_invitation(self, invitation_ref: Any, acting_user: Optional[User] = None) -> UserGroup:
        """
        Accept an invitation and join the user group.

        Raises:
            InvitationNotFoundError: no such invitation
            InvitationStateError: invitation is no longer pending
            UserGroupLimitExceededError: invitee is at their user_group_limit
            MemberLimitExceededError: the group is full
        """
        invitation = await self._fetch(invitation_ref)
        if not invitation.is_pending:
            raise InvitationStateError(invitation.path_key, invitation.request_status.value)
        self._ensure_invitee(invitation, acting_user)
        if invitation.to_user_id is None or invitation.group_id is None:
            raise ValidationError("Invitation is missing its invitee or group")

        invitee, group = await asyncio.gather(
            self.users.get_user(invitation.to_user_id),
            self.user_groups.get_group(invitation.group_document_id or invitation.group_id),
        )

        current_groups = await self.user_groups.list_groups_for_user(invitee)
        self.capacity.ensure_user_group_capacity(invitee, current_groups, target_group=group)
        await self.capacity.ensure_member_capacity(group, [invitee.id])

        updated_group = await self.membership.add_user(group, invitee.id)

        try:
            await self.client.update(
                self.endpoint,
                invitation.path_key,
                {
                    "request_status": InvitationStatusEnum.ACCEPTED.value,
                    "responded_at": utc_now_iso(),
                },
            )
            await self.client.delete(self.endpoint, invitation.path_key)
        except Exception as e:
            logger.log_error_with_context(
                e,
                context="accept_group_invitation",
                invitation_id=invitation.path_key,
                group_id=group.id,
                user_id=invitee.id,
            )
            raise

        logger.log_invitation_event("group_accepted", invitation.path_key, group_id=group.id, user_id=invitee.id)
        return updated_group

    async def reject_invitation(self, invitation_ref: Any, acting_user: Optional[User] = None) -> GroupInvitation:
        """Record the rejection, then delete the invitation"""
        invitation = await self._fetch(invitation_ref)
        self._ensure_invitee(invitation, acting_user)

        await self.client.update(
            self.endpoint,
            invitation.path_key,
            {
                "request_status": InvitationStatusEnum.REJECTED.value,
                "responded_at": utc_now_iso(),
            },
        )
        await self.client.delete(self.endpoint, invitation.path_key)
        logger.log_invitation_event("group_rejected", invitation.path_key)
        return invitation.model_copy(update={"request_status": InvitationStatusEnum.REJECTED})

    async def cancel_invitation(self, invitation_ref: Any, acting_user: Optional[User] = None) -> GroupInvitation:
        invitation = await self._fetch(invitation_ref)
        if acting_user is not None and invitation.from_user_id != acting_user.id:
            raise AuthorizationError("Only the sender can cancel this invitation")

        await self.client.delete(self.endpoint, invitation.path_key)
        logger.log_invitation_event("group_cancelled", invitation.path_key)
        return invitation.model_copy(update={"request_status": InvitationStatusEnum.CANCELLED})

    async def mark_as_read(self, invitation_ref: Any, acting_user: Optional[User] = None) -> GroupInvitation:
        invitation = await self._fetch(invitation_ref)
        self._ensure_invitee(invitation, acting_user)
        if invitation.read:
            return invitation
        await self.client.update(self.endpoint, invitation.path_key, {"read": True})
        return invitation.model_copy(update={"read": True})
