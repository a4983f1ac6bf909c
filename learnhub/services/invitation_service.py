"""
Invitation Lifecycle Manager
============================
Invitations to join an instructor group.

State machine:
    pending -> accepted | rejected | cancelled
Every transition is terminal and the record is deleted afterwards; this
layer keeps no audit row.

Accepting is strictly sequential:
    fetch -> still pending? -> resolve instructor & group -> invitee group
    capacity -> group member capacity -> add member -> mark accepted -> delete
Nothing is written before the membership mutation, so a failed check leaves
the invitation pending. A failure after the membership write is logged and
propagated; it is not rolled back.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    AlreadyGroupMemberError,
    AuthorizationError,
    DuplicateInvitationError,
    InvitationNotFoundError,
    InvitationStateError,
    ValidationError,
)
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import StrapiQuery, by_document_id, by_id
from learnhub.schemas.group import InstructorGroup
from learnhub.schemas.instructor import Instructor
from learnhub.schemas.invitation import (
    ACTIVE_STATUSES,
    Invitation,
    InvitationStatusEnum,
)
from learnhub.schemas.user import User
from learnhub.services.capacity_service import CapacityEnforcer
from learnhub.services.group_service import InstructorGroupService
from learnhub.services.identifier_resolver import EntityRef, EntityType, IdentifierResolver
from learnhub.services.instructor_service import InstructorService
from learnhub.services.membership_service import MembershipMutator
from learnhub.services.user_service import UserService
from learnhub.utils.relations import dedupe_records, relation_document_id, relation_id

INVITATION_RELATIONS = ("from_user", "to_instructor", "instructor_group")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def sort_newest_first(invitations: List[Any]) -> List[Any]:
    return sorted(invitations, key=lambda inv: inv.invited_at or "", reverse=True)


class InvitationService:
    def __init__(
        self,
        client: StrapiClient,
        users: UserService,
        instructors: InstructorService,
        groups: InstructorGroupService,
        capacity: CapacityEnforcer,
        membership: MembershipMutator,
    ):
        self.client = client
        self.users = users
        self.instructors = instructors
        self.groups = groups
        self.capacity = capacity
        self.membership = membership
        self.endpoint = settings.INSTRUCTOR_INVITATIONS_ENDPOINT

    def _query(self, base: Optional[StrapiQuery] = None) -> StrapiQuery:
        return (base or StrapiQuery()).populate(*INVITATION_RELATIONS)

    def _to_models(self, records: Iterable[Dict[str, Any]]) -> List[Invitation]:
        return [inv for inv in (Invitation.from_strapi(r) for r in records) if inv is not None]

    # ==================== Lookup ====================

    async def _fetch_record(self, ref: Any) -> Dict[str, Any]:
        parsed = EntityRef.parse(ref)
        if parsed is None:
            raise InvitationNotFoundError(ref)

        if parsed.id is not None:
            record = await self.client.find_first(self.endpoint, self._query(by_id(parsed.id)))
        else:
            record = await self.client.find_one(self.endpoint, parsed.document_id, self._query())
            if record is None:
                record = await self.client.find_first(
                    self.endpoint, self._query(by_document_id(parsed.document_id))
                )

        if not record:
            raise InvitationNotFoundError(ref)
        return record

    async def get_invitation(self, ref: Any) -> Invitation:
        return Invitation.from_strapi(await self._fetch_record(ref))

    async def find_existing(
        self,
        from_user: Any,
        to_instructor: Any,
        group: Any,
        resolver: Optional[IdentifierResolver] = None,
    ) -> Optional[Invitation]:
        """Pending or accepted invitation on the (sender, instructor, group) triple"""
        resolver = resolver or IdentifierResolver(self.client)
        from_user_id, instructor_id, group_id = await asyncio.gather(
            resolver.resolve_id(EntityType.USER, from_user),
            resolver.resolve_id(EntityType.INSTRUCTOR, to_instructor),
            resolver.resolve_id(EntityType.GROUP, group),
        )
        return await self._find_existing_ids(from_user_id, instructor_id, group_id)

    async def _find_existing_ids(self, from_user_id: int, instructor_id: int, group_id: int) -> Optional[Invitation]:
        query = (
            StrapiQuery()
            .where("from_user", "id", value=from_user_id)
            .where("to_instructor", "id", value=instructor_id)
            .where("instructor_group", "id", value=group_id)
            .where_in("invitation_status", values=ACTIVE_STATUSES)
            .paginate(1, 1)
        )
        return Invitation.from_strapi(await self.client.find_first(self.endpoint, query))

    # ==================== Create ====================

    async def send_invitation(
        self,
        from_user: Any,
        to_instructor: Any,
        group: Any,
        message: Optional[str] = None,
    ) -> Invitation:
        """
        Invite an instructor into a group.

        Raises:
            IdentifierResolutionError: sender, instructor or group not found
            DuplicateInvitationError: a pending/accepted invitation exists
            AlreadyGroupMemberError: the instructor is already in the group
        """
        resolver = IdentifierResolver(self.client)
        from_user_id, instructor_id, group_id = await asyncio.gather(
            resolver.resolve_id(EntityType.USER, from_user),
            resolver.resolve_id(EntityType.INSTRUCTOR, to_instructor),
            resolver.resolve_id(EntityType.GROUP, group),
        )

        existing = await self._find_existing_ids(from_user_id, instructor_id, group_id)
        if existing is not None:
            logger.info(
                f"Duplicate invitation blocked: user {from_user_id} -> instructor {instructor_id} "
                f"in group {group_id} ({existing.invitation_status.value})"
            )
            raise DuplicateInvitationError(existing.invitation_status.value, existing.path_key)

        target_group = await self.groups.get_group(group_id)
        if target_group.has_member(instructor_id):
            raise AlreadyGroupMemberError(instructor_id, group_id)

        payload: Dict[str, Any] = {
            "from_user": from_user_id,
            "to_instructor": instructor_id,
            "instructor_group": group_id,
            "invitation_status": InvitationStatusEnum.PENDING.value,
            "message": message.strip() if message and message.strip() else None,
            "invited_at": utc_now_iso(),
            "read": False,
        }
        record = await self.client.create(self.endpoint, payload, query=self._query())
        invitation = Invitation.from_strapi(record)

        logger.log_invitation_event(
            "sent",
            invitation.path_key,
            from_user_id=from_user_id,
            to_instructor_id=instructor_id,
            group_id=group_id,
        )
        return invitation

    # ==================== Listings ====================

    async def _scan_for_instructors(self, targets: List[EntityRef]) -> List[Dict[str, Any]]:
        """Page through every invitation and match the relation client-side"""
        wanted_ids = {ref.id for ref in targets if ref.id is not None}
        wanted_docs = {ref.document_id for ref in targets if ref.document_id}

        matches: List[Dict[str, Any]] = []
        page_number = 1
        while True:
            page = await self.client.find(
                self.endpoint,
                self._query().paginate(page_number, settings.INVITATION_SCAN_PAGE_SIZE),
            )
            for record in page.data:
                target = record.get("to_instructor")
                if relation_id(target) in wanted_ids or relation_document_id(target) in wanted_docs:
                    matches.append(record)
            page_count = int(page.pagination.get("pageCount") or 1)
            if page_number >= page_count or not page.data:
                break
            page_number += 1
        return matches

    async def list_received(self, instructor_refs: Iterable[Any]) -> List[Invitation]:
        """
        Invitations addressed to any of the given instructors, newest first.

        Strapi's relation filters are not always consistent, so each instructor
        is looked up by numeric id and by document id (plus a full scan when
        INVITATION_FULL_SCAN_FALLBACK is on) and the results are merged.
        A strategy that fails is logged and skipped; only if every strategy
        fails is the error raised.
        """
        resolver = IdentifierResolver(self.client)
        targets = await asyncio.gather(
            *(resolver.resolve(EntityType.INSTRUCTOR, ref) for ref in instructor_refs)
        )
        if not targets:
            return []

        strategies = []
        for ref in targets:
            strategies.append(self.client.find(
                self.endpoint,
                self._query(StrapiQuery().where("to_instructor", "id", value=ref.id))
                .sort("invited_at", descending=True)
                .paginate(1, settings.MAX_PAGE_SIZE),
            ))
            if ref.document_id:
                strategies.append(self.client.find(
                    self.endpoint,
                    self._query(StrapiQuery().where("to_instructor", "documentId", value=ref.document_id))
                    .sort("invited_at", descending=True)
                    .paginate(1, settings.MAX_PAGE_SIZE),
                ))
        if settings.INVITATION_FULL_SCAN_FALLBACK:
            strategies.append(self._scan_for_instructors(list(targets)))

        results = await asyncio.gather(*strategies, return_exceptions=True)

        records: List[Dict[str, Any]] = []
        failures: List[BaseException] = []
        for result in results:
            if isinstance(result, BaseException):
                failures.append(result)
                logger.warning(f"Received-invitations lookup failed: {type(result).__name__}: {result}")
                continue
            records.extend(result if isinstance(result, list) else result.data)

        if failures and len(failures) == len(results):
            raise failures[0]

        return sort_newest_first(self._to_models(dedupe_records(records)))

    async def list_received_for_user(self, user: Any) -> List[Invitation]:
        """Invitations addressed to any instructor profile the user owns"""
        instructors = await self.instructors.list_instructors_for_user(user)
        if not instructors:
            return []
        return await self.list_received([EntityRef(i.id, i.document_id) for i in instructors])

    async def list_sent(self, user: Any) -> List[Invitation]:
        user_id = await IdentifierResolver(self.client).resolve_id(EntityType.USER, user)
        page = await self.client.find(
            self.endpoint,
            self._query(StrapiQuery().where("from_user", "id", value=user_id))
            .sort("invited_at", descending=True)
            .paginate(1, settings.MAX_PAGE_SIZE),
        )
        return sort_newest_first(self._to_models(dedupe_records(page.data)))

    async def count_pending(self, instructor: Any) -> int:
        """Unread pending invitations for one instructor"""
        instructor_id = await IdentifierResolver(self.client).resolve_id(EntityType.INSTRUCTOR, instructor)
        query = (
            StrapiQuery()
            .where("to_instructor", "id", value=instructor_id)
            .where("invitation_status", value=InvitationStatusEnum.PENDING.value)
            .where("read", value=False)
            .paginate(1, 1)
        )
        page = await self.client.find(self.endpoint, query)
        return page.total

    async def count_pending_for_user(self, user: Any) -> int:
        instructors = await self.instructors.list_instructors_for_user(user)
        counts = await asyncio.gather(*(self.count_pending(i.id) for i in instructors))
        return sum(counts)

    # ==================== Transitions ====================

    async def _resolve_parties(self, record: Dict[str, Any]) -> Tuple[Instructor, InstructorGroup]:
        """Target instructor and group; relations may arrive as bare ids"""
        instructor_ref = EntityRef.parse(record.get("to_instructor"))
        group_ref = EntityRef.parse(record.get("instructor_group"))
        if instructor_ref is None or group_ref is None:
            raise ValidationError("Invitation is missing its instructor or group")

        instructor, group = await asyncio.gather(
            self.instructors.get_instructor(instructor_ref.document_id or instructor_ref.id),
            self.groups.get_group(group_ref.document_id or group_ref.id),
        )
        return instructor, group

    def _ensure_invitee(self, instructor: Instructor, acting_user: Optional[User]) -> None:
        if acting_user is not None and instructor.user_id != acting_user.id:
            raise AuthorizationError("This invitation was sent to someone else")

    async def accept_invitation(self, invitation_ref: Any, acting_user: Optional[User] = None) -> InstructorGroup:
        """
        Accept an invitation and join the group.

        Raises:
            InvitationNotFoundError: no such invitation
            InvitationStateError: invitation is no longer pending
            GroupLimitExceededError: invitee is at their group limit
            MemberLimitExceededError: the group is full
        """
        record = await self._fetch_record(invitation_ref)
        invitation = Invitation.from_strapi(record)
        if not invitation.is_pending:
            raise InvitationStateError(invitation.path_key, invitation.invitation_status.value)

        instructor, group = await self._resolve_parties(record)
        self._ensure_invitee(instructor, acting_user)

        invitee = instructor.user
        if invitee is None and instructor.user_id is not None:
            invitee = await self.users.find_user(instructor.user_id)
        invitee = invitee or acting_user

        if invitee is not None:
            current_groups = await self.groups.list_all_groups_for_user(invitee)
            await self.capacity.ensure_group_capacity(invitee, current_groups, target_group=group)
        else:
            logger.warning(f"Instructor {instructor.id} has no owner; skipping group-count check")

        await self.capacity.ensure_member_capacity(group, [instructor.id])

        updated_group = await self.membership.add_instructor(group, instructor.id)

        try:
            await self.client.update(
                self.endpoint,
                invitation.path_key,
                {
                    "invitation_status": InvitationStatusEnum.ACCEPTED.value,
                    "responded_at": utc_now_iso(),
                },
            )
            await self.client.delete(self.endpoint, invitation.path_key)
        except Exception as e:
            logger.log_error_with_context(
                e,
                context="accept_invitation",
                invitation_id=invitation.path_key,
                group_id=group.id,
                instructor_id=instructor.id,
            )
            raise

        logger.log_invitation_event(
            "accepted",
            invitation.path_key,
            group_id=group.id,
            instructor_id=instructor.id,
        )
        return updated_group

    async def _ensure_record_invitee(self, record: Dict[str, Any], acting_user: Optional[User]) -> None:
        """Only the user owning the target instructor profile may act on the invitation"""
        if acting_user is None:
            return
        instructor_ref = EntityRef.parse(record.get("to_instructor"))
        if instructor_ref is None:
            raise ValidationError("Invitation is missing its instructor")
        instructor = await self.instructors.get_instructor(instructor_ref.document_id or instructor_ref.id)
        self._ensure_invitee(instructor, acting_user)

    async def reject_invitation(self, invitation_ref: Any, acting_user: Optional[User] = None) -> Invitation:
        record = await self._fetch_record(invitation_ref)
        invitation = Invitation.from_strapi(record)
        await self._ensure_record_invitee(record, acting_user)

        await self.client.delete(self.endpoint, invitation.path_key)
        logger.log_invitation_event("rejected", invitation.path_key)
        return invitation.model_copy(update={"invitation_status": InvitationStatusEnum.REJECTED})

    async def cancel_invitation(self, invitation_ref: Any, acting_user: Optional[User] = None) -> Invitation:
        invitation = Invitation.from_strapi(await self._fetch_record(invitation_ref))

        if acting_user is not None and invitation.from_user_id != acting_user.id:
            raise AuthorizationError("Only the sender can cancel this invitation")

        await self.client.delete(self.endpoint, invitation.path_key)
        logger.log_invitation_event("cancelled", invitation.path_key)
        return invitation.model_copy(update={"invitation_status": InvitationStatusEnum.CANCELLED})

    async def mark_as_read(self, invitation_ref: Any, acting_user: Optional[User] = None) -> Invitation:
        """Set ``read``; the status is untouched and repeated calls write nothing"""
        record = await self._fetch_record(invitation_ref)
        invitation = Invitation.from_strapi(record)
        await self._ensure_record_invitee(record, acting_user)
        if invitation.read:
            return invitation
        await self.client.update(self.endpoint, invitation.path_key, {"read": True})
        return invitation.model_copy(update={"read": True})
