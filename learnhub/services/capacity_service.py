"""
Capacity Enforcer
=================
Plan-based limits for groups, group members and instructor profiles.

Checks are advisory: they count what Strapi reports right now and reserve
nothing, so two concurrent accepts can both pass.

Limit sources (0 or absent means unlimited):
- instructor groups per user: subscription.amount_instructor_group_allowed,
                              else user.instructor_group_limit
- user groups per user:       user.user_group_limit
- instructors per user:       subscription.amount_instructor, else user.instructor_limit
- members per group:          the owner fields named by the group's
                              MEMBER_LIMIT_FIELDS, else DEFAULT_GROUP_MEMBER_LIMIT
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple, Union

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    GroupLimitExceededError,
    InstructorLimitExceededError,
    MemberLimitExceededError,
    UserGroupLimitExceededError,
)
from learnhub.core.logging_config import logger
from learnhub.schemas.group import InstructorGroup
from learnhub.schemas.user import User
from learnhub.schemas.user_group import UserGroup
from learnhub.services.user_service import UserService

AnyGroup = Union[InstructorGroup, UserGroup]


def normalize_limit(value: Optional[int]) -> Optional[int]:
    """None for unlimited (absent, zero or negative)"""
    if value is None or value <= 0:
        return None
    return value


@dataclass
class UserLimits:
    """User's current plan limits (None = unlimited)"""
    plan_name: str = "Free"
    group_limit: Optional[int] = None
    instructor_limit: Optional[int] = None
    member_limit: Optional[int] = None
    user_group_limit: Optional[int] = None


@dataclass
class CapacityCheck:
    """Result of a capacity check"""
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None  # e.g. "2 of 3 groups used"
    current_usage: int = 0
    limit: Optional[int] = None

    @property
    def remaining(self) -> Optional[int]:
        if self.limit is None:
            return None
        return max(0, self.limit - self.current_usage)


def member_limit_for(
    owner: Optional[User],
    fields: Tuple[str, ...] = InstructorGroup.MEMBER_LIMIT_FIELDS,
) -> Optional[int]:
    """Member limit a group inherits from its owner"""
    if owner is not None:
        for field in fields:
            value = getattr(owner, field, None)
            if value is not None:
                return normalize_limit(value)
    return normalize_limit(settings.DEFAULT_GROUP_MEMBER_LIMIT)


def _usage_message(current: int, limit: Optional[int], noun: str) -> str:
    if limit is None:
        return f"{current} {noun} used (unlimited)"
    return f"{current} of {limit} {noun} used"


def _group_count_check(
    current_groups: Sequence[AnyGroup],
    limit: Optional[int],
    target_group: Optional[AnyGroup],
    reason: str,
) -> CapacityCheck:
    keys = {group.path_key for group in current_groups}
    current = len(keys)
    message = _usage_message(current, limit, "groups")

    if target_group is not None and (
        target_group.path_key in keys or any(g.id == target_group.id for g in current_groups)
    ):
        return CapacityCheck(
            allowed=True, reason="already_member", message=message, current_usage=current, limit=limit
        )

    if limit is not None and current >= limit:
        return CapacityCheck(allowed=False, reason=reason, message=message, current_usage=current, limit=limit)

    return CapacityCheck(allowed=True, message=message, current_usage=current, limit=limit)


class CapacityEnforcer:
    def __init__(self, users: UserService):
        self.users = users

    async def get_user_limits(self, user: User) -> UserLimits:
        subscription = await self.users.get_active_subscription(user)
        plan = subscription.plan if subscription else None

        group_limit = user.instructor_group_limit
        instructor_limit = user.instructor_limit
        plan_name = "Free"
        if plan is not None:
            plan_name = plan.name or plan.type or "Subscription"
            if plan.amount_instructor_group_allowed is not None:
                group_limit = plan.amount_instructor_group_allowed
            if plan.amount_instructor is not None:
                instructor_limit = plan.amount_instructor

        return UserLimits(
            plan_name=plan_name,
            group_limit=normalize_limit(group_limit),
            instructor_limit=normalize_limit(instructor_limit),
            member_limit=member_limit_for(user),
            user_group_limit=normalize_limit(user.user_group_limit),
        )

    # ==================== Instructor groups per user ====================

    async def check_group_capacity(
        self,
        user: User,
        current_groups: Sequence[InstructorGroup],
        target_group: Optional[InstructorGroup] = None,
        limits: Optional[UserLimits] = None,
    ) -> CapacityCheck:
        """
        Can ``user`` create or join one more group?

        current_groups is owned ∪ member-of; duplicates (by document id) are
        counted once. Joining a group already in that set is always allowed.
        """
        if limits is None:
            limits = await self.get_user_limits(user)
        return _group_count_check(current_groups, limits.group_limit, target_group, "group_limit_reached")

    async def ensure_group_capacity(
        self,
        user: User,
        current_groups: Sequence[InstructorGroup],
        target_group: Optional[InstructorGroup] = None,
    ) -> CapacityCheck:
        check = await self.check_group_capacity(user, current_groups, target_group)
        if not check.allowed:
            logger.log_capacity_denied("groups", check.current_usage, check.limit, user_id=user.id)
            raise GroupLimitExceededError(check.current_usage, check.limit)
        return check

    # ==================== User groups per user ====================

    def check_user_group_capacity(
        self,
        user: User,
        current_groups: Sequence[UserGroup],
        target_group: Optional[UserGroup] = None,
    ) -> CapacityCheck:
        """Same counting rules as instructor groups, measured against ``user_group_limit``"""
        limit = normalize_limit(user.user_group_limit)
        return _group_count_check(current_groups, limit, target_group, "user_group_limit_reached")

    def ensure_user_group_capacity(
        self,
        user: User,
        current_groups: Sequence[UserGroup],
        target_group: Optional[UserGroup] = None,
    ) -> CapacityCheck:
        check = self.check_user_group_capacity(user, current_groups, target_group)
        if not check.allowed:
            logger.log_capacity_denied("user_groups", check.current_usage, check.limit, user_id=user.id)
            raise UserGroupLimitExceededError(check.current_usage, check.limit)
        return check

    # ==================== Members per group ====================

    async def check_member_capacity(
        self,
        group: AnyGroup,
        candidate_ids: Iterable[int] = (),
    ) -> CapacityCheck:
        """Can the group take ``candidate_ids``? Existing members don't count."""
        current = group.member_count
        new_members = {cid for cid in candidate_ids if not group.has_member(cid)}

        owner = group.owner
        if owner is None and group.owner_id is not None:
            owner = await self.users.find_user(group.owner_id)
        limit = member_limit_for(owner, group.MEMBER_LIMIT_FIELDS)

        if not new_members:
            return CapacityCheck(
                allowed=True,
                reason="already_member",
                message=_usage_message(current, limit, "members"),
                current_usage=current,
                limit=limit,
            )

        if limit is not None and current + len(new_members) > limit:
            return CapacityCheck(
                allowed=False,
                reason="member_limit_reached",
                message=_usage_message(current, limit, "members"),
                current_usage=current,
                limit=limit,
            )

        return CapacityCheck(
            allowed=True,
            message=_usage_message(current, limit, "members"),
            current_usage=current,
            limit=limit,
        )

    async def ensure_member_capacity(
        self,
        group: AnyGroup,
        candidate_ids: Iterable[int] = (),
    ) -> CapacityCheck:
        check = await self.check_member_capacity(group, candidate_ids)
        if not check.allowed:
            logger.log_capacity_denied("members", check.current_usage, check.limit, group_id=group.id)
            raise MemberLimitExceededError(check.current_usage, check.limit)
        return check

    # ==================== Instructor profiles per user ====================

    async def check_instructor_capacity(self, user: User, current_instructors: int) -> CapacityCheck:
        limits = await self.get_user_limits(user)
        limit = limits.instructor_limit
        allowed = limit is None or current_instructors < limit
        return CapacityCheck(
            allowed=allowed,
            reason=None if allowed else "instructor_limit_reached",
            message=_usage_message(current_instructors, limit, "instructors"),
            current_usage=current_instructors,
            limit=limit,
        )

    async def ensure_instructor_capacity(self, user: User, current_instructors: int) -> CapacityCheck:
        check = await self.check_instructor_capacity(user, current_instructors)
        if not check.allowed:
            logger.log_capacity_denied("instructors", check.current_usage, check.limit, user_id=user.id)
            raise InstructorLimitExceededError(check.current_usage, check.limit)
        return check
