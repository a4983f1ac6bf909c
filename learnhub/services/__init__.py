"""
Service wiring.

The services form a small dependency graph on top of one StrapiClient:

    UserService
      -> CapacityEnforcer
        -> InstructorService
          -> InstructorGroupService
            -> MembershipMutator
              -> InvitationService
        -> UserGroupService
          -> UserGroupMembershipMutator
            -> GroupInvitationService
"""
from dataclasses import dataclass

from learnhub.integrations.strapi.client import StrapiClient
from learnhub.services.capacity_service import CapacityEnforcer
from learnhub.services.group_invitation_service import GroupInvitationService
from learnhub.services.group_service import InstructorGroupService
from learnhub.services.instructor_service import InstructorService
from learnhub.services.invitation_service import InvitationService
from learnhub.services.membership_service import MembershipMutator, UserGroupMembershipMutator
from learnhub.services.user_group_service import UserGroupService
from learnhub.services.user_service import UserService


@dataclass
class ServiceContainer:
    client: StrapiClient
    users: UserService
    capacity: CapacityEnforcer
    instructors: InstructorService
    groups: InstructorGroupService
    membership: MembershipMutator
    invitations: InvitationService
    user_groups: UserGroupService
    user_membership: UserGroupMembershipMutator
    group_invitations: GroupInvitationService


def build_services(client: StrapiClient) -> ServiceContainer:
    users = UserService(client)
    capacity = CapacityEnforcer(users)
    instructors = InstructorService(client, users, capacity)
    groups = InstructorGroupService(client, users, instructors, capacity)
    membership = MembershipMutator(client, groups, capacity)
    invitations = InvitationService(client, users, instructors, groups, capacity, membership)
    user_groups = UserGroupService(client, users, capacity)
    user_membership = UserGroupMembershipMutator(client, user_groups, capacity)
    group_invitations = GroupInvitationService(client, users, user_groups, capacity, user_membership)
    return ServiceContainer(
        client=client,
        users=users,
        capacity=capacity,
        instructors=instructors,
        groups=groups,
        membership=membership,
        invitations=invitations,
        user_groups=user_groups,
        user_membership=user_membership,
        group_invitations=group_invitations,
    )


__all__ = ["ServiceContainer", "build_services"]
