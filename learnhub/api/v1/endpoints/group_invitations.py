"""
User Group Invitation API

Invite other users into your user groups and act on the invitations you
received. Accept / reject / cancel are terminal: the invitation is deleted
afterwards.
"""

from fastapi import APIRouter, Depends, status

from learnhub.api.dependencies import get_current_user, get_services
from learnhub.schemas.invitation import InvitationStatusEnum, PendingCountResponse
from learnhub.schemas.user import User
from learnhub.schemas.user_group import (
    GroupInvitation,
    GroupInvitationActionResponse,
    GroupInvitationCreate,
    GroupInvitationListResponse,
)
from learnhub.services import ServiceContainer


router = APIRouter()


@router.post("", response_model=GroupInvitation, status_code=status.HTTP_201_CREATED)
async def send_group_invitation(
    invitation_data: GroupInvitationCreate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Invite a user into a user group.

    409 when an invitation is already pending/accepted or the user is already
    in the group; 403 MEMBER_LIMIT_REACHED when the group is full.
    """
    return await services.group_invitations.send_invitation(
        current_user,
        invitation_data.user,
        invitation_data.group,
        invitation_data.message,
    )


@router.get("/received", response_model=GroupInvitationListResponse)
async def list_received_group_invitations(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    invitations = await services.group_invitations.list_received(current_user)
    return GroupInvitationListResponse(invitations=invitations, total=len(invitations))


@router.get("/sent", response_model=GroupInvitationListResponse)
async def list_sent_group_invitations(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    invitations = await services.group_invitations.list_sent(current_user)
    return GroupInvitationListResponse(invitations=invitations, total=len(invitations))


@router.get("/pending-count", response_model=PendingCountResponse)
async def get_pending_group_invitation_count(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Unread pending group invitations addressed to the caller"""
    count = await services.group_invitations.count_pending(current_user)
    return PendingCountResponse(count=count)


@router.post("/{invitation_ref}/accept", response_model=GroupInvitationActionResponse)
async def accept_group_invitation(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Accept an invitation and join the group.

    403 USER_GROUP_LIMIT_REACHED / MEMBER_LIMIT_REACHED when a limit blocks
    the join; the invitation then stays pending.
    """
    group = await services.group_invitations.accept_invitation(invitation_ref, acting_user=current_user)
    return GroupInvitationActionResponse(
        invitation_id=invitation_ref,
        status=InvitationStatusEnum.ACCEPTED,
        group=group,
    )


@router.post("/{invitation_ref}/reject", response_model=GroupInvitationActionResponse)
async def reject_group_invitation(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    await services.group_invitations.reject_invitation(invitation_ref, acting_user=current_user)
    return GroupInvitationActionResponse(invitation_id=invitation_ref, status=InvitationStatusEnum.REJECTED)


@router.post("/{invitation_ref}/cancel", response_model=GroupInvitationActionResponse)
async def cancel_group_invitation(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Withdraw an invitation you sent"""
    await services.group_invitations.cancel_invitation(invitation_ref, acting_user=current_user)
    return GroupInvitationActionResponse(invitation_id=invitation_ref, status=InvitationStatusEnum.CANCELLED)


@router.post("/{invitation_ref}/read", response_model=GroupInvitation)
async def mark_group_invitation_read(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    return await services.group_invitations.mark_as_read(invitation_ref, acting_user=current_user)
