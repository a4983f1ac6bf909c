"""
Group Invitation API

Send invitations into instructor groups and act on the ones you received.
Accept / reject / cancel are terminal: the invitation is deleted afterwards.
"""

from fastapi import APIRouter, Depends, status

from learnhub.api.dependencies import get_current_user, get_services
from learnhub.schemas.invitation import (
    Invitation,
    InvitationActionResponse,
    InvitationCreate,
    InvitationListResponse,
    InvitationStatusEnum,
    PendingCountResponse,
)
from learnhub.schemas.user import User
from learnhub.services import ServiceContainer


router = APIRouter()


@router.post("", response_model=Invitation, status_code=status.HTTP_201_CREATED)
async def send_invitation(
    invitation_data: InvitationCreate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Invite an instructor into a group.

    409 when an invitation is already pending/accepted for the same group
    and instructor, or when the instructor is already a member.
    """
    return await services.invitations.send_invitation(
        current_user,
        invitation_data.instructor,
        invitation_data.group,
        invitation_data.message,
    )


@router.get("/received", response_model=InvitationListResponse)
async def list_received_invitations(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Invitations addressed to any of the caller's instructor profiles, newest first"""
    invitations = await services.invitations.list_received_for_user(current_user)
    return InvitationListResponse(invitations=invitations, total=len(invitations))


@router.get("/sent", response_model=InvitationListResponse)
async def list_sent_invitations(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Invitations the caller has sent, newest first"""
    invitations = await services.invitations.list_sent(current_user)
    return InvitationListResponse(invitations=invitations, total=len(invitations))


@router.get("/pending-count", response_model=PendingCountResponse)
async def get_pending_count(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Unread pending invitations across the caller's instructor profiles"""
    count = await services.invitations.count_pending_for_user(current_user)
    return PendingCountResponse(count=count)


@router.post("/{invitation_ref}/accept", response_model=InvitationActionResponse)
async def accept_invitation(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Accept an invitation and join the group.

    403 GROUP_LIMIT_REACHED / MEMBER_LIMIT_REACHED when a plan limit blocks
    the join; the invitation then stays pending.
    """
    group = await services.invitations.accept_invitation(invitation_ref, acting_user=current_user)
    return InvitationActionResponse(
        invitation_id=invitation_ref,
        status=InvitationStatusEnum.ACCEPTED,
        group=group,
    )


@router.post("/{invitation_ref}/reject", response_model=InvitationActionResponse)
async def reject_invitation(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Decline an invitation you received"""
    await services.invitations.reject_invitation(invitation_ref, acting_user=current_user)
    return InvitationActionResponse(invitation_id=invitation_ref, status=InvitationStatusEnum.REJECTED)


@router.post("/{invitation_ref}/cancel", response_model=InvitationActionResponse)
async def cancel_invitation(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Withdraw an invitation you sent"""
    await services.invitations.cancel_invitation(invitation_ref, acting_user=current_user)
    return InvitationActionResponse(invitation_id=invitation_ref, status=InvitationStatusEnum.CANCELLED)


@router.post("/{invitation_ref}/read", response_model=Invitation)
async def mark_invitation_read(
    invitation_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Mark an invitation you received as read; its status does not change"""
    return await services.invitations.mark_as_read(invitation_ref, acting_user=current_user)
