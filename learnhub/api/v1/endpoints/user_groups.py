"""
User Group API

Groups of users: create and manage them, add or remove users, leave a
group, and report how many user groups the caller belongs to.
"""

from fastapi import APIRouter, Depends, status

from learnhub.api.dependencies import get_current_user, get_pagination, get_services
from learnhub.core.logging_config import logger
from learnhub.schemas.user import User
from learnhub.schemas.user_group import (
    UserGroup,
    UserGroupCapacityResponse,
    UserGroupCreate,
    UserGroupMembersAdd,
    UserGroupUpdate,
)
from learnhub.services import ServiceContainer
from learnhub.utils.pagination import PaginatedResponse, PaginationParams


router = APIRouter()


@router.post("", response_model=UserGroup, status_code=status.HTTP_201_CREATED)
async def create_user_group(
    group_data: UserGroupCreate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Create a new user group owned by the caller.

    Fails with 403 USER_GROUP_LIMIT_REACHED when the caller is at their user_group_limit.
    """
    return await services.user_groups.create_group(group_data.name, current_user, group_data.is_private)


@router.get("", response_model=PaginatedResponse[UserGroup])
async def list_user_groups(
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """User groups the caller owns or belongs to, most recently updated first"""
    return await services.user_groups.list_groups_for_user_paginated(
        current_user, pagination.page, pagination.page_size
    )


@router.get("/capacity", response_model=UserGroupCapacityResponse)
async def get_user_group_capacity(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    check = await services.user_groups.get_user_group_capacity(current_user)
    return UserGroupCapacityResponse(
        can_join=check.allowed,
        current_usage=check.current_usage,
        limit=check.limit,
        remaining=check.remaining,
        message=check.message,
    )


@router.get("/{group_ref}", response_model=UserGroup)
async def get_user_group(
    group_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    return await services.user_groups.get_group(group_ref)


@router.patch("/{group_ref}", response_model=UserGroup)
async def update_user_group(
    group_ref: str,
    group_data: UserGroupUpdate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Rename a user group or change its privacy. Owner only."""
    group = await services.user_groups.get_group(group_ref)
    services.user_groups.ensure_owner(group, current_user)

    if group_data.name is not None:
        group = await services.user_groups.rename_group(group.path_key, group_data.name)
    if group_data.is_private is not None:
        group = await services.user_groups.set_privacy(group.path_key, group_data.is_private)
    return group


@router.delete("/{group_ref}")
async def delete_user_group(
    group_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Delete a user group. Owner only."""
    await services.user_groups.delete_group(group_ref, acting_user=current_user)
    logger.info(f"User {current_user.id} deleted user group {group_ref}")
    return {"success": True, "message": "Group deleted"}


@router.post("/{group_ref}/users", response_model=UserGroup)
async def add_user_group_users(
    group_ref: str,
    members: UserGroupMembersAdd,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Add users to a group directly. Owner only.

    Unknown identifiers are skipped. 403 MEMBER_LIMIT_REACHED when the
    owner's user_group_member_limit would be exceeded.
    """
    group = await services.user_groups.get_group(group_ref)
    services.user_groups.ensure_owner(group, current_user)
    return await services.user_membership.add_users(group, members.user_ids, enforce_capacity=True)


@router.delete("/{group_ref}/users/{user_ref}", response_model=UserGroup)
async def remove_user_group_user(
    group_ref: str,
    user_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Remove a user from a group. Owner only."""
    group = await services.user_groups.get_group(group_ref)
    services.user_groups.ensure_owner(group, current_user)
    return await services.user_membership.remove_user(group, user_ref)


@router.post("/{group_ref}/leave", response_model=UserGroup)
async def leave_user_group(
    group_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Leave a group you are a member of; the owner has to delete it instead"""
    return await services.user_membership.leave_group(group_ref, current_user)
