"""
Instructor Group API

Create, rename and delete instructor groups, manage their members and
report the caller's group-count usage.
"""

from fastapi import APIRouter, Depends, status

from learnhub.api.dependencies import get_current_user, get_pagination, get_services
from learnhub.core.logging_config import logger
from learnhub.schemas.group import (
    GroupCapacityResponse,
    GroupCreate,
    GroupMembersAdd,
    GroupUpdate,
    InstructorGroup,
)
from learnhub.schemas.user import User
from learnhub.services import ServiceContainer
from learnhub.utils.pagination import PaginatedResponse, PaginationParams


router = APIRouter()


@router.post("", response_model=InstructorGroup, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Create a new, empty instructor group owned by the caller.

    Fails with 403 GROUP_LIMIT_REACHED when the caller's plan allows no more groups.
    """
    return await services.groups.create_group(group_data.name, current_user)


@router.get("", response_model=PaginatedResponse[InstructorGroup])
async def list_groups(
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Groups the caller owns or belongs to, most recently updated first"""
    return await services.groups.list_groups_for_user_paginated(
        current_user, pagination.page, pagination.page_size
    )


@router.get("/capacity", response_model=GroupCapacityResponse)
async def get_group_capacity(
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """How many groups the caller uses out of their plan allowance"""
    check, limits = await services.groups.get_group_capacity(current_user)
    return GroupCapacityResponse(
        allowed=check.allowed,
        current_usage=check.current_usage,
        limit=check.limit,
        remaining=check.remaining,
        message=check.message,
        plan_name=limits.plan_name,
    )


@router.get("/{group_ref}", response_model=InstructorGroup)
async def get_group(
    group_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Get a group by numeric id or document id"""
    return await services.groups.get_group(group_ref)


@router.patch("/{group_ref}", response_model=InstructorGroup)
async def update_group(
    group_ref: str,
    group_data: GroupUpdate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Rename a group or change its privacy. Owner only."""
    group = await services.groups.get_group(group_ref)
    services.groups.ensure_owner(group, current_user)

    if group_data.name is not None:
        group = await services.groups.rename_group(group.path_key, group_data.name)
    if group_data.is_private is not None:
        group = await services.groups.set_privacy(group.path_key, group_data.is_private)
    return group


@router.delete("/{group_ref}")
async def delete_group(
    group_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Delete a group. Owner only."""
    await services.groups.delete_group(group_ref, acting_user=current_user)
    logger.info(f"User {current_user.id} deleted group {group_ref}")
    return {"success": True, "message": "Group deleted"}


@router.post("/{group_ref}/instructors", response_model=InstructorGroup)
async def add_group_instructors(
    group_ref: str,
    members: GroupMembersAdd,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """
    Add instructors to a group. Owner only.

    Identifiers that cannot be resolved are skipped; instructors already in
    the group are left alone.
    """
    group = await services.groups.get_group(group_ref)
    services.groups.ensure_owner(group, current_user)
    return await services.membership.add_instructors(group, members.instructor_ids, enforce_capacity=True)


@router.delete("/{group_ref}/instructors/{instructor_ref}", response_model=InstructorGroup)
async def remove_group_instructor(
    group_ref: str,
    instructor_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Remove an instructor from a group. Owner only."""
    group = await services.groups.get_group(group_ref)
    services.groups.ensure_owner(group, current_user)
    return await services.membership.remove_instructor(group, instructor_ref)
