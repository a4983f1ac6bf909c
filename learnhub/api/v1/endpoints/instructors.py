"""
Instructor API

Search instructor profiles (to pick invitees), view collaborators and
manage the caller's own profiles.
"""

from fastapi import APIRouter, Depends, Query, status

from learnhub.api.dependencies import get_current_user, get_services
from learnhub.core.exceptions import AuthorizationError
from learnhub.schemas.instructor import (
    Instructor,
    InstructorCreate,
    InstructorListResponse,
    InstructorUpdate,
)
from learnhub.schemas.user import User
from learnhub.services import ServiceContainer


router = APIRouter()


def require_profile_owner(instructor: Instructor, user: User) -> None:
    if instructor.user_id != user.id:
        raise AuthorizationError("You can only manage your own instructor profiles")


@router.get("/search", response_model=InstructorListResponse)
async def search_instructors(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Search instructors by name, username or bio"""
    instructors = await services.instructors.search_instructors(q, limit=limit)
    return InstructorListResponse(instructors=instructors, total=len(instructors))


@router.post("", response_model=Instructor, status_code=status.HTTP_201_CREATED)
async def create_instructor(
    instructor_data: InstructorCreate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Create an instructor profile. 403 INSTRUCTOR_LIMIT_REACHED when the plan is full."""
    return await services.instructors.create_instructor(current_user, instructor_data)


@router.get("/{instructor_ref}", response_model=Instructor)
async def get_instructor(
    instructor_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    return await services.instructors.get_instructor(instructor_ref)


@router.patch("/{instructor_ref}", response_model=Instructor)
async def update_instructor(
    instructor_ref: str,
    instructor_data: InstructorUpdate,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    instructor = await services.instructors.get_instructor(instructor_ref)
    require_profile_owner(instructor, current_user)
    return await services.instructors.update_instructor(instructor, instructor_data)


@router.delete("/{instructor_ref}")
async def delete_instructor(
    instructor_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    instructor = await services.instructors.get_instructor(instructor_ref)
    require_profile_owner(instructor, current_user)
    await services.instructors.delete_instructor(instructor)
    return {"success": True, "message": "Instructor deleted"}


@router.get("/{instructor_ref}/collaborators", response_model=InstructorListResponse)
async def list_collaborators(
    instructor_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Instructors sharing at least one group with this instructor"""
    collaborators = await services.instructors.list_collaborating_instructors(instructor_ref)
    return InstructorListResponse(instructors=collaborators, total=len(collaborators))


@router.delete("/{instructor_ref}/collaborators/{collaborator_ref}")
async def remove_collaborator(
    instructor_ref: str,
    collaborator_ref: str,
    current_user: User = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services)
):
    """Stop collaborating with another instructor"""
    instructor = await services.instructors.get_instructor(instructor_ref)
    require_profile_owner(instructor, current_user)
    await services.instructors.uncollaborate(instructor, collaborator_ref)
    return {"success": True}
