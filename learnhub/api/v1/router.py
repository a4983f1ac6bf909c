from fastapi import APIRouter
from learnhub.api.v1.endpoints import group_invitations, groups, invitations, instructors, user_groups

api_router = APIRouter()

api_router.include_router(groups.router, prefix="/groups", tags=["Instructor Groups"])
api_router.include_router(invitations.router, prefix="/invitations", tags=["Invitations"])
api_router.include_router(instructors.router, prefix="/instructors", tags=["Instructors"])
api_router.include_router(user_groups.router, prefix="/user-groups", tags=["User Groups"])
api_router.include_router(group_invitations.router, prefix="/group-invitations", tags=["Group Invitations"])
