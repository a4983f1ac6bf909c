# API endpoints
from . import group_invitations, groups, invitations, instructors, user_groups

__all__ = ["group_invitations", "groups", "invitations", "instructors", "user_groups"]
