"""
Custom Exceptions for LearnHub Groups
=====================================

Every service operation raises one of these with a human-readable message;
the API layer turns them into JSON error payloads.

Usage:
    from learnhub.core.exceptions import GroupNotFoundError, DuplicateInvitationError

    if not group:
        raise GroupNotFoundError(group_ref)

    try:
        await invitations.accept_invitation(invitation_id)
    except CapacityExceededError as e:
        logger.warning(f"Accept blocked: {e}")
        raise
"""

from typing import Optional, Any, Dict, List


class LearnHubError(Exception):
    """Base exception for all LearnHub errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(LearnHubError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(LearnHubError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Identifier & Resource Errors (404-type)
# ============================================

class IdentifierResolutionError(LearnHubError):
    """An identifier could not be mapped to a canonical numeric ID"""

    status_code = 404

    def __init__(self, entity_type: str, identifier: Any):
        super().__init__(
            f"Could not find {entity_type} '{identifier}'",
            code="IDENTIFIER_UNRESOLVED",
            details={"entity_type": entity_type, "identifier": str(identifier)}
        )


class ResourceNotFoundError(LearnHubError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Any, code: Optional[str] = None):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=code or f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""

    def __init__(self, user_id: Any):
        super().__init__("User", user_id)


class InstructorNotFoundError(ResourceNotFoundError):
    """Instructor not found"""

    def __init__(self, instructor_id: Any):
        super().__init__("Instructor", instructor_id)


class GroupNotFoundError(ResourceNotFoundError):
    """Instructor group not found"""

    def __init__(self, group_id: Any):
        super().__init__("Group", group_id)


class UserGroupNotFoundError(ResourceNotFoundError):
    """User group not found"""

    def __init__(self, group_id: Any):
        super().__init__("User group", group_id, code="USER_GROUP_NOT_FOUND")


class InvitationNotFoundError(ResourceNotFoundError):
    """Invitation not found"""

    def __init__(self, invitation_id: Any):
        super().__init__("Invitation", invitation_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(LearnHubError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(LearnHubError):
    """The requested change conflicts with current state"""

    status_code = 409

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class DuplicateInvitationError(ConflictError):
    """A pending or accepted invitation already exists for the same triple"""

    def __init__(self, existing_status: str, invitation_id: Any = None):
        if existing_status == "pending":
            message = "An invitation is already pending for this group"
            code = "INVITATION_PENDING"
        else:
            message = "You already have an accepted invitation for this group"
            code = "INVITATION_ALREADY_ACCEPTED"
        super().__init__(
            message,
            code=code,
            details={"existing_status": existing_status, "invitation_id": invitation_id}
        )
        self.existing_status = existing_status


class AlreadyGroupMemberError(ConflictError):
    """Instructor already belongs to the group"""

    def __init__(self, instructor_id: int, group_id: int):
        super().__init__(
            "Instructor is already a member of this group",
            code="ALREADY_GROUP_MEMBER",
            details={"instructor_id": instructor_id, "group_id": group_id}
        )


class AlreadyUserGroupMemberError(ConflictError):
    """User already belongs to the user group"""

    def __init__(self, user_id: int, group_id: int):
        super().__init__(
            "This member is already part of the group",
            code="ALREADY_GROUP_MEMBER",
            details={"user_id": user_id, "group_id": group_id}
        )


class InvitationStateError(ConflictError):
    """Invitation is no longer pending"""

    def __init__(self, invitation_id: Any, status: str):
        super().__init__(
            f"Invitation is already {status}",
            code="INVITATION_NOT_PENDING",
            details={"invitation_id": str(invitation_id), "status": status}
        )


class ConcurrentModificationError(ConflictError):
    """Group membership changed between read and write"""

    def __init__(self, group_id: Any):
        super().__init__(
            "The group was modified by someone else. Reload and try again.",
            code="CONCURRENT_MODIFICATION",
            details={"group_id": str(group_id)}
        )


# ============================================
# Capacity Errors
# ============================================

DEFAULT_REMEDIATION = ["upgrade", "manage_groups"]


class CapacityExceededError(LearnHubError):
    """A plan-based limit has been reached"""

    status_code = 403

    def __init__(
        self,
        message: str,
        current_usage: int,
        limit: Optional[int],
        code: str = "CAPACITY_EXCEEDED",
        remediation: Optional[List[str]] = None
    ):
        super().__init__(
            message,
            code=code,
            details={
                "current_usage": current_usage,
                "limit": limit,
                "remediation": list(remediation or DEFAULT_REMEDIATION),
            }
        )
        self.current_usage = current_usage
        self.limit = limit


class GroupLimitExceededError(CapacityExceededError):
    """User has reached the maximum number of groups"""

    def __init__(self, current_usage: int, limit: int):
        super().__init__(
            f"You've reached your instructor group limit ({current_usage} of {limit} groups used)",
            current_usage=current_usage,
            limit=limit,
            code="GROUP_LIMIT_REACHED"
        )


class MemberLimitExceededError(CapacityExceededError):
    """Group has reached its member limit"""

    def __init__(self, current_usage: int, limit: int):
        super().__init__(
            f"This group has reached its member limit ({current_usage} of {limit} members)",
            current_usage=current_usage,
            limit=limit,
            code="MEMBER_LIMIT_REACHED",
            remediation=["upgrade", "manage_members"]
        )


class UserGroupLimitExceededError(CapacityExceededError):
    """User has reached the maximum number of user groups"""

    def __init__(self, current_usage: int, limit: int):
        super().__init__(
            f"You have reached your group limit ({current_usage} of {limit} groups)",
            current_usage=current_usage,
            limit=limit,
            code="USER_GROUP_LIMIT_REACHED",
            remediation=["upgrade", "leave_group"]
        )


class InstructorLimitExceededError(CapacityExceededError):
    """User has reached the maximum number of instructor profiles"""

    def __init__(self, current_usage: int, limit: int):
        super().__init__(
            f"You've reached your instructor limit ({current_usage} of {limit} instructors)",
            current_usage=current_usage,
            limit=limit,
            code="INSTRUCTOR_LIMIT_REACHED",
            remediation=["upgrade"]
        )


# ============================================
# Strapi Service Errors
# ============================================

class StrapiServiceError(LearnHubError):
    """Strapi request failed"""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message, code="STRAPI_ERROR")
        if status is not None:
            self.details["status"] = status
        if path:
            self.details["path"] = path
        self.status = status


class StrapiUnavailableError(StrapiServiceError):
    """Strapi could not be reached or timed out"""

    status_code = 503

    def __init__(self, path: str, reason: str = ""):
        super().__init__(
            "The content service is unavailable. Please try again." + (f" ({reason})" if reason else ""),
            path=path
        )
        self.code = "STRAPI_UNAVAILABLE"


class StrapiRequestError(StrapiServiceError):
    """Strapi answered with an error status"""

    def __init__(self, status: int, message: str, path: Optional[str] = None):
        super().__init__(message or f"Content service returned {status}", status=status, path=path)
        self.code = "STRAPI_REQUEST_FAILED"


class StrapiNotFoundError(StrapiRequestError):
    """Strapi answered 404"""

    status_code = 404

    def __init__(self, path: str):
        super().__init__(404, "Not Found", path=path)
        self.code = "STRAPI_NOT_FOUND"


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: LearnHubError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
