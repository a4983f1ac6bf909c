"""Pydantic schemas for instructor-group invitations"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Any, Union
from enum import Enum

from learnhub.schemas.group import InstructorGroup
from learnhub.schemas.instructor import Instructor
from learnhub.schemas.user import User
from learnhub.utils.relations import (
    parse_positive_int,
    relation_document_id,
    relation_id,
    unwrap_relation,
)


class InvitationStatusEnum(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Statuses that block a second invitation on the same triple
ACTIVE_STATUSES = (InvitationStatusEnum.PENDING.value, InvitationStatusEnum.ACCEPTED.value)


def _embedded(value: Any) -> Optional[dict]:
    value = unwrap_relation(value)
    return value if isinstance(value, dict) else None


class Invitation(BaseModel):
    """Invitation projection; relations may be ids only when not populated"""
    id: int
    document_id: Optional[str] = None
    invitation_status: InvitationStatusEnum = InvitationStatusEnum.PENDING
    message: Optional[str] = None
    invited_at: Optional[str] = None
    responded_at: Optional[str] = None
    read: bool = False

    from_user_id: Optional[int] = None
    to_instructor_id: Optional[int] = None
    to_instructor_document_id: Optional[str] = None
    group_id: Optional[int] = None
    group_document_id: Optional[str] = None

    from_user: Optional[User] = None
    to_instructor: Optional[Instructor] = None
    instructor_group: Optional[InstructorGroup] = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def path_key(self) -> str:
        return self.document_id or str(self.id)

    @property
    def is_pending(self) -> bool:
        return self.invitation_status == InvitationStatusEnum.PENDING

    @classmethod
    def from_strapi(cls, record: Any) -> Optional["Invitation"]:
        record = unwrap_relation(record)
        if not isinstance(record, dict):
            return None
        numeric = parse_positive_int(record.get("id"))
        if numeric is None:
            return None

        try:
            status = InvitationStatusEnum(record.get("invitation_status") or "pending")
        except ValueError:
            status = InvitationStatusEnum.PENDING

        sender = _embedded(record.get("from_user"))
        target = _embedded(record.get("to_instructor"))
        group = _embedded(record.get("instructor_group"))

        return cls(
            id=numeric,
            document_id=record.get("documentId"),
            invitation_status=status,
            message=record.get("message"),
            invited_at=record.get("invited_at"),
            responded_at=record.get("responded_at"),
            read=bool(record.get("read") or False),
            from_user_id=relation_id(record.get("from_user")),
            to_instructor_id=relation_id(record.get("to_instructor")),
            to_instructor_document_id=relation_document_id(record.get("to_instructor")),
            group_id=relation_id(record.get("instructor_group")),
            group_document_id=relation_document_id(record.get("instructor_group")),
            from_user=User.from_strapi(sender) if sender else None,
            to_instructor=Instructor.from_strapi(target) if target else None,
            instructor_group=InstructorGroup.from_strapi(group) if group else None,
        )


class InvitationCreate(BaseModel):
    """Invite an instructor into a group"""
    group: Union[int, str] = Field(..., description="Group numeric id or document id")
    instructor: Union[int, str] = Field(..., description="Instructor numeric id or document id")
    message: Optional[str] = Field(None, max_length=500, description="Personal message with invitation")


class InvitationListResponse(BaseModel):
    """List of invitations response"""
    invitations: List[Invitation]
    total: int


class PendingCountResponse(BaseModel):
    """Unread pending invitations for the current user's instructors"""
    count: int


class InvitationActionResponse(BaseModel):
    """Outcome of accept / reject / cancel"""
    success: bool = True
    invitation_id: str
    status: InvitationStatusEnum
    group: Optional[InstructorGroup] = None
