"""Pydantic schemas for user groups and the invitations that fill them"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import ClassVar, Optional, List, Any, Tuple, Union

from learnhub.schemas.group import normalize_group_name
from learnhub.schemas.invitation import InvitationStatusEnum
from learnhub.schemas.user import User
from learnhub.utils.relations import (
    parse_positive_int,
    relation_document_id,
    relation_id,
    relation_ids,
    unwrap_relation,
)

# ``group_types`` values that mark a record as a user group
USER_GROUP_TYPE = "group"
USER_GROUP_TYPES = (USER_GROUP_TYPE, "user")

GROUP_REQUEST_TYPE = "group"


class UserGroup(BaseModel):
    """User group projection; ``user_ids`` has set semantics"""
    MEMBER_LIMIT_FIELDS: ClassVar[Tuple[str, ...]] = ("user_group_member_limit",)

    id: int
    document_id: Optional[str] = None
    name: str = ""
    is_private: bool = False
    group_type: Optional[str] = None

    owner_id: Optional[int] = None
    owner: Optional[User] = None

    user_ids: List[int] = []
    users: List[User] = []

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def member_ids(self) -> List[int]:
        return self.user_ids

    @property
    def member_count(self) -> int:
        return len(self.user_ids)

    @property
    def path_key(self) -> str:
        return self.document_id or str(self.id)

    @property
    def is_user_group(self) -> bool:
        # Records written before group_types existed carry no type
        return self.group_type is None or self.group_type.lower() in USER_GROUP_TYPES

    def has_member(self, user_id: int) -> bool:
        return user_id in self.user_ids

    def is_owner(self, user_id: int) -> bool:
        return self.owner_id == user_id

    @classmethod
    def from_strapi(cls, record: Any) -> Optional["UserGroup"]:
        record = unwrap_relation(record)
        if not isinstance(record, dict):
            numeric = parse_positive_int(record)
            return cls(id=numeric) if numeric else None
        numeric = parse_positive_int(record.get("id"))
        if numeric is None:
            return None

        owner = unwrap_relation(record.get("owner"))
        members = unwrap_relation(record.get("users"))
        embedded = []
        if isinstance(members, list):
            embedded = [User.from_strapi(member) for member in members if isinstance(member, dict)]

        return cls(
            id=numeric,
            document_id=record.get("documentId"),
            name=record.get("name") or "",
            is_private=bool(record.get("private") or False),
            group_type=record.get("group_types"),
            owner_id=relation_id(owner),
            owner=User.from_strapi(owner) if isinstance(owner, dict) else None,
            user_ids=relation_ids(members),
            users=[member for member in embedded if member is not None],
            created_at=record.get("createdAt"),
            updated_at=record.get("updatedAt"),
        )


class UserGroupCreate(BaseModel):
    """Create a new user group"""
    name: str = Field(..., description="Group display name")
    is_private: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return normalize_group_name(value)


class UserGroupUpdate(BaseModel):
    """Update user group settings"""
    name: Optional[str] = None
    is_private: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return normalize_group_name(value) if value is not None else None


class UserGroupMembersAdd(BaseModel):
    """Add one or more users (numeric ids or document ids)"""
    user_ids: List[Union[int, str]] = Field(..., min_length=1)


# ============================================
# Group invitations (user -> user)
# ============================================

def _embedded(value: Any) -> Optional[dict]:
    value = unwrap_relation(value)
    return value if isinstance(value, dict) else None


class GroupInvitation(BaseModel):
    """Invitation from one user to another to join a user group"""
    id: int
    document_id: Optional[str] = None
    request_status: InvitationStatusEnum = InvitationStatusEnum.PENDING
    message: Optional[str] = None
    invited_at: Optional[str] = None
    responded_at: Optional[str] = None
    read: bool = False

    from_user_id: Optional[int] = None
    to_user_id: Optional[int] = None
    to_user_document_id: Optional[str] = None
    group_id: Optional[int] = None
    group_document_id: Optional[str] = None

    from_user: Optional[User] = None
    to_user: Optional[User] = None
    user_group: Optional[UserGroup] = None

    @property
    def path_key(self) -> str:
        return self.document_id or str(self.id)

    @property
    def is_pending(self) -> bool:
        return self.request_status == InvitationStatusEnum.PENDING

    @classmethod
    def from_strapi(cls, record: Any) -> Optional["GroupInvitation"]:
        record = unwrap_relation(record)
        if not isinstance(record, dict):
            return None
        numeric = parse_positive_int(record.get("id"))
        if numeric is None:
            return None

        try:
            status = InvitationStatusEnum(record.get("request_status") or "pending")
        except ValueError:
            status = InvitationStatusEnum.PENDING

        sender = _embedded(record.get("from_user"))
        target = _embedded(record.get("to_user"))
        group = _embedded(record.get("user_group_group"))

        return cls(
            id=numeric,
            document_id=record.get("documentId"),
            request_status=status,
            message=record.get("message"),
            invited_at=record.get("invited_at") or record.get("createdAt"),
            responded_at=record.get("responded_at"),
            read=bool(record.get("read") or False),
            from_user_id=relation_id(record.get("from_user")),
            to_user_id=relation_id(record.get("to_user")),
            to_user_document_id=relation_document_id(record.get("to_user")),
            group_id=relation_id(record.get("user_group_group")),
            group_document_id=relation_document_id(record.get("user_group_group")),
            from_user=User.from_strapi(sender) if sender else None,
            to_user=User.from_strapi(target) if target else None,
            user_group=UserGroup.from_strapi(group) if group else None,
        )


class GroupInvitationCreate(BaseModel):
    """Invite a user into a user group"""
    group: Union[int, str] = Field(..., description="Group numeric id or document id")
    user: Union[int, str] = Field(..., description="Invitee numeric id or document id")
    message: Optional[str] = Field(None, max_length=500, description="Personal message with invitation")


class GroupInvitationListResponse(BaseModel):
    invitations: List[GroupInvitation]
    total: int


class GroupInvitationActionResponse(BaseModel):
    """Outcome of accept / reject / cancel"""
    success: bool = True
    invitation_id: str
    status: InvitationStatusEnum
    group: Optional[UserGroup] = None


class UserGroupCapacityResponse(BaseModel):
    """How many user groups the caller belongs to, against ``user_group_limit``"""
    can_join: bool
    current_usage: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    message: Optional[str] = None
