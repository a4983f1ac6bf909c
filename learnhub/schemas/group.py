"""Pydantic schemas for instructor groups"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import ClassVar, Optional, List, Any, Tuple, Union

from learnhub.schemas.instructor import Instructor
from learnhub.schemas.user import User
from learnhub.utils.relations import (
    parse_positive_int,
    relation_id,
    relation_ids,
    unwrap_relation,
)

GROUP_NAME_MAX_LENGTH = 100


class InstructorGroup(BaseModel):
    """Instructor group projection; ``instructor_ids`` has set semantics"""
    # Owner fields consulted, in order, for the member limit
    MEMBER_LIMIT_FIELDS: ClassVar[Tuple[str, ...]] = (
        "user_group_member_limit",
        "instructor_group_member_limit",
    )

    id: int
    document_id: Optional[str] = None
    name: str = ""
    is_private: bool = False

    owner_id: Optional[int] = None
    owner: Optional[User] = None

    instructor_ids: List[int] = []
    instructors: List[Instructor] = []

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def member_ids(self) -> List[int]:
        return self.instructor_ids

    @property
    def member_count(self) -> int:
        return len(self.instructor_ids)

    @property
    def path_key(self) -> str:
        """Identifier used in ``/{collection}/{key}`` paths and for de-duplication"""
        return self.document_id or str(self.id)

    def has_member(self, instructor_id: int) -> bool:
        return instructor_id in self.instructor_ids

    @classmethod
    def from_strapi(cls, record: Any) -> Optional["InstructorGroup"]:
        record = unwrap_relation(record)
        if not isinstance(record, dict):
            numeric = parse_positive_int(record)
            return cls(id=numeric) if numeric else None
        numeric = parse_positive_int(record.get("id"))
        if numeric is None:
            return None

        owner = unwrap_relation(record.get("owner"))
        members = unwrap_relation(record.get("instructors"))
        embedded = []
        if isinstance(members, list):
            embedded = [
                Instructor.from_strapi(member) for member in members if isinstance(member, dict)
            ]

        return cls(
            id=numeric,
            document_id=record.get("documentId"),
            name=record.get("name") or "",
            is_private=bool(record.get("is_private") or False),
            owner_id=relation_id(owner),
            owner=User.from_strapi(owner) if isinstance(owner, dict) else None,
            instructor_ids=relation_ids(members),
            instructors=[member for member in embedded if member is not None],
            created_at=record.get("createdAt"),
            updated_at=record.get("updatedAt"),
        )


def normalize_group_name(name: Any) -> str:
    """Trimmed group name; raises ValueError when blank or too long"""
    if not isinstance(name, str):
        raise ValueError("Group name is required")
    trimmed = name.strip()
    if not trimmed:
        raise ValueError("Group name is required")
    if len(trimmed) > GROUP_NAME_MAX_LENGTH:
        raise ValueError(f"Group name must be at most {GROUP_NAME_MAX_LENGTH} characters")
    return trimmed


class GroupCreate(BaseModel):
    """Create a new instructor group"""
    name: str = Field(..., description="Group display name")

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return normalize_group_name(value)


class GroupUpdate(BaseModel):
    """Update group settings"""
    name: Optional[str] = None
    is_private: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return normalize_group_name(value) if value is not None else None


class GroupMembersAdd(BaseModel):
    """Add one or more instructors (numeric ids or document ids)"""
    instructor_ids: List[Union[int, str]] = Field(..., min_length=1)


class GroupListResponse(BaseModel):
    """List of groups response"""
    groups: List[InstructorGroup]
    total: int


class GroupCapacityResponse(BaseModel):
    """Group-count usage for the current user"""
    allowed: bool
    current_usage: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    message: Optional[str] = None
    plan_name: Optional[str] = None
