"""Pydantic schemas for instructor profiles"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any

from learnhub.schemas.user import User
from learnhub.utils.relations import (
    parse_positive_int,
    relation_id,
    relation_ids,
    unwrap_relation,
)

SOCIAL_FIELDS = ("youtube", "linkin", "github", "facebook", "tiktok", "instagram")


def _media_url(value: Any) -> Optional[str]:
    """Strapi media comes back as an object with ``url``, or as a plain string"""
    value = unwrap_relation(value)
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        return value.get("url")
    if isinstance(value, str) and value:
        return value
    return None


class Instructor(BaseModel):
    """Instructor profile projection"""
    id: int
    document_id: Optional[str] = None
    name: str = ""
    bio: Optional[str] = None
    avatar: Optional[str] = None

    # Owner
    user_id: Optional[int] = None
    user: Optional[User] = None

    # Socials
    youtube: Optional[str] = None
    linkin: Optional[str] = None
    github: Optional[str] = None
    facebook: Optional[str] = None
    tiktok: Optional[str] = None
    instagram: Optional[str] = None

    is_verified: bool = False
    is_active: bool = True
    collaborated_instructor_ids: List[int] = []

    model_config = ConfigDict(populate_by_name=True)

    @property
    def username(self) -> Optional[str]:
        return self.user.username if self.user else None

    @classmethod
    def from_strapi(cls, record: Any) -> Optional["Instructor"]:
        record = unwrap_relation(record)
        if not isinstance(record, dict):
            numeric = parse_positive_int(record)
            if numeric:
                return cls(id=numeric)
            return None
        numeric = parse_positive_int(record.get("id"))
        if numeric is None:
            return None

        owner = unwrap_relation(record.get("user"))
        user = User.from_strapi(owner) if isinstance(owner, dict) else None

        return cls(
            id=numeric,
            document_id=record.get("documentId"),
            name=record.get("name") or "",
            bio=record.get("bio"),
            avatar=_media_url(record.get("avatar")),
            user_id=relation_id(owner),
            user=user,
            is_verified=bool(record.get("is_verified") or False),
            is_active=record.get("is_active") is not False,
            collaborated_instructor_ids=relation_ids(record.get("collaborated_instructors")),
            **{name: record.get(name) for name in SOCIAL_FIELDS},
        )


class InstructorCreate(BaseModel):
    """Create an instructor profile for the current user"""
    name: str = Field(..., min_length=1, max_length=255)
    bio: Optional[str] = Field(None, max_length=5000)
    youtube: Optional[str] = None
    linkin: Optional[str] = None
    github: Optional[str] = None
    facebook: Optional[str] = None
    tiktok: Optional[str] = None
    instagram: Optional[str] = None


class InstructorUpdate(BaseModel):
    """Update an instructor profile"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    bio: Optional[str] = Field(None, max_length=5000)
    youtube: Optional[str] = None
    linkin: Optional[str] = None
    github: Optional[str] = None
    facebook: Optional[str] = None
    tiktok: Optional[str] = None
    instagram: Optional[str] = None
    is_active: Optional[bool] = None


class InstructorListResponse(BaseModel):
    """List of instructors response"""
    instructors: List[Instructor]
    total: int


def instructor_payload(data: BaseModel) -> Dict[str, Any]:
    """Strapi write payload from a create/update schema, unset fields dropped"""
    return data.model_dump(exclude_unset=True)
