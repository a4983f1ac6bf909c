"""Pydantic schemas for Strapi users and subscriptions"""
from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict, Any

from learnhub.utils.relations import parse_positive_int, unwrap_record, unwrap_relation


def parse_limit(value: Any) -> Optional[int]:
    """Plan limit as stored in Strapi. 0 is kept; it means unlimited downstream."""
    if value is None or isinstance(value, bool):
        return None
    if value == 0 or value == "0":
        return 0
    return parse_positive_int(value)


class User(BaseModel):
    """users-permissions user projection"""
    id: int
    document_id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None

    # Plan-derived limits
    instructor_limit: Optional[int] = None
    instructor_group_limit: Optional[int] = None
    user_group_limit: Optional[int] = None
    user_group_member_limit: Optional[int] = None
    instructor_group_member_limit: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_strapi(cls, record: Any) -> Optional["User"]:
        record = unwrap_relation(record)
        if not isinstance(record, dict):
            numeric = parse_positive_int(record)
            return cls(id=numeric) if numeric else None
        numeric = parse_positive_int(record.get("id"))
        if numeric is None:
            return None
        return cls(
            id=numeric,
            document_id=record.get("documentId"),
            username=record.get("username"),
            email=record.get("email"),
            instructor_limit=parse_limit(record.get("instructor_limit")),
            instructor_group_limit=parse_limit(record.get("instructor_group_limit")),
            user_group_limit=parse_limit(record.get("user_group_limit")),
            user_group_member_limit=parse_limit(record.get("user_group_member_limit")),
            instructor_group_member_limit=parse_limit(record.get("instructor_group_member_limit")),
        )


class SubscriptionPlan(BaseModel):
    """Subscription plan with the group/instructor allowances"""
    id: Optional[int] = None
    name: Optional[str] = None
    type: Optional[str] = None
    amount_instructor: Optional[int] = None
    amount_instructor_group_allowed: Optional[int] = None

    @classmethod
    def from_strapi(cls, record: Any) -> Optional["SubscriptionPlan"]:
        record = unwrap_relation(record)
        if not isinstance(record, dict):
            return None
        return cls(
            id=parse_positive_int(record.get("id")),
            name=record.get("name"),
            type=record.get("type"),
            amount_instructor=parse_limit(record.get("amount_instructor")),
            amount_instructor_group_allowed=parse_limit(record.get("amount_instructor_group_allowed")),
        )


class UserSubscription(BaseModel):
    """A user's subscription row (``user-subscriptions`` collection)"""
    id: Optional[int] = None
    document_id: Optional[str] = None
    state: Optional[str] = None
    plan: Optional[SubscriptionPlan] = None

    @property
    def is_active(self) -> bool:
        return self.state == "active"

    @classmethod
    def from_strapi(cls, record: Dict[str, Any]) -> "UserSubscription":
        record = unwrap_record(record) or {}
        return cls(
            id=parse_positive_int(record.get("id")),
            document_id=record.get("documentId"),
            state=record.get("state"),
            plan=SubscriptionPlan.from_strapi(record.get("subscription")),
        )
