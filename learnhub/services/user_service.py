"""
User Service
============
Reads users-permissions users and their active subscription.
"""

from typing import Any, Optional

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    AuthenticationError,
    StrapiRequestError,
    UserNotFoundError,
)
from learnhub.core.logging_config import logger, set_user_id
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.integrations.strapi.query import StrapiQuery, by_document_id
from learnhub.schemas.user import User, UserSubscription
from learnhub.services.identifier_resolver import EntityRef


class UserService:
    def __init__(self, client: StrapiClient):
        self.client = client

    async def find_user(self, ref: Any) -> Optional[User]:
        if isinstance(ref, User):
            return ref
        parsed = EntityRef.parse(ref)
        if parsed is None:
            return None
        if parsed.id is not None:
            # users-permissions takes the numeric id in the path
            return User.from_strapi(await self.client.get_user(parsed.id))
        users = await self.client.find_users(by_document_id(parsed.document_id))
        return User.from_strapi(users[0]) if users else None

    async def get_user(self, ref: Any) -> User:
        user = await self.find_user(ref)
        if user is None:
            raise UserNotFoundError(ref)
        return user

    async def get_current_user(self, token: str) -> User:
        """Resolve the caller from their Strapi JWT via ``/api/users/me``"""
        if not token:
            raise AuthenticationError("Missing bearer token")
        try:
            record = await self.client.get_me(token)
        except StrapiRequestError as e:
            if e.status in (401, 403):
                raise AuthenticationError("Invalid or expired token") from e
            raise

        user = User.from_strapi(record)
        if user is None:
            raise AuthenticationError("Invalid or expired token")
        set_user_id(str(user.id))
        return user

    async def get_active_subscription(self, user: Any) -> Optional[UserSubscription]:
        """Newest active subscription with its plan populated, if any"""
        user_id = user.id if isinstance(user, User) else (EntityRef.parse(user) or EntityRef()).id
        if user_id is None:
            user_id = (await self.get_user(user)).id

        query = (
            StrapiQuery()
            .where("user", "id", value=user_id)
            .where("state", value="active")
            .populate("subscription")
            .sort("createdAt", descending=True)
            .paginate(1, 1)
        )
        record = await self.client.find_first(settings.USER_SUBSCRIPTIONS_ENDPOINT, query)
        if not record:
            logger.debug(f"No active subscription for user {user_id}")
            return None
        return UserSubscription.from_strapi(record)
