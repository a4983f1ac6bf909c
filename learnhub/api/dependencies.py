from fastapi import Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from learnhub.core.exceptions import AuthenticationError
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.schemas.user import User
from learnhub.services import ServiceContainer, build_services
from learnhub.utils.pagination import PaginationParams

security = HTTPBearer(auto_error=False)

_strapi_client: Optional[StrapiClient] = None


def get_strapi_client() -> StrapiClient:
    """Process-wide Strapi client (closed on application shutdown)"""
    global _strapi_client
    if _strapi_client is None:
        _strapi_client = StrapiClient()
    return _strapi_client


async def close_strapi_client() -> None:
    global _strapi_client
    if _strapi_client is not None:
        await _strapi_client.aclose()
        _strapi_client = None


def get_services(client: StrapiClient = Depends(get_strapi_client)) -> ServiceContainer:
    return build_services(client)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: ServiceContainer = Depends(get_services)
) -> User:
    """Get current authenticated user from their Strapi JWT"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return await services.users.get_current_user(credentials.credentials)


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page")
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)
