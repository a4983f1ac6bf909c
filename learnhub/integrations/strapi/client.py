"""
Strapi REST Client
==================
Async wrapper around the Strapi content API.

Addressing rules:
- list endpoints filter with ``filters[...]`` parameters
- single records are addressed by ``documentId`` in the path
  (a numeric id needs a filter query, see IdentifierResolver)
- users-permissions endpoints (``/api/users``) return bare JSON instead of
  a ``{"data": ..., "meta": ...}`` envelope

Usage:
    from learnhub.integrations.strapi.client import StrapiClient
    from learnhub.integrations.strapi.query import StrapiQuery

    async with StrapiClient() as client:
        page = await client.find("/api/instructor-groups", StrapiQuery().where("owner", "id", value=3))
        for group in page.data:
            ...
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    StrapiNotFoundError,
    StrapiRequestError,
    StrapiUnavailableError,
)
from learnhub.core.logging_config import logger
from learnhub.integrations.strapi.query import StrapiQuery, normalize_params
from learnhub.utils.relations import unwrap_record

QueryLike = Union[StrapiQuery, Dict[str, Any], None]


@dataclass
class StrapiPage:
    """One page of a Strapi list response, records flattened"""
    data: List[Dict[str, Any]] = field(default_factory=list)
    pagination: Dict[str, Any] = field(default_factory=dict)

    @property
    def total(self) -> int:
        total = self.pagination.get("total")
        return int(total) if total is not None else len(self.data)

    @property
    def first(self) -> Optional[Dict[str, Any]]:
        return self.data[0] if self.data else None


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Strapi error body"""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return f"Content service returned {response.status_code}"


class StrapiClient:
    """Async client for the Strapi REST API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.strapi_base_url).rstrip('/')
        token = settings.STRAPI_API_TOKEN if api_token is None else api_token

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        client_timeout = timeout if timeout is not None else settings.STRAPI_TIMEOUT_SECONDS
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(client_timeout) if client_timeout else httpx.Timeout(None),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: QueryLike = None,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """Send one request; map failures onto StrapiServiceError subclasses"""
        headers = {"Authorization": f"Bearer {token}"} if token else None
        start = time.perf_counter()

        try:
            response = await self._client.request(
                method,
                path,
                params=normalize_params(params),
                json=json,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.log_strapi_request(method, path, 0, duration_ms, error="timeout")
            raise StrapiUnavailableError(path, "timed out") from e
        except httpx.HTTPError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.log_strapi_request(method, path, 0, duration_ms, error=str(e))
            raise StrapiUnavailableError(path, type(e).__name__) from e

        duration_ms = (time.perf_counter() - start) * 1000
        logger.log_strapi_request(method, path, response.status_code, duration_ms)

        if response.status_code == 404:
            raise StrapiNotFoundError(path)
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"Strapi {method} {path} failed ({response.status_code}): {message}")
            raise StrapiRequestError(response.status_code, message, path=path)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ==================== Collections ====================

    async def find(self, collection: str, query: QueryLike = None) -> StrapiPage:
        """List records of a collection"""
        body = await self._request("GET", collection, params=query)
        if isinstance(body, list):
            records = [unwrap_record(item) for item in body]
            return StrapiPage(data=[r for r in records if r], pagination={"total": len(records)})

        body = body or {}
        records = [unwrap_record(item) for item in (body.get("data") or [])]
        pagination = (body.get("meta") or {}).get("pagination") or {}
        return StrapiPage(data=[r for r in records if r], pagination=pagination)

    async def find_first(self, collection: str, query: QueryLike = None) -> Optional[Dict[str, Any]]:
        return (await self.find(collection, query)).first

    async def find_one(
        self,
        collection: str,
        document_id: Union[str, int],
        query: QueryLike = None,
    ) -> Optional[Dict[str, Any]]:
        """Fetch one record by path; None when Strapi answers 404"""
        try:
            body = await self._request("GET", f"{collection}/{document_id}", params=query)
        except StrapiNotFoundError:
            return None
        return unwrap_record(body)

    async def create(self, collection: str, data: Dict[str, Any], query: QueryLike = None) -> Dict[str, Any]:
        body = await self._request("POST", collection, params=query, json={"data": data})
        record = unwrap_record(body)
        if not record:
            raise StrapiRequestError(500, "Content service returned an empty record", path=collection)
        return record

    async def update(
        self,
        collection: str,
        document_id: Union[str, int],
        data: Dict[str, Any],
        query: QueryLike = None,
    ) -> Optional[Dict[str, Any]]:
        body = await self._request("PUT", f"{collection}/{document_id}", params=query, json={"data": data})
        return unwrap_record(body)

    async def delete(self, collection: str, document_id: Union[str, int]) -> None:
        await self._request("DELETE", f"{collection}/{document_id}")

    # ==================== Users (users-permissions) ====================

    async def find_users(self, query: QueryLike = None) -> List[Dict[str, Any]]:
        """``/api/users`` answers with a bare list, not a data envelope"""
        return (await self.find(settings.USERS_ENDPOINT, query)).data

    async def get_user(self, user_id: int, query: QueryLike = None) -> Optional[Dict[str, Any]]:
        """users-permissions accepts numeric ids in the path"""
        return await self.find_one(settings.USERS_ENDPOINT, user_id, query)

    async def get_me(self, token: str) -> Dict[str, Any]:
        body = await self._request("GET", f"{settings.USERS_ENDPOINT}/me", token=token)
        return unwrap_record(body) or {}
