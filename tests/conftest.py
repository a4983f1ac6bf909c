"""
Pytest Configuration and Fixtures
"""
import os

# Set test environment variables BEFORE importing anything else
os.environ["ENVIRONMENT"] = "testing"
os.environ["STRAPI_URL"] = "http://strapi.test"
os.environ["STRAPI_API_TOKEN"] = "test-api-token"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_FILE"] = ""

from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient

from learnhub.api.dependencies import get_strapi_client
from learnhub.integrations.strapi.client import StrapiClient
from learnhub.main import app
from learnhub.schemas.user import User
from learnhub.services import ServiceContainer, build_services
from tests.mocks.fake_strapi import FakeStrapi

fake = Faker()


@pytest.fixture
def fake_strapi() -> FakeStrapi:
    """Fresh in-memory Strapi per test"""
    return FakeStrapi()


@pytest.fixture
async def strapi_client(fake_strapi: FakeStrapi) -> AsyncGenerator[StrapiClient, None]:
    client = StrapiClient(
        base_url="http://strapi.test",
        api_token="test-api-token",
        transport=fake_strapi.transport,
    )
    yield client
    await client.aclose()


@pytest.fixture
def services(strapi_client: StrapiClient) -> ServiceContainer:
    return build_services(strapi_client)


@pytest.fixture
def owner_record(fake_strapi: FakeStrapi) -> dict:
    """Group owner with no plan limits"""
    return fake_strapi.add_user(fake.user_name(), email=fake.email())


@pytest.fixture
def owner(owner_record: dict) -> User:
    return User.from_strapi(owner_record)


@pytest.fixture
def invitee_record(fake_strapi: FakeStrapi) -> dict:
    return fake_strapi.add_user(fake.user_name(), email=fake.email())


@pytest.fixture
def invitee(invitee_record: dict) -> User:
    return User.from_strapi(invitee_record)


@pytest.fixture
def invitee_instructor(fake_strapi: FakeStrapi, invitee_record: dict) -> dict:
    """Instructor profile owned by the invitee"""
    return fake_strapi.add_instructor(invitee_record["id"], fake.name(), bio=fake.sentence())


@pytest.fixture
def group_record(fake_strapi: FakeStrapi, owner_record: dict) -> dict:
    return fake_strapi.add_group(owner_record["id"], "Algebra Mentors")


@pytest.fixture
def user_group_record(fake_strapi: FakeStrapi, owner_record: dict) -> dict:
    """User group owned by the owner, no members yet"""
    return fake_strapi.add_user_group(owner_record["id"], "Study Buddies")


@pytest.fixture
async def client(strapi_client: StrapiClient) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, wired to the in-memory Strapi"""
    app.dependency_overrides[get_strapi_client] = lambda: strapi_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers(fake_strapi: FakeStrapi, owner_record: dict) -> dict:
    return {"Authorization": f"Bearer {fake_strapi.issue_token(owner_record['id'])}"}


@pytest.fixture
def invitee_headers(fake_strapi: FakeStrapi, invitee_record: dict) -> dict:
    return {"Authorization": f"Bearer {fake_strapi.issue_token(invitee_record['id'])}"}
