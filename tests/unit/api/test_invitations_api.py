"""
Unit Tests for Group Invitation API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()

BASE = "/api/v1/invitations"
INVITATIONS = "instructor-invitations"


@pytest.fixture
def invitation_record(fake_strapi, owner_record, invitee_instructor, group_record):
    return fake_strapi.add_invitation(owner_record["id"], invitee_instructor["id"], group_record["id"])


class TestSendInvitation:
    """Test invitation creation endpoint"""

    @pytest.mark.asyncio
    async def test_send(self, client: AsyncClient, owner_headers, group_record, invitee_instructor):
        """Test successful send"""
        response = await client.post(
            BASE,
            json={
                "group": group_record["documentId"],
                "instructor": invitee_instructor["id"],
                "message": "Join us!",
            },
            headers=owner_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["invitation_status"] == "pending"
        assert data["read"] is False
        assert data["message"] == "Join us!"
        assert data["group_id"] == group_record["id"]

    @pytest.mark.asyncio
    async def test_duplicate(self, client: AsyncClient, owner_headers, group_record, invitee_instructor, fake_strapi):
        """Test a second send maps to 409 and creates nothing"""
        payload = {"group": group_record["id"], "instructor": invitee_instructor["documentId"]}

        first = await client.post(BASE, json=payload, headers=owner_headers)
        second = await client.post(BASE, json=payload, headers=owner_headers)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "INVITATION_PENDING"
        assert len(fake_strapi.records(INVITATIONS)) == 1

    @pytest.mark.asyncio
    async def test_unknown_instructor(self, client: AsyncClient, owner_headers, group_record):
        """Test unresolvable identifiers map to 404"""
        response = await client.post(
            BASE, json={"group": group_record["id"], "instructor": "ghost"}, headers=owner_headers
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IDENTIFIER_UNRESOLVED"


class TestListInvitations:
    """Test listing endpoints"""

    @pytest.mark.asyncio
    async def test_received(self, client: AsyncClient, invitee_headers, invitation_record):
        """Test the invitee sees the invitation"""
        response = await client.get(f"{BASE}/received", headers=invitee_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["invitations"][0]["document_id"] == invitation_record["documentId"]

    @pytest.mark.asyncio
    async def test_sent(self, client: AsyncClient, owner_headers, invitee_headers, invitation_record):
        """Test the sender sees it as sent, the invitee does not"""
        sent = await client.get(f"{BASE}/sent", headers=owner_headers)
        not_sent = await client.get(f"{BASE}/sent", headers=invitee_headers)

        assert sent.json()["total"] == 1
        assert not_sent.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_pending_count(self, client: AsyncClient, invitee_headers, invitation_record):
        """Test the unread pending badge"""
        before = await client.get(f"{BASE}/pending-count", headers=invitee_headers)
        await client.post(f"{BASE}/{invitation_record['documentId']}/read", headers=invitee_headers)
        after = await client.get(f"{BASE}/pending-count", headers=invitee_headers)

        assert before.json() == {"count": 1}
        assert after.json() == {"count": 0}


class TestActOnInvitation:
    """Test accept / reject / cancel endpoints"""

    @pytest.mark.asyncio
    async def test_accept(
        self, client: AsyncClient, invitee_headers, invitation_record, invitee_instructor, fake_strapi
    ):
        """Test accepting joins the group"""
        response = await client.post(f"{BASE}/{invitation_record['documentId']}/accept", headers=invitee_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "accepted"
        assert data["group"]["instructor_ids"] == [invitee_instructor["id"]]
        assert fake_strapi.records(INVITATIONS) == []

    @pytest.mark.asyncio
    async def test_accept_blocked_by_member_limit(
        self, client: AsyncClient, invitee_headers, invitee_instructor, fake_strapi
    ):
        """Test a full group maps to 403 and the invitation stays pending"""
        owner = fake_strapi.add_user(fake.user_name(), user_group_member_limit=1)
        existing = fake_strapi.add_instructor(owner["id"], fake.name())
        group = fake_strapi.add_group(owner["id"], "Tiny", instructors=[existing["id"]])
        invitation = fake_strapi.add_invitation(owner["id"], invitee_instructor["id"], group["id"])

        response = await client.post(f"{BASE}/{invitation['documentId']}/accept", headers=invitee_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "MEMBER_LIMIT_REACHED"
        assert fake_strapi.get(INVITATIONS, invitation["id"])["invitation_status"] == "pending"

    @pytest.mark.asyncio
    async def test_accept_by_sender_refused(self, client: AsyncClient, owner_headers, invitation_record):
        """Test only the invitee may accept"""
        response = await client.post(f"{BASE}/{invitation_record['documentId']}/accept", headers=owner_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_accept_twice(self, client: AsyncClient, invitee_headers, invitation_record):
        """Test the second accept finds nothing"""
        await client.post(f"{BASE}/{invitation_record['documentId']}/accept", headers=invitee_headers)
        response = await client.post(f"{BASE}/{invitation_record['documentId']}/accept", headers=invitee_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "INVITATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_reject(self, client: AsyncClient, invitee_headers, invitation_record):
        """Test reject removes the invitation from the received list"""
        response = await client.post(f"{BASE}/{invitation_record['documentId']}/reject", headers=invitee_headers)
        received = await client.get(f"{BASE}/received", headers=invitee_headers)

        assert response.json()["status"] == "rejected"
        assert received.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_cancel(self, client: AsyncClient, owner_headers, invitee_headers, invitation_record):
        """Test only the sender may cancel"""
        refused = await client.post(f"{BASE}/{invitation_record['documentId']}/cancel", headers=invitee_headers)
        cancelled = await client.post(f"{BASE}/{invitation_record['id']}/cancel", headers=owner_headers)

        assert refused.status_code == 403
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_mark_read_by_other_user_refused(
        self, client: AsyncClient, owner_headers, invitee_headers, invitation_record, fake_strapi
    ):
        """Test only the invitee can mark an invitation as read"""
        refused = await client.post(f"{BASE}/{invitation_record['documentId']}/read", headers=owner_headers)

        assert refused.status_code == 403
        assert refused.json()["error"]["code"] == "NOT_AUTHORIZED"
        assert fake_strapi.get(INVITATIONS, invitation_record["id"])["read"] is False

        accepted = await client.post(f"{BASE}/{invitation_record['documentId']}/read", headers=invitee_headers)

        assert accepted.status_code == 200
        assert accepted.json()["read"] is True
