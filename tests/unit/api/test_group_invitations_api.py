"""
Unit Tests for User Group Invitation API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()

BASE = "/api/v1/group-invitations"
REQUESTS = "user-request-requests"
USER_GROUPS = "user-group-groups"


@pytest.fixture
def group_invitation_record(fake_strapi, owner_record, invitee_record, user_group_record):
    return fake_strapi.add_group_invitation(owner_record["id"], invitee_record["id"], user_group_record["id"])


class TestSendGroupInvitation:
    """Test group invitation creation endpoint"""

    @pytest.mark.asyncio
    async def test_send(self, client: AsyncClient, owner_headers, user_group_record, invitee_record):
        """Test a pending invitation is returned"""
        response = await client.post(
            BASE,
            json={"group": user_group_record["documentId"], "user": invitee_record["id"], "message": "Join us"},
            headers=owner_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["request_status"] == "pending"
        assert data["to_user_id"] == invitee_record["id"]
        assert data["message"] == "Join us"

    @pytest.mark.asyncio
    async def test_duplicate(self, client: AsyncClient, owner_headers, group_invitation_record,
                             user_group_record, invitee_record):
        """Test a second invitation maps to 409"""
        response = await client.post(
            BASE, json={"group": user_group_record["id"], "user": invitee_record["id"]}, headers=owner_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVITATION_PENDING"

    @pytest.mark.asyncio
    async def test_already_member(self, client: AsyncClient, fake_strapi, owner_record, owner_headers, invitee_record):
        """Test inviting a member maps to 409"""
        group = fake_strapi.add_user_group(owner_record["id"], users=[invitee_record["id"]])

        response = await client.post(
            BASE, json={"group": group["id"], "user": invitee_record["id"]}, headers=owner_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_GROUP_MEMBER"


class TestGroupInvitationLists:
    """Test listing endpoints"""

    @pytest.mark.asyncio
    async def test_received_and_sent(self, client: AsyncClient, owner_headers, invitee_headers,
                                     group_invitation_record):
        """Test each side sees the invitation in its own list"""
        received = await client.get(f"{BASE}/received", headers=invitee_headers)
        sent = await client.get(f"{BASE}/sent", headers=owner_headers)

        assert received.json()["total"] == 1
        assert received.json()["invitations"][0]["user_group"]["name"] == "Study Buddies"
        assert sent.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_pending_count(self, client: AsyncClient, invitee_headers, group_invitation_record):
        """Test the badge drops after reading"""
        before = await client.get(f"{BASE}/pending-count", headers=invitee_headers)
        await client.post(f"{BASE}/{group_invitation_record['documentId']}/read", headers=invitee_headers)
        after = await client.get(f"{BASE}/pending-count", headers=invitee_headers)

        assert before.json() == {"count": 1}
        assert after.json() == {"count": 0}


class TestGroupInvitationActions:
    """Test accept, reject, cancel and read endpoints"""

    @pytest.mark.asyncio
    async def test_accept(self, client: AsyncClient, fake_strapi, invitee_headers, group_invitation_record,
                          invitee_record, user_group_record):
        """Test accepting joins the group"""
        response = await client.post(
            f"{BASE}/{group_invitation_record['documentId']}/accept", headers=invitee_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "accepted"
        assert data["group"]["user_ids"] == [invitee_record["id"]]
        assert fake_strapi.records(REQUESTS) == []

    @pytest.mark.asyncio
    async def test_accept_blocked_by_user_group_limit(self, client: AsyncClient, fake_strapi, owner_record,
                                                      user_group_record):
        """Test user_group_limit maps to 403 and the invitation stays"""
        user = fake_strapi.add_user(fake.user_name(), user_group_limit=1)
        fake_strapi.add_user_group(user["id"], "Own")
        invitation = fake_strapi.add_group_invitation(owner_record["id"], user["id"], user_group_record["id"])
        headers = {"Authorization": f"Bearer {fake_strapi.issue_token(user['id'])}"}

        response = await client.post(f"{BASE}/{invitation['documentId']}/accept", headers=headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "USER_GROUP_LIMIT_REACHED"
        assert fake_strapi.get(REQUESTS, invitation["id"])["request_status"] == "pending"

    @pytest.mark.asyncio
    async def test_accept_by_sender_refused(self, client: AsyncClient, owner_headers, group_invitation_record):
        """Test the sender cannot accept on the invitee's behalf"""
        response = await client.post(f"{BASE}/{group_invitation_record['id']}/accept", headers=owner_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_reject(self, client: AsyncClient, invitee_headers, group_invitation_record):
        """Test reject removes the invitation"""
        response = await client.post(
            f"{BASE}/{group_invitation_record['documentId']}/reject", headers=invitee_headers
        )
        received = await client.get(f"{BASE}/received", headers=invitee_headers)

        assert response.json()["status"] == "rejected"
        assert received.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_cancel(self, client: AsyncClient, owner_headers, invitee_headers, group_invitation_record):
        """Test only the sender may cancel"""
        refused = await client.post(f"{BASE}/{group_invitation_record['id']}/cancel", headers=invitee_headers)
        cancelled = await client.post(f"{BASE}/{group_invitation_record['id']}/cancel", headers=owner_headers)

        assert refused.status_code == 403
        assert cancelled.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_read_by_other_user_refused(self, client: AsyncClient, fake_strapi, owner_headers,
                                              group_invitation_record):
        """Test only the invitee can mark the invitation as read"""
        response = await client.post(f"{BASE}/{group_invitation_record['id']}/read", headers=owner_headers)

        assert response.status_code == 403
        assert fake_strapi.get(REQUESTS, group_invitation_record["id"])["read"] is False
