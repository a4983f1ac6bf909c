"""
Unit Tests for Membership Mutator
Tests for: set-union adds, set-difference removes, idempotence, stale-write detection
"""
import pytest

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    ConcurrentModificationError,
    IdentifierResolutionError,
    MemberLimitExceededError,
    UserGroupNotFoundError,
    ValidationError,
)

GROUPS_PATH = "/api/instructor-groups"
USER_GROUPS = "user-group-groups"
USER_GROUPS_PATH = "/api/user-group-groups"


class TestAddInstructors:
    """Test adding members"""

    @pytest.mark.asyncio
    async def test_add_by_numeric_id(self, services, fake_strapi, group_record, invitee_instructor):
        """Test the Algebra Mentors group gains an instructor by numeric id"""
        group = await services.membership.add_instructor(group_record["id"], invitee_instructor["id"])

        assert group.name == "Algebra Mentors"
        assert group.instructor_ids == [invitee_instructor["id"]]
        assert fake_strapi.get("instructor-groups", group_record["id"])["instructors"] == [invitee_instructor["id"]]

    @pytest.mark.asyncio
    async def test_add_by_document_ids(self, services, fake_strapi, group_record, invitee_instructor):
        """Test group and instructor addressed by document id"""
        group = await services.membership.add_instructor(
            group_record["documentId"], invitee_instructor["documentId"]
        )

        assert group.instructor_ids == [invitee_instructor["id"]]

    @pytest.mark.asyncio
    async def test_existing_members_kept(self, services, fake_strapi, owner_record, invitee_record):
        """Test adds are a set union"""
        a = fake_strapi.add_instructor(invitee_record["id"], "A")
        b = fake_strapi.add_instructor(invitee_record["id"], "B")
        group_record = fake_strapi.add_group(owner_record["id"], "Algebra Mentors", instructors=[a["id"]])

        group = await services.membership.add_instructors(group_record["id"], [b["id"], a["documentId"]])

        assert group.instructor_ids == [a["id"], b["id"]]

    @pytest.mark.asyncio
    async def test_duplicates_in_request_collapse(self, services, fake_strapi, group_record, invitee_instructor):
        """Test the same instructor twice in one call is added once"""
        group = await services.membership.add_instructors(
            group_record["id"], [invitee_instructor["id"], invitee_instructor["documentId"]]
        )

        assert group.instructor_ids == [invitee_instructor["id"]]

    @pytest.mark.asyncio
    async def test_already_member_writes_nothing(self, services, fake_strapi, owner_record, invitee_instructor):
        """Test re-adding an existing member is a no-op"""
        group_record = fake_strapi.add_group(owner_record["id"], "Algebra Mentors", instructors=[invitee_instructor["id"]])

        group = await services.membership.add_instructor(group_record["id"], invitee_instructor["id"])

        assert group.instructor_ids == [invitee_instructor["id"]]
        assert fake_strapi.count("PUT", GROUPS_PATH) == 0

    @pytest.mark.asyncio
    async def test_unresolvable_ids_skipped(self, services, fake_strapi, group_record, invitee_instructor):
        """Test unknown ids in a batch are skipped"""
        group = await services.membership.add_instructors(
            group_record["id"], ["ghost-instructor", invitee_instructor["documentId"]]
        )

        assert group.instructor_ids == [invitee_instructor["id"]]

    @pytest.mark.asyncio
    async def test_single_unresolvable_raises(self, services, fake_strapi, group_record):
        """Test a single unknown id raises"""
        with pytest.raises(IdentifierResolutionError):
            await services.membership.add_instructor(group_record["id"], "ghost-instructor")

        assert fake_strapi.count("PUT", GROUPS_PATH) == 0

    @pytest.mark.asyncio
    async def test_enforced_member_limit(self, services, fake_strapi, invitee_record):
        """Test member capacity is checked before writing"""
        owner = fake_strapi.add_user("owner", user_group_member_limit=1)
        a = fake_strapi.add_instructor(invitee_record["id"], "A")
        b = fake_strapi.add_instructor(invitee_record["id"], "B")
        group_record = fake_strapi.add_group(owner["id"], "Algebra Mentors", instructors=[a["id"]])

        with pytest.raises(MemberLimitExceededError):
            await services.membership.add_instructors(group_record["id"], [b["id"]], enforce_capacity=True)

        assert fake_strapi.get("instructor-groups", group_record["id"])["instructors"] == [a["id"]]


class TestRemoveInstructor:
    """Test removing members"""

    @pytest.mark.asyncio
    async def test_remove_member(self, services, fake_strapi, owner_record, invitee_record):
        """Test removal is a set difference"""
        a = fake_strapi.add_instructor(invitee_record["id"], "A")
        b = fake_strapi.add_instructor(invitee_record["id"], "B")
        group_record = fake_strapi.add_group(owner_record["id"], "Algebra Mentors", instructors=[a["id"], b["id"]])

        group = await services.membership.remove_instructor(group_record["documentId"], a["documentId"])

        assert group.instructor_ids == [b["id"]]

    @pytest.mark.asyncio
    async def test_remove_non_member_writes_nothing(self, services, fake_strapi, group_record, invitee_instructor):
        """Test removing someone who is not a member"""
        group = await services.membership.remove_instructor(group_record["id"], invitee_instructor["id"])

        assert group.instructor_ids == []
        assert fake_strapi.count("PUT", GROUPS_PATH) == 0


class TestStaleWrites:
    """Test concurrent modification detection"""

    @staticmethod
    def bump_on_version_read(group_id):
        def hook(fake, request):
            if request.method == "GET" and request.url.params.get("fields[0]") == "updatedAt":
                fake.touch("instructor-groups", group_id)
        return hook

    @pytest.mark.asyncio
    async def test_changed_group_is_not_overwritten(self, services, fake_strapi, group_record, invitee_instructor):
        """Test a write landing between read and PUT is detected"""
        fake_strapi.add_hook(self.bump_on_version_read(group_record["id"]))

        with pytest.raises(ConcurrentModificationError):
            await services.membership.add_instructor(group_record["id"], invitee_instructor["id"])

        assert fake_strapi.count("PUT", GROUPS_PATH) == 0
        assert fake_strapi.get("instructor-groups", group_record["id"])["instructors"] == []

    @pytest.mark.asyncio
    async def test_check_can_be_disabled(self, services, fake_strapi, group_record, invitee_instructor, monkeypatch):
        """Test the version check is skipped when turned off"""
        monkeypatch.setattr(settings, "MEMBERSHIP_VERSION_CHECK", False)
        fake_strapi.add_hook(self.bump_on_version_read(group_record["id"]))

        group = await services.membership.add_instructor(group_record["id"], invitee_instructor["id"])

        assert group.instructor_ids == [invitee_instructor["id"]]


class TestUserGroupMembership:
    """Test the users relation of user groups"""

    @pytest.mark.asyncio
    async def test_add_users(self, services, fake_strapi, user_group_record, invitee_record):
        """Test users are added by numeric id and document id, unknown ids skipped"""
        other = fake_strapi.add_user("grace")

        group = await services.user_membership.add_users(
            user_group_record["documentId"], [invitee_record["id"], other["documentId"], "ghost"]
        )

        assert group.name == "Study Buddies"
        assert group.user_ids == [invitee_record["id"], other["id"]]
        assert fake_strapi.get(USER_GROUPS, user_group_record["id"])["users"] == [invitee_record["id"], other["id"]]

    @pytest.mark.asyncio
    async def test_add_existing_user_writes_nothing(self, services, fake_strapi, owner_record, invitee_record):
        """Test re-adding a member leaves the group alone"""
        record = fake_strapi.add_user_group(owner_record["id"], users=[invitee_record["id"]])

        group = await services.user_membership.add_user(record["id"], invitee_record["documentId"])

        assert group.user_ids == [invitee_record["id"]]
        assert fake_strapi.count("PUT", USER_GROUPS_PATH) == 0

    @pytest.mark.asyncio
    async def test_enforced_member_limit(self, services, fake_strapi, invitee_record):
        """Test the owner's user_group_member_limit caps direct adds"""
        owner = fake_strapi.add_user("ada", user_group_member_limit=1)
        existing = fake_strapi.add_user("grace")
        record = fake_strapi.add_user_group(owner["id"], users=[existing["id"]])

        with pytest.raises(MemberLimitExceededError):
            await services.user_membership.add_users(record["id"], [invitee_record["id"]], enforce_capacity=True)

        assert fake_strapi.get(USER_GROUPS, record["id"])["users"] == [existing["id"]]

    @pytest.mark.asyncio
    async def test_remove_user(self, services, fake_strapi, owner_record, invitee_record):
        """Test removal keeps the other members"""
        other = fake_strapi.add_user("grace")
        record = fake_strapi.add_user_group(owner_record["id"], users=[invitee_record["id"], other["id"]])

        group = await services.user_membership.remove_user(record["documentId"], invitee_record["id"])

        assert group.user_ids == [other["id"]]

    @pytest.mark.asyncio
    async def test_leave_group(self, services, fake_strapi, owner_record, invitee, invitee_record):
        """Test a member can leave"""
        record = fake_strapi.add_user_group(owner_record["id"], users=[invitee_record["id"]])

        group = await services.user_membership.leave_group(record["documentId"], invitee)

        assert group.user_ids == []

    @pytest.mark.asyncio
    async def test_owner_cannot_leave(self, services, fake_strapi, user_group_record, owner):
        """Test the owner is told to delete the group instead"""
        with pytest.raises(ValidationError):
            await services.user_membership.leave_group(user_group_record["id"], owner)

        assert fake_strapi.count("PUT", USER_GROUPS_PATH) == 0

    @pytest.mark.asyncio
    async def test_unknown_user_group(self, services, group_record, invitee_record):
        """Test instructor groups are not found through the user-group mutator"""
        with pytest.raises(UserGroupNotFoundError):
            await services.user_membership.add_user(group_record["documentId"], invitee_record["id"])
