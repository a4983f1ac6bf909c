"""
Unit Tests for Pydantic Schemas
Tests for: Strapi record projection (v4/v5, populated/bare relations), input validation
"""
import pytest
from pydantic import ValidationError

from learnhub.schemas.group import GroupCreate, GroupUpdate, InstructorGroup, normalize_group_name
from learnhub.schemas.instructor import Instructor, InstructorCreate, instructor_payload
from learnhub.schemas.invitation import Invitation, InvitationCreate, InvitationStatusEnum
from learnhub.schemas.user import User, UserSubscription, parse_limit
from learnhub.schemas.user_group import GroupInvitation, GroupInvitationCreate, UserGroup, UserGroupMembersAdd


class TestUser:
    """Test user projection"""

    def test_from_record(self):
        """Test limits are parsed, 0 kept"""
        user = User.from_strapi({
            "id": 3,
            "documentId": "usr3",
            "username": "ada",
            "instructor_group_limit": "2",
            "user_group_member_limit": 0,
        })

        assert user.id == 3
        assert user.instructor_group_limit == 2
        assert user.user_group_member_limit == 0
        assert user.instructor_limit is None

    def test_from_bare_id(self):
        """Test a bare relation id"""
        assert User.from_strapi(7).id == 7
        assert User.from_strapi(None) is None

    def test_parse_limit(self):
        """Test limit parsing"""
        assert parse_limit(0) == 0
        assert parse_limit("5") == 5
        assert parse_limit(-1) is None
        assert parse_limit(True) is None


class TestUserSubscription:
    """Test subscription projection"""

    def test_plan_read_from_subscription_relation(self):
        """Test the plan comes from the populated subscription"""
        sub = UserSubscription.from_strapi({
            "id": 1,
            "state": "active",
            "subscription": {"id": 4, "name": "Pro", "amount_instructor_group_allowed": 5},
        })

        assert sub.is_active is True
        assert sub.plan.name == "Pro"
        assert sub.plan.amount_instructor_group_allowed == 5

    def test_unpopulated_plan(self):
        """Test a bare plan id yields no plan"""
        assert UserSubscription.from_strapi({"id": 1, "subscription": 4}).plan is None


class TestInstructor:
    """Test instructor projection"""

    def test_populated_user(self):
        """Test owner and avatar"""
        instructor = Instructor.from_strapi({
            "id": 12,
            "documentId": "ins12",
            "name": "Ada Lovelace",
            "avatar": {"url": "/uploads/ada.png"},
            "user": {"id": 3, "username": "ada"},
            "collaborated_instructors": [{"id": 1}, {"id": 2}],
        })

        assert instructor.user_id == 3
        assert instructor.username == "ada"
        assert instructor.avatar == "/uploads/ada.png"
        assert instructor.collaborated_instructor_ids == [1, 2]
        assert instructor.is_active is True

    def test_bare_user_and_inactive(self):
        """Test bare owner id and explicit inactive flag"""
        instructor = Instructor.from_strapi({"id": 12, "user": 3, "is_active": False})

        assert instructor.user_id == 3
        assert instructor.user is None
        assert instructor.is_active is False

    def test_create_payload_drops_unset(self):
        """Test only provided fields are written"""
        payload = instructor_payload(InstructorCreate(name="Ada", github="ada"))
        assert payload == {"name": "Ada", "github": "ada"}


class TestInstructorGroup:
    """Test group projection"""

    def test_populated_relations(self):
        """Test owner and member ids"""
        group = InstructorGroup.from_strapi({
            "id": 9,
            "documentId": "grp9",
            "name": "Algebra Mentors",
            "owner": {"id": 3, "user_group_member_limit": 5},
            "instructors": [{"id": 12, "name": "Ada"}, {"id": 14, "name": "Grace"}],
            "updatedAt": "2024-01-01T00:00:00.000Z",
        })

        assert group.owner_id == 3
        assert group.owner.user_group_member_limit == 5
        assert group.instructor_ids == [12, 14]
        assert group.member_count == 2
        assert group.has_member(14)
        assert group.path_key == "grp9"

    def test_bare_relations(self):
        """Test unpopulated relations as bare ids"""
        group = InstructorGroup.from_strapi({"id": 9, "owner": 3, "instructors": [12, 12, 14]})

        assert group.owner is None
        assert group.owner_id == 3
        assert group.instructor_ids == [12, 14]
        assert group.path_key == "9"

    def test_v4_shape(self):
        """Test v4 envelopes"""
        group = InstructorGroup.from_strapi({
            "id": 9,
            "attributes": {
                "name": "Algebra",
                "owner": {"data": {"id": 3, "attributes": {"username": "ada"}}},
                "instructors": {"data": [{"id": 12, "attributes": {"name": "Ada"}}]},
            },
        })

        assert group.name == "Algebra"
        assert group.owner.username == "ada"
        assert group.instructor_ids == [12]


class TestGroupInput:
    """Test group input validation"""

    def test_name_trimmed(self):
        """Test surrounding whitespace is removed"""
        assert GroupCreate(name="  Algebra Mentors  ").name == "Algebra Mentors"

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    def test_invalid_names(self, name):
        """Test blank and over-long names"""
        with pytest.raises(ValidationError):
            GroupCreate(name=name)

    def test_update_optional(self):
        """Test partial updates"""
        assert GroupUpdate(is_private=True).name is None
        with pytest.raises(ValueError):
            normalize_group_name(None)


class TestInvitation:
    """Test invitation projection"""

    def test_populated(self):
        """Test embedded relations"""
        invitation = Invitation.from_strapi({
            "id": 5,
            "documentId": "inv5",
            "invitation_status": "pending",
            "from_user": {"id": 3, "username": "ada"},
            "to_instructor": {"id": 12, "documentId": "ins12", "name": "Grace"},
            "instructor_group": {"id": 9, "documentId": "grp9", "name": "Algebra"},
        })

        assert invitation.is_pending
        assert invitation.from_user_id == 3
        assert invitation.to_instructor_document_id == "ins12"
        assert invitation.group_document_id == "grp9"
        assert invitation.instructor_group.name == "Algebra"

    def test_bare_relations(self):
        """Test relations as bare ids"""
        invitation = Invitation.from_strapi({
            "id": 5,
            "invitation_status": "accepted",
            "from_user": 3,
            "to_instructor": 12,
            "instructor_group": "grp9",
        })

        assert invitation.invitation_status == InvitationStatusEnum.ACCEPTED
        assert invitation.to_instructor_id == 12
        assert invitation.to_instructor is None
        assert invitation.group_id is None
        assert invitation.group_document_id == "grp9"

    def test_unknown_status_is_pending(self):
        """Test unknown statuses fall back to pending"""
        assert Invitation.from_strapi({"id": 1, "invitation_status": "weird"}).is_pending

    def test_create_message_length(self):
        """Test message cap"""
        with pytest.raises(ValidationError):
            InvitationCreate(group=1, instructor=2, message="x" * 501)


class TestUserGroup:
    """Test user-group projection"""

    def test_from_v4_record(self):
        """Test v4 envelopes, the private flag and the users relation"""
        group = UserGroup.from_strapi({
            "id": 5,
            "attributes": {
                "documentId": "ugr5",
                "name": "Study Buddies",
                "private": True,
                "group_types": "group",
                "owner": {"data": {"id": 1, "attributes": {"username": "ada"}}},
                "users": {"data": [{"id": 2, "attributes": {"username": "grace"}}, {"id": 3}]},
            },
        })

        assert group.is_private is True
        assert group.owner_id == 1
        assert group.user_ids == [2, 3]
        assert group.users[0].username == "grace"
        assert group.member_ids == group.user_ids
        assert group.is_owner(1) and not group.is_owner(2)

    def test_group_types(self):
        """Test which group types count as user groups"""
        assert UserGroup(id=1, group_type="group").is_user_group
        assert UserGroup(id=1, group_type="User").is_user_group
        assert UserGroup(id=1).is_user_group
        assert not UserGroup(id=1, group_type="course").is_user_group

    def test_members_add_requires_ids(self):
        """Test an empty user list is rejected"""
        with pytest.raises(ValidationError):
            UserGroupMembersAdd(user_ids=[])


class TestGroupInvitation:
    """Test group invitation projection"""

    def test_bare_relations(self):
        """Test relations given as ids"""
        invitation = GroupInvitation.from_strapi({
            "id": 7,
            "documentId": "req7",
            "request_status": "accepted",
            "from_user": 1,
            "to_user": 2,
            "user_group_group": 5,
            "createdAt": "2024-01-01T00:00:00.000Z",
        })

        assert invitation.request_status == InvitationStatusEnum.ACCEPTED
        assert invitation.to_user_id == 2
        assert invitation.group_id == 5
        assert invitation.invited_at == "2024-01-01T00:00:00.000Z"
        assert invitation.user_group is None

    def test_unknown_status_defaults_to_pending(self):
        """Test unknown statuses read as pending"""
        assert GroupInvitation.from_strapi({"id": 1, "request_status": "weird"}).is_pending

    def test_message_length(self):
        """Test long messages are rejected"""
        with pytest.raises(ValidationError):
            GroupInvitationCreate(group=1, user=2, message="x" * 501)
