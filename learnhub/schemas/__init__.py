# Pydantic schemas
from learnhub.schemas.user import (
    User,
    SubscriptionPlan,
    UserSubscription,
)
from learnhub.schemas.instructor import (
    Instructor,
    InstructorCreate,
    InstructorUpdate,
    InstructorListResponse,
)
from learnhub.schemas.group import (
    InstructorGroup,
    GroupCreate,
    GroupUpdate,
    GroupMembersAdd,
    GroupListResponse,
    GroupCapacityResponse,
)
from learnhub.schemas.invitation import (
    InvitationStatusEnum,
    Invitation,
    InvitationCreate,
    InvitationListResponse,
    PendingCountResponse,
    InvitationActionResponse,
)
from learnhub.schemas.user_group import (
    UserGroup,
    UserGroupCreate,
    UserGroupUpdate,
    UserGroupMembersAdd,
    GroupInvitation,
    GroupInvitationCreate,
    GroupInvitationListResponse,
    GroupInvitationActionResponse,
    UserGroupCapacityResponse,
)
