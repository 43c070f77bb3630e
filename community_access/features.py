"""
Feature definitions for level-based content gating.

Features are the named capabilities a level may see, be nudged towards, or
not see at all. The set is closed: callers pass ``Feature`` members, never
free-form strings.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


class Feature(str, Enum):
    """
    Gated capabilities of a work record or a community action.

    Values match the keys of the ``permissionStatus`` block returned to
    clients.
    """
    PROMPT = "prompt"
    SOURCE_CODE = "sourceCode"
    VOTE = "vote"
    COMMENT = "comment"
    SHARE = "share"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    PREMIUM_CONTENT = "premiumContent"
    CREATOR_INFO = "creatorInfo"


class PermissionStatus(str, Enum):
    """
    Outcome for a (feature, level) pair.

    HIDDEN and PROMPT both deny access; PROMPT only allows the UI to
    advertise the feature. There is no ordering between them.
    """
    HIDDEN = "hidden"
    PROMPT = "prompt"
    VISIBLE = "visible"


class PromptType(str, Enum):
    """Remediation shown with a PROMPT status."""
    LOGIN = "login"
    UPGRADE = "upgrade"


class UserRole(str, Enum):
    ADMIN = "admin"
    COACH = "coach"
    STUDENT = "student"
    VOLUNTEER = "volunteer"


class WorkVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


# Work fields copied for every viewer who may see the work
ALWAYS_VISIBLE_FIELDS: Tuple[str, ...] = (
    "id",
    "title",
    "description",
    "coverImage",
    "category",
    "author",
    "votes",
    "createdAt",
    "updatedAt",
)

# Gated work field -> feature that owns it
GATED_FIELDS: Mapping[str, Feature] = MappingProxyType({
    "prompt": Feature.PROMPT,
    "repositoryUrl": Feature.SOURCE_CODE,
})

# Features reported in the permissionStatus block of a work detail response
REPORTABLE_FEATURES: Tuple[Feature, ...] = (
    Feature.PROMPT,
    Feature.SOURCE_CODE,
    Feature.VOTE,
    Feature.COMMENT,
    Feature.UPLOAD,
    Feature.PREMIUM_CONTENT,
)


def is_admin_role(role) -> bool:
    """True for the admin role, given as enum or plain string."""
    if role is None:
        return False
    value = role.value if isinstance(role, UserRole) else str(role)
    return value.strip().lower() == UserRole.ADMIN.value
