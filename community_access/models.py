from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from community_access.features import Feature, PermissionStatus, PromptType, UserRole, is_admin_role
from community_access.levels import UserLevelInfo, rank_of

UserId = Union[int, str]


@dataclass(frozen=True)
class ActingUser:
    """The authenticated caller, as far as gating is concerned. ``level`` goes through rank_of."""

    id: UserId
    level: int
    role: str = "student"

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", rank_of(self.level))
        role = self.role.value if isinstance(self.role, UserRole) else str(self.role or UserRole.STUDENT.value)
        object.__setattr__(self, "role", role.strip().lower())

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)


_FEATURE_ATTRS: Mapping[Feature, str] = MappingProxyType({
    Feature.PROMPT: "prompt_permission",
    Feature.SOURCE_CODE: "source_code_permission",
    Feature.VOTE: "vote_permission",
    Feature.COMMENT: "comment_permission",
    Feature.SHARE: "share_permission",
    Feature.UPLOAD: "upload_permission",
    Feature.DOWNLOAD: "download_permission",
    Feature.PREMIUM_CONTENT: "premium_content_permission",
    Feature.CREATOR_INFO: "creator_info_permission",
})


class FeaturePermissions(BaseModel):
    """
    Complete feature -> status map for one level, plus its upload quota.

    Aliases are the camelCase keys used in the stored JSON document.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    prompt_permission: PermissionStatus = Field(..., alias="promptPermission")
    source_code_permission: PermissionStatus = Field(..., alias="sourceCodePermission")
    vote_permission: PermissionStatus = Field(..., alias="votePermission")
    comment_permission: PermissionStatus = Field(..., alias="commentPermission")
    share_permission: PermissionStatus = Field(..., alias="sharePermission")
    upload_permission: PermissionStatus = Field(..., alias="uploadPermission")
    max_uploads_per_day: int = Field(..., alias="maxUploadsPerDay", ge=-1)
    download_permission: PermissionStatus = Field(..., alias="downloadPermission")
    premium_content_permission: PermissionStatus = Field(..., alias="premiumContentPermission")
    creator_info_permission: PermissionStatus = Field(..., alias="creatorInfoPermission")

    def status_for(self, feature: Feature) -> PermissionStatus:
        return getattr(self, _FEATURE_ATTRS[feature])

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_statuses(
        cls, statuses: Mapping[Feature, PermissionStatus], max_uploads_per_day: int
    ) -> "FeaturePermissions":
        values: Dict[str, Any] = {
            attr: statuses.get(feature, PermissionStatus.HIDDEN)
            for feature, attr in _FEATURE_ATTRS.items()
        }
        values["max_uploads_per_day"] = max_uploads_per_day
        return cls(**values)


@dataclass(frozen=True)
class LevelConfig:
    """Decoded level configuration row. Display fields do not affect gating."""

    level: int
    name: str
    permissions: FeaturePermissions
    description: str = ""
    color: str = ""
    icon: str = ""
    is_active: bool = True
    upgrade_condition: Optional[str] = None
    price_range: Optional[Mapping[str, float]] = None

    def __post_init__(self) -> None:
        if self.price_range is not None:
            object.__setattr__(self, "price_range", MappingProxyType(dict(self.price_range)))


@dataclass(frozen=True)
class PolicyEntry:
    """Status of a feature at a level; target_rank only accompanies PROMPT."""

    feature: Feature
    level: int
    status: PermissionStatus
    target_rank: Optional[int] = None


@dataclass(frozen=True)
class ResolvedEntitlement:
    """Per-request resolution of one feature for one caller. Never persisted."""

    feature: Feature
    has_access: bool
    status: PermissionStatus
    message: str
    prompt_type: Optional[PromptType] = None
    target_level: Optional[int] = None
    target_level_name: Optional[str] = None

    def to_status_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.prompt_type is not None:
            info["promptType"] = self.prompt_type.value
        if self.target_level is not None:
            info["targetLevel"] = self.target_level
            info["targetLevelName"] = self.target_level_name
        return info

    def to_dict(self) -> Dict[str, Any]:
        return {"hasAccess": self.has_access, **self.to_status_info()}


@dataclass(frozen=True)
class Projection:
    """Record-level visibility plus the redacted copy (empty when not visible)."""

    visible: bool
    record: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AssembledResponse:
    """Work detail payload handed to the HTTP layer."""

    visible: bool
    work: Dict[str, Any]
    permission_status: Dict[str, Dict[str, Any]]
    user_level: UserLevelInfo
    error_code: Optional[str] = None
    deny_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.work,
            "permissionStatus": {key: dict(value) for key, value in self.permission_status.items()},
            "userLevel": self.user_level.to_dict(),
        }
