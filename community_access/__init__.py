"""
Level-based content gating for the course community.

This module provides:
- UserLevel / level catalog: ranks, display names and the upgrade chain
- FeaturePolicyTable: per-level feature status with stored-config override
- EntitlementResolver: admin bypass, prompts and fail-closed resolution
- UploadQuotaResolver: daily upload quota per level
- ContentProjector: record visibility and gated-field redaction for works
- WorkResponseAssembler: work detail payloads with permissionStatus/userLevel
- SqlLevelConfigStore: SQLAlchemy-backed level_configs table
- require_feature: FastAPI dependency for feature-gated routes

Levels are compared by numeric rank only; HIDDEN and PROMPT both deny access.
"""

from community_access.features import (
    Feature,
    PermissionStatus,
    PromptType,
    UserRole,
    WorkVisibility,
    ALWAYS_VISIBLE_FIELDS,
    GATED_FIELDS,
    REPORTABLE_FEATURES,
)
from community_access.levels import (
    UserLevel,
    GUEST_LEVEL,
    rank_of,
    name_of,
    next_level,
    level_info,
    NextLevel,
    UserLevelInfo,
)
from community_access.models import (
    ActingUser,
    FeaturePermissions,
    LevelConfig,
    PolicyEntry,
    ResolvedEntitlement,
    Projection,
    AssembledResponse,
)
from community_access.errors import (
    CommunityAccessError,
    MissingVisibilityError,
    MalformedLevelConfigError,
    LevelConfigStoreError,
)
from community_access.policy import (
    DEFAULT_PERMISSION_CONFIG,
    UPLOAD_LIMITS,
    UNLIMITED_UPLOADS,
    FeaturePolicyTable,
    PolicySnapshot,
    default_policy,
    default_permissions,
)
from community_access.store import (
    LevelConfigRow,
    SqlLevelConfigStore,
    InMemoryLevelConfigStore,
    build_level_config_store,
)
from community_access.resolver import (
    EntitlementResolver,
    get_resolver,
    configure_resolver,
    reset_resolver,
)
from community_access.quota import UploadQuotaResolver, remaining_uploads
from community_access.projector import ContentProjector
from community_access.assembler import WorkResponseAssembler
from community_access.config import Settings, get_settings

__all__ = [
    # Features
    "Feature",
    "PermissionStatus",
    "PromptType",
    "UserRole",
    "WorkVisibility",
    "ALWAYS_VISIBLE_FIELDS",
    "GATED_FIELDS",
    "REPORTABLE_FEATURES",
    # Levels
    "UserLevel",
    "GUEST_LEVEL",
    "rank_of",
    "name_of",
    "next_level",
    "level_info",
    "NextLevel",
    "UserLevelInfo",
    # Models
    "ActingUser",
    "FeaturePermissions",
    "LevelConfig",
    "PolicyEntry",
    "ResolvedEntitlement",
    "Projection",
    "AssembledResponse",
    # Errors
    "CommunityAccessError",
    "MissingVisibilityError",
    "MalformedLevelConfigError",
    "LevelConfigStoreError",
    # Policy
    "DEFAULT_PERMISSION_CONFIG",
    "UPLOAD_LIMITS",
    "UNLIMITED_UPLOADS",
    "FeaturePolicyTable",
    "PolicySnapshot",
    "default_policy",
    "default_permissions",
    # Store
    "LevelConfigRow",
    "SqlLevelConfigStore",
    "InMemoryLevelConfigStore",
    "build_level_config_store",
    # Resolution
    "EntitlementResolver",
    "get_resolver",
    "configure_resolver",
    "reset_resolver",
    "UploadQuotaResolver",
    "remaining_uploads",
    # Projection
    "ContentProjector",
    "WorkResponseAssembler",
    # Config
    "Settings",
    "get_settings",
]
