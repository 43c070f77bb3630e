"""
Feature policy table.

Resolves (feature, level) to a PolicyEntry in this order:
1. an active stored level config for that exact level (complete table, used verbatim)
2. the static default table below
Levels absent from both resolve to HIDDEN.

This module owns the only copy of the default level thresholds. Other
modules call through FeaturePolicyTable (or a PolicySnapshot taken from it)
instead of restating them.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Protocol, Tuple

from community_access.errors import LevelConfigStoreError
from community_access.features import Feature, PermissionStatus
from community_access.levels import UserLevel, canonical_ranks
from community_access.models import FeaturePermissions, LevelConfig, PolicyEntry

logger = logging.getLogger(__name__)

HIDDEN = PermissionStatus.HIDDEN
PROMPT = PermissionStatus.PROMPT
VISIBLE = PermissionStatus.VISIBLE

GUEST = UserLevel.GUEST
USER = UserLevel.USER
MEMBER = UserLevel.MEMBER
PREMIUM = UserLevel.PREMIUM
CO_CREATOR = UserLevel.CO_CREATOR
FOUNDER = UserLevel.FOUNDER


# feature -> level -> (status, target level for PROMPT)
_DEFAULT_TABLE: Dict[Feature, Dict[int, Tuple[PermissionStatus, Optional[int]]]] = {
    Feature.PROMPT: {
        GUEST: (PROMPT, None),          # log in to view
        USER: (PROMPT, MEMBER),
        MEMBER: (VISIBLE, None),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.SOURCE_CODE: {
        GUEST: (HIDDEN, None),
        USER: (HIDDEN, None),
        MEMBER: (PROMPT, PREMIUM),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.VOTE: {
        GUEST: (PROMPT, None),
        USER: (VISIBLE, None),
        MEMBER: (VISIBLE, None),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.COMMENT: {
        GUEST: (PROMPT, None),
        USER: (VISIBLE, None),
        MEMBER: (VISIBLE, None),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.SHARE: {
        GUEST: (HIDDEN, None),
        USER: (VISIBLE, None),
        MEMBER: (VISIBLE, None),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.UPLOAD: {
        GUEST: (HIDDEN, None),
        USER: (PROMPT, MEMBER),
        MEMBER: (VISIBLE, None),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.DOWNLOAD: {
        GUEST: (HIDDEN, None),
        USER: (HIDDEN, None),
        MEMBER: (VISIBLE, None),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.PREMIUM_CONTENT: {
        GUEST: (HIDDEN, None),
        USER: (HIDDEN, None),
        MEMBER: (PROMPT, PREMIUM),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
    Feature.CREATOR_INFO: {
        GUEST: (VISIBLE, None),
        USER: (VISIBLE, None),
        MEMBER: (VISIBLE, None),
        PREMIUM: (VISIBLE, None),
        CO_CREATOR: (VISIBLE, None),
        FOUNDER: (VISIBLE, None),
    },
}

DEFAULT_PERMISSION_CONFIG: Mapping[Feature, Mapping[int, PolicyEntry]] = MappingProxyType({
    feature: MappingProxyType({
        int(level): PolicyEntry(
            feature=feature,
            level=int(level),
            status=status,
            target_rank=int(target) if target is not None else None,
        )
        for level, (status, target) in levels.items()
    })
    for feature, levels in _DEFAULT_TABLE.items()
})

# Daily upload cap per level; -1 is unlimited
UPLOAD_LIMITS: Mapping[int, int] = MappingProxyType({
    int(GUEST): 0,
    int(USER): 0,
    int(MEMBER): 3,
    int(PREMIUM): 10,
    int(CO_CREATOR): 20,
    int(FOUNDER): -1,
})

UNLIMITED_UPLOADS = -1

# Minimum level at which a feature becomes visible, for PROMPT entries
# that carry no explicit target
FEATURE_TARGET_THRESHOLDS: Mapping[Feature, int] = MappingProxyType({
    Feature.PROMPT: int(MEMBER),
    Feature.SOURCE_CODE: int(PREMIUM),
    Feature.UPLOAD: int(MEMBER),
    Feature.VOTE: int(USER),
})


class LevelConfigReader(Protocol):
    """Read side of a level config store."""

    def list_active(self) -> Iterable[LevelConfig]:
        ...


def default_policy(feature: Feature, level: int) -> PolicyEntry:
    """Static table lookup; unknown levels are HIDDEN."""
    entry = DEFAULT_PERMISSION_CONFIG[feature].get(level)
    if entry is None:
        return PolicyEntry(feature=feature, level=level, status=HIDDEN)
    return entry


def default_permissions(level: int) -> FeaturePermissions:
    """Complete default permission map for a level, as stored in level_configs."""
    return FeaturePermissions.from_statuses(
        {feature: default_policy(feature, level).status for feature in Feature},
        max_uploads_per_day=UPLOAD_LIMITS.get(level, 0),
    )


class PolicySnapshot:
    """
    Level policy as of one store read: decoded configs indexed by rank.

    Every lookup made through one snapshot sees the same configuration, so a
    response built from it cannot mix statuses from before and after a
    config write.
    """

    def __init__(self, configs: Iterable[LevelConfig] = (), error: Optional[Exception] = None):
        self._configs: Mapping[int, LevelConfig] = MappingProxyType(
            {int(config.level): config for config in configs}
        )
        self._known_ranks = tuple(sorted(set(canonical_ranks()) | set(self._configs)))
        self.error = error

    @classmethod
    def unavailable(cls, error: Exception) -> "PolicySnapshot":
        """Stands in for a failed store read; every lookup raises."""
        return cls(error=error)

    @property
    def stored_ranks(self) -> Tuple[int, ...]:
        return tuple(sorted(self._configs))

    def _stored_config(self, level: int) -> Optional[LevelConfig]:
        if self.error is not None:
            raise LevelConfigStoreError(str(self.error), cause=self.error)
        return self._configs.get(level)

    def policy_for(self, feature: Feature, level: int) -> PolicyEntry:
        config = self._stored_config(level)
        if config is not None:
            return PolicyEntry(
                feature=feature,
                level=level,
                status=config.permissions.status_for(feature),
            )
        return default_policy(feature, level)

    def permissions_for(self, level: int) -> FeaturePermissions:
        config = self._stored_config(level)
        if config is not None:
            return config.permissions
        return default_permissions(level)

    def daily_quota(self, level: int) -> int:
        config = self._stored_config(level)
        if config is not None:
            return config.permissions.max_uploads_per_day
        return UPLOAD_LIMITS.get(level, 0)

    def known_ranks(self) -> Tuple[int, ...]:
        """Built-in ranks plus any ranks defined only in the store, ascending."""
        return self._known_ranks

    def target_rank(
        self,
        feature: Feature,
        level: int,
        entry: Optional[PolicyEntry] = None,
    ) -> Optional[int]:
        """
        Lowest level above ``level`` at which ``feature`` is VISIBLE.

        Tries the entry's own target, then the static threshold, then scans
        known ranks in ascending order. A returned rank always resolves
        VISIBLE for the feature.
        """
        candidates = []
        if entry is not None and entry.target_rank is not None:
            candidates.append(entry.target_rank)
        threshold = FEATURE_TARGET_THRESHOLDS.get(feature)
        if threshold is not None:
            candidates.append(threshold)
        candidates.extend(self._known_ranks)

        for candidate in candidates:
            if candidate <= level:
                continue
            if self.policy_for(feature, candidate).status is VISIBLE:
                return candidate

        logger.debug(
            "No level unlocks feature",
            extra={"feature": feature.value, "level": level},
        )
        return None


class FeaturePolicyTable:
    """
    Level policy lookups with stored-config override and static fallback.

    Holds no mutable state. ``snapshot()`` reads the store once; callers that
    make several lookups for one request take a snapshot and query it. The
    single-lookup methods below each take their own snapshot.
    """

    def __init__(self, store: Optional[LevelConfigReader] = None):
        """
        Args:
            store: Level config store. None means static defaults only.
        """
        self._store = store

    @property
    def store(self) -> Optional[LevelConfigReader]:
        return self._store

    def snapshot(self) -> PolicySnapshot:
        """
        Current policy, from one read of the store's active configs.

        Rows that fail to decode are left out by the store, so their levels
        use the static table. Store failures propagate.
        """
        if self._store is None:
            return PolicySnapshot()
        return PolicySnapshot(self._store.list_active())

    def policy_for(self, feature: Feature, level: int) -> PolicyEntry:
        return self.snapshot().policy_for(feature, level)

    def permissions_for(self, level: int) -> FeaturePermissions:
        return self.snapshot().permissions_for(level)

    def daily_quota(self, level: int) -> int:
        return self.snapshot().daily_quota(level)

    def known_ranks(self) -> Tuple[int, ...]:
        return self.snapshot().known_ranks()

    def target_rank(
        self,
        feature: Feature,
        level: int,
        entry: Optional[PolicyEntry] = None,
    ) -> Optional[int]:
        return self.snapshot().target_rank(feature, level, entry)
