"""
Entitlement resolution: admin bypass -> level policy -> message and prompt.

Fails closed: any error while consulting the policy table resolves to
HIDDEN with no access. ``resolve`` never raises.

Callers resolving several features for one request take a snapshot with
``snapshot(user)`` and pass it along, so the store is read once and every
result reflects the same configuration.
"""

import logging
from typing import Dict, Iterable, Optional

from community_access.audit import emit_evaluation_failure
from community_access.features import Feature, PermissionStatus, PromptType
from community_access.levels import GUEST_LEVEL, name_of
from community_access.messages import CHECK_FAILED_MESSAGE, permission_message
from community_access.models import ActingUser, ResolvedEntitlement
from community_access.policy import FeaturePolicyTable, PolicySnapshot

logger = logging.getLogger(__name__)


def level_of(user: Optional[ActingUser]) -> int:
    """Caller rank; unauthenticated callers are guests."""
    if user is None:
        return GUEST_LEVEL
    return user.level


def prompt_type_for(level: int) -> PromptType:
    return PromptType.LOGIN if level == GUEST_LEVEL else PromptType.UPGRADE


def _is_admin(user: Optional[ActingUser]) -> bool:
    return user is not None and user.is_admin


def _denied(feature: Feature) -> ResolvedEntitlement:
    return ResolvedEntitlement(
        feature=feature,
        has_access=False,
        status=PermissionStatus.HIDDEN,
        message=CHECK_FAILED_MESSAGE,
    )


class EntitlementResolver:
    """Resolves a caller's access to features."""

    def __init__(self, policy_table: Optional[FeaturePolicyTable] = None):
        self.policy_table = policy_table or FeaturePolicyTable()

    def snapshot(self, user: Optional[ActingUser] = None) -> PolicySnapshot:
        """
        Policy for one request.

        Admins never consult the table, so no store read is made for them.
        A failed read is logged here once and yields a snapshot that denies
        every feature.
        """
        if _is_admin(user):
            return PolicySnapshot()
        try:
            return self.policy_table.snapshot()
        except Exception as e:
            level = level_of(user)
            logger.exception("Level policy unavailable", extra={"level": level})
            emit_evaluation_failure(level, None, str(e))
            return PolicySnapshot.unavailable(e)

    def resolve(
        self,
        user: Optional[ActingUser],
        feature: Feature,
        snapshot: Optional[PolicySnapshot] = None,
    ) -> ResolvedEntitlement:
        if _is_admin(user):
            return ResolvedEntitlement(
                feature=feature,
                has_access=True,
                status=PermissionStatus.VISIBLE,
                message="",
            )
        if snapshot is None:
            snapshot = self.snapshot(user)
        return self.resolve_level(level_of(user), feature, snapshot)

    def resolve_level(
        self,
        level: int,
        feature: Feature,
        snapshot: Optional[PolicySnapshot] = None,
    ) -> ResolvedEntitlement:
        """Resolve by rank alone (no admin bypass)."""
        if snapshot is None:
            snapshot = self.snapshot()
        if snapshot.error is not None:
            return _denied(feature)
        try:
            return self._resolve_level(snapshot, level, feature)
        except Exception as e:
            logger.exception(
                "Entitlement evaluation failed",
                extra={"level": level, "feature": feature.value},
            )
            emit_evaluation_failure(level, feature, str(e))
            return _denied(feature)

    def _resolve_level(self, snapshot: PolicySnapshot, level: int, feature: Feature) -> ResolvedEntitlement:
        entry = snapshot.policy_for(feature, level)
        status = entry.status

        if status is PermissionStatus.VISIBLE:
            return ResolvedEntitlement(
                feature=feature,
                has_access=True,
                status=status,
                message=permission_message(feature, status),
            )

        if status is PermissionStatus.PROMPT:
            prompt_type = prompt_type_for(level)
            target = snapshot.target_rank(feature, level, entry)
            target_name = name_of(target) if target is not None else None
            return ResolvedEntitlement(
                feature=feature,
                has_access=False,
                status=status,
                message=permission_message(feature, status, prompt_type, target_name),
                prompt_type=prompt_type,
                target_level=target,
                target_level_name=target_name,
            )

        return ResolvedEntitlement(
            feature=feature,
            has_access=False,
            status=PermissionStatus.HIDDEN,
            message=permission_message(feature, PermissionStatus.HIDDEN),
        )

    def resolve_many(
        self,
        user: Optional[ActingUser],
        features: Iterable[Feature],
        snapshot: Optional[PolicySnapshot] = None,
    ) -> Dict[Feature, ResolvedEntitlement]:
        """Resolve several features against one snapshot."""
        if snapshot is None:
            snapshot = self.snapshot(user)
        return {feature: self.resolve(user, feature, snapshot) for feature in features}

    def has_access(self, user: Optional[ActingUser], feature: Feature) -> bool:
        """Convenience: True only for VISIBLE."""
        return self.resolve(user, feature).has_access


_resolver: Optional[EntitlementResolver] = None


def configure_resolver(policy_table: Optional[FeaturePolicyTable] = None) -> EntitlementResolver:
    """Install the process-wide resolver."""
    global _resolver
    _resolver = EntitlementResolver(policy_table)
    return _resolver


def get_resolver() -> EntitlementResolver:
    """Process-wide resolver, built from environment settings on first use."""
    global _resolver
    if _resolver is None:
        from community_access.store import build_level_config_store
        _resolver = EntitlementResolver(FeaturePolicyTable(build_level_config_store()))
    return _resolver


def reset_resolver() -> None:
    global _resolver
    _resolver = None
