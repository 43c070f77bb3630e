from unittest.mock import MagicMock

import pytest

from community_access.errors import LevelConfigStoreError
from community_access.features import Feature, PermissionStatus
from community_access.levels import UserLevel, canonical_ranks
from community_access.models import FeaturePermissions, LevelConfig
from community_access.policy import (
    DEFAULT_PERMISSION_CONFIG,
    UPLOAD_LIMITS,
    FeaturePolicyTable,
    PolicySnapshot,
    default_permissions,
    default_policy,
)
from community_access.store import InMemoryLevelConfigStore

_ORDER = {
    PermissionStatus.HIDDEN: 0,
    PermissionStatus.PROMPT: 1,
    PermissionStatus.VISIBLE: 2,
}


def _all_visible(level, name="Custom", max_uploads=5):
    return LevelConfig(
        level=level,
        name=name,
        permissions=FeaturePermissions.from_statuses(
            {feature: PermissionStatus.VISIBLE for feature in Feature},
            max_uploads_per_day=max_uploads,
        ),
    )


class TestDefaultTable:
    def test_every_feature_covers_every_canonical_rank(self):
        for feature in Feature:
            assert set(DEFAULT_PERMISSION_CONFIG[feature]) == set(canonical_ranks())

    @pytest.mark.parametrize("feature", list(Feature))
    def test_default_table_is_monotonic(self, feature):
        statuses = [default_policy(feature, rank).status for rank in canonical_ranks()]
        ranks = [_ORDER[s] for s in statuses]
        assert ranks == sorted(ranks), f"{feature.value} regresses: {statuses}"

    def test_prompt_entries_name_a_visible_target(self):
        for feature, levels in DEFAULT_PERMISSION_CONFIG.items():
            for level, entry in levels.items():
                if entry.target_rank is None:
                    continue
                assert entry.status is PermissionStatus.PROMPT
                assert entry.target_rank > level
                assert default_policy(feature, entry.target_rank).status is PermissionStatus.VISIBLE

    def test_unknown_rank_is_hidden(self):
        for feature in Feature:
            assert default_policy(feature, 35).status is PermissionStatus.HIDDEN

    def test_upload_limits(self):
        assert dict(UPLOAD_LIMITS) == {10: 0, 20: 0, 30: 3, 40: 10, 50: 20, 319: -1}

    def test_default_permissions_carry_quota(self):
        perms = default_permissions(UserLevel.MEMBER)
        assert perms.max_uploads_per_day == 3
        assert perms.status_for(Feature.PROMPT) is PermissionStatus.VISIBLE
        assert perms.status_for(Feature.SOURCE_CODE) is PermissionStatus.PROMPT


class TestFeaturePolicyTable:
    def test_static_only(self):
        table = FeaturePolicyTable()
        assert table.policy_for(Feature.PROMPT, UserLevel.USER).status is PermissionStatus.PROMPT
        assert table.policy_for(Feature.PROMPT, UserLevel.MEMBER).status is PermissionStatus.VISIBLE
        assert table.daily_quota(UserLevel.PREMIUM) == 10
        assert table.daily_quota(35) == 0

    def test_stored_row_replaces_defaults_for_that_rank_only(self):
        table = FeaturePolicyTable(InMemoryLevelConfigStore([_all_visible(UserLevel.GUEST, max_uploads=1)]))
        assert table.policy_for(Feature.SOURCE_CODE, UserLevel.GUEST).status is PermissionStatus.VISIBLE
        assert table.daily_quota(UserLevel.GUEST) == 1
        assert table.policy_for(Feature.SOURCE_CODE, UserLevel.USER).status is PermissionStatus.HIDDEN

    def test_stored_row_for_unknown_rank(self):
        table = FeaturePolicyTable(InMemoryLevelConfigStore([_all_visible(35)]))
        assert table.policy_for(Feature.DOWNLOAD, 35).status is PermissionStatus.VISIBLE
        assert 35 in table.known_ranks()

    def test_inactive_row_is_ignored(self):
        config = LevelConfig(
            level=UserLevel.GUEST,
            name="Guest",
            permissions=default_permissions(UserLevel.FOUNDER),
            is_active=False,
        )
        table = FeaturePolicyTable(InMemoryLevelConfigStore([config]))
        assert table.policy_for(Feature.SOURCE_CODE, UserLevel.GUEST).status is PermissionStatus.HIDDEN

    def test_store_failure_propagates(self):
        store = MagicMock()
        store.list_active.side_effect = RuntimeError("database down")
        table = FeaturePolicyTable(store)
        with pytest.raises(RuntimeError):
            table.policy_for(Feature.PROMPT, UserLevel.USER)


class TestPolicySnapshot:
    def test_snapshot_reads_store_once(self):
        store = MagicMock()
        store.list_active.return_value = [_all_visible(UserLevel.GUEST, max_uploads=1)]
        snapshot = FeaturePolicyTable(store).snapshot()

        for feature in Feature:
            for rank in canonical_ranks():
                snapshot.policy_for(feature, rank)
                snapshot.target_rank(feature, rank)
        snapshot.daily_quota(UserLevel.GUEST)

        store.list_active.assert_called_once_with()
        assert snapshot.policy_for(Feature.SOURCE_CODE, UserLevel.GUEST).status is PermissionStatus.VISIBLE
        assert snapshot.daily_quota(UserLevel.GUEST) == 1

    def test_snapshot_ignores_later_writes(self):
        store = InMemoryLevelConfigStore()
        table = FeaturePolicyTable(store)
        snapshot = table.snapshot()
        store.save(_all_visible(UserLevel.GUEST))

        assert snapshot.policy_for(Feature.PROMPT, UserLevel.GUEST).status is PermissionStatus.PROMPT
        assert table.policy_for(Feature.PROMPT, UserLevel.GUEST).status is PermissionStatus.VISIBLE

    def test_stored_ranks_join_known_ranks(self):
        snapshot = PolicySnapshot([_all_visible(35)])
        assert snapshot.stored_ranks == (35,)
        assert snapshot.known_ranks() == (10, 20, 30, 35, 40, 50, 319)

    def test_unavailable_snapshot_raises_on_lookup(self):
        snapshot = PolicySnapshot.unavailable(RuntimeError("database down"))
        assert snapshot.error is not None
        with pytest.raises(LevelConfigStoreError):
            snapshot.policy_for(Feature.VOTE, UserLevel.USER)
        with pytest.raises(LevelConfigStoreError):
            snapshot.daily_quota(UserLevel.MEMBER)


class TestTargetRank:
    def test_entry_target_used(self):
        table = FeaturePolicyTable()
        entry = table.policy_for(Feature.PROMPT, UserLevel.USER)
        assert table.target_rank(Feature.PROMPT, UserLevel.USER, entry) == UserLevel.MEMBER

    def test_threshold_used_for_guest(self):
        table = FeaturePolicyTable()
        assert table.target_rank(Feature.PROMPT, UserLevel.GUEST) == UserLevel.MEMBER
        assert table.target_rank(Feature.VOTE, UserLevel.GUEST) == UserLevel.USER

    def test_scan_used_without_threshold(self):
        table = FeaturePolicyTable()
        assert table.target_rank(Feature.PREMIUM_CONTENT, UserLevel.MEMBER) == UserLevel.PREMIUM

    def test_target_skips_levels_overridden_to_non_visible(self):
        config = LevelConfig(
            level=UserLevel.MEMBER,
            name="Member",
            permissions=default_permissions(UserLevel.USER),
        )
        table = FeaturePolicyTable(InMemoryLevelConfigStore([config]))
        assert table.target_rank(Feature.PROMPT, UserLevel.USER) == UserLevel.PREMIUM

    def test_no_visible_level_above(self):
        hidden = LevelConfig(
            level=UserLevel.FOUNDER,
            name="Founder",
            permissions=FeaturePermissions.from_statuses({}, max_uploads_per_day=0),
        )
        table = FeaturePolicyTable(InMemoryLevelConfigStore([hidden]))
        assert table.target_rank(Feature.SOURCE_CODE, UserLevel.CO_CREATOR) is None
