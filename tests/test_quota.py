from unittest.mock import MagicMock

import pytest

from community_access.errors import LevelConfigStoreError
from community_access.features import Feature, PermissionStatus
from community_access.levels import UserLevel
from community_access.models import FeaturePermissions, LevelConfig
from community_access.policy import FeaturePolicyTable
from community_access.quota import UploadQuotaResolver, remaining_uploads
from community_access.store import InMemoryLevelConfigStore

from conftest import make_user


@pytest.mark.parametrize(
    "rank,expected",
    [(10, 0), (20, 0), (30, 3), (40, 10), (50, 20), (319, -1), (35, 0)],
)
def test_static_quota(rank, expected):
    assert UploadQuotaResolver().daily_quota(rank) == expected


def test_guest_quota():
    assert UploadQuotaResolver().daily_quota(None) == 0


def test_admin_is_unlimited():
    assert UploadQuotaResolver().daily_quota(make_user(UserLevel.GUEST, role="admin")) == -1


def test_stored_quota_overrides_static():
    config = LevelConfig(
        level=UserLevel.MEMBER,
        name="Member",
        permissions=FeaturePermissions.from_statuses(
            {Feature.UPLOAD: PermissionStatus.VISIBLE}, max_uploads_per_day=7
        ),
    )
    resolver = UploadQuotaResolver(FeaturePolicyTable(InMemoryLevelConfigStore([config])))
    assert resolver.daily_quota(make_user(UserLevel.MEMBER)) == 7
    assert resolver.daily_quota(UserLevel.PREMIUM) == 10


def test_store_failure_returns_zero():
    store = MagicMock()
    store.list_active.side_effect = LevelConfigStoreError("timeout")
    resolver = UploadQuotaResolver(FeaturePolicyTable(store))
    assert resolver.daily_quota(UserLevel.FOUNDER) == 0


@pytest.mark.parametrize(
    "quota,used,expected",
    [(3, 0, 3), (3, 2, 1), (3, 9, 0), (0, 0, 0), (-1, 100, -1), (10, -4, 10)],
)
def test_remaining_uploads(quota, used, expected):
    assert remaining_uploads(quota, used) == expected
