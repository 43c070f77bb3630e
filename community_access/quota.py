"""
Daily upload quota per level.

-1 means unlimited, 0 means the level cannot upload.
"""

import logging
from typing import Optional, Union

from community_access.audit import emit_evaluation_failure
from community_access.features import Feature
from community_access.models import ActingUser
from community_access.policy import UNLIMITED_UPLOADS, FeaturePolicyTable, PolicySnapshot
from community_access.resolver import level_of

logger = logging.getLogger(__name__)


def remaining_uploads(quota: int, uploads_today: int = 0) -> int:
    """
    Uploads left today under ``quota``.

    Examples:
        >>> remaining_uploads(3, 1)
        2
        >>> remaining_uploads(-1, 50)
        -1
        >>> remaining_uploads(3, 5)
        0
    """
    if quota == UNLIMITED_UPLOADS:
        return UNLIMITED_UPLOADS
    return max(quota - max(uploads_today, 0), 0)


class UploadQuotaResolver:
    """Stored level config first, then the static limits; admins are unlimited."""

    def __init__(self, policy_table: Optional[FeaturePolicyTable] = None):
        self.policy_table = policy_table or FeaturePolicyTable()

    def daily_quota(
        self,
        user_or_rank: Union[ActingUser, int, None],
        snapshot: Optional[PolicySnapshot] = None,
    ) -> int:
        if isinstance(user_or_rank, ActingUser):
            if user_or_rank.is_admin:
                return UNLIMITED_UPLOADS
            level = user_or_rank.level
        elif user_or_rank is None:
            level = level_of(None)
        else:
            level = int(user_or_rank)

        try:
            if snapshot is None:
                snapshot = self.policy_table.snapshot()
            return snapshot.daily_quota(level)
        except Exception as e:
            logger.exception("Upload quota lookup failed", extra={"level": level})
            emit_evaluation_failure(level, Feature.UPLOAD, str(e))
            return 0
