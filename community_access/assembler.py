"""
Work detail response assembly.

Combines the projected work, per-feature status metadata and the viewer's
level block into the payload returned by the work detail endpoint. One
policy snapshot is taken per response, so the redacted fields and the
status metadata always agree.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from community_access.features import ALWAYS_VISIBLE_FIELDS, GATED_FIELDS, REPORTABLE_FEATURES, Feature, PermissionStatus
from community_access.levels import level_info
from community_access.models import ActingUser, AssembledResponse
from community_access.policy import PolicySnapshot
from community_access.projector import ContentProjector
from community_access.quota import UploadQuotaResolver, remaining_uploads
from community_access.resolver import EntitlementResolver, level_of

logger = logging.getLogger(__name__)

LOGIN_REQUIRED = "LOGIN_REQUIRED"
FORBIDDEN = "FORBIDDEN"


class WorkResponseAssembler:
    """Builds work responses from one shared policy table."""

    def __init__(
        self,
        resolver: Optional[EntitlementResolver] = None,
        projector: Optional[ContentProjector] = None,
        quota: Optional[UploadQuotaResolver] = None,
    ):
        self.resolver = resolver or EntitlementResolver()
        self.projector = projector or ContentProjector(self.resolver)
        self.quota = quota or UploadQuotaResolver(self.resolver.policy_table)

    def permission_status(
        self,
        viewer: Optional[ActingUser],
        uploads_today: int = 0,
        snapshot: Optional[PolicySnapshot] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """Status metadata for reportable features; HIDDEN features are omitted."""
        if snapshot is None:
            snapshot = self.resolver.snapshot(viewer)
        resolved = self.resolver.resolve_many(viewer, REPORTABLE_FEATURES, snapshot)
        block: Dict[str, Dict[str, Any]] = {}
        for feature in REPORTABLE_FEATURES:
            entitlement = resolved[feature]
            if entitlement.status is PermissionStatus.HIDDEN:
                continue
            info = entitlement.to_status_info()
            if feature is Feature.UPLOAD and entitlement.status is PermissionStatus.VISIBLE:
                quota = self.quota.daily_quota(viewer, snapshot)
                info["remainingUploads"] = remaining_uploads(quota, uploads_today)
            block[feature.value] = info
        return block

    def build_work_response(
        self,
        record: Mapping[str, Any],
        viewer: Optional[ActingUser],
        uploads_today: int = 0,
    ) -> AssembledResponse:
        """
        Work detail payload for ``viewer``.

        The author sees their own gated fields whatever their level; status
        entries for those fields are dropped rather than shown as an upgrade
        prompt next to content that is already there.
        """
        user_level = level_info(level_of(viewer))

        if not self.projector.can_view(record, viewer):
            error_code = LOGIN_REQUIRED if viewer is None else FORBIDDEN
            logger.info(
                "Work not visible to viewer",
                extra={
                    "work_id": record.get("id"),
                    "user_id": viewer.id if viewer is not None else None,
                    "error_code": error_code,
                },
            )
            return AssembledResponse(
                visible=False,
                work={},
                permission_status={},
                user_level=user_level,
                error_code=error_code,
                deny_reason="Work is private",
            )

        snapshot = self.resolver.snapshot(viewer)
        projection = self.projector.project(record, viewer, snapshot)

        work = {name: projection.record.get(name) for name in ALWAYS_VISIBLE_FIELDS}
        for name in GATED_FIELDS:
            if name in projection.record:
                work[name] = projection.record[name]

        permission_status = self.permission_status(viewer, uploads_today, snapshot)
        if self.projector.is_owner(record, viewer):
            for name, feature in GATED_FIELDS.items():
                info = permission_status.get(feature.value)
                if name in work and info is not None and info["status"] != PermissionStatus.VISIBLE.value:
                    del permission_status[feature.value]

        return AssembledResponse(
            visible=True,
            work=work,
            permission_status=permission_status,
            user_level=user_level,
        )

    def build_work_list(
        self, records: Iterable[Mapping[str, Any]], viewer: Optional[ActingUser]
    ) -> List[Dict[str, Any]]:
        """Visible works for a list endpoint, redacted, in input order."""
        return self.projector.project_list(records, viewer)
