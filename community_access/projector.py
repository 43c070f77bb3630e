"""
Content projector: record-level visibility and field redaction for works.

A gated field is copied only when its feature resolves VISIBLE for the
viewer. Otherwise the key is left out of the output entirely.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from community_access.errors import MissingVisibilityError
from community_access.features import ALWAYS_VISIBLE_FIELDS, GATED_FIELDS, Feature, PermissionStatus, WorkVisibility
from community_access.models import ActingUser, Projection
from community_access.policy import PolicySnapshot
from community_access.resolver import EntitlementResolver


def author_id_of(record: Mapping[str, Any]) -> Any:
    """Author identity from a scalar ``author``/``authorId`` or an ``author`` mapping."""
    author = record.get("author")
    if isinstance(author, Mapping):
        return author.get("id")
    if author is not None:
        return author
    return record.get("authorId")


def visibility_of(record: Mapping[str, Any]) -> WorkVisibility:
    value = record.get("visibility")
    if value is None:
        raise MissingVisibilityError(work_id=record.get("id"))
    try:
        return WorkVisibility(value.value if isinstance(value, WorkVisibility) else str(value).strip().lower())
    except ValueError as e:
        raise MissingVisibilityError(work_id=record.get("id"), value=value) from e


def _same_identity(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return False
    return str(a) == str(b)


class ContentProjector:
    """Redacts work records for a viewer."""

    def __init__(self, resolver: Optional[EntitlementResolver] = None):
        self.resolver = resolver or EntitlementResolver()

    def is_owner(self, record: Mapping[str, Any], viewer: Optional[ActingUser]) -> bool:
        if viewer is None:
            return False
        return viewer.is_admin or _same_identity(author_id_of(record), viewer.id)

    def can_view(self, record: Mapping[str, Any], viewer: Optional[ActingUser]) -> bool:
        """Record-level gate. Raises MissingVisibilityError for records without visibility."""
        visibility = visibility_of(record)
        if self.is_owner(record, viewer):
            return True
        return visibility is WorkVisibility.PUBLIC

    def gated_statuses(
        self, viewer: Optional[ActingUser], snapshot: Optional[PolicySnapshot] = None
    ) -> Dict[Feature, PermissionStatus]:
        """Status of each gated-field feature for the viewer, from one snapshot."""
        features = sorted(set(GATED_FIELDS.values()), key=lambda f: f.value)
        resolved = self.resolver.resolve_many(viewer, features, snapshot)
        return {feature: result.status for feature, result in resolved.items()}

    def project(
        self,
        record: Mapping[str, Any],
        viewer: Optional[ActingUser],
        snapshot: Optional[PolicySnapshot] = None,
    ) -> Projection:
        if not self.can_view(record, viewer):
            return Projection(visible=False)
        if self.is_owner(record, viewer):
            return Projection(visible=True, record=dict(record))
        return Projection(visible=True, record=self._redact(record, self.gated_statuses(viewer, snapshot)))

    def project_list(
        self,
        records: Iterable[Mapping[str, Any]],
        viewer: Optional[ActingUser],
        snapshot: Optional[PolicySnapshot] = None,
    ) -> List[Dict[str, Any]]:
        """Visible records only, redacted, in input order."""
        statuses: Optional[Dict[Feature, PermissionStatus]] = None
        projected = []
        for record in records:
            if not self.can_view(record, viewer):
                continue
            if self.is_owner(record, viewer):
                projected.append(dict(record))
                continue
            if statuses is None:
                statuses = self.gated_statuses(viewer, snapshot)
            projected.append(self._redact(record, statuses))
        return projected

    def _redact(self, record: Mapping[str, Any], statuses: Mapping[Feature, PermissionStatus]) -> Dict[str, Any]:
        out = {name: record.get(name) for name in ALWAYS_VISIBLE_FIELDS}
        for name, feature in GATED_FIELDS.items():
            if name in record and statuses.get(feature) is PermissionStatus.VISIBLE:
                out[name] = record[name]
        return out
