"""
FastAPI dependencies for level-gated routes.

Routes declare the feature they need and how the caller is identified:

    get_user = ...  # app dependency returning Optional[ActingUser]

    @router.post("/works/{work_id}/vote")
    def vote(entitlement=Depends(require_feature(Feature.VOTE, get_user))):
        ...

Guests are answered 401, authenticated callers without access 403. Both
carry the resolved status so the client can show the matching prompt.
"""

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from community_access.assembler import FORBIDDEN, LOGIN_REQUIRED
from community_access.audit import log_feature_denied
from community_access.features import Feature
from community_access.models import ActingUser, AssembledResponse, ResolvedEntitlement
from community_access.resolver import EntitlementResolver, get_resolver, level_of


def anonymous_user() -> Optional[ActingUser]:
    """Default user dependency: every caller is a guest."""
    return None


def require_feature(
    feature: Feature,
    current_user: Callable[..., Optional[ActingUser]] = anonymous_user,
) -> Callable:
    """
    Factory for a dependency that admits only callers with VISIBLE access.

    Args:
        feature: Feature the route exposes
        current_user: Dependency returning the acting user, or None for guests

    Returns:
        FastAPI dependency returning the ResolvedEntitlement when allowed
    """

    def _check(
        request: Request,
        user: Optional[ActingUser] = Depends(current_user),
        resolver: EntitlementResolver = Depends(get_resolver),
    ) -> ResolvedEntitlement:
        entitlement = resolver.resolve(user, feature)
        if entitlement.has_access:
            return entitlement

        log_feature_denied(
            user.id if user is not None else None,
            level_of(user),
            feature,
            entitlement.status,
            path=request.url.path,
        )
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={
                    "error": "Authentication required",
                    "permissionStatus": entitlement.to_dict(),
                },
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Insufficient permissions",
                "permissionStatus": entitlement.to_dict(),
            },
        )

    return _check


def raise_for_denied(response: AssembledResponse) -> AssembledResponse:
    """Map an invisible work response to 401/403; visible responses pass through."""
    if response.visible:
        return response
    if response.error_code == LOGIN_REQUIRED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": LOGIN_REQUIRED, "message": "Log in to view this work"},
        )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": response.error_code or FORBIDDEN, "message": response.deny_reason or "Access denied"},
    )
