"""
Structured audit logging for level gating.

Emits log events for configuration fallbacks, evaluation failures and
denied feature checks. Fields go in ``extra`` so log shippers can index them.
"""

import logging
from typing import Optional

from community_access.features import Feature, PermissionStatus

logger = logging.getLogger(__name__)


def log_config_fallback(level: int, error: str) -> None:
    """A stored level config was unusable; the static table was used instead."""
    logger.warning(
        "Level config unusable, using default permissions",
        extra={"level": level, "error": error, "action": "level_config.fallback"},
    )


def emit_evaluation_failure(level: int, feature: Optional[Feature], error: str) -> None:
    """Resolution failed and was denied (fail-closed)."""
    logger.error(
        "Entitlement evaluation failure",
        extra={
            "level": level,
            "feature": feature.value if feature is not None else None,
            "error": error,
            "action": "entitlement.eval_failed",
        },
    )


def log_feature_denied(
    user_id,
    level: int,
    feature: Feature,
    status: PermissionStatus,
    path: Optional[str] = None,
) -> None:
    try:
        logger.info(
            "Feature access denied",
            extra={
                "user_id": user_id,
                "level": level,
                "feature": feature.value,
                "status": status.value,
                "path": path,
                "action": "entitlement.denied",
            },
        )
    except Exception as e:
        logger.error(
            "Failed to log feature denied audit event",
            extra={"error": str(e), "feature": getattr(feature, "value", feature)},
        )
