"""
Community access error hierarchy.

Provides:
- CommunityAccessError: base for all gating failures
- MissingVisibilityError: caller passed a work without a visibility value
- MalformedLevelConfigError: a stored level configuration could not be decoded
- LevelConfigStoreError: the level configuration store could not be read

Only MissingVisibilityError is meant to reach callers; the others are
handled inside the engine (static fallback or fail-closed).
"""

from typing import Any, Optional


class CommunityAccessError(Exception):
    """Base exception for level-gating failures."""

    error_code = "COMMUNITY_ACCESS_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class MissingVisibilityError(CommunityAccessError):
    """Raised when a work record has no (or an unrecognised) visibility value."""

    error_code = "WORK_VISIBILITY_MISSING"

    def __init__(self, work_id: Any = None, value: Any = None):
        self.work_id = work_id
        self.value = value
        if value is None:
            detail = f"Work {work_id!r} has no visibility value"
        else:
            detail = f"Work {work_id!r} has unrecognised visibility {value!r}"
        super().__init__(detail)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["work_id"] = self.work_id
        return d


class MalformedLevelConfigError(CommunityAccessError):
    """Raised when a stored permission map fails to decode."""

    error_code = "LEVEL_CONFIG_MALFORMED"

    def __init__(self, level: int, detail: str, cause: Optional[Exception] = None):
        self.level = level
        self.detail = detail
        self.cause = cause
        super().__init__(f"Level config {level} is malformed: {detail}")

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["level"] = self.level
        return d


class LevelConfigStoreError(CommunityAccessError):
    """Raised when the level configuration store is unavailable."""

    error_code = "LEVEL_CONFIG_UNAVAILABLE"

    def __init__(self, detail: str, cause: Optional[Exception] = None):
        self.detail = detail
        self.cause = cause
        super().__init__(f"Level config store unavailable: {detail}")
