"""
Level catalog.

Maps numeric user levels to display names and the fixed upgrade chain.
Ranks are compared numerically; names are derived for display only.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class UserLevel(IntEnum):
    GUEST = 10
    USER = 20
    MEMBER = 30
    PREMIUM = 40
    CO_CREATOR = 50
    FOUNDER = 319


# Rank used for unauthenticated callers
GUEST_LEVEL = int(UserLevel.GUEST)

UNKNOWN_LEVEL_NAME = "Unknown level"
DEFAULT_UPGRADE_ACTION = "Upgrade for more access"

LEVEL_NAMES = {
    UserLevel.GUEST: "Guest",
    UserLevel.USER: "User",
    UserLevel.MEMBER: "Member",
    UserLevel.PREMIUM: "Premium Member",
    UserLevel.CO_CREATOR: "Co-creator",
    UserLevel.FOUNDER: "Founder",
}

# Keyed by the level being upgraded *to*
UPGRADE_ACTIONS = {
    UserLevel.USER: "Sign up and log in to become a User",
    UserLevel.MEMBER: "Upgrade to Member for more access",
    UserLevel.PREMIUM: "Upgrade to Premium Member to view source code",
    UserLevel.CO_CREATOR: "Upgrade to Co-creator for more access",
    UserLevel.FOUNDER: "Upgrade to Founder for full access",
}


@dataclass(frozen=True)
class NextLevel:
    level: int
    name: str
    required_action: str

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "name": self.name, "requiredAction": self.required_action}


@dataclass(frozen=True)
class UserLevelInfo:
    current: int
    name: str
    next_level: Optional[NextLevel] = None

    def to_dict(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {"current": self.current, "name": self.name}
        if self.next_level is not None:
            info["nextLevel"] = self.next_level.to_dict()
        return info


# guest -> user -> member -> premium -> co-creator -> founder
LEVEL_CHAIN: Tuple[int, ...] = tuple(int(level) for level in sorted(UserLevel))


def canonical_ranks() -> Tuple[int, ...]:
    """Ascending ranks of the built-in levels."""
    return LEVEL_CHAIN


def rank_of(value) -> int:
    """
    Numeric rank for a level value.

    Integers (and UserLevel members) are returned unchanged, digit strings
    are parsed. Anything else is treated as a guest.

    Examples:
        >>> rank_of(UserLevel.MEMBER)
        30
        >>> rank_of("40")
        40
        >>> rank_of(None)
        10
    """
    if isinstance(value, bool) or value is None:
        return GUEST_LEVEL
    if isinstance(value, int):
        return int(value)
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return int(text)
    logger.debug("Non-numeric level value treated as guest", extra={"level_value": text})
    return GUEST_LEVEL


def name_of(rank: int) -> str:
    try:
        return LEVEL_NAMES[UserLevel(rank)]
    except ValueError:
        return UNKNOWN_LEVEL_NAME


def is_known_rank(rank: int) -> bool:
    return rank in LEVEL_CHAIN


def upgrade_action(to_rank: int) -> str:
    try:
        return UPGRADE_ACTIONS.get(UserLevel(to_rank), DEFAULT_UPGRADE_ACTION)
    except ValueError:
        return DEFAULT_UPGRADE_ACTION


def next_level(rank: int) -> Optional[NextLevel]:
    """
    Next level strictly above ``rank`` in the upgrade chain.

    Unknown ranks keep their numeric position, so a rank of 35 is offered
    the Premium Member upgrade. Returns None at the top of the chain.
    """
    for candidate in LEVEL_CHAIN:
        if candidate > rank:
            return NextLevel(
                level=candidate,
                name=name_of(candidate),
                required_action=upgrade_action(candidate),
            )
    return None


def level_info(rank: int) -> UserLevelInfo:
    """Current level block for a response."""
    return UserLevelInfo(current=rank, name=name_of(rank), next_level=next_level(rank))
