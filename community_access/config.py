"""
Environment configuration for level gating.

COMMUNITY_ACCESS_DATABASE_URL      SQLAlchemy URL of the level_configs store.
                                   Unset: static default permissions only.
LEVEL_CONFIG_OVERRIDES_ENABLED     "false" ignores stored level configs.
LEVEL_CONFIG_SEED_ON_START         "true" seeds the six default levels.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    overrides_enabled: bool = True
    seed_on_start: bool = False


def get_settings() -> Settings:
    """Read settings from the environment (not cached; tests patch os.environ)."""
    database_url = os.getenv("COMMUNITY_ACCESS_DATABASE_URL", "").strip() or None
    return Settings(
        database_url=database_url,
        overrides_enabled=_env_flag("LEVEL_CONFIG_OVERRIDES_ENABLED", "true"),
        seed_on_start=_env_flag("LEVEL_CONFIG_SEED_ON_START", "false"),
    )
