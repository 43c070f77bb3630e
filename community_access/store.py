"""
Level config store.

Stored rows hold the permission map as a JSON document. Rows are decoded
into LevelConfig once when read and encoded once when written; nothing
outside this module sees the serialized form.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from community_access.audit import log_config_fallback
from community_access.config import Settings, get_settings
from community_access.db import Base, create_db_engine, create_schema, create_session_factory
from community_access.errors import LevelConfigStoreError, MalformedLevelConfigError
from community_access.levels import UserLevel, canonical_ranks, name_of
from community_access.models import FeaturePermissions, LevelConfig
from community_access.policy import default_permissions

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LevelConfigRow(Base):
    """
    Per-level permission configuration.

    A row replaces the default permissions for its level entirely.
    """

    __tablename__ = "level_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    level = Column(Integer, nullable=False, unique=True, index=True)
    name = Column(String(50), nullable=False)
    description = Column(Text, nullable=False, default="")
    color = Column(String(20), nullable=False, default="")
    icon = Column(String(10), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # JSON document, see FeaturePermissions aliases
    permissions = Column(Text, nullable=False)

    upgrade_condition = Column(Text, nullable=True)
    price_range = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<LevelConfigRow(level={self.level}, name={self.name!r}, is_active={self.is_active})>"


# Display metadata for the seeded default rows
DEFAULT_LEVEL_DETAILS = {
    UserLevel.GUEST: {
        "description": "Visitor who is not logged in; basic features only",
        "color": "#9CA3AF",
        "icon": "👤",
        "upgrade_condition": "Sign up and log in to become a User",
    },
    UserLevel.USER: {
        "description": "Registered user with access to basic features",
        "color": "#3B82F6",
        "icon": "🔵",
        "upgrade_condition": "Upgrade to Member for more access",
    },
    UserLevel.MEMBER: {
        "description": "Paying member; can view prompts and upload works",
        "color": "#10B981",
        "icon": "🟢",
        "upgrade_condition": "Upgrade to Premium Member to view source code",
    },
    UserLevel.PREMIUM: {
        "description": "Premium member; can view source code and premium content",
        "color": "#8B5CF6",
        "icon": "🟣",
        "upgrade_condition": "Upgrade to Co-creator for more access",
    },
    UserLevel.CO_CREATOR: {
        "description": "Co-creation partner with advanced creator access",
        "color": "#F59E0B",
        "icon": "🟡",
        "upgrade_condition": "Upgrade to Founder for full access",
    },
    UserLevel.FOUNDER: {
        "description": "Founder level with every permission",
        "color": "#EF4444",
        "icon": "👑",
        "upgrade_condition": "Highest level; every permission granted",
    },
}


def default_level_configs() -> List[LevelConfig]:
    """The six built-in levels with their default permissions."""
    configs = []
    for rank in canonical_ranks():
        details = DEFAULT_LEVEL_DETAILS[UserLevel(rank)]
        configs.append(LevelConfig(
            level=rank,
            name=name_of(rank),
            permissions=default_permissions(rank),
            description=details["description"],
            color=details["color"],
            icon=details["icon"],
            upgrade_condition=details["upgrade_condition"],
        ))
    return configs


def decode_permissions(level: int, raw: Optional[str]) -> FeaturePermissions:
    if not raw:
        raise MalformedLevelConfigError(level, "permissions document is empty")
    try:
        return FeaturePermissions.model_validate_json(raw)
    except (ValueError, TypeError) as e:
        raise MalformedLevelConfigError(level, str(e), cause=e) from e


def encode_permissions(permissions: FeaturePermissions) -> str:
    return json.dumps(permissions.to_storage(), sort_keys=True)


def _decode_price_range(level: int, raw: Optional[str]) -> Optional[Dict[str, float]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError as e:
        logger.warning("Unreadable price range on level config", extra={"level": level, "error": str(e)})
        return None
    if not isinstance(value, dict):
        return None
    return {str(k): float(v) for k, v in value.items()}


def row_to_config(row: LevelConfigRow) -> LevelConfig:
    return LevelConfig(
        level=row.level,
        name=row.name,
        permissions=decode_permissions(row.level, row.permissions),
        description=row.description or "",
        color=row.color or "",
        icon=row.icon or "",
        is_active=bool(row.is_active),
        upgrade_condition=row.upgrade_condition,
        price_range=_decode_price_range(row.level, row.price_range),
    )


def _apply_config(row: LevelConfigRow, config: LevelConfig) -> None:
    row.level = config.level
    row.name = config.name
    row.description = config.description
    row.color = config.color
    row.icon = config.icon
    row.is_active = config.is_active
    row.permissions = encode_permissions(config.permissions)
    row.upgrade_condition = config.upgrade_condition
    row.price_range = json.dumps(dict(config.price_range)) if config.price_range is not None else None


class SqlLevelConfigStore:
    """Level configs backed by the level_configs table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _session(self) -> Session:
        try:
            return self._session_factory()
        except SQLAlchemyError as e:
            raise LevelConfigStoreError(str(e), cause=e) from e

    def get_active(self, level: int) -> Optional[LevelConfig]:
        db = self._session()
        try:
            row = (
                db.query(LevelConfigRow)
                .filter(LevelConfigRow.level == level, LevelConfigRow.is_active.is_(True))
                .first()
            )
        except SQLAlchemyError as e:
            raise LevelConfigStoreError(str(e), cause=e) from e
        finally:
            db.close()
        if row is None:
            return None
        return row_to_config(row)

    def list_active(self) -> List[LevelConfig]:
        """Active configs ordered by level. Malformed rows are skipped; their levels use the static table."""
        db = self._session()
        try:
            rows = (
                db.query(LevelConfigRow)
                .filter(LevelConfigRow.is_active.is_(True))
                .order_by(LevelConfigRow.level.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise LevelConfigStoreError(str(e), cause=e) from e
        finally:
            db.close()

        configs = []
        for row in rows:
            try:
                configs.append(row_to_config(row))
            except MalformedLevelConfigError as e:
                log_config_fallback(row.level, e.detail)
        return configs

    def active_ranks(self) -> List[int]:
        db = self._session()
        try:
            rows = (
                db.query(LevelConfigRow.level)
                .filter(LevelConfigRow.is_active.is_(True))
                .order_by(LevelConfigRow.level.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise LevelConfigStoreError(str(e), cause=e) from e
        finally:
            db.close()
        return [r[0] for r in rows]

    def save(self, config: LevelConfig) -> LevelConfig:
        """Insert or update the row for config.level."""
        db = self._session()
        try:
            row = db.query(LevelConfigRow).filter(LevelConfigRow.level == config.level).first()
            created = row is None
            if created:
                row = LevelConfigRow()
                db.add(row)
            _apply_config(row, config)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise LevelConfigStoreError(str(e), cause=e) from e
        finally:
            db.close()
        logger.info(
            "Level config created" if created else "Level config updated",
            extra={"level": config.level, "level_name": config.name},
        )
        return config

    def seed_defaults(self) -> int:
        """Create missing rows for the built-in levels. Returns rows created."""
        created = 0
        db = self._session()
        try:
            existing = {r[0] for r in db.query(LevelConfigRow.level).all()}
            for config in default_level_configs():
                if config.level in existing:
                    continue
                row = LevelConfigRow()
                _apply_config(row, config)
                db.add(row)
                created += 1
            if created:
                db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise LevelConfigStoreError(str(e), cause=e) from e
        finally:
            db.close()
        if created:
            logger.info("Seeded default level configs", extra={"count": created})
        return created


class InMemoryLevelConfigStore:
    """Dict-backed store with the same read interface; used when no database is configured."""

    def __init__(self, configs: Iterable[LevelConfig] = ()):
        self._configs: Dict[int, LevelConfig] = {c.level: c for c in configs}

    def get_active(self, level: int) -> Optional[LevelConfig]:
        config = self._configs.get(level)
        if config is None or not config.is_active:
            return None
        return config

    def list_active(self) -> List[LevelConfig]:
        return [c for _, c in sorted(self._configs.items()) if c.is_active]

    def active_ranks(self) -> List[int]:
        return [c.level for c in self.list_active()]

    def save(self, config: LevelConfig) -> LevelConfig:
        self._configs[config.level] = config
        return config

    def seed_defaults(self) -> int:
        created = 0
        for config in default_level_configs():
            if config.level not in self._configs:
                self._configs[config.level] = config
                created += 1
        return created


def build_level_config_store(settings: Optional[Settings] = None):
    """
    Store selected by settings.

    Returns None when overrides are disabled, an empty in-memory store when
    no database is configured, otherwise a SQL store.
    """
    settings = settings or get_settings()
    if not settings.overrides_enabled:
        logger.info("Stored level configs disabled; using default permissions")
        return None
    if not settings.database_url:
        return InMemoryLevelConfigStore()

    engine = create_db_engine(settings.database_url)
    store = SqlLevelConfigStore(create_session_factory(engine))
    if settings.seed_on_start:
        create_schema(engine)
        store.seed_defaults()
    return store
