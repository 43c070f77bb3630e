"""
Shared pytest fixtures for community access tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from community_access.db import Base, create_session_factory
from community_access.levels import UserLevel
from community_access.models import ActingUser
from community_access.policy import FeaturePolicyTable
from community_access.resolver import EntitlementResolver, reset_resolver
from community_access.store import SqlLevelConfigStore


# ============================================================================
# USERS AND WORKS
# ============================================================================

def make_user(level=UserLevel.USER, user_id="user-1", role="student") -> ActingUser:
    return ActingUser(id=user_id, level=int(level), role=role)


def make_work(**overrides) -> dict:
    work = {
        "id": "work-1",
        "title": "Prompted landing page",
        "description": "A landing page generated from a single prompt",
        "coverImage": "https://cdn.example.com/covers/work-1.png",
        "category": "web",
        "author": {"id": "author-1", "username": "ada"},
        "votes": 12,
        "createdAt": "2024-05-01T10:00:00Z",
        "updatedAt": "2024-05-02T10:00:00Z",
        "prompt": "Build a landing page for a coffee shop",
        "repositoryUrl": "https://github.com/example/landing",
        "visibility": "public",
    }
    work.update(overrides)
    return work


@pytest.fixture
def guest():
    return None


@pytest.fixture
def work():
    return make_work()


@pytest.fixture
def private_work():
    return make_work(id="work-2", visibility="private")


# ============================================================================
# RESOLUTION
# ============================================================================

@pytest.fixture
def resolver():
    """Resolver over the static default table only."""
    return EntitlementResolver(FeaturePolicyTable())


@pytest.fixture(autouse=True)
def _reset_global_resolver():
    reset_resolver()
    yield
    reset_resolver()


# ============================================================================
# SQL STORE
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine shared across sessions of one test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def sql_store(engine):
    return SqlLevelConfigStore(create_session_factory(engine))
