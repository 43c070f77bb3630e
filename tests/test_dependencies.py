"""
FastAPI gate tests using TestClient.
"""

from typing import Optional

import pytest
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.testclient import TestClient

from community_access.assembler import WorkResponseAssembler
from community_access.dependencies import raise_for_denied, require_feature
from community_access.features import Feature
from community_access.levels import UserLevel
from community_access.models import ActingUser
from community_access.policy import FeaturePolicyTable
from community_access.resolver import EntitlementResolver, get_resolver

from conftest import make_user, make_work


def header_user(
    x_user_level: Optional[int] = Header(default=None),
    x_user_role: str = Header(default="student"),
) -> Optional[ActingUser]:
    if x_user_level is None:
        return None
    return ActingUser(id="u-1", level=x_user_level, role=x_user_role)


@pytest.fixture
def client():
    app = FastAPI()

    @app.get("/source")
    def view_source(entitlement=Depends(require_feature(Feature.SOURCE_CODE, header_user))):
        return {"ok": True, "status": entitlement.status.value}

    @app.get("/anonymous-vote")
    def anonymous_vote(entitlement=Depends(require_feature(Feature.VOTE))):
        return {"ok": True}

    app.dependency_overrides[get_resolver] = lambda: EntitlementResolver(FeaturePolicyTable())
    return TestClient(app)


class TestRequireFeature:
    def test_guest_gets_401_with_status(self, client):
        response = client.get("/anonymous-vote")
        assert response.status_code == 401
        detail = response.json()["detail"]
        assert detail["error"] == "Authentication required"
        assert detail["permissionStatus"]["promptType"] == "login"

    def test_member_gets_403(self, client):
        response = client.get("/source", headers={"X-User-Level": "30"})
        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["error"] == "Insufficient permissions"
        assert detail["permissionStatus"]["status"] == "prompt"
        assert detail["permissionStatus"]["targetLevel"] == 40

    def test_premium_passes(self, client):
        response = client.get("/source", headers={"X-User-Level": "40"})
        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": "visible"}

    def test_admin_passes(self, client):
        response = client.get("/source", headers={"X-User-Level": "10", "X-User-Role": "admin"})
        assert response.status_code == 200

    def test_denial_is_audited(self, client, caplog):
        with caplog.at_level("INFO", logger="community_access.audit"):
            client.get("/source", headers={"X-User-Level": "20"})
        denied = [r for r in caplog.records if r.getMessage() == "Feature access denied"]
        assert denied and denied[0].feature == "sourceCode"
        assert denied[0].path == "/source"


class TestRaiseForDenied:
    def _assembler(self):
        return WorkResponseAssembler(EntitlementResolver(FeaturePolicyTable()))

    def test_visible_passes_through(self):
        response = self._assembler().build_work_response(make_work(), None)
        assert raise_for_denied(response) is response

    def test_guest_on_private_work(self):
        response = self._assembler().build_work_response(make_work(visibility="private"), None)
        with pytest.raises(HTTPException) as exc_info:
            raise_for_denied(response)
        assert exc_info.value.status_code == 401

    def test_member_on_private_work(self):
        response = self._assembler().build_work_response(
            make_work(visibility="private"), make_user(UserLevel.MEMBER)
        )
        with pytest.raises(HTTPException) as exc_info:
            raise_for_denied(response)
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["error"] == "FORBIDDEN"
