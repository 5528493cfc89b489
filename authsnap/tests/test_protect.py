"""
Authorization Gate Tests

Decision outcomes (authentication + OR-semantics RBAC), response mapping,
and the FastAPI dependency.
"""

import json

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from authsnap.middleware.protect import (
    AccessDenied,
    Outcome,
    ProtectOptions,
    access_denied_handler,
    decision_to_response,
    evaluate_access,
)
from authsnap.models import AuthUser


def request_with(auth, user=None, roles=None, permissions=None, token=None):
    if token is None and user is not None:
        token = auth.session_manager.create_token(user, {"roles": roles, "permissions": permissions})
    cookies = {"authsnap_session": token} if token else {}
    return {"cookies": cookies, "headers": {}}


class TestEvaluateAccess:

    def test_no_token_is_unauthenticated(self, auth):
        decision = evaluate_access(auth.session_manager, request_with(auth))
        assert decision.outcome is Outcome.UNAUTHENTICATED
        assert decision.user is None

    def test_no_token_with_role_requirement_is_still_unauthenticated(self, auth):
        options = ProtectOptions(required_roles=["admin"], required_permissions=["write"])
        decision = evaluate_access(auth.session_manager, request_with(auth), options)
        assert decision.outcome is Outcome.UNAUTHENTICATED

    def test_invalid_token_is_unauthenticated(self, auth):
        decision = evaluate_access(auth.session_manager, request_with(auth, token="garbage"))
        assert decision.outcome is Outcome.UNAUTHENTICATED

    def test_valid_token_is_authorized(self, auth, sample_user):
        decision = evaluate_access(auth.session_manager, request_with(auth, sample_user))
        assert decision.outcome is Outcome.AUTHORIZED
        assert decision.user.id == sample_user.id

    def test_missing_role_is_forbidden(self, auth, sample_user):
        options = ProtectOptions(required_roles=["admin"])
        request = request_with(auth, sample_user, roles=["viewer"])

        assert evaluate_access(auth.session_manager, request, options).outcome is Outcome.FORBIDDEN

    def test_any_required_role_is_enough(self, auth, sample_user):
        options = ProtectOptions(required_roles=["admin", "editor"])
        request = request_with(auth, sample_user, roles=["editor"])

        decision = evaluate_access(auth.session_manager, request, options)
        assert decision.outcome is Outcome.AUTHORIZED
        assert decision.user.roles == ["editor"]

    def test_no_roles_at_all_is_forbidden(self, auth, sample_user):
        options = ProtectOptions(required_roles=["admin"])
        assert evaluate_access(auth.session_manager, request_with(auth, sample_user), options).outcome is Outcome.FORBIDDEN

    def test_permissions_checked_after_roles(self, auth, sample_user):
        options = ProtectOptions(required_roles=["admin"], required_permissions=["billing:write"])

        granted = request_with(auth, sample_user, roles=["admin"], permissions=["billing:read", "billing:write"])
        denied = request_with(auth, sample_user, roles=["admin"], permissions=["billing:read"])

        assert evaluate_access(auth.session_manager, granted, options).outcome is Outcome.AUTHORIZED
        assert evaluate_access(auth.session_manager, denied, options).outcome is Outcome.FORBIDDEN


class TestDecisionToResponse:

    def test_unauthenticated_json(self, auth):
        response = decision_to_response(evaluate_access(auth.session_manager, request_with(auth)))
        assert response.status_code == 401
        assert json.loads(response.body) == {"error": "Unauthorized"}

    def test_unauthenticated_redirect(self, auth):
        options = ProtectOptions(redirect_on_unauth="/login")
        response = decision_to_response(evaluate_access(auth.session_manager, request_with(auth), options), options)
        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    def test_forbidden_json_and_redirect(self, auth, sample_user):
        options = ProtectOptions(required_roles=["admin"])
        decision = evaluate_access(auth.session_manager, request_with(auth, sample_user), options)

        response = decision_to_response(decision, options)
        assert response.status_code == 403
        assert json.loads(response.body) == {"error": "Forbidden"}

        redirecting = ProtectOptions(required_roles=["admin"], redirect_on_forbidden="/upgrade")
        assert decision_to_response(decision, redirecting).headers["location"] == "/upgrade"

    def test_authorized_has_no_response(self, auth, sample_user):
        decision = evaluate_access(auth.session_manager, request_with(auth, sample_user))
        assert decision_to_response(decision) is None


@pytest.fixture
def protected_client(auth):
    app = FastAPI()
    app.add_exception_handler(AccessDenied, access_denied_handler)

    @app.get("/me")
    async def me(user: AuthUser = Depends(auth.protect())):
        return {"id": user.id}

    @app.get("/admin")
    async def admin(user: AuthUser = Depends(auth.protect(required_roles=["admin"]))):
        return {"id": user.id, "roles": user.roles}

    @app.get("/members")
    async def members(user: AuthUser = Depends(auth.protect(redirect_on_unauth="/auth/stub"))):
        return {"id": user.id}

    return TestClient(app)


class TestProtectDependency:

    def test_anonymous_request_gets_401(self, protected_client):
        response = protected_client.get("/admin")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_redirect_on_unauth(self, protected_client):
        response = protected_client.get("/members", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/auth/stub"

    def test_authenticated_user_passes(self, auth, protected_client, sample_user):
        token = auth.session_manager.create_token(sample_user)
        protected_client.cookies.set("authsnap_session", token)
        response = protected_client.get("/me")

        assert response.status_code == 200
        assert response.json() == {"id": sample_user.id}

    def test_forbidden_without_role(self, auth, protected_client, sample_user):
        token = auth.session_manager.create_token(sample_user, {"roles": ["viewer"]})
        protected_client.cookies.set("authsnap_session", token)
        response = protected_client.get("/admin")

        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden"}

    def test_admin_passes(self, auth, protected_client, sample_user):
        token = auth.session_manager.create_token(sample_user, {"roles": ["admin"]})
        protected_client.cookies.set("authsnap_session", token)
        response = protected_client.get("/admin")

        assert response.status_code == 200
        assert response.json() == {"id": sample_user.id, "roles": ["admin"]}
