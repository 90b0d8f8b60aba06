"""Auth tests — registration, login and bearer-token resolution.

Tests:
- Register / login return a usable JWT
- Validation and duplicate-email errors
- TOKEN_REQUIRED / TOKEN_EXPIRED / INVALID_TOKEN / AUTH_FAILED codes
"""

from datetime import datetime, timedelta, timezone

import jwt

from xistracloud.extensions import db


def _token(app, user, **overrides):
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(hours=1),
        "iss": app.config["JWT_ISSUER"],
        "aud": app.config["JWT_AUDIENCE"],
    }
    claims.update(overrides)
    secret = claims.pop("secret", app.config["JWT_SECRET"])
    return jwt.encode(claims, secret, algorithm="HS256")


class TestRegister:
    def test_register_returns_user_and_token(self, client):
        response = client.post("/auth/register", json={
            "email": "New.Person@Acme.io",
            "password": "Sup3rSecret",
            "full_name": "New Person",
        })
        assert response.status_code == 201
        data = response.get_json()
        assert data["success"] is True
        assert data["user"]["email"] == "new.person@acme.io"
        assert data["user"]["full_name"] == "New Person"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.get_json()["user"]["email"] == "new.person@acme.io"

    def test_register_weak_password(self, client):
        response = client.post("/auth/register", json={
            "email": "weak@acme.io",
            "password": "alllowercase",
            "name": "Weak Person",
        })
        assert response.status_code == 400
        data = response.get_json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["details"][0]["field"] == "password"

    def test_register_duplicate_email(self, client, user):
        response = client.post("/auth/register", json={
            "email": user.email,
            "password": "Password123",
            "name": "Someone Else",
        })
        assert response.status_code == 409
        assert response.get_json()["code"] == "CONFLICT"

    def test_register_rejects_non_object_body(self, client):
        response = client.post("/auth/register", json=["not", "an", "object"])
        assert response.status_code == 400
        assert response.get_json()["error"] == "Request body must be a JSON object"


class TestLogin:
    def test_login_success(self, client, user):
        response = client.post("/auth/login", json={
            "email": "DEV@xistracloud.test",
            "password": "Password123",
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data["user"]["id"] == user.id
        assert data["token"]

    def test_login_wrong_password(self, client, user):
        response = client.post("/auth/login", json={
            "email": user.email,
            "password": "WrongPass1",
        })
        assert response.status_code == 401
        assert response.get_json()["code"] == "INVALID_CREDENTIALS"

    def test_login_disabled_account(self, client, user):
        user.is_active = False
        db.session.commit()
        response = client.post("/auth/login", json={
            "email": user.email,
            "password": "Password123",
        })
        assert response.status_code == 401
        assert response.get_json()["code"] == "ACCOUNT_DISABLED"


class TestBearerToken:
    def test_missing_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401
        data = response.get_json()
        assert data["success"] is False
        assert data["code"] == "TOKEN_REQUIRED"

    def test_non_bearer_scheme_counts_as_missing(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Basic abc"})
        assert response.get_json()["code"] == "TOKEN_REQUIRED"

    def test_expired_token(self, app, client, user):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = _token(app, user, iat=past, exp=past + timedelta(minutes=5))
        response = client.get("/projects", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.get_json()["code"] == "TOKEN_EXPIRED"

    def test_malformed_token(self, client):
        response = client.get("/projects", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.get_json()["code"] == "INVALID_TOKEN"

    def test_wrong_signature(self, app, client, user):
        token = _token(app, user, secret="someone-elses-secret")
        response = client.get("/projects", headers={"Authorization": f"Bearer {token}"})
        assert response.get_json()["code"] == "INVALID_TOKEN"

    def test_wrong_audience(self, app, client, user):
        token = _token(app, user, aud="another-service")
        response = client.get("/projects", headers={"Authorization": f"Bearer {token}"})
        assert response.get_json()["code"] == "INVALID_TOKEN"

    def test_deleted_user(self, app, client, user):
        token = _token(app, user)
        db.session.delete(user)
        db.session.commit()
        response = client.get("/projects", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.get_json()["code"] == "AUTH_FAILED"

    def test_valid_token(self, client, auth_headers, user):
        response = client.get("/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()["user"]["id"] == user.id
