import asyncio

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, bearer


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["environment"] == "testing"


def test_bootstrap_admin_can_sign_in(login):
    tokens = login(ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")

    assert tokens["token_type"] == "bearer"
    assert tokens["expires_in"] == 5 * 60
    assert tokens["user"]["role"] == "admin"
    assert tokens["user"]["email"] == ADMIN_EMAIL
    assert "hashedPassword" not in tokens["user"]


def test_wrong_password_is_rejected(client):
    response = client.post(
        "/api/auth/login",
        json={"email": ADMIN_EMAIL, "password": "not-the-password"}
    )

    assert response.status_code == 401
    assert response.json()["error"] == "AUTHENTICATION_FAILED"
    assert response.json()["message"] == "Invalid email or password"


def test_unknown_email_is_rejected(client):
    response = client.post(
        "/api/auth/login",
        json={"email": "nobody@quiz.com", "password": "whatever"}
    )

    assert response.status_code == 401


def test_sign_in_with_wrong_role(client, create_teacher):
    create_teacher(email="tina@quiz.com", password="teacher123")

    response = client.post(
        "/api/auth/login",
        json={"email": "tina@quiz.com", "password": "teacher123", "role": "admin"}
    )

    assert response.status_code == 403
    assert response.json()["message"] == "This account is registered as a teacher, not an admin"
    assert response.json()["details"]["required_role"] == "admin"


def test_login_requires_valid_email(client):
    response = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Authentication required"


def test_me_with_garbage_token(client):
    response = client.get("/api/auth/me", headers=bearer("not-a-jwt"))

    assert response.status_code == 401
    assert response.json()["details"]["action"] == "login_required"


def test_first_federated_sign_in_creates_incomplete_student(client, create_student):
    headers, user = create_student(name="Fay Newcomer", complete=False)

    assert user["role"] == "student"
    assert user["profileComplete"] is False
    assert user["grade"] is None
    assert user["name"] == "Fay Newcomer"

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


def test_federated_sign_in_returns_existing_account(client, create_student):
    _, first = create_student(name="Gus Again", grade="10")
    _, second = create_student(name="Gus Again", complete=False)

    assert second["id"] == first["id"]
    assert second["grade"] == "10"
    assert second["profileComplete"] is True


def test_refresh_issues_new_tokens(client, login):
    tokens = login(ADMIN_EMAIL, ADMIN_PASSWORD)

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    refreshed = response.json()
    assert refreshed["user"]["email"] == ADMIN_EMAIL
    assert client.get("/api/auth/me", headers=bearer(refreshed["access_token"])).status_code == 200


def test_access_token_cannot_refresh(client, login):
    tokens = login(ADMIN_EMAIL, ADMIN_PASSWORD)

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})

    assert response.status_code == 401


def test_refresh_token_cannot_authenticate(client, login):
    tokens = login(ADMIN_EMAIL, ADMIN_PASSWORD)

    response = client.get("/api/auth/me", headers=bearer(tokens["refresh_token"]))

    assert response.status_code == 401


def test_logout_revokes_token(client, login, fake_redis):
    headers = bearer(login(ADMIN_EMAIL, ADMIN_PASSWORD)["access_token"])

    response = client.post("/api/auth/logout", headers=headers)

    assert response.status_code == 200
    assert response.json()["revoked"] is True
    [key] = fake_redis.store
    assert key.startswith("revoked:")
    assert 0 < fake_redis.ttls[key] <= 5 * 60

    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Token has been revoked"


def test_logout_without_redis_keeps_token_valid(client, login):
    headers = bearer(login(ADMIN_EMAIL, ADMIN_PASSWORD)["access_token"])

    response = client.post("/api/auth/logout", headers=headers)

    assert response.status_code == 200
    assert response.json()["revoked"] is False
    assert client.get("/api/auth/me", headers=headers).status_code == 200


def test_deleted_user_token_stops_working(client, admin_headers, create_teacher):
    headers, teacher = create_teacher()

    client.delete(f"/api/admin/teachers/{teacher['id']}", headers=admin_headers)

    assert client.get("/api/auth/me", headers=headers).status_code == 404


def test_federated_token_is_verified_off_the_event_loop(client, monkeypatch):
    loops = []

    def fake_verify(id_token):
        try:
            loops.append(asyncio.get_running_loop())
        except RuntimeError:
            loops.append(None)
        return {"sub": "sub-off", "email": "off@school.org", "name": "Off Loop"}

    monkeypatch.setattr("quiz_portal.backend.api.auth.verify_federated_id_token", fake_verify)

    response = client.post("/api/auth/federated", json={"id_token": "token"})

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "off@school.org"
    assert loops == [None]
