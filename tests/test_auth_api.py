from conftest import API, PASSWORD, act_as

from app.config import settings


def register(client, **overrides):
    body = {"name": "Ann", "email": "ann@example.com", "password": "pw-12345"}
    body.update(overrides)
    return client.post(f"{API}/auth/register", json=body)


def test_register_defaults_to_user_role_and_hides_password(client):
    res = register(client, role="OWNER")
    assert res.status_code == 200
    data = res.json()
    assert data["role"] == "USER"
    assert data["email"] == "ann@example.com"
    assert "password" not in data
    assert "createdAt" in data


def test_register_requires_all_fields(client):
    res = register(client, password="")
    assert res.status_code == 400
    assert res.json() == {"error": "Name, email, and password are required"}


def test_register_rejects_duplicate_email(client):
    register(client)
    res = register(client, email="ANN@example.com")
    assert res.status_code == 400
    assert "already exists" in res.json()["error"]


def test_login_sets_cookie_and_session_returns_identity(client):
    register(client)
    res = client.post(f"{API}/auth/login", json={"email": "ann@example.com", "password": "pw-12345"})
    assert res.status_code == 200
    assert res.json()["user"]["name"] == "Ann"
    assert settings.SESSION_COOKIE_NAME in res.cookies

    set_cookie = res.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "max-age=604800" in set_cookie

    session = client.get(f"{API}/auth/session")
    assert session.status_code == 200
    assert session.json()["user"]["email"] == "ann@example.com"
    assert session.json()["user"]["role"] == "USER"


def test_login_with_wrong_password(client):
    register(client)
    res = client.post(f"{API}/auth/login", json={"email": "ann@example.com", "password": "nope"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid credentials"}


def test_session_without_cookie_is_401(client):
    res = client.get(f"{API}/auth/session")
    assert res.status_code == 401
    assert res.json() == {"error": "Authentication required"}


def test_invalid_cookie_is_401(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "forged.token.value")
    res = client.get(f"{API}/transactions")
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid or expired token"}


def test_logout_clears_cookie(client, make_user):
    make_user("Ann")
    client.post(f"{API}/auth/login", json={"email": "ann@example.com", "password": PASSWORD})
    assert client.get(f"{API}/auth/session").status_code == 200

    res = client.post(f"{API}/auth/logout")
    assert res.status_code == 200
    assert res.json() == {"success": True}
    assert client.get(f"{API}/auth/session").status_code == 401


def test_me_returns_database_record(client, make_user):
    ann = make_user("Ann", role="ADMIN")
    act_as(client, ann)
    res = client.get(f"{API}/auth/me")
    assert res.status_code == 200
    assert res.json()["id"] == ann.id
    assert res.json()["role"] == "ADMIN"


def test_login_with_seeded_style_user(client, make_user):
    make_user("Owen", role="OWNER")
    res = client.post(f"{API}/auth/login", json={"email": "owen@example.com", "password": PASSWORD})
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "OWNER"


def test_health_is_public(client):
    assert client.get("/health").json()["status"] == "operational"
