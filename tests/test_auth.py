"""Login/logout/register views, route guards and the 401 teardown."""

import json

from conftest import ADMIN_USER, MANAGER_USER


def test_anonymous_user_is_sent_to_login(client):
    resp = client.get("/dashboard")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_unknown_path_redirects_to_login_when_anonymous(client):
    resp = client.get("/no/such/page")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/login")


def test_unknown_path_redirects_to_dashboard_when_signed_in(admin_client):
    resp = admin_client.get("/no/such/page")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")


def test_login_page_renders(client):
    resp = client.get("/login")
    assert resp.status_code == 200
    assert b"Sign in" in resp.data


def test_login_success_persists_session(client, api, session_of):
    api.on("POST", "/auth/login", body={"token": "tok-1", "user": ADMIN_USER})

    resp = client.post("/login", data={"email": "Admin@Example.com", "password": "secret"})

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")
    sess = session_of()
    assert sess["token"] == "tok-1"
    assert json.loads(sess["user"])["role"] == "admin"
    assert api.calls_to("POST", "/auth/login")[0]["json"]["email"] == "admin@example.com"


def test_login_honours_safe_next(client, api):
    api.on("POST", "/auth/login", body={"token": "tok-1", "user": MANAGER_USER})
    resp = client.post("/login?next=/sales", data={"email": "m@x.com", "password": "pw"})
    assert resp.headers["Location"].endswith("/sales")


def test_login_ignores_offsite_next(client, api):
    api.on("POST", "/auth/login", body={"token": "tok-1", "user": MANAGER_USER})
    resp = client.post("/login?next=https://evil.example/", data={"email": "m@x.com", "password": "pw"})
    assert resp.headers["Location"].endswith("/dashboard")


def test_login_failure_rerenders_with_message(client, api, session_of):
    api.on("POST", "/auth/login", status=401, body={"message": "Invalid credentials"})

    resp = client.post("/login", data={"email": "a@b.c", "password": "bad"})

    assert resp.status_code == 200
    assert b"Invalid credentials" in resp.data
    assert "token" not in session_of()


def test_login_requires_both_fields(client, api):
    resp = client.post("/login", data={"email": "a@b.c", "password": ""})
    assert b"Please enter both email and password" in resp.data
    assert api.calls == []


def test_login_page_redirects_when_already_signed_in(admin_client):
    resp = admin_client.get("/login")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")


def test_logout_clears_session(admin_client, session_of):
    resp = admin_client.get("/logout")
    assert resp.headers["Location"].endswith("/login")
    sess = session_of()
    assert "token" not in sess
    assert "user" not in sess


def test_dashboard_routes_by_role(admin_client):
    resp = admin_client.get("/dashboard")
    assert resp.headers["Location"].endswith("/dashboard/admin")


def test_dashboard_routes_sales_manager(manager_client):
    resp = manager_client.get("/dashboard")
    assert resp.headers["Location"].endswith("/dashboard/sales-manager")


def test_role_mismatch_redirects_to_own_dashboard(manager_client, api, flashes):
    resp = manager_client.get("/inventory/new-vehicles")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")
    assert ("danger", "Access denied.") in flashes()
    assert api.calls == []


def test_api_401_tears_down_session(admin_client, api, session_of, flashes):
    api.on("GET", "/dashboard/analytics", status=401, body={"message": "jwt expired"})
    api.on("GET", "/dashboard/payment-alerts", body=[])

    resp = admin_client.get("/dashboard/admin")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/login")
    sess = session_of()
    assert "token" not in sess and "user" not in sess
    assert ("warning", "Your session has expired. Please sign in again.") in flashes()


def test_bearer_token_forwarded(admin_client, api):
    api.on("GET", "/vehicles/used", body=[])
    admin_client.get("/inventory/used-vehicles")
    assert api.calls_to("GET", "/vehicles/used")[0]["headers"]["Authorization"] == "Bearer tok-123"


def test_register_validates_before_calling_api(client, api):
    resp = client.post(
        "/register",
        data={"username": "ravi", "email": "r@x.com", "role": "sales_manager", "password": "secret1", "confirm_password": "secret2"},
    )
    assert resp.status_code == 200
    assert b"Passwords do not match." in resp.data
    assert api.calls == []


def test_register_success(client, api):
    api.on("POST", "/auth/register", status=201, body={"message": "ok"})
    resp = client.post(
        "/register",
        data={"username": "ravi", "email": "R@x.com", "role": "sales_manager", "password": "secret1", "confirm_password": "secret1"},
    )
    assert resp.headers["Location"].endswith("/login")
    sent = api.calls_to("POST", "/auth/register")[0]["json"]
    assert sent == {"username": "ravi", "email": "r@x.com", "role": "sales_manager", "password": "secret1"}
