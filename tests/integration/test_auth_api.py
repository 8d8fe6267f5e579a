def test_login_me_logout(client, super_admin) -> None:
    resp = client.post("/api/auth/login", json={"username": "root", "password": "s3cret-pass"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["admin"]["username"] == "root"
    assert body["admin"]["role"] == "super_admin"
    assert body["admin"]["lastLogin"] is not None
    headers = {"Authorization": f"Bearer {body['token']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "root@example.com"
    assert "passwordHash" not in me.json()

    resp = client.post("/api/auth/logout", headers=headers)
    assert resp.json() == {"success": True, "message": "Logged out successfully"}


def test_login_failures_share_one_message(client, super_admin) -> None:
    wrong_password = client.post("/api/auth/login", json={"username": "root", "password": "not-it-at-all"})
    unknown_user = client.post("/api/auth/login", json={"username": "ghost", "password": "s3cret-pass"})
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"success": False, "message": "Invalid credentials"}


def test_login_with_short_password_is_validation_error(client, super_admin) -> None:
    resp = client.post("/api/auth/login", json={"username": "root", "password": "abc"})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "password"


def test_inactive_admin_cannot_log_in(client, super_admin, db_session) -> None:
    admin = db_session.get(type(super_admin), super_admin.id)
    admin.is_active = False
    db_session.commit()
    resp = client.post("/api/auth/login", json={"username": "root", "password": "s3cret-pass"})
    assert resp.status_code == 401


def test_health_is_public(client) -> None:
    for path in ("/health", "/api/health"):
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.json() == {"status": "OK", "message": "Server is running"}
