import uuid

from conftest import TEST_PASSWORD, auth_headers, create_user, run


def test_health_and_tenant_echo(client, db):
    assert client.get("/api/health").json()["message"] == "Healthy"

    tenant = str(uuid.uuid4())
    resp = client.get("/api/health/tenant", headers={"X-Tenant-ID": tenant})
    assert resp.json() == {"tenant_id": tenant}
    assert resp.headers["X-Correlation-ID"]
    assert client.get("/api/health/tenant").json() == {"tenant_id": None}


def test_malformed_tenant_header_is_rejected(client, db):
    resp = client.get("/api/health/tenant", headers={"X-Tenant-ID": "not-a-uuid", "X-Correlation-ID": "corr-1"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["type"] == "http_error"
    assert body["error"]["message"] == "X-Tenant-ID header must be a valid UUID string."
    assert (body["correlation_id"], body["tenant_id"], body["path"]) == ("corr-1", "not-a-uuid", "/api/health/tenant")


def _login(client, user_name, password=TEST_PASSWORD):
    return client.post("/api/auth/login", data={"username": user_name, "password": password})


def test_login_me_refresh_and_logout(client, admin):
    resp = _login(client, "admin")
    assert resp.status_code == 200
    tokens = resp.json()
    assert tokens["token_type"] == "bearer"
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    me = client.get("/api/auth/me", headers=headers).json()
    assert (me["userName"], me["empCode"], me["roles"]) == ("admin", "A001", ["ADMIN"])

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    # an access token is not a refresh token
    wrong_type = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert wrong_type.status_code == 401
    assert client.post("/api/auth/refresh", json={"refresh_token": "garbage"}).status_code == 401

    assert client.post("/api/auth/logout", headers=headers).json() == {"message": "Logged out"}

    actions = client.get("/api/Settings/AuditLogs/Activity", params={"moduleName": "Authentication"}, headers=headers)
    assert sorted(log["action"] for log in actions.json()["data"]) == ["LOGIN", "LOGOUT"]


def test_login_failures(client, admin):
    _, headers = admin
    resp = _login(client, "admin", "wrong")
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid credentials"
    assert _login(client, "nobody").status_code == 401

    run(create_user("retired", emp_code="R1", is_active=False))
    assert _login(client, "retired").status_code == 400

    failed = client.get("/api/Settings/AuditLogs/Activity", params={"status": "FAILED"}, headers=headers).json()
    assert sorted(log["targetId"] for log in failed["data"]) == ["admin", "nobody"]
    assert all(log["userId"] == "SYSTEM" for log in failed["data"])


def test_get_current_user(client, admin):
    assert client.get("/api/Auth/GetCurrentUser").json() == {"success": False, "message": "Not logged in"}

    _, headers = admin
    body = client.get("/api/Auth/GetCurrentUser", headers=headers).json()
    assert body["success"] is True
    user = body["user"]
    assert (user["empCode"], user["userId"], user["userRole"], user["company"]) == ("A001", "admin", "ADMIN", "BJC")
    assert user["roles"] == ["ADMIN"]
    assert user["isAdmin"] is True

    plain = run(create_user("nocode", ["HRBP"]))
    body = client.get("/api/Auth/GetCurrentUser", headers=auth_headers(plain, ["HRBP"])).json()
    # without an employee code the login name is shown
    assert (body["user"]["empCode"], body["user"]["isAdmin"]) == ("nocode", False)


def test_token_for_another_tenant_is_anonymous(client, admin):
    _, headers = admin
    resp = client.get("/api/Auth/GetCurrentUser", headers={**headers, "X-Tenant-ID": str(uuid.uuid4())})
    assert resp.json() == {"success": False, "message": "Not logged in"}
    assert client.get("/api/auth/me", headers={**headers, "X-Tenant-ID": str(uuid.uuid4())}).status_code == 401


def test_inactive_user_is_not_logged_in(client, db):
    user = run(create_user("sleepy", ["USER"], is_active=False))
    headers = auth_headers(user, ["USER"])
    assert client.get("/api/Auth/GetCurrentUser", headers=headers).json()["success"] is False
    assert client.get("/api/auth/me", headers=headers).status_code == 403


def test_user_administration(client, admin, employee):
    _, headers = admin

    assert client.get("/api/auth/users", headers=employee[1]).status_code == 403
    assert [r["name"] for r in client.get("/api/auth/roles", headers=headers).json()] == [
        "ADMIN", "HRBP", "SUPER_USER", "USER",
    ]

    payload = {"userName": "newbie", "email": "newbie@example.com", "password": "Str0ng!pass", "empCode": "N1", "roles": ["HRBP"]}
    created = client.post("/api/auth/users", json=payload, headers=headers)
    assert created.status_code == 201
    new_user = created.json()
    assert (new_user["userName"], new_user["roles"], new_user["isActive"]) == ("newbie", ["HRBP"], True)
    user_id = new_user["id"]

    assert [u["userName"] for u in client.get("/api/auth/users", headers=headers).json()] == ["admin", "newbie", "somchai"]
    assert [u["userName"] for u in client.get("/api/auth/users", params={"search": "N1"}, headers=headers).json()] == ["newbie"]

    updated = client.put(f"/api/auth/users/{user_id}", json={"name": "New Bie", "roles": ["USER"]}, headers=headers).json()
    assert (updated["name"], updated["roles"]) == ("New Bie", ["USER"])

    toggled = client.post(f"/api/auth/users/{user_id}/toggle-active", headers=headers).json()
    assert toggled["isActive"] is False

    reset = client.post(f"/api/auth/users/{user_id}/reset-password", json={"newPassword": "An0ther!pass"}, headers=headers)
    assert reset.json() == {"success": True, "message": "Password reset successfully"}

    logs = client.get(
        "/api/Settings/AuditLogs/Activity", params={"moduleName": "User Management"}, headers=headers
    ).json()["data"]
    assert all("Str0ng!pass" not in (log["newValue"] or "") for log in logs)
    assert all("An0ther!pass" not in (log["newValue"] or "") for log in logs)

    assert client.delete(f"/api/auth/users/{user_id}", headers=headers).status_code == 204
    assert client.get(f"/api/auth/users/{user_id}", headers=headers).status_code == 404
    assert client.delete(f"/api/auth/users/{user_id}", headers=headers).status_code == 404


def test_create_user_validation_errors(client, admin):
    _, headers = admin
    resp = client.post(
        "/api/auth/users",
        json={"userName": "admin", "email": "bad", "password": "weakpassword"},
        headers=headers,
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["message"] == "HTTP Error"
    codes = {d["code"] for d in body["error"]["details"]}
    assert {"DuplicateUserName", "InvalidEmail", "PasswordRequiresDigit"} <= codes

    bad_role = client.post(
        "/api/auth/users",
        json={"userName": "ghost", "email": "ghost@example.com", "password": "Str0ng!pass", "roles": ["NOPE"]},
        headers=headers,
    )
    assert bad_role.status_code == 400
    assert bad_role.json()["error"]["details"][0]["code"] == "InvalidRoleName"
