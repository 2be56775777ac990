"""
HTTP tests for the API routers.

Requests go through the full FastAPI stack against the SQLite test
database. The application lifespan is not run, so Redis and the email
validator are absent: rate limiting uses memory and MX checks are skipped.
"""

import pytest

from student_records.core.auth import AUTH_COOKIE_NAME
from student_records.modules.users.models import UserRole

STUDENT_BODY = {
    "name": "Bob Brown",
    "email": "bob@school.edu",
    "registration_number": "REG-BOB",
    "date_of_birth": "2003-02-01",
    "department": "History",
}


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_and_ready(self, client):
        assert (await client.get("/health")).json() == {"status": "healthy"}
        assert (await client.get("/ready")).json() == {"status": "ready"}


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_sets_hardened_cookie(self, client, student_user, test_settings):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "alice@school.edu", "password": "Passw0rdOk"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["role"] == "Student"
        assert body["expires_in"] == test_settings.jwt_expire_minutes * 60

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{AUTH_COOKIE_NAME}=")
        assert "HttpOnly" in set_cookie
        assert "SameSite=strict" in set_cookie
        assert "Secure" in set_cookie
        assert f"Max-Age={test_settings.jwt_expire_minutes * 60}" in set_cookie

    @pytest.mark.asyncio
    async def test_bad_credentials_401(self, client, student_user):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "alice@school.edu", "password": "WrongPass1"},
        )

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "INVALID_CREDENTIALS"
        assert "set-cookie" not in response.headers

    @pytest.mark.asyncio
    async def test_login_rate_limited(self, client, student_user, monkeypatch, test_settings):
        monkeypatch.setattr(test_settings, "rate_limit_enabled", True)
        monkeypatch.setattr(test_settings, "login_rate_limit", 3)

        statuses = [
            (
                await client.post(
                    "/api/v1/auth/login",
                    json={"email": "alice@school.edu", "password": "WrongPass1"},
                )
            ).status_code
            for _ in range(4)
        ]

        assert statuses == [401, 401, 401, 429]

    @pytest.mark.asyncio
    async def test_cookie_authenticates_me(self, client, student_user, user_token):
        client.cookies.set(AUTH_COOKIE_NAME, user_token(student_user))

        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json() == {
            "id": student_user.id,
            "email": "alice@school.edu",
            "username": "Alice",
            "role": "Student",
        }

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, client):
        response = await client.post("/api/v1/auth/logout")

        assert response.status_code == 204
        assert response.headers["set-cookie"].startswith(f'{AUTH_COOKIE_NAME}=""')


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token_401(self, client):
        response = await client.get("/api/v1/students")
        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "NOT_AUTHENTICATED"

    @pytest.mark.asyncio
    async def test_invalid_token_401(self, client):
        response = await client.get(
            "/api/v1/students", headers={"Authorization": "Bearer garbage"}
        )
        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_student_forbidden_on_admin_routes(self, client, student_user, auth_headers):
        headers = auth_headers(student_user)

        created = await client.post("/api/v1/students", json=STUDENT_BODY, headers=headers)
        assert created.status_code == 403
        assert (await client.get("/api/v1/users", headers=headers)).status_code == 403
        response = await client.delete(f"/api/v1/users/{student_user.id}", headers=headers)
        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "ADMIN_ACCESS_REQUIRED"


class TestStudents:
    @pytest.mark.asyncio
    async def test_crud_flow(self, client, admin_user, auth_headers):
        headers = auth_headers(admin_user)

        created = await client.post("/api/v1/students", json=STUDENT_BODY, headers=headers)
        assert created.status_code == 201
        student_id = created.json()["id"]
        assert created.json()["registration_number"] == "REG-BOB"

        fetched = await client.get(f"/api/v1/students/{student_id}", headers=headers)
        assert fetched.json()["date_of_birth"] == "2003-02-01"

        updated = await client.put(
            f"/api/v1/students/{student_id}",
            json={**STUDENT_BODY, "department": "Philosophy"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["department"] == "Philosophy"
        assert updated.json()["id"] == student_id

        deleted = await client.delete(f"/api/v1/students/{student_id}", headers=headers)
        assert deleted.status_code == 204

        missing = await client.get(f"/api/v1/students/{student_id}", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["detail"]["error"] == "STUDENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_student_can_list_and_view(self, client, student_user, auth_headers):
        headers = auth_headers(student_user)

        listed = await client.get("/api/v1/students", headers=headers)

        assert listed.status_code == 200
        assert [s["registration_number"] for s in listed.json()] == ["REG-ALICE"]
        student_id = listed.json()[0]["id"]
        viewed = await client.get(f"/api/v1/students/{student_id}", headers=headers)
        assert viewed.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_registration_number_409_with_field(
        self, client, admin_user, auth_headers
    ):
        headers = auth_headers(admin_user)
        await client.post("/api/v1/students", json=STUDENT_BODY, headers=headers)

        response = await client.post(
            "/api/v1/students",
            json={**STUDENT_BODY, "email": "other@school.edu"},
            headers=headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"] == {
            "error": "DUPLICATE_REGISTRATION_NUMBER",
            "message": "Registration number REG-BOB is already in use.",
            "field": "registration_number",
        }

    @pytest.mark.asyncio
    async def test_update_missing_404(self, client, admin_user, auth_headers):
        response = await client.put(
            "/api/v1/students/999", json=STUDENT_BODY, headers=auth_headers(admin_user)
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing_404(self, client, admin_user, auth_headers):
        response = await client.delete("/api/v1/students/999", headers=auth_headers(admin_user))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_body_422(self, client, admin_user, auth_headers):
        response = await client.post(
            "/api/v1/students",
            json={**STUDENT_BODY, "email": "not-an-email"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_deleting_linked_student_deletes_account(
        self, client, admin_user, student_user, auth_headers
    ):
        headers = auth_headers(admin_user)
        students = (await client.get("/api/v1/students", headers=headers)).json()
        alice = next(s for s in students if s["user_id"] == student_user.id)

        response = await client.delete(f"/api/v1/students/{alice['id']}", headers=headers)

        assert response.status_code == 204
        account = await client.get(f"/api/v1/users/{student_user.id}", headers=headers)
        assert account.status_code == 404


class TestRegisterAndUsers:
    @pytest.mark.asyncio
    async def test_register_student_then_login(self, client, admin_user, auth_headers):
        headers = auth_headers(admin_user)

        response = await client.post(
            "/api/v1/auth/register",
            json={
                "username": "Carol",
                "email": "carol@school.edu",
                "password": "CarolPass1",
                "role": "Student",
            },
            headers=headers,
        )

        assert response.status_code == 201
        user = response.json()
        assert user["role"] == "Student"
        assert "password_hash" not in user

        profile = (await client.get(f"/api/v1/users/{user['id']}", headers=headers)).json()
        assert profile["student"]["department"] == "Not Assigned"
        assert profile["student"]["registration_number"].startswith("PENDING-")

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "carol@school.edu", "password": "CarolPass1"},
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_register_duplicate_email_409(self, client, admin_user, auth_headers):
        response = await client.post(
            "/api/v1/auth/register",
            json={"username": "Dup", "email": "admin@school.edu", "password": "DupPass123"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "EMAIL_ALREADY_REGISTERED"

    @pytest.mark.asyncio
    async def test_register_weak_password_422(self, client, admin_user, auth_headers):
        response = await client.post(
            "/api/v1/auth/register",
            json={"username": "Weak", "email": "weak@school.edu", "password": "weak"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_requires_admin(self, client, student_user, auth_headers):
        response = await client.post(
            "/api/v1/auth/register",
            json={"username": "X", "email": "x@school.edu", "password": "XxxxPass1"},
            headers=auth_headers(student_user),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_users(self, client, admin_user, student_user, auth_headers):
        response = await client.get("/api/v1/users", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert [u["email"] for u in response.json()] == ["admin@school.edu", "alice@school.edu"]

    @pytest.mark.asyncio
    async def test_patch_user_email_syncs_student(
        self, client, admin_user, student_user, auth_headers
    ):
        headers = auth_headers(admin_user)

        response = await client.patch(
            f"/api/v1/users/{student_user.id}",
            json={"email": "alice.new@school.edu"},
            headers=headers,
        )

        assert response.status_code == 200
        profile = (await client.get(f"/api/v1/users/{student_user.id}", headers=headers)).json()
        assert profile["email"] == "alice.new@school.edu"
        assert profile["student"]["email"] == "alice.new@school.edu"

    @pytest.mark.asyncio
    async def test_delete_student_account(self, client, admin_user, student_user, auth_headers):
        headers = auth_headers(admin_user)

        response = await client.delete(f"/api/v1/users/{student_user.id}", headers=headers)

        assert response.status_code == 204
        assert (await client.get("/api/v1/students", headers=headers)).json() == []

    @pytest.mark.asyncio
    async def test_admin_account_cannot_be_deleted(
        self, client, admin_user, make_user, auth_headers
    ):
        other_admin = await make_user("second@school.edu", role=UserRole.ADMIN)

        response = await client.delete(
            f"/api/v1/users/{other_admin.id}", headers=auth_headers(admin_user)
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "PERMISSION_DENIED"


class TestJobEndpoints:
    @pytest.mark.asyncio
    async def test_unknown_job_404(self, client, admin_user, auth_headers):
        response = await client.post(
            "/admin/jobs/nope/trigger", headers=auth_headers(admin_user)
        )
        assert response.status_code == 404
