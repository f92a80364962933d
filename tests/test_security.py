"""
Tests for password hashing, tokens and the role guards.
"""

import pytest
from fastapi import HTTPException

from examprep.core.security import (
    ROLE_STUDENT,
    create_access_token,
    decode_token,
    extract_bearer_token,
    hash_password,
    verify_password,
)


class TestPasswords:
    """Tests for bcrypt helpers."""

    def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_missing_hash_never_matches(self):
        assert not verify_password("secret123", None)
        assert not verify_password("secret123", "")

    def test_malformed_hash_is_rejected(self):
        assert not verify_password("secret123", "not-a-bcrypt-hash")


class TestTokens:
    """Tests for JWT issue and decode."""

    def test_round_trip_claims(self):
        token = create_access_token("USR_1", ROLE_STUDENT, extra={"email": "a@example.com"})
        payload = decode_token(token)
        assert payload["sub"] == "USR_1"
        assert payload["role"] == ROLE_STUDENT
        assert payload["email"] == "a@example.com"
        assert payload["exp"] > payload["iat"]

    def test_expired_token_rejected(self):
        token = create_access_token("USR_1", ROLE_STUDENT, expires_hours=-1)
        with pytest.raises(HTTPException) as exc:
            decode_token(token)
        assert exc.value.status_code == 401

    def test_garbage_token_rejected(self):
        with pytest.raises(HTTPException) as exc:
            decode_token("abc.def.ghi")
        assert exc.value.status_code == 401

    @pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer ", "Bearer    "])
    def test_malformed_authorization_header(self, header):
        with pytest.raises(HTTPException) as exc:
            extract_bearer_token(header)
        assert exc.value.status_code == 401


class TestGuards:
    """Tests for the route dependencies."""

    async def test_missing_token(self, client):
        response = await client.get("/api/user/me")
        assert response.status_code == 401

    async def test_student_profile(self, client, student_headers, student):
        response = await client.get("/api/user/me", headers=student_headers)
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["user_id"] == student["user_id"]
        assert "password_hash" not in user
        assert "_id" not in user

    async def test_admin_token_is_not_a_student(self, client, admin_headers):
        response = await client.get("/api/user/me", headers=admin_headers)
        assert response.status_code == 403

    async def test_deleted_student_token_rejected(self, client, db, student, student_headers):
        await db.users.delete_one({"user_id": student["user_id"]})
        response = await client.get("/api/user/me", headers=student_headers)
        assert response.status_code == 401

    async def test_student_cannot_reach_admin_routes(self, client, student_headers):
        response = await client.get("/api/admin/get-students", headers=student_headers)
        assert response.status_code == 403

    async def test_subadmin_cannot_create_subadmins(self, client, subadmin_headers):
        response = await client.post(
            "/api/admin/subadmins",
            json={"name": "X", "email": "x@example.com", "password": "xxxxxx"},
            headers=subadmin_headers
        )
        assert response.status_code == 403


class TestStudentAuth:
    """Tests for email registration and login."""

    async def test_register_and_login(self, client):
        response = await client.post(
            "/api/auth/email/register",
            json={"name": "Meera", "email": "Meera@Example.com", "password": "pass1234"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["email"] == "meera@example.com"
        assert body["user"]["enrolled_courses"] == []

        response = await client.post(
            "/api/auth/email/login", json={"email": "meera@example.com", "password": "pass1234"}
        )
        assert response.status_code == 200
        token = response.json()["token"]

        me = await client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["user"]["name"] == "Meera"

    async def test_duplicate_email(self, client, student):
        response = await client.post(
            "/api/auth/email/register",
            json={"name": "Other", "email": "ASHA@example.com", "password": "pass1234"}
        )
        assert response.status_code == 400

    async def test_wrong_password(self, client, student):
        response = await client.post(
            "/api/auth/email/login", json={"email": "asha@example.com", "password": "nope-nope"}
        )
        assert response.status_code == 401

    async def test_short_password_is_validation_error(self, client):
        response = await client.post(
            "/api/auth/email/register",
            json={"name": "Short", "email": "short@example.com", "password": "123"}
        )
        assert response.status_code == 422
