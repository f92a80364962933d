"""
Tests for admin accounts, student management and dashboards.
"""

from datetime import datetime, timedelta

import pytest

from examprep.payments.payment_models import VerifiedVia
from examprep.payments.payment_service import complete_payment
from examprep.students.access import unlock_course
from examprep.students.student_models import EnrollmentSource


async def insert_payment(db, user_id, course_id, status, amount=49900, created_at=None, suffix="1"):
    payment = {
        "payment_id": f"PAY_{status.upper()}{suffix}",
        "user_id": user_id,
        "course_id": course_id,
        "razorpay_order_id": f"order_{status}{suffix}",
        "amount": amount,
        "currency": "INR",
        "status": status,
        "created_at": created_at or datetime.utcnow(),
    }
    await db.payments.insert_one(payment)
    return payment


@pytest.fixture
async def sales(db, student, other_student, course_tree):
    """One paid, one pending and one failed payment for the seeded course"""
    course_id = course_tree["course"]["course_id"]
    paid = await insert_payment(db, student["user_id"], course_id, "created", suffix="P")
    await complete_payment(db, paid, "pay_P", "sig", VerifiedVia.CHECKOUT)
    await insert_payment(db, other_student["user_id"], course_id, "created", suffix="C")
    await insert_payment(
        db, other_student["user_id"], course_id, "failed",
        created_at=datetime.utcnow() - timedelta(days=10), suffix="F"
    )
    return course_id


class TestAdminAccounts:
    """Tests for bootstrap, login and password changes."""

    async def test_bootstrap_only_once(self, client):
        response = await client.post(
            "/api/admin/create", json={"name": "Owner", "email": "owner@example.com", "password": "owner123"}
        )
        assert response.status_code == 201
        assert "password_hash" not in response.json()["admin"]

        response = await client.post(
            "/api/admin/create", json={"email": "owner@example.com", "password": "owner123"}
        )
        assert response.status_code == 400

        response = await client.post(
            "/api/admin/create", json={"email": "second@example.com", "password": "second123"}
        )
        assert response.status_code == 403

    async def test_login(self, client, admin):
        response = await client.post("/api/admin/login", json={"email": "admin@example.com", "password": "admin123"})
        assert response.status_code == 200
        token = response.json()["token"]

        me = await client.get("/api/admin/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["admin"]["admin_id"] == admin["admin_id"]

    async def test_login_errors(self, client, admin):
        response = await client.post("/api/admin/login", json={"email": "nobody@example.com", "password": "x"})
        assert response.status_code == 404
        response = await client.post("/api/admin/login", json={"email": "admin@example.com", "password": "wrong"})
        assert response.status_code == 401

    async def test_change_password(self, client, admin_headers):
        response = await client.put(
            "/api/admin/change-password",
            json={"current_password": "admin123", "new_password": "fresh456", "confirm_password": "fresh456"},
            headers=admin_headers
        )
        assert response.status_code == 200

        response = await client.post("/api/admin/login", json={"email": "admin@example.com", "password": "fresh456"})
        assert response.status_code == 200

    @pytest.mark.parametrize("body, status", [
        ({"current_password": "admin123", "new_password": "fresh456"}, 400),
        ({"current_password": "admin123", "new_password": "fresh456", "confirm_password": "other456"}, 400),
        ({"current_password": "wrong", "new_password": "fresh456", "confirm_password": "fresh456"}, 401),
    ])
    async def test_change_password_errors(self, client, admin_headers, body, status):
        response = await client.put("/api/admin/change-password", json=body, headers=admin_headers)
        assert response.status_code == status

    async def test_create_subadmin(self, client, admin_headers):
        response = await client.post(
            "/api/admin/subadmins",
            json={"name": "Editor", "email": "editor2@example.com", "password": "editor123"},
            headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["admin"]["role"] == "subadmin"

        response = await client.post(
            "/api/admin/login", json={"email": "editor2@example.com", "password": "editor123"}
        )
        assert response.status_code == 200


class TestStudentManagement:
    """Tests for student listing, edits and course status changes."""

    async def test_get_students(self, client, admin_headers, student, other_student):
        response = await client.get("/api/admin/get-students", headers=admin_headers)
        students = response.json()["students"]
        assert {s["email"] for s in students} == {"asha@example.com", "ravi@example.com"}
        assert all("password_hash" not in s for s in students)

    async def test_update_student_whitelist(self, client, db, admin_headers, student):
        response = await client.put(
            f"/api/admin/update-student/{student['user_id']}",
            json={"city": "Pune", "role": "admin", "enrolled_courses": [{"course_id": "X"}]},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["student"]["city"] == "Pune"

        stored = await db.users.find_one({"user_id": student["user_id"]})
        assert stored["role"] == "student"
        assert stored["enrolled_courses"] == []

    async def test_update_missing_student(self, client, admin_headers):
        response = await client.put("/api/admin/update-student/USR_NOPE", json={"city": "Pune"}, headers=admin_headers)
        assert response.status_code == 404

    async def test_update_to_taken_email(self, client, admin_headers, student, other_student):
        response = await client.put(
            f"/api/admin/update-student/{student['user_id']}",
            json={"email": "ravi@example.com"},
            headers=admin_headers
        )
        assert response.status_code == 409

    async def test_delete_student(self, client, db, admin_headers, student):
        response = await client.delete(f"/api/admin/delete-student/{student['user_id']}", headers=admin_headers)
        assert response.status_code == 200
        assert await db.users.count_documents({"user_id": student["user_id"]}) == 0

        response = await client.delete(f"/api/admin/delete-student/{student['user_id']}", headers=admin_headers)
        assert response.status_code == 404

    async def test_course_status_lock_and_unlock(self, client, db, admin_headers, student, course_tree):
        course_id = course_tree["course"]["course_id"]
        url = f"/api/admin/student/{student['user_id']}/course/{course_id}/status"

        response = await client.put(url, json={"status": "unlocked"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["enrolled_courses"][0]["status"] == "unlocked"

        response = await client.put(url, json={"status": "LOCKED"}, headers=admin_headers)
        enrolled = response.json()["enrolled_courses"]
        assert len(enrolled) == 1
        assert enrolled[0]["status"] == "locked"
        assert enrolled[0]["source"] == "admin"

    async def test_course_status_errors(self, client, admin_headers, student, course_tree):
        course_id = course_tree["course"]["course_id"]
        response = await client.put(
            f"/api/admin/student/{student['user_id']}/course/{course_id}/status",
            json={"status": "expired"},
            headers=admin_headers
        )
        assert response.status_code == 400

        response = await client.put(
            f"/api/admin/student/USR_NOPE/course/{course_id}/status",
            json={"status": "unlocked"},
            headers=admin_headers
        )
        assert response.status_code == 404


class TestDashboards:
    """Tests for the admin reporting endpoints."""

    async def test_paid_users(self, client, db, admin_headers, student, other_student, course_tree):
        await unlock_course(db, student["user_id"], course_tree["course"]["course_id"], EnrollmentSource.PAYMENT)

        response = await client.get("/api/admin/paid-users", headers=admin_headers)
        users = response.json()["users"]
        assert [u["user_id"] for u in users] == [student["user_id"]]
        assert users[0]["enrolled_courses"][0]["course"]["name"] == "CAT 2026 Complete"

    async def test_students_with_purchases(self, client, admin_headers, student, other_student, sales):
        response = await client.get("/api/admin/students-with-purchases", headers=admin_headers)
        body = response.json()
        assert body["count"] == 2

        by_email = {s["email"]: s for s in body["students"]}
        assert by_email["asha@example.com"]["total_spent"] == 499
        assert len(by_email["asha@example.com"]["payments"]) == 1
        assert by_email["ravi@example.com"]["total_spent"] == 0
        assert len(by_email["ravi@example.com"]["payments"]) == 2
        assert by_email["ravi@example.com"]["payments"][0]["course"]["course_id"] == sales

    async def test_payments_summary(self, client, admin_headers, sales):
        response = await client.get("/api/admin/payments", headers=admin_headers)
        body = response.json()
        assert body["summary"] == {
            "total_payments": 3,
            "successful_payments": 1,
            "total_revenue": 499,
            "pending_payments": 1,
            "failed_payments": 1,
        }
        assert body["payments"][0]["user"]["name"]

    async def test_payments_filters(self, client, admin_headers, sales):
        response = await client.get("/api/admin/payments", params={"status": "paid"}, headers=admin_headers)
        assert response.json()["summary"]["total_payments"] == 1

        since = (datetime.utcnow() - timedelta(days=2)).date().isoformat()
        response = await client.get("/api/admin/payments", params={"start_date": since}, headers=admin_headers)
        assert response.json()["summary"]["failed_payments"] == 0
        assert response.json()["summary"]["total_payments"] == 2

        until = (datetime.utcnow() - timedelta(days=5)).date().isoformat()
        response = await client.get("/api/admin/payments", params={"end_date": until}, headers=admin_headers)
        assert response.json()["summary"]["total_payments"] == 1

        response = await client.get("/api/admin/payments", params={"course_id": "COURSE_NOPE"}, headers=admin_headers)
        assert response.json()["summary"]["total_payments"] == 0

    async def test_invalid_status_filter(self, client, admin_headers):
        response = await client.get("/api/admin/payments", params={"status": "refunded"}, headers=admin_headers)
        assert response.status_code == 422

    async def test_course_statistics(self, client, admin_headers, sales, draft_course):
        response = await client.get("/api/admin/course-statistics", headers=admin_headers)
        stats = {s["course"]["course_id"]: s for s in response.json()["course_statistics"]}

        assert stats[sales]["total_enrollments"] == 1
        assert stats[sales]["total_payments"] == 1
        assert stats[sales]["total_revenue"] == 499
        assert stats[sales]["average_payment"] == 499
        assert stats[draft_course["course_id"]]["total_payments"] == 0
        assert stats[draft_course["course_id"]]["average_payment"] == 0
