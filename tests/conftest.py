"""
Shared fixtures: in-memory Mongo, fake Razorpay, app client and seeded accounts
"""

import os
import uuid

# Settings are read at import time
os.environ["APP_ENV"] = "production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "rzp_webhook_secret"

import pytest
import razorpay
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from examprep.admin.admin_service import create_admin_account, issue_admin_token
from examprep.catalog.database import (
    SUBJECT, CHAPTER, TOPIC, TEST, QUESTION, create_child, create_course
)
from examprep.core.database import create_indexes, get_db
from examprep.core.security import ROLE_SUBADMIN
from examprep.main import create_app
from examprep.payments.razorpay_gateway import get_razorpay_client
from examprep.students.auth_router import create_student, issue_student_token


class FakeOrders:
    def __init__(self):
        self.created = []

    def create(self, data):
        order = {
            "id": f"order_{len(self.created) + 1:06d}",
            "entity": "order",
            "amount": data["amount"],
            "currency": data["currency"],
            "receipt": data["receipt"],
            "notes": data.get("notes", {}),
            "status": "created",
        }
        self.created.append(order)
        return order


class FakeRazorpay:
    """Stands in for razorpay.Client; orders are faked, signature checks are razorpay's own"""
    def __init__(self):
        self.order = FakeOrders()
        self.utility = razorpay.Client(auth=("rzp_test_key", "rzp_test_secret")).utility


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client[f"examprep_test_{uuid.uuid4().hex[:8]}"]
    await create_indexes(database)
    return database


@pytest.fixture
def fake_razorpay():
    return FakeRazorpay()


def build_app(db, fake_razorpay):
    application = create_app()
    application.dependency_overrides[get_db] = lambda: db
    application.dependency_overrides[get_razorpay_client] = lambda: fake_razorpay
    return application


@pytest.fixture
def app(db, fake_razorpay):
    return build_app(db, fake_razorpay)


@pytest.fixture
def make_app(db, fake_razorpay):
    """For tests that change settings read while the app is built"""
    def factory():
        return build_app(db, fake_razorpay)
    return factory


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ==================== ACCOUNTS ====================

@pytest.fixture
async def admin(db):
    return await create_admin_account(
        db, {"name": "Root Admin", "email": "admin@example.com", "password": "admin123"}
    )


@pytest.fixture
def admin_headers(admin):
    return bearer(issue_admin_token(admin))


@pytest.fixture
async def subadmin_headers(db):
    subadmin = await create_admin_account(
        db, {"name": "Content Editor", "email": "editor@example.com", "password": "editor123"},
        role=ROLE_SUBADMIN
    )
    return bearer(issue_admin_token(subadmin))


@pytest.fixture
async def student(db):
    return await create_student(
        db,
        {"name": "Asha Verma", "email": "asha@example.com", "phone_number": "9876543210"},
        "secret123"
    )


@pytest.fixture
def student_headers(student):
    return bearer(issue_student_token(student))


@pytest.fixture
async def other_student(db):
    return await create_student(db, {"name": "Ravi Kumar", "email": "ravi@example.com"}, "secret456")


@pytest.fixture
def other_student_headers(other_student):
    return bearer(issue_student_token(other_student))


# ==================== CATALOG ====================

@pytest.fixture
async def course_tree(db, admin):
    """Published course with one node on every level below it"""
    course = await create_course(
        db,
        {"name": "CAT 2026 Complete", "description": "Quant, VARC and DILR", "price": 499, "published": True},
        admin["admin_id"]
    )
    subject = await create_child(db, SUBJECT, course["course_id"], {"name": "Quantitative Aptitude"})
    chapter = await create_child(db, CHAPTER, subject["subject_id"], {"name": "Arithmetic"})
    topic = await create_child(db, TOPIC, chapter["chapter_id"], {"name": "Percentages"})
    test = await create_child(
        db, TEST, topic["topic_id"],
        {"title": "Percentages Drill 1", "duration_minutes": 20, "total_marks": 10, "is_active": True}
    )
    question = await create_child(
        db, QUESTION, test["test_id"],
        {
            "question_text": "What is 20% of 150?",
            "options": {"A": "20", "B": "25", "C": "30", "D": "35"},
            "correct_option": "C",
            "difficulty": "Easy",
        }
    )
    return {
        "course": course,
        "subject": subject,
        "chapter": chapter,
        "topic": topic,
        "test": test,
        "question": question,
    }


@pytest.fixture
async def draft_course(db, admin):
    return await create_course(db, {"name": "GATE Draft", "price": 999}, admin["admin_id"])
