"""
Admin accounts and dashboards
Aggregations over users, payments and courses for the admin panel
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.catalog.database import get_courses_by_ids
from examprep.core.database import new_id, serialize_mongo, serialize_many
from examprep.core.security import ROLE_ADMIN, ROLE_STUDENT, create_access_token, hash_password
from examprep.payments.payment_models import PaymentStatus
from examprep.students.student_models import EnrollmentStatus

logger = logging.getLogger(__name__)

STUDENT_FIELDS = {
    "_id": 0,
    "user_id": 1,
    "name": 1,
    "email": 1,
    "phone_number": 1,
    "selected_category": 1,
    "selected_exam": 1,
    "city": 1,
    "enrolled_courses": 1,
    "created_at": 1,
}

COURSE_SUMMARY_FIELDS = ("course_id", "name", "price", "description", "published")


def course_summary(course: Optional[dict]) -> Optional[dict]:
    if not course:
        return None
    return {field: course.get(field) for field in COURSE_SUMMARY_FIELDS}


def paise_to_rupees(amount) -> float:
    return round((amount or 0) / 100, 2)


# ==================== ACCOUNTS ====================

async def create_admin_account(db: AsyncIOMotorDatabase, data: dict, role: str = ROLE_ADMIN) -> dict:
    now = datetime.utcnow()
    admin = {
        "admin_id": new_id("ADM"),
        "name": data.get("name") or "Admin",
        "email": data["email"].lower(),
        "phone_number": data.get("phone_number"),
        "password_hash": hash_password(data["password"]),
        "role": role,
        "created_at": now,
        "updated_at": now,
    }
    await db.admins.insert_one(admin)
    logger.info("Admin account %s created with role %s", admin["admin_id"], role)
    return admin


def issue_admin_token(admin: dict) -> str:
    return create_access_token(
        admin["admin_id"],
        admin.get("role", ROLE_ADMIN),
        extra={"email": admin.get("email"), "name": admin.get("name")}
    )


# ==================== STUDENTS ====================

async def list_students(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.users.find({"role": ROLE_STUDENT}, STUDENT_FIELDS).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def _populate_enrollments(db: AsyncIOMotorDatabase, students: List[dict]) -> List[dict]:
    course_ids = {e["course_id"] for s in students for e in s.get("enrolled_courses", [])}
    courses = await get_courses_by_ids(db, list(course_ids))
    for student in students:
        student["enrolled_courses"] = [
            {**e, "course": course_summary(courses.get(e["course_id"]))}
            for e in student.get("enrolled_courses", [])
        ]
    return students


async def list_paid_users(db: AsyncIOMotorDatabase) -> List[dict]:
    """Students holding at least one unlocked course"""
    cursor = db.users.find(
        {
            "role": ROLE_STUDENT,
            "enrolled_courses": {"$elemMatch": {"status": EnrollmentStatus.UNLOCKED.value}}
        },
        STUDENT_FIELDS
    ).sort("created_at", -1)
    students = await cursor.to_list(length=None)
    return await _populate_enrollments(db, students)


async def list_students_with_purchases(db: AsyncIOMotorDatabase) -> List[dict]:
    students = await list_students(db)
    students = await _populate_enrollments(db, students)

    payments = await db.payments.find({}).sort("created_at", -1).to_list(length=None)
    courses = await get_courses_by_ids(db, list({p["course_id"] for p in payments}))

    by_user: Dict[str, List[dict]] = {}
    for payment in payments:
        entry = serialize_mongo(payment)
        entry["course"] = course_summary(courses.get(payment["course_id"]))
        by_user.setdefault(payment["user_id"], []).append(entry)

    for student in students:
        student_payments = by_user.get(student["user_id"], [])
        student["payments"] = student_payments
        student["total_spent"] = paise_to_rupees(
            sum(p["amount"] for p in student_payments if p["status"] == PaymentStatus.PAID.value)
        )
    return students


# ==================== PAYMENTS ====================

def build_payment_filter(
    status: Optional[str] = None,
    course_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> dict:
    query = {}
    if status:
        query["status"] = status
    if course_id:
        query["course_id"] = course_id
    if start_date or end_date:
        query["created_at"] = {}
        if start_date:
            query["created_at"]["$gte"] = datetime.combine(start_date, time.min)
        if end_date:
            # end_date is inclusive
            query["created_at"]["$lt"] = datetime.combine(end_date + timedelta(days=1), time.min)
    return query


async def list_payments(db: AsyncIOMotorDatabase, query: dict) -> dict:
    payments = await db.payments.find(query).sort("created_at", -1).to_list(length=None)

    users = await db.users.find(
        {"user_id": {"$in": list({p["user_id"] for p in payments})}},
        {"_id": 0, "user_id": 1, "name": 1, "email": 1, "phone_number": 1}
    ).to_list(length=None)
    users_by_id = {u["user_id"]: u for u in users}
    courses = await get_courses_by_ids(db, list({p["course_id"] for p in payments}))

    counts = await db.payments.aggregate([
        {"$match": query},
        {
            "$group": {
                "_id": "$status",
                "count": {"$sum": 1},
                "amount": {"$sum": {"$ifNull": ["$amount", 0]}}
            }
        }
    ]).to_list(length=None)
    by_status = {item["_id"]: item for item in counts}

    paid = by_status.get(PaymentStatus.PAID.value, {})
    summary = {
        "total_payments": len(payments),
        "successful_payments": paid.get("count", 0),
        "total_revenue": paise_to_rupees(paid.get("amount", 0)),
        "pending_payments": by_status.get(PaymentStatus.CREATED.value, {}).get("count", 0),
        "failed_payments": by_status.get(PaymentStatus.FAILED.value, {}).get("count", 0),
    }

    rows = []
    for payment in serialize_many(payments):
        payment["amount_rupees"] = paise_to_rupees(payment["amount"])
        payment["user"] = users_by_id.get(payment["user_id"])
        payment["course"] = course_summary(courses.get(payment["course_id"]))
        rows.append(payment)

    return {"payments": rows, "summary": summary}


async def course_statistics(db: AsyncIOMotorDatabase) -> List[dict]:
    courses = await db.courses.find({}).sort("created_at", -1).to_list(length=None)

    revenue = await db.payments.aggregate([
        {"$match": {"status": PaymentStatus.PAID.value}},
        {
            "$group": {
                "_id": "$course_id",
                "count": {"$sum": 1},
                "amount": {"$sum": {"$ifNull": ["$amount", 0]}}
            }
        }
    ]).to_list(length=None)
    revenue_by_course = {item["_id"]: item for item in revenue}

    enrollments = await db.users.aggregate([
        {"$unwind": "$enrolled_courses"},
        {"$match": {"enrolled_courses.status": EnrollmentStatus.UNLOCKED.value}},
        {"$group": {"_id": "$enrolled_courses.course_id", "count": {"$sum": 1}}}
    ]).to_list(length=None)
    enrollments_by_course = {item["_id"]: item["count"] for item in enrollments}

    stats = []
    for course in courses:
        paid = revenue_by_course.get(course["course_id"], {})
        total_payments = paid.get("count", 0)
        total_revenue = paise_to_rupees(paid.get("amount", 0))
        stats.append({
            "course": course_summary(course),
            "total_enrollments": enrollments_by_course.get(course["course_id"], 0),
            "total_payments": total_payments,
            "total_revenue": total_revenue,
            "average_payment": round(total_revenue / total_payments, 2) if total_payments else 0,
        })
    return stats


async def require_student(db: AsyncIOMotorDatabase, user_id: str) -> dict:
    student = await db.users.find_one({"user_id": user_id})
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student
