"""
Course access control
Decides whether a caller may read a course's content and owns every write
to users.enrolled_courses
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.catalog.database import get_course, get_courses_by_ids
from examprep.core.database import serialize_mongo
from examprep.core.security import UserContext
from examprep.students.student_models import Enrollment, EnrollmentSource, EnrollmentStatus

logger = logging.getLogger(__name__)


class AccessResult:
    def __init__(self, has_access: bool, message: str, course: Optional[dict] = None):
        self.has_access = has_access
        self.message = message
        self.course = course

    def __bool__(self):
        return self.has_access


def find_enrollment(user: dict, course_id: str) -> Optional[dict]:
    for entry in user.get("enrolled_courses", []):
        if entry.get("course_id") == course_id:
            return entry
    return None


async def check_course_access(db: AsyncIOMotorDatabase, user: UserContext, course_id: str) -> AccessResult:
    """
    Access requires an unlocked enrollment AND a published course.
    Admins skip the enrollment step.
    """
    if user.is_admin:
        course = await get_course(db, course_id)
        if not course or not course.get("published"):
            return AccessResult(False, "Course not available")
        return AccessResult(True, "Admin access", serialize_mongo(course))

    student = await db.users.find_one({"user_id": user.user_id})
    if not student:
        return AccessResult(False, "User not found")

    enrollment = find_enrollment(student, course_id)
    if not enrollment or enrollment.get("status") != EnrollmentStatus.UNLOCKED.value:
        return AccessResult(False, "Course not unlocked or not enrolled")

    course = await get_course(db, course_id)
    if not course or not course.get("published"):
        return AccessResult(False, "Course not available")

    return AccessResult(True, "Access granted", serialize_mongo(course))


async def require_course_access(db: AsyncIOMotorDatabase, user: UserContext, course_id: str) -> dict:
    access = await check_course_access(db, user, course_id)
    if not access:
        raise HTTPException(status_code=403, detail=access.message)
    return access.course


# ==================== ENROLLMENT WRITES ====================

async def set_enrollment_status(
    db: AsyncIOMotorDatabase,
    user_id: str,
    course_id: str,
    status: EnrollmentStatus,
    source: EnrollmentSource
) -> List[dict]:
    """
    Update the enrollment for course_id, adding it when absent.
    Returns the user's enrolled_courses after the write.
    """
    status = EnrollmentStatus(status).value
    source = EnrollmentSource(source).value
    now = datetime.utcnow()

    result = await db.users.update_one(
        {"user_id": user_id, "enrolled_courses.course_id": course_id},
        {"$set": {
            "enrolled_courses.$.status": status,
            "enrolled_courses.$.source": source,
            "enrolled_courses.$.updated_at": now,
            "updated_at": now
        }}
    )

    if result.matched_count == 0:
        entry = Enrollment(course_id=course_id, status=status, source=source).dict()
        result = await db.users.update_one(
            {"user_id": user_id, "enrolled_courses.course_id": {"$ne": course_id}},
            {"$push": {"enrolled_courses": entry}, "$set": {"updated_at": now}}
        )
        if result.matched_count == 0 and not await db.users.find_one({"user_id": user_id}):
            raise HTTPException(status_code=404, detail="Student not found")

    logger.info("Enrollment %s/%s -> %s (%s)", user_id, course_id, status, source)
    return await get_enrollments(db, user_id)


async def get_enrollments(db: AsyncIOMotorDatabase, user_id: str) -> List[dict]:
    user = await db.users.find_one({"user_id": user_id}, {"enrolled_courses": 1})
    return user.get("enrolled_courses", []) if user else []


async def unlock_course(db: AsyncIOMotorDatabase, user_id: str, course_id: str, source: EnrollmentSource) -> List[dict]:
    return await set_enrollment_status(db, user_id, course_id, EnrollmentStatus.UNLOCKED, source)


async def get_unlocked_courses(db: AsyncIOMotorDatabase, user_id: str) -> List[dict]:
    """Unlocked enrollments whose course still exists, with the course attached"""
    user = await db.users.find_one({"user_id": user_id})
    if not user:
        return []

    unlocked = [e for e in user.get("enrolled_courses", []) if e.get("status") == EnrollmentStatus.UNLOCKED.value]
    courses = await get_courses_by_ids(db, [e["course_id"] for e in unlocked])

    return [
        {
            "course_id": e["course_id"],
            "status": e["status"],
            "enrolled_at": e.get("enrolled_at"),
            "course": courses[e["course_id"]],
        }
        for e in unlocked
        if e["course_id"] in courses
    ]
