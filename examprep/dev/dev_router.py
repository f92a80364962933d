"""
Development helpers
Only mounted when APP_ENV=development; never reachable in production
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from examprep.catalog.database import get_course
from examprep.core import config
from examprep.core.database import get_db, serialize_mongo
from examprep.core.security import decode_token
from examprep.students.access import find_enrollment, get_unlocked_courses, unlock_course
from examprep.students.auth_router import create_student, issue_student_token
from examprep.students.student_models import EnrollmentSource, EnrollmentStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Development"])


class DevUnlockRequest(BaseModel):
    course_id: str


async def get_demo_user(db: AsyncIOMotorDatabase) -> dict:
    user = await db.users.find_one({"email": config.DEMO_USER_EMAIL})
    if not user:
        user = await create_student(db, {"name": "Demo Student", "email": config.DEMO_USER_EMAIL}, None)
        logger.info("Demo user created: %s", user["user_id"])
    return user


@router.post("/login")
async def dev_login(db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await get_demo_user(db)
    return {"success": True, "token": issue_student_token(user), "user": serialize_mongo(user)}


@router.get("/verify-token")
async def dev_verify_token(authorization: str = Header(None)):
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=400, detail="No bearer token provided")
    payload = decode_token(authorization.split(" ", 1)[1].strip())
    return {"success": True, "payload": payload}


@router.post("/unlock-course")
async def dev_unlock_course(payload: DevUnlockRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    course = await get_course(db, payload.course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    user = await get_demo_user(db)
    enrollment = find_enrollment(user, payload.course_id)
    if enrollment and enrollment.get("status") == EnrollmentStatus.UNLOCKED.value:
        return {"success": True, "already_unlocked": True, "enrolled_courses": user["enrolled_courses"]}

    enrolled_courses = await unlock_course(db, user["user_id"], payload.course_id, EnrollmentSource.DEV)
    return {"success": True, "already_unlocked": False, "enrolled_courses": enrolled_courses}


@router.get("/my-courses")
async def dev_my_courses(db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await get_demo_user(db)
    courses = await get_unlocked_courses(db, user["user_id"])
    return {"success": True, "courses": courses, "count": len(courses)}
