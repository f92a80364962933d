from fastapi import APIRouter, HTTPException, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from examprep.catalog.models import CourseCreate, CourseUpdate, CoursePublish
from examprep.catalog.database import (
    COURSE, create_course, get_course, list_courses, update_node,
    delete_node, set_course_published
)
from examprep.core.database import get_db, serialize_mongo
from examprep.core.security import UserContext, admin_auth, optional_auth

router = APIRouter(tags=["Courses"])

# ==================== PUBLIC CATALOG ====================

@router.get("/student/published-courses")
async def published_courses(db: AsyncIOMotorDatabase = Depends(get_db)):
    courses = await list_courses(db, published_only=True)
    return {"success": True, "courses": courses, "count": len(courses)}


@router.get("/student/published-courses/{course_id}")
async def published_course_detail(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    course = await get_course(db, course_id)
    if not course or not course.get("published"):
        raise HTTPException(status_code=404, detail="Course not found")
    return {"success": True, "course": serialize_mongo(course)}

# ==================== COURSE CRUD ====================

@router.post("", status_code=201)
async def create_course_endpoint(
    course: CourseCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    created = await create_course(db, course.dict(), admin.user_id)
    return {"success": True, "message": "Course created", "course": created}


@router.get("")
async def list_all_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    """All courses including drafts"""
    courses = await list_courses(db, published_only=False)
    return {"success": True, "courses": courses, "count": len(courses)}


@router.get("/{course_id}")
async def get_course_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: Optional[UserContext] = Depends(optional_auth)
):
    """
    Course details for the purchase page.
    Drafts are only visible to admins.
    """
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    if not course.get("published") and not (user and user.is_admin):
        raise HTTPException(status_code=404, detail="Course not found")
    return {"success": True, "course": serialize_mongo(course)}


@router.put("/{course_id}")
async def update_course_endpoint(
    course_id: str,
    updates: CourseUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    course = await update_node(db, COURSE, course_id, updates.dict(exclude_unset=True))
    return {"success": True, "message": "Course updated", "course": course}


@router.put("/{course_id}/publish")
async def publish_course_endpoint(
    course_id: str,
    payload: CoursePublish,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    course = await set_course_published(db, course_id, payload.published)
    state = "published" if payload.published else "unpublished"
    return {"success": True, "message": f"Course {state}", "course": course}


@router.delete("/{course_id}")
async def delete_course_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    deleted = await delete_node(db, COURSE, course_id)
    return {"success": True, "message": "Course deleted", "deleted": deleted}
