"""
Student course viewer
Every content read goes through the course access check first
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.catalog.database import (
    SUBJECT, CHAPTER, TOPIC, TEST,
    require_node, list_children, list_subtree
)
from examprep.core.database import get_db, serialize_mongo
from examprep.core.security import UserContext, get_current_user, get_current_student
from examprep.students.access import (
    check_course_access, require_course_access, find_enrollment, get_unlocked_courses
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Student Courses"])
user_router = APIRouter(tags=["Student Profile"])


def build_course_structure(subjects, chapters, topics, tests) -> list:
    """Nest flat level lists into subjects[chapters[topics[tests]]]"""
    def children(items, field, parent_id):
        return [item for item in items if item.get(field) == parent_id]

    return [
        {
            **subject,
            "chapters": [
                {
                    **chapter,
                    "topics": [
                        {**topic, "tests": children(tests, "topic_id", topic["topic_id"])}
                        for topic in children(topics, "chapter_id", chapter["chapter_id"])
                    ]
                }
                for chapter in children(chapters, "subject_id", subject["subject_id"])
            ]
        }
        for subject in subjects
    ]

# ==================== CONTENT ====================

@router.get("/course/{course_id}/subjects")
async def student_course_subjects(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user)
):
    course = await require_course_access(db, user, course_id)
    subjects = await list_children(db, SUBJECT, course_id)
    return {"success": True, "subjects": subjects, "course": course}


@router.get("/subject/{subject_id}/chapters")
async def student_subject_chapters(
    subject_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user)
):
    subject = await require_node(db, SUBJECT, subject_id)
    await require_course_access(db, user, subject["course_id"])
    chapters = await list_children(db, CHAPTER, subject_id)
    return {"success": True, "chapters": chapters, "subject": serialize_mongo(subject)}


@router.get("/chapter/{chapter_id}/topics")
async def student_chapter_topics(
    chapter_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user)
):
    chapter = await require_node(db, CHAPTER, chapter_id)
    await require_course_access(db, user, chapter["course_id"])
    topics = await list_children(db, TOPIC, chapter_id)
    return {"success": True, "topics": topics, "chapter": serialize_mongo(chapter)}


@router.get("/topic/{topic_id}/tests")
async def student_topic_tests(
    topic_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user)
):
    topic = await require_node(db, TOPIC, topic_id)
    await require_course_access(db, user, topic["course_id"])
    tests = await list_children(db, TEST, topic_id)
    return {"success": True, "tests": tests, "topic": serialize_mongo(topic)}


@router.get("/course/{course_id}/structure")
async def student_course_structure(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user)
):
    """Whole course tree in one call"""
    course = await require_course_access(db, user, course_id)

    subjects = await list_subtree(db, SUBJECT, course_id)
    chapters = await list_subtree(db, CHAPTER, course_id)
    topics = await list_subtree(db, TOPIC, course_id)
    tests = await list_subtree(db, TEST, course_id)

    logger.debug(
        "Structure for %s: %d subjects, %d chapters, %d topics, %d tests",
        course_id, len(subjects), len(chapters), len(topics), len(tests)
    )

    return {
        "success": True,
        "course": course,
        "structure": build_course_structure(subjects, chapters, topics, tests)
    }


@router.get("/access/{course_id}")
async def student_access_status(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: UserContext = Depends(get_current_user)
):
    """Access state for the purchase page; never 403"""
    access = await check_course_access(db, user, course_id)

    status = None
    if not user.is_admin:
        student = await db.users.find_one({"user_id": user.user_id})
        enrollment = find_enrollment(student, course_id) if student else None
        status = enrollment.get("status") if enrollment else None

    return {
        "course_id": course_id,
        "has_access": access.has_access,
        "message": access.message,
        "status": status
    }

# ==================== PROFILE ====================

@user_router.get("/me")
async def get_my_profile(
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(get_current_student)
):
    user = await db.users.find_one({"user_id": student.user_id})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": serialize_mongo(user)}


@user_router.get("/student/my-courses")
async def get_my_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(get_current_student)
):
    courses = await get_unlocked_courses(db, student.user_id)
    return {"success": True, "courses": courses, "count": len(courses)}
