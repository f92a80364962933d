"""
Course content management (admin)
Subjects, chapters, topics and tests below a course
"""

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.catalog.models import (
    SubjectCreate, ChapterCreate, TopicCreate, NodeUpdate,
    ExamTestCreate, ExamTestUpdate
)
from examprep.catalog.database import (
    SUBJECT, CHAPTER, TOPIC, TEST,
    create_child, list_children, update_node, delete_node
)
from examprep.core.database import get_db
from examprep.core.security import UserContext, admin_auth

subject_router = APIRouter(tags=["Subjects"])
chapter_router = APIRouter(tags=["Chapters"])
topic_router = APIRouter(tags=["Topics"])
test_router = APIRouter(tags=["Tests"])

# ==================== SUBJECTS ====================

@subject_router.post("", status_code=201)
async def create_subject(
    payload: SubjectCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    subject = await create_child(db, SUBJECT, payload.course_id, payload.dict())
    return {"success": True, "message": "Subject created", "subject": subject}


@subject_router.get("/{course_id}")
async def list_subjects(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    subjects = await list_children(db, SUBJECT, course_id)
    return {"success": True, "subjects": subjects}


@subject_router.put("/{subject_id}")
async def update_subject(
    subject_id: str,
    payload: NodeUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    subject = await update_node(db, SUBJECT, subject_id, payload.dict(exclude_unset=True))
    return {"success": True, "message": "Subject updated", "subject": subject}


@subject_router.delete("/{subject_id}")
async def delete_subject(
    subject_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    deleted = await delete_node(db, SUBJECT, subject_id)
    return {"success": True, "message": "Subject deleted", "deleted": deleted}

# ==================== CHAPTERS ====================

@chapter_router.post("", status_code=201)
async def create_chapter(
    payload: ChapterCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    chapter = await create_child(db, CHAPTER, payload.subject_id, payload.dict())
    return {"success": True, "message": "Chapter created", "chapter": chapter}


@chapter_router.get("/{subject_id}")
async def list_chapters(
    subject_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    chapters = await list_children(db, CHAPTER, subject_id)
    return {"success": True, "chapters": chapters}


@chapter_router.put("/{chapter_id}")
async def update_chapter(
    chapter_id: str,
    payload: NodeUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    chapter = await update_node(db, CHAPTER, chapter_id, payload.dict(exclude_unset=True))
    return {"success": True, "message": "Chapter updated", "chapter": chapter}


@chapter_router.delete("/{chapter_id}")
async def delete_chapter(
    chapter_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    deleted = await delete_node(db, CHAPTER, chapter_id)
    return {"success": True, "message": "Chapter deleted", "deleted": deleted}

# ==================== TOPICS ====================

@topic_router.post("", status_code=201)
async def create_topic(
    payload: TopicCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    topic = await create_child(db, TOPIC, payload.chapter_id, payload.dict())
    return {"success": True, "message": "Topic created", "topic": topic}


@topic_router.get("/{chapter_id}")
async def list_topics(
    chapter_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    topics = await list_children(db, TOPIC, chapter_id)
    return {"success": True, "topics": topics}


@topic_router.put("/{topic_id}")
async def update_topic(
    topic_id: str,
    payload: NodeUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    topic = await update_node(db, TOPIC, topic_id, payload.dict(exclude_unset=True))
    return {"success": True, "message": "Topic updated", "topic": topic}


@topic_router.delete("/{topic_id}")
async def delete_topic(
    topic_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    deleted = await delete_node(db, TOPIC, topic_id)
    return {"success": True, "message": "Topic deleted", "deleted": deleted}

# ==================== TESTS ====================

@test_router.post("", status_code=201)
async def create_test(
    payload: ExamTestCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    test = await create_child(db, TEST, payload.topic_id, payload.dict())
    return {"success": True, "message": "Test created", "test": test}


@test_router.get("/{topic_id}")
async def list_tests(
    topic_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    tests = await list_children(db, TEST, topic_id)
    return {"success": True, "tests": tests}


@test_router.put("/{test_id}")
async def update_test(
    test_id: str,
    payload: ExamTestUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    test = await update_node(db, TEST, test_id, payload.dict(exclude_unset=True))
    return {"success": True, "message": "Test updated", "test": test}


@test_router.delete("/{test_id}")
async def delete_test(
    test_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    deleted = await delete_node(db, TEST, test_id)
    return {"success": True, "message": "Test deleted", "deleted": deleted}
