"""
Content hierarchy storage
course -> subject -> chapter -> topic -> test -> question

Each level is a flat collection. Every node stores the ids of all of its
ancestors, so a subtree is addressable with a single filter per collection.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from examprep.core.database import new_id, serialize_many, serialize_mongo

logger = logging.getLogger(__name__)


class Level:
    def __init__(self, key: str, collection: str, id_prefix: str, label: str, ordered: bool = True):
        self.key = key
        self.collection = collection
        self.id_field = f"{key}_id"
        self.id_prefix = id_prefix
        self.label = label
        self.ordered = ordered


COURSE = Level("course", "courses", "COURSE", "Course")
SUBJECT = Level("subject", "subjects", "SUB", "Subject")
CHAPTER = Level("chapter", "chapters", "CHAP", "Chapter")
TOPIC = Level("topic", "topics", "TOPIC", "Topic")
TEST = Level("test", "tests", "TEST", "Test")
QUESTION = Level("question", "questions", "Q", "Question", ordered=False)

HIERARCHY = [COURSE, SUBJECT, CHAPTER, TOPIC, TEST, QUESTION]


def parent_of(level: Level) -> Optional[Level]:
    index = HIERARCHY.index(level)
    return HIERARCHY[index - 1] if index > 0 else None


def descendants_of(level: Level) -> List[Level]:
    return HIERARCHY[HIERARCHY.index(level) + 1:]


def ancestor_fields(level: Level) -> List[str]:
    return [lvl.id_field for lvl in HIERARCHY[:HIERARCHY.index(level)]]


# ==================== GENERIC NODE CRUD ====================

async def get_node(db: AsyncIOMotorDatabase, level: Level, node_id: str) -> Optional[dict]:
    return await db[level.collection].find_one({level.id_field: node_id})


async def require_node(db: AsyncIOMotorDatabase, level: Level, node_id: str) -> dict:
    node = await get_node(db, level, node_id)
    if not node:
        raise HTTPException(status_code=404, detail=f"{level.label} not found")
    return node


async def create_child(db: AsyncIOMotorDatabase, level: Level, parent_id: str, data: dict) -> dict:
    """
    Insert a node below an existing parent.
    Ancestor ids are copied from the parent document, never from the client.
    """
    parent_level = parent_of(level)
    parent = await require_node(db, parent_level, parent_id)

    doc = {field: parent[field] for field in ancestor_fields(parent_level)}
    doc[parent_level.id_field] = parent_id
    doc.update({k: v for k, v in data.items() if k not in doc and k != parent_level.id_field})
    doc[level.id_field] = new_id(level.id_prefix)

    if level.ordered and not doc.get("order"):
        siblings = await db[level.collection].count_documents({parent_level.id_field: parent_id})
        doc["order"] = siblings + 1

    now = datetime.utcnow()
    doc["created_at"] = now
    doc["updated_at"] = now

    await db[level.collection].insert_one(doc)
    logger.info("%s created: %s (parent %s)", level.label, doc[level.id_field], parent_id)
    return serialize_mongo(doc)


async def list_children(db: AsyncIOMotorDatabase, level: Level, parent_id: str, only_active: bool = False) -> List[dict]:
    parent_level = parent_of(level)
    query = {parent_level.id_field: parent_id}
    if only_active:
        query["is_active"] = True
    cursor = db[level.collection].find(query)
    if level.ordered:
        cursor = cursor.sort("order", 1)
    else:
        cursor = cursor.sort("created_at", 1)
    return serialize_many(await cursor.to_list(length=None))


async def list_subtree(db: AsyncIOMotorDatabase, level: Level, course_id: str) -> List[dict]:
    """All nodes of one level inside a course, in display order"""
    cursor = db[level.collection].find({"course_id": course_id}).sort("order", 1)
    return serialize_many(await cursor.to_list(length=None))


async def update_node(db: AsyncIOMotorDatabase, level: Level, node_id: str, updates: dict) -> dict:
    updates = {k: v for k, v in updates.items() if v is not None}
    if not updates:
        return serialize_mongo(await require_node(db, level, node_id))

    updates["updated_at"] = datetime.utcnow()
    node = await db[level.collection].find_one_and_update(
        {level.id_field: node_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not node:
        raise HTTPException(status_code=404, detail=f"{level.label} not found")
    return serialize_mongo(node)


async def delete_node(db: AsyncIOMotorDatabase, level: Level, node_id: str) -> dict:
    """Delete a node together with its whole subtree"""
    await require_node(db, level, node_id)

    deleted = {}
    for child in descendants_of(level):
        result = await db[child.collection].delete_many({level.id_field: node_id})
        deleted[child.collection] = result.deleted_count

    await db[level.collection].delete_one({level.id_field: node_id})
    deleted[level.collection] = 1

    logger.info("%s %s deleted with subtree %s", level.label, node_id, deleted)
    return deleted


# ==================== COURSES ====================

async def create_course(db: AsyncIOMotorDatabase, course_data: dict, creator_id: str) -> dict:
    now = datetime.utcnow()
    course = {
        "course_id": new_id(COURSE.id_prefix),
        "name": course_data["name"],
        "description": course_data.get("description", ""),
        "price": course_data.get("price", 0),
        "thumbnail_url": course_data.get("thumbnail_url"),
        "published": course_data.get("published", False),
        "created_by": creator_id,
        "created_at": now,
        "updated_at": now,
    }
    await db.courses.insert_one(course)
    logger.info("Course created: %s by %s", course["course_id"], creator_id)
    return serialize_mongo(course)


async def get_course(db: AsyncIOMotorDatabase, course_id: str) -> Optional[dict]:
    return await get_node(db, COURSE, course_id)


async def list_courses(db: AsyncIOMotorDatabase, published_only: bool = True) -> List[dict]:
    query = {"published": True} if published_only else {}
    cursor = db.courses.find(query).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))


async def set_course_published(db: AsyncIOMotorDatabase, course_id: str, published: bool) -> dict:
    return await update_node(db, COURSE, course_id, {"published": published})


async def get_courses_by_ids(db: AsyncIOMotorDatabase, course_ids: List[str]) -> dict:
    """course_id -> course document"""
    if not course_ids:
        return {}
    cursor = db.courses.find({"course_id": {"$in": list(set(course_ids))}})
    return {c["course_id"]: serialize_mongo(c) for c in await cursor.to_list(length=None)}
