"""
Database Session Management
Owns the Motor client and the index layout of every collection
"""

import logging
import uuid
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from examprep.core import config

logger = logging.getLogger(__name__)

# Fields never sent back to a client
PRIVATE_FIELDS = ("_id", "password_hash")


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self):
        """Initialize MongoDB connection"""
        self.client = AsyncIOMotorClient(config.MONGO_URL)
        self.db = self.client[config.DB_NAME]
        logger.info("MongoDB connected (database=%s)", config.DB_NAME)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


db_manager = DatabaseManager()


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return db_manager.get_database()


# ==================== INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes for data integrity"""
    # Accounts
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.users.create_index("enrolled_courses.course_id")
    await db.admins.create_index("admin_id", unique=True)
    await db.admins.create_index("email", unique=True)

    # Content hierarchy
    await db.courses.create_index("course_id", unique=True)
    await db.subjects.create_index("subject_id", unique=True)
    await db.subjects.create_index([("course_id", 1), ("order", 1)])
    await db.chapters.create_index("chapter_id", unique=True)
    await db.chapters.create_index([("subject_id", 1), ("order", 1)])
    await db.chapters.create_index("course_id")
    await db.topics.create_index("topic_id", unique=True)
    await db.topics.create_index([("chapter_id", 1), ("order", 1)])
    await db.topics.create_index("course_id")
    await db.tests.create_index("test_id", unique=True)
    await db.tests.create_index([("topic_id", 1), ("order", 1)])
    await db.tests.create_index("course_id")
    await db.questions.create_index("question_id", unique=True)
    await db.questions.create_index("test_id")

    # Payments & receipts
    await db.payments.create_index("payment_id", unique=True)
    await db.payments.create_index("razorpay_order_id", unique=True)
    await db.payments.create_index([("user_id", 1), ("created_at", -1)])
    await db.payments.create_index([("course_id", 1), ("status", 1)])
    await db.receipts.create_index("receipt_id", unique=True)
    await db.receipts.create_index("receipt_number", unique=True)
    await db.receipts.create_index("payment_id", unique=True)

    logger.info("Database indexes ensured")


# ==================== SERIALIZATION ====================

def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    """Convert a stored document into a JSON-safe dict"""
    if doc is None:
        return None
    doc = dict(doc)
    for field in PRIVATE_FIELDS:
        doc.pop(field, None)
    return doc


def serialize_many(docs: list) -> list:
    return [serialize_mongo(doc) for doc in docs]


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12].upper()}"
