"""
Student accounts
Email + password registration and login
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from examprep.core.database import get_db, new_id, serialize_mongo
from examprep.core.security import ROLE_STUDENT, create_access_token, hash_password, verify_password
from examprep.students.student_models import StudentLogin, StudentRegister

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Student Auth"])


def issue_student_token(user: dict) -> str:
    return create_access_token(
        user["user_id"],
        ROLE_STUDENT,
        extra={"email": user.get("email"), "name": user.get("name")}
    )


async def create_student(db: AsyncIOMotorDatabase, data: dict, password: str) -> dict:
    now = datetime.utcnow()
    user = {
        "user_id": new_id("USR"),
        "name": data["name"],
        "email": data["email"].lower(),
        "phone_number": data.get("phone_number"),
        "password_hash": hash_password(password) if password else None,
        "role": ROLE_STUDENT,
        "selected_category": data.get("selected_category"),
        "selected_exam": data.get("selected_exam"),
        "city": data.get("city"),
        "enrolled_courses": [],
        "created_at": now,
        "updated_at": now,
    }
    await db.users.insert_one(user)
    return user


@router.post("/register", status_code=201)
async def register(payload: StudentRegister, db: AsyncIOMotorDatabase = Depends(get_db)):
    email = payload.email.lower()
    if await db.users.find_one({"email": email}):
        raise HTTPException(status_code=400, detail="Email already registered")

    data = payload.dict(exclude={"password"})
    try:
        user = await create_student(db, data, payload.password)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered")

    logger.info("Student registered: %s", user["user_id"])
    return {
        "success": True,
        "token": issue_student_token(user),
        "user": serialize_mongo(user)
    }


@router.post("/login")
async def login(payload: StudentLogin, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await db.users.find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {
        "success": True,
        "token": issue_student_token(user),
        "user": serialize_mongo(user)
    }
