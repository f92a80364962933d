"""
Admin API Router
Account management, student management and dashboards
"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from examprep.admin import admin_service
from examprep.admin.admin_models import (
    AdminCreate, AdminLogin, ChangePasswordRequest, CourseStatusUpdate, SubadminCreate
)
from examprep.core.database import get_db, serialize_mongo
from examprep.core.security import (
    ROLE_SUBADMIN, UserContext, admin_auth, admin_only, hash_password, verify_password
)
from examprep.payments.payment_models import PaymentStatus
from examprep.payments.receipts import build_receipt_response
from examprep.students.access import set_enrollment_status
from examprep.students.student_models import EnrollmentSource, StudentUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


# ============================================================================
# ACCOUNTS
# ============================================================================

@router.post("/create", status_code=201)
async def create_admin(payload: AdminCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """First admin only; later accounts come from /subadmins"""
    if await db.admins.find_one({"email": payload.email.lower()}):
        raise HTTPException(status_code=400, detail="Admin already exists")
    if await db.admins.count_documents({}) > 0:
        raise HTTPException(status_code=403, detail="Admin already initialized")

    admin = await admin_service.create_admin_account(db, payload.dict())
    return {"success": True, "message": "Admin created successfully", "admin": serialize_mongo(admin)}


@router.post("/login")
async def admin_login(payload: AdminLogin, db: AsyncIOMotorDatabase = Depends(get_db)):
    admin = await db.admins.find_one({"email": payload.email.lower()})
    if not admin:
        raise HTTPException(status_code=404, detail="Admin not found")
    if not verify_password(payload.password, admin.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info("Admin login: %s", admin["admin_id"])
    return {
        "success": True,
        "token": admin_service.issue_admin_token(admin),
        "admin": serialize_mongo(admin)
    }


@router.put("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    if not payload.current_password or not payload.new_password or not payload.confirm_password:
        raise HTTPException(status_code=400, detail="All password fields are required")
    if payload.new_password != payload.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")
    if len(payload.new_password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    record = await db.admins.find_one({"admin_id": admin.user_id})
    if not record:
        raise HTTPException(status_code=404, detail="Admin not found")
    if not verify_password(payload.current_password, record.get("password_hash")):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    await db.admins.update_one(
        {"admin_id": admin.user_id},
        {"$set": {"password_hash": hash_password(payload.new_password), "updated_at": datetime.utcnow()}}
    )
    logger.info("Admin %s changed password", admin.user_id)
    return {"success": True, "message": "Password changed successfully"}


@router.get("/me")
async def admin_me(db: AsyncIOMotorDatabase = Depends(get_db), admin: UserContext = Depends(admin_auth)):
    record = await db.admins.find_one({"admin_id": admin.user_id})
    if not record:
        raise HTTPException(status_code=404, detail="Admin not found")
    return {"success": True, "admin": serialize_mongo(record)}


@router.post("/subadmins", status_code=201)
async def create_subadmin(
    payload: SubadminCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_only)
):
    if await db.admins.find_one({"email": payload.email.lower()}):
        raise HTTPException(status_code=400, detail="Admin already exists")

    subadmin = await admin_service.create_admin_account(db, payload.dict(), role=ROLE_SUBADMIN)
    logger.info("Subadmin %s created by %s", subadmin["admin_id"], admin.user_id)
    return {"success": True, "admin": serialize_mongo(subadmin)}


# ============================================================================
# STUDENTS
# ============================================================================

@router.get("/get-students")
async def get_students(db: AsyncIOMotorDatabase = Depends(get_db), admin: UserContext = Depends(admin_auth)):
    students = await admin_service.list_students(db)
    return {"success": True, "students": students, "count": len(students)}


@router.put("/update-student/{user_id}")
async def update_student(
    user_id: str,
    payload: StudentUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    updates = {k: v for k, v in payload.dict(exclude_unset=True).items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    if "email" in updates:
        updates["email"] = updates["email"].lower()
    updates["updated_at"] = datetime.utcnow()

    student = await db.users.find_one_and_update(
        {"user_id": user_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    logger.info("Student %s updated by %s: %s", user_id, admin.user_id, sorted(updates))
    return {"success": True, "message": "Student updated successfully", "student": serialize_mongo(student)}


@router.delete("/delete-student/{user_id}")
async def delete_student(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    result = await db.users.delete_one({"user_id": user_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Student not found")

    logger.info("Student %s deleted by %s", user_id, admin.user_id)
    return {"success": True, "message": "Student deleted successfully"}


@router.put("/student/{user_id}/course/{course_id}/status")
async def update_student_course_status(
    user_id: str,
    course_id: str,
    payload: CourseStatusUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    if not payload.is_valid():
        raise HTTPException(status_code=400, detail="Status must be 'locked' or 'unlocked'")

    await admin_service.require_student(db, user_id)
    enrolled_courses = await set_enrollment_status(db, user_id, course_id, payload.status, EnrollmentSource.ADMIN)

    return {
        "success": True,
        "message": f"Course {payload.status} successfully",
        "enrolled_courses": enrolled_courses
    }


# ============================================================================
# DASHBOARDS
# ============================================================================

@router.get("/paid-users")
async def get_paid_users(db: AsyncIOMotorDatabase = Depends(get_db), admin: UserContext = Depends(admin_auth)):
    users = await admin_service.list_paid_users(db)
    return {"success": True, "users": users, "count": len(users)}


@router.get("/students-with-purchases")
async def get_students_with_purchases(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    students = await admin_service.list_students_with_purchases(db)
    return {"success": True, "students": students, "count": len(students)}


@router.get("/payments")
async def get_payments(
    status: Optional[PaymentStatus] = Query(None),
    course_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    query = admin_service.build_payment_filter(
        status.value if status else None, course_id, start_date, end_date
    )
    result = await admin_service.list_payments(db, query)
    return {"success": True, **result}


@router.get("/course-statistics")
async def get_course_statistics(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    stats = await admin_service.course_statistics(db)
    return {"success": True, "course_statistics": stats}


@router.get("/receipt/{receipt_id}/download")
async def admin_download_receipt(
    receipt_id: str,
    request: Request,
    format: str = Query("json"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    receipt = await db.receipts.find_one({"receipt_id": receipt_id})
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return await build_receipt_response(db, receipt, format, request.url.path)
