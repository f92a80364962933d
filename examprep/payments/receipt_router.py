from fastapi import APIRouter, Depends, HTTPException, Query, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.core.database import get_db, serialize_many
from examprep.core.security import UserContext, get_current_student
from examprep.payments.receipts import build_receipt_response

router = APIRouter(tags=["Receipts"])


@router.get("/student/receipts")
async def list_my_receipts(
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(get_current_student)
):
    receipts = await db.receipts.find({"user_id": student.user_id}).sort("created_at", -1).to_list(length=None)
    return {"success": True, "receipts": serialize_many(receipts), "count": len(receipts)}


@router.get("/student/receipt/{receipt_id}/download")
async def download_my_receipt(
    receipt_id: str,
    request: Request,
    format: str = Query("json"),
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(get_current_student)
):
    # Someone else's receipt looks the same as a missing one
    receipt = await db.receipts.find_one({"receipt_id": receipt_id, "user_id": student.user_id})
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return await build_receipt_response(db, receipt, format, request.url.path)
