"""
Payment endpoints
Mounted at /api/user/payment
"""

from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.core.database import get_db
from examprep.core.security import UserContext, get_current_student
from examprep.payments import payment_service
from examprep.payments.payment_models import CreateOrderRequest, VerifyPaymentRequest, PaymentFailedRequest
from examprep.payments.razorpay_gateway import get_razorpay_client

router = APIRouter(tags=["Payment"])


@router.post("/create-order")
async def create_order(
    payload: CreateOrderRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(get_current_student),
    client=Depends(get_razorpay_client)
):
    """Open a Razorpay order for a course at its current price"""
    return await payment_service.create_order(db, client, student, payload.course_id)


@router.post("/verify-and-unlock")
async def verify_and_unlock(
    payload: VerifyPaymentRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(get_current_student)
):
    return await payment_service.verify_and_unlock(db, student, payload)


@router.post("/mark-failed")
async def mark_failed(
    payload: PaymentFailedRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    student: UserContext = Depends(get_current_student)
):
    return await payment_service.mark_failed(db, student, payload)


@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    client=Depends(get_razorpay_client)
):
    """
    Razorpay webhook handler - NO AUTH (Razorpay signature verification)
    """
    body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature")
    return await payment_service.handle_webhook(db, client, body, signature)
