"""
Course purchase flow
Razorpay order -> signature check -> payment paid -> course unlocked -> receipt

Both the checkout callback and the webhook finish through complete_payment,
so a payment reported twice is only applied once.
"""

import json
import logging
import uuid
from datetime import datetime

import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from starlette.concurrency import run_in_threadpool

from examprep.catalog.database import get_course
from examprep.core import config
from examprep.core.database import new_id, serialize_mongo
from examprep.core.security import UserContext
from examprep.payments.payment_models import (
    PaymentStatus, VerifiedVia, VerifyPaymentRequest, PaymentFailedRequest
)
from examprep.payments.razorpay_gateway import verify_payment_signature, verify_webhook_signature
from examprep.payments.receipts import generate_receipt
from examprep.students.access import find_enrollment, get_enrollments, unlock_course
from examprep.students.student_models import EnrollmentSource, EnrollmentStatus

logger = logging.getLogger(__name__)

GATEWAY_ERRORS = (BadRequestError, GatewayError, ServerError)


def to_paise(rupees) -> int:
    return int(round(float(rupees) * 100))


async def require_purchasable_course(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    course = await get_course(db, course_id)
    if not course or not course.get("published"):
        raise HTTPException(status_code=404, detail="Course not found")
    if not course.get("price") or course["price"] <= 0:
        raise HTTPException(status_code=400, detail="Course is not available for purchase")
    return course


def new_payment(user_id: str, course: dict, order_id: str) -> dict:
    now = datetime.utcnow()
    return {
        "payment_id": new_id("PAY"),
        "user_id": user_id,
        "course_id": course["course_id"],
        "razorpay_order_id": order_id,
        "razorpay_payment_id": None,
        "razorpay_signature": None,
        "amount": to_paise(course["price"]),
        "currency": config.PAYMENT_CURRENCY,
        "status": PaymentStatus.CREATED.value,
        "failure_reason": None,
        "verified_via": None,
        "receipt_id": None,
        "created_at": now,
        "paid_at": None,
        "updated_at": now,
    }


# ==================== ORDER ====================

async def create_order(db: AsyncIOMotorDatabase, client: razorpay.Client, user: UserContext, course_id: str) -> dict:
    course = await require_purchasable_course(db, course_id)

    student = await db.users.find_one({"user_id": user.user_id})
    enrollment = find_enrollment(student, course_id) if student else None
    if enrollment and enrollment.get("status") == EnrollmentStatus.UNLOCKED.value:
        raise HTTPException(status_code=409, detail="Course already unlocked")

    order_data = {
        "amount": to_paise(course["price"]),
        "currency": config.PAYMENT_CURRENCY,
        "receipt": f"rcpt_{uuid.uuid4().hex[:16]}",
        "notes": {"user_id": user.user_id, "course_id": course_id},
    }

    try:
        # razorpay's client is blocking
        order = await run_in_threadpool(client.order.create, data=order_data)
    except GATEWAY_ERRORS as e:
        logger.error("Razorpay order creation failed for %s: %s", course_id, e)
        raise HTTPException(status_code=502, detail="Payment gateway error")

    payment = new_payment(user.user_id, course, order["id"])
    await db.payments.insert_one(payment)
    logger.info("Order %s created for %s (course %s)", order["id"], user.user_id, course_id)

    return {
        "success": True,
        "order": {
            "id": order["id"],
            "amount": order.get("amount", payment["amount"]),
            "currency": order.get("currency", payment["currency"]),
        },
        "key_id": config.RAZORPAY_KEY_ID,
        "course": {
            "course_id": course["course_id"],
            "name": course.get("name"),
            "price": course.get("price"),
        }
    }


# ==================== COMPLETION ====================

async def complete_payment(
    db: AsyncIOMotorDatabase,
    payment: dict,
    razorpay_payment_id: str,
    signature,
    verified_via: VerifiedVia
) -> dict:
    """
    Mark paid (once), unlock the course and make sure the receipt exists.
    A payment that is already paid keeps its enrollment as it is now.
    """
    now = datetime.utcnow()
    updates = {
        "status": PaymentStatus.PAID.value,
        "razorpay_payment_id": razorpay_payment_id,
        "verified_via": VerifiedVia(verified_via).value,
        "failure_reason": None,
        "paid_at": now,
        "updated_at": now,
    }
    if signature:
        updates["razorpay_signature"] = signature

    paid = await db.payments.find_one_and_update(
        {"payment_id": payment["payment_id"], "status": {"$ne": PaymentStatus.PAID.value}},
        {"$set": updates},
        return_document=ReturnDocument.AFTER
    )
    if not paid:
        return await already_paid(db, payment)

    logger.info("Payment %s paid via %s", payment["payment_id"], updates["verified_via"])
    source = EnrollmentSource.DEV if verified_via == VerifiedVia.DEV else EnrollmentSource.PAYMENT
    enrolled_courses = await unlock_course(db, paid["user_id"], paid["course_id"], source)
    receipt = await generate_receipt(db, paid)

    return {"payment": serialize_mongo(paid), "receipt": receipt, "enrolled_courses": enrolled_courses}


async def already_paid(db: AsyncIOMotorDatabase, payment: dict) -> dict:
    """Receipt and current enrollments of a paid payment, without touching access"""
    paid = await db.payments.find_one({"payment_id": payment["payment_id"]})
    receipt = await generate_receipt(db, paid)
    enrolled_courses = await get_enrollments(db, paid["user_id"])
    return {"payment": serialize_mongo(paid), "receipt": receipt, "enrolled_courses": enrolled_courses}


async def _dev_unlock(db: AsyncIOMotorDatabase, user: UserContext, data: VerifyPaymentRequest) -> dict:
    course = await require_purchasable_course(db, data.course_id)

    payment = await db.payments.find_one({"razorpay_order_id": data.razorpay_order_id, "user_id": user.user_id})
    if not payment:
        payment = new_payment(user.user_id, course, data.razorpay_order_id)
        await db.payments.insert_one(payment)
    elif payment["course_id"] != data.course_id:
        raise HTTPException(status_code=400, detail="Course does not match this order")

    logger.warning("Development payment bypass used by %s for %s", user.user_id, data.course_id)
    result = await complete_payment(db, payment, data.razorpay_payment_id, data.razorpay_signature, VerifiedVia.DEV)
    return {
        "success": True,
        "message": "Course unlocked (development mode)",
        "receipt": result["receipt"],
        "enrolled_courses": result["enrolled_courses"],
    }


async def verify_and_unlock(db: AsyncIOMotorDatabase, user: UserContext, data: VerifyPaymentRequest) -> dict:
    if config.is_development() and data.razorpay_signature == config.DEV_PAYMENT_SIGNATURE:
        return await _dev_unlock(db, user, data)

    payment = await db.payments.find_one({"razorpay_order_id": data.razorpay_order_id, "user_id": user.user_id})
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")

    if payment["course_id"] != data.course_id:
        raise HTTPException(status_code=400, detail="Course does not match this order")

    if payment["status"] == PaymentStatus.PAID.value:
        result = await already_paid(db, payment)
        return {
            "success": True,
            "message": "Payment already verified",
            "already_verified": True,
            "receipt": result["receipt"],
            "enrolled_courses": result["enrolled_courses"],
        }

    if not verify_payment_signature(data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature):
        await db.payments.update_one(
            {"payment_id": payment["payment_id"]},
            {"$set": {
                "status": PaymentStatus.FAILED.value,
                "razorpay_payment_id": data.razorpay_payment_id,
                "failure_reason": "Signature verification failed",
                "updated_at": datetime.utcnow()
            }}
        )
        logger.warning("Signature mismatch for order %s (user %s)", data.razorpay_order_id, user.user_id)
        raise HTTPException(status_code=400, detail="Payment verification failed")

    result = await complete_payment(
        db, payment, data.razorpay_payment_id, data.razorpay_signature, VerifiedVia.CHECKOUT
    )
    return {
        "success": True,
        "message": "Payment verified and course unlocked",
        "receipt": result["receipt"],
        "enrolled_courses": result["enrolled_courses"],
    }


async def mark_failed(db: AsyncIOMotorDatabase, user: UserContext, data: PaymentFailedRequest) -> dict:
    payment = await db.payments.find_one({"razorpay_order_id": data.razorpay_order_id, "user_id": user.user_id})
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    if payment["status"] == PaymentStatus.PAID.value:
        raise HTTPException(status_code=409, detail="Payment already completed")

    await db.payments.update_one(
        {"payment_id": payment["payment_id"]},
        {"$set": {
            "status": PaymentStatus.FAILED.value,
            "failure_reason": data.reason or "Payment failed",
            "updated_at": datetime.utcnow()
        }}
    )
    logger.info("Payment %s marked failed: %s", payment["payment_id"], data.reason)
    return {"success": True, "message": "Payment marked as failed"}


# ==================== WEBHOOK ====================

def _webhook_entity(webhook_data: dict) -> dict:
    """payload.payment.entity, or {} when any level is missing or not an object"""
    node = webhook_data
    for key in ("payload", "payment", "entity"):
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


async def handle_webhook(db: AsyncIOMotorDatabase, client: razorpay.Client, body: bytes, signature: str) -> dict:
    if not signature:
        raise HTTPException(status_code=400, detail="Missing webhook signature")
    if not verify_webhook_signature(client, body, signature):
        raise HTTPException(status_code=400, detail="Invalid webhook signature")

    try:
        webhook_data = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")
    if not isinstance(webhook_data, dict):
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    event = webhook_data.get("event")
    entity = _webhook_entity(webhook_data)
    order_id = entity.get("order_id")

    payment = await db.payments.find_one({"razorpay_order_id": order_id}) if order_id else None
    if not payment:
        logger.warning("Webhook %s for unknown order %s ignored", event, order_id)
        return {"status": "ok"}

    if event == "payment.captured":
        if entity.get("amount") != payment["amount"]:
            logger.error(
                "Webhook amount mismatch for %s: got %s, expected %s",
                order_id, entity.get("amount"), payment["amount"]
            )
            return {"status": "error", "message": "Amount mismatch"}
        if entity.get("currency") != payment["currency"]:
            logger.error(
                "Webhook currency mismatch for %s: got %s, expected %s",
                order_id, entity.get("currency"), payment["currency"]
            )
            return {"status": "error", "message": "Currency mismatch"}
        await complete_payment(db, payment, entity.get("id"), None, VerifiedVia.WEBHOOK)

    elif event == "payment.failed":
        await db.payments.update_one(
            {"payment_id": payment["payment_id"], "status": {"$ne": PaymentStatus.PAID.value}},
            {"$set": {
                "status": PaymentStatus.FAILED.value,
                "razorpay_payment_id": entity.get("id"),
                "failure_reason": entity.get("error_description") or "Payment failed",
                "updated_at": datetime.utcnow()
            }}
        )
        logger.info("Webhook: payment failed for order %s", order_id)

    else:
        logger.debug("Webhook event %s ignored", event)

    return {"status": "ok"}
