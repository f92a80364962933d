"""
Payment receipts
One receipt per paid payment, rendered on demand as JSON, HTML or text
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse
from jinja2 import Environment
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from examprep.core import config
from examprep.core.database import new_id, serialize_mongo
from examprep.payments.payment_models import ReceiptFormat

logger = logging.getLogger(__name__)

RECEIPT_GENERATED = "generated"
RECEIPT_DOWNLOADED = "downloaded"
RECEIPT_NUMBER_ATTEMPTS = 5

_templates = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

RECEIPT_HTML = _templates.from_string("""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Receipt {{ receipt_number }}</title>
  <style>
    body { font-family: Arial, sans-serif; color: #222; max-width: 720px; margin: 40px auto; }
    h1 { color: #3399cc; margin-bottom: 0; }
    table { width: 100%; border-collapse: collapse; margin-top: 24px; }
    td { padding: 8px; border-bottom: 1px solid #eee; }
    td.label { color: #666; width: 40%; }
    .total { font-size: 1.2em; font-weight: bold; }
  </style>
</head>
<body>
  <h1>{{ organization }}</h1>
  <p>Payment Receipt</p>
  <table>
    <tr><td class="label">Receipt Number</td><td>{{ receipt_number }}</td></tr>
    <tr><td class="label">Date</td><td>{{ date }}</td></tr>
    <tr><td class="label">Student</td><td>{{ student.name }}</td></tr>
    <tr><td class="label">Email</td><td>{{ student.email }}</td></tr>
    {% if student.phone %}
    <tr><td class="label">Phone</td><td>{{ student.phone }}</td></tr>
    {% endif %}
    <tr><td class="label">Course</td><td>{{ course.name }}</td></tr>
    <tr><td class="label">Order ID</td><td>{{ razorpay_order_id }}</td></tr>
    <tr><td class="label">Payment ID</td><td>{{ razorpay_payment_id }}</td></tr>
    <tr class="total"><td class="label">Amount Paid</td><td>{{ currency }} {{ "%.2f"|format(amount) }}</td></tr>
  </table>
  <p>This is a computer generated receipt and does not require a signature.</p>
</body>
</html>
""")


def generate_receipt_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    return f"{config.RECEIPT_PREFIX}-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


async def generate_receipt(db: AsyncIOMotorDatabase, payment: dict) -> dict:
    """Create the receipt for a paid payment (idempotent per payment)"""
    existing = await db.receipts.find_one({"payment_id": payment["payment_id"]})
    if existing:
        return serialize_mongo(existing)

    user = await db.users.find_one({"user_id": payment["user_id"]}) or {}
    course = await db.courses.find_one({"course_id": payment["course_id"]}) or {}
    now = datetime.utcnow()

    receipt = {
        "receipt_id": new_id("RCPT"),
        "receipt_number": generate_receipt_number(now),
        "payment_id": payment["payment_id"],
        "user_id": payment["user_id"],
        "course_id": payment["course_id"],
        "amount": payment["amount"] / 100,
        "currency": payment.get("currency", config.PAYMENT_CURRENCY),
        "razorpay_order_id": payment.get("razorpay_order_id"),
        "razorpay_payment_id": payment.get("razorpay_payment_id"),
        "student": {
            "name": user.get("name"),
            "email": user.get("email"),
            "phone": user.get("phone_number"),
        },
        "course": {
            "name": course.get("name"),
            "description": course.get("description"),
            "price": course.get("price"),
        },
        "status": RECEIPT_GENERATED,
        "download_count": 0,
        "last_downloaded_at": None,
        "created_at": now,
    }

    for _ in range(RECEIPT_NUMBER_ATTEMPTS):
        try:
            await db.receipts.insert_one(receipt)
            break
        except DuplicateKeyError:
            # Concurrent verify + webhook for the same payment
            existing = await db.receipts.find_one({"payment_id": payment["payment_id"]})
            if existing:
                return serialize_mongo(existing)
            logger.warning("Receipt number %s already taken, retrying", receipt["receipt_number"])
            receipt.pop("_id", None)
            receipt["receipt_number"] = generate_receipt_number(now)
    else:
        raise HTTPException(status_code=500, detail="Could not allocate a receipt number")

    await db.payments.update_one(
        {"payment_id": payment["payment_id"]},
        {"$set": {"receipt_id": receipt["receipt_id"]}}
    )
    logger.info("Receipt %s generated for payment %s", receipt["receipt_number"], payment["payment_id"])
    return serialize_mongo(receipt)


async def mark_downloaded(db: AsyncIOMotorDatabase, receipt_id: str) -> dict:
    receipt = await db.receipts.find_one_and_update(
        {"receipt_id": receipt_id},
        {
            "$set": {"status": RECEIPT_DOWNLOADED, "last_downloaded_at": datetime.utcnow()},
            "$inc": {"download_count": 1}
        },
        return_document=ReturnDocument.AFTER
    )
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt


def get_receipt_data(receipt: dict) -> dict:
    created_at = receipt.get("created_at")
    return {
        "receipt_id": receipt["receipt_id"],
        "receipt_number": receipt["receipt_number"],
        "organization": config.ORGANIZATION_NAME,
        "date": created_at.strftime("%d %b %Y, %H:%M UTC") if isinstance(created_at, datetime) else created_at,
        "amount": receipt["amount"],
        "currency": receipt.get("currency", config.PAYMENT_CURRENCY),
        "razorpay_order_id": receipt.get("razorpay_order_id"),
        "razorpay_payment_id": receipt.get("razorpay_payment_id"),
        "student": receipt.get("student", {}),
        "course": receipt.get("course", {}),
        "status": receipt.get("status"),
        "download_count": receipt.get("download_count", 0),
    }


def render_receipt_html(data: dict) -> str:
    return RECEIPT_HTML.render(**data)


def render_receipt_text(data: dict) -> str:
    student = data.get("student", {})
    course = data.get("course", {})
    rule = "=" * 48
    lines = [
        rule,
        data["organization"].center(48),
        "PAYMENT RECEIPT".center(48),
        rule,
        f"Receipt Number : {data['receipt_number']}",
        f"Date           : {data['date']}",
        "",
        f"Student        : {student.get('name') or '-'}",
        f"Email          : {student.get('email') or '-'}",
        f"Phone          : {student.get('phone') or '-'}",
        "",
        f"Course         : {course.get('name') or '-'}",
        f"Order ID       : {data.get('razorpay_order_id') or '-'}",
        f"Payment ID     : {data.get('razorpay_payment_id') or '-'}",
        "-" * 48,
        f"Amount Paid    : {data['currency']} {data['amount']:.2f}",
        rule,
        "This is a computer generated receipt.",
    ]
    return "\n".join(lines) + "\n"


async def build_receipt_response(db: AsyncIOMotorDatabase, receipt: dict, format: str, links_base: str):
    """
    Render a stored receipt in the requested format and count the download.
    links_base is the download URL without query string.
    """
    try:
        fmt = ReceiptFormat(format)
    except ValueError:
        raise HTTPException(status_code=400, detail="Format must be one of: json, html, text")

    receipt = await mark_downloaded(db, receipt["receipt_id"])
    data = get_receipt_data(receipt)
    number = data["receipt_number"]

    if fmt == ReceiptFormat.HTML:
        return HTMLResponse(
            render_receipt_html(data),
            headers={"Content-Disposition": f'inline; filename="receipt-{number}.html"'}
        )

    if fmt == ReceiptFormat.TEXT:
        return PlainTextResponse(
            render_receipt_text(data),
            headers={"Content-Disposition": f'attachment; filename="receipt-{number}.txt"'}
        )

    student = data["student"]
    return {
        "success": True,
        "receipt": data,
        "student": {
            "name": student.get("name"),
            "email": student.get("email"),
            "phone": student.get("phone"),
        },
        "formats": {
            "html": f"{links_base}?format=html",
            "text": f"{links_base}?format=text",
        }
    }
