from typing import Optional
from pydantic import BaseModel
from enum import Enum

# ==================== ENUMS ====================

class PaymentStatus(str, Enum):
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"

class VerifiedVia(str, Enum):
    CHECKOUT = "checkout"
    WEBHOOK = "webhook"
    DEV = "dev"

class ReceiptFormat(str, Enum):
    JSON = "json"
    HTML = "html"
    TEXT = "text"

# ==================== REQUEST MODELS ====================

class CreateOrderRequest(BaseModel):
    course_id: str

class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    course_id: str

class PaymentFailedRequest(BaseModel):
    razorpay_order_id: str
    reason: Optional[str] = None
