"""
Platform Configuration
Environment-driven settings shared by every router
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Environment
APP_ENV = os.getenv("APP_ENV", "production").lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "examprep_db")

# JWT
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-key-change")
JWT_ALGORITHM = "HS256"
STUDENT_TOKEN_EXPIRE_HOURS = int(os.getenv("STUDENT_TOKEN_EXPIRE_HOURS", "24"))
ADMIN_TOKEN_EXPIRE_HOURS = int(os.getenv("ADMIN_TOKEN_EXPIRE_HOURS", "24"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Razorpay
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")
RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET", "")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")
DEV_PAYMENT_SIGNATURE = "dev_signature"

# Receipts
RECEIPT_PREFIX = os.getenv("RECEIPT_PREFIX", "EXP")
ORGANIZATION_NAME = os.getenv("ORGANIZATION_NAME", "ExamPrep Academy")

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")

# Dev-mode demo account
DEMO_USER_EMAIL = "demo@test.com"


def is_development() -> bool:
    return APP_ENV == "development"
