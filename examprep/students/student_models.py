from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from enum import Enum

# ==================== ENUMS ====================

class EnrollmentStatus(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"

class EnrollmentSource(str, Enum):
    PAYMENT = "payment"
    ADMIN = "admin"
    DEV = "dev"

# ==================== DATABASE MODELS ====================

class Enrollment(BaseModel):
    """
    Entry of users.enrolled_courses
    One per course; status is the only access flag
    """
    class Config:
        use_enum_values = True

    course_id: str
    status: EnrollmentStatus = EnrollmentStatus.LOCKED.value
    source: EnrollmentSource = EnrollmentSource.ADMIN.value
    enrolled_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

# ==================== REQUEST MODELS ====================

class StudentRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone_number: Optional[str] = None
    selected_category: Optional[str] = None
    selected_exam: Optional[str] = None
    city: Optional[str] = None

class StudentLogin(BaseModel):
    email: EmailStr
    password: str

class StudentUpdate(BaseModel):
    """Fields an admin may edit on a student record"""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    selected_category: Optional[str] = None
    selected_exam: Optional[str] = None
    city: Optional[str] = None
