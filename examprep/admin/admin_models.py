from typing import Optional
from pydantic import BaseModel, EmailStr, Field, validator

from examprep.students.student_models import EnrollmentStatus

# ==================== REQUEST MODELS ====================

class AdminCreate(BaseModel):
    name: Optional[str] = None
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone_number: Optional[str] = None

class SubadminCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone_number: Optional[str] = None

class AdminLogin(BaseModel):
    email: EmailStr
    password: str

class ChangePasswordRequest(BaseModel):
    """Checked by hand so a missing field answers 400 like a mismatch"""
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None

class CourseStatusUpdate(BaseModel):
    status: str

    @validator("status")
    def normalize_status(cls, v):
        return (v or "").strip().lower()

    def is_valid(self) -> bool:
        return self.status in {s.value for s in EnrollmentStatus}
