from pydantic import BaseModel, Field, validator
from typing import Optional
from enum import Enum

# ==================== ENUMS ====================

class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

class OptionKey(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


def strip_required(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value

# ==================== COURSE MODELS ====================

class CourseCreate(BaseModel):
    name: str
    description: str = ""
    price: float = Field(0, ge=0)  # rupees
    thumbnail_url: Optional[str] = None
    published: bool = False

    @validator("name")
    def validate_name(cls, v):
        return strip_required(v)

class CourseUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    thumbnail_url: Optional[str] = None

    @validator("name")
    def validate_name(cls, v):
        return strip_required(v)

class CoursePublish(BaseModel):
    published: bool = True

# ==================== HIERARCHY MODELS ====================

class SubjectCreate(BaseModel):
    course_id: str
    name: str
    description: str = ""
    order: Optional[int] = Field(None, ge=1)

    @validator("name")
    def validate_name(cls, v):
        return strip_required(v)

class ChapterCreate(BaseModel):
    subject_id: str
    name: str
    description: str = ""
    order: Optional[int] = Field(None, ge=1)

    @validator("name")
    def validate_name(cls, v):
        return strip_required(v)

class TopicCreate(BaseModel):
    chapter_id: str
    name: str
    description: str = ""
    order: Optional[int] = Field(None, ge=1)

    @validator("name")
    def validate_name(cls, v):
        return strip_required(v)

class NodeUpdate(BaseModel):
    """Shared update body for subjects, chapters and topics"""
    name: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = Field(None, ge=1)

    @validator("name")
    def validate_name(cls, v):
        return strip_required(v)

class ExamTestCreate(BaseModel):
    topic_id: str
    title: str
    description: str = ""
    duration_minutes: int = Field(60, ge=1)
    total_marks: float = Field(0, ge=0)
    order: Optional[int] = Field(None, ge=1)
    is_active: bool = True

    @validator("title")
    def validate_title(cls, v):
        return strip_required(v)

class ExamTestUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    total_marks: Optional[float] = Field(None, ge=0)
    order: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    @validator("title")
    def validate_title(cls, v):
        return strip_required(v)

# ==================== QUESTION MODELS ====================

class QuestionOptions(BaseModel):
    A: str
    B: str
    C: str
    D: str

    @validator("A", "B", "C", "D")
    def validate_option(cls, v):
        return strip_required(v)

class QuestionCreate(BaseModel):
    class Config:
        use_enum_values = True

    test_id: str
    question_text: str
    options: QuestionOptions
    correct_option: OptionKey
    explanation: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM.value
    marks: float = Field(2, ge=0)
    negative_marks: float = Field(0.66, ge=0)
    is_active: bool = True

    @validator("question_text")
    def validate_text(cls, v):
        return strip_required(v)

    @validator("explanation")
    def strip_explanation(cls, v):
        return v.strip()

class QuestionUpdate(BaseModel):
    class Config:
        use_enum_values = True

    question_text: Optional[str] = None
    options: Optional[QuestionOptions] = None
    correct_option: Optional[OptionKey] = None
    explanation: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    marks: Optional[float] = Field(None, ge=0)
    negative_marks: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @validator("question_text")
    def validate_text(cls, v):
        return strip_required(v)
