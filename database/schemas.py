"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts

Required composition fields (question marks/type/difficulty, paper title/subject/grade)
are Optional here on purpose: papers/ validates them and raises ValidationError,
so the same rules apply whether the caller is a router or another service.
"""

import math
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional, Union
from datetime import date, datetime

from database.models import AssessmentStatus
from papers.schemas import ComposedQuestion, StudentAssessmentRecord


# ==========================================
# PAGINATION
# ==========================================

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


# ==========================================
# REFERENCE DATA SCHEMAS
# ==========================================

class GradeResponse(BaseModel):
    id: int
    level: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Subject name")
    description: Optional[str] = None


class SubjectResponse(SubjectCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class TopicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject_id: int = Field(..., gt=0)
    grade_id: int = Field(..., gt=0)


class TopicResponse(TopicCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# STUDENT SCHEMAS
# ==========================================

class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    grade: str = Field(..., min_length=1, max_length=10)
    user_id: Optional[int] = None


class StudentResponse(StudentCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# QUESTION SCHEMAS
# ==========================================

class QuestionFields(BaseModel):
    """Writable question fields shared by create and sub-question payloads"""
    number: Optional[str] = Field(None, max_length=20, description="Display label, e.g. '1' or '2.1'")
    description: Optional[str] = None
    text: Optional[str] = None
    markup: Optional[str] = Field(None, description="LaTeX-like markup, stored and rendered verbatim")
    table_data: Optional[Union[Dict[str, Any], str]] = Field(None, description="{headers: [...], rows: [[...]]}")
    image_url: Optional[str] = None
    difficulty: Optional[str] = None
    marks: Optional[int] = None
    type: Optional[str] = None
    cognitive_level: Optional[str] = None
    memo: Optional[str] = None
    topic_id: Optional[int] = None


class SubQuestionCreate(QuestionFields):
    pass


class QuestionCreate(QuestionFields):
    parent_id: Optional[int] = None
    sub_questions: List[SubQuestionCreate] = Field(default_factory=list)


class QuestionUpdate(QuestionFields):
    """All fields optional; only the ones sent are changed"""
    parent_id: Optional[int] = None


# ==========================================
# QUESTION PAPER SCHEMAS
# ==========================================

class PaperEntryInput(BaseModel):
    """One question reference in an update; order defaults to the 1-based position"""
    id: int
    order: Optional[int] = None


class QuestionPaperCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    subject_id: Optional[int] = None
    grade_id: Optional[int] = None
    assessment_type: Optional[str] = Field(None, max_length=50)
    assessment_date: Optional[date] = None
    instructions: Optional[str] = None
    questions: List[int] = Field(default_factory=list, description="Question ids in display order")


class QuestionPaperUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    subject_id: Optional[int] = None
    grade_id: Optional[int] = None
    assessment_type: Optional[str] = Field(None, max_length=50)
    assessment_date: Optional[date] = None
    instructions: Optional[str] = None
    questions: Optional[List[PaperEntryInput]] = Field(None, description="Replaces every entry when present")
    version: Optional[int] = Field(None, description="Expected current version; stale values are rejected")


class QuestionPaperResponse(BaseModel):
    id: int
    title: str
    subject_id: Optional[int] = None
    grade_id: Optional[int] = None
    assessment_type: Optional[str] = None
    assessment_date: Optional[date] = None
    instructions: Optional[str] = None
    created_by: Optional[int] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# ASSESSMENT SCHEMAS
# ==========================================

class AssessmentCreate(BaseModel):
    question_paper_id: Optional[int] = None
    due_date: Optional[datetime] = None
    student_ids: Optional[List[int]] = None


class AssessmentUpdate(BaseModel):
    due_date: Optional[datetime] = None


class AssessmentResponse(BaseModel):
    id: int
    question_paper_id: int
    assigned_by: Optional[int] = None
    assigned_date: Optional[datetime] = None
    due_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StudentResultUpdate(BaseModel):
    status: AssessmentStatus
    score: Optional[int] = Field(None, ge=0)
    confidence_rating: Optional[int] = None


# ==========================================
# ADDENDUM SCHEMAS
# ==========================================

class AddendumResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    file_type: str
    file_url: str
    thumbnail_url: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# TEMPLATE & ANNEXURE SCHEMAS
# ==========================================

class TemplateFields(BaseModel):
    subtitle: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = None
    subject_id: Optional[int] = None
    grade_id: Optional[int] = None
    topic_id: Optional[int] = None


class TemplateCreate(TemplateFields):
    title: Optional[str] = Field(None, max_length=255)


class TemplateUpdate(TemplateCreate):
    """Partial update: only fields that are sent are changed."""


class TemplateResponse(TemplateFields):
    id: int
    title: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AnnexureResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    subject_id: Optional[int] = None
    file_type: str
    file_url: str
    thumbnail_url: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# PAGED LISTINGS
# ==========================================

class QuestionPage(BaseModel):
    data: List[ComposedQuestion]
    pagination: Pagination


class QuestionPaperPage(BaseModel):
    data: List[QuestionPaperResponse]
    pagination: Pagination


class AssessmentPage(BaseModel):
    data: List[AssessmentResponse]
    pagination: Pagination


class StudentPage(BaseModel):
    data: List[StudentResponse]
    pagination: Pagination


class StudentAssessmentList(BaseModel):
    data: List[StudentAssessmentRecord]


class TemplatePage(BaseModel):
    data: List[TemplateResponse]
    pagination: Pagination


class AnnexurePage(BaseModel):
    data: List[AnnexureResponse]
    pagination: Pagination
