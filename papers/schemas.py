"""
Pydantic schemas for the composition pipeline.

Question rows  → ComposedQuestion (content normalized, sub-questions attached)
Paper entries  → ResolvedPaper (ordered ResolvedQuestion list + total marks)
StudentAssessment rows → AssessmentStatistics
"""

from typing import List, Optional
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field


# ─── Content ───────────────────────────────────────────────────────────────────

class TableData(BaseModel):
    """Row-major table: one header row plus data rows. Numeric cells are read as strings."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    headers: List[str] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)

    def is_empty(self) -> bool:
        """No header cells and no data cells; rows that are themselves empty don't count."""
        return not self.headers and not any(self.rows)


class ContentPayload(BaseModel):
    """Question content; any subset of the slots may be filled."""
    text: Optional[str] = None
    markup: Optional[str] = None
    table_data: Optional[TableData] = None
    image_url: Optional[str] = None


class ContentTypeFlags(BaseModel):
    has_text: bool = False
    has_markup: bool = False
    has_table: bool = False
    has_image: bool = False


# ─── Questions ─────────────────────────────────────────────────────────────────

class ComposedQuestion(BaseModel):
    """A question with normalized content and its ordered sub-questions (always a list)."""
    id: int
    number: Optional[str] = None
    description: Optional[str] = None
    difficulty: Optional[str] = None
    marks: Optional[int] = None
    type: Optional[str] = None
    cognitive_level: Optional[str] = None
    memo: Optional[str] = None
    topic_id: Optional[int] = None
    parent_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    content: ContentPayload = Field(default_factory=ContentPayload)
    content_types: ContentTypeFlags = Field(default_factory=ContentTypeFlags)
    table_html: Optional[str] = None
    sub_questions: List["ComposedQuestion"] = Field(default_factory=list)


class ResolvedQuestion(ComposedQuestion):
    """A paper entry joined to its question."""
    order: int


class ResolvedPaper(BaseModel):
    """Fully joined, ordered question paper."""
    id: int
    title: str
    subject_id: Optional[int] = None
    subject_name: Optional[str] = None
    grade_id: Optional[int] = None
    grade_label: Optional[str] = None
    assessment_type: Optional[str] = None
    assessment_date: Optional[date] = None
    instructions: Optional[str] = None
    created_by: Optional[int] = None
    version: int = 1
    questions: List[ResolvedQuestion] = Field(default_factory=list)
    total_marks: int = 0


# ─── Assessments ───────────────────────────────────────────────────────────────

class StudentAssessmentRecord(BaseModel):
    id: Optional[int] = None
    student_id: Optional[int] = None
    assessment_id: Optional[int] = None
    status: str = "assigned"
    score: Optional[int] = None
    total_marks: Optional[int] = None
    confidence_rating: Optional[int] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AssessmentStatistics(BaseModel):
    total_students: int = 0
    completed_count: int = 0
    scored_count: int = 0
    completion_rate_percent: float = 0
    average_score: float = 0
    highest_score: int = 0
    lowest_score: int = 0


class AssessmentResults(BaseModel):
    results: List[StudentAssessmentRecord]
    statistics: AssessmentStatistics
