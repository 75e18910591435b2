"""
Assessment API endpoints
Assign papers to students, record results, read statistics
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import require_staff
from auth.permissions import CurrentUser
from database import schemas
from database.database import get_db
from papers import assessments
from papers.schemas import AssessmentResults, StudentAssessmentRecord

router = APIRouter(prefix="/assessments", tags=["assessments"])


@router.post("/", response_model=schemas.AssessmentResponse, status_code=status.HTTP_201_CREATED)
def create_assessment(
    assessment: schemas.AssessmentCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Assign a question paper to students
    Every student gets an `assigned` record carrying the paper's total marks
    """
    return assessments.create_assessment(db, assessment, user)


@router.get("/", response_model=schemas.AssessmentPage)
def list_assessments(
    question_paper_id: Optional[int] = None,
    assigned_by: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    rows, pagination = assessments.list_assessments(
        db, question_paper_id=question_paper_id, assigned_by=assigned_by, page=page, limit=limit,
    )
    return {"data": rows, "pagination": pagination}


@router.get("/{assessment_id}", response_model=schemas.AssessmentResponse)
def get_assessment(
    assessment_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return assessments.get_assessment(db, assessment_id)


@router.put("/{assessment_id}", response_model=schemas.AssessmentResponse)
def update_assessment(
    assessment_id: int,
    assessment_update: schemas.AssessmentUpdate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return assessments.update_assessment(db, assessment_id, assessment_update, user)


@router.delete("/{assessment_id}")
def delete_assessment(
    assessment_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    assessments.delete_assessment(db, assessment_id, user)
    return {"message": "Assessment deleted successfully"}


@router.get("/{assessment_id}/results", response_model=AssessmentResults)
def get_assessment_results(
    assessment_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Per-student records (highest score first) with completion and score statistics"""
    return assessments.get_results(db, assessment_id)


@router.patch("/{assessment_id}/students/{student_id}", response_model=StudentAssessmentRecord)
def record_student_result(
    assessment_id: int,
    student_id: int,
    result: schemas.StudentResultUpdate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Set status / score / confidence for one student"""
    return assessments.record_student_result(db, assessment_id, student_id, result, user)
