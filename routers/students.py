"""
Student endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import require_staff
from auth.permissions import CurrentUser
from database import schemas, crud
from database.database import get_db
from papers.errors import NotFoundError

router = APIRouter(prefix="/students", tags=["students"])


@router.get("/", response_model=schemas.StudentPage)
def list_students(
    grade: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    rows, total = crud.get_students(db, grade=grade, skip=(page - 1) * limit, limit=limit)
    return {"data": rows, "pagination": schemas.build_pagination(page, limit, total)}


@router.post("/", response_model=schemas.StudentResponse, status_code=status.HTTP_201_CREATED)
def create_student(
    student: schemas.StudentCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return crud.create_student(db, student)


@router.get("/{student_id}", response_model=schemas.StudentResponse)
def get_student(
    student_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    student = crud.get_student(db, student_id)
    if not student:
        raise NotFoundError("Student", student_id)
    return student


@router.get("/{student_id}/assessments", response_model=schemas.StudentAssessmentList)
def get_student_assessments(
    student_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Every assessment record for one student, newest first"""
    if not crud.get_student(db, student_id):
        raise NotFoundError("Student", student_id)
    return {"data": crud.get_assessments_for_student(db, student_id)}
