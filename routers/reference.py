"""
Reference data endpoints: grades, subjects, topics
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from auth.dependencies import require_staff
from auth.permissions import CurrentUser
from database import schemas, crud
from database.database import get_db
from papers.errors import ConflictError, ReferentialError

router = APIRouter(tags=["reference"])


@router.get("/grades", response_model=List[schemas.GradeResponse])
def list_grades(user: CurrentUser = Depends(require_staff), db: Session = Depends(get_db)):
    return crud.get_grades(db)


@router.get("/subjects", response_model=List[schemas.SubjectResponse])
def list_subjects(user: CurrentUser = Depends(require_staff), db: Session = Depends(get_db)):
    return crud.get_subjects(db)


@router.post("/subjects", response_model=schemas.SubjectResponse, status_code=status.HTTP_201_CREATED)
def create_subject(
    subject: schemas.SubjectCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Create a new subject
    Subject names must be unique
    """
    if crud.get_subject_by_name(db, subject.name):
        raise ConflictError(f"Subject with name '{subject.name}' already exists")
    return crud.create_subject(db, subject)


@router.get("/topics", response_model=List[schemas.TopicResponse])
def list_topics(
    subject_id: Optional[int] = None,
    grade_id: Optional[int] = None,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return crud.get_topics(db, subject_id=subject_id, grade_id=grade_id)


@router.post("/topics", response_model=schemas.TopicResponse, status_code=status.HTTP_201_CREATED)
def create_topic(
    topic: schemas.TopicCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if not crud.get_subject(db, topic.subject_id):
        raise ReferentialError("subject", [topic.subject_id])
    if not crud.get_grade(db, topic.grade_id):
        raise ReferentialError("grade", [topic.grade_id])
    return crud.create_topic(db, topic)
