"""
Assessments

Assign a question paper to students, record per-student results and
report results with summary statistics.
"""

import logging
from datetime import datetime, timezone
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.permissions import CurrentUser, ensure_owner_or_admin
from database import crud, models, schemas
from database.models import AssessmentStatus
from papers.composer import resolve_paper
from papers.errors import NotFoundError, ReferentialError, StoreError, ValidationError
from papers.schemas import AssessmentResults, StudentAssessmentRecord
from papers.statistics import compute_statistics, sort_results

log = logging.getLogger(__name__)

UNSCORED_STATUSES = {AssessmentStatus.ASSIGNED.value, AssessmentStatus.IN_PROGRESS.value}


def create_assessment(db: Session, data: schemas.AssessmentCreate, user: CurrentUser) -> models.Assessment:
    """
    Create the assessment and one `assigned` record per student in one transaction.
    Every record carries the paper's total marks at assignment time.
    """
    if not data.question_paper_id or not data.student_ids:
        raise ValidationError("Question paper ID and student IDs are required")

    paper = crud.get_paper(db, data.question_paper_id)
    if not paper:
        raise ReferentialError("question paper", [data.question_paper_id])

    student_ids = list(dict.fromkeys(data.student_ids))
    existing = crud.get_existing_student_ids(db, student_ids)
    missing = [sid for sid in student_ids if sid not in existing]
    if missing:
        raise ReferentialError("student", missing)

    paper_total = resolve_paper(db, paper.id).total_marks

    try:
        assessment = models.Assessment(
            question_paper_id=paper.id,
            assigned_by=user.user_id,
            due_date=data.due_date,
        )
        db.add(assessment)
        db.flush()
        db.add_all([
            models.StudentAssessment(
                student_id=student_id,
                assessment_id=assessment.id,
                status=AssessmentStatus.ASSIGNED.value,
                total_marks=paper_total,
            )
            for student_id in student_ids
        ])
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Assessments: create failed, rolled back: %s", e)
        raise StoreError("create assessment", e) from e

    db.refresh(assessment)
    log.info("Assessments: paper id=%s assigned to %s student(s) as assessment id=%s",
             paper.id, len(student_ids), assessment.id)
    return assessment


def get_assessment(db: Session, assessment_id: int) -> models.Assessment:
    assessment = crud.get_assessment(db, assessment_id)
    if not assessment:
        raise NotFoundError("Assessment", assessment_id)
    return assessment


def list_assessments(
    db: Session,
    question_paper_id=None,
    assigned_by=None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.Assessment], schemas.Pagination]:
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    try:
        rows, total = crud.query_assessments(
            db, question_paper_id=question_paper_id, assigned_by=assigned_by,
            skip=(page - 1) * limit, limit=limit,
        )
    except SQLAlchemyError as e:
        log.error("Assessments: list failed: %s", e)
        raise StoreError("fetch assessments", e) from e
    return rows, schemas.build_pagination(page, limit, total)


def update_assessment(
    db: Session,
    assessment_id: int,
    data: schemas.AssessmentUpdate,
    user: CurrentUser,
) -> models.Assessment:
    assessment = get_assessment(db, assessment_id)
    ensure_owner_or_admin(assessment.assigned_by, user)

    try:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(assessment, field, value)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Assessments: update id=%s failed: %s", assessment_id, e)
        raise StoreError("update assessment", e) from e
    db.refresh(assessment)
    return assessment


def delete_assessment(db: Session, assessment_id: int, user: CurrentUser) -> None:
    assessment = get_assessment(db, assessment_id)
    ensure_owner_or_admin(assessment.assigned_by, user)

    try:
        db.delete(assessment)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Assessments: delete id=%s failed: %s", assessment_id, e)
        raise StoreError("delete assessment", e) from e


def record_student_result(
    db: Session,
    assessment_id: int,
    student_id: int,
    data: schemas.StudentResultUpdate,
    user: CurrentUser,
) -> models.StudentAssessment:
    """
    Set one student's status / score / confidence.
    A score is only accepted once the record is completed or marked.
    """
    assessment = get_assessment(db, assessment_id)
    ensure_owner_or_admin(assessment.assigned_by, user)

    record = crud.get_student_assessment(db, assessment_id, student_id)
    if not record:
        raise NotFoundError("Student assessment", student_id)

    status = data.status.value
    if status in UNSCORED_STATUSES and data.score is not None:
        raise ValidationError(f"A score cannot be recorded while the status is '{status}'")
    if data.score is not None and record.total_marks is not None and data.score > record.total_marks:
        raise ValidationError(f"Score {data.score} exceeds the paper total of {record.total_marks}")

    try:
        record.status = status
        fields = data.model_dump(exclude_unset=True, exclude={"status"})
        for field, value in fields.items():
            setattr(record, field, value)
        if status in UNSCORED_STATUSES:
            record.score = None
        elif record.completed_at is None:
            record.completed_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Assessments: result for student id=%s failed: %s", student_id, e)
        raise StoreError("record result", e) from e

    db.refresh(record)
    return record


def get_results(db: Session, assessment_id: int) -> AssessmentResults:
    """Records sorted by score (unscored last) with summary statistics."""
    get_assessment(db, assessment_id)
    try:
        rows = crud.get_student_assessments(db, assessment_id)
    except SQLAlchemyError as e:
        log.error("Assessments: results for id=%s failed: %s", assessment_id, e)
        raise StoreError("fetch assessment results", e) from e

    records = [StudentAssessmentRecord.model_validate(row) for row in rows]
    return AssessmentResults(results=sort_results(records), statistics=compute_statistics(records))
