"""
Paper Composition

Builds question papers from question references and resolves stored papers
back into an ordered, totalled structure.

Dangling references are handled per operation (see DANGLING_REFERENCE_POLICY):
authoring calls reject unknown ids outright, while resolving an already stored
paper drops entries whose question has since disappeared.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.permissions import CurrentUser, ensure_owner_or_admin
from database import crud, models, schemas
from papers.content_normalizer import normalize_question
from papers.errors import (
    ConflictError, NotFoundError, PaperServiceError, ReferentialError, StoreError, ValidationError,
)
from papers.hierarchy import assemble_hierarchy
from papers.schemas import ResolvedPaper, ResolvedQuestion

log = logging.getLogger(__name__)

FAIL = "fail"
OMIT = "omit"

DANGLING_REFERENCE_POLICY: Dict[str, str] = {
    "create_question_paper": FAIL,
    "update_question_paper": FAIL,
    "create_question": FAIL,
    "create_assessment": FAIL,
    "resolve_paper": OMIT,
    "assemble_sub_questions": OMIT,
}


# ─── Validation ────────────────────────────────────────────────────────────────

def validate_paper_header(title: Optional[str], subject_id: Optional[int], grade_id: Optional[int]) -> None:
    if not title or not title.strip() or not subject_id or not grade_id:
        raise ValidationError("Title, subject, and grade are required")


def build_entries(question_ids: Sequence[int]) -> List[Tuple[int, int]]:
    """Creation order: 1-based position in the input list."""
    return [(question_id, position) for position, question_id in enumerate(question_ids, start=1)]


def build_entries_from_inputs(entries: Sequence[schemas.PaperEntryInput]) -> List[Tuple[int, int]]:
    """Update order: explicit order when given, otherwise the 1-based position."""
    result = []
    for position, entry in enumerate(entries, start=1):
        order = entry.order if entry.order is not None else position
        if isinstance(order, bool) or not isinstance(order, int) or order < 1:
            raise ValidationError(f"Invalid order {entry.order!r} for question {entry.id}: must be a positive integer")
        result.append((entry.id, order))
    return result


def _check_question_references(db: Session, pairs: Sequence[Tuple[int, int]], paper_label: str) -> None:
    question_ids = [question_id for question_id, _ in pairs]
    found = crud.get_questions_by_ids(db, question_ids)
    missing = [qid for qid in question_ids if qid not in found]
    if missing:
        raise ReferentialError("question", missing)

    duplicates = [qid for qid, count in Counter(question_ids).items() if count > 1]
    if duplicates:
        log.warning("Compose: paper %s lists question(s) %s more than once", paper_label, duplicates)


def _check_header_references(db: Session, subject_id: Optional[int], grade_id: Optional[int]) -> None:
    if subject_id and not crud.get_subject(db, subject_id):
        raise ReferentialError("subject", [subject_id])
    if grade_id and not crud.get_grade(db, grade_id):
        raise ReferentialError("grade", [grade_id])


# ─── Create / update / delete ──────────────────────────────────────────────────

def create_question_paper(
    db: Session,
    data: schemas.QuestionPaperCreate,
    user: CurrentUser,
) -> models.QuestionPaper:
    """Persist the paper header and its entries as one unit of work."""
    validate_paper_header(data.title, data.subject_id, data.grade_id)
    pairs = build_entries(data.questions)
    _check_header_references(db, data.subject_id, data.grade_id)
    _check_question_references(db, pairs, paper_label=repr(data.title))

    try:
        paper = models.QuestionPaper(
            title=data.title.strip(),
            subject_id=data.subject_id,
            grade_id=data.grade_id,
            assessment_type=data.assessment_type,
            assessment_date=data.assessment_date,
            instructions=data.instructions,
            created_by=user.user_id,
            version=1,
        )
        db.add(paper)
        db.flush()
        db.add_all([
            models.PaperEntry(question_paper_id=paper.id, question_id=question_id, order=order)
            for question_id, order in pairs
        ])
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Compose: create paper failed: %s", e)
        raise StoreError("create question paper", e) from e

    db.refresh(paper)
    log.info("Compose: created paper id=%s with %s entries", paper.id, len(pairs))
    return paper


def update_question_paper(
    db: Session,
    paper_id: int,
    data: schemas.QuestionPaperUpdate,
    user: CurrentUser,
) -> models.QuestionPaper:
    """
    Update header fields and, when `questions` is sent, replace every entry.

    The paper row is locked for the whole unit of work and `version` is checked
    against the caller's copy, so concurrent replaces cannot interleave.
    """
    try:
        paper = crud.get_paper(db, paper_id, for_update=True)
        if not paper:
            raise NotFoundError("Question paper", paper_id)
        ensure_owner_or_admin(paper.created_by, user)

        if data.version is not None and data.version != paper.version:
            raise ConflictError(
                f"Question paper {paper_id} was modified (version {paper.version}, expected {data.version})"
            )

        updates = data.model_dump(exclude_unset=True, exclude={"questions", "version"})
        validate_paper_header(
            updates.get("title", paper.title),
            updates.get("subject_id", paper.subject_id),
            updates.get("grade_id", paper.grade_id),
        )
        _check_header_references(db, updates.get("subject_id"), updates.get("grade_id"))

        pairs = None
        if data.questions is not None:
            pairs = build_entries_from_inputs(data.questions)
            _check_question_references(db, pairs, paper_label=str(paper_id))
    except PaperServiceError:
        db.rollback()
        raise

    try:
        for field, value in updates.items():
            if field == "title":
                value = value.strip()
            setattr(paper, field, value)

        if pairs is not None:
            db.query(models.PaperEntry).filter(
                models.PaperEntry.question_paper_id == paper.id
            ).delete(synchronize_session="fetch")
            db.add_all([
                models.PaperEntry(question_paper_id=paper.id, question_id=question_id, order=order)
                for question_id, order in pairs
            ])

        paper.version = paper.version + 1
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Compose: update paper id=%s failed, rolled back: %s", paper_id, e)
        raise StoreError("update question paper", e) from e

    db.refresh(paper)
    log.info("Compose: updated paper id=%s version=%s entries_replaced=%s",
             paper.id, paper.version, pairs is not None)
    return paper


def delete_question_paper(db: Session, paper_id: int, user: CurrentUser) -> None:
    """Delete a paper; entries and assessments cascade in the store."""
    paper = crud.get_paper(db, paper_id)
    if not paper:
        raise NotFoundError("Question paper", paper_id)
    ensure_owner_or_admin(paper.created_by, user)

    try:
        db.delete(paper)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Compose: delete paper id=%s failed: %s", paper_id, e)
        raise StoreError("delete question paper", e) from e


# ─── Resolution ────────────────────────────────────────────────────────────────

def resolve_entries(entries: Iterable[Any], questions_by_id: Dict[int, Any]) -> List[ResolvedQuestion]:
    """
    Join entries to their questions in display order.

    Entries are ordered by `order`; equal orders keep the given sequence.
    An entry whose question is missing is skipped, never raised.
    """
    resolved = []
    for entry in sorted(entries, key=lambda e: e.order):
        question = questions_by_id.get(entry.question_id)
        if question is None:
            log.warning("Resolve: entry for question %s skipped, question no longer exists", entry.question_id)
            continue
        composed = normalize_question(question)
        resolved.append(ResolvedQuestion.model_validate({**composed.model_dump(), "order": entry.order}))
    return resolved


def total_marks(questions: Iterable[Any]) -> int:
    """Exact integer sum of marks; missing marks count as 0."""
    return sum((getattr(q, "marks", None) or 0) for q in questions)


def resolve_paper(db: Session, paper_id: int) -> ResolvedPaper:
    """Fully joined, ordered paper with sub-questions attached and total marks."""
    try:
        paper = crud.get_paper(db, paper_id)
        if not paper:
            raise NotFoundError("Question paper", paper_id)
        entries = crud.get_paper_entries(db, paper_id)
        questions_by_id = crud.get_questions_by_ids(db, [e.question_id for e in entries])
        subject_name = paper.subject.name if paper.subject else None
        grade_label = paper.grade.level if paper.grade else None
    except SQLAlchemyError as e:
        log.error("Resolve: fetch for paper id=%s failed: %s", paper_id, e)
        raise StoreError("fetch question paper", e) from e

    questions = resolve_entries(entries, questions_by_id)
    questions = assemble_hierarchy(questions, lambda ids: crud.get_sub_questions(db, ids))

    return ResolvedPaper(
        id=paper.id,
        title=paper.title,
        subject_id=paper.subject_id,
        subject_name=subject_name,
        grade_id=paper.grade_id,
        grade_label=grade_label,
        assessment_type=paper.assessment_type,
        assessment_date=paper.assessment_date,
        instructions=paper.instructions,
        created_by=paper.created_by,
        version=paper.version,
        questions=questions,
        total_marks=total_marks(questions),
    )
