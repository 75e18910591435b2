"""
Question Bank

List / get / create / update / delete for reusable questions.
Reads go through the content normalizer and hierarchy assembler; a question
and its sub-questions are written as one unit of work.
"""

import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.permissions import CurrentUser, ensure_owner_or_admin
from database import crud, models, schemas
from papers.content_normalizer import normalize_question, normalize_questions, parse_table_data
from papers.errors import ContentParseError, NotFoundError, ReferentialError, StoreError, ValidationError
from papers.hierarchy import assemble_hierarchy
from papers.schemas import ComposedQuestion

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

DIFFICULTIES = {d.value for d in models.Difficulty}
QUESTION_TYPES = {t.value for t in models.QuestionType}
COGNITIVE_LEVELS = {c.value for c in models.CognitiveLevel}


# ─── Validation ────────────────────────────────────────────────────────────────

def validate_question_fields(
    marks: Any,
    question_type: Optional[str],
    difficulty: Optional[str],
    cognitive_level: Optional[str] = None,
) -> None:
    """Marks, type and difficulty are required; enums must match."""
    if marks is None or not question_type or not difficulty:
        raise ValidationError("Marks, type, and difficulty are required")
    if isinstance(marks, bool) or not isinstance(marks, int) or marks < 0:
        raise ValidationError(f"Invalid marks {marks!r}: must be a non-negative integer")
    if question_type not in QUESTION_TYPES:
        raise ValidationError(f"Invalid type '{question_type}'. Allowed: {', '.join(sorted(QUESTION_TYPES))}")
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f"Invalid difficulty '{difficulty}'. Allowed: {', '.join(sorted(DIFFICULTIES))}")
    if cognitive_level is not None and cognitive_level not in COGNITIVE_LEVELS:
        raise ValidationError(
            f"Invalid cognitive_level '{cognitive_level}'. Allowed: {', '.join(sorted(COGNITIVE_LEVELS))}"
        )


def _clean_table_data(raw: Any) -> Optional[dict]:
    """Store tables in one canonical {headers, rows} shape; malformed input is rejected on write."""
    try:
        table = parse_table_data(raw)
    except ContentParseError as e:
        raise ValidationError(e.message) from e
    return table.model_dump() if table is not None else None


def parse_id_list(raw: Optional[str], name: str) -> Optional[List[int]]:
    """'3' or '3,4,5' → [3, 4, 5]. Blank → None."""
    if raw is None or not str(raw).strip():
        return None
    try:
        return [int(part) for part in str(raw).split(",") if part.strip()]
    except ValueError:
        raise ValidationError(f"Invalid {name} '{raw}': expected an id or comma-separated ids")


def parse_parent_filter(raw: Optional[str]) -> Tuple[bool, Optional[int]]:
    """parent_id query value: 'null' → top-level only, an id → that parent's children."""
    if raw is None or raw == "":
        return False, None
    if raw.lower() == "null":
        return True, None
    try:
        return False, int(raw)
    except ValueError:
        raise ValidationError(f"Invalid parent_id '{raw}': expected an id or 'null'")


def _check_parent(db: Session, parent_id: int, child_id: Optional[int] = None) -> None:
    if child_id is not None and parent_id == child_id:
        raise ValidationError("A question cannot be its own parent")
    parent = crud.get_question(db, parent_id)
    if not parent:
        raise ReferentialError("parent question", [parent_id])
    if parent.parent_id is not None:
        raise ValidationError("Sub-questions cannot have sub-questions of their own")


def _new_question(fields: schemas.QuestionFields, user: CurrentUser, parent_id: Optional[int]) -> models.Question:
    return models.Question(
        number=fields.number,
        description=fields.description,
        text=fields.text,
        markup=fields.markup,
        table_data=_clean_table_data(fields.table_data),
        image_url=fields.image_url,
        difficulty=fields.difficulty,
        marks=fields.marks,
        type=fields.type,
        cognitive_level=fields.cognitive_level,
        memo=fields.memo,
        topic_id=fields.topic_id,
        parent_id=parent_id,
        created_by=user.user_id,
    )


# ─── Reads ─────────────────────────────────────────────────────────────────────

def list_questions(
    db: Session,
    topic_ids: Optional[List[int]] = None,
    difficulty: Optional[str] = None,
    question_type: Optional[str] = None,
    cognitive_level: Optional[str] = None,
    created_by: Optional[int] = None,
    parent_filter: Optional[str] = None,
    include_subquestions: bool = True,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> Tuple[List[ComposedQuestion], schemas.Pagination]:
    """One normalized page of questions plus pagination info."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    top_level_only, parent_id = parse_parent_filter(parent_filter)

    try:
        rows, total = crud.query_questions(
            db,
            topic_ids=topic_ids,
            difficulty=difficulty,
            question_type=question_type,
            cognitive_level=cognitive_level,
            created_by=created_by,
            parent_id=parent_id,
            top_level_only=top_level_only,
            skip=(page - 1) * limit,
            limit=limit,
        )
    except SQLAlchemyError as e:
        log.error("Question bank: list failed: %s", e)
        raise StoreError("fetch questions", e) from e

    questions = normalize_questions(rows)
    if include_subquestions:
        questions = assemble_hierarchy(questions, lambda ids: crud.get_sub_questions(db, ids))
    return questions, schemas.build_pagination(page, limit, total)


def get_question(db: Session, question_id: int) -> ComposedQuestion:
    try:
        row = crud.get_question(db, question_id)
    except SQLAlchemyError as e:
        log.error("Question bank: get id=%s failed: %s", question_id, e)
        raise StoreError("fetch question", e) from e
    if not row:
        raise NotFoundError("Question", question_id)
    return assemble_hierarchy([normalize_question(row)], lambda ids: crud.get_sub_questions(db, ids))[0]


# ─── Writes ────────────────────────────────────────────────────────────────────

def create_question(db: Session, data: schemas.QuestionCreate, user: CurrentUser) -> ComposedQuestion:
    """Create a question and, optionally, its sub-questions in one transaction."""
    validate_question_fields(data.marks, data.type, data.difficulty, data.cognitive_level)
    for position, sub in enumerate(data.sub_questions, start=1):
        try:
            validate_question_fields(sub.marks, sub.type, sub.difficulty, sub.cognitive_level)
        except ValidationError as e:
            raise ValidationError(f"Sub-question {position}: {e.message}") from e
    if data.parent_id is not None:
        if data.sub_questions:
            raise ValidationError("Sub-questions cannot have sub-questions of their own")
        _check_parent(db, data.parent_id)

    question = _new_question(data, user, data.parent_id)
    subs = [_new_question(sub, user, None) for sub in data.sub_questions]

    try:
        db.add(question)
        db.flush()
        for sub in subs:
            sub.parent_id = question.id
        db.add_all(subs)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Question bank: create failed, rolled back: %s", e)
        raise StoreError("create question", e) from e

    log.info("Question bank: created question id=%s with %s sub-question(s)", question.id, len(subs))
    return get_question(db, question.id)


def update_question(
    db: Session,
    question_id: int,
    data: schemas.QuestionUpdate,
    user: CurrentUser,
) -> ComposedQuestion:
    """Partial update; only fields present in the request change."""
    question = crud.get_question(db, question_id)
    if not question:
        raise NotFoundError("Question", question_id)
    ensure_owner_or_admin(question.created_by, user)

    updates = data.model_dump(exclude_unset=True)
    validate_question_fields(
        updates.get("marks", question.marks),
        updates.get("type", question.type),
        updates.get("difficulty", question.difficulty),
        updates.get("cognitive_level", question.cognitive_level),
    )
    if "table_data" in updates:
        updates["table_data"] = _clean_table_data(updates["table_data"])
    new_parent = updates.get("parent_id")
    if new_parent is not None and new_parent != question.parent_id:
        _check_parent(db, new_parent, child_id=question.id)
        if crud.has_sub_questions(db, question.id):
            raise ValidationError("A question with sub-questions cannot become a sub-question")

    try:
        for field, value in updates.items():
            setattr(question, field, value)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Question bank: update id=%s failed: %s", question_id, e)
        raise StoreError("update question", e) from e

    return get_question(db, question_id)


def delete_question(db: Session, question_id: int, user: CurrentUser) -> None:
    """Sub-questions, paper entries and addendums cascade in the store."""
    question = crud.get_question(db, question_id)
    if not question:
        raise NotFoundError("Question", question_id)
    ensure_owner_or_admin(question.created_by, user)

    try:
        db.delete(question)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Question bank: delete id=%s failed: %s", question_id, e)
        raise StoreError("delete question", e) from e
    log.info("Question bank: deleted question id=%s", question_id)
