"""
Question Bank API endpoints
Reusable questions with ordered sub-questions and file addendums
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from typing import List, Optional

from auth.dependencies import require_staff
from auth.permissions import CurrentUser
from database import crud, schemas
from database.database import get_db
from papers import question_bank
from papers.errors import NotFoundError
from papers.schemas import ComposedQuestion
from services.addendums import AddendumUploader, get_upload_service

router = APIRouter(prefix="/questions", tags=["questions"])


@router.get("/", response_model=schemas.QuestionPage)
def list_questions(
    topic_id: Optional[str] = Query(None, description="Topic id or comma-separated ids"),
    difficulty: Optional[str] = None,
    type: Optional[str] = None,
    cognitive_level: Optional[str] = None,
    created_by: Optional[int] = None,
    parent_id: Optional[str] = Query(None, description="Parent id, or 'null' for top-level questions only"),
    include_subquestions: bool = True,
    page: int = Query(1, ge=1),
    limit: int = Query(question_bank.DEFAULT_PAGE_SIZE, ge=1),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    List questions with filters and pagination.
    Content is normalized; top-level questions carry their sub-questions.
    """
    questions, pagination = question_bank.list_questions(
        db,
        topic_ids=question_bank.parse_id_list(topic_id, "topic_id"),
        difficulty=difficulty,
        question_type=type,
        cognitive_level=cognitive_level,
        created_by=created_by,
        parent_filter=parent_id,
        include_subquestions=include_subquestions,
        page=page,
        limit=limit,
    )
    return {"data": questions, "pagination": pagination}


@router.get("/{question_id}", response_model=ComposedQuestion)
def get_question(
    question_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return question_bank.get_question(db, question_id)


@router.post("/", response_model=ComposedQuestion, status_code=status.HTTP_201_CREATED)
def create_question(
    question: schemas.QuestionCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Create a question
    Optional sub_questions are created in the same transaction
    """
    return question_bank.create_question(db, question, user)


@router.put("/{question_id}", response_model=ComposedQuestion)
def update_question(
    question_id: int,
    question_update: schemas.QuestionUpdate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Update a question (creator or admin)
    Only provided fields will be updated
    """
    return question_bank.update_question(db, question_id, question_update, user)


@router.delete("/{question_id}")
def delete_question(
    question_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Delete a question; its sub-questions and paper entries go with it"""
    question_bank.delete_question(db, question_id, user)
    return {"message": "Question deleted successfully"}


# ==========================================
# ADDENDUMS
# ==========================================

@router.get("/{question_id}/addendums", response_model=List[schemas.AddendumResponse])
def list_question_addendums(
    question_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if not crud.get_question(db, question_id):
        raise NotFoundError("Question", question_id)
    return crud.get_question_addendums(db, question_id)


@router.post("/{question_id}/addendums", response_model=schemas.AddendumResponse,
             status_code=status.HTTP_201_CREATED)
async def upload_question_addendum(
    question_id: int,
    file: UploadFile = File(..., description="PDF, image or Word document"),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
    uploader: AddendumUploader = Depends(get_upload_service),
):
    return await uploader.attach_to_question(db, question_id, file, title, description, user)
