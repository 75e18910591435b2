"""
Question Paper API endpoints
Compose papers from bank questions, resolve them and export to PDF
"""

import logging
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from auth.dependencies import require_staff
from auth.permissions import CurrentUser
from database import crud, schemas
from database.database import get_db
from papers import composer
from papers.errors import NotFoundError
from papers.paper_exporter import generate_question_paper
from papers.schemas import ResolvedPaper
from services.addendums import AddendumUploader, get_upload_service

log = logging.getLogger(__name__)

router = APIRouter(prefix="/question-papers", tags=["question-papers"])


def _page(rows, page: int, limit: int, total: int) -> dict:
    return {"data": rows, "pagination": schemas.build_pagination(page, limit, total)}


@router.get("/", response_model=schemas.QuestionPaperPage)
def list_question_papers(
    subject_id: Optional[int] = None,
    grade_id: Optional[int] = None,
    assessment_type: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    rows, total = crud.query_papers(
        db, subject_id=subject_id, grade_id=grade_id, assessment_type=assessment_type,
        skip=(page - 1) * limit, limit=limit,
    )
    return _page(rows, page, limit, total)


@router.get("/my-papers", response_model=schemas.QuestionPaperPage)
def list_my_question_papers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Papers created by the caller, newest first"""
    rows, total = crud.query_papers(
        db, created_by=user.user_id, newest_first=True, skip=(page - 1) * limit, limit=limit,
    )
    return _page(rows, page, limit, total)


@router.get("/{paper_id}", response_model=ResolvedPaper)
def get_question_paper(
    paper_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Resolved paper: ordered questions with sub-questions and total marks"""
    return composer.resolve_paper(db, paper_id)


@router.post("/", response_model=ResolvedPaper, status_code=status.HTTP_201_CREATED)
def create_question_paper(
    paper: schemas.QuestionPaperCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Create a question paper
    `questions` is a list of question ids; order follows the list
    """
    created = composer.create_question_paper(db, paper, user)
    return composer.resolve_paper(db, created.id)


@router.put("/{paper_id}", response_model=ResolvedPaper)
def update_question_paper(
    paper_id: int,
    paper_update: schemas.QuestionPaperUpdate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Update a question paper (creator or admin)
    When `questions` is sent, every entry is replaced; send `version` to guard against concurrent edits
    """
    updated = composer.update_question_paper(db, paper_id, paper_update, user)
    return composer.resolve_paper(db, updated.id)


@router.delete("/{paper_id}")
def delete_question_paper(
    paper_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    composer.delete_question_paper(db, paper_id, user)
    return {"message": "Question paper deleted successfully"}


@router.get("/{paper_id}/generate")
def export_question_paper(
    paper_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Export question paper as PDF.
    """
    paper = composer.resolve_paper(db, paper_id)
    pdf_buffer = generate_question_paper(paper)
    log.info("Export: paper id=%s exported by user id=%s", paper_id, user.user_id)

    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=question_paper_{paper_id}.pdf"
        }
    )


# ==========================================
# ADDENDUMS
# ==========================================

@router.get("/{paper_id}/addendums", response_model=List[schemas.AddendumResponse])
def list_paper_addendums(
    paper_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if not crud.get_paper(db, paper_id):
        raise NotFoundError("Question paper", paper_id)
    return crud.get_paper_addendums(db, paper_id)


@router.post("/{paper_id}/addendums", response_model=schemas.AddendumResponse,
             status_code=status.HTTP_201_CREATED)
async def upload_paper_addendum(
    paper_id: int,
    file: UploadFile = File(..., description="PDF, image or Word document"),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
    uploader: AddendumUploader = Depends(get_upload_service),
):
    return await uploader.attach_to_paper(db, paper_id, file, title, description, user)
