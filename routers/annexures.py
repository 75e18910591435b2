"""
Annexure library endpoints
Subject-scoped files (formula sheets, data sheets, maps) shared across papers
"""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import require_staff
from auth.permissions import CurrentUser
from database import schemas, crud
from database.database import get_db
from papers.errors import NotFoundError
from services.addendums import AddendumUploader, get_upload_service

router = APIRouter(prefix="/annexures", tags=["annexures"])


@router.get("/", response_model=schemas.AnnexurePage)
def list_annexures(
    subject_id: Optional[int] = None,
    file_type: Optional[str] = Query(None, description="pdf | document | image"),
    created_by: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    rows, total = crud.query_annexures(
        db, subject_id=subject_id, file_type=file_type, created_by=created_by,
        skip=(page - 1) * limit, limit=limit,
    )
    return {"data": rows, "pagination": schemas.build_pagination(page, limit, total)}


@router.get("/{annexure_id}", response_model=schemas.AnnexureResponse)
def get_annexure(
    annexure_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    annexure = crud.get_annexure(db, annexure_id)
    if not annexure:
        raise NotFoundError("Annexure", annexure_id)
    return annexure


@router.post("/upload", response_model=schemas.AnnexureResponse, status_code=status.HTTP_201_CREATED)
async def upload_annexure(
    file: UploadFile = File(..., description="PDF, image or Word document"),
    name: Optional[str] = Form(None),
    subject_id: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
    uploader: AddendumUploader = Depends(get_upload_service),
):
    return await uploader.add_annexure(db, file, name, subject_id, description, user)


@router.delete("/{annexure_id}")
def delete_annexure(
    annexure_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
    uploader: AddendumUploader = Depends(get_upload_service),
):
    """Delete an annexure and its stored file (creator or admin)"""
    uploader.remove_annexure(db, annexure_id, user)
    return {"message": "Annexure deleted successfully"}
