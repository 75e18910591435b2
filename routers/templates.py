"""
Template endpoints
Paper cover templates: anyone on staff may create; creator or admin may edit; admins delete
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import require_roles, require_staff
from auth.permissions import CurrentUser, ensure_owner_or_admin
from database import schemas, crud
from database.database import get_db
from database.models import UserRole
from papers.errors import NotFoundError, ReferentialError, ValidationError

router = APIRouter(prefix="/templates", tags=["templates"])


def _get_or_404(db: Session, template_id: int):
    template = crud.get_template(db, template_id)
    if not template:
        raise NotFoundError("Template", template_id)
    return template


def _check_references(db: Session, data: schemas.TemplateCreate) -> None:
    if data.subject_id and not crud.get_subject(db, data.subject_id):
        raise ReferentialError("subject", [data.subject_id])
    if data.grade_id and not crud.get_grade(db, data.grade_id):
        raise ReferentialError("grade", [data.grade_id])
    if data.topic_id and not crud.get_topic(db, data.topic_id):
        raise ReferentialError("topic", [data.topic_id])


@router.get("/", response_model=schemas.TemplatePage)
def list_templates(
    topic_id: Optional[int] = None,
    grade_id: Optional[int] = None,
    subject_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    rows, total = crud.query_templates(
        db, topic_id=topic_id, grade_id=grade_id, subject_id=subject_id,
        skip=(page - 1) * limit, limit=limit,
    )
    return {"data": rows, "pagination": schemas.build_pagination(page, limit, total)}


@router.get("/{template_id}", response_model=schemas.TemplateResponse)
def get_template(
    template_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return _get_or_404(db, template_id)


@router.post("/", response_model=schemas.TemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(
    template: schemas.TemplateCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if not template.title or not template.title.strip():
        raise ValidationError("Title is required")
    _check_references(db, template)
    return crud.create_template(db, template.model_copy(update={"title": template.title.strip()}), user.user_id)


@router.put("/{template_id}", response_model=schemas.TemplateResponse)
def update_template(
    template_id: int,
    template_update: schemas.TemplateUpdate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Update a template (creator or admin)
    Only provided fields will be updated; the title cannot be cleared
    """
    db_template = _get_or_404(db, template_id)
    ensure_owner_or_admin(db_template.created_by, user)

    if "title" in template_update.model_fields_set:
        if not template_update.title or not template_update.title.strip():
            raise ValidationError("Title is required")
        template_update.title = template_update.title.strip()
    _check_references(db, template_update)
    return crud.update_template(db, db_template, template_update)


@router.delete("/{template_id}")
def delete_template(
    template_id: int,
    user: CurrentUser = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    crud.delete_template(db, _get_or_404(db, template_id))
    return {"message": "Template deleted successfully"}
