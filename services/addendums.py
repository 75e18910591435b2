"""
Addendum and annexure uploads

Flow per upload:
1. Validate title and MIME type
2. Stream the upload to a temp file, enforcing the size limit
3. Put the bytes into the object store → public URL
4. Insert the addendum record (object is deleted again if the insert fails)
5. Remove the temp file

Annexures are the subject-level library; deleting one removes the record, then the stored file.
"""

import logging
import os
import tempfile
import uuid
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.permissions import CurrentUser, ensure_owner_or_admin
from database import crud, models
from papers.errors import NotFoundError, PayloadTooLargeError, ReferentialError, StoreError, ValidationError
from services.object_store import LocalObjectStore, UploadConfig, load_upload_config

log = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB chunks


def classify_file_type(content_type: str) -> str:
    """image/* → image, PDF → pdf, any other application/* → document."""
    if content_type.startswith("image/"):
        return "image"
    if content_type == "application/pdf":
        return "pdf"
    return "document"


class AddendumUploader:
    def __init__(self, config: UploadConfig, store: LocalObjectStore):
        self.config = config
        self.store = store

    # ─── Validation / temp files ──────────────────────────────────────────────

    def validate(self, upload: UploadFile, title: Optional[str], label: str = "Title") -> str:
        if not title or not title.strip():
            raise ValidationError(f"{label} is required")
        content_type = (upload.content_type or "").lower()
        if content_type not in self.config.allowed_mime_types:
            raise ValidationError(
                f"Unsupported file type: {content_type or 'unknown'}. "
                f"Allowed: {', '.join(sorted(self.config.allowed_mime_types))}"
            )
        return content_type

    async def save_upload_tmp(self, upload: UploadFile) -> Tuple[str, int]:
        """Copy the upload to a temp file in chunks. Returns (temp_path, size_bytes)."""
        suffix = Path(upload.filename or "").suffix.lower()
        tmp = tempfile.NamedTemporaryFile(delete=False, suffix=suffix, prefix="addendum_")
        file_size = 0
        try:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                file_size += len(chunk)
                if file_size > self.config.max_upload_size:
                    raise PayloadTooLargeError(
                        f"File too large. Max: {self.config.max_upload_size} bytes "
                        f"({self.config.max_upload_size // 1048576}MB)"
                    )
                tmp.write(chunk)
        except BaseException:
            tmp.close()
            _remove_tmp(tmp.name)
            raise
        tmp.close()
        return tmp.name, file_size

    # ─── Store + register ─────────────────────────────────────────────────────

    async def _upload(
        self,
        db: Session,
        upload: UploadFile,
        title: str,
        key_prefix: str,
        build_record: Callable[[str, str, Optional[str]], object],
        label: str = "Title",
    ):
        content_type = self.validate(upload, title, label)
        tmp_path, file_size = await self.save_upload_tmp(upload)
        try:
            key = f"{key_prefix}/{uuid.uuid4().hex}{Path(upload.filename or '').suffix.lower()}"
            try:
                url = self.store.put(key, Path(tmp_path).read_bytes(), content_type)
            except (OSError, ValueError) as e:
                log.error("Addendum: object store put failed for %s: %s", key, e)
                raise StoreError("store uploaded file", e) from e

            file_type = classify_file_type(content_type)
            record = build_record(url, file_type, url if file_type == "image" else None)
            try:
                db.add(record)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                log.error("Addendum: record insert failed, removing stored object %s: %s", key, e)
                try:
                    self.store.delete(key)
                except OSError as cleanup_error:
                    log.warning("Addendum: compensating delete of %s failed: %s", key, cleanup_error)
                raise StoreError("save addendum", e) from e

            db.refresh(record)
            log.info("Addendum: %s stored (%s, %s bytes)", key, file_type, file_size)
            return record
        finally:
            _remove_tmp(tmp_path)

    async def attach_to_question(
        self,
        db: Session,
        question_id: int,
        upload: UploadFile,
        title: Optional[str],
        description: Optional[str],
        user: CurrentUser,
    ) -> models.QuestionAddendum:
        question = crud.get_question(db, question_id)
        if not question:
            raise NotFoundError("Question", question_id)
        ensure_owner_or_admin(question.created_by, user)

        def build(url, file_type, thumbnail_url):
            return models.QuestionAddendum(
                question_id=question_id, title=title.strip(), description=description,
                file_type=file_type, file_url=url, thumbnail_url=thumbnail_url, created_by=user.user_id,
            )

        return await self._upload(db, upload, title, f"questions/{question_id}", build)

    async def attach_to_paper(
        self,
        db: Session,
        paper_id: int,
        upload: UploadFile,
        title: Optional[str],
        description: Optional[str],
        user: CurrentUser,
    ) -> models.PaperAddendum:
        paper = crud.get_paper(db, paper_id)
        if not paper:
            raise NotFoundError("Question paper", paper_id)
        ensure_owner_or_admin(paper.created_by, user)

        def build(url, file_type, thumbnail_url):
            return models.PaperAddendum(
                question_paper_id=paper_id, title=title.strip(), description=description,
                file_type=file_type, file_url=url, thumbnail_url=thumbnail_url, created_by=user.user_id,
            )

        return await self._upload(db, upload, title, f"papers/{paper_id}", build)

    # ─── Annexure library ─────────────────────────────────────────────────────

    async def add_annexure(
        self,
        db: Session,
        upload: UploadFile,
        name: Optional[str],
        subject_id: Optional[int],
        description: Optional[str],
        user: CurrentUser,
    ) -> models.Annexure:
        if subject_id and not crud.get_subject(db, subject_id):
            raise ReferentialError("subject", [subject_id])

        def build(url, file_type, thumbnail_url):
            return models.Annexure(
                name=name.strip(), description=description, subject_id=subject_id,
                file_type=file_type, file_url=url, thumbnail_url=thumbnail_url, created_by=user.user_id,
            )

        key_prefix = f"annexures/{subject_id}" if subject_id else "annexures/general"
        return await self._upload(db, upload, name, key_prefix, build, label="Name")

    def remove_annexure(self, db: Session, annexure_id: int, user: CurrentUser) -> None:
        """Delete the record first, then its stored file; a leftover file is only logged."""
        annexure = crud.get_annexure(db, annexure_id)
        if not annexure:
            raise NotFoundError("Annexure", annexure_id)
        ensure_owner_or_admin(annexure.created_by, user)

        file_url = annexure.file_url
        key = self.store.key_for_url(file_url)
        try:
            db.delete(annexure)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.error("Annexure: delete of id=%s failed: %s", annexure_id, e)
            raise StoreError("delete annexure", e) from e

        if key is None:
            log.warning("Annexure: id=%s file %s is not in the object store, nothing to remove",
                        annexure_id, file_url)
            return
        try:
            self.store.delete(key)
        except (OSError, ValueError) as e:
            log.warning("Annexure: stored file %s left behind after delete: %s", key, e)


def _remove_tmp(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("Addendum: could not remove temp file %s: %s", path, e)


@lru_cache()
def get_upload_service() -> AddendumUploader:
    """FastAPI dependency; settings are read from the environment once."""
    config = load_upload_config()
    return AddendumUploader(config, LocalObjectStore(config))
