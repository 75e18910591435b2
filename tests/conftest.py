import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="question_paper_uploads_"))

import pytest
from fastapi.testclient import TestClient

from auth.permissions import CurrentUser
from auth.security import create_access_token
from database import models
from database.database import Base, SessionLocal, engine, get_db
from main import app
from services.addendums import AddendumUploader, get_upload_service
from services.object_store import LocalObjectStore, UploadConfig


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def uploader(client, tmp_path):
    config = UploadConfig(storage_dir=str(tmp_path), public_base_url="/uploads", max_upload_size=1024)
    service = AddendumUploader(config, LocalObjectStore(config))
    app.dependency_overrides[get_upload_service] = lambda: service
    return service


def _user(db, email, role):
    user = models.User(email=email, name=email.split("@")[0].title(), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def teacher(db):
    return _user(db, "thandi@school.test", models.UserRole.TEACHER.value)


@pytest.fixture
def other_teacher(db):
    return _user(db, "pieter@school.test", models.UserRole.TEACHER.value)


@pytest.fixture
def admin(db):
    return _user(db, "admin@school.test", models.UserRole.ADMIN.value)


@pytest.fixture
def student_user(db):
    return _user(db, "learner@school.test", models.UserRole.STUDENT.value)


def as_current(user) -> CurrentUser:
    return CurrentUser(user_id=user.id, role=user.role)


def auth_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def subject(db):
    row = models.Subject(name="Mathematics", description="Pure maths")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def grade(db):
    row = models.Grade(level="10", description="Grade 10")
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def make_question(db, author, **fields):
    values = dict(difficulty="easy", marks=2, type="short-answer", text="What is 2 + 2?")
    values.update(fields)
    question = models.Question(created_by=author.id if author else None, **values)
    db.add(question)
    db.commit()
    db.refresh(question)
    return question


def make_student(db, name="Ayanda", grade="10"):
    student = models.Student(name=name, grade=grade)
    db.add(student)
    db.commit()
    db.refresh(student)
    return student
