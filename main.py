"""
Question Paper API: Main Application
FastAPI application for question bank authoring, question paper composition,
PDF export and assessment results.
"""

from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from database.database import engine, Base, SessionLocal
from database.models import Grade
from papers.errors import PaperServiceError, StoreError
from routers import annexures, assessments, question_papers, questions, reference, students, templates
from services.object_store import load_upload_config

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s  %(levelname)s  %(message)s")
log = logging.getLogger(__name__)

DEFAULT_GRADES = ["8", "9", "10", "11", "12"]


def _seed_defaults():
    """Create default grades if none exist."""
    db = SessionLocal()
    try:
        if db.query(Grade).count() == 0:
            for level in DEFAULT_GRADES:
                db.add(Grade(level=level, description=f"Grade {level}"))
            db.commit()
            log.info("Default grades seeded (%s)", ", ".join(DEFAULT_GRADES))
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables + seed defaults."""
    Base.metadata.create_all(bind=engine)
    _seed_defaults()
    yield


app = FastAPI(
    title="Question Paper API",
    description="Question bank, question paper composition, PDF export and assessment statistics",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error mapping ─────────────────────────────────────────────────────────────

@app.exception_handler(PaperServiceError)
async def paper_service_error_handler(request: Request, exc: PaperServiceError):
    if isinstance(exc, StoreError):
        log.error("%s %s: %s (cause: %r)", request.method, request.url.path, exc.message, exc.cause)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    log.error("%s %s: database error: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Database temporarily unavailable"})


# ─── Routers ───────────────────────────────────────────────────────────────────

app.include_router(questions.router)          # /questions/*
app.include_router(question_papers.router)    # /question-papers/*
app.include_router(assessments.router)        # /assessments/*
app.include_router(students.router)           # /students/*
app.include_router(reference.router)          # /grades, /subjects, /topics
app.include_router(templates.router)          # /templates/*
app.include_router(annexures.router)          # /annexures/*

# Static files: serve uploaded addendums
upload_config = load_upload_config()
os.makedirs(upload_config.storage_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=upload_config.storage_dir), name="uploads")


@app.get("/")
def root():
    return {
        "name": "Question Paper API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "questions": "/questions",
            "question_papers": "/question-papers",
            "assessments": "/assessments",
            "students": "/students",
            "templates": "/templates",
            "annexures": "/annexures",
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "question-paper-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
