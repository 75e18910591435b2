"""
CRUD operations for the question bank store
Simple keyed reads and single-table writes; compound writes live in papers/
"""

from sqlalchemy.orm import Session, Query
from typing import Dict, Iterable, List, Optional, Tuple
from database import models, schemas


def paginate(query: Query, skip: int = 0, limit: int = 20) -> Tuple[list, int]:
    """Run a query for one page. Returns (records, total_count)."""
    total = query.order_by(None).count()
    return query.offset(skip).limit(limit).all(), total


# ==========================================
# USERS
# ==========================================

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


# ==========================================
# REFERENCE DATA
# ==========================================

def get_grades(db: Session) -> List[models.Grade]:
    """Get all grades ordered by level"""
    return db.query(models.Grade).order_by(models.Grade.level).all()


def get_grade(db: Session, grade_id: int) -> Optional[models.Grade]:
    return db.query(models.Grade).filter(models.Grade.id == grade_id).first()


def get_subjects(db: Session) -> List[models.Subject]:
    """Get all subjects ordered by name"""
    return db.query(models.Subject).order_by(models.Subject.name).all()


def get_subject(db: Session, subject_id: int) -> Optional[models.Subject]:
    return db.query(models.Subject).filter(models.Subject.id == subject_id).first()


def get_subject_by_name(db: Session, name: str) -> Optional[models.Subject]:
    return db.query(models.Subject).filter(models.Subject.name == name).first()


def create_subject(db: Session, subject: schemas.SubjectCreate) -> models.Subject:
    db_subject = models.Subject(name=subject.name, description=subject.description)
    db.add(db_subject)
    db.commit()
    db.refresh(db_subject)
    return db_subject


def get_topics(db: Session, subject_id: Optional[int] = None, grade_id: Optional[int] = None) -> List[models.Topic]:
    query = db.query(models.Topic)
    if subject_id:
        query = query.filter(models.Topic.subject_id == subject_id)
    if grade_id:
        query = query.filter(models.Topic.grade_id == grade_id)
    return query.order_by(models.Topic.name).all()


def get_topic(db: Session, topic_id: int) -> Optional[models.Topic]:
    return db.query(models.Topic).filter(models.Topic.id == topic_id).first()


def create_topic(db: Session, topic: schemas.TopicCreate) -> models.Topic:
    db_topic = models.Topic(name=topic.name, subject_id=topic.subject_id, grade_id=topic.grade_id)
    db.add(db_topic)
    db.commit()
    db.refresh(db_topic)
    return db_topic


# ==========================================
# QUESTIONS
# ==========================================

def get_question(db: Session, question_id: int) -> Optional[models.Question]:
    """Get question by ID"""
    return db.query(models.Question).filter(models.Question.id == question_id).first()


def get_questions_by_ids(db: Session, question_ids: Iterable[int]) -> Dict[int, models.Question]:
    """Batch fetch; missing ids are simply absent from the result."""
    ids = list(set(question_ids))
    if not ids:
        return {}
    rows = db.query(models.Question).filter(models.Question.id.in_(ids)).all()
    return {row.id: row for row in rows}


def get_sub_questions(db: Session, parent_ids: Iterable[int]) -> List[models.Question]:
    """All sub-questions of the given parents in one query"""
    ids = list(parent_ids)
    if not ids:
        return []
    return db.query(models.Question).filter(
        models.Question.parent_id.in_(ids)
    ).order_by(models.Question.id).all()


def has_sub_questions(db: Session, question_id: int) -> bool:
    return db.query(models.Question.id).filter(models.Question.parent_id == question_id).first() is not None


def query_questions(
    db: Session,
    topic_ids: Optional[List[int]] = None,
    difficulty: Optional[str] = None,
    question_type: Optional[str] = None,
    cognitive_level: Optional[str] = None,
    created_by: Optional[int] = None,
    parent_id: Optional[int] = None,
    top_level_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Question], int]:
    """Filtered, paginated question listing"""
    query = db.query(models.Question)
    if topic_ids:
        query = query.filter(models.Question.topic_id.in_(topic_ids))
    if difficulty:
        query = query.filter(models.Question.difficulty == difficulty)
    if question_type:
        query = query.filter(models.Question.type == question_type)
    if cognitive_level:
        query = query.filter(models.Question.cognitive_level == cognitive_level)
    if created_by:
        query = query.filter(models.Question.created_by == created_by)
    if top_level_only:
        query = query.filter(models.Question.parent_id.is_(None))
    elif parent_id is not None:
        query = query.filter(models.Question.parent_id == parent_id)
    return paginate(query.order_by(models.Question.id), skip=skip, limit=limit)


def get_question_addendums(db: Session, question_id: int) -> List[models.QuestionAddendum]:
    return db.query(models.QuestionAddendum).filter(
        models.QuestionAddendum.question_id == question_id
    ).order_by(models.QuestionAddendum.created_at.desc(), models.QuestionAddendum.id.desc()).all()


# ==========================================
# QUESTION PAPERS
# ==========================================

def get_paper(db: Session, paper_id: int, for_update: bool = False) -> Optional[models.QuestionPaper]:
    """Get question paper by ID; for_update takes a row lock where the database supports it"""
    query = db.query(models.QuestionPaper).filter(models.QuestionPaper.id == paper_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_paper_entries(db: Session, paper_id: int) -> List[models.PaperEntry]:
    """Entries in display order; equal orders keep insertion order"""
    return db.query(models.PaperEntry).filter(
        models.PaperEntry.question_paper_id == paper_id
    ).order_by(models.PaperEntry.order, models.PaperEntry.id).all()


def query_papers(
    db: Session,
    subject_id: Optional[int] = None,
    grade_id: Optional[int] = None,
    assessment_type: Optional[str] = None,
    created_by: Optional[int] = None,
    newest_first: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.QuestionPaper], int]:
    query = db.query(models.QuestionPaper)
    if subject_id:
        query = query.filter(models.QuestionPaper.subject_id == subject_id)
    if grade_id:
        query = query.filter(models.QuestionPaper.grade_id == grade_id)
    if assessment_type:
        query = query.filter(models.QuestionPaper.assessment_type == assessment_type)
    if created_by:
        query = query.filter(models.QuestionPaper.created_by == created_by)
    if newest_first:
        query = query.order_by(models.QuestionPaper.created_at.desc(), models.QuestionPaper.id.desc())
    else:
        query = query.order_by(models.QuestionPaper.id)
    return paginate(query, skip=skip, limit=limit)


def get_paper_addendums(db: Session, paper_id: int) -> List[models.PaperAddendum]:
    return db.query(models.PaperAddendum).filter(
        models.PaperAddendum.question_paper_id == paper_id
    ).order_by(models.PaperAddendum.created_at.desc(), models.PaperAddendum.id.desc()).all()


# ==========================================
# STUDENTS
# ==========================================

def get_student(db: Session, student_id: int) -> Optional[models.Student]:
    return db.query(models.Student).filter(models.Student.id == student_id).first()


def get_students(db: Session, grade: Optional[str] = None, skip: int = 0, limit: int = 20) -> Tuple[List[models.Student], int]:
    query = db.query(models.Student)
    if grade:
        query = query.filter(models.Student.grade == grade)
    return paginate(query.order_by(models.Student.name, models.Student.id), skip=skip, limit=limit)


def get_existing_student_ids(db: Session, student_ids: Iterable[int]) -> set:
    ids = list(set(student_ids))
    if not ids:
        return set()
    return {row.id for row in db.query(models.Student.id).filter(models.Student.id.in_(ids)).all()}


def create_student(db: Session, student: schemas.StudentCreate) -> models.Student:
    db_student = models.Student(name=student.name, grade=student.grade, user_id=student.user_id)
    db.add(db_student)
    db.commit()
    db.refresh(db_student)
    return db_student


# ==========================================
# ASSESSMENTS
# ==========================================

def get_assessment(db: Session, assessment_id: int) -> Optional[models.Assessment]:
    return db.query(models.Assessment).filter(models.Assessment.id == assessment_id).first()


def query_assessments(
    db: Session,
    question_paper_id: Optional[int] = None,
    assigned_by: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Assessment], int]:
    query = db.query(models.Assessment)
    if question_paper_id:
        query = query.filter(models.Assessment.question_paper_id == question_paper_id)
    if assigned_by:
        query = query.filter(models.Assessment.assigned_by == assigned_by)
    return paginate(query.order_by(models.Assessment.id), skip=skip, limit=limit)


def get_student_assessments(db: Session, assessment_id: int) -> List[models.StudentAssessment]:
    return db.query(models.StudentAssessment).filter(
        models.StudentAssessment.assessment_id == assessment_id
    ).order_by(models.StudentAssessment.id).all()


def get_student_assessment(db: Session, assessment_id: int, student_id: int) -> Optional[models.StudentAssessment]:
    return db.query(models.StudentAssessment).filter(
        models.StudentAssessment.assessment_id == assessment_id,
        models.StudentAssessment.student_id == student_id,
    ).first()


def get_assessments_for_student(db: Session, student_id: int) -> List[models.StudentAssessment]:
    return db.query(models.StudentAssessment).filter(
        models.StudentAssessment.student_id == student_id
    ).order_by(models.StudentAssessment.id.desc()).all()


# ==========================================
# TEMPLATES
# ==========================================

def get_template(db: Session, template_id: int) -> Optional[models.Template]:
    return db.query(models.Template).filter(models.Template.id == template_id).first()


def query_templates(
    db: Session,
    topic_id: Optional[int] = None,
    grade_id: Optional[int] = None,
    subject_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Template], int]:
    """Templates ordered by title"""
    query = db.query(models.Template)
    if topic_id:
        query = query.filter(models.Template.topic_id == topic_id)
    if grade_id:
        query = query.filter(models.Template.grade_id == grade_id)
    if subject_id:
        query = query.filter(models.Template.subject_id == subject_id)
    return paginate(query.order_by(models.Template.title, models.Template.id), skip=skip, limit=limit)


def create_template(db: Session, template: schemas.TemplateCreate, created_by: int) -> models.Template:
    db_template = models.Template(**template.model_dump(), created_by=created_by)
    db.add(db_template)
    db.commit()
    db.refresh(db_template)
    return db_template


def update_template(db: Session, db_template: models.Template, template: schemas.TemplateUpdate) -> models.Template:
    for field, value in template.model_dump(exclude_unset=True).items():
        setattr(db_template, field, value)
    db.commit()
    db.refresh(db_template)
    return db_template


def delete_template(db: Session, db_template: models.Template) -> None:
    db.delete(db_template)
    db.commit()


# ==========================================
# ANNEXURES
# ==========================================

def get_annexure(db: Session, annexure_id: int) -> Optional[models.Annexure]:
    return db.query(models.Annexure).filter(models.Annexure.id == annexure_id).first()


def query_annexures(
    db: Session,
    subject_id: Optional[int] = None,
    file_type: Optional[str] = None,
    created_by: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Annexure], int]:
    query = db.query(models.Annexure)
    if subject_id:
        query = query.filter(models.Annexure.subject_id == subject_id)
    if file_type:
        query = query.filter(models.Annexure.file_type == file_type)
    if created_by:
        query = query.filter(models.Annexure.created_by == created_by)
    return paginate(query.order_by(models.Annexure.name, models.Annexure.id), skip=skip, limit=limit)
