"""
SQLAlchemy models for the question bank and question papers
User → Question (→ sub-questions) → QuestionPaper → Assessment → StudentAssessment

Foreign-key cascades are declared here and enforced by the database;
application code never deletes dependent rows by hand.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from database.database import Base


class UserRole(str, enum.Enum):
    """Roles carried in the identity context"""
    TEACHER = "teacher"
    ADMIN = "admin"
    STUDENT = "student"


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, enum.Enum):
    """Question formats; extend by adding members."""
    MULTIPLE_CHOICE = "multiple-choice"
    SHORT_ANSWER = "short-answer"
    LONG_ANSWER = "long-answer"
    TRUE_FALSE = "true-false"
    ESSAY = "essay"
    CALCULATION = "calculation"


class CognitiveLevel(str, enum.Enum):
    KNOWLEDGE = "knowledge"
    COMPREHENSION = "comprehension"
    APPLICATION = "application"
    ANALYSIS = "analysis"
    SYNTHESIS = "synthesis"
    EVALUATION = "evaluation"


class AssessmentStatus(str, enum.Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MARKED = "marked"


# ==========================================
# AUTH: USERS
# ==========================================

class User(Base):
    """
    Author / assigner identity.
    Credentials are managed outside this service; tokens carry the user id as `sub`.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default=UserRole.TEACHER.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


# ==========================================
# REFERENCE DATA: GRADE, SUBJECT, TOPIC
# ==========================================

class Grade(Base):
    """School grade (e.g. '8', '9', '10')."""
    __tablename__ = "grades"

    id = Column(Integer, primary_key=True, index=True)
    level = Column(String(10), nullable=False)
    description = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<Grade(id={self.id}, level='{self.level}')>"


class Subject(Base):
    """Academic subject (e.g. 'Mathematics', 'Physical Sciences')."""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)

    topics = relationship("Topic", back_populates="subject", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Subject(id={self.id}, name='{self.name}')>"


class Topic(Base):
    """Topic within a subject for one grade."""
    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    grade_id = Column(Integer, ForeignKey("grades.id", ondelete="CASCADE"), nullable=False, index=True)

    subject = relationship("Subject", back_populates="topics")
    grade = relationship("Grade")

    def __repr__(self):
        return f"<Topic(id={self.id}, name='{self.name}', subject_id={self.subject_id})>"


# ==========================================
# QUESTION BANK
# ==========================================

class Question(Base):
    """
    Reusable question.
    parent_id NULL → top-level question; otherwise a sub-question of exactly one parent.
    Hierarchy is two levels deep: a sub-question never has children of its own.
    Content may be any subset of text / markup / table_data / image_url.
    """
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(20), nullable=True)  # display label, e.g. '1', '2.1'
    description = Column(Text, nullable=True)
    text = Column(Text, nullable=True)
    markup = Column(Text, nullable=True)  # LaTeX-like markup, rendered verbatim
    table_data = Column(JSON, nullable=True)  # {"headers": [...], "rows": [[...]]} or a serialized string
    image_url = Column(Text, nullable=True)
    difficulty = Column(String(20), nullable=False)
    marks = Column(Integer, nullable=False, default=0)
    type = Column(String(50), nullable=False)
    cognitive_level = Column(String(50), nullable=True)
    memo = Column(Text, nullable=True)
    topic_id = Column(Integer, ForeignKey("topics.id", ondelete="SET NULL"), nullable=True, index=True)
    parent_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    topic = relationship("Topic")
    author = relationship("User")

    def __repr__(self):
        return f"<Question(id={self.id}, number='{self.number}', parent_id={self.parent_id})>"


class QuestionAddendum(Base):
    """Supplementary file attached to a question (opaque object-store metadata)."""
    __tablename__ = "question_addendums"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_type = Column(String(50), nullable=False)  # pdf | document | image
    file_url = Column(Text, nullable=False)
    thumbnail_url = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ==========================================
# QUESTION PAPERS
# ==========================================

class QuestionPaper(Base):
    """
    Ordered collection of questions for one assessment event.
    version is bumped on every update and guards the entry replace against stale writers.
    """
    __tablename__ = "question_papers"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)
    grade_id = Column(Integer, ForeignKey("grades.id", ondelete="SET NULL"), nullable=True, index=True)
    assessment_type = Column(String(50), nullable=True)  # exam | test | quiz | ...
    assessment_date = Column(Date, nullable=True)
    instructions = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    subject = relationship("Subject")
    grade = relationship("Grade")
    entries = relationship("PaperEntry", back_populates="paper", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<QuestionPaper(id={self.id}, title='{self.title}', version={self.version})>"


class PaperEntry(Base):
    """Join record binding a Question to a QuestionPaper with a 1-based display order."""
    __tablename__ = "question_paper_questions"

    id = Column(Integer, primary_key=True, index=True)
    question_paper_id = Column(Integer, ForeignKey("question_papers.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column("question_order", Integer, nullable=False)

    paper = relationship("QuestionPaper", back_populates="entries")

    def __repr__(self):
        return f"<PaperEntry(paper={self.question_paper_id}, question={self.question_id}, order={self.order})>"


class PaperAddendum(Base):
    """Supplementary file attached to a question paper."""
    __tablename__ = "paper_addendums"

    id = Column(Integer, primary_key=True, index=True)
    question_paper_id = Column(Integer, ForeignKey("question_papers.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_type = Column(String(50), nullable=False)
    file_url = Column(Text, nullable=False)
    thumbnail_url = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ==========================================
# STUDENTS & ASSESSMENTS
# ==========================================

class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    grade = Column(String(10), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}')>"


class Assessment(Base):
    """A question paper assigned to a set of students."""
    __tablename__ = "assessments"

    id = Column(Integer, primary_key=True, index=True)
    question_paper_id = Column(Integer, ForeignKey("question_papers.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    assigned_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)

    question_paper = relationship("QuestionPaper")
    student_assessments = relationship("StudentAssessment", back_populates="assessment", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Assessment(id={self.id}, question_paper_id={self.question_paper_id})>"


class StudentAssessment(Base):
    """One student's completion record for one Assessment. score is only meaningful once completed/marked."""
    __tablename__ = "student_assessments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    assessment_id = Column(Integer, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=AssessmentStatus.ASSIGNED.value)
    score = Column(Integer, nullable=True)
    total_marks = Column(Integer, nullable=True)
    confidence_rating = Column(Integer, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    assessment = relationship("Assessment", back_populates="student_assessments")
    student = relationship("Student")

    def __repr__(self):
        return f"<StudentAssessment(student={self.student_id}, assessment={self.assessment_id}, status='{self.status}')>"


# ==========================================
# LIBRARY: TEMPLATES & ANNEXURES
# ==========================================

class Template(Base):
    """Reusable paper cover / layout template, optionally scoped to a subject, grade or topic."""
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    subtitle = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)
    grade_id = Column(Integer, ForeignKey("grades.id", ondelete="SET NULL"), nullable=True, index=True)
    topic_id = Column(Integer, ForeignKey("topics.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Template(id={self.id}, title='{self.title}')>"


class Annexure(Base):
    """Subject-level file in the annexure library (data sheets, formula sheets, maps)."""
    __tablename__ = "annexures"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)
    file_type = Column(String(50), nullable=False)  # pdf | document | image
    file_url = Column(Text, nullable=False)
    thumbnail_url = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Annexure(id={self.id}, name='{self.name}', file_type='{self.file_type}')>"
