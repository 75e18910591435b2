from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from conftest import as_current, make_question
from database import models, schemas
from papers import composer
from papers.errors import ConflictError, PermissionDeniedError, ReferentialError, StoreError, ValidationError


def _entry(question_id, order, entry_id=None):
    return SimpleNamespace(id=entry_id, question_id=question_id, order=order)


def _paper_payload(subject, grade, question_ids, **extra):
    return schemas.QuestionPaperCreate(
        title="Term 3 Test", subject_id=subject.id, grade_id=grade.id,
        assessment_type="test", questions=question_ids, **extra,
    )


def _entry_pairs(db, paper_id):
    return [(e.question_id, e.order) for e in composer.crud.get_paper_entries(db, paper_id)]


# ─── Pure resolution ───────────────────────────────────────────────────────────

def test_resolve_entries_orders_by_order_and_totals_marks():
    entries = [_entry(5, 2), _entry(3, 1)]
    questions = {3: {"id": 3, "marks": 4}, 5: {"id": 5, "marks": 6}}

    resolved = composer.resolve_entries(entries, questions)

    assert [q.id for q in resolved] == [3, 5]
    assert [q.order for q in resolved] == [1, 2]
    assert composer.total_marks(resolved) == 10


def test_dangling_entry_is_omitted_and_order_kept(caplog):
    entries = [_entry(1, 1), _entry(99, 2), _entry(2, 3)]
    questions = {1: {"id": 1, "marks": 2}, 2: {"id": 2, "marks": 3}}

    resolved = composer.resolve_entries(entries, questions)

    assert [q.id for q in resolved] == [1, 2]
    assert "question 99 skipped" in caplog.text


def test_equal_orders_keep_given_sequence():
    entries = [_entry(7, 1), _entry(4, 1), _entry(9, 1)]
    questions = {i: {"id": i, "marks": 1} for i in (4, 7, 9)}
    assert [q.id for q in composer.resolve_entries(entries, questions)] == [7, 4, 9]


def test_total_marks_counts_missing_as_zero():
    assert composer.total_marks([SimpleNamespace(marks=5), SimpleNamespace(marks=None), SimpleNamespace(marks=3)]) == 8
    assert composer.total_marks([]) == 0


def test_dangling_reference_policy_table():
    assert composer.DANGLING_REFERENCE_POLICY == {
        "create_question_paper": "fail",
        "update_question_paper": "fail",
        "create_question": "fail",
        "create_assessment": "fail",
        "resolve_paper": "omit",
        "assemble_sub_questions": "omit",
    }


# ─── Create ────────────────────────────────────────────────────────────────────

def test_create_paper_orders_entries_by_position(db, teacher, subject, grade):
    q1 = make_question(db, teacher, number="1", marks=4)
    q2 = make_question(db, teacher, number="2", marks=6)

    paper = composer.create_question_paper(db, _paper_payload(subject, grade, [q2.id, q1.id]), as_current(teacher))

    assert paper.version == 1
    assert paper.created_by == teacher.id
    assert _entry_pairs(db, paper.id) == [(q2.id, 1), (q1.id, 2)]

    resolved = composer.resolve_paper(db, paper.id)
    assert [q.id for q in resolved.questions] == [q2.id, q1.id]
    assert resolved.total_marks == 10
    assert resolved.subject_name == "Mathematics"
    assert resolved.grade_label == "10"


@pytest.mark.parametrize("missing", ["title", "subject_id", "grade_id"])
def test_create_requires_header_fields(db, teacher, subject, grade, missing):
    payload = _paper_payload(subject, grade, []).model_copy(update={missing: None})
    with pytest.raises(ValidationError):
        composer.create_question_paper(db, payload, as_current(teacher))
    assert db.query(models.QuestionPaper).count() == 0


def test_create_with_unknown_question_writes_nothing(db, teacher, subject, grade):
    q1 = make_question(db, teacher)

    with pytest.raises(ReferentialError) as exc:
        composer.create_question_paper(db, _paper_payload(subject, grade, [q1.id, 4040]), as_current(teacher))

    assert exc.value.missing_ids == [4040]
    assert db.query(models.QuestionPaper).count() == 0
    assert db.query(models.PaperEntry).count() == 0


def test_duplicate_question_is_kept_with_warning(db, teacher, subject, grade, caplog):
    q1 = make_question(db, teacher, marks=3)

    paper = composer.create_question_paper(db, _paper_payload(subject, grade, [q1.id, q1.id]), as_current(teacher))

    assert _entry_pairs(db, paper.id) == [(q1.id, 1), (q1.id, 2)]
    assert "more than once" in caplog.text
    assert composer.resolve_paper(db, paper.id).total_marks == 6


def test_store_failure_rolls_back_create(db, teacher, subject, grade, monkeypatch):
    q1 = make_question(db, teacher)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(StoreError):
        composer.create_question_paper(db, _paper_payload(subject, grade, [q1.id]), as_current(teacher))
    monkeypatch.undo()

    assert db.query(models.QuestionPaper).count() == 0
    assert db.query(models.PaperEntry).count() == 0


# ─── Update ────────────────────────────────────────────────────────────────────

@pytest.fixture
def paper_with_questions(db, teacher, subject, grade):
    questions = [make_question(db, teacher, number=str(i), marks=i) for i in (1, 2, 3)]
    paper = composer.create_question_paper(
        db, _paper_payload(subject, grade, [q.id for q in questions]), as_current(teacher)
    )
    return paper, questions


def test_update_replaces_entries_and_bumps_version(db, teacher, paper_with_questions):
    paper, (q1, q2, q3) = paper_with_questions
    update = schemas.QuestionPaperUpdate(
        title="Term 3 Test (revised)",
        questions=[{"id": q3.id, "order": 5}, {"id": q1.id}],
        version=1,
    )

    updated = composer.update_question_paper(db, paper.id, update, as_current(teacher))

    assert updated.version == 2
    assert updated.title == "Term 3 Test (revised)"
    assert _entry_pairs(db, paper.id) == [(q1.id, 2), (q3.id, 5)]


def test_update_without_questions_keeps_entries(db, teacher, paper_with_questions):
    paper, questions = paper_with_questions
    before = _entry_pairs(db, paper.id)

    composer.update_question_paper(db, paper.id, schemas.QuestionPaperUpdate(instructions="Answer all"), as_current(teacher))

    assert _entry_pairs(db, paper.id) == before


def test_update_with_empty_list_clears_entries(db, teacher, paper_with_questions):
    paper, _ = paper_with_questions
    composer.update_question_paper(db, paper.id, schemas.QuestionPaperUpdate(questions=[]), as_current(teacher))
    assert _entry_pairs(db, paper.id) == []


def test_stale_version_is_rejected_and_entries_unchanged(db, teacher, paper_with_questions):
    paper, (q1, _, _) = paper_with_questions
    composer.update_question_paper(db, paper.id, schemas.QuestionPaperUpdate(instructions="v2"), as_current(teacher))
    before = _entry_pairs(db, paper.id)

    with pytest.raises(ConflictError):
        composer.update_question_paper(
            db, paper.id, schemas.QuestionPaperUpdate(questions=[{"id": q1.id}], version=1), as_current(teacher)
        )

    assert _entry_pairs(db, paper.id) == before
    assert composer.crud.get_paper(db, paper.id).version == 2


def test_invalid_order_is_rejected_before_writing(db, teacher, paper_with_questions):
    paper, (q1, _, _) = paper_with_questions
    before = _entry_pairs(db, paper.id)

    with pytest.raises(ValidationError):
        composer.update_question_paper(
            db, paper.id, schemas.QuestionPaperUpdate(questions=[{"id": q1.id, "order": 0}]), as_current(teacher)
        )
    assert _entry_pairs(db, paper.id) == before


def test_update_with_unknown_question_fails(db, teacher, paper_with_questions):
    paper, (q1, _, _) = paper_with_questions
    with pytest.raises(ReferentialError):
        composer.update_question_paper(
            db, paper.id, schemas.QuestionPaperUpdate(questions=[{"id": q1.id}, {"id": 777}]), as_current(teacher)
        )
    assert len(_entry_pairs(db, paper.id)) == 3


def test_only_creator_or_admin_may_update(db, other_teacher, admin, paper_with_questions):
    paper, _ = paper_with_questions

    with pytest.raises(PermissionDeniedError):
        composer.update_question_paper(db, paper.id, schemas.QuestionPaperUpdate(title="Hijacked"), as_current(other_teacher))
    assert composer.crud.get_paper(db, paper.id).title == "Term 3 Test"

    updated = composer.update_question_paper(db, paper.id, schemas.QuestionPaperUpdate(title="Moderated"), as_current(admin))
    assert updated.title == "Moderated"


# ─── Resolve / delete ──────────────────────────────────────────────────────────

def test_resolve_paper_attaches_sub_questions(db, teacher, subject, grade):
    parent = make_question(db, teacher, number="1", marks=10)
    make_question(db, teacher, number="1.10", marks=4, parent_id=parent.id)
    make_question(db, teacher, number="1.2", marks=6, parent_id=parent.id)
    paper = composer.create_question_paper(db, _paper_payload(subject, grade, [parent.id]), as_current(teacher))

    resolved = composer.resolve_paper(db, paper.id)

    assert [s.number for s in resolved.questions[0].sub_questions] == ["1.2", "1.10"]
    assert resolved.total_marks == 10


def test_deleting_a_question_drops_its_entries(db, teacher, paper_with_questions):
    paper, (q1, q2, q3) = paper_with_questions
    db.delete(q2)
    db.commit()

    resolved = composer.resolve_paper(db, paper.id)
    assert [q.id for q in resolved.questions] == [q1.id, q3.id]
    assert resolved.total_marks == 4


def test_resolve_paper_skips_entry_whose_question_vanished(db, teacher, paper_with_questions, monkeypatch, caplog):
    paper, (q1, q2, q3) = paper_with_questions
    fetch = composer.crud.get_questions_by_ids

    # entry row still stored, question gone by the time it is read
    def fetch_without_q2(session, ids):
        return {qid: q for qid, q in fetch(session, ids).items() if qid != q2.id}

    monkeypatch.setattr(composer.crud, "get_questions_by_ids", fetch_without_q2)
    with caplog.at_level("WARNING"):
        resolved = composer.resolve_paper(db, paper.id)

    assert len(_entry_pairs(db, paper.id)) == 3
    assert [q.id for q in resolved.questions] == [q1.id, q3.id]
    assert [q.order for q in resolved.questions] == [1, 3]
    assert resolved.total_marks == 4
    assert f"question {q2.id} skipped" in caplog.text


def test_delete_paper(db, teacher, other_teacher, paper_with_questions):
    paper, _ = paper_with_questions
    paper_id = paper.id

    with pytest.raises(PermissionDeniedError):
        composer.delete_question_paper(db, paper_id, as_current(other_teacher))

    composer.delete_question_paper(db, paper_id, as_current(teacher))
    assert db.query(models.QuestionPaper).count() == 0
    assert db.query(models.PaperEntry).count() == 0
