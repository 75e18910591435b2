from io import BytesIO

from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.platypus import Paragraph, Preformatted, Table

from papers.content_normalizer import normalize_question
from papers.paper_exporter import build_story, generate_question_paper, render_question_paper
from papers.schemas import ResolvedPaper, ResolvedQuestion


def _resolved(order, **record):
    composed = normalize_question(record)
    return ResolvedQuestion.model_validate({**composed.model_dump(), "order": order})


def _paper(questions, **header):
    values = dict(
        id=1, title="Grade 10 Mathematics: Term 3", subject_name="Mathematics",
        grade_label="10", assessment_type="test", instructions=None,
        questions=questions, total_marks=sum(q.marks or 0 for q in questions),
    )
    values.update(header)
    return ResolvedPaper(**values)


def _texts(story):
    return [f.getPlainText() for f in story if isinstance(f, Paragraph)]


def test_total_line_is_last_and_right_aligned():
    paper = _paper([_resolved(1, id=3, number="1", marks=4), _resolved(2, id=5, number="2", marks=6)])

    story, total = build_story(paper)

    assert total == 10
    last = story[-1]
    assert isinstance(last, Paragraph)
    assert last.getPlainText() == "Total: 10 marks"
    assert last.style.alignment == TA_RIGHT


def test_header_uses_number_or_position_and_zero_for_missing_marks():
    paper = _paper([
        _resolved(1, id=1, number="1", marks=4),
        _resolved(2, id=2, number=None, marks=None),
    ])

    story, total = build_story(paper)
    texts = _texts(story)

    assert "Question 1 [4 marks]" in texts
    assert "Question 2 [0 marks]" in texts
    assert total == 4


def test_metadata_lines_in_fixed_order_and_only_when_present():
    story, _ = build_story(_paper([], assessment_type=None))
    texts = _texts(story)

    assert texts[0] == "Grade 10 Mathematics: Term 3"
    assert story[0].style.alignment == TA_CENTER
    assert texts[1:3] == ["Subject: Mathematics", "Grade: 10"]
    assert not any(t.startswith("Type:") for t in texts)
    assert "Instructions:" not in texts


def test_instructions_block_when_present():
    story, _ = build_story(_paper([], instructions="Answer ALL questions.\nShow working."))
    texts = _texts(story)
    label = texts.index("Instructions:")
    assert texts[label + 1].startswith("Answer ALL questions.")


def test_markup_is_verbatim_fixed_width_and_text_is_escaped():
    question = _resolved(
        1, id=1, number="1", marks=3,
        text="Is 3 < 5 & 5 > 3?",
        markup="\\frac{a}{b} <b>not bold</b>",
    )
    story, _ = build_story(_paper([question]))

    assert "Is 3 < 5 & 5 > 3?" in _texts(story)
    markup = [f for f in story if isinstance(f, Preformatted)]
    assert len(markup) == 1
    assert markup[0].style.fontName == "Courier"
    assert markup[0].lines == ["\\frac{a}{b} <b>not bold</b>"]


def test_table_rendered_as_grid():
    question = _resolved(1, id=1, number="1", marks=2,
                         table_data={"headers": ["x", "y"], "rows": [["1", "2"], ["3"]]})
    story, _ = build_story(_paper([question]))

    tables = [f for f in story if isinstance(f, Table)]
    assert len(tables) == 1
    assert len(tables[0]._cellvalues) == 3
    assert all(len(row) == 2 for row in tables[0]._cellvalues)


def test_sub_questions_follow_parent_and_do_not_add_to_total():
    parent = _resolved(1, id=1, number="1", marks=10)
    subs = [
        normalize_question({"id": 11, "parent_id": 1, "number": "a", "marks": 4, "text": "Part a"}),
        normalize_question({"id": 12, "parent_id": 1, "number": None, "marks": 6, "text": "Part b"}),
    ]
    parent = parent.model_copy(update={"sub_questions": subs})
    second = _resolved(2, id=2, number="2", marks=5)

    story, total = build_story(_paper([parent, second]))
    texts = _texts(story)

    assert total == 15
    assert texts.index("Question 1 [10 marks]") < texts.index("(a) [4 marks]") \
        < texts.index("(2) [6 marks]") < texts.index("Question 2 [5 marks]")
    assert texts[-1] == "Total: 15 marks"


def test_render_writes_pdf_into_sink_and_returns_total():
    sink = BytesIO()
    total = render_question_paper(_paper([_resolved(1, id=1, number="1", marks=7, text="Solve for x")]), sink)

    assert total == 7
    assert sink.getvalue().startswith(b"%PDF")


def test_generate_question_paper_returns_rewound_buffer():
    buffer = generate_question_paper(_paper([]))
    assert buffer.tell() == 0
    assert buffer.read(4) == b"%PDF"


def test_table_without_columns_is_skipped():
    stored = _resolved(1, id=1, number="1", marks=2, text="See below",
                       table_data={"headers": [], "rows": [[]]})
    forced = stored.model_copy(update={
        "content_types": stored.content_types.model_copy(update={"has_table": True}),
    })

    story, total = build_story(_paper([forced]))

    assert total == 2
    assert not any(isinstance(f, Table) for f in story)
    assert generate_question_paper(_paper([stored])).read(4) == b"%PDF"
