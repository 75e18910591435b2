from papers.content_normalizer import normalize_questions
from papers.hierarchy import assemble_hierarchy, natural_key


def test_natural_key_orders_digit_runs_numerically():
    assert sorted(["2", "10", "1"], key=natural_key) == ["1", "2", "10"]
    assert sorted(["2.10", "2.9", "2.1"], key=natural_key) == ["2.1", "2.9", "2.10"]


def test_natural_key_is_case_insensitive_and_puts_missing_last():
    numbers = [None, "b", "A", "", "c"]
    assert sorted(numbers, key=natural_key) == ["A", "b", "c", None, ""]


def _page():
    return normalize_questions([
        {"id": 1, "number": "1", "marks": 5},
        {"id": 2, "number": "2", "marks": 3},
    ])


def test_sub_questions_attached_in_natural_order_with_one_fetch():
    calls = []

    def fetch(parent_ids):
        calls.append(list(parent_ids))
        return [
            {"id": 11, "parent_id": 1, "number": "1.10", "marks": 1},
            {"id": 12, "parent_id": 1, "number": "1.2", "marks": 1},
            {"id": 13, "parent_id": 1, "number": None, "marks": 1},
            {"id": 14, "parent_id": 1, "number": "1.1", "marks": 1},
        ]

    assembled = assemble_hierarchy(_page(), fetch)

    assert calls == [[1, 2]]
    assert [q.id for q in assembled] == [1, 2]
    assert [s.number for s in assembled[0].sub_questions] == ["1.1", "1.2", "1.10", None]
    assert assembled[1].sub_questions == []


def test_fetch_failure_leaves_every_parent_empty(caplog):
    def fetch(parent_ids):
        raise ConnectionError("store unreachable")

    assembled = assemble_hierarchy(_page(), fetch)

    assert [q.sub_questions for q in assembled] == [[], []]
    assert "sub-question fetch failed" in caplog.text


def test_no_fetch_when_page_has_no_top_level_questions():
    subs = normalize_questions([{"id": 11, "parent_id": 1, "number": "a"}])

    def fetch(parent_ids):
        raise AssertionError("should not be called")

    assert assemble_hierarchy(subs, fetch) == subs
