import itertools
from types import SimpleNamespace

from papers.statistics import compute_statistics, sort_results


def _record(status, score=None, student_id=None):
    return {"status": status, "score": score, "student_id": student_id}


def test_mixed_completion_summary():
    records = [_record("completed", 80), _record("completed", 60), _record("assigned")]

    stats = compute_statistics(records)

    assert stats.total_students == 3
    assert stats.completed_count == 2
    assert stats.completion_rate_percent == 66.67
    assert stats.average_score == 70
    assert stats.highest_score == 80
    assert stats.lowest_score == 60


def test_empty_input_is_all_zero():
    stats = compute_statistics([])
    assert stats.model_dump() == {
        "total_students": 0,
        "completed_count": 0,
        "scored_count": 0,
        "completion_rate_percent": 0,
        "average_score": 0,
        "highest_score": 0,
        "lowest_score": 0,
    }


def test_result_does_not_depend_on_order():
    records = [
        _record("marked", 41), _record("completed", 77), _record("in_progress"),
        _record("completed", None), _record("assigned"),
    ]
    expected = compute_statistics(records)
    for permutation in itertools.permutations(records):
        assert compute_statistics(list(permutation)) == expected
    assert compute_statistics(records) == expected


def test_ungraded_completions_do_not_lower_the_average():
    records = [_record("completed", 90), _record("completed", None), _record("marked", None)]

    stats = compute_statistics(records)

    assert stats.completed_count == 3
    assert stats.scored_count == 1
    assert stats.average_score == 90
    assert stats.lowest_score == 90


def test_completed_without_scores_resets_lowest_to_zero():
    stats = compute_statistics([_record("completed"), _record("assigned")])
    assert stats.completion_rate_percent == 50
    assert stats.average_score == 0
    assert stats.lowest_score == 0


def test_scores_outside_completed_states_are_ignored():
    stats = compute_statistics([_record("in_progress", 99), _record("completed", 10)])
    assert stats.highest_score == 10
    assert stats.scored_count == 1


def test_accepts_orm_like_objects():
    records = [SimpleNamespace(status="marked", score=12), SimpleNamespace(status="assigned", score=None)]
    stats = compute_statistics(records)
    assert (stats.total_students, stats.completed_count, stats.average_score) == (2, 1, 12)


def test_average_is_rounded_to_two_places():
    records = [_record("completed", 1), _record("completed", 1), _record("completed", 2)]
    assert compute_statistics(records).average_score == 1.33


def test_sort_results_score_descending_unscored_last_stable():
    records = [
        _record("assigned", None, 1),
        _record("completed", 50, 2),
        _record("completed", 80, 3),
        _record("completed", None, 4),
        _record("marked", 50, 5),
    ]
    assert [r["student_id"] for r in sort_results(records)] == [3, 2, 5, 1, 4]
