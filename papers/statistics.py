"""
Assessment Statistics

Reduces one assessment's StudentAssessment records to summary metrics and
orders the records for display. Pure functions; records may be ORM rows or mappings.
"""

from typing import Any, Iterable, List, Mapping, Sequence

from database.models import AssessmentStatus
from papers.schemas import AssessmentStatistics

COMPLETED_STATUSES = {AssessmentStatus.COMPLETED.value, AssessmentStatus.MARKED.value}


def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _status(record: Any) -> str:
    status = _get(record, "status")
    return status.value if isinstance(status, AssessmentStatus) else status


def is_completed(record: Any) -> bool:
    return _status(record) in COMPLETED_STATUSES


def compute_statistics(records: Iterable[Any]) -> AssessmentStatistics:
    """
    Summary metrics for one assessment.

    Only completed/marked records with a score feed the score metrics, so an
    ungraded completion raises completed_count without dragging the average down.
    """
    total_students = 0
    completed_count = 0
    scored_count = 0
    total_score = 0
    highest_score = 0
    lowest_score = float("inf")

    for record in records:
        total_students += 1
        if not is_completed(record):
            continue
        completed_count += 1
        score = _get(record, "score")
        if score is None:
            continue
        scored_count += 1
        total_score += score
        highest_score = max(highest_score, score)
        lowest_score = min(lowest_score, score)

    if lowest_score == float("inf"):
        lowest_score = 0

    average_score = round(total_score / scored_count, 2) if scored_count else 0
    completion_rate = round(completed_count / total_students * 100, 2) if total_students else 0

    return AssessmentStatistics(
        total_students=total_students,
        completed_count=completed_count,
        scored_count=scored_count,
        completion_rate_percent=completion_rate,
        average_score=average_score,
        highest_score=highest_score,
        lowest_score=int(lowest_score),
    )


def sort_results(records: Sequence[Any]) -> List[Any]:
    """Score descending, unscored last; ties keep input order."""
    scored = [r for r in records if _get(r, "score") is not None]
    unscored = [r for r in records if _get(r, "score") is None]
    return sorted(scored, key=lambda r: _get(r, "score"), reverse=True) + unscored
