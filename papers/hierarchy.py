"""
Question Hierarchy Assembly

Attaches ordered sub-questions to a page of top-level questions.
Sub-questions for the whole page are fetched in one batch; assembly is
best-effort, so a failed fetch leaves every parent with an empty list.
"""

import logging
import re
from collections import defaultdict
from typing import Any, Callable, Dict, List, Sequence, Tuple

from papers.content_normalizer import normalize_questions
from papers.schemas import ComposedQuestion

log = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"(\d+)")

SubQuestionFetcher = Callable[[List[int]], Sequence[Any]]


def natural_key(number: Any) -> Tuple:
    """
    Sort key for question numbers: digit runs compare as integers,
    everything else case-insensitively, so "2" < "10" and "2.1" < "2.10".
    Missing numbers sort after every labelled question.
    """
    if number is None or str(number).strip() == "":
        return (1, ())
    tokens = []
    for part in _TOKEN_RE.split(str(number).strip()):
        if not part:
            continue
        if part.isdigit():
            tokens.append((0, int(part), ""))
        else:
            tokens.append((1, 0, part.lower()))
    return (0, tuple(tokens))


def order_sub_questions(sub_questions: Sequence[ComposedQuestion]) -> List[ComposedQuestion]:
    """Stable natural-order sort by number."""
    return sorted(sub_questions, key=lambda q: natural_key(q.number))


def group_by_parent(sub_questions: Sequence[ComposedQuestion]) -> Dict[int, List[ComposedQuestion]]:
    groups: Dict[int, List[ComposedQuestion]] = defaultdict(list)
    for sub in sub_questions:
        if sub.parent_id is not None:
            groups[sub.parent_id].append(sub)
    return {parent_id: order_sub_questions(subs) for parent_id, subs in groups.items()}


def assemble_hierarchy(
    questions: Sequence[ComposedQuestion],
    fetch_sub_questions: SubQuestionFetcher,
) -> List[ComposedQuestion]:
    """
    Attach sub-questions to every top-level question in the page.

    Args:
        questions: normalized questions for one page (may mix top-level and sub rows)
        fetch_sub_questions: batch fetcher taking parent ids, returning raw sub-question records

    Returns:
        The same questions, in the same order; top-level ones carry `sub_questions`.
    """
    parent_ids = [q.id for q in questions if q.parent_id is None]
    if not parent_ids:
        return list(questions)

    try:
        raw_subs = fetch_sub_questions(parent_ids)
    except Exception as e:
        log.warning("Hierarchy assembly: sub-question fetch failed for %s parents, continuing without: %s",
                    len(parent_ids), e)
        raw_subs = []

    grouped = group_by_parent(normalize_questions(raw_subs))

    assembled = []
    for question in questions:
        if question.parent_id is None:
            question = question.model_copy(update={"sub_questions": grouped.get(question.id, [])})
        assembled.append(question)
    return assembled
