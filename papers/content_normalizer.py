"""
Content Normalization

Turns a raw question record (ORM row or mapping) into a ComposedQuestion:
- table_data stored as a serialized string is parsed into TableData
- content-type flags are derived from the populated slots
- a table gets an HTML rendering for API consumers

A malformed table never fails the batch: the record keeps table_data=None,
has_table=False, and the rest of the batch is unaffected.
"""

import html
import json
import logging
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from papers.errors import ContentParseError
from papers.schemas import ComposedQuestion, ContentPayload, ContentTypeFlags, TableData

log = logging.getLogger(__name__)

QUESTION_FIELDS = (
    "id", "number", "description", "difficulty", "marks", "type", "cognitive_level",
    "memo", "topic_id", "parent_id", "created_by", "created_at", "updated_at",
)


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def parse_table_data(raw: Any) -> Optional[TableData]:
    """
    Parse stored table data.

    Accepts a dict/TableData or a JSON string. Returns None for absent data.
    Raises ContentParseError when the value cannot be read as {headers, rows}.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, TableData):
        return raw
    if isinstance(raw, (bytes, str)):
        try:
            raw = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ContentParseError(f"table_data is not valid JSON: {e}") from e
        if raw is None:
            return None
    if not isinstance(raw, Mapping):
        raise ContentParseError(f"table_data must be an object, got {type(raw).__name__}")
    try:
        return TableData.model_validate(raw)
    except PydanticValidationError as e:
        raise ContentParseError(f"table_data has the wrong shape: {e.error_count()} error(s)") from e


def table_to_html(table: Optional[TableData]) -> Optional[str]:
    """Render a table as an HTML block, header row first, order preserved."""
    if table is None or table.is_empty():
        return None

    lines = ['<table class="question-table">', "  <thead>", "    <tr>"]
    for header in table.headers:
        lines.append(f"      <th>{html.escape(header, quote=False)}</th>")
    lines += ["    </tr>", "  </thead>", "  <tbody>"]
    for row in table.rows:
        lines.append("    <tr>")
        for cell in row:
            lines.append(f"      <td>{html.escape(cell, quote=False)}</td>")
        lines.append("    </tr>")
    lines += ["  </tbody>", "</table>"]
    return "\n".join(lines)


def normalize_question(record: Any) -> ComposedQuestion:
    """Normalize one question record. Never raises for malformed content."""
    table: Optional[TableData] = None
    try:
        table = parse_table_data(_field(record, "table_data"))
    except ContentParseError as e:
        log.warning("Content normalize: question id=%s table_data dropped: %s", _field(record, "id"), e)
        table = None

    content = ContentPayload(
        text=_field(record, "text"),
        markup=_field(record, "markup"),
        table_data=table,
        image_url=_field(record, "image_url"),
    )
    flags = ContentTypeFlags(
        has_text=bool(content.text),
        has_markup=bool(content.markup),
        has_table=table is not None and not table.is_empty(),
        has_image=bool(content.image_url),
    )

    fields = {name: _field(record, name) for name in QUESTION_FIELDS}
    return ComposedQuestion(
        **fields,
        content=content,
        content_types=flags,
        table_html=table_to_html(table) if flags.has_table else None,
    )


def normalize_questions(records: Iterable[Any]) -> List[ComposedQuestion]:
    """Normalize a batch; one result per input, input order kept."""
    return [normalize_question(record) for record in records]
