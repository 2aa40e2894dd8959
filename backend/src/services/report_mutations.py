"""
Pure edits over a report's row list.

Every function takes the current rows and returns a new list; the input is
never mutated and untouched rows are shared between the two lists. No I/O.
"""

from typing import Any, Mapping, Optional, Sequence
from uuid import UUID

from src.exceptions import ReportValidationError
from src.schemas.report_document import (
    OperatorAssignment,
    OperatorRef,
    ReportRowDraft,
    new_temp_id,
)
from src.utils.report_text import parse_hours, safe_str

Rows = list[ReportRowDraft]

EDITABLE_FIELDS = frozenset(
    {
        "category",
        "description",
        "legacy_operators_text",
        "planned_quantity",
        "produced_quantity",
        "note",
        "activity_reference_id",
    }
)

TOGGLE_ACTIONS = ("toggle", "add", "remove")


def _in_range(rows: Sequence[Any], index: int) -> bool:
    return 0 <= index < len(rows)


def _replace(rows: Sequence[ReportRowDraft], index: int, row: ReportRowDraft) -> Rows:
    out = list(rows)
    out[index] = row
    return out


def _same_operator(a: Any, b: Any) -> bool:
    return str(a) == str(b)


def add_row(rows: Sequence[ReportRowDraft], template: Optional[Mapping[str, Any]] = None) -> Rows:
    """Append a row, optionally prefilled from a catalog activity."""
    template = template or {}
    activity_id = template.get("activity_reference_id") or template.get("id")

    row = ReportRowDraft(
        id=new_temp_id(),
        category=safe_str(template.get("category")),
        description=safe_str(template.get("description")),
        planned_quantity=template.get("planned_quantity"),
        note=safe_str(template.get("note")),
        activity_reference_id=UUID(str(activity_id)) if activity_id else None,
        operator_assignments=[],
    )
    return [*rows, row]


def remove_row(rows: Sequence[ReportRowDraft], index: int) -> Rows:
    if not _in_range(rows, index):
        return list(rows)
    return [r for i, r in enumerate(rows) if i != index]


def update_cell(rows: Sequence[ReportRowDraft], index: int, field: str, value: Any) -> Rows:
    """Set one editable field. Legacy hours go through set_legacy_hours."""
    if field not in EDITABLE_FIELDS:
        raise ReportValidationError(f"Field is not editable: {field}", details={"field": field})
    if not _in_range(rows, index):
        return list(rows)
    if field == "legacy_operators_text" and rows[index].has_assignments:
        # derived from assignments while they exist
        return list(rows)

    if field == "activity_reference_id" and value:
        try:
            value = value if isinstance(value, UUID) else UUID(str(value))
        except ValueError as e:
            raise ReportValidationError(
                "Invalid activity reference", details={"field": field, "value": str(value)}
            ) from e
    elif field in ("category", "description", "legacy_operators_text", "note"):
        value = "" if value is None else str(value)

    return _replace(rows, index, rows[index].model_copy(update={field: value}))


def add_operator_assignment(rows: Sequence[ReportRowDraft], row_index: int, operator: Any) -> Rows:
    """Append an operator line. No-op for duplicates or unresolvable operators."""
    ref = OperatorRef.from_any(operator)
    if ref is None or not _in_range(rows, row_index):
        return list(rows)

    row = rows[row_index]
    if any(_same_operator(a.operator_id, ref.id) for a in row.operator_assignments):
        return list(rows)

    item = OperatorAssignment(
        operator_id=ref.id,
        label=ref.label,
        raw_hours_text="",
        parsed_hours=None,
        line_index=len(row.operator_assignments),
    )
    return _replace(rows, row_index, row.with_assignments([*row.operator_assignments, item]))


def remove_operator_assignment(rows: Sequence[ReportRowDraft], row_index: int, operator_id: Any) -> Rows:
    """Remove an operator line and renumber the rest 0..n-1 in order."""
    if not operator_id or not _in_range(rows, row_index):
        return list(rows)

    row = rows[row_index]
    kept = [a for a in row.operator_assignments if not _same_operator(a.operator_id, operator_id)]
    if len(kept) == len(row.operator_assignments):
        return list(rows)

    reindexed = [a.model_copy(update={"line_index": i}) for i, a in enumerate(kept)]
    return _replace(rows, row_index, row.with_assignments(reindexed))


def set_assignment_hours(
    rows: Sequence[ReportRowDraft], row_index: int, line_index: int, raw_text: Any
) -> Rows:
    """Store raw hours for one operator line; negative or invalid parse to None."""
    if not _in_range(rows, row_index):
        return list(rows)

    row = rows[row_index]
    items = list(row.operator_assignments)
    if not _in_range(items, line_index):
        return list(rows)

    raw = safe_str(raw_text)
    items[line_index] = items[line_index].model_copy(
        update={
            "raw_hours_text": raw,
            "parsed_hours": parse_hours(raw),
            "line_index": line_index,
        }
    )
    return _replace(rows, row_index, row.with_assignments(items))


def _toggle(rows: Sequence[ReportRowDraft], row_index: int, operator: Any, action: str) -> Rows:
    ref = OperatorRef.from_any(operator)
    if ref is None or not _in_range(rows, row_index):
        return list(rows)

    if action == "remove":
        return remove_operator_assignment(rows, row_index, ref.id)

    exists = any(_same_operator(a.operator_id, ref.id) for a in rows[row_index].operator_assignments)
    if exists and action != "add":
        return remove_operator_assignment(rows, row_index, ref.id)
    if not exists:
        return add_operator_assignment(rows, row_index, ref)
    return list(rows)


def toggle_operator_assignment(
    rows: Sequence[ReportRowDraft], row_index: int, first: Any, second: Any = None
) -> Rows:
    """
    Add the operator when absent, remove it when present.

    Callers pass either ``(operator, action)`` or ``(action, operator)``;
    a string argument is the action. Actions: "toggle" (default), "add",
    "remove".
    """
    if isinstance(first, str):
        action, operator = first, second
    else:
        operator, action = first, second

    act = safe_str(action).lower() or "toggle"
    if act not in TOGGLE_ACTIONS:
        raise ReportValidationError(f"Unknown operator action: {action}", details={"action": action})
    return _toggle(rows, row_index, operator, act)


def set_legacy_hours(rows: Sequence[ReportRowDraft], row_index: int, value: Any) -> Rows:
    """Edit free-text hours. Locked once the row has canonical assignments."""
    if not _in_range(rows, row_index):
        return list(rows)
    row = rows[row_index]
    if row.has_assignments:
        return list(rows)
    return _replace(rows, row_index, row.model_copy(update={"legacy_hours_text": "" if value is None else str(value)}))
