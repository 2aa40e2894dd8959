"""Change detection for report documents."""

import json
from typing import Any

from src.schemas.report_document import ReportDocument, ReportRowDraft
from src.utils.report_text import safe_str


def _quantity(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    return value


def _compact_row(row: ReportRowDraft) -> dict[str, Any]:
    return {
        "category": safe_str(row.category),
        "description": safe_str(row.description),
        "operators": safe_str(row.legacy_operators_text),
        "hours": safe_str(row.legacy_hours_text),
        "planned": _quantity(row.planned_quantity),
        "produced": _quantity(row.produced_quantity),
        "note": safe_str(row.note),
        "activity_reference_id": str(row.activity_reference_id) if row.activity_reference_id else None,
        "assignments": [
            {
                "operator_id": str(a.operator_id),
                "label": safe_str(a.label),
                "raw_hours_text": safe_str(a.raw_hours_text),
                "parsed_hours": a.parsed_hours,
                "line_index": a.line_index,
            }
            for a in row.operator_assignments
        ],
    }


def build_signature(document: ReportDocument) -> str:
    """
    Opaque string that changes whenever saved content would change.

    Row ids, report id and timestamps are excluded, so a document reloaded
    after a save signs the same as the one that was saved.
    """
    payload = {
        "author_id": str(document.author_id) if document.author_id else "",
        "crew_role": document.crew_role.value if document.crew_role else "",
        "report_date": document.report_date.isoformat() if document.report_date else "",
        "status": document.status.value if document.status else "",
        "site_code": safe_str(document.site_code),
        "contract_code": safe_str(document.contract_code),
        "rows": [_compact_row(r) for r in document.rows],
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def has_meaningful_content(document: ReportDocument) -> bool:
    """False for a report nobody has typed anything into yet."""
    if safe_str(document.site_code) or safe_str(document.contract_code):
        return True

    for row in document.rows:
        if row.operator_assignments:
            return True
        if (
            safe_str(row.description)
            or safe_str(row.category)
            or safe_str(row.note)
            or safe_str(row.legacy_operators_text)
            or safe_str(row.legacy_hours_text)
            or _quantity(row.planned_quantity) is not None
            or _quantity(row.produced_quantity) is not None
        ):
            return True
    return False
