"""In-memory report document: the editable shape hydrated from and saved to the backend."""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.utils.report_text import join_lines, normalize_operator_label, safe_str

TEMP_ID_PREFIX = "tmp_"


class CrewRole(str, Enum):
    """Fixed job-family codes scoping a report."""

    ELECTRICIAN = "ELECTRICIAN"
    CARPENTRY = "CARPENTRY"
    ASSEMBLY = "ASSEMBLY"


class ReportStatus(str, Enum):
    """Report workflow status."""

    DRAFT = "DRAFT"
    VALIDATED_BY_FOREMAN = "VALIDATED_BY_FOREMAN"
    APPROVED_BY_OFFICE = "APPROVED_BY_OFFICE"
    RETURNED = "RETURNED"


# Quantities may hold raw user input until they are normalized on save
Quantity = Union[float, str, None]


def new_temp_id() -> str:
    """Temporary identifier for rows created client-side."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)


class OperatorRef(BaseModel):
    """An operator picked for assignment: id plus display label."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    label: str

    @classmethod
    def from_any(cls, value: Any) -> Optional["OperatorRef"]:
        """
        Build a reference from the operator shapes callers pass around.

        Accepts an OperatorRef, an ORM Operator or a mapping carrying
        ``id``/``operator_id`` and one of ``label``, ``name`` or
        ``last_name``/``first_name``. Returns None when id or label is missing.
        """
        if value is None:
            return None
        if isinstance(value, OperatorRef):
            return value

        if isinstance(value, Mapping):
            get = value.get
        else:
            def get(key: str, default: Any = None) -> Any:
                return getattr(value, key, default)

        raw_id = get("operator_id") or get("id")
        label = operator_label(
            label=get("label"),
            name=get("name"),
            first_name=get("first_name"),
            last_name=get("last_name"),
        )
        if not raw_id or not label:
            return None
        try:
            op_id = raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id))
        except ValueError:
            return None
        return cls(id=op_id, label=label)


def operator_label(
    label: Any = None, name: Any = None, first_name: Any = None, last_name: Any = None
) -> str:
    """Resolve a display label: explicit label, then "last first", then name."""
    explicit = safe_str(label)
    if explicit:
        return normalize_operator_label(explicit)
    full = f"{safe_str(last_name)} {safe_str(first_name)}".strip()
    if full:
        return normalize_operator_label(full)
    return normalize_operator_label(safe_str(name))


class OperatorAssignment(BaseModel):
    """Canonical operator line of a row."""

    model_config = ConfigDict(frozen=True)

    operator_id: UUID
    label: str = ""
    raw_hours_text: str = ""
    parsed_hours: Optional[float] = None
    line_index: int = 0


class ReportRowDraft(BaseModel):
    """One activity line of a report as held in memory."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    category: str = ""
    description: str = ""
    legacy_operators_text: str = ""
    legacy_hours_text: str = ""
    planned_quantity: Quantity = None
    produced_quantity: Quantity = None
    note: str = ""
    activity_reference_id: Optional[UUID] = None
    operator_assignments: list[OperatorAssignment] = Field(default_factory=list)

    @property
    def has_assignments(self) -> bool:
        return len(self.operator_assignments) > 0

    def with_assignments(self, assignments: Sequence[OperatorAssignment]) -> "ReportRowDraft":
        """Copy with new assignments and legacy text rebuilt from them."""
        items = list(assignments)
        return self.model_copy(
            update={
                "operator_assignments": items,
                "legacy_operators_text": join_lines(a.label for a in items),
                "legacy_hours_text": join_lines(a.raw_hours_text for a in items),
            }
        )


class ReportDocument(BaseModel):
    """Editable daily report: header fields plus ordered rows."""

    model_config = ConfigDict(frozen=True)

    id: Optional[UUID] = None
    author_id: Optional[UUID] = None
    crew_role: Optional[CrewRole] = None
    report_date: Optional[date] = None
    site_code: str = ""
    contract_code: str = ""
    status: ReportStatus = ReportStatus.DRAFT
    total_output: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    rows: list[ReportRowDraft] = Field(default_factory=list)

    @classmethod
    def empty(
        cls,
        author_id: Optional[UUID] = None,
        crew_role: Optional[CrewRole] = None,
        report_date: Optional[date] = None,
    ) -> "ReportDocument":
        """A fresh DRAFT with no id and no rows."""
        return cls(author_id=author_id, crew_role=crew_role, report_date=report_date)

    def with_rows(self, rows: Sequence[ReportRowDraft]) -> "ReportDocument":
        return self.model_copy(update={"rows": list(rows)})
