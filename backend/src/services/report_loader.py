"""Hydration of report documents from the backend."""

from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from src.models.operator import Operator
from src.models.report import Report, ReportRow, RowOperatorAssignment
from src.repositories.operator_assignment_repository import OperatorAssignmentRepository
from src.repositories.operator_repository import OperatorRepository
from src.repositories.report_repository import ReportRepository
from src.repositories.report_row_repository import ReportRowRepository
from src.schemas.report_document import (
    CrewRole,
    OperatorAssignment,
    ReportDocument,
    ReportRowDraft,
    ReportStatus,
    operator_label,
)
from src.services.load_registry import LoadToken
from src.utils.logger import get_logger
from src.utils.report_text import (
    align_legacy_hours,
    is_finite_number,
    normalize_operator_label,
    parse_hours,
    safe_str,
)

log = get_logger(__name__)


def normalize_status(value: Any) -> ReportStatus:
    """Blank means DRAFT; unknown values are logged and treated as DRAFT."""
    s = safe_str(value).upper()
    if not s:
        return ReportStatus.DRAFT
    try:
        return ReportStatus(s)
    except ValueError:
        log.warning("unknown report status", status=s)
        return ReportStatus.DRAFT


def _hydrate_assignments(
    items: Sequence[RowOperatorAssignment], operators_by_id: Dict[str, Operator]
) -> List[OperatorAssignment]:
    ordered = sorted(items, key=lambda it: it.line_index if it.line_index is not None else 0)
    out = []
    for idx, it in enumerate(ordered):
        op = operators_by_id.get(str(it.operator_id))
        label = ""
        if op is not None:
            label = operator_label(name=op.name, first_name=op.first_name, last_name=op.last_name)
        label = label or normalize_operator_label(str(it.operator_id))

        raw = safe_str(it.raw_hours_text)
        hours = it.parsed_hours if is_finite_number(it.parsed_hours) else parse_hours(raw)
        out.append(
            OperatorAssignment(
                operator_id=it.operator_id,
                label=label,
                raw_hours_text=raw,
                parsed_hours=hours,
                line_index=idx,
            )
        )
    return out


def _hydrate_row(row: ReportRow, assignments: List[OperatorAssignment]) -> ReportRowDraft:
    draft = ReportRowDraft(
        id=str(row.id),
        category=safe_str(row.category),
        description=safe_str(row.description),
        legacy_operators_text=safe_str(row.legacy_operators_text),
        legacy_hours_text=safe_str(row.legacy_hours_text),
        planned_quantity=row.planned_quantity,
        produced_quantity=row.produced_quantity,
        note=safe_str(row.note),
        activity_reference_id=row.activity_reference_id,
    )
    if assignments:
        # Canonical wins; legacy text becomes a derived projection
        return draft.with_assignments(assignments)

    return draft.model_copy(
        update={
            "legacy_hours_text": align_legacy_hours(
                draft.legacy_operators_text, draft.legacy_hours_text
            )
        }
    )


class ReportLoader:
    """Reads a report header, its rows and operator assignments into a document."""

    def __init__(
        self,
        report_repository: ReportRepository,
        row_repository: ReportRowRepository,
        assignment_repository: OperatorAssignmentRepository,
        operator_repository: OperatorRepository,
    ):
        self.report_repository = report_repository
        self.row_repository = row_repository
        self.assignment_repository = assignment_repository
        self.operator_repository = operator_repository

    async def load(
        self,
        author_id: Optional[UUID],
        crew_role: Optional[CrewRole],
        report_date: Optional[date],
        token: Optional[LoadToken] = None,
    ) -> ReportDocument:
        """
        Hydrate the report for (author, crew role, date).

        The fetch chain is linear: header, rows, assignments (one batched
        query), operator labels (one batched query). ``token`` is checked
        after every fetch; a cancelled token raises LoadAbortedError before
        anything is returned.

        Returns:
            The hydrated document, or an empty DRAFT when any input is
            missing or no report exists yet.
        """
        if not author_id or not crew_role or not report_date:
            return ReportDocument.empty(author_id, crew_role, report_date)

        def checkpoint() -> None:
            if token is not None:
                token.raise_if_cancelled()

        header = await self.report_repository.find_latest(author_id, crew_role.value, report_date)
        checkpoint()

        if header is None:
            log.debug(
                "no report yet",
                author_id=str(author_id),
                crew_role=crew_role.value,
                report_date=str(report_date),
            )
            return ReportDocument.empty(author_id, crew_role, report_date)

        rows = await self.row_repository.list_by_report(header.id)
        checkpoint()

        assignments = await self._fetch_assignments([r.id for r in rows])
        checkpoint()

        operators_by_id = await self._fetch_operators({a.operator_id for a in assignments})
        checkpoint()

        by_row: Dict[str, List[RowOperatorAssignment]] = defaultdict(list)
        for it in assignments:
            by_row[str(it.report_row_id)].append(it)

        drafts = [
            _hydrate_row(r, _hydrate_assignments(by_row.get(str(r.id), []), operators_by_id))
            for r in rows
        ]

        log.info(
            "report loaded",
            report_id=str(header.id),
            rows=len(drafts),
            assignments=len(assignments),
        )
        return self._document(header, crew_role, drafts)

    async def _fetch_assignments(self, row_ids: List[UUID]) -> List[RowOperatorAssignment]:
        if not row_ids:
            return []
        try:
            return await self.assignment_repository.list_by_row_ids(row_ids)
        except Exception as e:
            # Rows stay usable through their stored legacy text
            log.warning("assignment read failed", rows=len(row_ids), error=str(e))
            return []

    async def _fetch_operators(self, operator_ids: set) -> Dict[str, Operator]:
        if not operator_ids:
            return {}
        try:
            operators = await self.operator_repository.get_many(sorted(operator_ids, key=str))
        except Exception as e:
            log.warning("operator read failed", operators=len(operator_ids), error=str(e))
            return {}
        return {str(op.id): op for op in operators}

    @staticmethod
    def _document(header: Report, crew_role: CrewRole, rows: List[ReportRowDraft]) -> ReportDocument:
        try:
            role = CrewRole(header.crew_role) if header.crew_role else crew_role
        except ValueError:
            role = crew_role

        return ReportDocument(
            id=header.id,
            author_id=header.author_id,
            crew_role=role,
            report_date=header.report_date,
            site_code=safe_str(header.site_code),
            contract_code=safe_str(header.contract_code),
            status=normalize_status(header.status),
            total_output=float(header.total_output or 0),
            created_at=header.created_at,
            updated_at=header.updated_at,
            rows=rows,
        )
