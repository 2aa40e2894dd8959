"""Persistence of report documents with full child-row replacement."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from src.exceptions import (
    BaseAPIException,
    ReportValidationError,
    ResourceNotFoundError,
    classify_storage_error,
)
from src.repositories.operator_assignment_repository import OperatorAssignmentRepository
from src.repositories.report_repository import ReportRepository
from src.repositories.report_row_repository import ReportRowRepository
from src.schemas.report_document import (
    ReportDocument,
    ReportRowDraft,
    ReportStatus,
)
from src.services.returned_inbox import ReturnedInboxService
from src.utils.logger import get_logger, truncate
from src.utils.report_text import (
    align_legacy_hours,
    is_finite_number,
    parse_hours,
    parse_numeric,
    safe_str,
)

log = get_logger(__name__)

MAX_REPORTED_INVALID_ROWS = 5


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a successful save."""

    report_id: UUID
    status: ReportStatus


def compute_total_output(rows: List[ReportRowDraft]) -> float:
    """Sum of produced quantities, ignoring blanks."""
    return sum(parse_numeric(r.produced_quantity) or 0.0 for r in rows)


def build_row_payload(report_id: UUID, position: int, row: ReportRowDraft) -> Dict[str, Any]:
    """Storage fields for one row. Quantities are number-or-None, never ''."""
    operators_text = safe_str(row.legacy_operators_text)
    return {
        "report_id": report_id,
        "position": position,
        "row_index": position + 1,
        "category": safe_str(row.category),
        "description": safe_str(row.description),
        "legacy_operators_text": operators_text,
        "legacy_hours_text": align_legacy_hours(operators_text, safe_str(row.legacy_hours_text)),
        "planned_quantity": parse_numeric(row.planned_quantity),
        "produced_quantity": parse_numeric(row.produced_quantity),
        "note": safe_str(row.note),
        "activity_reference_id": row.activity_reference_id,
    }


def build_assignment_payloads(row_id: UUID, row: ReportRowDraft) -> List[Dict[str, Any]]:
    """Storage fields for a row's operator lines, numbered by list order."""
    out = []
    for line_index, item in enumerate(row.operator_assignments):
        raw = safe_str(item.raw_hours_text)
        hours = item.parsed_hours if is_finite_number(item.parsed_hours) else parse_hours(raw)
        out.append(
            {
                "report_row_id": row_id,
                "operator_id": item.operator_id,
                "line_index": line_index,
                "raw_hours_text": raw,
                "parsed_hours": hours,
            }
        )
    return out


def validate_for_foreman(rows: List[ReportRowDraft]) -> None:
    """
    Rows with a description but no produced quantity need a note before
    a foreman can validate the report.
    """
    invalid = [
        (i, safe_str(r.description))
        for i, r in enumerate(rows)
        if safe_str(r.description)
        and parse_numeric(r.produced_quantity) is None
        and not safe_str(r.note)
    ]
    if not invalid:
        return

    preview = [f"Row {i + 1}: {descr}" for i, descr in invalid[:MAX_REPORTED_INVALID_ROWS]]
    raise ReportValidationError(
        "Validation blocked: produced quantity missing without a note",
        details={"rows": preview, "count": len(invalid)},
    )


class ReportSaveService:
    """
    Writes a report document back to the backend.

    The header is upserted, then the stored rows and assignments are
    replaced wholesale by the document's current rows. Same input gives the
    same read-back state; row ids change on every save.
    """

    def __init__(
        self,
        report_repository: ReportRepository,
        row_repository: ReportRowRepository,
        assignment_repository: OperatorAssignmentRepository,
        returned_inbox: Optional[ReturnedInboxService] = None,
    ):
        self.report_repository = report_repository
        self.row_repository = row_repository
        self.assignment_repository = assignment_repository
        self.returned_inbox = returned_inbox

    async def save(
        self,
        document: ReportDocument,
        *,
        actor_id: Optional[UUID] = None,
        acting_for_author_id: Optional[UUID] = None,
        forced_status: Optional[ReportStatus] = None,
    ) -> SaveResult:
        """
        Persist ``document``.

        Args:
            document: The in-memory report
            actor_id: Who performs the save; defaults to the author
            acting_for_author_id: Set when an office user saves on behalf of the author
            forced_status: Explicit status override (e.g. validation)

        Raises:
            ReportValidationError: Required identifiers missing (no I/O done)
            ConstraintViolationError: A uniqueness constraint rejected a write
            UnknownPersistenceError: Any other storage failure
        """
        actor = actor_id or document.author_id
        missing = [
            name
            for name, value in (
                ("author_id", document.author_id),
                ("actor_id", actor),
                ("crew_role", document.crew_role),
                ("report_date", document.report_date),
            )
            if not value
        ]
        if missing:
            raise ReportValidationError(
                "Missing required report identifiers", details={"missing": missing}
            )

        status = forced_status or document.status or ReportStatus.DRAFT
        if forced_status == ReportStatus.VALIDATED_BY_FOREMAN:
            validate_for_foreman(document.rows)

        try:
            report_id = await self._upsert_header(document, actor, acting_for_author_id, status)

            session = self.row_repository.session
            async with session.begin_nested():
                await self._replace_children(report_id, document.rows)
        except BaseAPIException:
            raise
        except SQLAlchemyError as e:
            log.error("report save failed", report_id=str(document.id), error=truncate(str(e)))
            raise classify_storage_error(e) from e

        await self._refresh_inbox(document)

        log.info(
            "report saved",
            report_id=str(report_id),
            status=status.value,
            rows=len(document.rows),
            assignments=sum(len(r.operator_assignments) for r in document.rows),
        )
        return SaveResult(report_id=report_id, status=status)

    async def _upsert_header(
        self,
        document: ReportDocument,
        actor_id: UUID,
        acting_for_author_id: Optional[UUID],
        status: ReportStatus,
    ) -> UUID:
        fields = {
            "report_date": document.report_date,
            "site_code": safe_str(document.site_code),
            "contract_code": safe_str(document.contract_code),
            "status": status.value,
            "total_output": compute_total_output(document.rows),
            "last_edited_by": actor_id,
        }

        if document.id is None:
            report = await self.report_repository.create(
                author_id=document.author_id,
                crew_role=document.crew_role.value,
                created_by=actor_id,
                acting_for_author_id=acting_for_author_id,
                **fields,
            )
            return report.id

        report = await self.report_repository.update(document.id, **fields)
        if report is None:
            raise ResourceNotFoundError("Report", str(document.id))
        return report.id

    async def _replace_children(self, report_id: UUID, rows: List[ReportRowDraft]) -> None:
        existing_ids = await self.row_repository.list_ids(report_id)

        # children before parents
        if existing_ids:
            await self.assignment_repository.delete_by_row_ids(existing_ids)
        await self.row_repository.delete_by_report(report_id)

        inserted = await self.row_repository.insert_many(
            [build_row_payload(report_id, i, r) for i, r in enumerate(rows)]
        )
        row_id_by_position = {rec.position: rec.id for rec in inserted}

        assignments: List[Dict[str, Any]] = []
        for position, row in enumerate(rows):
            row_id = row_id_by_position.get(position)
            if row_id is None or not row.operator_assignments:
                continue
            assignments.extend(build_assignment_payloads(row_id, row))

        await self.assignment_repository.insert_many(assignments)
        log.debug(
            "report children replaced",
            report_id=str(report_id),
            deleted_rows=len(existing_ids),
            inserted_rows=len(inserted),
            inserted_assignments=len(assignments),
        )

    async def _refresh_inbox(self, document: ReportDocument) -> None:
        if self.returned_inbox is None:
            return
        try:
            await self.returned_inbox.refresh(document.author_id, document.crew_role)
        except Exception as e:
            log.warning("returned inbox refresh failed", error=str(e))
