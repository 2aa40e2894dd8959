"""Daily report router."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from src.dependencies import (
    HoursMemoryDep,
    ReportLoaderDep,
    ReportSaveServiceDep,
    ReturnedInboxDep,
    SettingsDep,
)
from src.schemas.report_document import CrewRole, ReportDocument
from src.schemas.reports import (
    HoursSummaryResponse,
    OperatorHours,
    ReturnedInbox,
    SaveReportRequest,
    SaveReportResponse,
)
from src.services.hours_memory import hours_status
from src.utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/daily", response_model=ReportDocument)
async def get_daily_report(
    loader: ReportLoaderDep,
    settings: SettingsDep,
    author_id: UUID = Query(..., description="Report author"),
    report_date: date = Query(..., description="Report date"),
    crew_role: Optional[CrewRole] = Query(None, description="Crew role; defaults from settings"),
) -> ReportDocument:
    """
    Load the report of an author for a crew role and date.

    Returns an empty DRAFT (no id) when none exists yet.
    """
    role = crew_role or CrewRole(settings.default_crew_role)
    return await loader.load(author_id, role, report_date)


@router.put("/daily", response_model=SaveReportResponse)
async def save_daily_report(
    request: SaveReportRequest,
    save_service: ReportSaveServiceDep,
    hours_memory: HoursMemoryDep,
) -> SaveReportResponse:
    """
    Save a report document, replacing all of its stored rows.

    Row ids change on every save; reload to get the new ones.
    """
    document = request.document
    result = await save_service.save(
        document,
        actor_id=request.actor_id,
        acting_for_author_id=request.acting_for_author_id,
        forced_status=request.forced_status,
    )
    hours_memory.record(document.site_code, document.report_date, document.rows)

    inbox = save_service.returned_inbox.inbox if save_service.returned_inbox else None
    return SaveReportResponse(report_id=result.report_id, status=result.status, returned_inbox=inbox)


@router.get("/returned", response_model=ReturnedInbox)
async def get_returned_inbox(
    inbox_service: ReturnedInboxDep,
    settings: SettingsDep,
    author_id: UUID = Query(..., description="Report author"),
    crew_role: Optional[CrewRole] = Query(None, description="Crew role; defaults from settings"),
) -> ReturnedInbox:
    """Count and latest of the author's reports sent back by the office."""
    role = crew_role or CrewRole(settings.default_crew_role)
    return await inbox_service.refresh(author_id, role)


@router.get("/hours", response_model=HoursSummaryResponse)
async def get_hours_summary(
    hours_memory: HoursMemoryDep,
    site_code: str = Query(..., min_length=1, description="Site code"),
    report_date: date = Query(..., description="Report date"),
) -> HoursSummaryResponse:
    """Worked hours per operator for a site and date, with completeness status."""
    payload = hours_memory.read(site_code, report_date) or {}
    hours = hours_memory.read_hours_summary(site_code, report_date)
    present = set(payload.get("planned_by_operator_id") or {}) | set(hours)

    operators = [
        OperatorHours(
            operator_id=op_id,
            hours=hours.get(op_id, 0.0),
            status=hours_status(hours.get(op_id), hours_memory.target_hours),
        )
        for op_id in sorted(present)
    ]
    return HoursSummaryResponse(
        site_code=site_code,
        report_date=report_date,
        target_hours=hours_memory.target_hours,
        operators=operators,
    )
