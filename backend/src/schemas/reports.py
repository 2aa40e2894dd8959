"""Schemas for report API operations."""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.report_document import ReportDocument, ReportStatus


class HoursStatus(str, Enum):
    """Whether an operator has worked the target hours for the day."""

    ABSENT = "ABSENT"
    INCOMPLETE = "INCOMPLETE"
    COMPLETE = "COMPLETE"


class ReturnedReportSummary(BaseModel):
    """Most recent report sent back by the office."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Report ID")
    report_date: date = Field(..., description="Report date")
    site_code: str = Field("", description="Site code")
    contract_code: str = Field("", description="Contract code")
    updated_at: Optional[datetime] = Field(None, description="Last update")


class ReturnedInbox(BaseModel):
    """Count and latest RETURNED report for an author and crew role."""

    count: int = Field(0, description="Number of returned reports")
    latest: Optional[ReturnedReportSummary] = None


class SaveReportRequest(BaseModel):
    """Request to persist a report document."""

    document: ReportDocument
    actor_id: Optional[UUID] = Field(None, description="Acting user; defaults to the author")
    acting_for_author_id: Optional[UUID] = Field(
        None, description="Set when saving on behalf of the author"
    )
    forced_status: Optional[ReportStatus] = Field(None, description="Explicit status override")


class SaveReportResponse(BaseModel):
    """Response after a successful save."""

    report_id: UUID
    status: ReportStatus
    returned_inbox: Optional[ReturnedInbox] = None


class OperatorHours(BaseModel):
    """Worked hours of one operator on a (site, date)."""

    operator_id: str
    hours: float
    status: HoursStatus


class HoursSummaryResponse(BaseModel):
    """Hours by operator recorded for a site and date."""

    site_code: str
    report_date: date
    target_hours: float
    operators: list[OperatorHours] = Field(default_factory=list)
