"""Repository for Report header operations."""

from datetime import date
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.report import Report
from src.utils.logger import get_logger

log = get_logger(__name__)


class ReportRepository:
    """Repository for Report header CRUD operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_latest(
        self, author_id: UUID, crew_role: str, report_date: date
    ) -> Optional[Report]:
        """
        Get the report header for (author, crew role, date).

        Duplicates may exist from older clients; the most recently created
        one wins, ties broken by id.
        """
        result = await self.session.execute(
            select(Report)
            .where(
                Report.author_id == author_id,
                Report.crew_role == crew_role,
                Report.report_date == report_date,
            )
            .order_by(Report.created_at.desc(), Report.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, report_id: UUID) -> Optional[Report]:
        """Get report header by ID."""
        result = await self.session.execute(select(Report).where(Report.id == report_id))
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> Report:
        """
        Insert a new report header.

        Caller is responsible for committing the transaction.
        """
        report = Report(**fields)
        self.session.add(report)
        await self.session.flush()
        await self.session.refresh(report)
        log.debug("report header created", report_id=str(report.id), crew_role=report.crew_role)
        return report

    async def update(self, report_id: UUID, **fields: Any) -> Optional[Report]:
        """Update header fields by ID. Returns None when the report is gone."""
        report = await self.get_by_id(report_id)
        if report is None:
            return None

        for key, value in fields.items():
            setattr(report, key, value)
        await self.session.flush()
        await self.session.refresh(report)
        log.debug("report header updated", report_id=str(report_id), fields=sorted(fields))
        return report

    async def count_by_status(self, author_id: UUID, crew_role: str, status: str) -> int:
        """Count an author's reports in a given status."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Report)
            .where(
                Report.author_id == author_id,
                Report.crew_role == crew_role,
                Report.status == status,
            )
        )
        return result.scalar_one() or 0

    async def latest_by_status(
        self, author_id: UUID, crew_role: str, status: str
    ) -> Optional[Report]:
        """Most recently updated report of an author in a given status."""
        result = await self.session.execute(
            select(Report)
            .where(
                Report.author_id == author_id,
                Report.crew_role == crew_role,
                Report.status == status,
            )
            .order_by(Report.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
