"""Repository for report rows."""

from typing import Any, List
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.report import ReportRow
from src.utils.logger import get_logger

log = get_logger(__name__)


class ReportRowRepository:
    """Repository for ReportRow operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_by_report(self, report_id: UUID) -> List[ReportRow]:
        """Rows of a report in position order."""
        result = await self.session.execute(
            select(ReportRow)
            .where(ReportRow.report_id == report_id)
            .order_by(ReportRow.position.asc())
        )
        return list(result.scalars().all())

    async def list_ids(self, report_id: UUID) -> List[UUID]:
        """IDs of all rows currently stored for a report."""
        result = await self.session.execute(
            select(ReportRow.id).where(ReportRow.report_id == report_id)
        )
        return list(result.scalars().all())

    async def delete_by_report(self, report_id: UUID) -> int:
        """Delete every row of a report. Assignments must be deleted first."""
        result = await self.session.execute(
            delete(ReportRow).where(ReportRow.report_id == report_id)
        )
        deleted = result.rowcount or 0
        log.debug("report rows deleted", report_id=str(report_id), count=deleted)
        return deleted

    async def insert_many(self, rows: List[dict[str, Any]]) -> List[ReportRow]:
        """Insert rows and return them with their new IDs."""
        if not rows:
            return []

        records = [ReportRow(**fields) for fields in rows]
        self.session.add_all(records)
        await self.session.flush()
        log.debug("report rows inserted", count=len(records))
        return records
