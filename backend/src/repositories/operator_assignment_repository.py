"""Repository for canonical row operator assignments."""

from typing import Any, List, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.report import RowOperatorAssignment
from src.utils.logger import get_logger

log = get_logger(__name__)


class OperatorAssignmentRepository:
    """Repository for RowOperatorAssignment operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_by_row_ids(self, row_ids: Sequence[UUID]) -> List[RowOperatorAssignment]:
        """All assignments of the given rows, in a single query."""
        if not row_ids:
            return []

        result = await self.session.execute(
            select(RowOperatorAssignment)
            .where(RowOperatorAssignment.report_row_id.in_(list(row_ids)))
            .order_by(
                RowOperatorAssignment.report_row_id.asc(),
                RowOperatorAssignment.line_index.asc(),
            )
        )
        return list(result.scalars().all())

    async def delete_by_row_ids(self, row_ids: Sequence[UUID]) -> int:
        """Delete all assignments referencing the given rows."""
        if not row_ids:
            return 0

        result = await self.session.execute(
            delete(RowOperatorAssignment).where(
                RowOperatorAssignment.report_row_id.in_(list(row_ids))
            )
        )
        deleted = result.rowcount or 0
        log.debug("assignments deleted", rows=len(row_ids), count=deleted)
        return deleted

    async def insert_many(self, items: List[dict[str, Any]]) -> int:
        """Insert assignment records."""
        if not items:
            return 0

        self.session.add_all([RowOperatorAssignment(**fields) for fields in items])
        await self.session.flush()
        log.debug("assignments inserted", count=len(items))
        return len(items)
