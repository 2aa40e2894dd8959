"""Repository for Operator lookups."""

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.operator import Operator
from src.utils.logger import get_logger

log = get_logger(__name__)


class OperatorRepository:
    """Repository for Operator operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_many(self, operator_ids: Sequence[UUID]) -> List[Operator]:
        """Fetch operators by ID in a single query. Unknown IDs are skipped."""
        if not operator_ids:
            return []

        result = await self.session.execute(
            select(Operator).where(Operator.id.in_(list(operator_ids)))
        )
        return list(result.scalars().all())

    async def create(
        self,
        name: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Operator:
        """
        Create an operator.

        Caller is responsible for committing the transaction.
        """
        operator = Operator(name=name, first_name=first_name, last_name=last_name)
        self.session.add(operator)
        await self.session.flush()
        await self.session.refresh(operator)
        log.info("operator created", operator_id=str(operator.id))
        return operator
