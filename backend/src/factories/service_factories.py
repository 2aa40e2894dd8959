"""Factory functions for business logic services."""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import get_settings
from src.database import AsyncSessionLocal
from src.repositories.operator_assignment_repository import OperatorAssignmentRepository
from src.repositories.operator_repository import OperatorRepository
from src.repositories.report_repository import ReportRepository
from src.repositories.report_row_repository import ReportRowRepository
from src.services.hours_memory import HoursMemory, InMemoryKeyValueCache
from src.services.report_editor import ReportServices
from src.services.report_loader import ReportLoader
from src.services.report_save_service import ReportSaveService
from src.services.returned_inbox import ReturnedInboxService


def get_report_loader(db_session: AsyncSession) -> ReportLoader:
    """
    Create ReportLoader with dependencies.

    Note: Not cached because depends on request-scoped db session.

    Args:
        db_session: Database session

    Returns:
        ReportLoader instance
    """
    return ReportLoader(
        report_repository=ReportRepository(db_session),
        row_repository=ReportRowRepository(db_session),
        assignment_repository=OperatorAssignmentRepository(db_session),
        operator_repository=OperatorRepository(db_session),
    )


def get_returned_inbox_service(db_session: AsyncSession) -> ReturnedInboxService:
    """Create ReturnedInboxService for a db session."""
    return ReturnedInboxService(ReportRepository(db_session))


def get_report_save_service(
    db_session: AsyncSession, returned_inbox: Optional[ReturnedInboxService] = None
) -> ReportSaveService:
    """
    Create ReportSaveService with dependencies.

    All repositories share ``db_session`` so that the child-row replacement
    runs inside one savepoint.

    Args:
        db_session: Database session
        returned_inbox: Inbox refreshed after each successful save

    Returns:
        ReportSaveService instance
    """
    return ReportSaveService(
        report_repository=ReportRepository(db_session),
        row_repository=ReportRowRepository(db_session),
        assignment_repository=OperatorAssignmentRepository(db_session),
        returned_inbox=returned_inbox or get_returned_inbox_service(db_session),
    )


@lru_cache(maxsize=1)
def get_hours_memory() -> HoursMemory:
    """
    Create singleton hours memory backed by a process-local cache.

    Returns:
        HoursMemory instance
    """
    settings = get_settings()
    return HoursMemory(
        cache=InMemoryKeyValueCache(),
        key_prefix=settings.hours_memory_key_prefix,
        target_hours=settings.target_daily_hours,
    )


def build_report_services(db_session: AsyncSession) -> ReportServices:
    inbox = get_returned_inbox_service(db_session)
    return ReportServices(
        loader=get_report_loader(db_session),
        saver=get_report_save_service(db_session, returned_inbox=inbox),
        inbox=inbox,
    )


def report_services_scope(session_factory: Optional[async_sessionmaker] = None):
    """
    Build a scope factory for long-lived editor sessions.

    Each use opens a fresh db session, yields services bound to it, commits
    on success and rolls back on error.
    """

    @asynccontextmanager
    async def scope() -> AsyncIterator[ReportServices]:
        factory = session_factory or AsyncSessionLocal
        async with factory() as session:
            try:
                yield build_report_services(session)
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    return scope
