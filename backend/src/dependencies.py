"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.database import get_db
from src.factories.service_factories import (
    get_hours_memory,
    get_report_loader,
    get_report_save_service,
    get_returned_inbox_service,
)
from src.services.hours_memory import HoursMemory
from src.services.report_loader import ReportLoader
from src.services.report_save_service import ReportSaveService
from src.services.returned_inbox import ReturnedInboxService

# Type aliases for cleaner router signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


# Service dependencies
def get_returned_inbox_dep(db: DbSession) -> ReturnedInboxService:
    """Get ReturnedInboxService with database session."""
    return get_returned_inbox_service(db)


ReturnedInboxDep = Annotated[ReturnedInboxService, Depends(get_returned_inbox_dep)]


def get_report_loader_dep(db: DbSession) -> ReportLoader:
    """Get ReportLoader with database session."""
    return get_report_loader(db)


def get_report_save_service_dep(
    db: DbSession, inbox: ReturnedInboxDep
) -> ReportSaveService:
    """Get ReportSaveService sharing the request's inbox service."""
    return get_report_save_service(db, returned_inbox=inbox)


ReportLoaderDep = Annotated[ReportLoader, Depends(get_report_loader_dep)]
ReportSaveServiceDep = Annotated[ReportSaveService, Depends(get_report_save_service_dep)]
HoursMemoryDep = Annotated[HoursMemory, Depends(get_hours_memory)]
