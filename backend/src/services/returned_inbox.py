"""Returned-report inbox: reports sent back to their author by the office."""

from typing import Optional
from uuid import UUID

from src.repositories.report_repository import ReportRepository
from src.schemas.report_document import CrewRole, ReportStatus
from src.schemas.reports import ReturnedInbox, ReturnedReportSummary
from src.utils.logger import get_logger

log = get_logger(__name__)


class ReturnedInboxService:
    """Keeps the count and latest RETURNED report of an (author, crew role)."""

    def __init__(self, report_repository: ReportRepository):
        self.report_repository = report_repository
        self.inbox = ReturnedInbox()

    async def refresh(
        self, author_id: Optional[UUID], crew_role: Optional[CrewRole]
    ) -> ReturnedInbox:
        """
        Re-read the inbox. Failures reset it to empty instead of raising.
        """
        if not author_id or not crew_role:
            self.inbox = ReturnedInbox()
            return self.inbox

        status = ReportStatus.RETURNED.value
        repo = self.report_repository
        try:
            # a failed read must not abort a surrounding save transaction
            async with repo.session.begin_nested():
                count = await repo.count_by_status(author_id, crew_role.value, status)
                latest = await repo.latest_by_status(author_id, crew_role.value, status)
        except Exception as e:
            log.warning("returned inbox load failed", author_id=str(author_id), error=str(e))
            self.inbox = ReturnedInbox()
            return self.inbox

        self.inbox = ReturnedInbox(
            count=int(count or 0),
            latest=ReturnedReportSummary.model_validate(latest, from_attributes=True)
            if latest is not None
            else None,
        )
        log.debug("returned inbox refreshed", author_id=str(author_id), count=self.inbox.count)
        return self.inbox
