"""Editor session: holds one report document and wires load, edits and saving."""

import asyncio
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, AsyncContextManager, Callable, Optional
from uuid import UUID

from src.schemas.report_document import CrewRole, ReportDocument, ReportStatus
from src.schemas.reports import ReturnedInbox
from src.services.autosave import DEFAULT_DEBOUNCE_SECONDS, AutosaveScheduler, AutosaveState
from src.services.hours_memory import HoursMemory
from src.services.load_registry import LoadRegistry, LoadToken, is_abort
from src.services.report_loader import ReportLoader
from src.services.report_save_service import ReportSaveService, SaveResult
from src.services.returned_inbox import ReturnedInboxService
from src.utils.logger import get_logger
from src.utils.report_signature import build_signature

log = get_logger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load report."


@dataclass
class ReportServices:
    """Services bound to one database session."""

    loader: ReportLoader
    saver: ReportSaveService
    inbox: ReturnedInboxService


ServicesScope = Callable[[], AsyncContextManager[ReportServices]]


@dataclass(frozen=True)
class LoadState:
    loading: bool = False
    initial_loading: bool = True
    error: str = ""
    error_detail: str = ""


class ReportEditor:
    """
    Long-lived editing session for one (author, crew role, date).

    Every backend operation runs in its own services scope (one db session),
    so the editor can outlive any single request. Row edits go through the
    pure mutation functions, then feed the hours memory and the autosave
    scheduler. ``apply`` and ``set_header`` must be called from a running
    event loop.
    """

    def __init__(
        self,
        services_scope: ServicesScope,
        *,
        author_id: Optional[UUID] = None,
        crew_role: Optional[CrewRole] = None,
        report_date: Optional[date] = None,
        actor_id: Optional[UUID] = None,
        acting_for_author_id: Optional[UUID] = None,
        can_edit: bool = True,
        registry: Optional[LoadRegistry] = None,
        hours_memory: Optional[HoursMemory] = None,
        autosave_enabled: bool = True,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self._scope = services_scope
        self.actor_id = actor_id
        self.acting_for_author_id = acting_for_author_id
        self.can_edit = can_edit
        self.registry = registry or LoadRegistry()
        self.hours_memory = hours_memory

        self.document = ReportDocument.empty(author_id, crew_role, report_date)
        self.load_state = LoadState()
        self.saving = False
        self.returned_inbox = ReturnedInbox()
        self.last_save_error: Optional[BaseException] = None

        self.autosave = AutosaveScheduler(
            self._autosave,
            debounce_seconds=debounce_seconds,
            enabled=autosave_enabled,
            on_saved=self._notify_autosave,
            on_error=self._on_autosave_error,
        )

    @property
    def key(self) -> tuple:
        doc = self.document
        return (doc.author_id, doc.crew_role, doc.report_date)

    # Loading

    async def open(
        self,
        author_id: Optional[UUID],
        crew_role: Optional[CrewRole],
        report_date: Optional[date],
    ) -> Optional[ReportDocument]:
        """Switch to another report and load it, superseding any running load."""
        self.autosave.cancel()
        self.document = ReportDocument.empty(author_id, crew_role, report_date)
        return await self.load()

    async def load(self) -> Optional[ReportDocument]:
        """
        (Re)load the current report.

        Returns the loaded document, or None when the load was superseded,
        cancelled or failed. A failure keeps the current document and sets
        ``load_state.error``.
        """
        token = self.registry.start(self, self.key)
        self.load_state = replace(self.load_state, loading=True, error="", error_detail="")

        task = asyncio.create_task(self._fetch(token))
        token.task = task

        try:
            document, inbox = await task
        except asyncio.CancelledError:
            if token.cancelled:
                log.debug("load aborted", key=str(token.key))
                return None
            self._settle_load(token)
            raise
        except Exception as e:
            if is_abort(e) or not self.registry.is_current(self, token):
                log.debug("load aborted", key=str(token.key))
                return None
            log.error("report load failed", key=str(token.key), error=str(e))
            self._settle_load(token, error=LOAD_ERROR_MESSAGE, detail=str(e))
            return None

        if not self.registry.is_current(self, token):
            return None

        self.document = document
        self.returned_inbox = inbox
        self.autosave.mark_saved(build_signature(document))
        self._settle_load(token)
        self._record_hours()
        return document

    async def _fetch(self, token: LoadToken) -> tuple[ReportDocument, ReturnedInbox]:
        author_id, crew_role, report_date = token.key
        async with self._scope() as services:
            document = await services.loader.load(author_id, crew_role, report_date, token=token)
            inbox = await services.inbox.refresh(author_id, crew_role)
        return document, inbox

    def _settle_load(self, token: LoadToken, error: str = "", detail: str = "") -> None:
        self.registry.finish(self, token)
        self.load_state = LoadState(
            loading=False, initial_loading=False, error=error, error_detail=detail
        )

    # Editing

    def apply(self, mutation: Callable[..., Any], *args: Any, **kwargs: Any) -> ReportDocument:
        """
        Run a row mutation against the current rows and adopt the result.

        Example:
            editor.apply(add_operator_assignment, 0, operator)
        """
        rows = mutation(self.document.rows, *args, **kwargs)
        self.document = self.document.with_rows(rows)
        self._record_hours()
        self._notify_autosave()
        return self.document

    def set_header(
        self, site_code: Optional[str] = None, contract_code: Optional[str] = None
    ) -> ReportDocument:
        update = {}
        if site_code is not None:
            update["site_code"] = site_code
        if contract_code is not None:
            update["contract_code"] = contract_code
        if update:
            self.document = self.document.model_copy(update=update)
            self._record_hours()
            self._notify_autosave()
        return self.document

    def _autosave_state(self) -> AutosaveState:
        return AutosaveState(
            document=self.document,
            can_edit=self.can_edit,
            initial_loading=self.load_state.initial_loading,
            loading=self.load_state.loading,
            saving=self.saving,
        )

    def _notify_autosave(self) -> None:
        self.autosave.notify(self._autosave_state())

    def _record_hours(self) -> None:
        if self.hours_memory is None:
            return
        doc = self.document
        self.hours_memory.record(doc.site_code, doc.report_date, doc.rows)

    # Saving

    async def save(self, forced_status: Optional[ReportStatus] = None) -> SaveResult:
        """
        Manual save of the current document. Errors propagate to the caller.
        """
        document = self.document
        self.saving = True
        try:
            result = await self._persist(document, forced_status)
        finally:
            self.saving = False

        saved = self._adopt(document, result)
        self.autosave.mark_saved(build_signature(saved))
        self.last_save_error = None
        # edits made while saving were not scheduled
        self._notify_autosave()
        return result

    async def _autosave(self, document: ReportDocument) -> SaveResult:
        result = await self._persist(document, None)
        self._adopt(document, result)
        self.last_save_error = None
        return result

    async def _persist(
        self, document: ReportDocument, forced_status: Optional[ReportStatus]
    ) -> SaveResult:
        async with self._scope() as services:
            result = await services.saver.save(
                document,
                actor_id=self.actor_id,
                acting_for_author_id=self.acting_for_author_id,
                forced_status=forced_status,
            )
            self.returned_inbox = services.inbox.inbox
        return result

    def _adopt(self, saved: ReportDocument, result: SaveResult) -> ReportDocument:
        """Carry the persisted id and status onto ``saved`` and the live document."""
        update = {"id": result.report_id, "status": result.status}
        if self.key == (saved.author_id, saved.crew_role, saved.report_date):
            self.document = self.document.model_copy(update=update)
        return saved.model_copy(update=update)

    def _on_autosave_error(self, exc: BaseException) -> None:
        self.last_save_error = exc

    async def refresh_returned_inbox(self) -> ReturnedInbox:
        author_id, crew_role, _ = self.key
        async with self._scope() as services:
            self.returned_inbox = await services.inbox.refresh(author_id, crew_role)
        return self.returned_inbox

    def close(self) -> None:
        """Teardown: drop the pending autosave timer and abort any running load."""
        self.autosave.close()
        self.registry.cancel(self)
