"""Debounced, change-gated automatic saving of report documents."""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from src.schemas.report_document import ReportDocument
from src.utils.logger import get_logger
from src.utils.report_signature import build_signature, has_meaningful_content

log = get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.2

SaveCallback = Callable[[ReportDocument], Awaitable[Any]]


@dataclass(frozen=True)
class AutosaveState:
    """Snapshot of the editor at the moment a change is observed."""

    document: ReportDocument
    can_edit: bool = True
    initial_loading: bool = False
    loading: bool = False
    saving: bool = False


class AutosaveScheduler:
    """
    Calls ``save`` once edits settle.

    Every qualifying change restarts a single debounce timer. When it fires
    the captured document is saved; on success its signature becomes the
    baseline, on failure the baseline is left alone so the same state is
    still eligible next time. Only autosave-triggered saves are kept from
    overlapping; a manual save can still race one.
    """

    def __init__(
        self,
        save: SaveCallback,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        enabled: bool = True,
        on_saved: Optional[Callable[[], Any]] = None,
        on_error: Optional[Callable[[BaseException], Any]] = None,
    ):
        self._save = save
        self.debounce_seconds = debounce_seconds
        self.enabled = enabled
        self._on_saved = on_saved
        self._on_error = on_error

        self.last_saved_signature = ""
        self.in_flight = False
        self._timer: Optional["asyncio.Task[None]"] = None
        self._armed_signature = ""
        self._save_task: Optional["asyncio.Task[None]"] = None

    @property
    def pending(self) -> bool:
        """True while a debounce timer is armed."""
        return self._timer is not None and not self._timer.done()

    def mark_saved(self, signature: str) -> None:
        """Set the baseline after a save made outside the scheduler."""
        self.last_saved_signature = signature
        if self.pending and self._armed_signature == signature:
            self.cancel()

    def should_arm(self, state: AutosaveState, signature: str) -> bool:
        if not self.enabled or not state.can_edit:
            return False
        if not state.document.author_id:
            return False
        if state.initial_loading or state.loading:
            return False
        if state.saving or self.in_flight:
            return False
        if not has_meaningful_content(state.document):
            return False
        return signature != self.last_saved_signature

    def notify(self, state: AutosaveState) -> bool:
        """
        Observe an editor change. Returns True when a timer was (re)armed.

        Must be called from a running event loop.
        """
        signature = build_signature(state.document)
        if not self.should_arm(state, signature):
            return False

        self.cancel()
        self._armed_signature = signature
        self._timer = asyncio.create_task(self._fire_later(state.document, signature))
        return True

    async def _fire_later(self, document: ReportDocument, signature: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._timer = None
        if signature == self.last_saved_signature:
            # already saved by someone else while waiting
            return
        # Detached so that cancel() never interrupts a save in progress
        self._save_task = asyncio.create_task(self._run_save(document, signature))

    async def _run_save(self, document: ReportDocument, signature: str) -> None:
        self.in_flight = True
        try:
            await self._save(document)
        except Exception as e:
            log.warning("autosave failed", report_id=str(document.id), error=str(e))
            if self._on_error is not None:
                self._on_error(e)
            return
        finally:
            self.in_flight = False

        self.last_saved_signature = signature
        log.debug("autosaved", report_id=str(document.id))
        if self._on_saved is not None:
            self._on_saved()

    def cancel(self) -> None:
        """Drop the pending timer, if any."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def close(self) -> None:
        """Teardown: clears the pending timer. A running save is left to finish."""
        self.cancel()

    async def wait_idle(self) -> None:
        """Wait for the armed timer and any save it started to settle."""
        while True:
            task = self._timer if self.pending else self._save_task
            if task is None or task.done():
                if self._save_task is None or self._save_task.done():
                    return
                task = self._save_task
            await asyncio.gather(task, return_exceptions=True)
