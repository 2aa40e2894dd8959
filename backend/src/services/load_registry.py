"""Cancellation tokens for report load cycles."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Optional

from src.exceptions import LoadAbortedError
from src.utils.logger import get_logger

log = get_logger(__name__)


@dataclass
class LoadToken:
    """Owned by one load invocation; keyed to its (author, crew role, date)."""

    key: Any
    cancelled: bool = False
    task: Optional["asyncio.Task[Any]"] = field(default=None, repr=False)

    def cancel(self) -> None:
        self.cancelled = True
        if self.task is not None and not self.task.done():
            self.task.cancel()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise LoadAbortedError(self.key)


def is_abort(exc: BaseException) -> bool:
    """Abort outcomes are expected and never reported as errors."""
    return isinstance(exc, (LoadAbortedError, asyncio.CancelledError))


class LoadRegistry:
    """
    Tracks the in-flight load per editor slot.

    Starting a load for a slot aborts whatever load the slot was running,
    so only the newest invocation can commit its result. Safe for
    single-threaded async use within one event loop.
    """

    def __init__(self) -> None:
        self._tokens: Dict[Hashable, LoadToken] = {}

    def start(self, slot: Hashable, key: Any) -> LoadToken:
        """Issue a fresh token for ``slot``, cancelling the previous one."""
        previous = self._tokens.get(slot)
        if previous is not None and not previous.cancelled:
            previous.cancel()
            log.debug("load superseded", slot=str(slot), previous=str(previous.key), key=str(key))

        token = LoadToken(key=key)
        self._tokens[slot] = token
        return token

    def is_current(self, slot: Hashable, token: LoadToken) -> bool:
        """True while ``token`` is the newest one for its slot and not cancelled."""
        return self._tokens.get(slot) is token and not token.cancelled

    def finish(self, slot: Hashable, token: LoadToken) -> None:
        """Forget the token once its load has settled."""
        if self._tokens.get(slot) is token:
            del self._tokens[slot]

    def cancel(self, slot: Hashable) -> bool:
        """Abort the slot's in-flight load, if any."""
        token = self._tokens.pop(slot, None)
        if token is None:
            return False
        token.cancel()
        log.debug("load cancelled", slot=str(slot), key=str(token.key))
        return True

    @property
    def active_count(self) -> int:
        return len(self._tokens)
